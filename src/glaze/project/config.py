import os, pyjson5

from glaze import util
from glaze.property import Property


class Config:
    """
    Generation settings for a single shader: the template to use, enabled features and keyword values.
    """

    template: str
    features: list[str]
    keywords: dict[str, str]
    flags: list[str]
    extra_flags: dict[str, list[str]]
    extra_temp_features: list[str]
    "Features that are only used for conditions and never saved"
    pass_properties: list[list[Property]]
    "Properties used in each pass, from the last usage tracking"

    def __init__(self) -> None:
        self.template = ""
        self.features = []
        self.keywords = {}
        self.flags = []
        self.extra_flags = {}
        self.extra_temp_features = []
        self.pass_properties = []

    def read_from_json_file(self, file_path: str):
        if not os.path.isfile(file_path):
            return

        with open(file_path) as f:
            config_json = pyjson5.load(f)
        self.read_json(config_json)

    def read_json(self, json_data: dict):
        self.template = json_data.get("template", self.template)

        features = json_data.get("features", self.features)
        if type(features) == str:
            features = features.split()
        self.features = []
        for feature in features:
            util.add_if_missing(self.features, feature)

        self.keywords = {
            str(key): str(value)
            for key, value in json_data.get("keywords", self.keywords).items()
        }
        self.flags = list(json_data.get("flags", self.flags))
        self.extra_flags = {
            key: list(value)
            for key, value in json_data.get("extra_flags", self.extra_flags).items()
        }

    def json(self):
        return {
            "template": self.template,
            "features": self.features,
            "keywords": self.keywords,
            "flags": self.flags,
            "extra_flags": self.extra_flags,
        }

    def has_keyword(self, name: str):
        return name in self.keywords

    def get_keyword(self, name: str) -> str:
        return self.keywords.get(name, "")

    def set_keyword(self, name: str, value: str):
        self.keywords[name] = value

    def toggle_feature(self, feature: str, enable: bool):
        if enable:
            util.add_if_missing(self.features, feature)
        elif feature in self.features:
            self.features.remove(feature)

    def set_pass_properties(self, pass_properties: list[list[Property]]):
        self.pass_properties = [list(p) for p in pass_properties]

    def needed_features_for_pass(self, pass_index: int) -> list[str]:
        "Features needed by the implementations of properties used in a pass"
        features = []
        if pass_index < len(self.pass_properties):
            for prop in self.pass_properties[pass_index]:
                for feature in prop.needed_features:
                    util.add_if_missing(features, feature)
        return features

    def needed_features_all(self) -> list[str]:
        features = []
        for pass_index in range(len(self.pass_properties)):
            for feature in self.needed_features_for_pass(pass_index):
                util.add_if_missing(features, feature)
        return features
