import os, pathlib, pyjson5
from collections.abc import Callable
from typing import Any

TEMPLATE_EXTENSION = ".txt"


class ProjectConfig:
    """
    Project settings from `project.json`: where to find templates and modules,
    and which features are enabled by default.
    """

    module_paths: list[str]
    template_paths: list[str]
    features: list[str]
    include_patterns: list[str]
    exclude_patterns: list[str]

    def __init__(self) -> None:
        self.module_paths = []
        self.template_paths = []
        self.features = []
        self.include_patterns = ["*" + TEMPLATE_EXTENSION]
        self.exclude_patterns = [".*", "_*", "Module_*"]

    def read_json_file(self, path: str, profiles: list[str]):
        if not os.path.isfile(path):
            raise Exception(f'Project file "{path}" was not found')
        with open(path) as f:
            json_data = pyjson5.load(f)
        self.read_json(json_data, profiles, os.path.split(path)[0])

    def read_json(self, json_data: dict, profiles: list[str], project_folder: str = ""):
        resolve_paths = lambda p: [
            os.path.normpath(os.path.join(project_folder, x)) for x in p
        ]
        properties: list[tuple[list, str, Callable[[Any], list]]] = [
            (self.module_paths, "module_paths", resolve_paths),
            (self.template_paths, "template_paths", resolve_paths),
            (self.features, "features", lambda p: p),
            (self.include_patterns, "include_patterns", lambda p: p),
            (self.exclude_patterns, "exclude_patterns", lambda p: p),
        ]
        updated_properties = {name: False for _, name, _ in properties}

        if "profiles" in json_data:
            json_profiles = json_data["profiles"]
            for profile in profiles or []:
                if profile not in json_profiles:
                    print(f'Warning! Profile "{profile}" was not found')
                    continue
                profile = json_profiles[profile]

                for property, property_name, value_getter in properties:
                    if property_name in profile:
                        if not updated_properties[property_name]:
                            property[:] = []
                            updated_properties[property_name] = True

                        values = value_getter(profile[property_name])
                        property.extend(
                            [item for item in values if item not in property]
                        )

        if "base_profile" in json_data:
            base_profile = json_data["base_profile"]

            for property, property_name, value_getter in properties:
                if (
                    property_name in base_profile
                    and not updated_properties[property_name]
                ):
                    property[:] = value_getter(base_profile[property_name])

        for path in self.module_paths + self.template_paths:
            if not os.path.isdir(path):
                print(f'Warning! Path "{path}" was not found')

    def find_templates(self) -> list[str]:
        "Template files from template paths, filtered by include and exclude patterns"
        templates: list[str] = []
        for folder in self.template_paths:
            folder = pathlib.Path(folder)
            if not folder.is_dir():
                continue
            for pattern in self.include_patterns:
                for path in sorted(folder.glob(pattern)):
                    if not path.is_file() or any(
                        path.match(e) for e in self.exclude_patterns
                    ):
                        continue
                    if str(path) not in templates:
                        templates.append(str(path))
        return templates
