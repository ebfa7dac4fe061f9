from glaze.template.program import Program

from .implementation import Implementation


class PropertyType:
    "Value types a property can declare, with their channel count"

    CHANNELS = {
        "float": 1,
        "float2": 2,
        "float3": 3,
        "float4": 4,
        "color": 3,
        "color_rgba": 4,
    }

    @classmethod
    def validate(cls, name: str):
        if name not in cls.CHANNELS:
            raise Exception(f'Unknown property type "{name}"')
        return name


class Property:
    """
    A declared, user-tunable value of a template.
    """

    name: str
    type: str
    program: Program
    label: str
    implementations: list[Implementation]
    passes: set[int]
    "Pass indices in which the property is referenced in the template body"
    line_number: int

    def __init__(self, name: str = "", type: str = "float") -> None:
        self.name = name
        self.type = type
        self.program = Program.Undefined
        self.label = ""
        self.implementations = []
        self.passes = set()
        self.line_number = 0

    def add_pass_usage(self, pass_index: int):
        self.passes.add(pass_index)

    def is_used_in_pass(self, pass_index: int):
        return pass_index in self.passes

    @property
    def needed_features(self):
        features: list[str] = []
        for imp in self.implementations:
            for feature in imp.needed_features:
                if feature not in features:
                    features.append(feature)
        return features

    def __repr__(self) -> str:
        return f"Property({self.name!r})"


class Header:
    "Grouping header shown before the property at a given index"

    title: str
    tooltip: str

    def __init__(self, title: str = "", tooltip: str = "") -> None:
        self.title = title
        self.tooltip = tooltip

    def __eq__(self, value) -> bool:
        if not isinstance(value, Header):
            return False
        return self.title == value.title and self.tooltip == value.tooltip

    def __repr__(self) -> str:
        return f"Header({self.title!r})"
