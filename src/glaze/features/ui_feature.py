from glaze import util
from glaze.diagnostics import Diagnostic
from glaze.template.parsed_line import ParsedLine

FEATURES_BLOCK = "#FEATURES"
END = "#END"


class UIFeature:
    """
    Base class for the descriptors declared in a template's `#FEATURES` block.\n
    Descriptors are declared one per line: a type, then `key=value` fields or bare flags,
    separated by tabs.
    """

    TYPE = ""

    label: str
    help: str
    needs: list[str]
    "Features that must be enabled for this descriptor to be shown"
    flags: set[str]
    line_number: int

    def __init__(self, fields: dict[str, str] = None, flags: set[str] = None):
        fields = fields or {}
        self.label = fields.get("lbl", "")
        self.help = fields.get("help", "")
        self.needs = [n for n in fields.get("needs", "").split(",") if n]
        self.flags = flags or set()
        self.line_number = 0

    def is_visible(self, context: "FeatureRenderContext"):
        return all(context.is_enabled(n) for n in self.needs)

    def controlled_features(self) -> list[str]:
        return []

    def force_value(self, config):
        pass

    def render(self, context: "FeatureRenderContext") -> list[str]:
        return []

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.label!r})"


class UIFeatureToggle(UIFeature):
    TYPE = "sngl"

    keyword: str
    toggles: list[str]
    "Additional features enabled along with the keyword"

    def __init__(self, fields: dict[str, str] = None, flags: set[str] = None):
        super().__init__(fields, flags)
        fields = fields or {}
        self.keyword = fields.get("kw", "")
        self.toggles = [t for t in fields.get("toggles", "").split(",") if t]
        if not self.keyword:
            raise Exception("Toggle feature requires a keyword (kw=...)")

    def controlled_features(self):
        return [self.keyword] + self.toggles

    def render(self, context):
        mark = "x" if context.is_enabled(self.keyword) else " "
        indent = "  " if "indent" in self.flags else ""
        return [f"{indent}[{mark}] {self.label or self.keyword}"]


class UIFeatureMultiple(UIFeature):
    TYPE = "mult"

    options: list[tuple[str, str]]
    "(label, feature) pairs, an empty feature means none"

    def __init__(self, fields: dict[str, str] = None, flags: set[str] = None):
        super().__init__(fields, flags)
        self.options = []
        for option in (fields or {}).get("kw", "").split(","):
            label, _, feature = option.partition("|")
            if label:
                self.options.append((label.strip(), feature.strip()))
        if not self.options:
            raise Exception("Multiple choice feature requires options (kw=Label|FEATURE,...)")

    def controlled_features(self):
        return [feature for _, feature in self.options if feature]

    def selected(self, context: "FeatureRenderContext"):
        for label, feature in self.options:
            if feature and context.is_enabled(feature):
                return label
        return next((label for label, feature in self.options if not feature), "")

    def render(self, context):
        return [f"{self.label}: {self.selected(context)}"]


class UIFeatureKeyword(UIFeature):
    TYPE = "keyword"

    keyword: str
    values: list[tuple[str, str]]
    default: str
    force_keyword: bool

    def __init__(self, fields: dict[str, str] = None, flags: set[str] = None):
        super().__init__(fields, flags)
        fields = fields or {}
        self.keyword = fields.get("kw", "")
        self.values = []
        for option in fields.get("values", "").split(","):
            label, _, value = option.partition("|")
            if label:
                self.values.append((label.strip(), value.strip() or label.strip()))
        self.default = fields.get("default", "")
        self.force_keyword = fields.get("forceKeyword", "").lower() == "true"
        if not self.keyword:
            raise Exception("Keyword feature requires a keyword name (kw=...)")

    def force_value(self, config):
        if self.force_keyword and not config.get_keyword(self.keyword):
            config.set_keyword(self.keyword, self.default)

    def render(self, context):
        value = context.config.get_keyword(self.keyword) or self.default
        return [f"{self.label or self.keyword}: {value}"]


class UIFeatureDropdownStart(UIFeature):
    TYPE = "dd_start"

    def render(self, context):
        marker = " *" if context.dropdown_has_enabled(self) else ""
        return [f"> {self.label}{marker}"]


class UIFeatureDropdownEnd(UIFeature):
    TYPE = "dd_end"


class UIFeatureHeader(UIFeature):
    TYPE = "head"

    def render(self, context):
        return ["", f"== {self.label} =="]


class UIFeatureSubHeader(UIFeature):
    TYPE = "subh"

    def render(self, context):
        return [f"-- {self.label} --"]


class UIFeatureSeparator(UIFeature):
    TYPE = "sep"

    def render(self, context):
        return ["-" * 20]


class UIFeatureSpace(UIFeature):
    TYPE = "space"

    def render(self, context):
        return [""]


class UIFeatureWarning(UIFeature):
    TYPE = "warning"

    message: str

    def __init__(self, fields: dict[str, str] = None, flags: set[str] = None):
        super().__init__(fields, flags)
        self.message = (fields or {}).get("msg", self.label)

    def render(self, context):
        return [f"(!) {self.message}"]


UI_FEATURE_TYPES: dict[str, type[UIFeature]] = {
    t.TYPE: t
    for t in (
        UIFeatureToggle,
        UIFeatureMultiple,
        UIFeatureKeyword,
        UIFeatureDropdownStart,
        UIFeatureDropdownEnd,
        UIFeatureHeader,
        UIFeatureSubHeader,
        UIFeatureSeparator,
        UIFeatureSpace,
        UIFeatureWarning,
    )
}


def parse_ui_feature(line: str) -> UIFeature:
    fields = util.split_fields(line)
    feature_type = UI_FEATURE_TYPES.get(fields[0])
    if feature_type is None:
        raise Exception(f'Unknown feature type "{fields[0]}"')

    values: dict[str, str] = {}
    flags: set[str] = set()
    for field in fields[1:]:
        key, sep, value = field.partition("=")
        if sep:
            values[key.strip()] = util.strip_quotes(value)
        else:
            flags.add(field.strip())

    return feature_type(values, flags)


def parse_features_block(lines: list[ParsedLine], start: int):
    """
    Parses the `#FEATURES` block starting at `lines[start]`.
    Returns the features and the index of the line after the block's `#END`.
    """
    features: list[UIFeature] = []
    diagnostics: list[Diagnostic] = []

    i = start + 1
    while i < len(lines):
        parsed = lines[i]
        line = parsed.line
        i += 1

        stripped = line.strip()
        if stripped == END:
            return features, i, diagnostics
        if not stripped or stripped.startswith("//"):
            continue

        try:
            feature = parse_ui_feature(line)
        except Exception as e:
            diagnostics.append(
                Diagnostic.error(
                    f"Parsing error in {FEATURES_BLOCK} block: {e}",
                    parsed.line_number,
                    line,
                )
            )
            continue

        feature.line_number = parsed.line_number
        features.append(feature)

    diagnostics.append(
        Diagnostic.error(
            f"Missing {END} for {FEATURES_BLOCK} block",
            lines[start].line_number,
            lines[start].line,
        )
    )
    return features, len(lines), diagnostics


class FeatureRenderContext:
    """
    Gives feature descriptors access to the template and config they are rendered for.
    """

    template: "Template"
    config: "Config"

    def __init__(self, template: "Template", config: "Config") -> None:
        self.template = template
        self.config = config

    @property
    def features(self) -> list[UIFeature]:
        return self.template.ui_features

    def is_enabled(self, feature: str):
        return feature in self.config.features

    def features_inside(self, dropdown: UIFeatureDropdownStart) -> list[UIFeature]:
        inside: list[UIFeature] = []
        depth = 0
        start = self.features.index(dropdown)
        for feature in self.features[start + 1 :]:
            if isinstance(feature, UIFeatureDropdownStart):
                depth += 1
            elif isinstance(feature, UIFeatureDropdownEnd):
                if depth == 0:
                    break
                depth -= 1
            inside.append(feature)
        return inside

    def dropdown_has_enabled(self, dropdown: UIFeatureDropdownStart):
        "Whether any feature controlled from inside the dropdown is enabled"
        return any(
            self.is_enabled(f)
            for feature in self.features_inside(dropdown)
            for f in feature.controlled_features()
        )


def render_features(context: FeatureRenderContext) -> list[str]:
    output: list[str] = []
    depth = 0
    for feature in context.features:
        if isinstance(feature, UIFeatureDropdownEnd):
            depth = max(depth - 1, 0)
            continue
        if not feature.is_visible(context):
            continue
        indent = "    " * depth
        output.extend(indent + line if line else line for line in feature.render(context))
        if isinstance(feature, UIFeatureDropdownStart):
            depth += 1
    return output
