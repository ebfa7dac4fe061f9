from glaze import util


class Implementation:
    """
    Base class of property implementations: describes how a property value is produced.
    """

    KINDS: tuple[str, ...] = ()

    kind: str
    options: dict[str, str]
    needed_features: list[str]

    def __init__(self, kind: str = "", options: dict[str, str] = None) -> None:
        self.kind = kind
        self.options = options or {}
        self.needed_features = self.options.get("features", "").split()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.kind!r})"


class DirectValue(Implementation):
    "A constant or a material field"

    KINDS = (
        "constant",
        "material_float",
        "material_range",
        "material_vector",
        "material_color",
    )

    variable: str
    default: str

    def __init__(self, kind: str = "constant", options: dict[str, str] = None) -> None:
        super().__init__(kind, options)
        self.variable = self.options.get("variable", "")
        self.default = self.options.get("default", "")


class TextureSample(Implementation):
    KINDS = ("texture",)
    UV_SOURCES = ("texcoord", "world_position", "screen_space", "other_shader_property")

    variable: str
    channels: str
    uv_source: str
    uv_channels: str
    linked_property_name: str
    linked_property: "Property | None"

    def __init__(self, kind: str = "texture", options: dict[str, str] = None) -> None:
        super().__init__(kind, options)
        self.variable = self.options.get("variable", "")
        self.channels = self.options.get("channels", "")
        self.uv_source = self.options.get("uv_source", "texcoord")
        self.uv_channels = self.options.get("uv_channels", "")
        self.linked_property_name = self.options.get("uv_shaderproperty", "")
        self.linked_property = None

        if self.uv_source not in self.UV_SOURCES:
            raise Exception(f'Invalid uv_source "{self.uv_source}"')

    @property
    def uses_other_property(self):
        return self.uv_source == "other_shader_property"


class PropertyReference(Implementation):
    KINDS = ("shader_property_ref",)

    linked_property_name: str
    channels: str
    linked_property: "Property | None"

    def __init__(
        self, kind: str = "shader_property_ref", options: dict[str, str] = None
    ) -> None:
        super().__init__(kind, options)
        self.linked_property_name = self.options.get("reference", "")
        self.channels = self.options.get("channels", "")
        self.linked_property = None

        if not self.linked_property_name:
            raise Exception("Property reference implementation requires a reference")


class GenericFromTemplate(Implementation):
    "Uses a generic implementation enabled by the template with `#ENABLE_IMPL`"

    KINDS = ("generic",)

    source: str

    def __init__(self, kind: str = "generic", options: dict[str, str] = None) -> None:
        super().__init__(kind, options)
        self.source = self.options.get("source", "")


IMPLEMENTATION_TYPES = (DirectValue, TextureSample, PropertyReference, GenericFromTemplate)


def parse_implementation(text: str) -> Implementation:
    """
    Parses the content of `imp(...)`, e.g. `texture, variable = "_MainTex", channels = rgb`
    """
    items = util.split_top_level(text)
    if not items or not items[0]:
        raise Exception("Empty implementation declaration")

    kind = items[0].strip()
    options = dict(util.parse_key_value(item) for item in items[1:])

    for imp_type in IMPLEMENTATION_TYPES:
        if kind in imp_type.KINDS:
            return imp_type(kind, options)

    raise Exception(f'Unknown implementation kind "{kind}"')


def linked_property_name(imp: Implementation) -> str:
    """
    Name of the property an implementation depends on, or an empty string.
    """
    if isinstance(imp, PropertyReference):
        return imp.linked_property_name
    elif isinstance(imp, TextureSample):
        return imp.linked_property_name if imp.uses_other_property else ""
    elif isinstance(imp, (DirectValue, GenericFromTemplate)):
        return ""
    raise Exception(f"Unhandled implementation type {type(imp).__name__}")


def linked_property(imp: Implementation) -> "Property | None":
    if isinstance(imp, PropertyReference):
        return imp.linked_property
    elif isinstance(imp, TextureSample):
        return imp.linked_property if imp.uses_other_property else None
    elif isinstance(imp, (DirectValue, GenericFromTemplate)):
        return None
    raise Exception(f"Unhandled implementation type {type(imp).__name__}")


def link(imp: Implementation, target: "Property"):
    """
    Links an implementation to the property it depends on. The channel selector
    is normalized to upper case, whatever the case used in the template.
    """
    if isinstance(imp, PropertyReference):
        imp.linked_property = target
        if imp.channels:
            imp.channels = imp.channels.upper()
    elif isinstance(imp, TextureSample):
        imp.linked_property = target
        if imp.uv_channels:
            imp.uv_channels = imp.uv_channels.upper()
    else:
        raise Exception(f"{type(imp).__name__} can't be linked to another property")
