from glaze.diagnostics import Diagnostic
from glaze.features.ui_feature import FEATURES_BLOCK, UIFeature, parse_features_block
from glaze.property import Header, Property
from glaze.property.parsing import (
    PROPERTIES_BLOCK,
    parse_properties_block,
    record_static_usage,
)

from .parsed_line import ParsedLine

SIGNATURE = "#SG2"


class TemplateMetadata:
    id: str | None
    info: str
    warning: str
    config_type: str
    template_keywords: list[str]
    ui_features: list[UIFeature]
    properties: list[Property]
    property_headers: dict[int, Header]
    "Headers shown before the property at a given index"

    def __init__(self) -> None:
        self.id = None
        self.info = ""
        self.warning = ""
        self.config_type = ""
        self.template_keywords = []
        self.ui_features = []
        self.properties = []
        self.property_headers = {}


def has_signature(lines: list[ParsedLine]):
    "Templates must declare `#SG2` before their `#FEATURES` block"
    for parsed in lines:
        if parsed.line.startswith(SIGNATURE):
            return True
        if parsed.line.startswith(FEATURES_BLOCK):
            return False
    return False


def _value(line: str, key: str):
    return line[len(key) :].rstrip()


def extract_metadata(lines: list[ParsedLine]):
    """
    Reads template metadata, UI features and properties from expanded template lines.\n
    The scan ends at the properties block, or at the `Shader` line if there is none.
    """
    metadata = TemplateMetadata()
    diagnostics: list[Diagnostic] = []

    i = 0
    while i < len(lines):
        parsed = lines[i]
        line = parsed.line
        i += 1

        if line.startswith("#INFO="):
            metadata.info = _value(line, "#INFO=").replace("  ", "\n")
        elif line.startswith("#WARNING="):
            metadata.warning = _value(line, "#WARNING=").replace("  ", "\n")
        elif line.startswith("#CONFIG="):
            metadata.config_type = _value(line, "#CONFIG=").lower()
        elif line.startswith("#TEMPLATE_KEYWORDS="):
            metadata.template_keywords = [
                k for k in _value(line, "#TEMPLATE_KEYWORDS=").split(",") if k
            ]
        elif line.startswith("#ID="):
            metadata.id = _value(line, "#ID=")
        elif line.startswith(FEATURES_BLOCK):
            features, i, feature_diagnostics = parse_features_block(lines, i - 1)
            metadata.ui_features = features
            diagnostics.extend(feature_diagnostics)
        elif line.startswith(PROPERTIES_BLOCK):
            block, block_diagnostics = parse_properties_block(lines, i - 1)
            metadata.properties = block.properties
            metadata.property_headers = block.headers
            diagnostics.extend(block_diagnostics)
            diagnostics.extend(
                record_static_usage(block.properties, lines[block.end_index :])
            )
            break
        # Metadata always comes before the shader name.
        elif line.startswith("Shader"):
            break

    if metadata.id is None:
        diagnostics.append(Diagnostic.warning("Missing ID in template metadata"))

    return metadata, diagnostics
