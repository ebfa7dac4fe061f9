import re

from glaze import util
from glaze.diagnostics import Diagnostic
from glaze.template.parsed_line import ParsedLine
from glaze.template.program import Program

from .property import Property, PropertyType, Header
from .implementation import (
    parse_implementation,
    linked_property_name,
    link,
)

PROPERTIES_BLOCK = "#PROPERTIES_NEW"
END = "#END"
VALUE_TAGS = ("VALUE:", "SAMPLE_VALUE_SHADER_PROPERTY:")

_DECLARATION = re.compile(r"^\s*(\S+)\s+(\S+)\s+(.+)$")


class PropertyBlock:
    """
    Result of parsing a `#PROPERTIES_NEW` block.
    """

    properties: list[Property]
    headers: dict[int, Header]
    "Headers keyed by the index of the property they precede"
    end_index: int
    "Index of the first line after the block's `#END`"

    def __init__(self):
        self.properties = []
        self.headers = {}
        self.end_index = 0

    def find(self, name: str) -> Property | None:
        return next((p for p in self.properties if p.name == name), None)


def is_ignored_line(line: str):
    stripped = line.strip()
    return not stripped or stripped.startswith("//") or line.startswith("#")


def is_header_line(line: str):
    return line.strip().startswith("header")


def parse_header_line(line: str) -> Header:
    fields = util.split_fields(line)
    title = fields[1] if len(fields) > 1 else ""
    tooltip = util.strip_quotes(fields[2]) if len(fields) > 2 else ""
    return Header(title, tooltip)


def parse_property_line(line: str) -> Property:
    """
    Parses a property declaration, e.g.\n
    `float  Smoothness  fragment, label = "Smoothness", imp(shader_property_ref, reference = Albedo, channels = a)`
    """
    match = _DECLARATION.match(line)
    if match is None:
        raise Exception(f'Invalid property declaration "{line.strip()}"')

    prop = Property(match.group(2), PropertyType.validate(match.group(1)))

    items = util.split_top_level(match.group(3))
    prop.program = Program.from_name(items[0])
    for item in items[1:]:
        if item.startswith("imp(") and item.endswith(")"):
            prop.implementations.append(parse_implementation(item[4:-1]))
        else:
            key, value = util.parse_key_value(item)
            if key == "label":
                prop.label = value
            else:
                raise Exception(f'Unknown property option "{key}"')

    if not prop.implementations:
        raise Exception(f'Property "{prop.name}" has no implementation')

    return prop


def parse_properties_block(lines: list[ParsedLine], start: int):
    """
    Parses all properties declared in the block starting at `lines[start]`,
    regardless of conditions, then links property references.
    """
    block = PropertyBlock()
    diagnostics: list[Diagnostic] = []

    i = start + 1
    while i < len(lines):
        parsed = lines[i]
        line = parsed.line
        i += 1

        if line.strip() == END:
            block.end_index = i
            break

        if is_ignored_line(line):
            continue

        if is_header_line(line):
            # Only the last header at a given position is kept.
            block.headers[len(block.properties)] = parse_header_line(line)
            continue

        try:
            prop = parse_property_line(line)
        except Exception as e:
            diagnostics.append(
                Diagnostic.error(
                    f"Parsing error in {PROPERTIES_BLOCK} block: {e}",
                    parsed.line_number,
                    line,
                )
            )
            continue

        if block.find(prop.name) is not None:
            diagnostics.append(
                Diagnostic.error(
                    f'Duplicate property "{prop.name}"', parsed.line_number, line
                )
            )
            continue

        prop.line_number = parsed.line_number
        block.properties.append(prop)
    else:
        diagnostics.append(
            Diagnostic.error(
                f"Missing {END} for {PROPERTIES_BLOCK} block",
                lines[start].line_number,
                lines[start].line,
            )
        )
        block.end_index = len(lines)

    diagnostics.extend(link_properties(block.properties))
    return block, diagnostics


def link_properties(properties: list[Property]):
    """
    Resolves every property reference against the given properties.
    """
    diagnostics: list[Diagnostic] = []
    by_name = {p.name: p for p in properties}

    for prop in properties:
        for imp in prop.implementations:
            name = linked_property_name(imp)
            if not name:
                continue
            target = by_name.get(name)
            if target is None:
                diagnostics.append(
                    Diagnostic.error(
                        f'Can\'t find referenced property in template: "{prop.name}" tried to reference "{name}"',
                        prop.line_number,
                    )
                )
                continue
            link(imp, target)

    return diagnostics


def used_property_name(tag: str) -> str | None:
    """
    `VALUE:Albedo` -> `Albedo`, `SAMPLE_VALUE_SHADER_PROPERTY:Ramp(uv)` -> `Ramp`
    """
    if not tag.startswith(VALUE_TAGS):
        return None
    return util.strip_arguments(tag[tag.index(":") + 1 :])


def record_static_usage(properties: list[Property], lines: list[ParsedLine]):
    """
    Records in which passes each property is referenced, ignoring conditions.
    """
    diagnostics: list[Diagnostic] = []
    by_name = {p.name: p for p in properties}

    current_pass = -1
    for parsed in lines:
        line = parsed.line.strip()
        if line.startswith("#PASS"):
            current_pass += 1
            continue

        for tag in util.iter_tags(line):
            name = used_property_name(tag)
            if name is None:
                continue
            prop = by_name.get(name)
            if prop is None:
                diagnostics.append(
                    Diagnostic.error(
                        f'No match for used property in code: "{tag}"',
                        parsed.line_number,
                        parsed.line,
                    )
                )
            elif current_pass >= 0:
                prop.add_pass_usage(current_pass)

    return diagnostics


def conditional_properties(lines: list[ParsedLine], properties: list[Property]):
    """
    Returns properties whose declarations survived condition filtering,
    in declaration order, along with the headers shown before them.
    """
    visible: list[Property] = []
    headers: dict[int, Header] = {}
    diagnostics: list[Diagnostic] = []
    by_name = {p.name: p for p in properties}

    i = 0
    while i < len(lines) and not lines[i].line.startswith(PROPERTIES_BLOCK):
        i += 1

    for parsed in lines[i + 1 :]:
        line = parsed.line
        if line.startswith(END):
            break
        if is_ignored_line(line):
            continue
        if is_header_line(line):
            headers[len(visible)] = parse_header_line(line)
            continue

        match = _DECLARATION.match(line)
        prop = by_name.get(match.group(2)) if match else None
        if prop is None:
            diagnostics.append(
                Diagnostic.error(
                    "Can't find property in template, yet it was found in filtered lines",
                    parsed.line_number,
                    line,
                )
            )
        else:
            visible.append(prop)

    return visible, headers, diagnostics
