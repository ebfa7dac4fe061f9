from glaze import util
from glaze.diagnostics import Diagnostic
from glaze.module import Module
from glaze.template.parsed_line import ParsedLine

from .type_aliases import ModuleLoader

MODULES_BLOCK = "#MODULES"
MODULE_TAG = "[[MODULE:"
END = "#END"

WILDCARD_CATEGORIES = (
    "INPUT",
    "FUNCTIONS",
    "VARIABLES",
    "VARIABLES_OUTSIDE_CBUFFER",
    "KEYWORDS",
)
STAGE_CATEGORIES = ("VERTEX", "FRAGMENT")


class ModuleReference:
    """
    Parsed content of a `[[MODULE:<CATEGORY>:<Module>:<key>(args)]]` marker.
    """

    category: str
    module_name: str
    key: str
    arguments: list[str]

    def __init__(self):
        self.category = ""
        self.module_name = ""
        self.key = ""
        self.arguments = []

    @classmethod
    def from_line(cls, line: str):
        start = line.index(MODULE_TAG) + len(MODULE_TAG)
        end = line.rfind("]]")
        if end < start:
            raise Exception("Missing closing ]] in module marker")
        return cls.from_tag(line[start:end])

    @classmethod
    def from_tag(cls, tag: str):
        ref = cls()
        ref.arguments = util.parse_arguments(tag)

        category, _, name = util.strip_arguments(tag).partition(":")
        ref.category = category.strip()
        name, _, key = name.partition(":")
        ref.module_name = name.strip()
        ref.key = key.strip()
        return ref

    @property
    def is_wildcard(self):
        return not self.module_name


class ExpandedTemplate:
    lines: list[ParsedLine]
    modules: dict[str, Module]
    "Declared modules, in declaration order"

    def __init__(self):
        self.lines = []
        self.modules = {}


def is_module_marker(line: str):
    return line.lstrip().startswith("[[MODULE")


def _add_with_indent(
    output: list[ParsedLine], lines: list[str], indent: str, line_number: int
):
    for line in lines:
        stripped = line.lstrip()
        if stripped.startswith("#") and "_IMPL" in stripped:
            # Generic implementation directives must stay directives.
            output.append(ParsedLine(stripped, line_number))
        else:
            output.append(ParsedLine(indent + line, line_number))


def _read_modules_block(
    lines: list[ParsedLine],
    start: int,
    load: ModuleLoader,
    modules: dict[str, Module],
    diagnostics: list[Diagnostic],
):
    """
    Loads every module listed in a `#MODULES` block, returns the index after its `#END`.
    """
    i = start + 1
    while i < len(lines):
        parsed = lines[i]
        line = parsed.line.strip()
        i += 1

        if line == END:
            return i
        if not line or line.startswith("//") or line.startswith("#"):
            continue

        if line in modules:
            diagnostics.append(
                Diagnostic.warning(
                    f'Module "{line}" is declared more than once',
                    parsed.line_number,
                    parsed.line,
                )
            )
            continue

        try:
            module = load(line)
        except Exception as e:
            diagnostics.append(
                Diagnostic.error(
                    f"Parsing error in {MODULES_BLOCK} block: {e}",
                    parsed.line_number,
                    parsed.line,
                )
            )
            continue

        if module is None:
            diagnostics.append(
                Diagnostic.error(
                    f'Can\'t find module "{line}"', parsed.line_number, parsed.line
                )
            )
        else:
            modules[line] = module

    diagnostics.append(
        Diagnostic.error(
            f"Missing {END} for {MODULES_BLOCK} block",
            lines[start].line_number,
            lines[start].line,
        )
    )
    return len(lines)


def _module_lines(module: Module, ref: ModuleReference) -> list[str]:
    if ref.category == "VERTEX":
        return module.vertex_lines(ref.arguments, ref.key)
    if ref.category == "FRAGMENT":
        return module.fragment_lines(ref.arguments, ref.key)
    return module.block(ref.category)


def expand_modules(lines: list[ParsedLine], load: ModuleLoader):
    """
    Consumes `#MODULES` declarations and replaces `[[MODULE:...]]` markers with module lines,
    using the marker's indentation. Spliced lines keep the marker's line number.
    """
    result = ExpandedTemplate()
    diagnostics: list[Diagnostic] = []
    modules = result.modules
    output = result.lines
    # Modules named by explicit references, per category. Wildcards skip them.
    requested: dict[str, set[str]] = {}

    i = 0
    while i < len(lines):
        parsed = lines[i]
        line = parsed.line

        if line.startswith(MODULES_BLOCK):
            i = _read_modules_block(lines, i, load, modules, diagnostics)
            continue
        i += 1

        if not is_module_marker(line):
            output.append(parsed)
            continue

        try:
            ref = ModuleReference.from_line(line)
        except Exception as e:
            diagnostics.append(
                Diagnostic.error(f"Invalid module marker: {e}", parsed.line_number, line)
            )
            continue

        indent = util.leading_indent(line)
        used = requested.setdefault(ref.category, set())

        if ref.is_wildcard:
            if ref.category not in WILDCARD_CATEGORIES:
                diagnostics.append(
                    Diagnostic.error(
                        f'Module category "{ref.category}" requires a module name',
                        parsed.line_number,
                        line,
                    )
                )
                continue
            for module in modules.values():
                if module.name in used and ref.category != "KEYWORDS":
                    continue
                if ref.category == "FUNCTIONS" and module.explicit_functions_declaration:
                    continue
                _add_with_indent(
                    output, module.block(ref.category), indent, parsed.line_number
                )
            continue

        module = modules.get(ref.module_name)
        if module is None:
            diagnostics.append(
                Diagnostic.error(
                    f'Can\'t find module "{ref.module_name}" for "{line.strip()}"',
                    parsed.line_number,
                    line,
                )
            )
            continue

        try:
            module_lines = _module_lines(module, ref)
        except Exception as e:
            diagnostics.append(Diagnostic.error(str(e), parsed.line_number, line))
            continue

        _add_with_indent(output, module_lines, indent, parsed.line_number)
        used.add(module.name)

    functions_used = requested.get("FUNCTIONS", set())
    for module in modules.values():
        if module.explicit_functions_declaration and module.name not in functions_used:
            diagnostics.append(
                Diagnostic.warning(
                    f'Module has explicit functions declaration, but isn\'t used: "{module.name}"'
                )
            )

    return result, diagnostics
