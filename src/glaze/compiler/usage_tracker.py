from glaze import util
from glaze.diagnostics import Diagnostic
from glaze.property import Property
from glaze.property.implementation import linked_property
from glaze.property.parsing import used_property_name
from glaze.template.parsed_line import ParsedLine
from glaze.template.program import Program

from .generic_implementation import GenericImplementationRegistry
from .injection import CodeInjectionManager

INJECTION_TAG = "INJECTION_POINT:"


class PassUsage:
    """
    Properties used in each pass, in order of first use.
    """

    passes: list[list[Property]]

    def __init__(self):
        self.passes = []

    def ensure_pass(self, pass_index: int):
        while len(self.passes) <= pass_index:
            self.passes.append([])
        return self.passes[pass_index]

    def add(self, pass_index: int, prop: Property):
        used = self.ensure_pass(pass_index)
        if prop not in used:
            used.append(prop)

    def used_in(self, pass_index: int) -> list[Property]:
        if pass_index < 0 or pass_index >= len(self.passes):
            return []
        return self.passes[pass_index]

    def names(self, pass_index: int) -> list[str]:
        return [p.name for p in self.used_in(pass_index)]

    def all_used(self) -> list[Property]:
        used: list[Property] = []
        for properties in self.passes:
            for prop in properties:
                if prop not in used:
                    used.append(prop)
        return used

    def __len__(self):
        return len(self.passes)


def add_linked_properties(prop: Property, used: list[Property]):
    """
    Adds every property that `prop` references, directly or transitively.
    """
    for imp in prop.implementations:
        target = linked_property(imp)
        if target is not None and target not in used:
            used.append(target)
            add_linked_properties(target, used)


def track_usage(
    lines: list[ParsedLine],
    properties: list[Property],
    generic_registry: GenericImplementationRegistry = None,
    injection_manager: CodeInjectionManager = None,
    usage: PassUsage = None,
):
    """
    Finds the properties used in each pass of filtered lines.\n
    Also reports generic implementation directives to `generic_registry`, and merges properties
    contributed at injection points. Passing an existing `usage` adds to it and never removes anything.
    """
    if usage is None:
        usage = PassUsage()
    if generic_registry is None:
        generic_registry = GenericImplementationRegistry()

    diagnostics: list[Diagnostic] = []
    by_name = {p.name: p for p in properties}

    generic_registry.init_list()
    pass_index = -1
    program = Program.Undefined

    for parsed in lines:
        line = parsed.line.strip()

        if line and line[0] == "#":
            if line.startswith("#PASS"):
                pass_index += 1
                program = Program.Undefined
                usage.ensure_pass(pass_index)
                continue

            marker = Program.from_marker(line)
            if marker is not None:
                program = marker
                continue

            if pass_index < 0:
                continue

            try:
                if line.startswith("#ENABLE_IMPL"):
                    generic_registry.enable_from_line(line, pass_index, program)
                    continue
                if line.startswith("#DISABLE_IMPL"):
                    if "DISABLE_IMPL_ALL" in line:
                        generic_registry.disable_all()
                    else:
                        generic_registry.disable_from_line(line, pass_index, program)
                    continue
            except Exception as e:
                diagnostics.append(Diagnostic.error(str(e), parsed.line_number, parsed.line))
                continue

        for tag in util.iter_tags(line):
            name = used_property_name(tag)
            if name is not None:
                prop = by_name.get(name)
                if prop is None:
                    diagnostics.append(
                        Diagnostic.error(
                            f'No match for used property in code: "{tag}"',
                            parsed.line_number,
                            parsed.line,
                        )
                    )
                elif pass_index >= 0:
                    usage.add(pass_index, prop)
                    generic_registry.add_compatible_property(prop, pass_index, program)

            elif tag.startswith(INJECTION_TAG) and injection_manager is not None:
                if pass_index < 0:
                    continue
                point = tag[len(INJECTION_TAG) :]
                for prop in injection_manager.properties_for_injection_point(point):
                    usage.add(pass_index, prop)

    generic_registry.list_completed()

    # Referenced properties are used wherever their referrer is used.
    for used in usage.passes:
        for prop in list(used):
            add_linked_properties(prop, used)

    return usage, diagnostics


def pass_is_surface_shader(lines: list[ParsedLine], pass_index: int):
    "Whether a pass uses a lighting function, i.e. declares `#pragma surface`"
    current = -1
    for parsed in lines:
        line = parsed.line.strip()
        if not line or line[0] != "#":
            continue
        if line.startswith("#PASS"):
            current += 1
            if current > pass_index:
                return False
        if current == pass_index and "#pragma surface" in line:
            return True
    return False


def input_block(lines: list[ParsedLine], pass_index: int):
    """
    Returns the variables declared in the `#INPUT_VARIABLES` block of a pass, or None if the pass
    has no such block. Expects lines that were already filtered, condition lines are reported and skipped.
    """
    diagnostics: list[Diagnostic] = []
    current = -1
    i = 0
    while i < len(lines):
        line = lines[i].line
        i += 1
        if line.startswith("#PASS"):
            current += 1
        if current != pass_index or not line.startswith("#INPUT_VARIABLES"):
            continue

        variables: list[str] = []
        while i < len(lines):
            parsed = lines[i]
            line = parsed.line
            i += 1
            if line.startswith("#END"):
                break
            if line.startswith("#") or not line.strip():
                continue
            if util.is_condition_line(line):
                diagnostics.append(
                    Diagnostic.error(
                        "Unfiltered condition in input block, lines should be filtered first",
                        parsed.line_number,
                        line,
                    )
                )
                continue
            variables.append(line.strip())
        return variables, diagnostics

    return None, diagnostics
