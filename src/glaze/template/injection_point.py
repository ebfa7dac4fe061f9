from .parsed_line import ParsedLine
from .program import Program


class InjectionPoint:
    name: str
    program: Program

    def __init__(self, name: str = "", program: Program = Program.Undefined) -> None:
        self.name = name
        self.program = program

    def __eq__(self, value) -> bool:
        if not isinstance(value, InjectionPoint):
            return False
        return self.name == value.name and self.program == value.program

    def __repr__(self) -> str:
        return f"InjectionPoint({self.name!r}, {self.program.name})"


INJECTION_TAG = "INJECTION_POINT:"


def find_injection_points(lines: list[ParsedLine]):
    """
    Lists injection point markers in filtered lines, tagged with the program they appear in.
    Lighting code is part of the fragment program.
    """
    injection_points: list[InjectionPoint] = []
    program = Program.Undefined
    for parsed in lines:
        line = parsed.line.strip()
        if line.startswith("#"):
            if line.startswith("#PASS"):
                program = Program.Undefined
            else:
                marker = Program.from_marker(line)
                if marker is Program.Lighting:
                    marker = Program.Fragment
                if marker is not None:
                    program = marker
        elif INJECTION_TAG in line:
            start = line.index(INJECTION_TAG) + len(INJECTION_TAG)
            end = line.rfind("]]")
            if end < start:
                end = len(line)
            injection_points.append(InjectionPoint(line[start:end], program))

    return injection_points
