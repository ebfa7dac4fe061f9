from enum import Enum


class Program(Enum):
    Undefined = 0
    Vertex = 1
    Fragment = 2
    Lighting = 3

    @classmethod
    def from_name(cls, name: str):
        name = name.strip().lower()
        for program in cls:
            if program.name.lower() == name:
                return program
        raise Exception(f'Unknown program "{name}"')

    @classmethod
    def from_marker(cls, line: str):
        "Returns the program opened by a `#VERTEX`/`#FRAGMENT`/`#LIGHTING` marker, if any"
        if line.startswith("#VERTEX"):
            return cls.Vertex
        if line.startswith("#FRAGMENT"):
            return cls.Fragment
        if line.startswith("#LIGHTING"):
            return cls.Lighting
        return None
