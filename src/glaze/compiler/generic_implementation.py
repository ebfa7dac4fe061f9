from glaze import util
from glaze.property import Property
from glaze.template.program import Program


class GenericImplementation:
    """
    A code generation strategy declared by the template itself, e.g.\n
    `#ENABLE_IMPL: float3 __worldNormal, lbl = "World Normal", help = "..."`
    """

    type: str
    name: str
    label: str
    help: str

    def __init__(self, type: str = "", name: str = "") -> None:
        self.type = type
        self.name = name
        self.label = ""
        self.help = ""

    @classmethod
    def from_line(cls, line: str):
        _, sep, declaration = line.partition(":")
        if not sep:
            raise Exception(f'Invalid generic implementation directive "{line.strip()}"')

        items = util.split_top_level(declaration)
        fields = items[0].split() if items else []
        if len(fields) != 2:
            raise Exception(f'Expected "<type> <name>" in "{line.strip()}"')

        imp = cls(fields[0], fields[1])
        for item in items[1:]:
            key, value = util.parse_key_value(item)
            if key == "lbl":
                imp.label = value
            elif key == "help":
                imp.help = value
        return imp

    def __repr__(self) -> str:
        return f"GenericImplementation({self.type!r}, {self.name!r})"


class EnabledImplementation:
    implementation: GenericImplementation
    pass_index: int
    program: Program

    def __init__(self, implementation, pass_index: int, program: Program) -> None:
        self.implementation = implementation
        self.pass_index = pass_index
        self.program = program


class GenericImplementationRegistry:
    """
    Records which generic implementations are enabled where in the template,
    and which properties could use them.
    """

    enabled: list[EnabledImplementation]
    compatible: dict[str, list[EnabledImplementation]]
    "Implementations available to each used property, keyed by property name"
    completed: bool

    def __init__(self) -> None:
        self.enabled = []
        self.compatible = {}
        self.completed = False

    def init_list(self):
        self.enabled = []
        self.compatible = {}
        self.completed = False

    def enable_from_line(self, line: str, pass_index: int, program: Program):
        imp = GenericImplementation.from_line(line)
        self._remove(imp.name, pass_index)
        self.enabled.append(EnabledImplementation(imp, pass_index, program))

    def disable_from_line(self, line: str, pass_index: int, program: Program):
        _, _, declaration = line.partition(":")
        fields = util.split_top_level(declaration)
        if not fields or not fields[0]:
            raise Exception(f'Invalid generic implementation directive "{line.strip()}"')
        self._remove(fields[0].split()[-1], pass_index)

    def disable_all(self):
        self.enabled = []

    def _remove(self, name: str, pass_index: int):
        self.enabled = [
            e
            for e in self.enabled
            if not (e.implementation.name == name and e.pass_index == pass_index)
        ]

    def add_compatible_property(
        self, prop: Property, pass_index: int, program: Program = Program.Undefined
    ):
        entries = self.compatible.setdefault(prop.name, [])
        for entry in self.enabled:
            if entry.pass_index == pass_index and entry not in entries:
                entries.append(entry)

    def list_completed(self):
        self.completed = True

    def compatible_with(self, prop: Property) -> list[GenericImplementation]:
        implementations: list[GenericImplementation] = []
        for entry in self.compatible.get(prop.name, []):
            if entry.implementation not in implementations:
                implementations.append(entry.implementation)
        return implementations
