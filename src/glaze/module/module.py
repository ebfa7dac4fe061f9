import re

_BLOCK_HEADER = re.compile(r"^#(\w+)(?::(\w+))?\s*(?:\((.*)\))?\s*$")

EXPLICIT_FUNCTIONS_DECLARATION = "EXPLICIT_FUNCTIONS_DECLARATION"


class StageBlock:
    """
    Vertex or fragment lines of a module, with the formal parameters they use.
    """

    parameters: tuple[str, ...]
    lines: tuple[str, ...]

    def __init__(self, parameters: list[str] = None, lines: list[str] = None) -> None:
        self.parameters = tuple(parameters or ())
        self.lines = tuple(lines or ())

    def resolve(self, arguments: list[str]) -> list[str]:
        """
        Returns the block lines with formal parameter names replaced by the given arguments.
        """
        if len(arguments) > len(self.parameters):
            raise Exception(
                f"Too many arguments: expected {len(self.parameters)}, got {len(arguments)}"
            )
        if not arguments:
            return list(self.lines)

        replacements = dict(zip(self.parameters, arguments))
        pattern = re.compile(r"\b(" + "|".join(map(re.escape, replacements)) + r")\b")
        return [pattern.sub(lambda m: replacements[m.group(1)], l) for l in self.lines]


class Module:
    """
    Named bundle of reusable code blocks, inlined into templates with `[[MODULE:...]]` markers.
    """

    STAGE_BLOCKS = ("VERTEX", "FRAGMENT")

    name: str
    explicit_functions_declaration: bool
    _blocks: dict[str, tuple[str, ...]]
    _stages: dict[str, dict[str, StageBlock]]

    def __init__(self, name: str = "") -> None:
        self.name = name
        self.explicit_functions_declaration = False
        self._blocks = {}
        self._stages = {stage: {} for stage in self.STAGE_BLOCKS}

    @classmethod
    def from_text(cls, name: str, text: str):
        """
        Parses module text. Each block starts with a `#NAME` line and ends with `#END`,
        vertex and fragment blocks may declare a key and parameters: `#VERTEX:key(float3 normal)`.
        """
        module = cls(name)
        block_name: str | None = None
        block_key = ""
        block_parameters: list[str] = []
        block_lines: list[str] = []

        for i, line in enumerate(text.splitlines()):
            stripped = line.strip()

            if block_name is not None:
                if stripped == "#END":
                    module._add_block(block_name, block_key, block_parameters, block_lines)
                    block_name = None
                else:
                    block_lines.append(line)
                continue

            if not stripped or stripped.startswith("//"):
                continue

            match = _BLOCK_HEADER.match(stripped)
            if match is None:
                raise Exception(
                    f'Module "{name}": unexpected line outside of block at line {i + 1}: "{stripped}"'
                )

            if match.group(1) == EXPLICIT_FUNCTIONS_DECLARATION:
                module.explicit_functions_declaration = True
                continue

            block_name = match.group(1)
            block_key = match.group(2) or ""
            block_parameters = [
                p.split()[-1] for p in (match.group(3) or "").split(",") if p.strip()
            ]
            block_lines = []

        if block_name is not None:
            raise Exception(f'Module "{name}": missing #END for block #{block_name}')

        return module

    def _add_block(self, name: str, key: str, parameters: list[str], lines: list[str]):
        if name in self.STAGE_BLOCKS:
            self._stages[name][key] = StageBlock(parameters, lines)
        else:
            self._blocks[name] = tuple(lines)

    def block(self, name: str) -> list[str]:
        return list(self._blocks.get(name, ()))

    def has_block(self, name: str):
        return name in self._blocks

    def vertex_lines(self, arguments: list[str], key: str = ""):
        return self._stage_lines("VERTEX", arguments, key)

    def fragment_lines(self, arguments: list[str], key: str = ""):
        return self._stage_lines("FRAGMENT", arguments, key)

    def _stage_lines(self, stage: str, arguments: list[str], key: str):
        block = self._stages[stage].get(key)
        if block is None:
            if key:
                raise Exception(f'Module "{self.name}" has no #{stage} block with key "{key}"')
            return []
        return block.resolve(arguments)

    def __repr__(self) -> str:
        return f"Module({self.name!r})"
