from dataclasses import dataclass


@dataclass(frozen=True)
class ParsedLine:
    """
    A line of template text with its 1-based line number in the original template.
    """

    line: str
    line_number: int

    def __str__(self) -> str:
        return self.line


def number_lines(lines: list[str]) -> list[ParsedLine]:
    return [ParsedLine(line, i + 1) for i, line in enumerate(lines)]


def split_text(text: str) -> list[ParsedLine]:
    return number_lines(text.splitlines())
