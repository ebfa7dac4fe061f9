from enum import Enum


class Severity(Enum):
    WARNING = 0
    ERROR = 1


class Diagnostic:
    """
    A single problem found while processing a template.\n
    Line numbers always refer to the original template text.
    """

    severity: Severity
    message: str
    line_number: int | None
    line: str | None
    document: str

    def __init__(
        self,
        severity: Severity,
        message: str,
        line_number: int | None = None,
        line: str | None = None,
        document: str = "",
    ) -> None:
        self.severity = severity
        self.message = message
        self.line_number = line_number
        self.line = line
        self.document = document

    @classmethod
    def error(cls, message: str, line_number: int = None, line: str = None):
        return cls(Severity.ERROR, message, line_number, line)

    @classmethod
    def warning(cls, message: str, line_number: int = None, line: str = None):
        return cls(Severity.WARNING, message, line_number, line)

    @property
    def is_error(self):
        return self.severity is Severity.ERROR

    def format(self):
        prefix = "Error!" if self.is_error else "Warning!"
        if self.document:
            prefix += f" [{self.document}]"
        text = f"{prefix} {self.message}"
        if self.line_number is not None:
            text += f"\n@ line {self.line_number}"
            if self.line is not None:
                text += f": {self.line.strip()}"
        return text

    def __repr__(self) -> str:
        return f"Diagnostic({self.severity.name}, {self.message!r}, line={self.line_number})"


def has_errors(diagnostics: list[Diagnostic]):
    return any(d.is_error for d in diagnostics)


def tag_document(diagnostics: list[Diagnostic], document: str):
    for diagnostic in diagnostics:
        if not diagnostic.document:
            diagnostic.document = document
    return diagnostics


def print_diagnostics(diagnostics: list[Diagnostic]):
    for diagnostic in diagnostics:
        print(diagnostic.format())


class TemplateError(Exception):
    """
    Raised when a template can't be used because of error diagnostics.
    """

    diagnostics: list[Diagnostic]

    def __init__(self, message: str, diagnostics: list[Diagnostic] = None) -> None:
        self.diagnostics = diagnostics or []
        details = "\n".join(d.format() for d in self.diagnostics if d.is_error)
        super().__init__(message + ("\n" + details if details else ""))
