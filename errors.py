from colorama import Fore, Style


# Runtime error kinds
UNDEFINED_VARIABLE = "UndefinedVariable"
TYPE_MISMATCH = "TypeMismatch"
ARITY_MISMATCH = "ArityMismatch"
DIVISION_BY_ZERO = "DivisionByZero"
NON_EXHAUSTIVE_MATCH = "NonExhaustiveMatch"
NOT_ITERABLE = "NotIterable"
STACK_OVERFLOW = "StackOverflow"
ASSERTION_FAILURE = "AssertionFailure"
INTEGER_OVERFLOW = "IntegerOverflow"


class CinderError(Exception):
    kind = "Error"

    def __init__(self, message: str, line: int | None = None, column: int | None = None, offset: int | None = None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column
        self.offset = offset

    def location(self) -> str:
        if self.line is None:
            return ""
        return f" at line {self.line}, col {self.column}"

    def __str__(self) -> str:
        return f"{self.kind} error: {self.message}{self.location()}"

    def to_diagnostic(self):
        return Diagnostic(
            kind=self.kind,
            message=self.message,
            line=self.line,
            column=self.column,
            offset=self.offset,
        )


class CinderLexError(CinderError):
    kind = "Lex"


class CinderParseError(CinderError):
    kind = "Parse"

    def __init__(self, expected: str, found: str, line=None, column=None, offset=None, message: str | None = None):
        super().__init__(message or f"Expected {expected}, found {found}", line, column, offset)
        self.expected = expected
        self.found = found


class CinderRuntimeError(CinderError):
    kind = "Runtime"

    def __init__(self, error_kind: str, message: str, line=None, column=None, offset=None):
        super().__init__(message, line, column, offset)
        self.error_kind = error_kind
        self.frames = None  # [{"func": str, "line": int}], most recent first

    def __str__(self) -> str:
        return f"Runtime error ({self.error_kind}): {self.message}{self.location()}"

    def to_diagnostic(self):
        diag = super().to_diagnostic()
        diag.error_kind = self.error_kind
        diag.frames = list(self.frames or [])
        return diag


class AssertionFailure(CinderRuntimeError):
    def __init__(self, actual, expected, message: str, line=None, column=None, offset=None):
        super().__init__(ASSERTION_FAILURE, message, line, column, offset)
        self.actual = actual
        self.expected = expected

    def to_diagnostic(self):
        diag = super().to_diagnostic()
        diag.actual = self.actual
        diag.expected = self.expected
        return diag


class Diagnostic:
    """A failed run, reduced to plain data for the host.

    ``kind`` is one of ``"Lex"``, ``"Parse"`` or ``"Runtime"``; runtime
    diagnostics also carry ``error_kind`` (``"TypeMismatch"``, ...). Assertion
    failures keep the two compared values in ``actual`` and ``expected``.
    """

    def __init__(self, kind, message, line=None, column=None, offset=None, error_kind=None):
        self.kind = kind
        self.message = message
        self.line = line
        self.column = column
        self.offset = offset
        self.error_kind = error_kind
        self.actual = None
        self.expected = None
        self.frames = []  # runtime call frames, most recent first

    def __repr__(self):
        return f"Diagnostic({self.kind!r}, {self.message!r}, line={self.line}, column={self.column})"

    def headline(self) -> str:
        head = f"{self.kind} error"
        if self.error_kind:
            head += f" ({self.error_kind})"
        if self.line is None:
            return f"{head}: {self.message}"
        return f"{head}: {self.message} at line {self.line}, col {self.column}"

    def format(self, indent: str = "") -> str:
        lines = [f"{indent}{self.headline()}"]
        for fr in self.frames:
            lines.append(f"{indent}  at fn {fr.get('func', '<unknown>')} (line {fr.get('line', '?')})")
        return "\n".join(lines)

    def render(self, source: str, color: bool = True) -> str:
        # Excerpt of the offending line with a caret under the column:
        #   3 │ let x = y
        #     │         ^
        #     │ Undefined variable 'y'
        if self.line is None:
            return self.format()

        lines = source.split("\n")
        text = lines[self.line - 1] if 0 < self.line <= len(lines) else ""
        number = str(self.line)
        pad = " " * len(number)
        column = self.column or 1

        if color:
            gutter_on = Style.BRIGHT + Fore.LIGHTBLUE_EX
            error_on = Style.BRIGHT + Fore.LIGHTRED_EX
            off = Style.RESET_ALL
        else:
            gutter_on = error_on = off = ""

        out = [
            f"{gutter_on}{number} │{off} {text}",
            f"{pad} {gutter_on}│{off} {' ' * (column - 1)}{error_on}^{off}",
            f"{pad} {gutter_on}│{off} {error_on}{self.headline()}{off}",
        ]
        for fr in self.frames:
            out.append(f"{pad} {gutter_on}│{off} {error_on}  at fn {fr.get('func', '<unknown>')} (line {fr.get('line', '?')}){off}")
        return "\n".join(out)
