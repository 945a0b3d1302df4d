from errors import CinderError, CinderParseError
from interpreter import Interpreter, recursion_headroom
from lexer import tokenize
from parser import parse
from values import UNIT, inspect


class RunResult:
    """Outcome of one run: the program's value, or a diagnostic explaining why there is none."""

    def __init__(self, value=UNIT, diagnostic=None):
        self.value = value
        self.diagnostic = diagnostic

    @property
    def ok(self) -> bool:
        return self.diagnostic is None

    def __repr__(self):
        if self.diagnostic is not None:
            return f"RunResult(diagnostic={self.diagnostic!r})"
        return f"RunResult(value={inspect(self.value)})"


def run(source, **options):
    """Lex, parse and evaluate ``source``.

    Keyword options are passed to ``Interpreter``: ``max_depth``, ``stdout``,
    ``sleeper``, ``trace`` and ``trace_stream``. Lex, parse and runtime errors
    come back as ``RunResult.diagnostic``; nothing is raised for them.
    """
    interp = Interpreter(**options)

    try:
        tokens = tokenize(source)
        with recursion_headroom(interp.max_depth * interp.FRAMES_PER_CALL + 1000):
            try:
                program = parse(tokens)
            except RecursionError:
                raise CinderParseError(
                    "less deeply nested code",
                    "nesting too deep to parse",
                    line=1,
                    column=1,
                    offset=0,
                ) from None
        value = interp.run_program(program)
    except CinderError as e:
        return RunResult(diagnostic=e.to_diagnostic())

    return RunResult(value)
