INT_MIN = -(2 ** 63)
INT_MAX = 2 ** 63 - 1


class Unit:
    """The value of blocks without a trailing expression. Use the UNIT singleton."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "()"


UNIT = Unit()


class Function:
    def __init__(self, params, body, env, name=None):
        self.params = params  # list[str]
        self.body = body      # Block
        self.env = env        # captured Environment
        self.name = name

    def __repr__(self):
        return f"<fn {self.name or 'anonymous'}>"


class Builtin:
    def __init__(self, name, impl, arity=None):
        self.name = name
        self.impl = impl    # impl(interpreter, args, node) -> value
        self.arity = arity  # None means variadic

    def __repr__(self):
        return f"<builtin {self.name}>"


class RangeValue:
    def __init__(self, start, end, inclusive):
        self.start = start
        self.end = end
        self.inclusive = inclusive

    def __iter__(self):
        stop = self.end + 1 if self.inclusive else self.end
        return iter(range(self.start, stop))

    def __len__(self):
        stop = self.end + 1 if self.inclusive else self.end
        return max(0, stop - self.start)

    def __repr__(self):
        op = "..=" if self.inclusive else ".."
        return f"{self.start}{op}{self.end}"


def is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def is_comparable(value) -> bool:
    return isinstance(value, (int, str, Unit))


def type_name(value) -> str:
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, str):
        return "str"
    if isinstance(value, Unit):
        return "unit"
    if isinstance(value, (Function, Builtin)):
        return "fn"
    if isinstance(value, RangeValue):
        return "range"
    return type(value).__name__


def values_equal(a, b) -> bool:
    # Structural and type-tagged: 1 != true even though Python says 1 == True.
    if type_name(a) != type_name(b):
        return False
    return a == b


def display(value) -> str:
    """Text used by print/println: strings raw, unit empty."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, Unit):
        return ""
    return str(value) if is_int(value) else repr(value)


def inspect(value) -> str:
    """Text used in diagnostics: like display, but strings quoted and unit as ()."""
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace("\"", "\\\"")
        return f"\"{escaped}\""
    if isinstance(value, Unit):
        return "()"
    return display(value)


class Environment:
    """One lexical scope: its own bindings plus a link to the enclosing scope."""

    def __init__(self, parent=None):
        self.values = {}
        self.parent = parent

    def define(self, name, value):
        """Bind ``name`` and return the environment that now holds it.

        A name already bound in this frame is shadowed in a new child frame,
        so closures holding this frame keep seeing the old binding. Callers
        continue with the returned environment.
        """
        if name in self.values:
            child = Environment(self)
            child.values[name] = value
            return child
        self.values[name] = value
        return self

    def fill(self, name, value):
        # Only for the forward-declared slot of a recursive function.
        if name not in self.values:
            raise KeyError(name)
        self.values[name] = value

    def lookup(self, name):
        env = self
        while env is not None:
            if name in env.values:
                return True, env.values[name]
            env = env.parent
        return False, None

    def frames(self):
        env = self
        while env is not None:
            yield env
            env = env.parent
