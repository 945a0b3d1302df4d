from errors import AssertionFailure, TYPE_MISMATCH
from values import UNIT, Builtin, display, inspect, is_comparable, is_int, type_name, values_equal


def native_print(interp, args, node):
    interp.write("".join(display(a) for a in args))
    return UNIT


def native_println(interp, args, node):
    interp.write("".join(display(a) for a in args) + "\n")
    return UNIT


def native_sleep(interp, args, node):
    nanos = args[0]
    if not is_int(nanos) or nanos < 0:
        interp.error(TYPE_MISMATCH, f"sleep() expects a non-negative int of nanoseconds, got {inspect(nanos)}", node)
    interp.sleep(nanos / 1_000_000_000)
    return UNIT


def native_assert_eq(interp, args, node):
    actual, expected = args
    for v in (actual, expected):
        if not is_comparable(v):
            interp.error(TYPE_MISMATCH, f"assert_eq() cannot compare values of type {type_name(v)}", node)
    if not values_equal(actual, expected):
        interp.raise_error(AssertionFailure(
            actual,
            expected,
            f"Assertion failed: {inspect(actual)} == {inspect(expected)}",
            line=node.line,
            column=node.column,
            offset=node.offset,
        ))
    return UNIT


def native_assert(interp, args, node):
    cond = args[0]
    if not isinstance(cond, bool):
        interp.error(TYPE_MISMATCH, f"assert() expects a bool, got {type_name(cond)}", node)
    if not cond:
        interp.raise_error(AssertionFailure(cond, True, "Assertion failed", line=node.line, column=node.column, offset=node.offset))
    return UNIT


def native_spill(interp, args, node):
    # Dump every visible user binding, innermost scope first.
    seen = set()
    lines = []
    for frame in interp.current_env.frames():
        for name, value in frame.values.items():
            if name in seen:
                continue
            seen.add(name)
            lines.append(f"{name} = {inspect(value)}\n")
    interp.write("".join(lines))
    return UNIT


NATIVES = {
    b.name: b
    for b in (
        Builtin("println", native_println),
        Builtin("print", native_print),
        Builtin("sleep", native_sleep, arity=1),
        Builtin("assert_eq", native_assert_eq, arity=2),
        Builtin("assert", native_assert, arity=1),
        Builtin("spill", native_spill, arity=0),
    )
}
