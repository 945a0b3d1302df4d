import io
import sys

from interpreter import Interpreter, evaluate
from parser import parse_source
from runtime import run
from values import UNIT, Builtin, INT_MIN


def run_capture(source, **options):
    out = io.StringIO()
    result = run(source, stdout=out, **options)
    return result, out.getvalue()


def run_value(source, **options):
    result, _ = run_capture(source, **options)
    if not result.ok:
        raise AssertionError(f"Unexpected error: {result.diagnostic.headline()}")
    return result.value


def runtime_error(source, kind, **options):
    result, _ = run_capture(source, **options)
    diag = result.diagnostic
    if diag is None:
        raise AssertionError(f"Expected {kind} for {source!r}, got value {result.value!r}")
    if diag.kind != "Runtime" or diag.error_kind != kind:
        raise AssertionError(f"Expected {kind}, got {diag.headline()}")
    return diag


GCD = """
fn gcd(a: int, b: int) -> int {
    if b == 0 { a } else { gcd(b, a % b) }
}
"""


def test_recursive_gcd():
    for args, expected in (("16, 24", 8), ("7, 13", 1), ("0, 5", 5)):
        got = run_value(GCD + f"gcd({args})")
        if got != expected:
            raise AssertionError(f"gcd({args}): expected {expected}, got {got}")


def test_inclusive_range_loop_prints_each_number():
    _, out = run_capture("for i in 1..=100 { println(i) }")
    expected = "".join(f"{i}\n" for i in range(1, 101))
    if out != expected:
        raise AssertionError(f"Unexpected output: {out[:40]!r}...")


def test_exclusive_range_loop():
    _, out = run_capture("for i in 0..10 { print(i, \" \") }")
    if out != "0 1 2 3 4 5 6 7 8 9 ":
        raise AssertionError(f"Unexpected output: {out!r}")


def test_empty_ranges_run_no_iterations():
    for source in ("for i in 5..5 { println(i) }", "for i in 5..=4 { println(i) }", "for i in 3..1 { println(i) }"):
        result, out = run_capture(source)
        if not result.ok or out != "":
            raise AssertionError(f"Expected no output for {source!r}, got {out!r}")


def test_loop_variable_not_visible_after_loop():
    runtime_error("for i in 0..2 { }\ni", "UndefinedVariable")


def test_match_on_remainder():
    source = """
for i in 0..7 {
    println(match i % 5 {
        0 => "zero",
        1 => "one",
        2 => "two",
        3 => "three",
        _ => "other",
    })
}
"""
    _, out = run_capture(source)
    if out.split() != ["zero", "one", "two", "three", "other", "zero", "one"]:
        raise AssertionError(f"Unexpected output: {out!r}")


def test_match_value_and_block_arms():
    got = run_value('match "b" { "a" => 1, "b" => { let x = 20; x + 2 } _ => 0 }')
    if got != 22:
        raise AssertionError(f"Expected 22, got {got}")


def test_closures_in_loop_capture_their_own_iteration():
    kept = []

    def keep(interp, args, node):
        kept.append(args[0])
        return UNIT

    interp = Interpreter(stdout=io.StringIO())
    interp.globals.define("keep", Builtin("keep", keep, arity=1))
    interp.run_program(parse_source("for i in 0..3 { keep(|| i * 10) }"))

    got = [interp.call_value(f, [], None, interp.globals) for f in kept]
    if got != [0, 10, 20]:
        raise AssertionError(f"Expected [0, 10, 20], got {got}")


def test_closure_captures_defining_scope():
    source = """
fn make_adder(n) { |x| x + n }
let add5 = make_adder(5)
let n = 100
add5(10)
"""
    got = run_value(source)
    if got != 15:
        raise AssertionError(f"Expected 15, got {got}")


def test_shadowing_does_not_change_captured_binding():
    got = run_value("let x = 1\nlet f = || x\nlet x = 2\nf() + x")
    if got != 3:
        raise AssertionError(f"Expected 3, got {got}")


def test_block_scope():
    got = run_value("let x = 1\nlet y = { let x = 2; x }\ny + x")
    if got != 3:
        raise AssertionError(f"Expected 3, got {got}")
    runtime_error("{ let z = 5 }\nz", "UndefinedVariable")


def test_unbounded_recursion_is_stack_overflow():
    limit = sys.getrecursionlimit()
    diag = runtime_error("fn f(n) { f(n + 1) }\nf(0)", "StackOverflow")
    if "1000" not in diag.message:
        raise AssertionError(f"Unexpected message: {diag.message}")
    if sys.getrecursionlimit() != limit:
        raise AssertionError("Recursion limit was not restored")


def test_configured_max_depth():
    source = "fn d(n) { if n == 0 { 0 } else { d(n - 1) } }\n"
    if run_value(source + "d(49)", max_depth=50) != 0:
        raise AssertionError("Expected 50 nested calls to fit in max_depth=50")
    diag = runtime_error(source + "d(50)", "StackOverflow", max_depth=50)
    if diag.message != "Stack overflow: call depth exceeded 50":
        raise AssertionError(f"Unexpected message: {diag.message}")


def test_deep_but_bounded_recursion():
    got = run_value("fn sum(n) { if n == 0 { 0 } else { n + sum(n - 1) } }\nsum(500)")
    if got != 125250:
        raise AssertionError(f"Expected 125250, got {got}")


def test_floor_division_and_remainder():
    cases = {"7 / 2": 3, "-7 / 2": -4, "-8 % 3": 1, "8 % -5": -2, "2 + 3 * 4 - 10 / 5": 12}
    for source, expected in cases.items():
        got = run_value(source)
        if got != expected:
            raise AssertionError(f"{source}: expected {expected}, got {got}")


def test_division_by_zero():
    diag = runtime_error("1 / 0", "DivisionByZero")
    if diag.message != "Attempted to divide by zero":
        raise AssertionError(f"Unexpected message: {diag.message}")
    diag = runtime_error("1 % 0", "DivisionByZero")
    if diag.message != "Attempted to take the remainder by zero":
        raise AssertionError(f"Unexpected message: {diag.message}")


def test_integer_overflow():
    runtime_error("9223372036854775807 + 1", "IntegerOverflow")
    runtime_error("-9223372036854775808 - 1", "IntegerOverflow")
    runtime_error("-(-9223372036854775808)", "IntegerOverflow")
    runtime_error("-9223372036854775808 / -1", "IntegerOverflow")
    runtime_error("4611686018427387904 * 2", "IntegerOverflow")


def test_min_int_is_representable():
    if run_value("-9223372036854775808") != INT_MIN:
        raise AssertionError("Expected the minimum 64-bit integer")


def test_type_mismatches():
    for source in ('1 + "a"', "if 1 { 2 }", '-"a"', '"a" < 1', "!1", "1 && true", "true + true", "1..true"):
        runtime_error(source, "TypeMismatch")


def test_string_concatenation_and_comparison():
    if run_value('"ab" + "cd"') != "abcd":
        raise AssertionError("Expected abcd")
    if run_value('"abc" < "abd"') is not True:
        raise AssertionError('Expected "abc" < "abd"')


def test_if_without_else_is_unit():
    if run_value("if false { 1 }") is not UNIT:
        raise AssertionError("Expected unit")
    if run_value("if true { 1 }") != 1:
        raise AssertionError("Expected 1")


def test_else_if_chain():
    source = 'let n = {n}\nif n < 0 {{ "neg" }} else if n == 0 {{ "zero" }} else {{ "pos" }}'
    for n, expected in ((-3, "neg"), (0, "zero"), (4, "pos")):
        got = run_value(source.format(n=n))
        if got != expected:
            raise AssertionError(f"{n}: expected {expected}, got {got}")


def test_non_exhaustive_match():
    diag = runtime_error("match 3 { 1 => 1, 2 => 2 }", "NonExhaustiveMatch")
    if diag.message != "No match arm matched 3":
        raise AssertionError(f"Unexpected message: {diag.message}")


def test_literal_patterns_need_comparable_subject():
    runtime_error("fn f() { }\nmatch f { 1 => 2, _ => 3 }", "TypeMismatch")
    runtime_error("match 0..1 { 1 => 2 }", "TypeMismatch")
    if run_value("fn f() { }\nmatch f { _ => 3 }") != 3:
        raise AssertionError("Expected the wildcard arm to match a function")


def test_brace_statement_ends_at_closing_brace():
    result, out = run_capture('let x = 1\nif x == 1 { println("a") } else { println("b") }\n(x + 1)')
    if result.value != 2 or out != "a\n":
        raise AssertionError(f"Expected 2 and 'a', got {result!r} and {out!r}")

    result, out = run_capture('let x = 1\nmatch x { 3 => println("three"), _ => println("other") }\n-1')
    if result.value != -1 or out != "other\n":
        raise AssertionError(f"Expected -1 and 'other', got {result!r} and {out!r}")

    if run_value("{ 1 }\n(2)") != 2:
        raise AssertionError("Expected the parenthesized line to be the value")


def test_closures_see_later_bindings_of_new_names():
    if run_value("let f = || y\nlet y = 2\nf()") != 2:
        raise AssertionError("Expected f to see y bound after it")
    source = """
fn is_even(n) { if n == 0 { true } else { is_odd(n - 1) } }
fn is_odd(n) { if n == 0 { false } else { is_even(n - 1) } }
is_even(10)
"""
    if run_value(source) is not True:
        raise AssertionError("Expected mutual recursion to work")
    runtime_error("let f = || y\nf()", "UndefinedVariable")


def test_for_over_non_range():
    runtime_error("for x in 5 { }", "NotIterable")


def test_arity_mismatch():
    diag = runtime_error("fn f(a) { a }\nf(1, 2)", "ArityMismatch")
    if diag.message != "f() expects 1 argument, got 2":
        raise AssertionError(f"Unexpected message: {diag.message}")


def test_undefined_variable_position():
    diag = runtime_error("let a = 1\nprintln(b)", "UndefinedVariable")
    if (diag.line, diag.column) != (2, 9):
        raise AssertionError(f"Wrong position: {(diag.line, diag.column)}")
    if diag.message != "Undefined variable 'b'":
        raise AssertionError(f"Unexpected message: {diag.message}")


def test_calling_a_non_function():
    runtime_error("let a = 1\na()", "TypeMismatch")


def test_user_function_shadows_builtin():
    result, out = run_capture("fn println(x) { x + 1 }\nprintln(1)")
    if result.value != 2 or out != "":
        raise AssertionError(f"Expected 2 and no output, got {result.value!r} and {out!r}")


def test_builtins_are_values():
    _, out = run_capture('let p = println\np("hi")')
    if out != "hi\n":
        raise AssertionError(f"Unexpected output: {out!r}")


def test_higher_order_functions():
    if run_value("fn apply(f, x) { f(x) }\napply(|v| v * v, 7)") != 49:
        raise AssertionError("Expected 49")


def test_equality_is_type_tagged():
    cases = {
        "1 == true": False,
        "1 != true": True,
        '"a" == "a"': True,
        "let u = {}\nu == {}": True,
        "0 == false": False,
        "true == true": True,
    }
    for source, expected in cases.items():
        got = run_value(source)
        if got is not expected:
            raise AssertionError(f"{source}: expected {expected}, got {got}")


def test_functions_and_ranges_are_not_comparable():
    runtime_error("fn f() { }\nf == f", "TypeMismatch")
    runtime_error("(0..1) == (0..1)", "TypeMismatch")


def test_logical_operators_short_circuit():
    if run_value("false && undefined_name") is not False:
        raise AssertionError("Expected false")
    if run_value("true || undefined_name") is not True:
        raise AssertionError("Expected true")


def test_trailing_semicolon_discards_value():
    if run_value("1 + 1;") is not UNIT:
        raise AssertionError("Expected unit")


def test_evaluate_helper():
    if evaluate(parse_source("1 + 2")) != 3:
        raise AssertionError("Expected 3")
