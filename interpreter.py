import sys
import time
from contextlib import contextmanager

import colorama

from ast_nodes import (
    Program, Block, ExpressionStatement, LetBinding, FunctionDeclaration, ForLoop,
    IntegerLiteral, StringLiteral, BooleanLiteral, Identifier,
    BinaryOp, UnaryOp, Call, If, Match, WildcardPattern, Range, FunctionLiteral,
)
from errors import (
    CinderRuntimeError,
    UNDEFINED_VARIABLE, TYPE_MISMATCH, ARITY_MISMATCH, DIVISION_BY_ZERO, NON_EXHAUSTIVE_MATCH,
    NOT_ITERABLE, STACK_OVERFLOW, INTEGER_OVERFLOW,
)
from natives import NATIVES
from values import (
    UNIT, INT_MIN, INT_MAX, Builtin, Environment, Function, RangeValue,
    inspect, is_comparable, is_int, type_name, values_equal,
)


@contextmanager
def recursion_headroom(frames):
    # Deep user recursion is bounded by max_depth, not by Python's default limit.
    old = sys.getrecursionlimit()
    if frames > old:
        sys.setrecursionlimit(frames)
    try:
        yield
    finally:
        sys.setrecursionlimit(old)


class Interpreter:
    MAX_CALL_DEPTH = 1000
    # Python frames one user-level call may need (call, block, if, operands...).
    FRAMES_PER_CALL = 60

    def __init__(self, max_depth=None, stdout=None, sleeper=None, trace=False, trace_stream=None):
        self.max_depth = self.MAX_CALL_DEPTH if max_depth is None else max_depth
        if self.max_depth < 1:
            raise ValueError("max_depth must be at least 1")
        self.stdout = stdout
        self.sleeper = sleeper or time.sleep
        self.trace_enabled = trace
        self.trace_stream = trace_stream

        self.globals = Environment()
        self.current_env = self.globals  # scope of the native being called (for spill)
        self.call_stack = []             # list of (Function, Call node), innermost last

        self._colorama_inited = False

        self.handlers = {
            IntegerLiteral: self.eval_literal,
            StringLiteral: self.eval_literal,
            BooleanLiteral: self.eval_literal,
            Identifier: self.eval_identifier,
            BinaryOp: self.eval_binary,
            UnaryOp: self.eval_unary,
            Call: self.eval_call,
            If: self.eval_if,
            Match: self.eval_match,
            Range: self.eval_range,
            Block: self.eval_block,
            FunctionLiteral: self.eval_function_literal,
        }

    # ---------- host collaborators ----------
    def _ensure_colorama(self):
        if self._colorama_inited:
            return
        self._colorama_inited = True
        # Lets ANSI sequences such as "\x1b[31m" work in Windows terminals.
        colorama.just_fix_windows_console()

    def write(self, text):
        stream = self.stdout
        if stream is None:
            self._ensure_colorama()
            stream = sys.stdout
        stream.write(text)
        stream.flush()

    def sleep(self, seconds):
        self.sleeper(seconds)

    def trace(self, node, what=None):
        stream = self.trace_stream or sys.stderr
        label = what or type(node).__name__
        print(f"TRACE line={node.line} {label} depth={len(self.call_stack)}", file=stream)

    # ---------- errors ----------
    def build_stacktrace(self):
        # most recent call first
        frames = []
        for func, call_node in reversed(self.call_stack):
            frames.append({
                "func": func.name or "<anonymous>",
                "line": call_node.line,
            })
        return frames

    def raise_error(self, exc):
        if exc.frames is None:
            exc.frames = self.build_stacktrace()
        raise exc

    def error(self, kind, message, node):
        self.raise_error(CinderRuntimeError(
            kind,
            message,
            line=getattr(node, "line", None),
            column=getattr(node, "column", None),
            offset=getattr(node, "offset", None),
        ))

    def require_bool(self, value, context, node):
        if isinstance(value, bool):
            return value
        self.error(TYPE_MISMATCH, f"{context} must be bool, got {type_name(value)}", node)

    def require_int(self, value, context, node):
        if is_int(value):
            return value
        self.error(TYPE_MISMATCH, f"{context} must be int, got {type_name(value)}", node)

    def check_int(self, value, node):
        if value < INT_MIN or value > INT_MAX:
            self.error(INTEGER_OVERFLOW, "Integer overflow: result does not fit in 64 bits", node)
        return value

    # ---------- entry points ----------
    def run_program(self, program):
        if not isinstance(program, Program):
            raise TypeError("run_program expects a Program node")
        with recursion_headroom(self.max_depth * self.FRAMES_PER_CALL + 1000):
            try:
                return self.run_statements(program.statements, program.trailing, self.globals)
            except RecursionError:
                # Expressions nested so deeply that Python gives up before max_depth does.
                self.error(STACK_OVERFLOW, "Stack overflow: expression nested too deeply", program)

    def evaluate(self, node, env):
        handler = self.handlers.get(type(node))
        if handler is None:
            raise TypeError(f"Cannot evaluate node of type {type(node).__name__}")
        return handler(node, env)

    # ---------- statements ----------
    def run_statements(self, statements, trailing, env):
        for stmt in statements:
            env = self.execute(stmt, env)
        if trailing is None:
            return UNIT
        return self.evaluate(trailing, env)

    def execute(self, stmt, env):
        # Returns the environment later statements of the same block run in;
        # it changes when a let shadows a name of the current frame.
        if self.trace_enabled:
            self.trace(stmt)

        if isinstance(stmt, LetBinding):
            value = self.evaluate(stmt.value, env)
            return env.define(stmt.name, value)

        if isinstance(stmt, FunctionDeclaration):
            # The slot exists before the closure does, so the body can call itself.
            scope = env.define(stmt.name, UNIT)
            scope.fill(stmt.name, self.make_function(stmt.function, scope, stmt.name))
            return scope

        if isinstance(stmt, ForLoop):
            self.exec_for(stmt, env)
            return env

        if isinstance(stmt, ExpressionStatement):
            self.evaluate(stmt.expr, env)
            return env

        raise TypeError(f"Cannot execute node of type {type(stmt).__name__}")

    def exec_for(self, node, env):
        iterable = self.evaluate(node.iterable, env)
        if not isinstance(iterable, RangeValue):
            self.error(NOT_ITERABLE, f"Cannot iterate over a value of type {type_name(iterable)}", node.iterable)

        body = node.body
        for i in iterable:
            # A fresh frame per iteration: closures keep their own `i`.
            frame = Environment(env)
            if node.var_name is not None:
                frame.values[node.var_name] = i
            self.run_statements(body.statements, body.trailing, frame)

    # ---------- expressions ----------
    def eval_literal(self, node, env):
        return node.value

    def eval_identifier(self, node, env):
        found, value = env.lookup(node.name)
        if found:
            return value
        native = NATIVES.get(node.name)
        if native is not None:
            return native
        self.error(UNDEFINED_VARIABLE, f"Undefined variable '{node.name}'", node)

    def eval_block(self, node, env):
        return self.run_statements(node.statements, node.trailing, Environment(env))

    def eval_function_literal(self, node, env):
        return self.make_function(node, env, node.name)

    def make_function(self, literal, env, name):
        return Function(literal.param_names, literal.body, env, name)

    def eval_range(self, node, env):
        start = self.require_int(self.evaluate(node.start, env), "Range start", node.start)
        end = self.require_int(self.evaluate(node.end, env), "Range end", node.end)
        return RangeValue(start, end, node.inclusive)

    def eval_unary(self, node, env):
        value = self.evaluate(node.operand, env)
        if node.op == "!":
            return not self.require_bool(value, "Operand of '!'", node)
        return self.check_int(-self.require_int(value, "Operand of unary '-'", node), node)

    def eval_binary(self, node, env):
        op = node.op

        if op in ("&&", "||"):
            left = self.require_bool(self.evaluate(node.left, env), f"Left operand of '{op}'", node.left)
            if op == "&&" and not left:
                return False
            if op == "||" and left:
                return True
            return self.require_bool(self.evaluate(node.right, env), f"Right operand of '{op}'", node.right)

        a = self.evaluate(node.left, env)
        b = self.evaluate(node.right, env)

        if op in ("==", "!="):
            for v in (a, b):
                if not is_comparable(v):
                    self.error(TYPE_MISMATCH, f"Values of type {type_name(v)} cannot be compared with '{op}'", node)
            equal = values_equal(a, b)
            return equal if op == "==" else not equal

        if op in ("<", "<=", ">", ">="):
            if not ((is_int(a) and is_int(b)) or (isinstance(a, str) and isinstance(b, str))):
                self.mismatch(op, a, b, node)
            if op == "<":
                return a < b
            if op == "<=":
                return a <= b
            if op == ">":
                return a > b
            return a >= b

        if op == "+" and isinstance(a, str) and isinstance(b, str):
            return a + b

        if not (is_int(a) and is_int(b)):
            self.mismatch(op, a, b, node)

        if op == "+":
            return self.check_int(a + b, node)
        if op == "-":
            return self.check_int(a - b, node)
        if op == "*":
            return self.check_int(a * b, node)
        if b == 0:
            verb = "divide" if op == "/" else "take the remainder"
            self.error(DIVISION_BY_ZERO, f"Attempted to {verb} by zero", node)
        # floor semantics: -8 % 3 == 1, 8 % -5 == -2
        if op == "/":
            return self.check_int(a // b, node)
        if op == "%":
            return a % b
        raise TypeError(f"Unknown binary operator: {op}")

    def mismatch(self, op, a, b, node):
        self.error(
            TYPE_MISMATCH,
            f"Operator '{op}' cannot be applied to {type_name(a)} and {type_name(b)}",
            node,
        )

    def eval_if(self, node, env):
        condition = self.require_bool(self.evaluate(node.condition, env), "if condition", node.condition)
        if condition:
            return self.evaluate(node.then_block, env)
        if node.else_branch is not None:
            return self.evaluate(node.else_branch, env)
        return UNIT

    def eval_match(self, node, env):
        subject = self.evaluate(node.subject, env)
        for arm in node.arms:
            if isinstance(arm.pattern, WildcardPattern):
                return self.evaluate(arm.body, env)
            if not is_comparable(subject):
                self.error(TYPE_MISMATCH, f"Cannot match a value of type {type_name(subject)} against a literal", node.subject)
            if values_equal(subject, arm.pattern.value):
                return self.evaluate(arm.body, env)
        self.error(NON_EXHAUSTIVE_MATCH, f"No match arm matched {inspect(subject)}", node)

    def eval_call(self, node, env):
        callee = self.evaluate(node.callee, env)
        args = [self.evaluate(arg, env) for arg in node.args]
        return self.call_value(callee, args, node, env)

    def call_value(self, callee, args, node, env):
        if isinstance(callee, Builtin):
            if callee.arity is not None and len(args) != callee.arity:
                self.arity_error(callee.name, callee.arity, len(args), node)
            self.current_env = env
            return callee.impl(self, args, node)

        if not isinstance(callee, Function):
            self.error(TYPE_MISMATCH, f"Value of type {type_name(callee)} is not callable", node)

        if len(args) != len(callee.params):
            self.arity_error(callee.name or "<anonymous>", len(callee.params), len(args), node)

        if len(self.call_stack) >= self.max_depth:
            self.error(STACK_OVERFLOW, f"Stack overflow: call depth exceeded {self.max_depth}", node)

        if self.trace_enabled:
            self.trace(node, f"Call {callee.name or '<anonymous>'}")

        frame = Environment(callee.env)
        for pname, value in zip(callee.params, args):
            frame.values[pname] = value

        self.call_stack.append((callee, node))
        try:
            body = callee.body
            return self.run_statements(body.statements, body.trailing, frame)
        finally:
            self.call_stack.pop()

    def arity_error(self, name, expected, found, node):
        s = "" if expected == 1 else "s"
        self.error(ARITY_MISMATCH, f"{name}() expects {expected} argument{s}, got {found}", node)


def evaluate(node, env=None, **options):
    """Evaluate a single AST node with a fresh interpreter."""
    interp = Interpreter(**options)
    if isinstance(node, Program):
        return interp.run_program(node)
    with recursion_headroom(interp.max_depth * interp.FRAMES_PER_CALL + 1000):
        return interp.evaluate(node, env if env is not None else interp.globals)
