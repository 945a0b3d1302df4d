class ASTNode:
    # Source position of the node's first token. Parser sets these.
    line: int | None = None
    column: int | None = None
    offset: int | None = None


class Program(ASTNode):
    def __init__(self, statements, trailing=None):
        self.statements = statements
        self.trailing = trailing  # expr | None


# ---------- expressions ----------

class IntegerLiteral(ASTNode):
    def __init__(self, value):
        self.value = value


class StringLiteral(ASTNode):
    def __init__(self, value):
        self.value = value


class BooleanLiteral(ASTNode):
    def __init__(self, value):
        self.value = value


class Identifier(ASTNode):
    def __init__(self, name):
        self.name = name


class BinaryOp(ASTNode):
    def __init__(self, op, left, right):
        self.op = op        # "+", "==", "&&", ...
        self.left = left
        self.right = right


class UnaryOp(ASTNode):
    def __init__(self, op, operand):
        self.op = op        # "-" or "!"
        self.operand = operand


class Call(ASTNode):
    def __init__(self, callee, args):
        self.callee = callee  # expr
        self.args = args      # list[expr]


class If(ASTNode):
    def __init__(self, condition, then_block, else_branch=None):
        self.condition = condition
        self.then_block = then_block
        self.else_branch = else_branch  # Block | If | None


class Match(ASTNode):
    def __init__(self, subject, arms):
        self.subject = subject
        self.arms = arms  # list[MatchArm], never empty


class MatchArm(ASTNode):
    def __init__(self, pattern, body):
        self.pattern = pattern
        self.body = body


class LiteralPattern(ASTNode):
    def __init__(self, value):
        self.value = value  # int | str | bool


class WildcardPattern(ASTNode):
    pass


class Range(ASTNode):
    def __init__(self, start, end, inclusive):
        self.start = start
        self.end = end
        self.inclusive = inclusive


class Block(ASTNode):
    def __init__(self, statements, trailing=None):
        self.statements = statements
        self.trailing = trailing  # expr | None


class FunctionLiteral(ASTNode):
    def __init__(self, params, body, return_type=None, name=None):
        self.params = params            # list of (param_name, type_name | None)
        self.body = body                # Block
        self.return_type = return_type  # parsed, never checked
        self.name = name                # set for declarations, used in messages

    @property
    def param_names(self):
        return [pname for (pname, _ptype) in self.params]


# ---------- statements ----------

class LetBinding(ASTNode):
    def __init__(self, name, value, type_annotation=None):
        self.name = name
        self.value = value
        self.type_annotation = type_annotation


class FunctionDeclaration(ASTNode):
    def __init__(self, name, function):
        self.name = name
        self.function = function  # FunctionLiteral


class ForLoop(ASTNode):
    def __init__(self, var_name, iterable, body):
        self.var_name = var_name  # None for `for _ in ...`
        self.iterable = iterable
        self.body = body


class ExpressionStatement(ASTNode):
    def __init__(self, expr):
        self.expr = expr
