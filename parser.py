from ast_nodes import (
    Program, Block, ExpressionStatement, LetBinding, FunctionDeclaration, ForLoop,
    IntegerLiteral, StringLiteral, BooleanLiteral, Identifier,
    BinaryOp, UnaryOp, Call, If, Match, MatchArm, LiteralPattern, WildcardPattern,
    Range, FunctionLiteral,
)
from errors import CinderParseError
from lexer import Token, tokenize
from values import INT_MAX, INT_MIN

COMPARISON_OPS = {
    "EQEQ": "==",
    "NOTEQ": "!=",
    "LT": "<",
    "LTE": "<=",
    "GT": ">",
    "GTE": ">=",
}
ADDITIVE_OPS = {"PLUS": "+", "MINUS": "-"}
MULTIPLICATIVE_OPS = {"STAR": "*", "SLASH": "/", "PERCENT": "%"}

# Expressions that end in a closing brace; they need no ';' or ',' after them.
BRACE_EXPRS = (Block, If, Match)


class Parser:
    def __init__(self, tokens):
        if not tokens or tokens[-1].type != "EOF":
            raise ValueError("token list must end with an EOF token")
        self.tokens = tokens
        self.pos = 0

    @property
    def current_token(self):
        return self.tokens[self.pos]

    @property
    def next_token(self):
        if self.pos + 1 < len(self.tokens):
            return self.tokens[self.pos + 1]
        return self.tokens[-1]

    # move to next token, but only if it matches what we expect
    def eat(self, token_type, expected=None):
        tok = self.current_token
        if tok.type != token_type:
            self.error_here(expected or self.describe_type(token_type))
        if tok.type != "EOF":
            self.pos += 1
        return tok

    def error_here(self, expected, message=None):
        tok = self.current_token
        raise CinderParseError(
            expected,
            tok.describe(),
            line=tok.line,
            column=tok.column,
            offset=tok.offset,
            message=message,
        )

    def describe_type(self, token_type):
        return Token(token_type).describe()

    def at(self, *token_types):
        return self.current_token.type in token_types

    def mark(self, node, tok):
        node.line = tok.line
        node.column = tok.column
        node.offset = tok.offset
        return node

    # ---------- TOP LEVEL ----------
    def parse(self):
        first = self.current_token
        statements, trailing = self.statement_list("EOF")
        self.eat("EOF")
        return self.mark(Program(statements, trailing), first)

    def statement_list(self, end_type):
        # Shared by blocks and the program. The last expression without a
        # terminating ';' becomes the trailing (value-producing) expression.
        statements = []
        trailing = None

        while not self.at(end_type):
            if self.at("SEMI"):
                self.eat("SEMI")
                if trailing is not None:
                    statements.append(self.expression_statement(trailing))
                    trailing = None
                continue

            if trailing is not None:
                statements.append(self.expression_statement(trailing))
                trailing = None

            if self.at("EOF"):
                self.error_here(self.describe_type(end_type))

            if self.at("LET"):
                statements.append(self.let_statement())
            elif self.at("FN") and self.next_token.type == "IDENT":
                statements.append(self.function_declaration())
            elif self.at("FOR"):
                statements.append(self.for_statement())
            elif self.at("IF", "MATCH", "LBRACE"):
                # ends at its closing brace; a following `(` or `-` starts the next statement
                expr = self.primary()
                if self.at("SEMI", end_type, "EOF"):
                    trailing = expr
                else:
                    statements.append(self.expression_statement(expr))
            else:
                trailing = self.expr()

        return statements, trailing

    def expression_statement(self, expr):
        node = ExpressionStatement(expr)
        node.line, node.column, node.offset = expr.line, expr.column, expr.offset
        return node

    # ---------- STATEMENTS ----------
    def let_statement(self):
        # let NAME (: TYPE)? = expr
        tok = self.eat("LET")
        name = self.eat("IDENT", "variable name after 'let'").value
        type_annotation = None
        if self.at("COLON"):
            self.eat("COLON")
            type_annotation = self.type_name()
        self.eat("EQ")
        value = self.expr()
        return self.mark(LetBinding(name, value, type_annotation), tok)

    def function_declaration(self):
        # fn NAME(params) (-> TYPE)? block
        tok = self.eat("FN")
        name = self.eat("IDENT", "function name").value
        function = self.function_rest(tok, name)
        return self.mark(FunctionDeclaration(name, function), tok)

    def for_statement(self):
        # for (NAME | _) in expr block
        tok = self.eat("FOR")
        if self.at("UNDERSCORE"):
            self.eat("UNDERSCORE")
            var_name = None
        else:
            var_name = self.eat("IDENT", "loop variable name or '_' after 'for'").value
        self.eat("IN")
        iterable = self.expr()
        body = self.block()
        return self.mark(ForLoop(var_name, iterable, body), tok)

    def function_rest(self, tok, name=None):
        self.eat("LPAREN")
        params = []
        if not self.at("RPAREN"):
            params.append(self.param())
            while self.at("COMMA"):
                self.eat("COMMA")
                if self.at("RPAREN"):
                    break
                params.append(self.param())
        self.eat("RPAREN")

        return_type = None
        if self.at("ARROW"):
            self.eat("ARROW")
            return_type = self.type_name()

        body = self.block()
        self.check_unique_params(params, tok)
        return self.mark(FunctionLiteral(params, body, return_type, name), tok)

    def param(self):
        param_name = self.eat("IDENT", "parameter name").value
        param_type = None
        if self.at("COLON"):
            self.eat("COLON")
            param_type = self.type_name()
        return (param_name, param_type)

    def check_unique_params(self, params, tok):
        seen = set()
        for pname, _ptype in params:
            if pname in seen:
                raise CinderParseError(
                    "distinct parameter names",
                    f"'{pname}' twice",
                    line=tok.line,
                    column=tok.column,
                    offset=tok.offset,
                )
            seen.add(pname)

    def type_name(self):
        # Annotations are kept as text only: `int`, `str`, `()`.
        if self.at("LPAREN"):
            self.eat("LPAREN")
            self.eat("RPAREN")
            return "()"
        return self.eat("IDENT", "type name").value

    def block(self):
        tok = self.eat("LBRACE")
        statements, trailing = self.statement_list("RBRACE")
        self.eat("RBRACE")
        return self.mark(Block(statements, trailing), tok)

    # ---------- EXPRESSIONS ----------
    # expr -> or_expr
    def expr(self):
        return self.or_expr()

    # or_expr -> and_expr (|| and_expr)*
    def or_expr(self):
        node = self.and_expr()
        while self.at("OR"):
            tok = self.eat("OR")
            node = self.mark(BinaryOp("||", node, self.and_expr()), tok)
        return node

    # and_expr -> comparison (&& comparison)*
    def and_expr(self):
        node = self.comparison()
        while self.at("AND"):
            tok = self.eat("AND")
            node = self.mark(BinaryOp("&&", node, self.comparison()), tok)
        return node

    # comparison -> range_expr ((==|!=|<|<=|>|>=) range_expr)*
    def comparison(self):
        node = self.range_expr()
        while self.current_token.type in COMPARISON_OPS:
            tok = self.eat(self.current_token.type)
            node = self.mark(BinaryOp(COMPARISON_OPS[tok.type], node, self.range_expr()), tok)
        return node

    # range_expr -> term ((..|..=) term)?
    def range_expr(self):
        node = self.term()
        if self.at("DOTDOT", "DOTDOTEQ"):
            tok = self.eat(self.current_token.type)
            end = self.term()
            node = self.mark(Range(node, end, tok.type == "DOTDOTEQ"), tok)
            if self.at("DOTDOT", "DOTDOTEQ"):
                self.error_here("end of range expression", message="Range expressions cannot be chained")
        return node

    # term -> factor ((+|-) factor)*
    def term(self):
        node = self.factor()
        while self.current_token.type in ADDITIVE_OPS:
            tok = self.eat(self.current_token.type)
            node = self.mark(BinaryOp(ADDITIVE_OPS[tok.type], node, self.factor()), tok)
        return node

    # factor -> unary ((*|/|%) unary)*
    def factor(self):
        node = self.unary()
        while self.current_token.type in MULTIPLICATIVE_OPS:
            tok = self.eat(self.current_token.type)
            node = self.mark(BinaryOp(MULTIPLICATIVE_OPS[tok.type], node, self.unary()), tok)
        return node

    # unary -> (-|!) unary | call
    def unary(self):
        if self.at("MINUS"):
            tok = self.eat("MINUS")
            # -9223372036854775808 only fits when the minus is folded in
            if self.at("NUMBER") and self.current_token.value == INT_MAX + 1:
                self.eat("NUMBER")
                node = self.mark(IntegerLiteral(INT_MIN), tok)
                return self.finish_calls(node)
            return self.mark(UnaryOp("-", self.unary()), tok)
        if self.at("BANG"):
            tok = self.eat("BANG")
            return self.mark(UnaryOp("!", self.unary()), tok)
        return self.call()

    # call -> primary ( "(" args ")" )*
    def call(self):
        return self.finish_calls(self.primary())

    def finish_calls(self, node):
        while self.at("LPAREN"):
            self.eat("LPAREN")
            args = []
            if not self.at("RPAREN"):
                args.append(self.expr())
                while self.at("COMMA"):
                    self.eat("COMMA")
                    if self.at("RPAREN"):
                        break
                    args.append(self.expr())
            self.eat("RPAREN", "',' or ')' in argument list")
            call = Call(node, args)
            call.line, call.column, call.offset = node.line, node.column, node.offset
            node = call
        return node

    # primary -> NUMBER | STRING | BOOL | IDENT | (expr) | block | if | match | fn | closure
    def primary(self):
        tok = self.current_token

        if tok.type == "NUMBER":
            if tok.value > INT_MAX:
                self.error_here("integer in the 64-bit range", message=f"Integer literal out of range: {tok.value}")
            self.eat("NUMBER")
            return self.mark(IntegerLiteral(tok.value), tok)

        if tok.type == "STRING":
            self.eat("STRING")
            return self.mark(StringLiteral(tok.value), tok)

        if tok.type == "BOOL":
            self.eat("BOOL")
            return self.mark(BooleanLiteral(tok.value), tok)

        if tok.type == "IDENT":
            self.eat("IDENT")
            return self.mark(Identifier(tok.value), tok)

        if tok.type == "LPAREN":
            self.eat("LPAREN")
            node = self.expr()
            self.eat("RPAREN")
            return node

        if tok.type == "LBRACE":
            return self.block()

        if tok.type == "IF":
            return self.if_expr()

        if tok.type == "MATCH":
            return self.match_expr()

        if tok.type == "FN":
            self.eat("FN")
            return self.function_rest(tok)

        if tok.type in ("PIPE", "OR"):
            return self.closure()

        self.error_here("expression")

    def if_expr(self):
        # Grammar:
        #   IF expr block (ELSE (if_expr | block))?
        # else-if chains are nested If nodes in else_branch.
        tok = self.eat("IF")
        condition = self.expr()
        then_block = self.block()
        else_branch = None
        if self.at("ELSE"):
            self.eat("ELSE")
            if self.at("IF"):
                else_branch = self.if_expr()
            else:
                else_branch = self.block()
        return self.mark(If(condition, then_block, else_branch), tok)

    def match_expr(self):
        # match expr { pattern => expr (, pattern => expr)* ,? }
        tok = self.eat("MATCH")
        subject = self.expr()
        self.eat("LBRACE")

        arms = []
        while not self.at("RBRACE"):
            arm_tok = self.current_token
            pattern = self.pattern()
            self.eat("FATARROW")
            body = self.expr()
            arms.append(self.mark(MatchArm(pattern, body), arm_tok))

            if self.at("COMMA"):
                self.eat("COMMA")
            elif not isinstance(body, BRACE_EXPRS) and not self.at("RBRACE"):
                self.error_here("',' or '}' after match arm")

        if not arms:
            self.error_here("at least one match arm")
        self.eat("RBRACE")
        return self.mark(Match(subject, arms), tok)

    def pattern(self):
        tok = self.current_token
        if tok.type == "UNDERSCORE":
            self.eat("UNDERSCORE")
            return self.mark(WildcardPattern(), tok)
        if tok.type == "NUMBER":
            if tok.value > INT_MAX:
                self.error_here("integer in the 64-bit range", message=f"Integer literal out of range: {tok.value}")
            self.eat("NUMBER")
            return self.mark(LiteralPattern(tok.value), tok)
        if tok.type == "MINUS" and self.next_token.type == "NUMBER":
            self.eat("MINUS")
            value = -self.eat("NUMBER").value
            return self.mark(LiteralPattern(value), tok)
        if tok.type in ("STRING", "BOOL"):
            self.eat(tok.type)
            return self.mark(LiteralPattern(tok.value), tok)
        self.error_here("match pattern (integer, string, boolean or '_')")

    def closure(self):
        # |a, b| expr    or    || expr
        tok = self.current_token
        params = []
        if tok.type == "OR":
            self.eat("OR")
        else:
            self.eat("PIPE")
            while not self.at("PIPE"):
                params.append(self.param())
                if not self.at("PIPE"):
                    self.eat("COMMA", "',' or '|' in closure parameters")
            self.eat("PIPE")
        self.check_unique_params(params, tok)

        body_expr = self.expr()
        if isinstance(body_expr, Block):
            body = body_expr
        else:
            body = Block([], body_expr)
            body.line, body.column, body.offset = body_expr.line, body_expr.column, body_expr.offset
        return self.mark(FunctionLiteral(params, body), tok)


def parse(tokens):
    """Parse a token list (as returned by ``tokenize``) into a Program."""
    return Parser(tokens).parse()


def parse_source(source):
    return parse(tokenize(source))
