from errors import CinderLexError
from values import INT_MAX


KEYWORDS = {
    "let": "LET",
    "fn": "FN",
    "fun": "FN",  # older spelling, same meaning
    "if": "IF",
    "else": "ELSE",
    "match": "MATCH",
    "for": "FOR",
    "in": "IN",
}

SIMPLE_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "0": "\0",
    "\\": "\\",
    "\"": "\"",
}

DIGITS = "0123456789"
HEX_DIGITS = "0123456789abcdefABCDEF"

# Longest spelling first so that "..=" wins over ".." and "." and so on.
OPERATORS = [
    ("..=", "DOTDOTEQ"),
    ("..", "DOTDOT"),
    ("->", "ARROW"),
    ("=>", "FATARROW"),
    ("==", "EQEQ"),
    ("!=", "NOTEQ"),
    ("<=", "LTE"),
    (">=", "GTE"),
    ("&&", "AND"),
    ("||", "OR"),
    ("{", "LBRACE"),
    ("}", "RBRACE"),
    ("(", "LPAREN"),
    (")", "RPAREN"),
    (",", "COMMA"),
    (";", "SEMI"),
    (":", "COLON"),
    ("|", "PIPE"),
    (".", "DOT"),
    ("=", "EQ"),
    ("<", "LT"),
    (">", "GT"),
    ("+", "PLUS"),
    ("-", "MINUS"),
    ("*", "STAR"),
    ("/", "SLASH"),
    ("%", "PERCENT"),
    ("!", "BANG"),
]


class Token:
    def __init__(self, type, value=None, line=1, column=1, offset=0):
        self.type = type
        self.value = value
        self.line = line
        self.column = column
        self.offset = offset

    def __repr__(self):
        if self.value is not None:
            return f"{self.type}({self.value!r})"
        return f"{self.type}"

    def describe(self):
        # Human readable form used in parse errors.
        if self.type == "EOF":
            return "end of input"
        if self.type == "IDENT":
            return f"identifier '{self.value}'"
        if self.type == "NUMBER":
            return f"integer {self.value}"
        if self.type == "STRING":
            return "string literal"
        for text, kind in OPERATORS:
            if kind == self.type:
                return f"'{text}'"
        for text, kind in KEYWORDS.items():
            if kind == self.type:
                return f"'{text}'"
        if self.type == "BOOL":
            return f"'{'true' if self.value else 'false'}'"
        if self.type == "UNDERSCORE":
            return "'_'"
        return self.type


class Lexer:
    def __init__(self, text):
        self.text = text
        self.pos = 0
        self.current_char = text[0] if text else None
        self.line = 1
        self.column = 1

    def advance(self):
        # track line/column based on current_char before moving
        if self.current_char == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        self.pos += 1
        if self.pos >= len(self.text):
            self.current_char = None
        else:
            self.current_char = self.text[self.pos]

    def peek(self):
        nxt = self.pos + 1
        if nxt >= len(self.text):
            return None
        return self.text[nxt]

    def error(self, message, line=None, column=None, offset=None):
        raise CinderLexError(
            message,
            line=self.line if line is None else line,
            column=self.column if column is None else column,
            offset=self.pos if offset is None else offset,
        )

    def skip_comment(self):
        while self.current_char and self.current_char != "\n":
            self.advance()

    def read_identifier(self):
        start_line, start_col, start = self.line, self.column, self.pos
        result = ""
        while self.current_char and (self.current_char.isalnum() or self.current_char == "_"):
            result += self.current_char
            self.advance()

        if result == "_":
            return Token("UNDERSCORE", line=start_line, column=start_col, offset=start)
        if result == "true":
            return Token("BOOL", True, line=start_line, column=start_col, offset=start)
        if result == "false":
            return Token("BOOL", False, line=start_line, column=start_col, offset=start)
        if result in KEYWORDS:
            return Token(KEYWORDS[result], line=start_line, column=start_col, offset=start)
        return Token("IDENT", result, line=start_line, column=start_col, offset=start)

    def read_number(self):
        start_line, start_col, start = self.line, self.column, self.pos
        result = ""
        while self.current_char and self.current_char in DIGITS:
            result += self.current_char
            self.advance()

        # "12abc" is neither a number nor an identifier
        if self.current_char and (self.current_char.isalpha() or self.current_char == "_"):
            self.error(f"Invalid number literal: {result}{self.current_char}", start_line, start_col, start)

        value = int(result)
        if value > INT_MAX + 1:
            self.error(f"Integer literal out of range: {result}", start_line, start_col, start)
        # INT_MAX + 1 is only valid as the operand of a unary minus; the parser checks that.
        return Token("NUMBER", value, line=start_line, column=start_col, offset=start)

    def read_string(self):
        start_line, start_col, start = self.line, self.column, self.pos
        self.advance()  # skip opening quote
        result = ""

        while self.current_char is not None and self.current_char != "\"":
            if self.current_char != "\\":
                result += self.current_char
                self.advance()
                continue

            esc_line, esc_col, esc_pos = self.line, self.column, self.pos
            self.advance()  # consume backslash
            esc = self.current_char
            if esc is None:
                break

            if esc in SIMPLE_ESCAPES:
                result += SIMPLE_ESCAPES[esc]
                self.advance()
                continue

            # \xHH -> the character with that code, e.g. \x1b for ANSI sequences
            if esc == "x":
                self.advance()
                digits = ""
                while len(digits) < 2 and self.current_char is not None and self.current_char in HEX_DIGITS:
                    digits += self.current_char
                    self.advance()
                if len(digits) != 2:
                    self.error("Invalid hex escape, expected two hex digits after \\x", esc_line, esc_col, esc_pos)
                result += chr(int(digits, 16))
                continue

            self.error(f"Invalid escape sequence: \\{esc}", esc_line, esc_col, esc_pos)

        if self.current_char != "\"":
            self.error(f"Unterminated string (started at line {start_line}, col {start_col})", start_line, start_col, start)

        self.advance()  # skip closing quote
        return Token("STRING", result, line=start_line, column=start_col, offset=start)

    def read_operator(self):
        start_line, start_col, start = self.line, self.column, self.pos
        for text, kind in OPERATORS:
            if self.text.startswith(text, self.pos):
                for _ in text:
                    self.advance()
                return Token(kind, line=start_line, column=start_col, offset=start)
        self.error(f"Unknown character: {self.current_char!r}")

    def get_next_token(self):
        while self.current_char:

            if self.current_char in " \t\r\n":
                self.advance()
                continue

            # comments
            if self.current_char == "/" and self.peek() == "/":
                self.skip_comment()
                continue

            # identifiers / keywords
            if self.current_char.isalpha() or self.current_char == "_":
                return self.read_identifier()

            # numbers
            if self.current_char in DIGITS:
                return self.read_number()

            if self.current_char == "\"":
                return self.read_string()

            return self.read_operator()

        return Token("EOF", line=self.line, column=self.column, offset=self.pos)


def tokenize(source):
    """Turn source text into a list of tokens ending with a single EOF token."""
    lexer = Lexer(source)
    tokens = []
    while True:
        tok = lexer.get_next_token()
        tokens.append(tok)
        if tok.type == "EOF":
            return tokens
