"""Lexer for the resource query language."""

import re

import ply.lex as lex


class QueryLexer:
    """Lexer for tokenizing queries and query files."""

    # Reserved keywords
    reserved = {
        "select": "SELECT",
        "where": "WHERE",
        "and": "AND",
        "or": "OR",
        "not": "NOT",
        "limit": "LIMIT",
        "skip": "SKIP",
        "query": "QUERY",
        "true": "TRUE",
        "false": "FALSE",
    }

    # Token list
    tokens = [
        "PARAMETER",
        "IDENTIFIER",
        "INTEGER",
        "FLOAT",
        "STRING",
        "DOT",
        "COLON",
        "LPAREN",
        "RPAREN",
        "LBRACE",
        "RBRACE",
        "EQ",
        "NEQ",
        "LT",
        "LTE",
        "GT",
        "GTE",
    ] + list(reserved.values())

    # Simple tokens
    t_DOT = r"\."
    t_COLON = r":"
    t_LPAREN = r"\("
    t_RPAREN = r"\)"
    t_LBRACE = r"\{"
    t_RBRACE = r"\}"
    t_EQ = r"=="
    t_NEQ = r"!="
    t_LTE = r"<="
    t_LT = r"<"
    t_GTE = r">="
    t_GT = r">"

    t_ignore = " \t\r"

    def __init__(self) -> None:
        self.lexer: lex.LexToken = None  # type: ignore

    # Function tokens are matched in definition order: parameters before
    # identifiers (both may start with '_'), floats before integers.

    def t_PARAMETER(self, t: lex.LexToken) -> lex.LexToken:
        r"_\$[a-zA-Z_][a-zA-Z0-9_]*"
        t.value = t.value[2:]  # Strip the _$ prefix, store just the name
        return t

    def t_FLOAT(self, t: lex.LexToken) -> lex.LexToken:
        r"-?\d+(?:\.\d+(?:[eE][-+]?\d+)?|[eE][-+]?\d+)"
        t.value = float(t.value)
        return t

    def t_INTEGER(self, t: lex.LexToken) -> lex.LexToken:
        r"-?\d+"
        t.value = int(t.value)
        return t

    def t_STRING(self, t: lex.LexToken) -> lex.LexToken:
        r"'([^'\\\n]|\\.)*'|\"([^\"\\\n]|\\.)*\""
        t.value = _unescape(t.value[1:-1])
        return t

    def t_BACKTICK_IDENTIFIER(self, t: lex.LexToken) -> lex.LexToken:
        r"`[^`]+`"
        # Strip backticks: always produces IDENTIFIER, bypassing keyword lookup
        t.value = t.value[1:-1]
        t.type = "IDENTIFIER"
        return t

    def t_IDENTIFIER(self, t: lex.LexToken) -> lex.LexToken:
        r"[a-zA-Z_][a-zA-Z0-9_]*"
        # Check if it's a reserved word (case-insensitive)
        t.type = self.reserved.get(t.value.lower(), "IDENTIFIER")
        return t

    def t_BLOCK_COMMENT(self, t: lex.LexToken) -> None:
        r"/\*(.|\n)*?\*/"
        t.lexer.lineno += t.value.count("\n")

    def t_LINE_COMMENT(self, t: lex.LexToken) -> None:
        r"//[^\n]*"
        pass  # Ignore comments

    def t_NEWLINE(self, t: lex.LexToken) -> None:
        r"\n+"
        t.lexer.lineno += len(t.value)

    def t_error(self, t: lex.LexToken) -> None:
        raise SyntaxError(f"Illegal character '{t.value[0]}' at position {t.lexpos}")

    # --- Lexer methods ---

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        self.lexer = lex.lex(module=self, **kwargs)

    def input(self, data: str) -> None:
        """Set the input string to tokenize."""
        self.lexer.lineno = 1
        self.lexer.input(data)

    def token(self) -> lex.LexToken | None:
        """Return the next token."""
        return self.lexer.token()

    def tokenize(self, data: str) -> list[lex.LexToken]:
        """Tokenize the input and return all tokens."""
        self.input(data)
        tokens = []
        while True:
            tok = self.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens


_ESCAPE_RE = re.compile(r"\\(.)")
_ESCAPES = {"n": "\n", "r": "\r", "t": "\t"}


def _unescape(text: str) -> str:
    """Resolve backslash escapes inside a quoted string literal."""
    return _ESCAPE_RE.sub(lambda m: _ESCAPES.get(m.group(1), m.group(1)), text)


# Module-level set of reserved keywords (lowercase) for use by other modules
RESERVED_KEYWORDS: frozenset[str] = frozenset(QueryLexer.reserved.keys())


def escape_if_keyword(name: str) -> str:
    """Wrap a name in backticks if it clashes with a reserved keyword."""
    if name.lower() in RESERVED_KEYWORDS:
        return f"`{name}`"
    return name
