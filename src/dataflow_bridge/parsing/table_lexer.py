"""Lexer for the table definition DSL."""

import ply.lex as lex


class TableLexer:
    """Lexer for tokenizing table definitions."""

    # Reserved keywords
    reserved = {
        "table": "TABLE",
        "index": "INDEX",
        "limit": "LIMIT",
    }

    # Token list
    tokens = [
        "IDENTIFIER",
        "INTEGER",
        "LPAREN",
        "RPAREN",
        "COLON",
        "COMMA",
    ] + list(reserved.values())

    # Simple tokens
    t_LPAREN = r"\("
    t_RPAREN = r"\)"
    t_COLON = r":"
    t_COMMA = r","

    # Ignored characters (spaces and tabs)
    t_ignore = " \t"

    # Comments
    t_ignore_COMMENT = r"\#[^\n]*"

    def __init__(self) -> None:
        self.lexer: lex.LexToken = None  # type: ignore

    def t_INTEGER(self, t: lex.LexToken) -> lex.LexToken:
        r"\d+"
        t.value = int(t.value)
        return t

    def t_IDENTIFIER(self, t: lex.LexToken) -> lex.LexToken:
        r"[a-zA-Z_][a-zA-Z0-9_]*"
        t.type = self.reserved.get(t.value, "IDENTIFIER")
        return t

    def t_NEWLINE(self, t: lex.LexToken) -> None:
        r"\n+"
        t.lexer.lineno += len(t.value)

    def t_error(self, t: lex.LexToken) -> None:
        raise SyntaxError(f"Illegal character '{t.value[0]}' at line {t.lineno}")

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        self.lexer = lex.lex(module=self, **kwargs)

    def tokenize(self, data: str) -> list[lex.LexToken]:
        """Tokenize the input and return all tokens."""
        self.lexer.input(data)
        tokens = []
        while True:
            tok = self.lexer.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens
