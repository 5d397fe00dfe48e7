"""
Token kinds and the keyword table for the XIQI language.
"""
import enum
from dataclasses import dataclass
from typing import Dict


class TokenKind(enum.Enum):
    # Meta
    ILLEGAL = "ILLEGAL"
    EOF = "EOF"
    # Identifiers and literals
    IDENT = "IDENT"
    INT = "INT"
    STRING = "STRING"
    # Operators
    ASSIGN = "="
    PLUS = "+"
    MINUS = "-"
    BANG = "!"
    ASTERISK = "*"
    SLASH = "/"
    LT = "<"
    GT = ">"
    LEQ = "<="
    GEQ = ">="
    EQ = "=="
    NOT_EQ = "!="
    # Delimiters
    COMMA = ","
    SEMICOLON = ";"
    COLON = ":"
    LPAREN = "("
    RPAREN = ")"
    LBRACE = "{"
    RBRACE = "}"
    LBRACKET = "["
    RBRACKET = "]"
    # Keywords
    FUNCTION = "FUNCTION"
    LET = "LET"
    TRUE = "TRUE"
    FALSE = "FALSE"
    IF = "IF"
    ELSE = "ELSE"
    RETURN = "RETURN"
    HASH = "HASH"

    def __str__(self):
        return self.value


KEYWORDS: Dict[str, TokenKind] = {
    # fmt: off
    "fn":     TokenKind.FUNCTION,
    "let":    TokenKind.LET,
    "true":   TokenKind.TRUE,
    "false":  TokenKind.FALSE,
    "if":     TokenKind.IF,
    "else":   TokenKind.ELSE,
    "return": TokenKind.RETURN,
    "hash":   TokenKind.HASH,
    # fmt: on
}


@dataclass(frozen=True)
class Token:
    """A lexical unit: its kind and the exact source text it was read from."""
    kind: TokenKind
    literal: str


def lookup_ident(ident: str) -> TokenKind:
    """Classifies an identifier spelling as a keyword or a plain identifier."""
    return KEYWORDS.get(ident, TokenKind.IDENT)
