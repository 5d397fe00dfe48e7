"""
The XIQI lexer: turns source text into a lazy stream of tokens.

Only integers are recognised as numbers (no sign, no decimal point) and
string literals carry no escape sequences.
"""
from typing import Iterator

from xiqi.xiqi_tokens import Token, TokenKind, lookup_ident

# Operators that may be followed by '=' to form a two-character operator.
_SINGLE_OR_EQ = {
    "=": (TokenKind.ASSIGN, TokenKind.EQ),
    "!": (TokenKind.BANG, TokenKind.NOT_EQ),
    "<": (TokenKind.LT, TokenKind.LEQ),
    ">": (TokenKind.GT, TokenKind.GEQ),
}

_SINGLE = {
    "+": TokenKind.PLUS,
    "-": TokenKind.MINUS,
    "*": TokenKind.ASTERISK,
    "/": TokenKind.SLASH,
    ",": TokenKind.COMMA,
    ";": TokenKind.SEMICOLON,
    ":": TokenKind.COLON,
    "(": TokenKind.LPAREN,
    ")": TokenKind.RPAREN,
    "{": TokenKind.LBRACE,
    "}": TokenKind.RBRACE,
    "[": TokenKind.LBRACKET,
    "]": TokenKind.RBRACKET,
}

_WHITESPACE = " \t\n\r"


class Lexer:
    EOF_LITERAL = ""

    def __init__(self, source: str):
        self.source: str = source
        self.position: int = 0

    @staticmethod
    def _is_letter(ch: str) -> bool:
        return ("a" <= ch <= "z") or ("A" <= ch <= "Z") or ch == "_"

    @staticmethod
    def _is_digit(ch: str) -> bool:
        return "0" <= ch <= "9"

    def _current_character(self) -> str:
        if self.position >= len(self.source):
            return Lexer.EOF_LITERAL
        return self.source[self.position]

    def _peek_character(self) -> str:
        if self.position + 1 >= len(self.source):
            return Lexer.EOF_LITERAL
        return self.source[self.position + 1]

    def _is_eof(self) -> bool:
        return self.position >= len(self.source)

    def _skip_whitespace(self) -> None:
        while not self._is_eof() and self.source[self.position] in _WHITESPACE:
            self.position += 1

    def _read_while(self, predicate) -> str:
        start = self.position
        while not self._is_eof() and predicate(self.source[self.position]):
            self.position += 1
        return self.source[start:self.position]

    def _read_string(self) -> str:
        # Skip the opening quote; an unterminated string runs to end of input.
        self.position += 1
        start = self.position
        while not self._is_eof() and self.source[self.position] != '"':
            self.position += 1
        text = self.source[start:self.position]
        if not self._is_eof():
            self.position += 1
        return text

    def next_token(self) -> Token:
        self._skip_whitespace()
        ch = self._current_character()

        if ch == Lexer.EOF_LITERAL:
            return Token(TokenKind.EOF, Lexer.EOF_LITERAL)

        if ch in _SINGLE_OR_EQ:
            single, double = _SINGLE_OR_EQ[ch]
            if self._peek_character() == "=":
                self.position += 2
                return Token(double, ch + "=")
            self.position += 1
            return Token(single, ch)

        if ch in _SINGLE:
            self.position += 1
            return Token(_SINGLE[ch], ch)

        if ch == '"':
            return Token(TokenKind.STRING, self._read_string())

        if Lexer._is_letter(ch):
            ident = self._read_while(Lexer._is_letter)
            return Token(lookup_ident(ident), ident)

        if Lexer._is_digit(ch):
            return Token(TokenKind.INT, self._read_while(Lexer._is_digit))

        self.position += 1
        return Token(TokenKind.ILLEGAL, ch)

    def __iter__(self) -> Iterator[Token]:
        """Yields tokens on demand, ending with (and including) the first EOF token."""
        while True:
            token = self.next_token()
            yield token
            if token.kind == TokenKind.EOF:
                return


def tokenize(source: str) -> list[Token]:
    return list(Lexer(source))
