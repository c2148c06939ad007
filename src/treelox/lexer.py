"""Lexer for the Lox language."""

from .diagnostics import Diagnostics
from .tokens import KEYWORDS, Token, TokenType

SIMPLE_TOKENS: dict[str, TokenType] = {
  "(": TokenType.LEFT_PAREN,
  ")": TokenType.RIGHT_PAREN,
  "{": TokenType.LEFT_BRACE,
  "}": TokenType.RIGHT_BRACE,
  ",": TokenType.COMMA,
  ".": TokenType.DOT,
  "-": TokenType.MINUS,
  "+": TokenType.PLUS,
  ";": TokenType.SEMICOLON,
  "*": TokenType.STAR,
}

# Operators that may be followed by '=' to form a two-character token
EQUAL_SUFFIXED: dict[str, tuple[TokenType, TokenType]] = {
  "!": (TokenType.BANG_EQUAL, TokenType.BANG),
  "=": (TokenType.EQUAL_EQUAL, TokenType.EQUAL),
  "<": (TokenType.LESS_EQUAL, TokenType.LESS),
  ">": (TokenType.GREATER_EQUAL, TokenType.GREATER),
}


def _is_digit(c: str) -> bool:
  return "0" <= c <= "9"


def _is_alpha(c: str) -> bool:
  return ("a" <= c <= "z") or ("A" <= c <= "Z") or c == "_"


def _is_alphanumeric(c: str) -> bool:
  return _is_alpha(c) or _is_digit(c)


class Lexer:
  """Turns Lox source text into a flat list of tokens ending in EOF.

  Errors are reported to the diagnostics object and scanning carries on, so a
  malformed input still yields a usable token list.
  """

  def __init__(self, source: str, diagnostics: Diagnostics | None = None) -> None:
    self.source = source
    self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
    self.start = 0
    self.pos = 0
    self.line = 1
    self.tokens: list[Token] = []

  def _at_end(self) -> bool:
    return self.pos >= len(self.source)

  def _current(self) -> str:
    return self.source[self.pos] if self.pos < len(self.source) else ""

  def _peek_next(self) -> str:
    return self.source[self.pos + 1] if self.pos + 1 < len(self.source) else ""

  def _advance(self) -> str:
    ch = self._current()
    self.pos += 1
    if ch == "\n":
      self.line += 1
    return ch

  def _match(self, expected: str) -> bool:
    if self._at_end() or self._current() != expected:
      return False
    self._advance()
    return True

  def _emit(self, type: TokenType, line: int, literal: float | str | None = None) -> None:
    self.tokens.append(Token(type, self.source[self.start : self.pos], literal, line))

  def _read_while(self, pred) -> str:
    start = self.pos
    while self._current() and pred(self._current()):
      self._advance()
    return self.source[start : self.pos]

  def _read_string(self, line: int) -> None:
    """Read a string literal; newlines are allowed inside."""
    self._read_while(lambda c: c != '"')
    if self._at_end():
      self.diagnostics.error(line, "Unterminated string.")
      return
    self._advance()  # consume closing quote
    self._emit(TokenType.STRING, line, self.source[self.start + 1 : self.pos - 1])

  def _read_number(self, line: int) -> None:
    self._read_while(_is_digit)
    if self._current() == "." and _is_digit(self._peek_next()):
      self._advance()  # consume '.'
      self._read_while(_is_digit)
    self._emit(TokenType.NUMBER, line, float(self.source[self.start : self.pos]))

  def _read_identifier(self, line: int) -> None:
    self._read_while(_is_alphanumeric)
    text = self.source[self.start : self.pos]
    self._emit(KEYWORDS.get(text, TokenType.IDENTIFIER), line)

  def _skip_block_comment(self, line: int) -> None:
    """Skip a /* ... */ comment; the terminator must be '*' immediately followed by '/'."""
    while not self._at_end() and not (self._current() == "*" and self._peek_next() == "/"):
      self._advance()
    if self._at_end():
      self.diagnostics.error(line, "Unterminated block comment.")
      return
    self._advance()
    self._advance()

  def _scan_token(self) -> None:
    line = self.line
    ch = self._advance()

    match ch:
      case " " | "\r" | "\t" | "\n":
        pass
      case c if c in SIMPLE_TOKENS:
        self._emit(SIMPLE_TOKENS[c], line)
      case c if c in EQUAL_SUFFIXED:
        two_type, one_type = EQUAL_SUFFIXED[c]
        self._emit(two_type if self._match("=") else one_type, line)
      case "/":
        if self._match("/"):
          self._read_while(lambda c: c != "\n")
        elif self._match("*"):
          self._skip_block_comment(line)
        else:
          self._emit(TokenType.SLASH, line)
      case '"':
        self._read_string(line)
      case c if _is_digit(c):
        self._read_number(line)
      case c if _is_alpha(c):
        self._read_identifier(line)
      case _:
        self.diagnostics.error(line, f"Unexpected character '{ch}'.")

  def tokenize(self) -> list[Token]:
    """Tokenize the entire source and return a list of tokens."""
    while not self._at_end():
      self.start = self.pos
      self._scan_token()

    self.tokens.append(Token(TokenType.EOF, "", None, self.line))
    return self.tokens


def tokenize(source: str, diagnostics: Diagnostics | None = None) -> list[Token]:
  """Convenience function to tokenize source code."""
  return Lexer(source, diagnostics).tokenize()
