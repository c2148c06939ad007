"""Error reporting shared by the lexer, parser, resolver and interpreter.

A `Diagnostics` object replaces process-wide error flags: each pipeline stage
reports into the instance it was given, and the host inspects `had_error` and
`had_runtime_error` to pick an exit status. Call `reset()` between independent
runs (one prompt line, one test program).
"""

import sys
from typing import TextIO

from termcolor import colored

from .tokens import Token, TokenType


class LoxRuntimeError(Exception):
  """Raised when a script fails during evaluation."""

  def __init__(self, token: Token, message: str) -> None:
    super().__init__(message)
    self.token = token
    self.message = message


class Diagnostics:
  """Collects and prints lexical, syntax, static and runtime errors."""

  ERROR = "red"

  def __init__(self, stream: TextIO | None = None, color: bool = True) -> None:
    self.stream = stream
    self.color = color
    self.had_error = False
    self.had_runtime_error = False
    self.messages: list[str] = []

  def reset(self) -> None:
    self.had_error = False
    self.had_runtime_error = False
    self.messages = []

  def error(self, line: int, message: str) -> None:
    """Report an error that is only known by its line."""
    self._report(line, "", message)

  def token_error(self, token: Token, message: str) -> None:
    """Report an error located at a token."""
    if token.type == TokenType.EOF:
      self._report(token.line, " at end", message)
    else:
      self._report(token.line, f" at '{token.lexeme}'", message)

  def runtime_error(self, error: LoxRuntimeError) -> None:
    text = f"{error.message}\n[line {error.token.line}]"
    self.messages.append(text)
    self._write(f"{self._label('Runtime error')}: {text}")
    self.had_runtime_error = True

  def _report(self, line: int, where: str, message: str) -> None:
    text = f"[line {line}] Error{where}: {message}"
    self.messages.append(text)
    self._write(f"[line {line}] {self._label('Error')}{where}: {message}")
    self.had_error = True

  def _label(self, text: str) -> str:
    if not self.color:
      return text
    return colored(text, Diagnostics.ERROR, attrs=["bold"])

  def _write(self, text: str) -> None:
    print(text, file=self.stream if self.stream is not None else sys.stderr)
