"""Source-to-effects pipeline for the Lox language."""

import sys
from typing import Any, TextIO
from pathlib import Path
from dataclasses import dataclass

from .diagnostics import Diagnostics, LoxRuntimeError
from .interpreter import Interpreter
from .lexer import tokenize
from .parser import Parser
from .resolver import Resolver

# Each Lox call costs about ten Python frames.
RECURSION_LIMIT = 10_000


@dataclass
class RunResult:
  """Result of running a piece of source."""

  success: bool
  had_error: bool = False
  had_runtime_error: bool = False
  value: Any = None


class Runner:
  """Orchestrates tokenize, parse, resolve and interpret.

  One Runner keeps one interpreter, so globals defined by one `run` call are
  visible to the next (the prompt relies on this). Diagnostics are reset at
  the start of every call. Creating a Runner raises the process recursion
  limit to RECURSION_LIMIT so scripts can recurse a few hundred calls deep.
  """

  def __init__(self, diagnostics: Diagnostics | None = None, out: TextIO | None = None) -> None:
    self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
    self.interpreter = Interpreter(self.diagnostics, out)
    if sys.getrecursionlimit() < RECURSION_LIMIT:
      sys.setrecursionlimit(RECURSION_LIMIT)

  def _result(self, value: Any = None) -> RunResult:
    return RunResult(
      success=not (self.diagnostics.had_error or self.diagnostics.had_runtime_error),
      had_error=self.diagnostics.had_error,
      had_runtime_error=self.diagnostics.had_runtime_error,
      value=value,
    )

  def run(self, source: str) -> RunResult:
    """Run a program; nothing executes if a syntax or static error was reported."""
    self.diagnostics.reset()

    tokens = tokenize(source, self.diagnostics)
    statements = Parser(tokens, self.diagnostics).parse()
    if statements is None or self.diagnostics.had_error:
      return self._result()

    Resolver(self.interpreter, self.diagnostics).resolve(statements)
    if self.diagnostics.had_error:
      return self._result()

    self.interpreter.interpret(statements)
    return self._result()

  def evaluate(self, source: str) -> RunResult:
    """Parse source as a single expression and return its value."""
    self.diagnostics.reset()

    tokens = tokenize(source, self.diagnostics)
    expr = Parser(tokens, self.diagnostics).parse_expression()
    if expr is None or self.diagnostics.had_error:
      return self._result()

    try:
      value = self.interpreter.evaluate(expr)
    except LoxRuntimeError as e:
      self.diagnostics.runtime_error(e)
      return self._result()
    return self._result(value)


def run_source(source: str, diagnostics: Diagnostics | None = None) -> RunResult:
  """Convenience function to run source in a fresh interpreter."""
  return Runner(diagnostics).run(source)


def run_file(source_path: Path, diagnostics: Diagnostics | None = None) -> RunResult:
  """Run a script file in a fresh interpreter."""
  return Runner(diagnostics).run(source_path.read_text())
