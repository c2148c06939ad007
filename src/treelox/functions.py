"""Callable values: user-defined functions and native functions."""

import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any
from collections.abc import Callable as PyCallable

from .ast import FunctionStmt
from .environment import Environment

if TYPE_CHECKING:
  from .interpreter import Interpreter


class Callable(ABC):
  """Anything a Lox call expression can invoke."""

  @abstractmethod
  def arity(self) -> int:
    """Number of arguments the callable requires."""

  @abstractmethod
  def call(self, interpreter: "Interpreter", arguments: list[Any]) -> Any:
    """Invoke with already-evaluated arguments; len(arguments) == arity()."""


class UserFunction(Callable):
  """A function declaration paired with the environment it was declared in."""

  def __init__(self, declaration: FunctionStmt, closure: Environment) -> None:
    self.declaration = declaration
    self.closure = closure

  def arity(self) -> int:
    return len(self.declaration.params)

  def call(self, interpreter: "Interpreter", arguments: list[Any]) -> Any:
    environment = Environment(self.closure)
    for param, argument in zip(self.declaration.params, arguments):
      environment.define(param.lexeme, argument)

    outcome = interpreter.execute_block(self.declaration.body, environment)
    return outcome.value if outcome is not None else None

  def __str__(self) -> str:
    return f"<fn {self.declaration.name.lexeme}>"


class NativeFunction(Callable):
  """A callable implemented in Python."""

  def __init__(self, name: str, arity: int, function: PyCallable[..., Any]) -> None:
    self.name = name
    self._arity = arity
    self.function = function

  def arity(self) -> int:
    return self._arity

  def call(self, interpreter: "Interpreter", arguments: list[Any]) -> Any:
    return self.function(*arguments)

  def __str__(self) -> str:
    return "<native fn>"


def clock() -> float:
  """Wall-clock time in fractional seconds."""
  return time.time()


NATIVES: tuple[NativeFunction, ...] = (NativeFunction("clock", 0, clock),)
