"""Lexical environments: name bindings chained to an enclosing scope."""

from typing import Any

from .diagnostics import LoxRuntimeError
from .tokens import Token


class Environment:
  """One scope's bindings plus a link to the scope it was created in.

  Closures keep a reference to the environment they were declared in, so an
  environment lives as long as any function value or active call uses it.
  """

  def __init__(self, enclosing: "Environment | None" = None) -> None:
    self.values: dict[str, Any] = {}
    self.enclosing = enclosing

  def define(self, name: str, value: Any) -> None:
    """Bind name in this scope only; redefinition overwrites."""
    self.values[name] = value

  def get(self, name: Token) -> Any:
    environment: Environment | None = self
    while environment is not None:
      if name.lexeme in environment.values:
        return environment.values[name.lexeme]
      environment = environment.enclosing
    raise LoxRuntimeError(name, f"Undefined variable '{name.lexeme}'.")

  def assign(self, name: Token, value: Any) -> None:
    """Rebind an existing name in the nearest scope that defines it."""
    environment: Environment | None = self
    while environment is not None:
      if name.lexeme in environment.values:
        environment.values[name.lexeme] = value
        return
      environment = environment.enclosing
    raise LoxRuntimeError(name, f"Undefined variable '{name.lexeme}'.")

  def ancestor(self, distance: int) -> "Environment":
    environment = self
    for _ in range(distance):
      if environment.enclosing is None:
        raise RuntimeError(f"Resolved distance {distance} exceeds scope depth")
      environment = environment.enclosing
    return environment

  def get_at(self, distance: int, name: Token) -> Any:
    """Read name from the scope exactly `distance` hops up, without searching."""
    values = self.ancestor(distance).values
    if name.lexeme not in values:
      raise LoxRuntimeError(name, f"Undefined variable '{name.lexeme}'.")
    return values[name.lexeme]

  def assign_at(self, distance: int, name: Token, value: Any) -> None:
    values = self.ancestor(distance).values
    if name.lexeme not in values:
      raise LoxRuntimeError(name, f"Undefined variable '{name.lexeme}'.")
    values[name.lexeme] = value
