"""Tree-walking evaluator for the Lox language."""

import weakref
from typing import Any, TextIO
from dataclasses import dataclass

from .ast import (
  Expr,
  Stmt,
  IfStmt,
  VarExpr,
  VarStmt,
  CallExpr,
  ExprStmt,
  BlockStmt,
  ClassStmt,
  PrintStmt,
  UnaryExpr,
  WhileStmt,
  AssignExpr,
  BinaryExpr,
  ReturnStmt,
  LiteralExpr,
  LogicalExpr,
  FunctionStmt,
  GroupingExpr,
)
from .diagnostics import Diagnostics, LoxRuntimeError
from .environment import Environment
from .functions import NATIVES, Callable, UserFunction
from .tokens import Token, TokenType


@dataclass(frozen=True, slots=True)
class ReturnSignal:
  """Outcome of a statement that executed `return`; None means completed normally."""

  value: Any


def is_truthy(value: Any) -> bool:
  """nil and false are falsy, everything else (0 and "" included) is truthy."""
  if value is None:
    return False
  if isinstance(value, bool):
    return value
  return True


def is_equal(a: Any, b: Any) -> bool:
  """Equality without cross-type coercion: true == 1 is false."""
  if a is None or b is None:
    return a is None and b is None
  if type(a) is not type(b):
    return False
  return a == b


def is_number(value: Any) -> bool:
  return isinstance(value, float)


def stringify(value: Any) -> str:
  """Display text of a runtime value."""
  if value is None:
    return "nil"
  if isinstance(value, bool):
    return "true" if value else "false"
  if isinstance(value, float):
    text = repr(value)
    if text.endswith(".0"):
      text = text[:-2]
    return text
  return str(value)


def _check_number_operand(operator: Token, operand: Any) -> None:
  if not is_number(operand):
    raise LoxRuntimeError(operator, "Operand must be a number.")


def _check_number_operands(operator: Token, left: Any, right: Any) -> None:
  if not (is_number(left) and is_number(right)):
    raise LoxRuntimeError(operator, "Operands must be numbers.")


class Interpreter:
  """Evaluates statements against a chain of environments.

  `locals` maps VarExpr/AssignExpr nodes (by identity) to the number of scopes
  between the reference and its binding; it is filled by the resolver. Nodes
  without an entry are looked up in the global environment. Entries are weak,
  so a finished prompt line drops out unless a closure still holds its nodes.
  """

  def __init__(self, diagnostics: Diagnostics | None = None, out: TextIO | None = None) -> None:
    self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
    self.out = out
    self.globals = Environment()
    self.environment = self.globals
    self.locals: weakref.WeakKeyDictionary[Expr, int] = weakref.WeakKeyDictionary()

    for native in NATIVES:
      self.globals.define(native.name, native)

  def resolve(self, expr: Expr, depth: int) -> None:
    """Record that expr refers to a binding `depth` scopes up."""
    self.locals[expr] = depth

  def interpret(self, statements: list[Stmt]) -> None:
    """Run top-level statements; the first runtime error stops the batch."""
    try:
      for stmt in statements:
        if isinstance(stmt, ExprStmt):
          self._print(stringify(self.evaluate(stmt.expr)))
        elif self.execute(stmt) is not None:
          break  # top-level return ends the batch
    except LoxRuntimeError as e:
      self.diagnostics.runtime_error(e)

  def _print(self, text: str) -> None:
    print(text, file=self.out)

  # === Statements ===

  def execute(self, stmt: Stmt) -> ReturnSignal | None:
    """Execute a statement; a ReturnSignal means a return is unwinding."""
    match stmt:
      case ExprStmt(expr):
        self.evaluate(expr)

      case PrintStmt(expr):
        self._print(stringify(self.evaluate(expr)))

      case VarStmt(name, initializer):
        value = None if initializer is None else self.evaluate(initializer)
        self.environment.define(name.lexeme, value)

      case BlockStmt(statements):
        return self.execute_block(statements, Environment(self.environment))

      case IfStmt(condition, then_branch, else_branch):
        if is_truthy(self.evaluate(condition)):
          return self.execute(then_branch)
        if else_branch is not None:
          return self.execute(else_branch)

      case WhileStmt(condition, body):
        while is_truthy(self.evaluate(condition)):
          outcome = self.execute(body)
          if outcome is not None:
            return outcome

      case FunctionStmt(name):
        # Bound before the body ever runs, so the function can call itself
        self.environment.define(name.lexeme, UserFunction(stmt, self.environment))

      case ReturnStmt(_, value):
        return ReturnSignal(None if value is None else self.evaluate(value))

      case ClassStmt():
        pass

      case _:
        raise TypeError(f"Unknown statement: {stmt!r}")

    return None

  def execute_block(self, statements: tuple[Stmt, ...], environment: Environment) -> ReturnSignal | None:
    """Run statements in environment, restoring the current one on every exit path."""
    previous = self.environment
    try:
      self.environment = environment
      for stmt in statements:
        outcome = self.execute(stmt)
        if outcome is not None:
          return outcome
      return None
    finally:
      self.environment = previous

  # === Expressions ===

  def evaluate(self, expr: Expr) -> Any:
    """Evaluate an expression to a value."""
    match expr:
      case LiteralExpr(value):
        return value

      case GroupingExpr(inner):
        return self.evaluate(inner)

      case UnaryExpr(operator, operand):
        return self._unary(operator, self.evaluate(operand))

      case BinaryExpr(left, operator, right):
        left_value = self.evaluate(left)
        right_value = self.evaluate(right)
        return self._binary(operator, left_value, right_value)

      case LogicalExpr(left, operator, right):
        left_value = self.evaluate(left)
        if operator.type == TokenType.OR:
          if is_truthy(left_value):
            return left_value
        elif not is_truthy(left_value):
          return left_value
        return self.evaluate(right)

      case VarExpr(name):
        return self._look_up(name, expr)

      case AssignExpr(name, value_expr):
        value = self.evaluate(value_expr)
        distance = self.locals.get(expr)
        if distance is not None:
          self.environment.assign_at(distance, name, value)
        else:
          self.globals.assign(name, value)
        return value

      case CallExpr(callee, paren, args):
        return self._call(self.evaluate(callee), paren, [self.evaluate(arg) for arg in args])

    raise TypeError(f"Unknown expression: {expr!r}")

  def _look_up(self, name: Token, expr: Expr) -> Any:
    distance = self.locals.get(expr)
    if distance is not None:
      return self.environment.get_at(distance, name)
    return self.globals.get(name)

  def _unary(self, operator: Token, operand: Any) -> Any:
    match operator.type:
      case TokenType.BANG:
        return not is_truthy(operand)
      case TokenType.MINUS:
        _check_number_operand(operator, operand)
        return -operand
    raise TypeError(f"Unknown unary operator: {operator.lexeme}")

  def _binary(self, operator: Token, left: Any, right: Any) -> Any:
    match operator.type:
      case TokenType.PLUS:
        if is_number(left) and is_number(right):
          return left + right
        if isinstance(left, str) and isinstance(right, str):
          return left + right
        # Mixed string/number concatenation stringifies the number
        if isinstance(left, str) and is_number(right):
          return left + stringify(right)
        if is_number(left) and isinstance(right, str):
          return stringify(left) + right
        raise LoxRuntimeError(operator, "Operands must be two numbers or two strings.")
      case TokenType.MINUS:
        _check_number_operands(operator, left, right)
        return left - right
      case TokenType.STAR:
        _check_number_operands(operator, left, right)
        return left * right
      case TokenType.SLASH:
        _check_number_operands(operator, left, right)
        if right == 0:
          raise LoxRuntimeError(operator, "Division by zero.")
        return left / right
      case TokenType.GREATER:
        _check_number_operands(operator, left, right)
        return left > right
      case TokenType.GREATER_EQUAL:
        _check_number_operands(operator, left, right)
        return left >= right
      case TokenType.LESS:
        _check_number_operands(operator, left, right)
        return left < right
      case TokenType.LESS_EQUAL:
        _check_number_operands(operator, left, right)
        return left <= right
      case TokenType.EQUAL_EQUAL:
        return is_equal(left, right)
      case TokenType.BANG_EQUAL:
        return not is_equal(left, right)
    raise TypeError(f"Unknown binary operator: {operator.lexeme}")

  def _call(self, callee: Any, paren: Token, arguments: list[Any]) -> Any:
    if not isinstance(callee, Callable):
      raise LoxRuntimeError(paren, "Can only call functions.")
    if len(arguments) != callee.arity():
      raise LoxRuntimeError(paren, f"Expected {callee.arity()} arguments but got {len(arguments)}.")
    try:
      return callee.call(self, arguments)
    except RecursionError:
      raise LoxRuntimeError(paren, "Stack overflow.") from None
