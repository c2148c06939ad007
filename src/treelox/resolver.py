"""Static resolution pass for the Lox language.

Walks the AST once before execution and tells the interpreter, for every
variable reference and assignment inside a local scope, how many scopes
separate it from its binding. Anything not found in a local scope is left
unrecorded and resolves in the global environment at runtime.
"""

from enum import Enum, auto

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
from .diagnostics import Diagnostics
from .interpreter import Interpreter
from .tokens import Token


class FunctionType(Enum):
  NONE = auto()
  FUNCTION = auto()
  METHOD = auto()


class Resolver:
  """Single-pass scope analysis with a stack of name -> defined? tables."""

  def __init__(self, interpreter: Interpreter, diagnostics: Diagnostics | None = None) -> None:
    self.interpreter = interpreter
    self.diagnostics = diagnostics if diagnostics is not None else interpreter.diagnostics
    # Local scopes only; the global scope is not tracked
    self.scopes: list[dict[str, bool]] = []
    self.current_function = FunctionType.NONE

  def resolve(self, statements: list[Stmt] | tuple[Stmt, ...]) -> None:
    for stmt in statements:
      self._resolve_stmt(stmt)

  def _enter_scope(self) -> None:
    self.scopes.append({})

  def _exit_scope(self) -> None:
    self.scopes.pop()

  def _declare(self, name: Token) -> None:
    if not self.scopes:
      return
    scope = self.scopes[-1]
    if name.lexeme in scope:
      self.diagnostics.token_error(name, "Already a variable with this name in this scope.")
    scope[name.lexeme] = False

  def _define(self, name: Token) -> None:
    if self.scopes:
      self.scopes[-1][name.lexeme] = True

  def _resolve_local(self, expr: Expr, name: Token) -> None:
    for depth, scope in enumerate(reversed(self.scopes)):
      if name.lexeme in scope:
        self.interpreter.resolve(expr, depth)
        return

  def _resolve_function(self, func: FunctionStmt, kind: FunctionType) -> None:
    enclosing = self.current_function
    self.current_function = kind

    self._enter_scope()
    for param in func.params:
      self._declare(param)
      self._define(param)
    self.resolve(func.body)
    self._exit_scope()

    self.current_function = enclosing

  def _resolve_stmt(self, stmt: Stmt) -> None:
    match stmt:
      case BlockStmt(statements):
        self._enter_scope()
        self.resolve(statements)
        self._exit_scope()

      case VarStmt(name, initializer):
        self._declare(name)
        if initializer is not None:
          self._resolve_expr(initializer)
        self._define(name)

      case FunctionStmt(name):
        # Defined before the body is resolved so the function can recurse
        self._declare(name)
        self._define(name)
        self._resolve_function(stmt, FunctionType.FUNCTION)

      case ClassStmt(name, methods):
        self._declare(name)
        self._define(name)
        for method in methods:
          self._resolve_function(method, FunctionType.METHOD)

      case ExprStmt(expr) | PrintStmt(expr):
        self._resolve_expr(expr)

      case IfStmt(condition, then_branch, else_branch):
        self._resolve_expr(condition)
        self._resolve_stmt(then_branch)
        if else_branch is not None:
          self._resolve_stmt(else_branch)

      case WhileStmt(condition, body):
        self._resolve_expr(condition)
        self._resolve_stmt(body)

      case ReturnStmt(keyword, value):
        if self.current_function == FunctionType.NONE:
          self.diagnostics.token_error(keyword, "Can't return from top-level code.")
        if value is not None:
          self._resolve_expr(value)

      case _:
        raise TypeError(f"Unknown statement: {stmt!r}")

  def _resolve_expr(self, expr: Expr) -> None:
    match expr:
      case VarExpr(name):
        if self.scopes and self.scopes[-1].get(name.lexeme) is False:
          self.diagnostics.token_error(name, "Can't read local variable in its own initializer.")
        self._resolve_local(expr, name)

      case AssignExpr(name, value):
        self._resolve_expr(value)
        self._resolve_local(expr, name)

      case BinaryExpr(left, _, right) | LogicalExpr(left, _, right):
        self._resolve_expr(left)
        self._resolve_expr(right)

      case UnaryExpr(_, operand):
        self._resolve_expr(operand)

      case GroupingExpr(inner):
        self._resolve_expr(inner)

      case CallExpr(callee, _, args):
        self._resolve_expr(callee)
        for arg in args:
          self._resolve_expr(arg)

      case LiteralExpr():
        pass

      case _:
        raise TypeError(f"Unknown expression: {expr!r}")
