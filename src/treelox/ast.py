"""AST node definitions for the Lox language."""

from dataclasses import dataclass

from .tokens import Token

# === Expressions ===


@dataclass(frozen=True, slots=True)
class LiteralExpr:
  """Literal value: number, string, true, false or nil."""

  value: float | str | bool | None


@dataclass(frozen=True, slots=True)
class GroupingExpr:
  """Parenthesized expression like (a + b)."""

  inner: "Expr"


@dataclass(frozen=True, slots=True)
class UnaryExpr:
  """Unary expression like -x or !b."""

  operator: Token
  operand: "Expr"


@dataclass(frozen=True, slots=True)
class BinaryExpr:
  """Binary expression like a + b or x < y."""

  left: "Expr"
  operator: Token
  right: "Expr"


@dataclass(frozen=True, slots=True)
class LogicalExpr:
  """Short-circuiting 'and' / 'or'."""

  left: "Expr"
  operator: Token
  right: "Expr"


# Variable and assignment nodes key the interpreter's resolution map, so they
# compare and hash by identity (two references to `a` are different keys) and
# are weakly referenceable.


@dataclass(frozen=True, slots=True, eq=False, weakref_slot=True)
class VarExpr:
  """Variable reference."""

  name: Token


@dataclass(frozen=True, slots=True, eq=False, weakref_slot=True)
class AssignExpr:
  """Assignment like x = 1."""

  name: Token
  value: "Expr"


@dataclass(frozen=True, slots=True)
class CallExpr:
  """Call like f(1, 2); paren is the closing ')' used to locate errors."""

  callee: "Expr"
  paren: Token
  args: tuple["Expr", ...]


Expr = LiteralExpr | GroupingExpr | UnaryExpr | BinaryExpr | LogicalExpr | VarExpr | AssignExpr | CallExpr


# === Statements ===


@dataclass(frozen=True, slots=True)
class ExprStmt:
  """Expression evaluated for its effect."""

  expr: Expr


@dataclass(frozen=True, slots=True)
class PrintStmt:
  """print expr;"""

  expr: Expr


@dataclass(frozen=True, slots=True)
class VarStmt:
  """var name = initializer;"""

  name: Token
  initializer: Expr | None


@dataclass(frozen=True, slots=True)
class BlockStmt:
  """{ statements }"""

  statements: tuple["Stmt", ...]


@dataclass(frozen=True, slots=True)
class IfStmt:
  """if (condition) then_branch else else_branch"""

  condition: Expr
  then_branch: "Stmt"
  else_branch: "Stmt | None"


@dataclass(frozen=True, slots=True)
class WhileStmt:
  """while (condition) body; for loops are desugared into this."""

  condition: Expr
  body: "Stmt"


@dataclass(frozen=True, slots=True)
class FunctionStmt:
  """fun name(params) { body }"""

  name: Token
  params: tuple[Token, ...]
  body: tuple["Stmt", ...]


@dataclass(frozen=True, slots=True)
class ReturnStmt:
  """return value; keyword locates errors."""

  keyword: Token
  value: Expr | None


@dataclass(frozen=True, slots=True)
class ClassStmt:
  """class Name { methods }"""

  name: Token
  methods: tuple[FunctionStmt, ...]


Stmt = ExprStmt | PrintStmt | VarStmt | BlockStmt | IfStmt | WhileStmt | FunctionStmt | ReturnStmt | ClassStmt
