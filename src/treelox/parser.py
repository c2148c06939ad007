"""Recursive descent parser for the Lox language."""

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
from .tokens import Token, TokenType


class ParseError(Exception):
  """Raised when the parser encounters a syntax error."""

  def __init__(self, message: str, token: Token) -> None:
    super().__init__(f"{message} at line {token.line}")
    self.message = message
    self.token = token


# Operator precedence for binary and logical operators (higher = binds tighter).
# Assignment sits below all of these, unary and call above.
PRECEDENCE: dict[TokenType, int] = {
  TokenType.OR: 1,
  TokenType.AND: 2,
  TokenType.EQUAL_EQUAL: 3,
  TokenType.BANG_EQUAL: 3,
  TokenType.LESS: 4,
  TokenType.LESS_EQUAL: 4,
  TokenType.GREATER: 4,
  TokenType.GREATER_EQUAL: 4,
  TokenType.PLUS: 5,
  TokenType.MINUS: 5,
  TokenType.STAR: 6,
  TokenType.SLASH: 6,
}

LOGICAL_OPS: set[TokenType] = {TokenType.AND, TokenType.OR}

# Tokens that start a declaration or statement; error recovery stops before them
STATEMENT_STARTS: tuple[TokenType, ...] = (
  TokenType.CLASS,
  TokenType.FUN,
  TokenType.VAR,
  TokenType.FOR,
  TokenType.IF,
  TokenType.WHILE,
  TokenType.PRINT,
  TokenType.RETURN,
)

MAX_ARGS = 255
NESTING_TOO_DEEP = "Expression nesting too deep."


class Parser:
  """Parses tokens into an AST.

  Syntax errors are reported to the diagnostics object; the parser then skips
  to the next statement boundary and keeps going so that later errors are
  still found. `parse` returns None if anything was reported.
  """

  def __init__(self, tokens: list[Token], diagnostics: Diagnostics | None = None) -> None:
    self.tokens = tokens
    self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
    self.pos = 0
    self.block_depth = 0
    self.had_error = False

  def _current(self) -> Token:
    return self.tokens[self.pos]

  def _previous(self) -> Token:
    return self.tokens[self.pos - 1]

  def _at_end(self) -> bool:
    return self._current().type == TokenType.EOF

  def _check(self, *types: TokenType) -> bool:
    return self._current().type in types

  def _advance(self) -> Token:
    token = self._current()
    if not self._at_end():
      self.pos += 1
    return token

  def _expect(self, type: TokenType, message: str) -> Token:
    if not self._check(type):
      raise ParseError(message, self._current())
    return self._advance()

  def _report(self, token: Token, message: str) -> None:
    """Report an error without unwinding; parsing continues in place."""
    self.had_error = True
    self.diagnostics.token_error(token, message)

  def _synchronize(self) -> None:
    """Discard tokens until a likely statement boundary.

    Inside a block the closing brace is left for the block to consume.
    """
    if self.block_depth and self._check(TokenType.RIGHT_BRACE):
      return
    self._advance()
    while not self._at_end():
      if self._previous().type == TokenType.SEMICOLON:
        return
      if self._check(*STATEMENT_STARTS):
        return
      if self.block_depth and self._check(TokenType.RIGHT_BRACE):
        return
      self._advance()

  # === Entry Points ===

  def parse(self) -> list[Stmt] | None:
    """Parse a whole program; None if any syntax error was reported."""
    statements: list[Stmt] = []
    while not self._at_end():
      try:
        stmt = self._parse_declaration()
      except RecursionError:
        self._report(self._current(), NESTING_TOO_DEEP)
        self._synchronize()
        continue
      if stmt is not None:
        statements.append(stmt)
    return None if self.had_error else statements

  def parse_expression(self) -> Expr | None:
    """Parse a single expression spanning all tokens (prompt/eval mode)."""
    try:
      expr = self._parse_expression()
      self._expect(TokenType.EOF, "Expect end of expression.")
    except ParseError as e:
      self._report(e.token, e.message)
      return None
    except RecursionError:
      self._report(self._current(), NESTING_TOO_DEEP)
      return None
    return None if self.had_error else expr

  # === Declarations ===

  def _parse_declaration(self) -> Stmt | None:
    try:
      if self._check(TokenType.CLASS):
        return self._parse_class()
      if self._check(TokenType.FUN):
        self._advance()
        return self._parse_function("function")
      if self._check(TokenType.VAR):
        return self._parse_var()
      return self._parse_statement()
    except ParseError as e:
      self._report(e.token, e.message)
      self._synchronize()
      return None

  def _parse_class(self) -> ClassStmt:
    """Parse: class Name { method* }"""
    self._advance()  # consume 'class'
    name = self._expect(TokenType.IDENTIFIER, "Expect class name.")
    self._expect(TokenType.LEFT_BRACE, "Expect '{' before class body.")

    methods: list[FunctionStmt] = []
    while not self._check(TokenType.RIGHT_BRACE, TokenType.EOF):
      methods.append(self._parse_function("method"))

    self._expect(TokenType.RIGHT_BRACE, "Expect '}' after class body.")
    return ClassStmt(name, tuple(methods))

  def _parse_function(self, kind: str) -> FunctionStmt:
    """Parse: name(params) { body }; 'fun' already consumed for functions."""
    name = self._expect(TokenType.IDENTIFIER, f"Expect {kind} name.")
    self._expect(TokenType.LEFT_PAREN, f"Expect '(' after {kind} name.")
    params = self._parse_parameters()
    self._expect(TokenType.RIGHT_PAREN, "Expect ')' after parameters.")
    self._expect(TokenType.LEFT_BRACE, f"Expect '{{' before {kind} body.")
    body = self._parse_block()
    return FunctionStmt(name, tuple(params), tuple(body))

  def _parse_parameters(self) -> list[Token]:
    """Parse comma-separated parameter names."""
    params: list[Token] = []

    if self._check(TokenType.RIGHT_PAREN):
      return params

    params.append(self._expect(TokenType.IDENTIFIER, "Expect parameter name."))
    while self._check(TokenType.COMMA):
      self._advance()
      if len(params) >= MAX_ARGS:
        self._report(self._current(), f"Can't have more than {MAX_ARGS} parameters.")
      params.append(self._expect(TokenType.IDENTIFIER, "Expect parameter name."))

    return params

  def _parse_var(self) -> VarStmt:
    """Parse: var name [= expr];"""
    self._advance()  # consume 'var'
    name = self._expect(TokenType.IDENTIFIER, "Expect variable name.")
    initializer: Expr | None = None
    if self._check(TokenType.EQUAL):
      self._advance()
      initializer = self._parse_expression()
    self._expect(TokenType.SEMICOLON, "Expect ';' after variable declaration.")
    return VarStmt(name, initializer)

  # === Statements ===

  def _parse_statement(self) -> Stmt:
    """Parse a single statement."""
    if self._check(TokenType.FOR):
      return self._parse_for()
    elif self._check(TokenType.IF):
      return self._parse_if()
    elif self._check(TokenType.PRINT):
      return self._parse_print()
    elif self._check(TokenType.RETURN):
      return self._parse_return()
    elif self._check(TokenType.WHILE):
      return self._parse_while()
    elif self._check(TokenType.LEFT_BRACE):
      self._advance()
      return BlockStmt(tuple(self._parse_block()))
    else:
      return self._parse_expr_stmt()

  def _parse_block(self) -> list[Stmt]:
    """Parse: stmt* }; the opening brace is already consumed."""
    stmts: list[Stmt] = []

    self.block_depth += 1
    try:
      while not self._check(TokenType.RIGHT_BRACE, TokenType.EOF):
        stmt = self._parse_declaration()
        if stmt is not None:
          stmts.append(stmt)
    finally:
      self.block_depth -= 1

    self._expect(TokenType.RIGHT_BRACE, "Expect '}' after block.")
    return stmts

  def _parse_for(self) -> Stmt:
    """Parse: for (init; cond; incr) body; desugared into a while loop.

    The body and increment share a block, so each iteration runs in its own
    environment; the initializer lives in one enclosing block.
    """
    self._advance()  # consume 'for'
    self._expect(TokenType.LEFT_PAREN, "Expect '(' after 'for'.")

    initializer: Stmt | None
    if self._check(TokenType.SEMICOLON):
      self._advance()
      initializer = None
    elif self._check(TokenType.VAR):
      initializer = self._parse_var()
    else:
      initializer = self._parse_expr_stmt()

    condition: Expr | None = None
    if not self._check(TokenType.SEMICOLON):
      condition = self._parse_expression()
    self._expect(TokenType.SEMICOLON, "Expect ';' after loop condition.")

    increment: Expr | None = None
    if not self._check(TokenType.RIGHT_PAREN):
      increment = self._parse_expression()
    self._expect(TokenType.RIGHT_PAREN, "Expect ')' after for clauses.")

    body = self._parse_statement()

    if increment is not None:
      body = BlockStmt((body, ExprStmt(increment)))
    if condition is None:
      condition = LiteralExpr(True)
    body = WhileStmt(condition, body)
    if initializer is not None:
      body = BlockStmt((initializer, body))

    return body

  def _parse_if(self) -> IfStmt:
    """Parse: if (cond) stmt [else stmt]; else binds to the nearest if."""
    self._advance()  # consume 'if'
    self._expect(TokenType.LEFT_PAREN, "Expect '(' after 'if'.")
    condition = self._parse_expression()
    self._expect(TokenType.RIGHT_PAREN, "Expect ')' after if condition.")

    then_branch = self._parse_statement()
    else_branch: Stmt | None = None
    if self._check(TokenType.ELSE):
      self._advance()
      else_branch = self._parse_statement()

    return IfStmt(condition, then_branch, else_branch)

  def _parse_print(self) -> PrintStmt:
    self._advance()  # consume 'print'
    value = self._parse_expression()
    self._expect(TokenType.SEMICOLON, "Expect ';' after value.")
    return PrintStmt(value)

  def _parse_return(self) -> ReturnStmt:
    """Parse: return [expr];"""
    keyword = self._advance()  # consume 'return'
    value: Expr | None = None
    if not self._check(TokenType.SEMICOLON):
      value = self._parse_expression()
    self._expect(TokenType.SEMICOLON, "Expect ';' after return value.")
    return ReturnStmt(keyword, value)

  def _parse_while(self) -> WhileStmt:
    """Parse: while (cond) stmt"""
    self._advance()  # consume 'while'
    self._expect(TokenType.LEFT_PAREN, "Expect '(' after 'while'.")
    condition = self._parse_expression()
    self._expect(TokenType.RIGHT_PAREN, "Expect ')' after condition.")
    body = self._parse_statement()
    return WhileStmt(condition, body)

  def _parse_expr_stmt(self) -> ExprStmt:
    """Parse an expression statement."""
    expr = self._parse_expression()
    self._expect(TokenType.SEMICOLON, "Expect ';' after expression.")
    return ExprStmt(expr)

  # === Expression Parsing with Precedence Climbing ===

  def _parse_expression(self) -> Expr:
    """Parse an expression."""
    return self._parse_assignment()

  def _parse_assignment(self) -> Expr:
    """Parse assignment; right associative, so a = b = c assigns c to both."""
    expr = self._parse_binary(0)

    if self._check(TokenType.EQUAL):
      equals = self._advance()
      value = self._parse_assignment()
      if isinstance(expr, VarExpr):
        return AssignExpr(expr.name, value)
      self._report(equals, "Invalid assignment target.")

    return expr

  def _parse_binary(self, min_prec: int) -> Expr:
    """Parse binary and logical operators with precedence climbing; all left associative."""
    left = self._parse_unary()

    while True:
      token = self._current()
      prec = PRECEDENCE.get(token.type)

      if prec is None or prec < min_prec:
        break

      self._advance()
      right = self._parse_binary(prec + 1)
      if token.type in LOGICAL_OPS:
        left = LogicalExpr(left, token, right)
      else:
        left = BinaryExpr(left, token, right)

    return left

  def _parse_unary(self) -> Expr:
    """Parse unary expression."""
    if self._check(TokenType.BANG, TokenType.MINUS):
      operator = self._advance()
      operand = self._parse_unary()
      return UnaryExpr(operator, operand)

    return self._parse_call()

  def _parse_call(self) -> Expr:
    """Parse a primary followed by any number of call suffixes: f(a)(b)."""
    expr = self._parse_primary()

    while self._check(TokenType.LEFT_PAREN):
      self._advance()
      args = self._parse_arguments()
      paren = self._expect(TokenType.RIGHT_PAREN, "Expect ')' after arguments.")
      expr = CallExpr(expr, paren, tuple(args))

    return expr

  def _parse_arguments(self) -> list[Expr]:
    """Parse comma-separated arguments."""
    args: list[Expr] = []

    if self._check(TokenType.RIGHT_PAREN):
      return args

    args.append(self._parse_expression())
    while self._check(TokenType.COMMA):
      self._advance()
      if len(args) >= MAX_ARGS:
        self._report(self._current(), f"Can't have more than {MAX_ARGS} arguments.")
      args.append(self._parse_expression())

    return args

  def _parse_primary(self) -> Expr:
    """Parse primary expression (literals, variables, parenthesized)."""
    token = self._current()

    match token.type:
      case TokenType.FALSE:
        self._advance()
        return LiteralExpr(False)
      case TokenType.TRUE:
        self._advance()
        return LiteralExpr(True)
      case TokenType.NIL:
        self._advance()
        return LiteralExpr(None)
      case TokenType.NUMBER | TokenType.STRING:
        self._advance()
        return LiteralExpr(token.literal)
      case TokenType.IDENTIFIER:
        self._advance()
        return VarExpr(token)
      case TokenType.LEFT_PAREN:
        self._advance()
        inner = self._parse_expression()
        self._expect(TokenType.RIGHT_PAREN, "Expect ')' after expression.")
        return GroupingExpr(inner)

    raise ParseError("Expect expression.", token)


def parse(tokens: list[Token], diagnostics: Diagnostics | None = None) -> list[Stmt] | None:
  """Convenience function to parse tokens into a list of statements."""
  return Parser(tokens, diagnostics).parse()


def parse_expression(tokens: list[Token], diagnostics: Diagnostics | None = None) -> Expr | None:
  """Convenience function to parse tokens as a single expression."""
  return Parser(tokens, diagnostics).parse_expression()
