"""Tests for the treelox interpreter."""

import gc

import pytest

from treelox.ast import (
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
  LiteralExpr,
  LogicalExpr,
  FunctionStmt,
)
from treelox.diagnostics import Diagnostics, LoxRuntimeError
from treelox.environment import Environment
from treelox.interpreter import Interpreter
from treelox.lexer import tokenize
from treelox.parser import parse, parse_expression
from treelox.resolver import Resolver
from treelox.runner import Runner, run_source
from treelox.tokens import KEYWORDS, Token, TokenType


def name(lexeme: str) -> Token:
  return Token(TokenType.IDENTIFIER, lexeme, None, 1)


def parse_source(source: str, diagnostics: Diagnostics | None = None):
  diagnostics = diagnostics if diagnostics is not None else Diagnostics()
  return parse(tokenize(source, diagnostics), diagnostics)


def run(source: str, capsys) -> tuple[str, Diagnostics]:
  diagnostics = Diagnostics(color=False)
  run_source(source, diagnostics)
  return capsys.readouterr().out, diagnostics


class TestLexer:
  def test_basic_tokens(self):
    tokens = tokenize("1 + 2 * 3")
    types = [t.type for t in tokens]
    assert types == [
      TokenType.NUMBER,
      TokenType.PLUS,
      TokenType.NUMBER,
      TokenType.STAR,
      TokenType.NUMBER,
      TokenType.EOF,
    ]
    assert [t.literal for t in tokens[::2]] == [1.0, 2.0, 3.0, None]
    assert all(t.line == 1 for t in tokens)

  def test_two_character_operators(self):
    tokens = tokenize("! != = == < <= > >=")
    types = [t.type for t in tokens]
    assert types == [
      TokenType.BANG,
      TokenType.BANG_EQUAL,
      TokenType.EQUAL,
      TokenType.EQUAL_EQUAL,
      TokenType.LESS,
      TokenType.LESS_EQUAL,
      TokenType.GREATER,
      TokenType.GREATER_EQUAL,
      TokenType.EOF,
    ]

  def test_keywords_map_to_their_own_types(self):
    tokens = tokenize(" ".join(KEYWORDS))
    assert [t.type for t in tokens[:-1]] == list(KEYWORDS.values())
    assert len(set(KEYWORDS.values())) == len(KEYWORDS)
    assert tokenize("if")[0].type == TokenType.IF
    assert tokenize("for")[0].type == TokenType.FOR

  def test_identifiers(self):
    tokens = tokenize("foo _bar baz9 printer")
    assert [t.type for t in tokens[:-1]] == [TokenType.IDENTIFIER] * 4
    assert [t.lexeme for t in tokens[:-1]] == ["foo", "_bar", "baz9", "printer"]

  def test_string_literal(self):
    tokens = tokenize('"hello world"')
    assert tokens[0].type == TokenType.STRING
    assert tokens[0].literal == "hello world"
    assert tokens[0].lexeme == '"hello world"'

  def test_multiline_string_advances_line(self):
    tokens = tokenize('"a\nb" x')
    assert tokens[0].literal == "a\nb"
    assert tokens[0].line == 1
    assert tokens[1].line == 2

  def test_unterminated_string(self):
    diagnostics = Diagnostics(color=False)
    tokens = tokenize('print "abc', diagnostics)
    assert [t.type for t in tokens] == [TokenType.PRINT, TokenType.EOF]
    assert diagnostics.had_error
    assert diagnostics.messages == ["[line 1] Error: Unterminated string."]

  def test_numbers(self):
    assert tokenize("12.5")[0].literal == 12.5
    assert [t.type for t in tokenize("1.")] == [TokenType.NUMBER, TokenType.DOT, TokenType.EOF]
    assert [t.type for t in tokenize(".5")] == [TokenType.DOT, TokenType.NUMBER, TokenType.EOF]

  def test_line_comment(self):
    tokens = tokenize("// comment\nprint")
    assert tokens[0].type == TokenType.PRINT
    assert tokens[0].line == 2

  def test_block_comment_needs_star_slash(self):
    tokens = tokenize("/* a / b * c */ x")
    assert [t.type for t in tokens] == [TokenType.IDENTIFIER, TokenType.EOF]

  def test_block_comment_counts_lines(self):
    tokens = tokenize("/* one\ntwo\n*/ x")
    assert tokens[0].line == 3

  def test_unterminated_block_comment(self):
    diagnostics = Diagnostics(color=False)
    tokens = tokenize("1 /* never closed", diagnostics)
    assert [t.type for t in tokens] == [TokenType.NUMBER, TokenType.EOF]
    assert diagnostics.had_error

  def test_unexpected_character_is_skipped(self):
    diagnostics = Diagnostics(color=False)
    tokens = tokenize("1 @ 2", diagnostics)
    assert [t.type for t in tokens] == [TokenType.NUMBER, TokenType.NUMBER, TokenType.EOF]
    assert diagnostics.messages == ["[line 1] Error: Unexpected character '@'."]

  def test_whitespace_is_discarded(self):
    tokens = tokenize("\t 1\r\n")
    assert [t.type for t in tokens] == [TokenType.NUMBER, TokenType.EOF]
    assert tokens[-1].line == 2


class TestParser:
  def test_precedence(self):
    expr = parse_expression(tokenize("1 + 2 * 3"))
    assert isinstance(expr, BinaryExpr)
    assert expr.operator.type == TokenType.PLUS
    assert isinstance(expr.right, BinaryExpr)
    assert expr.right.operator.type == TokenType.STAR

  def test_left_associative(self):
    expr = parse_expression(tokenize("1 - 2 - 3"))
    assert isinstance(expr.left, BinaryExpr)
    assert expr.right == LiteralExpr(3.0)

  def test_assignment_right_associative(self):
    expr = parse_expression(tokenize("a = b = c"))
    assert isinstance(expr, AssignExpr)
    assert expr.name.lexeme == "a"
    assert isinstance(expr.value, AssignExpr)
    assert isinstance(expr.value.value, VarExpr)

  def test_unary_nesting(self):
    expr = parse_expression(tokenize("!!true"))
    assert isinstance(expr, UnaryExpr)
    assert isinstance(expr.operand, UnaryExpr)
    assert expr.operand.operand == LiteralExpr(True)

  def test_logical_precedence(self):
    expr = parse_expression(tokenize("a or b and c"))
    assert isinstance(expr, LogicalExpr)
    assert expr.operator.type == TokenType.OR
    assert isinstance(expr.right, LogicalExpr)
    assert expr.right.operator.type == TokenType.AND

  def test_comparison_below_term(self):
    expr = parse_expression(tokenize("1 + 2 < 4 == true"))
    assert expr.operator.type == TokenType.EQUAL_EQUAL
    assert expr.left.operator.type == TokenType.LESS
    assert expr.left.left.operator.type == TokenType.PLUS

  def test_chained_calls(self):
    expr = parse_expression(tokenize("f(1, 2)(3)"))
    assert isinstance(expr, CallExpr)
    assert len(expr.args) == 1
    assert isinstance(expr.callee, CallExpr)
    assert len(expr.callee.args) == 2
    assert expr.paren.type == TokenType.RIGHT_PAREN

  def test_missing_close_paren(self):
    diagnostics = Diagnostics(color=False)
    assert parse_expression(tokenize("(1 + 2", diagnostics), diagnostics) is None
    assert diagnostics.messages == ["[line 1] Error at end: Expect ')' after expression."]

  def test_var_declaration(self):
    statements = parse_source("var a = 1; var b;")
    assert isinstance(statements[0], VarStmt)
    assert statements[0].initializer == LiteralExpr(1.0)
    assert statements[1].initializer is None

  def test_for_desugars_to_while(self):
    statements = parse_source("for (var i = 0; i < 3; i = i + 1) print i;")
    outer = statements[0]
    assert isinstance(outer, BlockStmt)
    assert isinstance(outer.statements[0], VarStmt)
    loop = outer.statements[1]
    assert isinstance(loop, WhileStmt)
    assert isinstance(loop.body, BlockStmt)
    assert isinstance(loop.body.statements[0], PrintStmt)
    assert isinstance(loop.body.statements[1], ExprStmt)

  def test_for_without_clauses(self):
    statements = parse_source("for (;;) print 1;")
    loop = statements[0]
    assert isinstance(loop, WhileStmt)
    assert loop.condition == LiteralExpr(True)
    assert isinstance(loop.body, PrintStmt)

  def test_dangling_else_binds_to_nearest_if(self):
    statements = parse_source("if (a) if (b) print 1; else print 2;")
    outer = statements[0]
    assert isinstance(outer, IfStmt)
    assert outer.else_branch is None
    assert isinstance(outer.then_branch, IfStmt)
    assert outer.then_branch.else_branch is not None

  def test_function_declaration(self):
    statements = parse_source("fun add(a, b) { return a + b; }")
    func = statements[0]
    assert isinstance(func, FunctionStmt)
    assert func.name.lexeme == "add"
    assert [p.lexeme for p in func.params] == ["a", "b"]
    assert len(func.body) == 1

  def test_class_declaration(self):
    statements = parse_source("class Point { init(x) { } norm() { return 0; } }")
    cls = statements[0]
    assert isinstance(cls, ClassStmt)
    assert [m.name.lexeme for m in cls.methods] == ["init", "norm"]

  def test_invalid_assignment_target(self):
    diagnostics = Diagnostics(color=False)
    assert parse_source("1 = 2;", diagnostics) is None
    assert diagnostics.messages == ["[line 1] Error at '=': Invalid assignment target."]

  def test_error_recovery_reports_each_error_once(self):
    diagnostics = Diagnostics(color=False)
    assert parse_source("var = 1;\nprint 2;\nvar x = ;", diagnostics) is None
    assert diagnostics.messages == [
      "[line 1] Error at '=': Expect variable name.",
      "[line 3] Error at ';': Expect expression.",
    ]

  def test_error_inside_block_recovers_within_block(self):
    diagnostics = Diagnostics(color=False)
    assert parse_source("{ print ; print 1; }\nprint 2;", diagnostics) is None
    assert len(diagnostics.messages) == 1

  def test_error_at_closing_brace_stays_in_block(self):
    diagnostics = Diagnostics(color=False)
    assert parse_source("{ print }\nprint 2;", diagnostics) is None
    assert diagnostics.messages == ["[line 1] Error at '}': Expect expression."]

  def test_stray_closing_brace_at_top_level(self):
    diagnostics = Diagnostics(color=False)
    assert parse_source("}\nprint 2;", diagnostics) is None
    assert diagnostics.messages == ["[line 1] Error at '}': Expect expression."]

  def test_too_many_arguments(self):
    diagnostics = Diagnostics(color=False)
    args = ", ".join(["1"] * 256)
    assert parse_source(f"f({args});", diagnostics) is None
    assert diagnostics.messages[0].endswith("Can't have more than 255 arguments.")


class TestEnvironment:
  def test_define_and_redefine(self):
    env = Environment()
    env.define("a", 1.0)
    env.define("a", 2.0)
    assert env.get(name("a")) == 2.0

  def test_get_walks_enclosing(self):
    outer = Environment()
    outer.define("a", "outer")
    inner = Environment(outer)
    assert inner.get(name("a")) == "outer"

  def test_get_undefined(self):
    with pytest.raises(LoxRuntimeError, match="Undefined variable 'x'."):
      Environment(Environment()).get(name("x"))

  def test_assign_updates_defining_scope(self):
    outer = Environment()
    outer.define("a", 1.0)
    inner = Environment(outer)
    inner.assign(name("a"), 2.0)
    assert outer.values["a"] == 2.0
    assert "a" not in inner.values

  def test_assign_never_creates_binding(self):
    env = Environment()
    with pytest.raises(LoxRuntimeError, match="Undefined variable 'x'."):
      env.assign(name("x"), 1.0)
    assert "x" not in env.values

  def test_get_at_and_assign_at_hop_exactly(self):
    outer = Environment()
    outer.define("a", "outer")
    inner = Environment(outer)
    inner.define("a", "inner")
    assert inner.get_at(0, name("a")) == "inner"
    assert inner.get_at(1, name("a")) == "outer"
    inner.assign_at(1, name("a"), "changed")
    assert outer.values["a"] == "changed"
    assert inner.values["a"] == "inner"

  def test_ancestor_beyond_chain(self):
    with pytest.raises(RuntimeError, match="exceeds scope depth"):
      Environment(Environment()).ancestor(2)


class TestResolver:
  def resolve(self, source: str) -> tuple[list, Interpreter, Diagnostics]:
    diagnostics = Diagnostics(color=False)
    statements = parse_source(source, diagnostics)
    interpreter = Interpreter(diagnostics)
    Resolver(interpreter, diagnostics).resolve(statements)
    return statements, interpreter, diagnostics

  def test_records_local_distance(self):
    statements, interpreter, _ = self.resolve("{ var a = 1; { print a; } }")
    reference = statements[0].statements[1].statements[0].expr
    assert dict(interpreter.locals) == {reference: 1}

  def test_globals_are_not_recorded(self):
    _, interpreter, diagnostics = self.resolve("var a = 1; print a; a = 2;")
    assert len(interpreter.locals) == 0
    assert not diagnostics.had_error

  def test_same_name_references_are_distinct_keys(self):
    statements, interpreter, _ = self.resolve("{ var a = 1; print a; print a; }")
    first = statements[0].statements[1].expr
    second = statements[0].statements[2].expr
    assert interpreter.locals[first] == 0
    assert interpreter.locals[second] == 0
    assert len(interpreter.locals) == 2

  def test_top_level_return(self):
    _, _, diagnostics = self.resolve("return 1;")
    assert diagnostics.messages == ["[line 1] Error at 'return': Can't return from top-level code."]

  def test_read_in_own_initializer(self):
    _, _, diagnostics = self.resolve("{ var a = a; }")
    assert diagnostics.messages == ["[line 1] Error at 'a': Can't read local variable in its own initializer."]

  def test_duplicate_local(self):
    _, _, diagnostics = self.resolve("{ var a = 1; var a = 2; }")
    assert diagnostics.messages == ["[line 1] Error at 'a': Already a variable with this name in this scope."]

  def test_global_redeclaration_allowed(self, capsys):
    out, diagnostics = run("var a = 1; var a = 2; print a;", capsys)
    assert out == "2\n"
    assert not diagnostics.had_error


class TestInterpreter:
  def test_expression_mode(self):
    result = Runner().evaluate("1 + 2 * 3")
    assert result.success
    assert result.value == 7.0

  def test_block_scope_shadows(self, capsys):
    out, _ = run("var a = 1; { var a = 2; print a; } print a;", capsys)
    assert out == "2\n1\n"

  def test_block_assigns_outer(self, capsys):
    out, _ = run("var a = 1; { a = 2; } print a;", capsys)
    assert out == "2\n"

  def test_recursion(self, capsys):
    source = """
fun fib(n) {
  if (n < 2) return n;
  return fib(n - 1) + fib(n - 2);
}
print fib(10);
"""
    out, _ = run(source, capsys)
    assert out == "55\n"

  def test_self_reference(self, capsys):
    out, _ = run("fun f() { return f; } print f() == f; print f;", capsys)
    assert out == "true\n<fn f>\n"

  def test_closure_counter(self, capsys):
    source = """
fun makeCounter() {
  var count = 0;
  fun counter() {
    count = count + 1;
    return count;
  }
  return counter;
}
var a = makeCounter();
var b = makeCounter();
{ a(); }
print a();
print b();
"""
    out, _ = run(source, capsys)
    assert out == "2\n1\n"

  def test_closure_binds_lexically(self, capsys):
    source = """
var a = "global";
{
  fun show() { print a; }
  show();
  var a = "block";
  show();
}
"""
    out, _ = run(source, capsys)
    assert out == "global\nglobal\n"

  def test_while_closures_capture_each_iteration(self, capsys):
    source = """
var first;
var second;
var i = 0;
while (i < 2) {
  var j = i;
  fun show() { return j; }
  if (i == 0) first = show; else second = show;
  i = i + 1;
}
print first();
print second();
"""
    out, _ = run(source, capsys)
    assert out == "0\n1\n"

  def test_for_closures_capture_each_iteration(self, capsys):
    source = """
var first;
var second;
for (var i = 0; i < 2; i = i + 1) {
  var j = i * 10;
  fun show() { return j; }
  if (i == 0) first = show; else second = show;
}
print first();
print second();
"""
    out, _ = run(source, capsys)
    assert out == "0\n10\n"

  def test_division_by_zero_halts(self, capsys):
    out, diagnostics = run("print 1; print 1 / 0; print 2;", capsys)
    assert out == "1\n"
    assert diagnostics.had_runtime_error
    assert diagnostics.messages == ["Division by zero.\n[line 1]"]

  def test_truthiness(self, capsys):
    source = 'if (0) print "zero"; if ("") print "empty"; if (nil) print 1; else print "nil"; print !false;'
    out, _ = run(source, capsys)
    assert out == "zero\nempty\nnil\ntrue\n"

  def test_logical_returns_operand(self, capsys):
    out, _ = run('print nil or "x"; print false and 1; print 1 and 2; print 0 or 3;', capsys)
    assert out == "x\nfalse\n2\n0\n"

  def test_logical_short_circuits(self, capsys):
    source = 'fun boom() { print "boom"; return true; } print true or boom(); print false and boom();'
    out, _ = run(source, capsys)
    assert out == "true\nfalse\n"

  def test_string_concatenation(self, capsys):
    out, _ = run('print "a" + "b"; print "n=" + 1; print 2.5 + "x";', capsys)
    assert out == "ab\nn=1\n2.5x\n"

  @pytest.mark.parametrize(
    "source, message",
    [
      ('"a" - 1;', "Operands must be numbers."),
      ('-"a";', "Operand must be a number."),
      ("true + 1;", "Operands must be two numbers or two strings."),
      ('1 < "a";', "Operands must be numbers."),
      ("print x;", "Undefined variable 'x'."),
      ("x = 1;", "Undefined variable 'x'."),
      ("fun f(a) {} f();", "Expected 1 arguments but got 0."),
      ('"str"();', "Can only call functions."),
      ("clock(1);", "Expected 0 arguments but got 1."),
    ],
  )
  def test_runtime_errors(self, capsys, source, message):
    out, diagnostics = run(source, capsys)
    assert out == ""
    assert diagnostics.had_runtime_error
    assert diagnostics.messages == [f"{message}\n[line 1]"]

  def test_equality_does_not_coerce(self, capsys):
    out, _ = run('print true == 1; print nil == nil; print nil == false; print "a" == "a"; print 1 != 2;', capsys)
    assert out == "false\ntrue\nfalse\ntrue\ntrue\n"

  def test_display_formatting(self, capsys):
    out, _ = run("print 3; print 2.5; print nil; print true; print -0.5; print 10 / 4;", capsys)
    assert out == "3\n2.5\nnil\ntrue\n-0.5\n2.5\n"

  def test_top_level_expression_statement_prints(self, capsys):
    out, _ = run("1 + 1; { 5; }", capsys)
    assert out == "2\n"

  def test_clock(self, capsys):
    out, _ = run("print clock() > 0; print clock;", capsys)
    assert out == "true\n<native fn>\n"

  def test_return_unwinds_loops(self, capsys):
    source = """
fun find() {
  var i = 0;
  while (true) {
    if (i == 3) return i;
    i = i + 1;
  }
}
print find();
fun nothing() { return; }
print nothing();
"""
    out, _ = run(source, capsys)
    assert out == "3\nnil\n"

  def test_environment_restored_after_return(self):
    runner = Runner(Diagnostics(color=False))
    runner.run("fun f() { { { return 1; } } } f();")
    assert runner.interpreter.environment is runner.interpreter.globals

  def test_environment_restored_after_runtime_error(self):
    runner = Runner(Diagnostics(color=False))
    result = runner.run("fun f() { { var a = 1; return a / 0; } } f();")
    assert result.had_runtime_error
    assert runner.interpreter.environment is runner.interpreter.globals

  def test_class_declaration_is_noop(self, capsys):
    out, diagnostics = run("class A { m() { return 1; } } print 1;", capsys)
    assert out == "1\n"
    assert not diagnostics.had_error
    assert not diagnostics.had_runtime_error

  def test_stack_overflow(self, capsys):
    out, diagnostics = run("fun f() { return f(); } f();", capsys)
    assert diagnostics.messages == ["Stack overflow.\n[line 1]"]

  def test_deep_recursion(self, capsys):
    out, diagnostics = run("fun count(n) { if (n == 0) return 0; return 1 + count(n - 1); } print count(500);", capsys)
    assert out == "500\n"
    assert not diagnostics.had_runtime_error

  def test_deeply_nested_grouping(self, capsys):
    out, diagnostics = run("print " + "(" * 300 + "1" + ")" * 300 + ";", capsys)
    assert out == "1\n"
    assert not diagnostics.had_error

  def test_deterministic(self, capsys):
    source = 'var s = ""; for (var i = 0; i < 5; i = i + 1) s = s + i; print s;'
    first, _ = run(source, capsys)
    second, _ = run(source, capsys)
    assert first == second == "01234\n"


class TestRunner:
  def test_syntax_error_prevents_execution(self, capsys):
    out, diagnostics = run("print 1; print ;", capsys)
    assert out == ""
    assert diagnostics.had_error

  def test_static_error_prevents_execution(self, capsys):
    out, diagnostics = run("print 1; { var a = a; }", capsys)
    assert out == ""
    assert diagnostics.had_error

  def test_globals_persist_between_runs(self, capsys):
    runner = Runner(Diagnostics(color=False))
    runner.run("var a = 1;")
    failed = runner.run("print a / 0;")
    assert not failed.success
    result = runner.run("print a;")
    assert result.success
    assert capsys.readouterr().out == "1\n"

  def test_reset_between_runs(self):
    runner = Runner(Diagnostics(color=False))
    assert runner.run("print ;").had_error
    assert runner.run("print 1;").success
    assert runner.diagnostics.messages == []

  def test_evaluate_reports_runtime_error(self):
    result = Runner(Diagnostics(color=False)).evaluate("1 / 0")
    assert not result.success
    assert result.had_runtime_error

  def test_nesting_too_deep_is_reported(self, capsys):
    out, diagnostics = run("print " + "(" * 5000 + "1" + ")" * 5000 + ";\nprint 2;", capsys)
    assert out == ""
    assert len(diagnostics.messages) == 1
    assert diagnostics.messages[0].endswith("Expression nesting too deep.")

  def test_evaluate_nesting_too_deep(self):
    runner = Runner(Diagnostics(color=False))
    result = runner.evaluate("(" * 5000 + "1" + ")" * 5000)
    assert result.had_error
    assert runner.diagnostics.messages[0].endswith("Expression nesting too deep.")

  def test_finished_lines_release_resolved_nodes(self, capsys):
    runner = Runner(Diagnostics(color=False))
    runner.run("{ var a = 1; print a; }")
    gc.collect()
    assert len(runner.interpreter.locals) == 0

    runner.run("fun make() { var c = 0; fun inc() { c = c + 1; return c; } return inc; } var f = make();")
    gc.collect()
    assert len(runner.interpreter.locals) > 0
    runner.run("print f(); print f();")
    assert capsys.readouterr().out == "1\n1\n2\n"
