"""Command-line interface for the treelox interpreter."""

import sys
import argparse
from pathlib import Path

from .diagnostics import Diagnostics
from .interpreter import stringify
from .runner import Runner
from .shell import Shell

EXIT_NO_INPUT = 1
EXIT_DATA_ERROR = 65
EXIT_SOFTWARE = 70


def _exit_code(had_error: bool, had_runtime_error: bool) -> int:
  if had_error:
    return EXIT_DATA_ERROR
  if had_runtime_error:
    return EXIT_SOFTWARE
  return 0


def main(argv: list[str] | None = None) -> int:
  """Main entry point for the treelox interpreter."""
  parser = argparse.ArgumentParser(
    prog="treelox",
    description="treelox - a tree-walking interpreter for the Lox scripting language",
  )
  parser.add_argument("script", type=Path, nargs="?", help="Script to run (.lox); starts a prompt if omitted")
  parser.add_argument("-e", "--eval", metavar="EXPR", help="Evaluate a single expression and print its value")
  parser.add_argument(
    "--no-color",
    action="store_true",
    help="Print diagnostics without terminal colors",
  )

  args = parser.parse_args(argv)

  runner = Runner(Diagnostics(color=not args.no_color))

  if args.eval is not None:
    result = runner.evaluate(args.eval)
    if result.success:
      print(stringify(result.value))
    return _exit_code(result.had_error, result.had_runtime_error)

  if args.script is None:
    Shell(runner).cmdloop()
    return 0

  # Validate source file
  if not args.script.exists():
    print(f"Error: Script '{args.script}' not found", file=sys.stderr)
    return EXIT_NO_INPUT

  result = runner.run(args.script.read_text())
  return _exit_code(result.had_error, result.had_runtime_error)


if __name__ == "__main__":
  sys.exit(main())
