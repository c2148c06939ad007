"""Interactive prompt for the Lox interpreter. Uses cmd as backend."""

import cmd

from .runner import Runner


class Shell(cmd.Cmd):
  """Lox prompt; each line is run as a program against shared globals."""

  intro = "treelox :: tree-walking Lox interpreter\nType 'exit' or Ctrl-D to leave."
  prompt = "> "

  def __init__(self, runner: Runner | None = None, *args, **kwargs) -> None:
    super().__init__(*args, **kwargs)
    self.runner = runner if runner is not None else Runner()

  def default(self, line: str) -> None:
    """Runs a line of Lox; a bare expression statement echoes its value."""
    self.runner.run(line)

  def emptyline(self) -> bool:
    """Do not repeat previous command on empty line."""
    return False

  def do_EOF(self, arg: str) -> bool:
    """Exits interpreter."""
    print(file=self.stdout)
    return self.do_exit(arg)

  def do_exit(self, arg: str) -> bool:
    """Exits interpreter."""
    return True
