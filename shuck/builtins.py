"""Commands the interpreter runs itself instead of spawning a program."""

import os
import sys
from typing import Callable, Dict, List, Mapping, Optional, TextIO

from .command_parser import Builtin, BuiltinKind
from .errors import ArgumentError, ExecutionError, ShellExit
from .history import HistoryStore, parse_count


class BuiltinCommands:
    """
    The pwd, cd, history and exit builtins.

    Each handler takes the argument words (without the command name),
    writes to ``out`` and returns an exit status. Failures are raised.
    """

    def __init__(self, history: HistoryStore, environment: Mapping[str, str],
                 out: Optional[TextIO] = None):
        self.history = history
        self.environment = environment
        self._out = out
        self._handlers: Dict[BuiltinKind, Callable[[List[str]], int]] = {
            BuiltinKind.PWD: self.pwd,
            BuiltinKind.CD: self.cd,
            BuiltinKind.HISTORY: self.history_cmd,
            BuiltinKind.EXIT: self.exit,
        }

    @property
    def out(self) -> TextIO:
        return self._out or sys.stdout

    def run(self, command: Builtin) -> int:
        return self._handlers[command.kind](command.args)

    def pwd(self, args: List[str]) -> int:
        """Print the current directory."""
        if args:
            raise ArgumentError('too many arguments', 'pwd')
        try:
            cwd = os.getcwd()
        except OSError as e:
            raise ExecutionError('getcwd', e) from e
        print(f"current directory is '{cwd}'", file=self.out)
        return 0

    def cd(self, args: List[str]) -> int:
        """
        Change the current directory.

        Usage:
            cd [DIR]

        Without DIR, changes to $HOME.
        """
        if len(args) > 1:
            raise ArgumentError('too many arguments', 'cd')

        target = args[0] if args else self.environment.get('HOME')
        if target is None:
            raise ArgumentError('HOME not set', 'cd')

        try:
            os.chdir(target)
        except FileNotFoundError:
            raise ArgumentError(f"{target}: No such file or directory", 'cd') from None
        except OSError as e:
            raise ExecutionError(f"cd: {target}", e) from e
        return 0

    def history_cmd(self, args: List[str]) -> int:
        """Print the N entries (default 10) recorded before this command."""
        count = parse_count('history', args)
        listing = self.history.display(count, before=self.history.last_sequence)
        if listing:
            print(listing, file=self.out)
        return 0

    def exit(self, args: List[str]) -> int:
        """Leave the interpreter with an optional status."""
        code = 0
        if len(args) > 1:
            raise ArgumentError('too many arguments', 'exit')
        if args:
            try:
                code = int(args[0])
            except ValueError:
                raise ArgumentError(f"{args[0]}: numeric argument required", 'exit') from None
        raise ShellExit(code)
