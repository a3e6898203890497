#!/usr/bin/env python3
"""
Terminal front end for shuck.

This module provides the read-eval loop around CommandExecutor: it builds
the configuration from the hosting process, decides whether to show a
prompt, and feeds lines to the executor until end of input or ``exit``.

Design Principles:
- The environment is read once and then passed explicitly
- Clean separation between reading lines and executing them
- A failing line never ends the session
"""

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, TextIO

from loguru import logger

from .errors import ShellError, ShellExit
from .executor import CommandExecutor
from .history import DEFAULT_HISTORY_SHOWN, HistoryStore
from .orchestrator import DEFAULT_PATH, split_search_path

HISTORY_FILENAME = '.shuck_history'


@dataclass
class TerminalConfig:
    """Configuration for terminal session."""
    prompt: str = 'shuck> '
    default_path: str = DEFAULT_PATH
    search_path: List[str] = field(default_factory=lambda: split_search_path(None))
    environment: Dict[str, str] = field(default_factory=dict)
    history_file: Optional[str] = field(
        default_factory=lambda: str(Path.home() / HISTORY_FILENAME))
    history_shown: int = DEFAULT_HISTORY_SHOWN
    interactive: Optional[bool] = None  # None: decide from the TTYs

    @classmethod
    def from_environ(cls, environ: Optional[Mapping[str, str]] = None,
                     **overrides) -> 'TerminalConfig':
        """Build a configuration from a process environment."""
        if environ is None:
            environ = os.environ
        environment = dict(environ)

        config = cls(environment=environment, **overrides)
        if 'search_path' not in overrides:
            config.search_path = split_search_path(environment.get('PATH', config.default_path))
        if 'history_file' not in overrides and 'HOME' in environment:
            config.history_file = os.path.join(environment['HOME'], HISTORY_FILENAME)
        return config


class TerminalSession:
    """
    Main terminal session manager.

    This class provides the REPL loop and owns the history store and the
    executor for the lifetime of the session.
    """

    def __init__(self, config: Optional[TerminalConfig] = None,
                 stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None,
                 stderr: Optional[TextIO] = None):
        """Initialize terminal session."""
        self.config = config or TerminalConfig.from_environ()
        self.stdin = stdin or sys.stdin
        self.stdout = stdout
        self.stderr = stderr
        self.history = HistoryStore(self.config.history_file, self.config.history_shown)
        self.executor = CommandExecutor(
            self.history,
            self.config.search_path,
            self.config.environment,
            out=stdout,
            err=stderr,
        )
        self.exit_code = 0
        self.running = False

    @property
    def interactive(self) -> bool:
        if self.config.interactive is not None:
            return self.config.interactive
        out = self.stdout or sys.stdout
        try:
            return self.stdin.isatty() and out.isatty()
        except (AttributeError, ValueError):
            return False

    def execute_command(self, command_line: str) -> Optional[int]:
        """
        Execute a command line and return its status.

        Returns None for exit commands.
        """
        try:
            self.exit_code = self.executor.execute(command_line)
        except ShellExit as e:
            self.exit_code = e.code
            return None
        return self.exit_code

    def run_interactive(self) -> int:
        """Run the read-eval loop until end of input or exit."""
        self.running = True
        out = self.stdout or sys.stdout

        while self.running:
            if self.interactive:
                out.write(self.config.prompt)
                out.flush()

            line = self.stdin.readline()
            if not line:
                break

            if self.execute_command(line) is None:
                break

        self.running = False
        return self.exit_code

    def run_command(self, command_line: str) -> int:
        """
        Run a single command and return its status.

        This method is useful for non-interactive use.
        """
        self.execute_command(command_line)
        return self.exit_code

    def run_script(self, script_lines: List[str]) -> List[int]:
        """
        Run a script (list of command lines) and return the statuses.
        """
        codes = []
        for line in script_lines:
            status = self.execute_command(line)
            if status is None:  # Exit command
                break
            codes.append(status)
        return codes


def configure_logging(verbose: bool = False):
    """Send the package's log records to stderr."""
    logger.remove()
    logger.add(sys.stderr, level='DEBUG' if verbose else 'WARNING')
    logger.enable('shuck')


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the interpreter."""
    import argparse

    parser = argparse.ArgumentParser(prog='shuck', description='A small command interpreter')
    parser.add_argument('-c', '--command', help='Execute command and exit')
    parser.add_argument('--history-file', help='History file (default: $HOME/.shuck_history)')
    parser.add_argument('--no-prompt', action='store_true', help='Never print a prompt')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log internal steps to stderr')
    args = parser.parse_args(argv)

    configure_logging(args.verbose)

    overrides = {}
    if args.history_file:
        overrides['history_file'] = args.history_file
    if args.no_prompt:
        overrides['interactive'] = False

    try:
        session = TerminalSession(config=TerminalConfig.from_environ(**overrides))
    except ShellError as e:
        print(f"shuck: {e}", file=sys.stderr)
        return 1

    if args.command is not None:
        return session.run_command(args.command)
    return session.run_interactive()


if __name__ == '__main__':
    sys.exit(main())
