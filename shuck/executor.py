#!/usr/bin/env python3
"""
Line execution for the shuck interpreter.

CommandExecutor takes one raw line through every step: tokenize, validate,
recall a bang reference, record to history, expand globs, then run the
builtin or hand the pipeline to the orchestrator.
"""

import sys
from typing import List, Mapping, Optional, Sequence, TextIO

from loguru import logger

from .builtins import BuiltinCommands
from .command_parser import Builtin, BuiltinKind, Command, CommandParser
from .errors import ArgumentError, BuiltinRedirectionError, ExecutionError, ShellError
from .globbing import GlobExpander
from .history import LAST, HistoryStore, parse_count
from .orchestrator import ProcessOrchestrator


class CommandExecutor:
    """
    Executes command lines against the host operating system.

    Every ShellError raised while handling a line is reported here as one
    line on ``err`` and turned into exit status 1; the caller can always
    go on to the next line.
    """

    def __init__(self, history: HistoryStore, search_path: Sequence[str],
                 environment: Mapping[str, str], out: Optional[TextIO] = None,
                 err: Optional[TextIO] = None):
        self.parser = CommandParser()
        self.history = history
        self.environment = dict(environment)
        self.globber = GlobExpander(self.parser, self.environment)
        self._out = out
        self._err = err
        self.orchestrator = ProcessOrchestrator(search_path, self.environment, out)
        self.builtins = BuiltinCommands(history, self.environment, out)

    @property
    def out(self) -> TextIO:
        return self._out or sys.stdout

    @property
    def err(self) -> TextIO:
        return self._err or sys.stderr

    def execute(self, line: str) -> int:
        """
        Execute one command line and return its exit status.

        ShellExit from the exit builtin is not caught.
        """
        try:
            return self._execute(line)
        except ShellError as e:
            logger.debug("executor.error type={} error={}", type(e).__name__, e)
            self.out.flush()
            print(str(e), file=self.err)
            self.err.flush()
            return 1

    def _execute(self, line: str) -> int:
        tokens = self.parser.tokenize(line)
        if not tokens:
            return 0

        logger.debug("executor.line tokens={}", tokens)
        command = self._parse(tokens)

        if isinstance(command, Builtin) and command.kind == BuiltinKind.BANG:
            tokens = self._recall(command.args)
            if not tokens:
                return 0
            command = self._parse(tokens)
            if isinstance(command, Builtin) and command.kind == BuiltinKind.BANG:
                # Recall is single-shot
                raise ArgumentError('history reference recalls another reference', '!')

        self._record(tokens)

        expanded = self.globber.expand(tokens)
        if expanded is not tokens:
            command = self.parser.parse(expanded)

        return self._dispatch(command)

    def _parse(self, tokens: List[str]) -> Command:
        try:
            return self.parser.parse(tokens)
        except BuiltinRedirectionError as e:
            # Well-formed lines are recorded even when a builtin refuses them
            if e.context != BuiltinKind.BANG.value:
                self._record(tokens)
            raise

    def _recall(self, args: List[str]) -> List[str]:
        """Replace a bang reference with the recalled, echoed line."""
        number = parse_count('!', args)
        text = self.history.recall(LAST if number is None else number)
        print(text, file=self.out)
        logger.debug("executor.recall ref={} text={}", number, text)
        return self.parser.tokenize(text)

    def _record(self, tokens: List[str]):
        try:
            self.history.record(' '.join(tokens))
        except ExecutionError as e:
            # The command still runs without a history entry
            print(str(e), file=self.err)

    def _dispatch(self, command: Command) -> int:
        if isinstance(command, Builtin):
            return self.builtins.run(command)
        return self.orchestrator.run(command, self.environment)
