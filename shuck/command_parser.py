#!/usr/bin/env python3
"""
Command parser for the shuck interpreter.

This module turns one line of input into a structured command that the
orchestrator can run without looking at the tokens again.

Design Principles:
- Single responsibility: Parse commands, don't execute them
- Composable: tokenize, validate and classify are independent steps
- Positional grammar: '<' only first, '>' / '> >' only before the last word
- Testable: Pure functions with predictable outputs
"""

from typing import List, Optional, Union
from dataclasses import dataclass, field
from enum import Enum

from .errors import BuiltinRedirectionError, ShellSyntaxError


# Characters that tokenize() always returns as words by themselves.
SPECIAL_CHARS = '!><|'

# Characters that delimit words.
WORD_SEPARATORS = ' \t\r\n'

REDIRECT_IN = '<'
REDIRECT_OUT = '>'
PIPE = '|'
OPERATORS = (REDIRECT_IN, REDIRECT_OUT, PIPE)


class BuiltinKind(Enum):
    """Commands interpreted by the shell itself."""
    PWD = 'pwd'
    CD = 'cd'
    HISTORY = 'history'
    EXIT = 'exit'
    BANG = '!'

    @classmethod
    def lookup(cls, name: str) -> Optional['BuiltinKind']:
        try:
            return cls(name)
        except ValueError:
            return None


class OutputMode(Enum):
    """How standard output is bound to a file."""
    NONE = ''
    TRUNCATE = '>'
    APPEND = '>>'


@dataclass
class RedirectionSpec:
    """Input and output files for a command, both optional."""
    input_path: Optional[str] = None
    output_path: Optional[str] = None
    output_mode: OutputMode = OutputMode.NONE

    @property
    def is_empty(self) -> bool:
        return self.input_path is None and self.output_path is None

    def __str__(self) -> str:
        parts = []
        if self.input_path is not None:
            parts.append(f"< {self.input_path}")
        if self.output_path is not None:
            parts.append(f"{self.output_mode.value} {self.output_path}")
        return ' '.join(parts)


@dataclass
class Stage:
    """
    One external command of a pipeline.

    ``args`` is the full argument vector, program token included.
    ``path`` stays None until the orchestrator resolves the program.
    """
    args: List[str]
    path: Optional[str] = None

    @property
    def program(self) -> str:
        return self.args[0]

    def __str__(self) -> str:
        return ' '.join(self.args)


@dataclass
class Pipeline:
    """
    Represents a pipeline of commands connected by pipes.

    Stages run concurrently, each one reading what the previous one wrote.
    """
    stages: List[Stage] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.stages)

    def __str__(self) -> str:
        return ' | '.join(str(stage) for stage in self.stages)


@dataclass
class Builtin:
    """A command run inside the interpreter."""
    kind: BuiltinKind
    args: List[str]

    @property
    def name(self) -> str:
        return self.kind.value


@dataclass
class External:
    """A pipeline of one or more programs with optional redirection."""
    pipeline: Pipeline
    redirection: RedirectionSpec = field(default_factory=RedirectionSpec)

    @property
    def name(self) -> str:
        return self.pipeline.stages[0].program


Command = Union[Builtin, External]


def tokenize(line: str, separators: str = WORD_SEPARATORS,
             special_chars: str = SPECIAL_CHARS) -> List[str]:
    """
    Split a line into words.

    A word is the longest run of non-separator characters, cut short
    before any special character. A special character is always a word
    of its own, so ``a>>b`` gives ``['a', '>', '>', 'b']``.
    """
    tokens = []
    i = 0
    n = len(line)

    while i < n:
        # Skip leading separators
        while i < n and line[i] in separators:
            i += 1
        if i >= n:
            break

        end = i
        while end < n and line[end] not in separators and line[end] not in special_chars:
            end += 1
        if end == i:
            end = i + 1

        tokens.append(line[i:end])
        i = end

    return tokens


def command_position(tokens: List[str]) -> int:
    """Index of the program word: 2 after a leading '< file', else 0."""
    if tokens and tokens[0] == REDIRECT_IN and len(tokens) > 2:
        return 2
    return 0


def validate(tokens: List[str]) -> None:
    """
    Check the positions of '<', '>' and '|' in a token sequence.

    Raises ShellSyntaxError on a grammar violation, and
    BuiltinRedirectionError when a builtin is combined with any
    redirection or pipe token.
    """
    count = len(tokens)
    errors = set()

    for i, token in enumerate(tokens):
        if token == REDIRECT_IN:
            if count < 3 or i != 0 or tokens[1] in OPERATORS:
                errors.add('input')
        elif token == REDIRECT_OUT:
            if count < 3 or i == 0:
                errors.add('output')
            elif i == count - 3:
                # Only valid as the first half of '> >'
                if tokens[i + 1] != REDIRECT_OUT:
                    errors.add('output')
            elif i != count - 2:
                errors.add('output')
        elif token == PIPE:
            if count < 3 or i == 0 or i == count - 1 or tokens[i - 1] == PIPE:
                errors.add('pipe')

    for kind in ('input', 'output', 'pipe'):
        if kind in errors:
            raise ShellSyntaxError(kind)

    if not tokens:
        return

    program = tokens[command_position(tokens)]
    if BuiltinKind.lookup(program) and any(t in OPERATORS for t in tokens):
        raise BuiltinRedirectionError(program)


class CommandParser:
    """
    Parser for the interpreter's command syntax.

    This parser handles:
    - Words separated by blanks, with '!', '<', '>' and '|' always isolated
    - Input redirection (< file cmd ...)
    - Output redirection (cmd ... > file, cmd ... >> file)
    - Pipes (cmd1 | cmd2 | ...)
    - Builtin classification
    """

    def __init__(self, separators: str = WORD_SEPARATORS,
                 special_chars: str = SPECIAL_CHARS):
        self.separators = separators
        self.special_chars = special_chars

    def tokenize(self, line: str) -> List[str]:
        return tokenize(line, self.separators, self.special_chars)

    def parse(self, tokens: List[str]) -> Optional[Command]:
        """
        Validate and classify a token sequence.

        Returns None for an empty sequence.
        """
        if not tokens:
            return None

        validate(tokens)

        start = command_position(tokens)
        kind = BuiltinKind.lookup(tokens[start])
        if kind is not None:
            return Builtin(kind=kind, args=tokens[start + 1:])

        redirection, body = self._extract_redirections(tokens)
        if not body:
            raise ShellSyntaxError('input' if redirection.input_path else 'output')

        return External(pipeline=self._build_pipeline(body), redirection=redirection)

    def parse_line(self, line: str) -> Optional[Command]:
        """Tokenize and parse in one step."""
        return self.parse(self.tokenize(line))

    def _extract_redirections(self, tokens: List[str]):
        """Split validated tokens into a RedirectionSpec and the pipeline words."""
        spec = RedirectionSpec()
        start = 0
        end = len(tokens)

        if tokens[0] == REDIRECT_IN:
            spec.input_path = tokens[1]
            start = 2

        if REDIRECT_OUT in tokens:
            first = tokens.index(REDIRECT_OUT)
            spec.output_path = tokens[-1]
            if first == len(tokens) - 3:
                spec.output_mode = OutputMode.APPEND
            else:
                spec.output_mode = OutputMode.TRUNCATE
            end = first

        return spec, tokens[start:end]

    def _build_pipeline(self, words: List[str]) -> Pipeline:
        """Group words into stages at each '|'."""
        stages = []
        current = []

        for word in words:
            if word == PIPE:
                if not current:
                    raise ShellSyntaxError('pipe')
                stages.append(Stage(args=current))
                current = []
            else:
                current.append(word)

        if not current:
            raise ShellSyntaxError('pipe')
        stages.append(Stage(args=current))

        return Pipeline(stages=stages)
