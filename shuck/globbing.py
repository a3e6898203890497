"""
Filesystem pattern expansion for command arguments.

Words containing ``*``, ``?``, ``[`` or ``~`` are replaced by the sorted
paths they match. A pattern that matches nothing is passed through
unchanged, like glob(3) with GLOB_NOCHECK.
"""

import glob
import os
from typing import Dict, List, Mapping, Optional, Set, Tuple

from loguru import logger

from .command_parser import CommandParser
from .errors import ShellSyntaxError

GLOB_CHARS = '*?[~'


def has_glob_chars(word: str) -> bool:
    return any(char in word for char in GLOB_CHARS)


def expand_tilde(pattern: str, home: Optional[str] = None) -> str:
    """Replace a leading '~' with the home directory."""
    if home is not None and (pattern == '~' or pattern.startswith('~/')):
        return home + pattern[1:]
    return os.path.expanduser(pattern)


def expand_word(pattern: str, home: Optional[str] = None) -> List[str]:
    """Return the matches for one pattern, or the pattern itself."""
    expanded = expand_tilde(pattern, home) if pattern.startswith('~') else pattern
    matches = sorted(glob.glob(expanded))

    if not matches:
        return [pattern]

    return list(dict.fromkeys(matches))


class GlobExpander:
    """
    Rewrites the arguments of a token sequence into their glob matches.

    ``~`` uses HOME from ``environment`` when given, else the process's.
    """

    def __init__(self, parser: Optional[CommandParser] = None,
                 environment: Optional[Mapping[str, str]] = None):
        self.parser = parser or CommandParser()
        self.environment = environment

    @property
    def home(self) -> Optional[str]:
        if self.environment is None:
            return None
        return self.environment.get('HOME')

    def expand(self, tokens: List[str]) -> List[str]:
        """
        Expand every argument holding a glob character.

        The program word is kept as typed. A redirection file word must
        expand to a single path, otherwise the line is an invalid
        redirection. When nothing is expanded the same list is returned;
        otherwise the words are joined with single spaces and tokenized
        again.
        """
        if not tokens:
            return tokens
        programs, files = self._positions(tokens)
        if not any(has_glob_chars(token) for i, token in enumerate(tokens) if i not in programs):
            return tokens

        home = self.home
        words = []
        for i, token in enumerate(tokens):
            if i in programs or not has_glob_chars(token):
                words.append(token)
                continue
            matches = expand_word(token, home)
            if i in files and len(matches) > 1:
                raise ShellSyntaxError(files[i])
            words.extend(matches)

        line = ' '.join(words)
        logger.debug("glob.expand {} -> {}", tokens, line)
        return self.parser.tokenize(line)

    @staticmethod
    def _positions(tokens: List[str]) -> Tuple[Set[int], Dict[int, str]]:
        """Indexes of program words, and of redirection file words by kind."""
        programs = {0}
        files = {}
        if tokens[0] == '<' and len(tokens) >= 3:
            programs = {0, 2}
            files[1] = 'input'
        if len(tokens) >= 2 and tokens[-2] == '>':
            files[len(tokens) - 1] = 'output'
        return programs, files
