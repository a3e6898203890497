"""
Command history for the shuck interpreter.

History is an append-only log kept in a flat file, one command per line,
oldest first. The line number of a command in the file is its sequence
number, so ``!0`` recalls the first command ever recorded.
"""

import os
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Union

from loguru import logger

from .errors import ArgumentError, ExecutionError, HistoryRangeError

DEFAULT_HISTORY_SHOWN = 10
LAST = 'last'


@dataclass(frozen=True)
class HistoryEntry:
    """A recorded command line and its sequence number."""
    sequence: int
    text: str

    def __str__(self) -> str:
        return f"{self.sequence}: {self.text}"


def parse_count(context: str, args: Sequence[str]) -> Optional[int]:
    """
    Parse the optional numeric argument of ``history`` or ``!``.

    Returns None when no argument was given.
    """
    if len(args) > 1:
        raise ArgumentError('too many arguments', context)
    if not args:
        return None
    if not (args[0].isascii() and args[0].isdigit()):
        raise ArgumentError(f"{args[0]}: numeric argument required", context)
    return int(args[0])


class HistoryStore:
    """
    Manages the persistent command history.

    Entries are loaded from ``history_file`` on construction and every
    recorded line is appended to it straight away. Without a file the
    store lives in memory only.
    """

    def __init__(self, history_file: Optional[str] = None,
                 default_shown: int = DEFAULT_HISTORY_SHOWN):
        self.history_file = history_file
        self.default_shown = default_shown
        self._entries: List[HistoryEntry] = []
        self._load()

    def _load(self):
        if not self.history_file or not os.path.exists(self.history_file):
            return
        try:
            with open(self.history_file, 'r', encoding='utf-8', errors='replace') as f:
                for line in f:
                    self._entries.append(HistoryEntry(len(self._entries), line.rstrip('\n')))
        except OSError as e:
            raise ExecutionError(self.history_file, e) from e
        logger.debug("history.load file={} entries={}", self.history_file, len(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self._entries)

    @property
    def last_sequence(self) -> int:
        """Highest sequence number assigned so far, -1 when empty."""
        return len(self._entries) - 1

    def record(self, line: str) -> Optional[HistoryEntry]:
        """Append a command line. Blank lines are not recorded."""
        line = line.strip()
        if not line:
            return None

        entry = HistoryEntry(len(self._entries), line)
        self._entries.append(entry)

        if self.history_file:
            try:
                with open(self.history_file, 'a', encoding='utf-8') as f:
                    f.write(line + '\n')
            except OSError as e:
                raise ExecutionError(self.history_file, e) from e

        return entry

    def recall(self, ref: Union[str, int] = LAST) -> str:
        """Return the text of the last entry or of entry number ``ref``."""
        if ref == LAST:
            if not self._entries:
                raise HistoryRangeError()
            return self._entries[-1].text

        if ref < 0 or ref > self.last_sequence:
            raise HistoryRangeError()
        return self._entries[ref].text

    def list(self, n: Optional[int] = None,
             before: Optional[int] = None) -> List[HistoryEntry]:
        """
        The last ``n`` entries, oldest first.

        With ``before``, the window ends just ahead of that sequence number.
        """
        if n is None:
            n = self.default_shown
        end = len(self._entries) if before is None else max(0, min(before, len(self._entries)))
        if n <= 0:
            return []
        return self._entries[max(0, end - n):end]

    def display(self, n: Optional[int] = None, before: Optional[int] = None) -> str:
        """Format history for display."""
        return '\n'.join(str(entry) for entry in self.list(n, before))
