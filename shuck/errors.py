"""Exception types raised while interpreting a command line."""

from typing import Optional


class ShellError(Exception):
    """
    Base exception for every reportable interpreter failure.

    The ``context`` names what failed (a command, a file or a subsystem)
    and prefixes the single diagnostic line shown to the user.
    """

    def __init__(self, message: str, context: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        if self.context:
            return f"{self.context}: {self.message}"
        return self.message


class ShellSyntaxError(ShellError):
    """Malformed redirection or pipe grammar."""

    MESSAGES = {
        'input': 'invalid input redirection',
        'output': 'invalid output redirection',
        'pipe': 'invalid pipe',
    }

    def __init__(self, kind: str):
        super().__init__(self.MESSAGES[kind])
        self.kind = kind


class BuiltinRedirectionError(ShellSyntaxError):
    """A builtin was combined with a redirection or pipe token."""

    def __init__(self, command: str):
        ShellError.__init__(self, 'I/O redirection not permitted for builtin commands', command)
        self.kind = 'builtin'


class ResolutionError(ShellError):
    """A command or input file could not be found."""


class ShellPermissionError(ShellError):
    """A redirection target is not readable or writable."""

    def __init__(self, path: str):
        super().__init__('Permission denied', path)
        self.path = path


class ExecutionError(ShellError):
    """The operating system refused a pipe, spawn, wait or open call."""

    def __init__(self, context: str, error: OSError):
        super().__init__(error.strerror or str(error), context)
        self.error = error


class ArgumentError(ShellError):
    """A builtin was given the wrong number or type of arguments."""


class HistoryRangeError(ShellError):
    """A bang reference points outside the recorded history."""

    def __init__(self, context: str = '!'):
        super().__init__('invalid history reference', context)


class ShellExit(Exception):
    """Raised by the ``exit`` builtin to stop the read-eval loop."""

    def __init__(self, code: int = 0):
        super().__init__(code)
        self.code = code
