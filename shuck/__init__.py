"""
shuck - A small line-oriented command interpreter

This package tokenizes command lines, expands history references and glob
patterns, validates redirection and pipe syntax, and runs the resulting
programs and pipelines as operating-system processes.
"""

from loguru import logger

__version__ = "0.1.0"

from .command_parser import (
    Builtin,
    BuiltinKind,
    Command,
    CommandParser,
    External,
    OutputMode,
    Pipeline,
    RedirectionSpec,
    Stage,
    tokenize,
    validate,
)

from .errors import (
    ArgumentError,
    BuiltinRedirectionError,
    ExecutionError,
    HistoryRangeError,
    ResolutionError,
    ShellError,
    ShellExit,
    ShellPermissionError,
    ShellSyntaxError,
)

from .globbing import GlobExpander
from .history import HistoryEntry, HistoryStore
from .orchestrator import ProcessOrchestrator
from .executor import CommandExecutor

from .terminal import (
    TerminalConfig,
    TerminalSession,
)

# Library code stays quiet until the CLI enables logging
logger.disable("shuck")

__all__ = [
    # Command parser
    "Builtin",
    "BuiltinKind",
    "Command",
    "CommandParser",
    "External",
    "OutputMode",
    "Pipeline",
    "RedirectionSpec",
    "Stage",
    "tokenize",
    "validate",

    # Errors
    "ArgumentError",
    "BuiltinRedirectionError",
    "ExecutionError",
    "HistoryRangeError",
    "ResolutionError",
    "ShellError",
    "ShellExit",
    "ShellPermissionError",
    "ShellSyntaxError",

    # Execution
    "GlobExpander",
    "HistoryEntry",
    "HistoryStore",
    "ProcessOrchestrator",
    "CommandExecutor",

    # Terminal
    "TerminalConfig",
    "TerminalSession",

    # Version info
    "__version__",
]
