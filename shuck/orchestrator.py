#!/usr/bin/env python3
"""
Process orchestration for the shuck interpreter.

This module resolves program names to executables and runs them: a single
program on the inherited streams, a single program with its standard
input or output bound to files, or a pipeline of programs joined by OS
pipes.

Design Principles:
- Every spawn gets the environment explicitly, never os.environ
- The parent closes its copy of each pipe end once a child holds it
- Every spawned child is waited on, also when a later stage fails
- One status line per completed command: '<path> exit status = <code>'
"""

import os
import stat
import subprocess
import sys
from typing import List, Mapping, Optional, Sequence, Set, TextIO

from loguru import logger

from .command_parser import BuiltinKind, External, OutputMode, RedirectionSpec, Stage
from .errors import (
    BuiltinRedirectionError, ExecutionError, ResolutionError, ShellPermissionError
)

DEFAULT_PATH = '/bin:/usr/bin'


def is_executable(pathname: str) -> bool:
    """True for an existing regular file this process may execute."""
    try:
        st = os.stat(pathname)
    except OSError:
        return False
    if not stat.S_ISREG(st.st_mode):
        return False
    effective = os.access in os.supports_effective_ids
    return os.access(pathname, os.X_OK, effective_ids=effective)


def split_search_path(value: Optional[str]) -> List[str]:
    """Split a PATH-style string, falling back to the default path."""
    if value is None:
        value = DEFAULT_PATH
    return [directory for directory in value.split(os.pathsep) if directory]


class ProcessOrchestrator:
    """
    Spawns, wires and waits for the processes of one command.

    ``out`` receives status lines and is flushed before every spawn so
    the interpreter's own output stays ordered with the children's.
    """

    def __init__(self, search_path: Sequence[str], environment: Mapping[str, str],
                 out: Optional[TextIO] = None):
        self.search_path = list(search_path)
        self.environment = dict(environment)
        self._out = out

    @property
    def out(self) -> TextIO:
        return self._out or sys.stdout

    def resolve(self, program: str, search_path: Optional[Sequence[str]] = None) -> str:
        """
        Find the executable for a program word.

        A word containing '/' is used as given; otherwise each search
        directory is tried in order and the first executable wins.
        """
        if '/' in program:
            if is_executable(program):
                return program
            raise ResolutionError('command not found', program)

        if search_path is None:
            search_path = self.search_path

        for directory in search_path:
            candidate = os.path.join(directory, program)
            if is_executable(candidate):
                return candidate

        raise ResolutionError('command not found', program)

    def run(self, command: External, env: Optional[Mapping[str, str]] = None) -> int:
        """Run an external command in whichever mode it needs."""
        pipeline = command.pipeline
        spec = command.redirection

        if len(pipeline) > 1:
            return self.run_pipeline(pipeline.stages, spec, env)

        stage = pipeline.stages[0]
        stage.path = self.resolve(stage.program)
        if spec.is_empty:
            return self.run_direct(stage.path, stage.args, env)
        return self.run_redirected(stage.path, stage.args, spec, env)

    def run_direct(self, path: str, args: List[str],
                   env: Optional[Mapping[str, str]] = None) -> int:
        """Run one program sharing the interpreter's standard streams."""
        process = self._spawn(path, args, env)
        return self._report(path, self._wait(path, process))

    def run_redirected(self, path: str, args: List[str], spec: RedirectionSpec,
                       env: Optional[Mapping[str, str]] = None) -> int:
        """Run one program with standard input and/or output bound to files."""
        self.check_redirection(spec)

        open_fds: Set[int] = set()
        try:
            stdin = self._open_input(spec, open_fds)
            stdout = self._open_output(spec, open_fds)
            process = self._spawn(path, args, env, stdin=stdin, stdout=stdout)
        finally:
            self._close_all(open_fds)

        return self._report(path, self._wait(path, process))

    def run_pipeline(self, stages: List[Stage], spec: RedirectionSpec,
                     env: Optional[Mapping[str, str]] = None) -> int:
        """
        Run the stages of a pipeline concurrently.

        Stage k reads the read end of pipe k-1 (or the input file, for the
        first stage) and writes the write end of pipe k (or the output
        file, for the last stage). Only the last stage's status is shown.
        """
        for stage in stages:
            if BuiltinKind.lookup(stage.program):
                raise BuiltinRedirectionError(stage.program)

        for stage in stages:
            stage.path = self.resolve(stage.program)

        self.check_redirection(spec)

        last = len(stages) - 1
        processes: List[subprocess.Popen] = []
        codes: List[int] = []
        open_fds: Set[int] = set()

        try:
            pipes = self._allocate_pipes(last, open_fds)

            for k, stage in enumerate(stages):
                if k == 0:
                    stdin = self._open_input(spec, open_fds)
                else:
                    stdin = pipes[k - 1][0]

                if k == last:
                    stdout = self._open_output(spec, open_fds)
                else:
                    stdout = pipes[k][1]

                stage_fds = {fd for fd in (stdin, stdout) if fd is not None}
                try:
                    processes.append(self._spawn(stage.path, stage.args, env,
                                                 stdin=stdin, stdout=stdout))
                finally:
                    # The child holds its own duplicates now
                    open_fds -= stage_fds
                    self._close_all(stage_fds)
        finally:
            self._close_all(open_fds)
            for stage, process in zip(stages, processes):
                codes.append(self._wait(stage.path, process))

        return self._report(stages[last].path, codes[last])

    def check_redirection(self, spec: RedirectionSpec):
        """
        Check redirection files before anything is spawned.

        The input file must exist and be readable; an existing output
        file must be writable.
        """
        if spec.input_path is not None:
            try:
                st = os.stat(spec.input_path)
            except FileNotFoundError:
                raise ResolutionError('No such file or directory', spec.input_path) from None
            except OSError as e:
                raise ExecutionError(spec.input_path, e) from e
            if not st.st_mode & stat.S_IRUSR:
                raise ShellPermissionError(spec.input_path)

        if spec.output_path is not None:
            try:
                st = os.stat(spec.output_path)
            except FileNotFoundError:
                return
            except OSError as e:
                raise ExecutionError(spec.output_path, e) from e
            if not st.st_mode & stat.S_IWUSR:
                raise ShellPermissionError(spec.output_path)

    def _allocate_pipes(self, count: int, open_fds: Set[int]) -> List[tuple]:
        pipes = []
        for _ in range(count):
            try:
                read_end, write_end = os.pipe()
            except OSError as e:
                raise ExecutionError('pipe', e) from e
            open_fds.update((read_end, write_end))
            pipes.append((read_end, write_end))
        logger.debug("orchestrator.pipes count={} fds={}", count, pipes)
        return pipes

    def _open_input(self, spec: RedirectionSpec, open_fds: Set[int]) -> Optional[int]:
        if spec.input_path is None:
            return None
        try:
            fd = os.open(spec.input_path, os.O_RDONLY)
        except OSError as e:
            raise ExecutionError(spec.input_path, e) from e
        open_fds.add(fd)
        return fd

    def _open_output(self, spec: RedirectionSpec, open_fds: Set[int]) -> Optional[int]:
        if spec.output_path is None:
            return None
        flags = os.O_CREAT | os.O_WRONLY
        if spec.output_mode == OutputMode.APPEND:
            flags |= os.O_APPEND
        else:
            flags |= os.O_TRUNC
        try:
            fd = os.open(spec.output_path, flags, 0o644)
        except OSError as e:
            raise ExecutionError(spec.output_path, e) from e
        open_fds.add(fd)
        return fd

    def _spawn(self, path: str, args: List[str], env: Optional[Mapping[str, str]],
               stdin: Optional[int] = None, stdout: Optional[int] = None) -> subprocess.Popen:
        if env is None:
            env = self.environment
        self.out.flush()
        logger.debug("orchestrator.spawn path={} args={} stdin={} stdout={}",
                     path, args, stdin, stdout)
        try:
            return subprocess.Popen(args, executable=path, env=dict(env),
                                    stdin=stdin, stdout=stdout, close_fds=True)
        except OSError as e:
            raise ExecutionError(path, e) from e

    def _wait(self, path: str, process: subprocess.Popen) -> int:
        try:
            code = process.wait()
        except OSError as e:
            raise ExecutionError('wait', e) from e
        logger.debug("orchestrator.exit path={} pid={} code={}", path, process.pid, code)
        return code

    def _report(self, path: str, code: int) -> int:
        """Print the status line for a child that exited normally."""
        if code >= 0:
            print(f"{path} exit status = {code}", file=self.out)
            self.out.flush()
        else:
            logger.info("orchestrator.signaled path={} signal={}", path, -code)
        return code

    @staticmethod
    def _close_all(fds: Set[int]):
        for fd in sorted(fds):
            try:
                os.close(fd)
            except OSError:
                logger.warning("orchestrator.close failed fd={}", fd)
        fds.clear()
