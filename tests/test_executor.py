#!/usr/bin/env python3
"""
End-to-end tests for executing command lines.

Each test gets a fresh in-memory history, a temporary working directory
and string buffers for the interpreter's own output and diagnostics.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import io
import subprocess
from unittest.mock import patch

import pytest

from shuck.errors import ShellExit
from shuck.executor import CommandExecutor
from shuck.history import HistoryStore
from shuck.orchestrator import split_search_path

SEARCH_PATH = split_search_path(os.environ.get('PATH'))


class Harness:
    """Executor plus the buffers it writes to."""

    def __init__(self, home):
        self.out = io.StringIO()
        self.err = io.StringIO()
        self.history = HistoryStore()
        environment = dict(os.environ, HOME=str(home))
        self.executor = CommandExecutor(self.history, SEARCH_PATH, environment,
                                        out=self.out, err=self.err)

    def run(self, line):
        return self.executor.execute(line)

    def status_path(self, program):
        return self.executor.orchestrator.resolve(program)


@pytest.fixture
def sh(tmp_path, monkeypatch):
    home = tmp_path / "home"
    home.mkdir()
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)
    return Harness(home)


class TestBasicExecution:

    def test_empty_line_is_noop(self, sh):
        with patch.object(subprocess, "Popen") as popen:
            assert sh.run("") == 0
            assert sh.run("   \t\n") == 0
        assert popen.call_count == 0
        assert len(sh.history) == 0
        assert sh.out.getvalue() == ""

    def test_external_command(self, sh):
        assert sh.run("echo hello > greeting.txt") == 0
        with open("greeting.txt") as f:
            assert f.read() == "hello\n"
        assert sh.out.getvalue() == f"{sh.status_path('echo')} exit status = 0\n"

    def test_exit_code_returned(self, sh):
        assert sh.run("false") == 1
        assert sh.out.getvalue() == f"{sh.status_path('false')} exit status = 1\n"

    def test_append_without_spaces(self, sh):
        sh.run("echo one > log.txt")
        sh.run("echo two>>log.txt")
        with open("log.txt") as f:
            assert f.read() == "one\ntwo\n"

    def test_pipeline(self, sh):
        assert sh.run("echo hi | wc -l > count.txt") == 0
        with open("count.txt") as f:
            assert f.read().strip() == "1"

    def test_command_not_found(self, sh):
        assert sh.run("no-such-command-xyz arg") == 1
        assert sh.err.getvalue() == "no-such-command-xyz: command not found\n"
        # Still recorded
        assert sh.history.recall() == "no-such-command-xyz arg"


class TestErrors:

    @pytest.mark.parametrize("line,message", [
        ("| wc", "invalid pipe"),
        ("ls |", "invalid pipe"),
        ("ls | | wc", "invalid pipe"),
        ("> out ls", "invalid output redirection"),
        ("ls > a b", "invalid output redirection"),
        ("cat < in", "invalid input redirection"),
    ])
    def test_syntax_errors_abort_line(self, sh, line, message):
        with patch.object(subprocess, "Popen") as popen:
            assert sh.run(line) == 1
        assert popen.call_count == 0
        assert sh.err.getvalue() == message + "\n"
        assert len(sh.history) == 0

    @pytest.mark.parametrize("line", ["pwd > out", "cd | cat", "< in history", "exit > x"])
    def test_builtin_redirection(self, sh, line):
        assert sh.run(line) == 1
        name = line.split()[2] if line.startswith("<") else line.split()[0]
        assert sh.err.getvalue() == f"{name}: I/O redirection not permitted for builtin commands\n"

    def test_builtin_in_pipeline_stage(self, sh):
        assert sh.run("echo hi | pwd") == 1
        assert sh.err.getvalue() == "pwd: I/O redirection not permitted for builtin commands\n"

    def test_builtin_redirection_still_recorded(self, sh):
        sh.run("pwd > out")
        sh.run("true")
        sh.run("! > out")
        assert [e.text for e in sh.history] == ["pwd > out", "true"]
        assert not os.path.exists("out")

    def test_missing_input_file(self, sh):
        assert sh.run("< missing.txt cat") == 1
        assert sh.err.getvalue() == "missing.txt: No such file or directory\n"

    def test_errors_do_not_stop_later_lines(self, sh):
        sh.run("ls |")
        sh.run("no-such-command-xyz")
        assert sh.run("true") == 0


class TestBuiltins:

    def test_pwd(self, sh):
        assert sh.run("pwd") == 0
        assert sh.out.getvalue() == f"current directory is '{os.getcwd()}'\n"

    def test_pwd_arguments(self, sh):
        assert sh.run("pwd extra") == 1
        assert sh.err.getvalue() == "pwd: too many arguments\n"

    def test_cd(self, sh, tmp_path):
        os.mkdir("sub")
        sh.run("cd sub")
        assert os.getcwd() == os.path.realpath(str(tmp_path / "work" / "sub"))

    def test_cd_home(self, sh, tmp_path):
        sh.run("cd")
        assert os.getcwd() == os.path.realpath(str(tmp_path / "home"))

    def test_cd_tilde(self, sh, tmp_path):
        sh.run("cd ~")
        assert os.getcwd() == os.path.realpath(str(tmp_path / "home"))

    def test_cd_errors(self, sh):
        assert sh.run("cd nowhere") == 1
        assert sh.run("cd a b") == 1
        assert sh.err.getvalue() == (
            "cd: nowhere: No such file or directory\n"
            "cd: too many arguments\n"
        )

    def test_exit(self, sh):
        with pytest.raises(ShellExit) as exc:
            sh.run("exit 3")
        assert exc.value.code == 3
        with pytest.raises(ShellExit) as exc:
            sh.run("exit")
        assert exc.value.code == 0

    def test_exit_bad_arguments(self, sh):
        assert sh.run("exit soon") == 1
        assert sh.run("exit 1 2") == 1
        assert sh.err.getvalue() == (
            "exit: soon: numeric argument required\n"
            "exit: too many arguments\n"
        )

    def test_history_listing(self, sh):
        sh.run("true")
        sh.run("false")
        sh.out.truncate(0)
        sh.out.seek(0)
        sh.run("history 2")
        assert sh.out.getvalue() == "0: true\n1: false\n"

    def test_history_default_window(self, sh):
        sh.run("true")
        sh.run("history")
        assert sh.out.getvalue().endswith("0: true\n")
        assert "history" not in sh.out.getvalue()

    def test_history_arguments(self, sh):
        assert sh.run("history x") == 1
        assert sh.run("history ²") == 1
        assert sh.run("history 1 2") == 1
        assert sh.err.getvalue() == (
            "history: x: numeric argument required\n"
            "history: ²: numeric argument required\n"
            "history: too many arguments\n"
        )


class TestBangRecall:

    def test_recall_last(self, sh):
        sh.run("echo again >> log.txt")
        assert sh.run("!") == 0
        with open("log.txt") as f:
            assert f.read() == "again\nagain\n"
        lines = sh.out.getvalue().splitlines()
        assert lines[1] == "echo again > > log.txt"
        # The substituted line is recorded, not the '!'
        assert [e.text for e in sh.history] == ["echo again > > log.txt"] * 2

    def test_recall_by_number(self, sh):
        sh.run("echo first > a.txt")
        sh.run("echo second > b.txt")
        sh.run("!0")
        assert sh.history.recall() == "echo first > a.txt"

    def test_recall_out_of_range(self, sh):
        sh.run("true")
        assert sh.run("!99") == 1
        assert sh.err.getvalue() == "!: invalid history reference\n"
        assert len(sh.history) == 1

    def test_recall_empty_history(self, sh):
        assert sh.run("!") == 1
        assert sh.err.getvalue() == "!: invalid history reference\n"

    def test_recall_arguments(self, sh):
        sh.run("true")
        assert sh.run("! x") == 1
        assert sh.run("!²") == 1
        assert sh.run("! 1 2") == 1
        assert sh.err.getvalue() == (
            "!: x: numeric argument required\n"
            "!: ²: numeric argument required\n"
            "!: too many arguments\n"
        )

    def test_recall_blank_entry(self, tmp_path):
        history_file = tmp_path / "history"
        history_file.write_text("ls\n\n")
        out, err = io.StringIO(), io.StringIO()
        executor = CommandExecutor(HistoryStore(str(history_file)), SEARCH_PATH,
                                   dict(os.environ, HOME=str(tmp_path)), out=out, err=err)
        with patch.object(subprocess, "Popen") as popen:
            assert executor.execute("!") == 0
            assert executor.execute("!1") == 0
        assert popen.call_count == 0
        assert err.getvalue() == ""
        assert history_file.read_text() == "ls\n\n"


    def test_recall_with_redirection_rejected(self, sh):
        sh.run("true")
        assert sh.run("! > out") == 1
        assert sh.err.getvalue() == "!: I/O redirection not permitted for builtin commands\n"

    def test_recall_is_single_shot(self, sh):
        sh.history.record("! 0")
        assert sh.run("!") == 1
        assert "recalls another reference" in sh.err.getvalue()

    def test_recalled_line_globbed(self, sh):
        for name in ("x.dat", "y.dat"):
            open(name, "w").close()
        sh.run("echo *.dat > list.txt")
        os.remove("list.txt")
        sh.run("!")
        with open("list.txt") as f:
            assert f.read() == "x.dat y.dat\n"


class TestGlobbing:

    def test_glob_arguments(self, sh):
        for name in ("b.c", "a.c"):
            open(name, "w").close()
        sh.run("echo *.c > out.txt")
        with open("out.txt") as f:
            assert f.read() == "a.c b.c\n"
        # History keeps the pattern
        assert sh.history.recall() == "echo *.c > out.txt"

    def test_unmatched_pattern_passed_through(self, sh):
        sh.run("echo nomatch*.xyz > out.txt")
        with open("out.txt") as f:
            assert f.read() == "nomatch*.xyz\n"

    def test_redirection_file_patterns(self, sh):
        with open("only.in", "w") as f:
            f.write("b\na\n")
        assert sh.run("< *.in sort > sorted.*") == 0
        with open("sorted.*") as f:
            assert f.read() == "a\nb\n"

    def test_ambiguous_input_file(self, sh):
        for name in ("a.txt", "b.txt"):
            open(name, "w").close()
        with patch.object(subprocess, "Popen") as popen:
            assert sh.run("< *.txt cat") == 1
        assert popen.call_count == 0
        assert sh.err.getvalue() == "invalid input redirection\n"
