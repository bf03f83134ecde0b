"""Unit tests for ProcessRunner.

These tests launch real /bin/sh scripts written to a temporary directory.
"""

import os
import signal
import tempfile
import time
import unittest
from pathlib import Path
from unittest import mock

from proc_util import LaunchError, ProcessConfig, ProcessLookup, ProcessNotFoundError, ProcessRunner, WaitError
from proc_util.process_runner import as_background, command_to_str

EXIT_CODES = (0, 1, 2)


def find_pid(lookup: ProcessLookup, command: str, attempts: int = 20) -> int:
    """Look up a freshly spawned command, retrying while it starts up."""
    for _ in range(attempts):
        try:
            return lookup.find_process_id(command)
        except ProcessNotFoundError:
            time.sleep(0.05)
    return lookup.find_process_id(command)


def wait_for_content(path: Path, expected: str, timeout: float = 5.0) -> str:
    """Poll a file until it holds the expected content or the timeout elapses."""
    deadline = time.time() + timeout
    content = ""
    while time.time() < deadline:
        if path.exists():
            content = path.read_text()
            if content == expected:
                break
        time.sleep(0.05)
    return content


class ScriptTestCase(unittest.TestCase):
    """Base class providing a script file and an output file in a temp dir."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp_path = Path(self._tmp.name)
        self.script = self.tmp_path / "script.sh"
        self.output = self.tmp_path / "output.txt"
        self.command = f"/bin/sh {self.script}"
        self.runner = ProcessRunner()
        self.lookup = ProcessLookup()

    def tearDown(self):
        self._tmp.cleanup()

    def write_script(self, *lines: str) -> None:
        self.script.write_text("\n".join(lines) + "\n")

    def wait_until_stopped(self, pid: int, max_polls: int = 30) -> None:
        count = 0
        while self.lookup.is_running(pid):
            time.sleep(0.1)
            count += 1
            if count > max_polls:
                self.fail(f"Timeout waiting for pid {pid}")


class TestRunForeground(ScriptTestCase):
    """Test waiting foreground launches."""

    def test_string_command_exit_codes(self):
        for value in EXIT_CODES:
            self.write_script(f"exit {value}")
            self.assertEqual(self.runner.run(self.command, True, False), value)

    def test_start_exit_codes(self):
        for value in EXIT_CODES:
            self.write_script(f"exit {value}")
            self.assertEqual(self.runner.start(self.command), value)

    def test_argv_command_exit_codes(self):
        for value in EXIT_CODES:
            self.write_script(f"exit {value}")
            self.assertEqual(self.runner.run(["/bin/sh", str(self.script)]), value)

    def test_argv_bypasses_shell_interpretation(self):
        """Arguments with spaces and metacharacters reach the program unchanged."""
        self.write_script(f'printf "%s" "$1" > {self.output}')
        exit_code = self.runner.run(["/bin/sh", str(self.script), "a b; echo c && $HOME"])

        self.assertEqual(exit_code, 0)
        self.assertEqual(self.output.read_text(), "a b; echo c && $HOME")


class TestRunNoWait(ScriptTestCase):
    """Test foreground launches that return right after spawning."""

    def test_string_command(self):
        for value in EXIT_CODES:
            self.write_script("sleep 1", f"echo {value} > {self.output}")

            exit_code = self.runner.run(self.command, wait_for_completion=False)
            self.assertEqual(exit_code, 0)

            pid = find_pid(self.lookup, self.command)
            self.assertGreater(pid, 0)
            self.wait_until_stopped(pid)

            self.assertEqual(wait_for_content(self.output, f"{value}\n"), f"{value}\n")
            self.output.unlink()

    def test_argv_command(self):
        for value in EXIT_CODES:
            self.write_script("sleep 1", f"exit {value}")
            argv = ["/bin/sh", str(self.script)]

            exit_code = self.runner.run(argv, wait_for_completion=False)
            self.assertEqual(exit_code, 0)

            pid = find_pid(self.lookup, " ".join(argv))
            self.assertGreater(pid, 0)
            self.wait_until_stopped(pid)


class TestRunBackground(ScriptTestCase):
    """Test detached shell jobs."""

    def test_background_wait_returns_launcher_code(self):
        for value in EXIT_CODES:
            self.write_script(f"echo {value} > {self.output}", f"exit {value}")

            exit_code = self.runner.run(f"{self.command} &", True, True)
            self.assertEqual(exit_code, 0)

            self.assertEqual(wait_for_content(self.output, f"{value}\n"), f"{value}\n")
            self.output.unlink()

    def test_background_returns_promptly(self):
        self.write_script("sleep 5")
        started = time.time()

        exit_code = self.runner.start_background(self.command, wait_for_completion=True)

        self.assertEqual(exit_code, 0)
        self.assertLess(time.time() - started, 3.0)
        pid = find_pid(self.lookup, self.command)
        os.kill(pid, signal.SIGTERM)

    def test_background_no_wait(self):
        for value in EXIT_CODES:
            self.write_script("sleep 1", f"echo {value} > {self.output}")

            exit_code = self.runner.start_background(f"{self.command} &", wait_for_completion=False)
            self.assertEqual(exit_code, 0)

            pid = find_pid(self.lookup, f"{self.command} &")
            self.assertGreater(pid, 0)
            self.wait_until_stopped(pid)

            self.assertEqual(wait_for_content(self.output, f"{value}\n"), f"{value}\n")
            self.output.unlink()


class TestRunWithHandle(ScriptTestCase):
    """Test runs that capture stdout, stderr and the exit code."""

    def test_string_command(self):
        for value in (1, 0, 1, 2):
            self.write_script("echo stdout", "echo stderr 1>&2", f"exit {value}")

            handle = self.runner.run_with_handle(self.command)

            self.assertEqual(handle.exit_code(), value)
            self.assertEqual(handle.read_stdout(), "stdout\n")
            self.assertEqual(handle.read_stderr(), "stderr\n")

    def test_argv_command(self):
        for value in (1, 0, 1, 2):
            self.write_script("echo stdout", "echo stderr 1>&2", f"exit {value}")

            handle = self.runner.run_with_handle(["/bin/sh", str(self.script)])

            self.assertEqual(handle.exit_code(), value)
            self.assertEqual(handle.read_stdout(), "stdout\n")
            self.assertEqual(handle.read_stderr(), "stderr\n")

    def test_output_without_trailing_newline(self):
        handle = self.runner.run_with_handle("printf partial")

        self.assertEqual(handle.read_stdout(), "partial")

    def test_large_output_on_both_streams(self):
        """Both pipes are drained concurrently, so a full pipe buffer cannot block the child."""
        size = 300_000
        handle = self.runner.run_with_handle(f"head -c {size} /dev/zero; head -c {size} /dev/zero 1>&2")

        self.assertEqual(handle.exit_code(), 0)
        assert handle.process_stdout is not None and handle.process_stderr is not None
        self.assertEqual(len(handle.process_stdout.read()), size)
        self.assertEqual(len(handle.process_stderr.read()), size)


class TestConfig(ScriptTestCase):
    """Test that ProcessConfig reaches the child."""

    def test_env(self):
        runner = ProcessRunner(ProcessConfig(env={"PROC_UTIL_TEST_VALUE": "configured"}))

        handle = runner.run_with_handle("echo $PROC_UTIL_TEST_VALUE")

        self.assertEqual(handle.read_stdout(), "configured\n")

    def test_cwd(self):
        runner = ProcessRunner(ProcessConfig(cwd=self.tmp_path))

        handle = runner.run_with_handle(["pwd"])

        self.assertEqual(Path(handle.read_stdout().strip()).resolve(), self.tmp_path.resolve())


class TestLaunchErrors(unittest.TestCase):
    """Test spawn failures and interrupted waits."""

    def test_missing_program(self):
        with self.assertRaises(LaunchError) as cm:
            ProcessRunner().run(["/this/program/does/not/exist_12345"])
        self.assertIsInstance(cm.exception.__cause__, FileNotFoundError)

    def test_missing_shell(self):
        runner = ProcessRunner(ProcessConfig(shell="/this/shell/does/not/exist_12345"))
        with self.assertRaises(LaunchError):
            runner.run("true")

    def test_missing_program_in_handle(self):
        with self.assertRaises(LaunchError):
            ProcessRunner().run_with_handle(["/this/program/does/not/exist_12345"])

    def test_unknown_command_through_shell(self):
        """The shell itself spawns fine and reports 127."""
        self.assertEqual(ProcessRunner().run("this_command_does_not_exist_12345"), 127)

    def test_empty_argv(self):
        with self.assertRaises(ValueError):
            ProcessRunner().run([])

    def test_interrupted_wait(self):
        mock_proc = mock.Mock(pid=4242)
        mock_proc.wait.side_effect = [KeyboardInterrupt(), -9]

        with self.assertRaises(WaitError):
            ProcessRunner()._wait(mock_proc)  # noqa: SLF001
        mock_proc.kill.assert_called_once_with()


class TestCommandHelpers(unittest.TestCase):
    def test_command_to_str(self):
        self.assertEqual(command_to_str("echo hi"), "echo hi")
        self.assertEqual(command_to_str(["echo", "a b"]), "echo 'a b'")

    def test_as_background(self):
        self.assertEqual(as_background("sleep 1"), "sleep 1 &")

    def test_as_background_keeps_single_ampersand(self):
        self.assertEqual(as_background("sleep 1 &"), "sleep 1 &")
        self.assertEqual(as_background("sleep 1&  "), "sleep 1 &")

    def test_as_background_rejects_empty_command(self):
        for command in ("", "   ", " & ", []):
            with self.assertRaises(ValueError):
                as_background(command)

    def test_empty_background_command_is_not_launched(self):
        with self.assertRaises(ValueError):
            ProcessRunner().run("  ", run_in_background=True)


if __name__ == "__main__":
    unittest.main()
