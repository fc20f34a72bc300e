from __future__ import annotations

from pathlib import Path
import io
import sys
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest.mock import patch

from core.command_runner import CommandError, RecordingCommandRunner, SubprocessCommandRunner
from core.console import Console, RecordingConsole
from core.session import BuildSession, CancellationToken, TempDirManager
from packager.app_info import AppInfo
from packager.stage import REMOVE_EVEN_IF_DEBUG_ENV, StageDir, get_windows_installation_dir_name
from packager.vm import MonoVmManager, VmManager


class ConsoleTests(unittest.TestCase):
    def test_levels_and_fields(self) -> None:
        console = Console("warn")
        stdout, stderr = io.StringIO(), io.StringIO()
        with redirect_stdout(stdout), redirect_stderr(stderr):
            console.info("hidden")
            console.warn("careful", path="/tmp/x", skipped=None)
            console.error("broken")

        self.assertEqual(stdout.getvalue(), "")
        self.assertEqual(stderr.getvalue().splitlines(), ["[WARN] careful path=/tmp/x", "[ERROR] broken"])

    def test_unknown_level(self) -> None:
        with self.assertRaises(ValueError):
            Console("verbose")

    def test_recording_console(self) -> None:
        console = RecordingConsole("info")
        console.debug("skipped")
        console.info("packaging", arch="x64")
        self.assertEqual(console.records, [("info", "packaging arch=x64")])


class SessionTests(unittest.TestCase):
    def test_cancellation_is_monotonic(self) -> None:
        token = CancellationToken()
        self.assertFalse(token.is_cancelled())
        token.cancel()
        token.cancel()
        self.assertTrue(token.cancelled)
        self.assertTrue(token.is_cancelled())

    def test_temp_dir_manager_allocates_unique_paths(self) -> None:
        with tempfile.TemporaryDirectory() as base:
            manager = TempDirManager(Path(base) / "tmp")
            first = manager.get_temp_file(suffix=".zip")
            second = manager.get_temp_file(suffix=".zip")
            directory = manager.get_temp_dir()

            self.assertNotEqual(first, second)
            self.assertTrue(first.name.endswith(".zip"))
            self.assertFalse(first.exists())
            self.assertTrue(directory.is_dir())

            root = manager.root
            manager.cleanup()
            self.assertFalse(root.exists())

    def test_sessions_do_not_share_state(self) -> None:
        first, second = BuildSession(), BuildSession()
        first.cancellation_token.cancel()
        self.assertFalse(second.cancellation_token.is_cancelled())


class StageDirTests(unittest.IsolatedAsyncioTestCase):
    async def test_cleanup_respects_keep_flag(self) -> None:
        with tempfile.TemporaryDirectory() as base:
            stage = Path(base) / "stage"
            stage.mkdir()
            session = BuildSession(console=RecordingConsole(), keep_stage_dirs=True)

            with patch.dict("os.environ", {REMOVE_EVEN_IF_DEBUG_ENV: "false"}):
                await StageDir(stage, session).cleanup()
            self.assertTrue(stage.exists())

            with patch.dict("os.environ", {REMOVE_EVEN_IF_DEBUG_ENV: "true"}):
                await StageDir(stage, session).cleanup()
            self.assertFalse(stage.exists())

    async def test_cleanup_of_missing_directory_is_silent(self) -> None:
        with tempfile.TemporaryDirectory() as base:
            await StageDir(Path(base) / "missing").cleanup()

    def test_windows_installation_dir_name(self) -> None:
        info = AppInfo(name="demo-app", product_name="Demo App", version="1.0.0")
        self.assertEqual(get_windows_installation_dir_name(info, True), "Demo App")
        self.assertEqual(get_windows_installation_dir_name(info, False), "demo-app")
        exotic = AppInfo(name="demo-app", product_name="Démo", version="1.0.0")
        self.assertEqual(get_windows_installation_dir_name(exotic, True), "demo-app")


class VmManagerTests(unittest.IsolatedAsyncioTestCase):
    async def test_direct_and_mono_commands(self) -> None:
        runner = RecordingCommandRunner(stdout="ok")
        self.assertEqual(VmManager(runner).exec("signtool", ["sign", "app.exe"]), "ok")
        await MonoVmManager(runner).exec_async("tool.exe", ["--version"], cwd=Path("/work"))

        self.assertEqual(runner.commands[0].command, ["signtool", "sign", "app.exe"])
        self.assertEqual(runner.commands[1].command, ["mono", "tool.exe", "--version"])
        self.assertEqual(runner.commands[1].cwd, "/work")

    async def test_failed_command_raises_unless_unchecked(self) -> None:
        command = [sys.executable, "-c", "import sys; print('out'); sys.exit(3)"]
        with self.assertRaises(CommandError) as ctx:
            await VmManager(SubprocessCommandRunner()).exec_async(command[0], command[1:])
        self.assertEqual(ctx.exception.result.returncode, 3)

        result = SubprocessCommandRunner().run(command, check=False)
        self.assertEqual((result.returncode, result.stdout.strip()), (3, "out"))


if __name__ == "__main__":
    unittest.main()
