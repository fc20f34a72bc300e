from __future__ import annotations

from pathlib import Path
import tempfile
import textwrap
import unittest

from packager.errors import ConfigurationError
from packager.hooks import ExternalReference, InlineCallable, hook_ref, invoke_hook, resolve_hook


class ResolveHookTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.project = Path(self.temp_dir.name)

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_classifies_values(self) -> None:
        def fn(context):
            return None

        self.assertIsNone(hook_ref(None, "afterSign"))
        self.assertEqual(hook_ref(fn, "afterSign"), InlineCallable(fn))
        self.assertEqual(hook_ref(" hooks/sign.py ", "afterSign"), ExternalReference("hooks/sign.py", "afterSign"))
        with self.assertRaises(ConfigurationError):
            hook_ref(42, "afterSign")

    def test_relative_path_is_resolved_against_project(self) -> None:
        hooks_dir = self.project / "hooks"
        hooks_dir.mkdir()
        (hooks_dir / "sign.py").write_text(
            textwrap.dedent(
                """
                def afterSign(context):
                    context.append("named")
                """
            )
        )
        fn = resolve_hook("hooks/sign.py", "afterSign", self.project)
        calls: list[str] = []
        fn(calls)
        self.assertEqual(calls, ["named"])

    def test_default_export_is_used(self) -> None:
        (self.project / "pack.py").write_text("def default(context):\n    return 'default'\n")
        fn = resolve_hook("./pack.py", "afterPack", self.project)
        self.assertEqual(fn(None), "default")

    def test_module_names_use_import_system(self) -> None:
        fn = resolve_hook("json", "dumps", self.project)
        self.assertEqual(fn([]), "[]")

    def test_resolution_failures(self) -> None:
        with self.assertRaises(ConfigurationError):
            resolve_hook("missing/hook.py", "afterSign", self.project)
        with self.assertRaises(ConfigurationError):
            resolve_hook("packager_missing_hook_module", "afterSign", self.project)
        (self.project / "empty.py").write_text("VALUE = 1\n")
        with self.assertRaises(ConfigurationError):
            resolve_hook("empty.py", "afterSign", self.project)

    def test_failing_module_import_is_configuration_error(self) -> None:
        (self.project / "missing_dep.py").write_text("import packager_hook_dependency_that_is_absent\n")
        (self.project / "broken.py").write_text("def afterSign(context)\n    return None\n")
        (self.project / "raising.py").write_text("raise RuntimeError('no credentials')\n")

        for reference in ("./missing_dep.py", "broken.py", "raising.py"):
            with self.subTest(reference=reference):
                with self.assertRaises(ConfigurationError) as ctx:
                    resolve_hook(reference, "afterSign", self.project)
                self.assertIn(reference.removeprefix("./"), str(ctx.exception))
                self.assertIsNotNone(ctx.exception.__cause__)

    async def test_invoke_awaits_coroutines(self) -> None:
        async def hook(context):
            return context * 2

        self.assertEqual(await invoke_hook(hook, 21), 42)
        self.assertEqual(await invoke_hook(lambda context: context, "sync"), "sync")
        self.assertIsNone(await invoke_hook(None, "unused"))

    async def test_errors_are_not_wrapped(self) -> None:
        class HookFailure(Exception):
            pass

        async def hook(context):
            raise HookFailure("boom")

        with self.assertRaises(HookFailure):
            await invoke_hook(hook, None)


if __name__ == "__main__":
    unittest.main()
