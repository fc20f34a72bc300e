"""Resolution and invocation of configurable hooks (afterPack, afterSign...).

A hook is configured either as a callable or as a reference to a module:
a dotted module name, or a path to a ``.py`` file (relative paths are
resolved against the project directory). The module must expose an
attribute named after the hook, or ``default``.
"""
from __future__ import annotations

from dataclasses import dataclass
from importlib import import_module
from pathlib import Path
from typing import Any, Callable, Union
import hashlib
import importlib.util
import inspect

from .errors import ConfigurationError

Hook = Callable[[Any], Any]


@dataclass(frozen=True, slots=True)
class InlineCallable:
    fn: Hook


@dataclass(frozen=True, slots=True)
class ExternalReference:
    path: str
    export_name: str


HookRef = Union[InlineCallable, ExternalReference]


def hook_ref(value: Any, name: str) -> HookRef | None:
    """Classify a configuration value as a hook reference."""

    if value is None:
        return None
    if callable(value):
        return InlineCallable(value)
    if isinstance(value, str) and value.strip():
        return ExternalReference(value.strip(), name)
    raise ConfigurationError(f"'{name}' must be a callable or a module reference, got {type(value).__name__}")


def _is_path_reference(reference: str) -> bool:
    return reference.startswith(".") or reference.endswith(".py") or "/" in reference or "\\" in reference


def _load_module_from_file(path: Path, hook_name: str) -> Any:
    digest = hashlib.sha1(str(path).encode("utf-8")).hexdigest()[:12]
    spec = importlib.util.spec_from_file_location(f"_packager_hook_{hook_name}_{digest}", path)
    if spec is None or spec.loader is None:
        raise ConfigurationError(f"Cannot load {hook_name} hook from '{path}'")
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        raise ConfigurationError(f"Cannot load {hook_name} hook from '{path}': {exc}") from exc
    return module


def _load_module(reference: str, hook_name: str, project_dir: Path) -> Any:
    if _is_path_reference(reference):
        path = Path(reference)
        if not path.is_absolute():
            path = (project_dir / path).resolve()
        if path.is_dir():
            path = path / "__init__.py"
        if not path.is_file():
            raise ConfigurationError(f"Cannot resolve {hook_name} hook: '{path}' does not exist")
        return _load_module_from_file(path, hook_name)

    try:
        return import_module(reference)
    except Exception as exc:
        raise ConfigurationError(f"Cannot resolve {hook_name} hook module '{reference}': {exc}") from exc


def resolve_hook(value: Any, name: str, project_dir: Path) -> Hook | None:
    """Resolve a hook configuration value into a callable (or ``None``)."""

    ref = value if isinstance(value, (InlineCallable, ExternalReference)) else hook_ref(value, name)
    if ref is None:
        return None
    if isinstance(ref, InlineCallable):
        return ref.fn

    module = _load_module(ref.path, ref.export_name, Path(project_dir))
    fn = getattr(module, ref.export_name, None)
    if fn is None:
        fn = getattr(module, "default", None)
    if fn is None or not callable(fn):
        raise ConfigurationError(
            f"{name} hook module '{ref.path}' must define a callable named '{ref.export_name}' or 'default'"
        )
    return fn


async def invoke_hook(fn: Hook | None, context: Any) -> Any:
    """Call ``fn(context)``, awaiting the result when it is awaitable.

    Errors are not wrapped. A falsy return value counts as success.
    """

    if fn is None:
        return None
    result = fn(context)
    if inspect.isawaitable(result):
        result = await result
    return result


__all__ = [
    "ExternalReference",
    "Hook",
    "HookRef",
    "InlineCallable",
    "hook_ref",
    "invoke_hook",
    "resolve_hook",
]
