from __future__ import annotations

import hashlib
import importlib
import importlib.util
import re
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional

from hoist.exceptions import ConfigurationConflict, LoadError, NoContextError
from hoist.logging import log_event

from .contracts import ScriptDescriptor

EXPORT_ATTRIBUTE = "default"
SCRIPT_SUFFIX = ".py"
MODULE_PREFIX = "_hoist_script_"


def discover_script_paths(root: Path) -> list[Path]:
    """Every script under root, recursively, minus files starting with '_', in path order."""
    root = Path(root)
    if not root.is_dir():
        return []
    paths = [
        path.resolve()
        for path in root.rglob(f"*{SCRIPT_SUFFIX}")
        if path.is_file() and not path.name.startswith("_")
    ]
    return sorted(paths, key=str)


def _as_tuple(value: Any, *, field: str, path: Path) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, Iterable):
        return tuple(str(item) for item in value)
    raise LoadError(str(path), f"{path}: '{field}' must be a string or a sequence of strings")


def _module_name(path: Path) -> str:
    digest = hashlib.sha1(str(path).encode("utf-8")).hexdigest()[:12]
    stem = re.sub(r"\W", "_", path.stem)
    return f"{MODULE_PREFIX}{digest}_{stem}"


@contextmanager
def _no_bytecode() -> Iterator[None]:
    """No __pycache__ for scripts or their helpers: an edit within the same second must not hit stale bytecode."""
    previous = sys.dont_write_bytecode
    sys.dont_write_bytecode = True
    try:
        yield
    finally:
        sys.dont_write_bytecode = previous


class ScriptRegistry:
    """
    Loads deploy scripts, keyed by absolute path.

    load() always executes the file again and replaces whatever was
    registered for that path before.
    """

    def __init__(self) -> None:
        self._loaded: dict[Path, ScriptDescriptor] = {}

    def get(self, path: Path) -> Optional[ScriptDescriptor]:
        return self._loaded.get(Path(path).resolve())

    def load(self, path: Path) -> ScriptDescriptor:
        path = Path(path).resolve()
        self._loaded.pop(path, None)
        module = self._import_fresh(path)

        export = getattr(module, EXPORT_ATTRIBUTE, None)
        if export is None:
            raise LoadError(str(path), f"{path} does not export a '{EXPORT_ATTRIBUTE}' deploy script")
        if getattr(export, EXPORT_ATTRIBUTE, None) is not None:
            log_event("script_double_default", level="warning", path=str(path))
            export = getattr(export, EXPORT_ATTRIBUTE)
        if not callable(export):
            raise LoadError(str(path), f"{path}: '{EXPORT_ATTRIBUTE}' is not callable")

        descriptor = ScriptDescriptor(
            path=path,
            func=export,
            tags=_as_tuple(getattr(export, "tags", None), field="tags", path=path),
            dependencies=_as_tuple(getattr(export, "dependencies", None), field="dependencies", path=path),
            skip=getattr(export, "skip", None),
            run_at_the_end=bool(getattr(export, "run_at_the_end", False)),
            id=getattr(export, "id", None),
            provided_context=getattr(export, "provided_context", None),
        )
        self._loaded[path] = descriptor
        return descriptor

    def load_all(self, root: Path) -> list[ScriptDescriptor]:
        """
        Loads every discovered script under root. Modules imported from root while
        loading (shared helpers included) are dropped from the import cache at the
        end so the next run reads them from disk again.
        """
        root = Path(root).resolve()
        paths = discover_script_paths(root)
        root_str = str(root)
        modules_before = set(sys.modules)
        added_path = False
        if root_str not in sys.path:
            sys.path.insert(0, root_str)
            added_path = True
        try:
            with _no_bytecode():
                descriptors = [self.load(path) for path in paths]
        finally:
            if added_path:
                try:
                    sys.path.remove(root_str)
                except ValueError:
                    pass
            self._forget_modules_under(root, set(sys.modules) - modules_before)

        log_event("scripts_loaded", root=root_str, count=len(descriptors))
        return descriptors

    def _import_fresh(self, path: Path) -> Any:
        module_name = _module_name(path)
        sys.modules.pop(module_name, None)
        importlib.invalidate_caches()
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise LoadError(str(path), f"could not import {path}")
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            with _no_bytecode():
                spec.loader.exec_module(module)
        except Exception as exc:
            sys.modules.pop(module_name, None)
            log_event("script_import_failed", level="error", path=str(path), error=repr(exc))
            raise LoadError(str(path), f"could not import {path}: {exc}") from exc
        return module

    @staticmethod
    def _forget_modules_under(root: Path, names: set[str]) -> None:
        for name in names:
            module = sys.modules.get(name)
            module_file = getattr(module, "__file__", None)
            if name.startswith(MODULE_PREFIX) or (
                module_file and Path(module_file).resolve().is_relative_to(root)
            ):
                sys.modules.pop(name, None)


def shared_provided_context(descriptors: Iterable[ScriptDescriptor]) -> Any:
    """The one context all scripts were authored against."""
    first: Optional[ScriptDescriptor] = None
    for descriptor in descriptors:
        if first is None:
            first = descriptor
            continue
        if descriptor.provided_context is not first.provided_context:
            raise ConfigurationConflict(
                "context between 2 scripts is different, please share the same across them",
                detail={"first": str(first.path), "second": str(descriptor.path)},
            )
    if first is None or first.provided_context is None:
        raise NoContextError("no context loaded", detail={"scripts_loaded": first is not None})
    return first.provided_context
