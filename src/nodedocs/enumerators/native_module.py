"""Native module enumerator -- public classes and functions of a Python module."""

from __future__ import annotations

import importlib
import inspect
import logging
import pkgutil
from types import ModuleType
from typing import Iterator

from ..models import SourceObject
from .base import GeneratorEnumerator

logger = logging.getLogger(__name__)

KIND = "native"


def _is_private(dotted: str) -> bool:
    return any(part.startswith("_") for part in dotted.split("."))


def _import(name: str, message: str) -> ModuleType | None:
    # SystemExit covers modules that run a CLI at import time.
    try:
        return importlib.import_module(name)
    except (Exception, SystemExit) as exc:
        logger.warning(message, name, exc)
        return None


def _module_members(module: ModuleType) -> Iterator[SourceObject]:
    """Yield public classes/functions *defined* in *module*, sorted by name.

    Members whose lookup fails (a lazy module ``__getattr__`` hitting a
    missing optional dependency, say) are skipped with a warning.
    """
    try:
        names = sorted(dir(module))
    except Exception as exc:
        logger.warning("Cannot list members of %r: %s", module.__name__, exc)
        return

    for name in names:
        if name.startswith("_"):
            continue
        try:
            member = getattr(module, name)
        except Exception as exc:
            logger.warning("Skipping %s.%s: %s", module.__name__, name, exc)
            continue
        if not (inspect.isclass(member) or inspect.isfunction(member)):
            continue
        # Skip re-exports; they are documented where they are defined.
        if getattr(member, "__module__", None) != module.__name__:
            continue
        yield SourceObject(name=name, kind=KIND, origin=module.__name__, target=member)


def _walk_submodules(package: ModuleType) -> Iterator[SourceObject]:
    """Depth-first over public submodules, siblings in name order."""
    # Plain modules have no __path__; read it from the namespace so a
    # module-level __getattr__ is never consulted.
    search_path = vars(package).get("__path__")
    if search_path is None:
        return

    children = sorted(
        (info.name, info.ispkg)
        for info in pkgutil.iter_modules(search_path, prefix=package.__name__ + ".")
        if not _is_private(info.name)
    )
    for sub_name, is_pkg in children:
        sub = _import(sub_name, "Skipping submodule %r: %s")
        if sub is None:
            continue
        yield from _module_members(sub)
        if is_pkg:
            yield from _walk_submodules(sub)


class NativeModuleEnumerator(GeneratorEnumerator):
    """Walks one importable module (and its submodules when it is a package).

    An unknown module, or one that fails while importing, contributes
    nothing: the failure is logged as a warning and the stream is empty.
    """

    def __init__(self, module_name: str) -> None:
        super().__init__()
        self.module_name = module_name

    def _discover(self) -> Iterator[SourceObject]:
        module = _import(self.module_name, "Native module %r could not be imported: %s")
        if module is None:
            return
        yield from _module_members(module)
        yield from _walk_submodules(module)
