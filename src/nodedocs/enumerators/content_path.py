"""Content path enumerator -- node definition files under a directory."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

from ..models import SourceObject
from .base import GeneratorEnumerator

logger = logging.getLogger(__name__)

KIND = "content"
DEFINITION_SUFFIX = ".node.json"

# Directories never searched for definitions.
SKIP_DIRS: set[str] = {
    ".git", ".venv", "venv", "__pycache__", "node_modules", ".nodedocs",
}


def definition_name(path: Path) -> str:
    """``math/add.node.json`` -> ``add``."""
    return path.name[: -len(DEFINITION_SUFFIX)]


class ContentPathEnumerator(GeneratorEnumerator):
    """Yields every ``*.node.json`` under *root*, ordered by relative path.

    A missing root contributes nothing (logged as a warning).
    """

    def __init__(self, root: str | Path) -> None:
        super().__init__()
        self.root = Path(root)

    def _discover(self) -> Iterator[SourceObject]:
        if not self.root.is_dir():
            logger.warning("Content path %s does not exist or is not a directory", self.root)
            return

        found = [
            p for p in self.root.rglob(f"*{DEFINITION_SUFFIX}")
            if p.is_file()
            and not any(part in SKIP_DIRS for part in p.relative_to(self.root).parts[:-1])
        ]
        found.sort(key=lambda p: p.relative_to(self.root).as_posix())

        for path in found:
            yield SourceObject(
                name=definition_name(path),
                kind=KIND,
                origin=str(self.root),
                target=path,
            )
