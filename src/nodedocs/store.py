"""Intermediate artifact directory shared by the processor and the renderer."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


class IntermediateStore:
    """A directory that is cleaned (or reused), populated, then handed off.

    The store never deletes itself at the end of a run; retention is the
    caller's business.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def prepare(self, clean: bool) -> Path:
        """Make sure the directory exists, wiping it first when *clean*."""
        if clean and self.root.exists():
            logger.debug("Cleaning intermediate dir %s", self.root)
            shutil.rmtree(self.root)
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    def artifacts(self) -> list[str]:
        """Relative POSIX paths of every file currently in the store."""
        if not self.root.is_dir():
            return []
        return sorted(
            p.relative_to(self.root).as_posix()
            for p in self.root.rglob("*")
            if p.is_file()
        )
