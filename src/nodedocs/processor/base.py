"""Base protocol for object processors."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from ..models import SourceObject


@runtime_checkable
class ObjectProcessor(Protocol):
    """Turns source objects into intermediate artifacts.

    Lifecycle: ``init`` once, ``process`` any number of times, ``finalize``
    exactly once. ``image_time`` / ``doc_time`` are accumulated seconds,
    read by the orchestrator after ``finalize`` for reporting only.
    """

    image_time: float
    doc_time: float

    def init(self, title: str) -> bool:
        """Prepare global state; ``False`` aborts the whole run."""
        ...

    def process(self, obj: SourceObject, intermediate_dir: Path) -> int:
        """Render one object and return how many nodes it produced.

        Must not raise for a bad object: failures count as zero nodes.
        """
        ...

    def finalize(self, intermediate_dir: Path) -> None:
        """Write the aggregate manifest and release global state."""
        ...
