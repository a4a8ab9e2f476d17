"""Name-based exclusion of enumerated source objects."""

from __future__ import annotations

from collections.abc import Iterable

from .models import SourceObject


class ExclusionFilter:
    """Exact-match set of object names to skip.

    Names are compared verbatim: no globbing, no case folding.
    """

    def __init__(self, names: Iterable[str] = ()) -> None:
        self._names: frozenset[str] = frozenset(names)

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __len__(self) -> int:
        return len(self._names)

    def excludes(self, obj: SourceObject) -> bool:
        return obj.name in self._names
