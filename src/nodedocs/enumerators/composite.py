"""Composite enumerator -- ordered union of one provider per identifier."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Iterator

from ..models import SourceObject
from .base import ProviderFactory, SourceObjectEnumerator


class CompositeEnumerator:
    """Drains one underlying enumerator per identifier, in identifier order.

    Underlying enumerators are built lazily, so a provider is only opened
    once every earlier one is exhausted. Results are never interleaved.
    """

    def __init__(self, factory: ProviderFactory, identifiers: Sequence[str]) -> None:
        self._factory = factory
        self._pending: list[str] = list(identifiers)
        self._current: SourceObjectEnumerator | None = None

    def __iter__(self) -> Iterator[SourceObject]:
        return self

    def __next__(self) -> SourceObject:
        while True:
            if self._current is None:
                if not self._pending:
                    raise StopIteration
                self._current = self._factory(self._pending.pop(0))
            try:
                return next(self._current)
            except StopIteration:
                self._current = None
