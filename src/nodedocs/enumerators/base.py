"""Base protocol for source-object enumerators."""

from __future__ import annotations

from typing import Callable, Iterator, Protocol, runtime_checkable

from ..models import SourceObject


@runtime_checkable
class SourceObjectEnumerator(Protocol):
    """Single-pass, lazy, finite stream of source objects.

    Implementations:
      - NativeModuleEnumerator  (public classes/functions of a Python module)
      - ContentPathEnumerator   (``*.node.json`` files under a directory)
      - CompositeEnumerator     (ordered union of one provider per identifier)

    Once ``__next__`` has raised ``StopIteration`` it keeps doing so; a fresh
    pass needs a fresh instance.
    """

    def __iter__(self) -> Iterator[SourceObject]:
        ...

    def __next__(self) -> SourceObject:
        ...


ProviderFactory = Callable[[str], SourceObjectEnumerator]
"""Builds the enumerator for one provider-specific identifier."""


class GeneratorEnumerator:
    """Adapts a private ``_discover`` generator into the enumerator protocol."""

    def __init__(self) -> None:
        self._it: Iterator[SourceObject] | None = None
        self._exhausted = False

    def _discover(self) -> Iterator[SourceObject]:
        raise NotImplementedError

    def __iter__(self) -> Iterator[SourceObject]:
        return self

    def __next__(self) -> SourceObject:
        if self._exhausted:
            raise StopIteration
        if self._it is None:
            self._it = self._discover()
        try:
            return next(self._it)
        except StopIteration:
            self._exhausted = True
            self._it = None
            raise
