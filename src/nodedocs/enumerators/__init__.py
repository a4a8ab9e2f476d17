"""Enumeration providers -- discover source objects by provider kind."""

from __future__ import annotations

from .base import GeneratorEnumerator, ProviderFactory, SourceObjectEnumerator
from .composite import CompositeEnumerator

__all__ = [
    "CompositeEnumerator",
    "GeneratorEnumerator",
    "ProviderFactory",
    "SourceObjectEnumerator",
    "get_provider",
    "register_provider",
    "setup_providers",
]

# Registry populated at startup via setup_providers().
_REGISTRY: dict[str, ProviderFactory] = {}


def register_provider(kind: str, factory: ProviderFactory) -> None:
    """Register the enumerator factory for a provider kind."""
    _REGISTRY[kind] = factory


def get_provider(kind: str) -> ProviderFactory | None:
    """Return the factory for *kind*, or ``None`` if nothing is registered."""
    return _REGISTRY.get(kind)


def setup_providers() -> None:
    """Register the built-in ``native`` and ``content`` providers.

    Already-registered kinds are left alone so callers can swap in their
    own provider before the pipeline starts.
    """
    from .content_path import KIND as CONTENT, ContentPathEnumerator
    from .native_module import KIND as NATIVE, NativeModuleEnumerator

    _REGISTRY.setdefault(NATIVE, NativeModuleEnumerator)
    _REGISTRY.setdefault(CONTENT, ContentPathEnumerator)
