"""Run provider registry."""

from typing import Type

from .base import RunProvider

# Registry of all available providers
_PROVIDERS: dict[str, Type[RunProvider]] = {}

DEFAULT_PROVIDER = "gh"


def register_provider(provider_class: Type[RunProvider]) -> Type[RunProvider]:
    """Decorator to register a provider class."""
    _PROVIDERS[provider_class.name] = provider_class
    return provider_class


def get_provider(name: str = DEFAULT_PROVIDER, **kwargs) -> RunProvider | None:
    """Get an instance of a provider by name."""
    provider_class = _PROVIDERS.get(name)
    if provider_class:
        return provider_class(**kwargs)
    return None


def provider_names() -> list[str]:
    return sorted(_PROVIDERS)


# Import providers to trigger registration
from . import gh_cli  # noqa: F401, E402
