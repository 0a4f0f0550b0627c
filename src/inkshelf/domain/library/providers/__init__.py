"""
Metadata provider registry.
"""

from typing import Callable, Dict, List

from inkshelf.core.config import RetrievalConfig

from ..provider import MetadataProvider
from .openlibrary import OpenLibraryProvider

ProviderFactory = Callable[[RetrievalConfig], MetadataProvider]

PROVIDERS: Dict[str, ProviderFactory] = {
    "openlibrary": lambda config: OpenLibraryProvider(
        endpoint=config.endpoint, user_agent=config.user_agent
    ),
}


def list_providers() -> List[str]:
    return sorted(PROVIDERS)


def get_provider(config: RetrievalConfig, name: str = "openlibrary") -> MetadataProvider:
    """Build the named provider from retrieval configuration.

    Raises:
        ValueError: If provider not found
    """
    if name not in PROVIDERS:
        raise ValueError(
            f"Unknown provider: '{name}'. Available: {', '.join(list_providers())}"
        )
    return PROVIDERS[name](config)
