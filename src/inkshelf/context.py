"""Application context for explicit state passing.

Command handlers receive an AppContext instead of reaching for globals, so
tests can hand them a temporary library and fake capabilities.
"""

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from rich.console import Console

from inkshelf.core.config import Config
from inkshelf.domain.library.provider import MetadataProvider
from inkshelf.domain.library.text_layer import TextLayer


@dataclass(frozen=True)
class AppContext:
    """Immutable application context passed to all command handlers.

    Attributes:
        config: Application configuration
        console: Rich Console for tables and summaries
        text_layer: Text-layer capability (PyMuPDF unless overridden)
        provider: Metadata lookup capability (from [retrieval] unless overridden)
    """

    config: Config
    console: Optional[Console] = None
    text_layer: Optional[TextLayer] = None
    provider: Optional[MetadataProvider] = None

    @classmethod
    def create(cls, config: Config, console: Optional[Console] = None) -> "AppContext":
        """Create the initial context from loaded configuration."""
        return cls(config=config, console=console)

    @property
    def root(self) -> Path:
        return self.config.library.root

    def with_library(
        self,
        path: Optional[str] = None,
        metadata_file: Optional[str] = None,
        imported_file: Optional[str] = None,
    ) -> "AppContext":
        """Return a new context pointing at another library root or database names."""
        library = replace(
            self.config.library,
            path=str(Path(path).expanduser()) if path else self.config.library.path,
            metadata_file=metadata_file or self.config.library.metadata_file,
            imported_file=imported_file or self.config.library.imported_file,
        )
        return replace(self, config=replace(self.config, library=library))

    def get_text_layer(self) -> TextLayer:
        if self.text_layer is not None:
            return self.text_layer
        from inkshelf.domain.library.text_layer import PyMuPDFTextLayer

        return PyMuPDFTextLayer()

    def get_provider(self) -> MetadataProvider:
        if self.provider is not None:
            return self.provider
        from inkshelf.domain.library.providers import get_provider

        return get_provider(self.config.retrieval)
