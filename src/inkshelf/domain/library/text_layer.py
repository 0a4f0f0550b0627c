"""
Text-layer access for documents.

The rendering engine is an external collaborator: the pipeline only needs a
best-effort text dump of a document's leading pages (for ISBN extraction) and
its embedded info dictionary (title/author). Anything that satisfies the
TextLayer protocol can be plugged in; tests use in-memory fakes.
"""

from pathlib import Path
from typing import Dict, List, Protocol

from loguru import logger

from .exceptions import TextLayerUnavailable

# Formats PyMuPDF can open without conversion
SUPPORTED_KINDS = {"pdf", "epub", "xps", "oxps", "cbz", "fb2", "mobi", "djvu"}


class TextLayer(Protocol):
    """Capability for reading a document's text and embedded info."""

    def page_texts(self, path: Path, max_pages: int) -> List[str]:
        """Return the text of at most `max_pages` leading pages.

        Raises:
            TextLayerUnavailable: If the document has no text layer
        """
        ...

    def document_info(self, path: Path) -> Dict[str, str]:
        """Return embedded info (keys such as 'title', 'author').

        Raises:
            TextLayerUnavailable: If the document can't be opened
        """
        ...


class PyMuPDFTextLayer:
    """TextLayer backed by PyMuPDF."""

    def _open(self, path: Path):
        import fitz  # PyMuPDF

        kind = path.suffix.lower().lstrip(".")
        if kind not in SUPPORTED_KINDS:
            raise TextLayerUnavailable(f"unsupported format: {kind or 'none'}")
        try:
            return fitz.open(str(path))
        except Exception as e:
            # PyMuPDF raises its own error types depending on the backend
            raise TextLayerUnavailable(f"can't open {path.name}: {e}") from e

    def page_texts(self, path: Path, max_pages: int) -> List[str]:
        doc = self._open(path)
        try:
            texts = []
            for page_num in range(min(max_pages, doc.page_count)):
                texts.append(doc.load_page(page_num).get_text("text"))
        except Exception as e:
            raise TextLayerUnavailable(f"can't read text of {path.name}: {e}") from e
        finally:
            doc.close()

        if not any(text.strip() for text in texts):
            raise TextLayerUnavailable(f"no text layer in {path.name}")

        logger.debug(f"Read {len(texts)} pages of text from {path}")
        return texts

    def document_info(self, path: Path) -> Dict[str, str]:
        doc = self._open(path)
        try:
            info = doc.metadata or {}
        finally:
            doc.close()
        return {
            key: value.strip()
            for key, value in info.items()
            if isinstance(value, str) and value.strip()
        }
