"""
Identifier and embedded-metadata extraction passes.

Both passes read documents through a TextLayer and only ever add fields to
staging records. A document that fails is flagged for review and the batch
carries on.
"""

from pathlib import Path
from typing import Callable, Optional

from loguru import logger

from .database import Database
from .exceptions import IdentifierNotFound, TextLayerUnavailable
from .isbn import DEFAULT_PAGE_WINDOW, find_isbn
from .models import DocumentRecord, Metadata
from .results import PassResult
from .text_layer import TextLayer
from .workers import run_bounded

ISBN_FLAG = "isbn:"


def extract_isbn(
    root: Path,
    record: DocumentRecord,
    text_layer: TextLayer,
    window: int = DEFAULT_PAGE_WINDOW,
) -> str:
    """Find the ISBN of one document.

    Raises:
        TextLayerUnavailable: If the document has no text layer
        IdentifierNotFound: If no valid ISBN is in the leading window
    """
    pages = text_layer.page_texts(root / record.path, window)
    return find_isbn(pages, window)


def extract_identifiers(
    root: Path,
    staging: Database,
    text_layer: TextLayer,
    window: int = DEFAULT_PAGE_WINDOW,
    workers: int = 4,
    timeout: Optional[float] = None,
    progress_callback: Optional[Callable[[DocumentRecord], None]] = None,
) -> PassResult:
    """Fill in `isbn` for staging records that don't have one yet.

    Args:
        root: Library root
        staging: Staging database, updated in place
        text_layer: Text-layer capability
        window: Number of leading pages searched
        workers: Parallel text-layer readers
        timeout: Per-document timeout; a timeout counts as "not found"
        progress_callback: Optional callback(record) after each success

    Returns:
        PassResult keyed by identity
    """
    result = PassResult(name="extract-isbn")
    pending = []
    for record in staging.records():
        if record.isbn:
            result.skipped.append(record.identity)
            continue
        # Explicit re-run: earlier failures of this stage are retried
        record.unflag(ISBN_FLAG)
        pending.append(record)

    logger.info(f"Extracting ISBNs from {len(pending)} documents")

    def work(record: DocumentRecord) -> str:
        return extract_isbn(root, record, text_layer, window)

    for outcome in run_bounded(pending, work, max_workers=workers, timeout=timeout):
        record = outcome.item
        if outcome.ok:
            record.isbn = outcome.value
            result.succeeded.append(record.identity)
            logger.info(f"{record.path}: ISBN {record.isbn}")
            if progress_callback:
                progress_callback(record)
            continue

        error = outcome.error
        if isinstance(error, TextLayerUnavailable):
            reason = f"{ISBN_FLAG} no text layer ({error})"
        elif isinstance(error, IdentifierNotFound):
            reason = f"{ISBN_FLAG} not found in the first {window} pages"
        elif isinstance(error, TimeoutError):
            reason = f"{ISBN_FLAG} not found (text layer {error})"
        else:
            logger.opt(exception=error).error(f"{record.path}: text layer failed")
            reason = f"{ISBN_FLAG} text layer error ({error})"
        record.flag(reason)
        result.failed[record.identity] = reason
        logger.debug(f"{record.path}: {reason}")

    logger.info(result.summary())
    return result


def metadata_from_info(info: dict) -> Metadata:
    """Map a document's embedded info dictionary onto descriptive fields."""
    metadata = Metadata()
    title = info.get("title")
    author = info.get("author")
    if title:
        metadata.title = title
    if author:
        metadata.author = author
    return metadata


def extract_embedded_metadata(
    root: Path,
    staging: Database,
    text_layer: TextLayer,
    workers: int = 4,
    timeout: Optional[float] = None,
) -> PassResult:
    """Fill in title/author from embedded document info for untitled records."""
    result = PassResult(name="extract-metadata")
    pending = []
    for record in staging.records():
        if record.metadata.title:
            result.skipped.append(record.identity)
            continue
        pending.append(record)

    def work(record: DocumentRecord) -> Metadata:
        return metadata_from_info(text_layer.document_info(root / record.path))

    for outcome in run_bounded(pending, work, max_workers=workers, timeout=timeout):
        record = outcome.item
        if outcome.ok and outcome.value.title:
            record.metadata.fill_missing(outcome.value)
            result.succeeded.append(record.identity)
            logger.info(f"{record.path}: {record.label()}")
            continue

        if outcome.ok:
            reason = "no embedded title"
        else:
            reason = str(outcome.error)
        # Not flagged: embedded info is optional
        result.failed[record.identity] = reason
        logger.debug(f"{record.path}: {reason}")

    logger.info(result.summary())
    return result
