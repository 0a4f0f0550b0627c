"""
Metadata retrieval pass.

Queries the lookup service for staging records without a title. Failures are
flagged for review and are not retried within the pass; re-running the
command is the only retry, which keeps us within the service's rate limits.
"""

import re
from pathlib import PurePosixPath
from typing import Callable, Optional

from loguru import logger

from .database import Database
from .exceptions import RetrievalNotFound, RetrievalTransportError
from .models import DocumentRecord
from .provider import MetadataProvider, Query
from .results import PassResult
from .workers import run_bounded

RETRIEVAL_FLAG = "retrieval:"

_NON_WORD_RE = re.compile(r"[^\w'\-]|_")


def label_from_path(path: str) -> str:
    """Cleaned title guess from a file name.

    'Fiction/The_Odyssey.(Penguin).epub' -> 'the odyssey penguin'
    """
    stem = PurePosixPath(path).stem
    return " ".join(_NON_WORD_RE.sub(" ", stem).split()).lower()


def query_for(record: DocumentRecord, allow_fallback: bool = True) -> Optional[Query]:
    """Pick the lookup query for a record; None means the record is skipped."""
    if record.isbn:
        return Query(terms=record.isbn, is_isbn=True)
    if not allow_fallback:
        return None
    terms = label_from_path(record.path)
    if not terms:
        return None
    return Query(terms=terms)


def retrieve_metadata(
    staging: Database,
    provider: MetadataProvider,
    allow_fallback: bool = True,
    max_concurrency: int = 2,
    timeout: float = 10.0,
    progress_callback: Optional[Callable[[DocumentRecord], None]] = None,
) -> PassResult:
    """Fill in descriptive metadata for staging records without a title.

    Args:
        staging: Staging database, updated in place
        provider: Lookup capability
        allow_fallback: Query by file name when a record has no ISBN
        max_concurrency: Requests in flight at once
        timeout: Per-request timeout; a timeout counts as a transport error
        progress_callback: Optional callback(record) after each success

    Returns:
        PassResult keyed by identity
    """
    result = PassResult(name="retrieve")
    pending = []
    for record in staging.records():
        if record.metadata.title:
            result.skipped.append(record.identity)
            continue
        query = query_for(record, allow_fallback)
        if query is None:
            result.skipped.append(record.identity)
            continue
        record.unflag(RETRIEVAL_FLAG)
        pending.append((record, query))

    logger.info(
        f"Retrieving metadata for {len(pending)} documents via {provider.name} "
        f"(concurrency={max_concurrency})"
    )

    def work(item):
        _, query = item
        return provider.lookup(query, timeout)

    # The pool timeout is a backstop; providers enforce `timeout` per request
    backstop = timeout * 2 if timeout else None
    outcomes = run_bounded(
        pending, work, max_workers=max_concurrency, timeout=backstop
    )
    for outcome in outcomes:
        record, query = outcome.item
        if outcome.ok:
            filled = record.metadata.fill_missing(outcome.value)
            result.succeeded.append(record.identity)
            logger.info(f"{record.path}: {record.label()} ({', '.join(filled)})")
            if progress_callback:
                progress_callback(record)
            continue

        error = outcome.error
        if isinstance(error, RetrievalNotFound):
            reason = f"{RETRIEVAL_FLAG} not found ({query.terms})"
        elif isinstance(error, (RetrievalTransportError, TimeoutError)):
            reason = f"{RETRIEVAL_FLAG} transport error ({error})"
        else:
            logger.opt(exception=error).error(f"{record.path}: lookup failed")
            reason = f"{RETRIEVAL_FLAG} lookup error ({error})"
        record.flag(reason)
        result.failed[record.identity] = reason
        logger.warning(f"{record.path}: {reason}")

    logger.info(result.summary())
    return result
