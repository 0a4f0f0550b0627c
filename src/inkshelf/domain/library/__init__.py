"""Library domain - document discovery, enrichment and metadata databases.

This domain handles:
- Document record models and the database files
- Library scanning against the canonical database
- ISBN extraction from the text layer
- Metadata retrieval from a lookup service
- Cleaning, consolidating and merging staged records
"""

# Models
from .models import DocumentRecord, DocumentStatus, FileInfo, Metadata

# Database files
from .database import (
    Database,
    load_database,
    load_database_or_empty,
    save_database,
    init_database,
)

# Pipeline passes
from .scanner import ScanResult, find_files, scan_library
from .isbn import find_isbn, find_isbn_candidates, is_valid_isbn, normalize_isbn
from .extractor import extract_identifiers, extract_embedded_metadata
from .retriever import label_from_path, retrieve_metadata
from .cleaner import CleanResult, clean_database, clean_record
from .merger import FinalizeResult, finalize_staging, merge_databases, merge_record
from .consolidate import consolidate_database, file_name_from_record, rename_files
from .results import PassResult

__all__ = [
    # Models
    "DocumentRecord",
    "DocumentStatus",
    "FileInfo",
    "Metadata",
    # Database files
    "Database",
    "load_database",
    "load_database_or_empty",
    "save_database",
    "init_database",
    # Pipeline passes
    "ScanResult",
    "find_files",
    "scan_library",
    "find_isbn",
    "find_isbn_candidates",
    "is_valid_isbn",
    "normalize_isbn",
    "extract_identifiers",
    "extract_embedded_metadata",
    "label_from_path",
    "retrieve_metadata",
    "CleanResult",
    "clean_database",
    "clean_record",
    "merge_databases",
    "merge_record",
    "FinalizeResult",
    "finalize_staging",
    "consolidate_database",
    "file_name_from_record",
    "rename_files",
    "PassResult",
]
