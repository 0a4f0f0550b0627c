"""Core infrastructure layer - no business logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML)
- Logging and user-facing output (Loguru)
- Console management (Rich)
- The per-library lock

The core layer has no dependencies on the domain layer.
"""

# Configuration
from .config import (
    Config,
    load_config,
    parse_config,
    get_config_dir,
    get_config_path,
    get_data_dir,
    create_default_config,
)

# Errors
from .errors import (
    InkshelfError,
    LibraryUnavailableError,
    LibraryLockedError,
    DatabaseError,
    DatabaseExistsError,
)

# Console and output
from .console import get_console, print_table, print_paths
from .output import log, setup_loguru

# Locking
from .locking import library_lock

__all__ = [
    # Config
    "Config",
    "load_config",
    "parse_config",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "create_default_config",
    # Errors
    "InkshelfError",
    "LibraryUnavailableError",
    "LibraryLockedError",
    "DatabaseError",
    "DatabaseExistsError",
    # Console and output
    "get_console",
    "print_table",
    "print_paths",
    "log",
    "setup_loguru",
    # Locking
    "library_lock",
]
