"""
Configuration management for inkshelf
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

METADATA_FILENAME = ".metadata.json"
IMPORTED_MD_FILENAME = ".metadata-imported.json"
LOCK_FILENAME = ".inkshelf.lock"

DEFAULT_LOOKUP_URL = "https://openlibrary.org/search.json"


@dataclass
class LibraryConfig:
    """Configuration for the library root and its database files."""

    path: str = field(default_factory=lambda: str(Path.home() / "Books"))
    metadata_file: str = METADATA_FILENAME
    imported_file: str = IMPORTED_MD_FILENAME

    @property
    def root(self) -> Path:
        return Path(self.path).expanduser()

    @property
    def canonical_path(self) -> Path:
        return self.root / self.metadata_file

    @property
    def staging_path(self) -> Path:
        return self.root / self.imported_file


@dataclass
class ExtractionConfig:
    """Configuration for ISBN extraction from the text layer."""

    page_window: int = 10  # Leading pages searched for an ISBN
    workers: int = 4
    timeout_seconds: float = 30.0

    def validate(self) -> None:
        """Validate extraction configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if self.page_window < 1:
            raise ValueError(f"page_window must be >= 1, got {self.page_window}")
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")
        if self.timeout_seconds <= 0:
            raise ValueError(
                f"timeout_seconds must be positive, got {self.timeout_seconds}"
            )


@dataclass
class RetrievalConfig:
    """Configuration for the remote metadata lookup service."""

    endpoint: str = DEFAULT_LOOKUP_URL
    timeout_seconds: float = 10.0
    max_concurrency: int = 2  # Keep low: the lookup service is rate limited
    allow_fallback_query: bool = True
    user_agent: str = "inkshelf/0.1"

    def validate(self) -> None:
        """Validate retrieval configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if self.max_concurrency < 1:
            raise ValueError(
                f"max_concurrency must be >= 1, got {self.max_concurrency}"
            )
        if self.timeout_seconds <= 0:
            raise ValueError(
                f"timeout_seconds must be positive, got {self.timeout_seconds}"
            )
        if not self.endpoint.startswith(("http://", "https://")):
            raise ValueError(f"endpoint must be an http(s) URL, got {self.endpoint}")


@dataclass
class SyncConfig:
    """Configuration for mirroring the library onto a reader device."""

    target_path: Optional[str] = None
    time_tolerance_seconds: float = 2.0  # FAT stores mtimes with 2s resolution
    delete: bool = True
    workers: int = 4
    exclude: List[str] = field(
        default_factory=lambda: [
            METADATA_FILENAME,
            IMPORTED_MD_FILENAME,
            LOCK_FILENAME,
        ]
    )

    def validate(self) -> None:
        """Validate sync configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if self.time_tolerance_seconds < 0:
            raise ValueError(
                "time_tolerance_seconds must be >= 0, "
                f"got {self.time_tolerance_seconds}"
            )
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = (
        None  # Custom log file path (default: ~/.local/share/inkshelf/inkshelf.log)
    )
    console_output: bool = False  # Also mirror diagnostics to stderr


@dataclass
class Config:
    """Main configuration object."""

    library: LibraryConfig = field(default_factory=LibraryConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    # Per-format styling overrides, keyed by lowercase file kind
    styling: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def styling_for(self, kind: str) -> Dict[str, Any]:
        """Return the styling override for a file kind (empty if none)."""
        return dict(self.styling.get(kind.lower(), {}))


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "inkshelf"
    return Path.home() / ".config" / "inkshelf"


def _find_project_config() -> Optional[Path]:
    """Find config.toml in project root by looking for pyproject.toml.

    Used during development so the project's config file is found even when
    the tool is run from another working directory.

    Returns:
        Path to config.toml in project root, or None if not found
    """
    current = Path(__file__).resolve().parent
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            config_path = parent / "config.toml"
            if config_path.exists():
                return config_path
            return None
    return None


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the following order:
    1. Project root (detected via pyproject.toml) - for development
    2. Current working directory
    3. XDG_CONFIG_HOME/inkshelf (or ~/.config/inkshelf)
    """
    project_config = _find_project_config()
    if project_config:
        return project_config

    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config

    return get_config_dir() / "config.toml"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "inkshelf"
    return Path.home() / ".local" / "share" / "inkshelf"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return f"""
# inkshelf Configuration

[library]
# Root of the document library
path = "~/Books"

# Canonical and import-staging database file names (inside the library root)
metadata_file = "{METADATA_FILENAME}"
imported_file = "{IMPORTED_MD_FILENAME}"

[extraction]
# Number of leading pages searched for an ISBN
page_window = 10

# Parallel text-layer readers
workers = 4

# Per-document timeout for reading the text layer
timeout_seconds = 30

[retrieval]
# Metadata lookup service endpoint
endpoint = "{DEFAULT_LOOKUP_URL}"

# Per-request timeout
timeout_seconds = 10

# Concurrent requests (keep low to respect the service's rate limits)
max_concurrency = 2

# Query by file name when a record has no ISBN
allow_fallback_query = true

[sync]
# Reader device library root
# target_path = "/media/reader/books"

# Modification times closer than this are considered equal
time_tolerance_seconds = 2.0

# Delete files on the device that are absent from the library
delete = true

# Parallel copy workers
workers = 4

# Paths neither copied nor deleted (the databases are merged instead)
exclude = ["{METADATA_FILENAME}", "{IMPORTED_MD_FILENAME}", "{LOCK_FILENAME}"]

# Optional per-format styling overrides, e.g.
# [styling.epub]
# font_size = 11.0
# margin_width = 8

[logging]
# Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
level = "INFO"

# Custom log file path (default: ~/.local/share/inkshelf/inkshelf.log)
# log_file = "/path/to/custom/inkshelf.log"

# Also output logs to console (useful for debugging)
console_output = false
""".strip()


def _parse_styling(styling_data: Any) -> Dict[str, Dict[str, Any]]:
    """Validate [styling] tables: one table of scalar values per file kind."""
    if not isinstance(styling_data, dict):
        raise ValueError("[styling] must be a table of per-format tables")

    styling: Dict[str, Dict[str, Any]] = {}
    for kind, overrides in styling_data.items():
        if not isinstance(overrides, dict):
            raise ValueError(f"[styling.{kind}] must be a table")
        for key, value in overrides.items():
            if not isinstance(value, (str, int, float, bool)):
                raise ValueError(f"[styling.{kind}] {key} must be a scalar value")
        styling[kind.lower().lstrip(".")] = dict(overrides)
    return styling


def parse_config(toml_data: Dict[str, Any]) -> Config:
    """Build a Config from parsed TOML, falling back to defaults per section."""
    config = Config()

    if "library" in toml_data:
        library_data = toml_data["library"]
        config.library = LibraryConfig(
            path=str(Path(library_data.get("path", config.library.path)).expanduser()),
            metadata_file=library_data.get(
                "metadata_file", config.library.metadata_file
            ),
            imported_file=library_data.get(
                "imported_file", config.library.imported_file
            ),
        )

    if "extraction" in toml_data:
        extraction_data = toml_data["extraction"]
        config.extraction = ExtractionConfig(
            page_window=extraction_data.get(
                "page_window", config.extraction.page_window
            ),
            workers=extraction_data.get("workers", config.extraction.workers),
            timeout_seconds=extraction_data.get(
                "timeout_seconds", config.extraction.timeout_seconds
            ),
        )
        try:
            config.extraction.validate()
        except ValueError as e:
            print(f"Warning: Invalid extraction configuration: {e}")
            print("Using default extraction configuration.")
            config.extraction = ExtractionConfig()

    if "retrieval" in toml_data:
        retrieval_data = toml_data["retrieval"]
        config.retrieval = RetrievalConfig(
            endpoint=retrieval_data.get("endpoint", config.retrieval.endpoint),
            timeout_seconds=retrieval_data.get(
                "timeout_seconds", config.retrieval.timeout_seconds
            ),
            max_concurrency=retrieval_data.get(
                "max_concurrency", config.retrieval.max_concurrency
            ),
            allow_fallback_query=retrieval_data.get(
                "allow_fallback_query", config.retrieval.allow_fallback_query
            ),
            user_agent=retrieval_data.get("user_agent", config.retrieval.user_agent),
        )
        try:
            config.retrieval.validate()
        except ValueError as e:
            print(f"Warning: Invalid retrieval configuration: {e}")
            print("Using default retrieval configuration.")
            config.retrieval = RetrievalConfig()

    if "sync" in toml_data:
        sync_data = toml_data["sync"]
        target_path = sync_data.get("target_path")
        if target_path:
            target_path = str(Path(target_path).expanduser())
        config.sync = SyncConfig(
            target_path=target_path,
            time_tolerance_seconds=sync_data.get(
                "time_tolerance_seconds", config.sync.time_tolerance_seconds
            ),
            delete=sync_data.get("delete", config.sync.delete),
            workers=sync_data.get("workers", config.sync.workers),
            exclude=sync_data.get("exclude", config.sync.exclude),
        )
        try:
            config.sync.validate()
        except ValueError as e:
            print(f"Warning: Invalid sync configuration: {e}")
            print("Using default sync configuration.")
            config.sync = SyncConfig()

    # The databases of this library must never be deleted by a mirror pass
    for name in (
        config.library.metadata_file,
        config.library.imported_file,
        LOCK_FILENAME,
    ):
        if name not in config.sync.exclude:
            config.sync.exclude.append(name)

    if "styling" in toml_data:
        try:
            config.styling = _parse_styling(toml_data["styling"])
        except ValueError as e:
            print(f"Warning: Invalid styling configuration: {e}")
            print("Ignoring styling overrides.")

    if "logging" in toml_data:
        logging_data = toml_data["logging"]
        log_file = logging_data.get("log_file")
        if log_file:
            log_file = str(Path(log_file).expanduser())
        config.logging = LoggingConfig(
            level=logging_data.get("level", config.logging.level).upper(),
            log_file=log_file,
            console_output=logging_data.get(
                "console_output", config.logging.console_output
            ),
        )

    # Environment overrides
    library_path = os.environ.get("INKSHELF_LIBRARY_PATH")
    if library_path:
        config.library.path = str(Path(library_path).expanduser())
    lookup_url = os.environ.get("INKSHELF_LOOKUP_URL")
    if lookup_url:
        config.retrieval.endpoint = lookup_url

    return config


def load_config() -> Config:
    """Load configuration from file or create default.

    Environment variables override TOML values:
    - INKSHELF_LIBRARY_PATH
    - INKSHELF_LOOKUP_URL
    """
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    config_path = get_config_path()

    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_default_config())
        print(f"Created default configuration at: {config_path}")
        return parse_config({})

    try:
        with open(config_path, "rb") as f:
            toml_data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        print(f"Error loading configuration from {config_path}: {e}")
        print("Using default configuration.")
        return parse_config({})

    return parse_config(toml_data)

