"""Configuration management for the School Library MCP Server.

Settings are loaded from the environment (prefix ``SCHOOL_LIBRARY_``) or a
``.env`` file and validated with Pydantic v2:
1. Protocol metadata used in the MCP handshake
2. Database location
3. Stock accounting policy (low-stock threshold, strict availability check)
4. Per-school data partitioning
5. The external book data service used for ISBN lookups
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerConfig(BaseSettings):
    """School library server configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SCHOOL_LIBRARY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Server Metadata ===

    server_name: str = Field(
        default="school-library",
        description="MCP server name used in protocol handshake",
        pattern=r"^[a-z0-9-]+$",
    )

    server_version: str = Field(
        default="0.1.0",
        description="Server version for capability negotiation",
        pattern=r"^\d+\.\d+\.\d+(-[a-zA-Z0-9.]+)?$",
    )

    # === Database Configuration ===

    database_path: Path = Field(
        default=Path("data/school_library.db"),
        description="SQLite database file path",
    )

    # === Transport Configuration ===

    transport: str = Field(
        default="stdio",
        description="Primary transport mechanism",
        pattern=r"^(stdio|streamable_http)$",
    )

    # === Stock Accounting ===

    low_stock_threshold: int = Field(
        default=5,
        description="Books with this many available copies or fewer count as low stock",
        ge=0,
    )

    strict_stock_check: bool = Field(
        default=False,
        description="Reject new loans that take more copies than are currently available",
    )

    # === School Partitioning ===

    default_school_id: str | None = Field(
        default=None,
        description="Restrict listings and new records to this school",
        pattern=r"^school_[a-zA-Z0-9_]{6,}$",
    )

    max_page_size: int = Field(
        default=100,
        description="Largest page size accepted by list resources",
        ge=1,
        le=500,
    )

    # === External Book Data ===

    external_api_key: str | None = Field(
        default=None,
        description="API key for the external book data service",
        repr=False,
    )

    book_lookup_url: str = Field(
        default="https://www.googleapis.com/books/v1/volumes",
        description="Google Books volumes endpoint used for ISBN lookups",
        pattern=r"^https?://",
    )

    book_lookup_timeout: float = Field(
        default=10.0,
        description="Seconds to wait for the book data service",
        gt=0,
        le=60,
    )

    # === Development Configuration ===

    debug: bool = Field(
        default=False,
        description="Enable debug logging for protocol messages",
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR)$",
    )

    @field_validator("database_path")
    @classmethod
    def validate_database_path(cls, v: Path) -> Path:
        """Resolve the database path and make sure its directory exists."""
        abs_path = v.absolute()
        abs_path.parent.mkdir(parents=True, exist_ok=True)

        if not abs_path.parent.is_dir():
            raise ValueError(f"Database directory {abs_path.parent} is not accessible")

        return abs_path

    @field_validator("server_name")
    @classmethod
    def validate_server_name(cls, v: str) -> str:
        if len(v) < 3:
            raise ValueError("Server name must be at least 3 characters")
        if len(v) > 50:
            raise ValueError("Server name must not exceed 50 characters")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.debug or self.log_level == "DEBUG"

    @property
    def server_info(self) -> dict[str, str]:
        """Server information sent during the MCP initialization phase."""
        return {
            "name": self.server_name,
            "version": self.server_version,
            "transport": self.transport,
        }

    def get_database_url(self) -> str:
        """Get SQLAlchemy database URL."""
        return f"sqlite:///{self.database_path}"


class _ConfigStore:
    """Internal storage for configuration singleton."""

    _instance: ServerConfig | None = None


def get_config() -> ServerConfig:
    """Get or create the global configuration instance."""
    if _ConfigStore._instance is None:  # type: ignore[reportPrivateUsage]
        _ConfigStore._instance = ServerConfig()  # type: ignore[reportPrivateUsage]
    return _ConfigStore._instance  # type: ignore[reportPrivateUsage]


def set_config(config: ServerConfig) -> None:
    """Install a specific configuration instance (used by tests and scripts)."""
    _ConfigStore._instance = config  # type: ignore[reportPrivateUsage]


def reset_config() -> None:
    """Reset configuration (useful for testing)."""
    _ConfigStore._instance = None  # type: ignore[reportPrivateUsage]
