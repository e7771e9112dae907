"""
==============================================================================
Application Settings Module
==============================================================================

Configuration management for the scan service using Pydantic Settings.

A single cached Settings instance is shared by the decoder, validator,
matcher and HTTP layers.

Configuration Priority (highest to lowest):
------------------------------------------
1. Environment variables
2. .env file
3. Default values

Scan Tuning:
-----------
- DECODE_TIMEOUT_MS: time budget for one frame decode
- MULTI_SYMBOL: report every symbol in a frame instead of the first
- ENABLED_SYMBOLOGIES: JSON array, priority order is fixed by the decoder
- ALLOW_UNKNOWN_CODES: accept payloads that match no known pattern
- LOOKUP_TIMEOUT_SECONDS: bound on a single order store lookup

==============================================================================
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Module logger
logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        app_name: Display name for the application
        debug: Enable debug mode for verbose logging
        host: Server bind address
        port: Server port number
        database_url: SQLAlchemy database connection string
        decode_timeout_ms: Decode time budget per frame in milliseconds
        multi_symbol: Yield every symbol found in a frame
        enabled_symbologies: Symbologies to try (JSON array string)
        allow_unknown_codes: Accept payloads matching no pattern
        order_id_digits: Digit count of an order id barcode
        sku_prefixes: Recognized item SKU prefixes (JSON array string)
        lookup_timeout_seconds: Order store lookup bound
        scan_log_enabled: Write scan results to the audit log
        log_directory: Directory for scan audit logs
        orders_file: Seed file for the orders table
        cors_origins: Allowed CORS origins (JSON array string)

    Example:
        >>> settings = Settings()
        >>> settings.decode_timeout_ms
        250
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )

    # =========================================================================
    # APPLICATION SETTINGS
    # =========================================================================
    app_name: str = Field(
        default="Bistro Scan API",
        description="Display name for the application"
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode for verbose logging"
    )

    # =========================================================================
    # SERVER SETTINGS
    # =========================================================================
    host: str = Field(
        default="0.0.0.0",
        description="Server bind address"
    )

    port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Server port number"
    )

    # =========================================================================
    # DATABASE SETTINGS
    # =========================================================================
    database_url: str = Field(
        default="sqlite:///./storage/db/orders.db",
        description="SQLAlchemy database connection string"
    )

    # =========================================================================
    # DECODER SETTINGS
    # =========================================================================
    decode_timeout_ms: int = Field(
        default=250,
        ge=1,
        le=10000,
        description="Decode time budget per frame in milliseconds"
    )

    multi_symbol: bool = Field(
        default=False,
        description="Yield every symbol in a frame instead of stopping at the first"
    )

    enabled_symbologies: str = Field(
        default='["qr", "code128", "ean13", "ean8", "upca", "upce", "code39", "code93", "itf", "codabar"]',
        description="Symbologies to try, as a JSON array string"
    )

    # =========================================================================
    # VALIDATOR SETTINGS
    # =========================================================================
    allow_unknown_codes: bool = Field(
        default=False,
        description="Accept payloads that match no recognized pattern"
    )

    order_id_digits: int = Field(
        default=6,
        ge=4,
        le=12,
        description="Number of digits in an order id barcode"
    )

    sku_prefixes: str = Field(
        default='["SKU", "ITM"]',
        description="Recognized item SKU prefixes, as a JSON array string"
    )

    # =========================================================================
    # MATCHER SETTINGS
    # =========================================================================
    lookup_timeout_seconds: float = Field(
        default=2.0,
        gt=0,
        le=60,
        description="Upper bound on a single order store lookup"
    )

    # =========================================================================
    # FILE PATH SETTINGS
    # =========================================================================
    scan_log_enabled: bool = Field(
        default=True,
        description="Append match results to the scan audit log"
    )

    log_directory: str = Field(
        default="storage/logs",
        description="Directory for scan audit logs"
    )

    orders_file: str = Field(
        default="data/orders.json",
        description="Seed file for the orders table"
    )

    # =========================================================================
    # CORS SETTINGS
    # =========================================================================
    cors_origins: str = Field(
        default='["*"]',
        description="Allowed CORS origins as JSON array string"
    )

    # =========================================================================
    # VALIDATORS
    # =========================================================================
    @field_validator("enabled_symbologies", "sku_prefixes", "cors_origins")
    @classmethod
    def validate_json_list(cls, value: str) -> str:
        """
        Ensure list settings hold a JSON array of strings.

        Raises:
            ValueError: If the value is not a JSON array of strings
        """
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError as e:
            raise ValueError(f"Expected a JSON array string, got {value!r}") from e

        if not isinstance(parsed, list) or not all(isinstance(v, str) for v in parsed):
            raise ValueError(f"Expected a JSON array of strings, got {value!r}")

        return value

    # =========================================================================
    # COMPUTED PROPERTIES
    # =========================================================================
    @property
    def decode_timeout_seconds(self) -> float:
        """Decode time budget in seconds."""
        return self.decode_timeout_ms / 1000.0

    @property
    def symbology_list(self) -> List[str]:
        """Enabled symbology names, lower-cased."""
        return [name.strip().lower() for name in json.loads(self.enabled_symbologies)]

    @property
    def sku_prefix_list(self) -> List[str]:
        """SKU prefixes, upper-cased with blanks removed."""
        return [p.strip().upper() for p in json.loads(self.sku_prefixes) if p.strip()]

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from JSON string to list."""
        return json.loads(self.cors_origins) or ["*"]

    @property
    def log_path(self) -> Path:
        """
        Get log directory as Path object.

        Creates the directory if it doesn't exist.
        """
        path = Path(self.log_directory)
        path.mkdir(parents=True, exist_ok=True)
        return path

    @property
    def orders_path(self) -> Path:
        """Get the orders seed file as Path object."""
        return Path(self.orders_file)

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================
    def get_database_path(self) -> Optional[Path]:
        """
        Extract database file path for SQLite databases.

        Returns:
            Path to database file, or None for non-SQLite or in-memory databases
        """
        if not self.database_url.startswith("sqlite"):
            return None

        db_path = self.database_url.replace("sqlite:///", "")
        if not db_path or db_path.startswith("sqlite:") or db_path == ":memory:":
            return None
        if db_path.startswith("./"):
            db_path = db_path[2:]
        return Path(db_path)

    def ensure_directories(self) -> None:
        """Create the log directory and the SQLite database directory."""
        self.log_path.mkdir(parents=True, exist_ok=True)

        db_path = self.get_database_path()
        if db_path:
            db_path.parent.mkdir(parents=True, exist_ok=True)

        logger.debug("Required directories created/verified")

    def __repr__(self) -> str:
        return (
            f"Settings(database_url={self.database_url!r}, "
            f"decode_timeout_ms={self.decode_timeout_ms}, "
            f"multi_symbol={self.multi_symbol}, "
            f"lookup_timeout_seconds={self.lookup_timeout_seconds})"
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached Settings shared by the whole process."""
    settings = Settings()
    settings.ensure_directories()

    if settings.debug:
        logger.info(f"Configuration loaded: {settings}")

    return settings
