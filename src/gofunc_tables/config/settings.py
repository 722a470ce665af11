"""Configuration loading and validation.

Loads YAML or JSON configuration files, with environment variables as the fallback source.
"""
from __future__ import annotations
import json
import logging
import os
import yaml
from pathlib import Path
from typing import Literal
from urllib.parse import quote
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

SSL_MODES = ("disable", "allow", "prefer", "require", "verify-ca", "verify-full")


class DatabaseConfig(BaseModel):
    """PostgreSQL connection parameters."""
    host: str = Field("localhost", description="Database host")
    port: int = Field(5432, ge=1, le=65535, description="Database port")
    database: str = Field("postgres", description="Database name")
    user: str = Field("postgres", description="Database user")
    password: str = Field("", description="Database password")
    sslmode: str = Field("disable", description="libpq sslmode")

    @field_validator("host", "database", "user")
    @classmethod
    def validate_required(cls, v: str, info) -> str:
        """Reject empty connection fields."""
        if not v or not v.strip():
            raise ValueError(f"database {info.field_name} is required")
        return v

    @field_validator("sslmode")
    @classmethod
    def validate_sslmode(cls, v: str) -> str:
        if not v:
            return "disable"
        if v not in SSL_MODES:
            raise ValueError(f"sslmode must be one of {', '.join(SSL_MODES)}")
        return v

    def dsn(self) -> str:
        """Build a postgresql:// URL for asyncpg."""
        auth = quote(self.user, safe="")
        if self.password:
            auth = f"{auth}:{quote(self.password, safe='')}"
        return f"postgresql://{auth}@{self.host}:{self.port}/{quote(self.database, safe='')}?sslmode={self.sslmode}"

    def redacted(self) -> dict:
        data = self.model_dump()
        if data["password"]:
            data["password"] = "***"
        return data


class ExecutionConfig(BaseModel):
    """Go toolchain settings."""
    go_binary: str = Field("go", description="Go toolchain executable")
    timeout_seconds: float | None = Field(
        None, description="Per-function timeout; unset means no timeout"
    )

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("timeout_seconds must be positive")
        return v


class ScanConfig(BaseModel):
    """Source scanning settings."""
    respect_gitignore: bool = Field(False, description="Also skip paths matched by .gitignore")


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field("INFO", description="Log level")
    format: str = Field(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        description="Log record format"
    )


class AppConfig(BaseModel):
    """Complete application configuration."""
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    scanning: ScanConfig = Field(default_factory=ScanConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    repositories: list[str] = Field(default_factory=list, description="Repositories to process")
    results_file: str = Field("processing_results.json", description="Where to write results")

    @classmethod
    def from_file(cls, path: str | Path) -> AppConfig:
        """Load configuration from a YAML or JSON file.

        Args:
            path: Path to configuration file (.yaml, .yml or .json)

        Returns:
            Validated AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If configuration is invalid
        """
        config_path = Path(path)

        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        text = config_path.read_text(encoding="utf-8")
        try:
            if config_path.suffix.lower() == ".json":
                data = json.loads(text)
            else:
                data = yaml.safe_load(text)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ValueError(f"Failed to parse config file {config_path}: {e}") from e

        if not data:
            raise ValueError(f"Empty configuration file: {config_path}")

        try:
            return cls.model_validate(data)
        except Exception as e:
            raise ValueError(f"Invalid configuration in {config_path}: {e}") from e

    @classmethod
    def from_env(cls) -> AppConfig:
        """Load configuration from environment variables (and a .env file if present)."""
        load_dotenv()

        timeout = os.getenv("EXECUTION_TIMEOUT")
        data = {
            "database": {
                "host": os.getenv("DB_HOST", "localhost"),
                "port": os.getenv("DB_PORT", "5432"),
                "database": os.getenv("DB_NAME", "postgres"),
                "user": os.getenv("DB_USER", "postgres"),
                "password": os.getenv("DB_PASSWORD", ""),
                "sslmode": os.getenv("DB_SSLMODE", "disable"),
            },
            "execution": {
                "go_binary": os.getenv("GO_BINARY", "go"),
                "timeout_seconds": float(timeout) if timeout else None,
            },
            "logging": {"level": os.getenv("LOG_LEVEL", "INFO").upper()},
        }
        return cls.model_validate(data)

    def save(self, path: str | Path) -> None:
        """Write configuration to YAML or JSON, chosen by file suffix."""
        config_path = Path(path)
        data = self.model_dump()
        if config_path.suffix.lower() == ".json":
            config_path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
        else:
            config_path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load configuration from file or environment.

    An explicit path wins over CONFIG_FILE. The environment is used only
    when neither is given.

    Args:
        config_path: Optional explicit path to config file

    Returns:
        Validated AppConfig instance

    Raises:
        FileNotFoundError: If the named config file doesn't exist
        ValueError: If the named config file is invalid
    """
    load_dotenv()
    config_path = config_path or os.getenv("CONFIG_FILE")

    if config_path:
        logger.info(f"Loading configuration from {config_path}")
        return AppConfig.from_file(config_path)

    logger.info("Loading configuration from environment")
    return AppConfig.from_env()
