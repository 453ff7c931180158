"""Configuration management module."""
import sys
from pathlib import Path
from typing import List, Optional

try:
    import tomllib
except ImportError:
    import tomli as tomllib

from pydantic import BaseModel, Field, field_validator


class RepositoryConfig(BaseModel):
    """Local repository configuration."""
    path: str = ""
    directory: Optional[str] = None

    @property
    def database_path(self) -> Path:
        return Path(self.path)

    @property
    def package_dir(self) -> Path:
        """Directory holding the package files, by default next to the database."""
        if self.directory:
            return Path(self.directory)
        return self.database_path.parent


class ReconcileConfig(BaseModel):
    """Reconciliation engine configuration."""
    parallelism: int = 16
    request_timeout: float = 30.0
    ignore: List[str] = Field(default_factory=list)
    check_remote: bool = True

    @field_validator('parallelism')
    @classmethod
    def validate_parallelism(cls, v: int) -> int:
        """Validate remote fetch parallelism."""
        if v < 1:
            raise ValueError("parallelism must be at least 1")
        return v

    @field_validator('request_timeout')
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate per-request timeout."""
        if v <= 0:
            raise ValueError("request_timeout must be positive")
        return v


class AURConfig(BaseModel):
    """AUR RPC API configuration."""
    api_base_url: str = "https://aur.archlinux.org/rpc"
    request_timeout: int = 30
    user_agent: str = "repostat/0.1.0"


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "WARNING"
    file: Optional[str] = None
    max_bytes: int = 10485760
    backup_count: int = 5

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate logging level."""
        allowed = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"Logging level must be one of {allowed}")
        return v_upper


class Config(BaseModel):
    """Main configuration."""
    repository: RepositoryConfig = Field(default_factory=RepositoryConfig)
    reconcile: ReconcileConfig = Field(default_factory=ReconcileConfig)
    aur: AURConfig = Field(default_factory=AURConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(config_path: str = "config.toml") -> Config:
    """
    Load configuration from TOML file.

    Args:
        config_path: Path to configuration file

    Returns:
        Config object

    Exits with status 1 if the file is missing or invalid.
    """
    path = Path(config_path)

    if not path.exists():
        print(f"Error: Configuration file '{config_path}' not found!", file=sys.stderr)
        print(f"Please copy 'config.toml.example' to '{config_path}' and configure it.", file=sys.stderr)
        sys.exit(1)

    try:
        with open(path, 'rb') as f:
            data = tomllib.load(f)

        config = Config(**data)
        return config
    except Exception as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        sys.exit(1)
