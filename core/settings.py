from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from core.exceptions import ConfigurationError

PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Load .env file from project root
_env_path = PROJECT_ROOT / ".env"
if _env_path.exists():
    load_dotenv(_env_path)


class StorageSettings(BaseModel):
    backend: Literal["local", "s3"] = "local"
    bucket: str | None = None
    prefix: str = ""
    region: str | None = None
    endpoint_url: str | None = None
    local_root: Path = Path("data/uploads")
    # Install an S3 lifecycle rule on startup so the bucket purges old uploads itself
    manage_lifecycle: bool = False
    lifecycle_days: int = Field(1, ge=1)

    @model_validator(mode="after")
    def _require_bucket(self) -> "StorageSettings":
        if self.backend == "s3" and not self.bucket:
            raise ValueError("storage.bucket is required when storage.backend is 's3'")
        return self


class ShareSettings(BaseModel):
    ttl_seconds: int = Field(3600, gt=0)
    public_base_url: str | None = None
    fallback_filename: str = "downloaded-file"


class Settings(BaseModel):
    storage: StorageSettings = Field(default_factory=StorageSettings)
    share: ShareSettings = Field(default_factory=ShareSettings)

    @classmethod
    def load(cls, path: Path | None = None) -> "Settings":
        """Load settings from YAML configuration file.

        Args:
            path: Optional path to configuration file. If not provided, uses
                TEMPDROP_CONFIG environment variable or defaults to config/default.yaml.

        Returns:
            Settings instance with loaded configuration.

        Raises:
            FileNotFoundError: If configuration file does not exist.
            ConfigurationError: If configuration is invalid.
        """
        env_path = os.getenv("TEMPDROP_CONFIG")
        config_path = path or (Path(env_path) if env_path else PROJECT_ROOT / "config" / "default.yaml")
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        with config_path.open("r", encoding="utf-8") as fp:
            payload = yaml.safe_load(fp) or {}
        try:
            return cls(**payload)
        except Exception as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}", {"path": str(config_path)}) from exc


@lru_cache(maxsize=1)
def get_settings(path: str | None = None) -> Settings:
    return Settings.load(Path(path) if path else None)


__all__ = [
    "Settings",
    "StorageSettings",
    "ShareSettings",
    "get_settings",
]
