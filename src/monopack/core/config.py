# monopack/src/monopack/core/config.py

from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ArchiveStrategy(str, Enum):
    """How an archive's manifest is rewritten."""
    STREAM = "stream"     # Entry-by-entry copy into a new archive
    EXTRACT = "extract"   # Extract to scratch, edit on disk, repack


class Settings(BaseSettings):
    target_dir: str = Field(default=".monopack")
    concurrency: int = Field(default=16, ge=1)
    compression_level: int = Field(default=9, ge=0, le=9)
    # Location of the manifest inside an npm-style archive
    manifest_entry: str = Field(default="package/package.json")
    archive_strategy: ArchiveStrategy = Field(default=ArchiveStrategy.STREAM)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="MONOPACK_",
        extra="ignore",
    )


# Instantiate settings
settings = Settings()

DEFAULT_TARGET_DIR = settings.target_dir
CONCURRENCY_LIMIT = settings.concurrency
