# File: dbscaffold/settings.py
"""
dbscaffold - Runtime Settings
==============================
Process-level configuration for the job pipeline and the HTTP service, read
from ``DBSCAFFOLD_*`` environment variables or a ``.env`` file.

Generation options (namespace, toggles, naming) are not settings; they
travel with each ``GenerationRequest``.
"""

from __future__ import annotations

import functools
import logging
import tempfile
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger: logging.Logger = logging.getLogger("dbscaffold.settings")

_DEFAULT_ROOT: Path = Path(tempfile.gettempdir()) / "dbscaffold"


class PipelineSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DBSCAFFOLD_",
        env_file=".env",
        extra="ignore",
    )

    staging_root: Path = Field(default=_DEFAULT_ROOT / "staging")
    package_dir: Path = Field(default=_DEFAULT_ROOT / "packages")
    # None = unbounded
    max_concurrent_jobs: Optional[int] = Field(default=None, ge=1)

    api_host: str = "127.0.0.1"
    api_port: int = 8000
    log_level: str = "INFO"


@functools.lru_cache(maxsize=1)
def get_settings() -> PipelineSettings:
    """Settings for this process, read once."""
    settings: PipelineSettings = PipelineSettings()
    logger.debug(
        "Loaded settings: staging_root=%s, package_dir=%s, max_concurrent_jobs=%s.",
        settings.staging_root,
        settings.package_dir,
        settings.max_concurrent_jobs,
    )
    return settings


__all__: List[str] = ["PipelineSettings", "get_settings"]
