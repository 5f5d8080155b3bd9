"""
Runtime settings for the embed pipeline.

Values come from keyword arguments or, via from_env(), from EMBED_* environment
variables (the CLI loads a .env file first).
"""

import os
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_USER_AGENT = "embed-pipeline/0.1"

# Image dimensions are deterministic for a given URL, one day is plenty
DEFAULT_IMAGE_SIZE_TTL = 24 * 60 * 60

DEFAULT_MAX_IMAGE_BYTES = 10 * 1024 * 1024


class PipelineConfig(BaseModel):
    """Settings shared by the stages, the prober and the HTTP client."""
    request_timeout: float = Field(default=15.0, gt=0)
    user_agent: str = DEFAULT_USER_AGENT
    image_size_ttl: float = Field(default=DEFAULT_IMAGE_SIZE_TTL, gt=0)
    max_concurrency: Optional[int] = Field(default=None, gt=0)   # None = unbounded fan-out
    max_image_bytes: int = Field(default=DEFAULT_MAX_IMAGE_BYTES, gt=0)  # image bodies are read up to this many bytes
    cache_dir: Optional[str] = None                               # None = in-memory store
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value):
        return value.upper() if isinstance(value, str) else value

    @classmethod
    def from_env(cls, **overrides) -> "PipelineConfig":
        """Build a config from EMBED_* environment variables."""
        env_map = {
            "request_timeout": "EMBED_REQUEST_TIMEOUT",
            "user_agent": "EMBED_USER_AGENT",
            "image_size_ttl": "EMBED_IMAGE_SIZE_TTL",
            "max_concurrency": "EMBED_MAX_CONCURRENCY",
            "max_image_bytes": "EMBED_MAX_IMAGE_BYTES",
            "cache_dir": "EMBED_CACHE_DIR",
            "log_level": "EMBED_LOG_LEVEL",
        }
        values = {}
        for field, var in env_map.items():
            raw = os.getenv(var)
            if raw:
                values[field] = raw
        values.update(overrides)
        return cls(**values)
