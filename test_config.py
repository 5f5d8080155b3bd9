"""Tests for PipelineConfig."""

import pytest
from pydantic import ValidationError

from embed_pipeline.config import DEFAULT_IMAGE_SIZE_TTL, PipelineConfig


def test_defaults():
    config = PipelineConfig()
    assert config.image_size_ttl == DEFAULT_IMAGE_SIZE_TTL == 86400
    assert config.max_concurrency is None
    assert config.cache_dir is None
    assert config.log_level == "INFO"


def test_from_env(monkeypatch):
    monkeypatch.setenv("EMBED_MAX_CONCURRENCY", "4")
    monkeypatch.setenv("EMBED_IMAGE_SIZE_TTL", "60")
    monkeypatch.setenv("EMBED_LOG_LEVEL", "debug")

    config = PipelineConfig.from_env(request_timeout=2)

    assert config.max_concurrency == 4
    assert config.image_size_ttl == 60
    assert config.log_level == "DEBUG"
    assert config.request_timeout == 2


@pytest.mark.parametrize("field", ["max_concurrency", "request_timeout", "image_size_ttl"])
def test_rejects_non_positive(field):
    with pytest.raises(ValidationError):
        PipelineConfig(**{field: 0})
