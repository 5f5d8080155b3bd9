"""
Main orchestrator for the embed pipeline.

EmbedPipeline owns the request capability, the cache and the stage list.
It builds an Environment per call and feeds it through the stages.
"""

import asyncio
from typing import Iterable, Optional, Union

from .cache import CacheAdapter, FileStore, get_default_cache
from .config import PipelineConfig
from .http_client import BaseHTTPClient, HTTPClient
from .logger import get_module_logger, setup_logger
from .pipeline import Environment, run
from .prober import ImageProber
from .schemas import Response, Result, Snippet
from .stages import Stage, default_stages

logger = get_module_logger("main")

# Stages added by callers run after the built-ins unless told otherwise
DEFAULT_CUSTOM_PRIORITY = 100

SnippetInput = Union[Snippet, dict]


class EmbedPipeline:
    """
    Owning instance for pipeline passes.

    Stages reach back to it through env.owner for:
    - request(url, method): HEAD/GET through the HTTP client
    - cache: CacheAdapter for image dimensions
    - prober: ImageProber bound to the same client
    - config: PipelineConfig
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        client: Optional[BaseHTTPClient] = None,
        cache: Optional[CacheAdapter] = None
    ):
        self.config = config or PipelineConfig()
        setup_logger(level=self.config.log_level)

        self.client = client or HTTPClient.create(self.config)
        if cache is not None:
            self.cache = cache
        elif self.config.cache_dir:
            self.cache = CacheAdapter(FileStore(self.config.cache_dir))
        else:
            self.cache = get_default_cache()

        self.prober = ImageProber(self.client, max_bytes=self.config.max_image_bytes)
        self._stages: list[Stage] = default_stages()

        logger.info("EmbedPipeline initialized")

    async def request(self, url: str, method: str = "GET") -> Response:
        return await self.client.request(url, method=method)

    @property
    def stages(self) -> list[Stage]:
        """Registered stages sorted by priority (stable for equal priorities)."""
        return sorted(self._stages, key=lambda stage: stage.priority)

    def add_stage(self, stage: Stage) -> None:
        """Register an extra stage on this instance only."""
        if any(existing.id == stage.id for existing in self._stages):
            raise ValueError(f"Stage already registered: {stage.id}")
        self._stages.append(stage)

    def add_stage_fn(self, stage_id: str, fn, priority: int = DEFAULT_CUSTOM_PRIORITY) -> Stage:
        """Shortcut for add_stage(Stage(...)); returns the descriptor."""
        stage = Stage(stage_id, fn, priority)
        self.add_stage(stage)
        return stage

    async def process(self, src: str, snippets: Iterable[SnippetInput]) -> Result:
        """
        Run all stages over the snippets gathered for src.

        Args:
            src: Source URL the snippets were extracted from
            snippets: Snippet models or plain dicts

        Returns:
            Result with normalized, enriched snippets
        """
        result = Result(snippets=[
            s if isinstance(s, Snippet) else Snippet.model_validate(s) for s in snippets
        ])
        logger.info(f"Processing {len(result.snippets)} snippets for {src}")

        env = Environment(src=src, owner=self, result=result)
        await run(self.stages, env)

        logger.info(f"Complete: {len(env.result.snippets)} snippets")
        return env.result

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()


def process_snippets(
    src: str,
    snippets: Iterable[SnippetInput],
    config: Optional[PipelineConfig] = None
) -> Result:
    """Convenience function: run the default pipeline synchronously."""
    async def _process() -> Result:
        async with EmbedPipeline(config=config) as pipeline:
            return await pipeline.process(src, snippets)

    return asyncio.run(_process())
