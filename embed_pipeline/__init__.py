"""
Embed Pipeline

Post-processing for embed metadata: once fetchers have gathered candidate
snippets for a URL, an ordered chain of stages normalizes and enriches them.
- resolve-href, mime-detect, ssl-force, merge
- image-size (concurrent, cached dimension probing)
- set-autoplay, convert-str-int

Public API surface:
  Orchestration : EmbedPipeline, process_snippets, run, Environment, Stage
  Data models   : Snippet, Result, ImageDimensions
  Configuration : PipelineConfig
  Error types   : TransportError, HTTPStatusError, ContentError, StoreError
  Caching       : CacheAdapter, MemoryStore, FileStore, get_default_cache
"""

# --- Orchestration ---
from .main import EmbedPipeline, process_snippets
from .pipeline import Environment, run
from .stages import Stage, default_stages

# --- Data models ---
from .schemas import Snippet, Result, ImageDimensions

# --- Configuration ---
from .config import PipelineConfig

# --- Exceptions ---
from .exceptions import (
    EmbedPipelineError,
    TransportError,
    HTTPStatusError,
    ContentError,
    StoreError,
)

# --- Cache ---
from .cache import CacheAdapter, MemoryStore, FileStore, get_default_cache

__version__ = "0.1.0"
__all__ = [
    "EmbedPipeline",
    "process_snippets",
    "Environment",
    "run",
    "Stage",
    "default_stages",
    "Snippet",
    "Result",
    "ImageDimensions",
    "PipelineConfig",
    "EmbedPipelineError",
    "TransportError",
    "HTTPStatusError",
    "ContentError",
    "StoreError",
    "CacheAdapter",
    "MemoryStore",
    "FileStore",
    "get_default_cache",
]
