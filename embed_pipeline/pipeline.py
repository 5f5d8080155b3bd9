"""
Pipeline runner.

Runs an ordered list of stages over one shared Environment.  Stages execute
strictly one after another; the first exception aborts the pass and reaches
the caller unchanged.
"""

from dataclasses import dataclass, field
from typing import Any, Sequence

from .logger import get_module_logger
from .schemas import Result
from .stages import Stage

logger = get_module_logger("pipeline")


@dataclass
class Environment:
    """State of one pipeline pass."""
    src: str                                        # source URL, read-only during the pass
    owner: Any                                      # EmbedPipeline: request(), cache, config, prober
    result: Result = field(default_factory=Result)


async def run(stages: Sequence[Stage], env: Environment) -> Environment:
    """
    Execute stages in the given order.

    Args:
        stages: Stage descriptors, already sorted by the caller
        env: Environment shared by every stage

    Returns:
        The same (mutated) environment
    """
    for stage in stages:
        logger.debug(f"Running stage {stage.id}")
        await stage.fn(env)

    return env
