"""
Logging for the embed pipeline.

Everything logs under the "embed_pipeline" logger; each module takes a child
("embed_pipeline.stages", "embed_pipeline.cache", ...) so stage progress,
cache hits and probe misses can be told apart in one stream.
"""

import logging
import sys
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(
    name: str = "embed_pipeline",
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Configure the package logger.

    The first call installs a stdout handler (and a file handler when
    log_file is given); later calls, e.g. from EmbedPipeline with
    PipelineConfig.log_level, only change the level.

    Args:
        name: Logger name
        level: Level number or name ("DEBUG", "INFO", ...)
        log_file: Optional path that also receives the records

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


logger = setup_logger()


def get_module_logger(module_name: str) -> logging.Logger:
    """Child logger for one module, e.g. get_module_logger("prober")."""
    return logging.getLogger(f"embed_pipeline.{module_name}")
