"""
Logging built on Loguru.

Records go to stderr so they never interleave with a host agent's stdout.
The rotating file sink is opt-in through LoggingConfig.
"""

import sys
from pathlib import Path

from loguru import logger

from graphiti_memory.config import LoggingConfig

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[module]}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[module]}:{line} - {message}"
LOG_FILE_NAME = "graphiti_memory_{time:YYYY-MM-DD}.log"


def setup_logging(config: LoggingConfig | None = None) -> None:
    """
    Replace Loguru's default sink with the configured ones.

    Args:
        config: Logging section of Config (defaults to stderr only, INFO)
    """
    config = config or LoggingConfig()
    level = config.level.upper()

    logger.remove()
    logger.configure(extra={"module": "graphiti_memory"})

    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, colorize=True)

    if config.log_to_file:
        log_path = Path(config.log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_path / LOG_FILE_NAME,
            level=level,
            format=FILE_FORMAT,
            rotation=config.file_rotation,
            retention=config.file_retention,
            compression=config.compression,
            serialize=config.serialize,
            enqueue=True,
        )

    logger.bind(module=__name__).debug(
        f"Logging configured: level={level} file={config.log_to_file}"
    )


def get_logger(name: str):
    """Logger bound to a module name."""
    return logger.bind(module=name)
