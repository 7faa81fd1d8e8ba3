"""Logging configuration using Loguru."""

import sys
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from cardgraph.config import LoggingConfig

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[component]}:{function}:{line} - {message}"

logger.configure(extra={"component": "cardgraph"})


def setup_logging(config: "LoggingConfig | None" = None) -> None:
    """
    Configure Loguru sinks.

    A colored console sink is always installed; a rotating file sink
    (JSON lines when `serialize` is set) is added when `log_to_file` is on.

    Args:
        config: Logging section of the CardGraph config (defaults when omitted)
    """
    # cardgraph.config imports this package for its errors
    from cardgraph.config import LoggingConfig

    config = config or LoggingConfig()
    logger.remove()

    logger.add(
        sys.stderr,
        level=config.level,
        format=CONSOLE_FORMAT,
        colorize=True,
        serialize=False,
    )

    if config.log_to_file:
        log_path = Path(config.log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_path / "cardgraph_{time:YYYY-MM-DD}.log",
            level=config.level,
            format=FILE_FORMAT,
            rotation=config.file_rotation,
            retention=config.file_retention,
            compression=config.compression,
            serialize=config.serialize,
            enqueue=True,
        )


def get_logger(name: str):
    """
    Get a logger bound to a module.

    `cardgraph.services.staleness` shows up as `services.staleness`.
    """
    component = name.removeprefix("cardgraph.")
    return logger.bind(module=name, component=component)
