"""
Loguru sink setup driven by LoggingConfig.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from opdispatch.config.settings import LoggingConfig


def setup_logging(config: Optional[LoggingConfig] = None, *, stream=None) -> None:
    """
    Replace loguru's default sink with a stderr sink and, when configured, a
    rotating file sink. Records without a bound operation show ``-``.
    """
    config = config or LoggingConfig()
    logger.remove()
    logger.configure(extra={"operation": "-"})
    logger.add(stream or sys.stderr, level=config.level, format=config.format)

    if config.file:
        Path(config.file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            config.file,
            level=config.level,
            format=config.format,
            rotation=config.rotation,
            retention=config.retention,
            encoding="utf-8",
        )
