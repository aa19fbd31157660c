# opdispatch/config/settings.py

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    file: Optional[str] = None
    rotation: str = "10 MB"
    retention: int = 5
    format: str = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
        "<cyan>{name}</cyan> - {extra[operation]} - <level>{message}</level>"
    )


@dataclass
class DispatchConfig:
    """Bus configuration"""
    log_operations: bool = True
    default_timeout: Optional[float] = None
    copy_memoized: bool = True


@dataclass
class Settings:
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    # "package.module:attr" of the extension descriptor, if any
    extension: Optional[str] = None
    environment: str = "production"
