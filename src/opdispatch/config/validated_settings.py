"""
Pydantic-validated settings loading.

SettingsModel ignores unknown keys and converts into the Settings dataclass.
Environment variables override the file:

- OPDISPATCH_CONFIG     path of the YAML file when none is passed
- OPDISPATCH_LOG_LEVEL  logging.level
- OPDISPATCH_EXTENSION  extension hook path ("" disables it)
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, field_validator

from .settings import DispatchConfig, LoggingConfig, Settings

_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


class LoggingConfigModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    level: str = LoggingConfig.level
    file: Optional[str] = None
    rotation: str = LoggingConfig.rotation
    retention: int = LoggingConfig.retention
    format: str = LoggingConfig.format

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        upper = value.upper()
        if upper not in _LEVELS:
            raise ValueError(f"unknown log level {value!r}")
        return upper


class DispatchConfigModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    log_operations: bool = True
    default_timeout: Optional[float] = None
    copy_memoized: bool = True

    @field_validator("default_timeout")
    @classmethod
    def _positive_timeout(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value <= 0:
            raise ValueError("default_timeout must be positive")
        return value


class SettingsModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    logging: LoggingConfigModel = LoggingConfigModel()
    dispatch: DispatchConfigModel = DispatchConfigModel()
    extension: Optional[str] = None
    environment: str = "production"

    @field_validator("extension")
    @classmethod
    def _hook_path(cls, value: Optional[str]) -> Optional[str]:
        if value in (None, ""):
            return None
        if ":" not in value:
            raise ValueError("extension must look like 'package.module:attribute'")
        return value

    def to_dataclass(self) -> Settings:
        return Settings(
            logging=LoggingConfig(**self.logging.model_dump()),
            dispatch=DispatchConfig(**self.dispatch.model_dump()),
            extension=self.extension,
            environment=self.environment,
        )


def _apply_env(data: Dict[str, Any]) -> Dict[str, Any]:
    level = os.getenv("OPDISPATCH_LOG_LEVEL")
    if level:
        data.setdefault("logging", {})["level"] = level
    if "OPDISPATCH_EXTENSION" in os.environ:
        data["extension"] = os.environ["OPDISPATCH_EXTENSION"]
    return data


def load_validated_settings(config_path: Optional[str] = None) -> Settings:
    """Validate with pydantic and return the Settings dataclass."""
    path = config_path or os.getenv("OPDISPATCH_CONFIG")
    cfg_file = Path(path) if path else Path(__file__).parent / "config.yaml"
    data: Dict[str, Any] = {}
    if cfg_file.exists():
        data = yaml.safe_load(cfg_file.read_text(encoding="utf-8")) or {}
    model = SettingsModel(**_apply_env(data))
    return model.to_dataclass()
