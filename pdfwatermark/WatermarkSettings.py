import logging
from functools import lru_cache
from logging import Logger
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .WatermarkGeometry import DEFAULT_IMAGE_SCALE, DEFAULT_LINE_HEIGHT_FACTOR

LOGGER_NAME = "pdfwatermark"


class WatermarkSettings(BaseSettings):
    """Process-wide defaults, overridable through PDF_WATERMARK_* environment variables."""

    model_config = SettingsConfigDict(env_prefix="PDF_WATERMARK_", extra="ignore")

    pdftk_path: str = "pdftk"
    normalizer: Literal["pdftk", "pikepdf"] = "pdftk"
    temp_dir: Optional[Path] = None
    tool_timeout: Optional[float] = Field(default=120.0, gt=0, allow_inf_nan=False)

    anchor_margin: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    line_height_factor: float = Field(default=DEFAULT_LINE_HEIGHT_FACTOR, gt=0, allow_inf_nan=False)
    default_image_scale: float = Field(default=DEFAULT_IMAGE_SCALE, gt=0, allow_inf_nan=False)

    log_level: str = "INFO"


@lru_cache()
def get_settings() -> WatermarkSettings:
    return WatermarkSettings()


def configure_logging(level: Optional[str] = None) -> Logger:
    """Attaches a single stream handler to the package logger."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel((level or get_settings().log_level).upper())
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    formatter = logging.Formatter("[%(levelname)s] %(asctime)s | %(name)s | %(message)s")
    handler.setFormatter(formatter)

    logger.addHandler(handler)
    logger.propagate = False

    return logger
