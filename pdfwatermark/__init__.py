"""
pdfwatermark - stamp text and image watermarks onto existing PDF pages.

Dependencies:
- reportlab
- pypdf
- Pillow
- pikepdf
- pydantic-settings
"""

from .PdfWatermarker import (
    PdfWatermarker,
    create_document,
    create_image_watermark,
    create_text_watermark,
    create_with_watermark,
)
from .WatermarkConfig import (
    ExternalToolError,
    FontStyle,
    ImageWatermarkConfig,
    InputNotFoundError,
    InvalidInputError,
    NoWatermarksError,
    PDFParseError,
    PDFProcessingError,
    ResourceError,
    TextWatermarkConfig,
    UnsupportedFormatError,
    WatermarkConfig,
    WatermarkError,
    WatermarkPosition,
    WatermarkType,
)
from .WatermarkSettings import WatermarkSettings, configure_logging, get_settings

__version__ = "0.1.0"

__all__ = [
    "PdfWatermarker",
    "create_document",
    "create_image_watermark",
    "create_text_watermark",
    "create_with_watermark",
    "ExternalToolError",
    "FontStyle",
    "ImageWatermarkConfig",
    "InputNotFoundError",
    "InvalidInputError",
    "NoWatermarksError",
    "PDFParseError",
    "PDFProcessingError",
    "ResourceError",
    "TextWatermarkConfig",
    "UnsupportedFormatError",
    "WatermarkConfig",
    "WatermarkError",
    "WatermarkPosition",
    "WatermarkType",
    "WatermarkSettings",
    "configure_logging",
    "get_settings",
]
