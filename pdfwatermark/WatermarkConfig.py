"""
PDF Watermark Module - Configuration

Descriptors for the text and image watermarks applied by the compositing
engine, together with the shared error taxonomy and enumerations.

Every setter validates its argument immediately and returns the descriptor,
so configurations can be built fluently:

    config = (TextWatermarkConfig("CONFIDENTIAL")
              .set_position(WatermarkPosition.CENTER)
              .set_angle(45)
              .set_font_size(72)
              .set_pages("2-last"))
"""

import math
from dataclasses import dataclass, field
from enum import Enum, IntFlag
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

# ==========================================
# Custom Exceptions
# ==========================================

class WatermarkError(Exception):
    """Base exception for all watermarking operations."""
    pass

class InvalidInputError(WatermarkError, ValueError):
    """Raised when input parameters or files are invalid."""
    pass

class InputNotFoundError(InvalidInputError):
    """Raised when the source PDF does not exist."""
    pass

class NoWatermarksError(InvalidInputError):
    """Raised when apply() is called before any watermark was added."""
    pass

class PDFProcessingError(WatermarkError):
    """Raised when the PDF processing/merging fails."""
    pass

class PDFParseError(PDFProcessingError):
    """
    Raised when the source document cannot be parsed directly.

    This is the recoverable class of failure: the watermarker retries
    through the compatibility normalizer.
    """
    pass

class ExternalToolError(WatermarkError):
    """Raised when the external normalizer is missing, fails or times out."""
    pass

class ResourceError(WatermarkError):
    """Raised when files (images, temp dirs, output) cannot be read or written."""
    pass

class UnsupportedFormatError(ResourceError):
    """Raised when an image is not JPEG or PNG."""
    pass

# ==========================================
# Enumerations & Constants
# ==========================================

RGB = Tuple[int, int, int]

class WatermarkType(Enum):
    """Defines the mode of watermarking."""
    TEXT = "text"
    IMAGE = "image"

class WatermarkPosition(Enum):
    """
    Defines anchor points for watermark placement (3x3 grid).
    """
    TOP_LEFT = "top-left"
    TOP_CENTER = "top-center"
    TOP_RIGHT = "top-right"
    MIDDLE_LEFT = "middle-left"
    CENTER = "center"
    MIDDLE_RIGHT = "middle-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_CENTER = "bottom-center"
    BOTTOM_RIGHT = "bottom-right"

    @property
    def vertical(self) -> str:
        """'top', 'middle' or 'bottom'."""
        if self.value.startswith("top"):
            return "top"
        if self.value.startswith("bottom"):
            return "bottom"
        return "middle"

    @property
    def horizontal(self) -> str:
        """'left', 'center' or 'right'."""
        if self.value.endswith("left"):
            return "left"
        if self.value.endswith("right"):
            return "right"
        return "center"

    @classmethod
    def parse(cls, value: Union[str, "WatermarkPosition"]) -> "WatermarkPosition":
        """Accepts enum members, 'top-left', 'top_left' and 'middle-center'."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("_", "-")
        if key == "middle-center":
            key = "center"
        for member in cls:
            if member.value == key:
                return member
        valid = ", ".join(m.value for m in cls)
        raise InvalidInputError(f'Invalid position "{value}". Valid positions are: {valid}')

class FontStyle(IntFlag):
    """Font style bitmask for text watermarks."""
    REGULAR = 0
    BOLD = 1
    ITALIC = 2
    UNDERLINE = 4
    STRIKETHROUGH = 8

    @classmethod
    def parse(cls, value: Union[str, int, "FontStyle"]) -> "FontStyle":
        """Accepts a FontStyle, an int mask, or letter codes such as 'BI' or 'BU'."""
        if isinstance(value, str):
            letters = {"B": cls.BOLD, "I": cls.ITALIC, "U": cls.UNDERLINE, "D": cls.STRIKETHROUGH}
            style = cls.REGULAR
            for char in value.strip().upper():
                if char not in letters:
                    raise InvalidInputError(f'Invalid font style "{value}". Use a combination of B, I, U, D')
                style |= letters[char]
            return style
        try:
            mask = int(value)
        except (TypeError, ValueError):
            raise InvalidInputError(f"Invalid font style: {value!r}")
        if mask < 0 or mask > 15:
            raise InvalidInputError(f"Invalid font style mask: {mask}")
        return cls(mask)

DEFAULT_PAGES = ("all",)

# ==========================================
# Validation helpers
# ==========================================

def _check_finite(value: float, label: str) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{label} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise InvalidInputError(f"{label} must be a finite number, got {value}")
    return value

def _check_unit_range(value: float, label: str) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{label} must be a number, got {value!r}")
    if not (0.0 <= value <= 1.0):
        raise InvalidInputError(f"{label} must be between 0.0 and 1.0, got {value}")
    return value

def _check_rgb(color: Iterable[int], label: str) -> RGB:
    try:
        r, g, b = (int(c) for c in color)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{label} must be an (r, g, b) triple, got {color!r}")
    for component in (r, g, b):
        if component < 0 or component > 255:
            raise InvalidInputError(f"{label}: RGB values must be between 0 and 255")
    return (r, g, b)

def _check_positive_int(value: int, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(f"{label} must be an integer, got {value!r}")
    if value <= 0:
        raise InvalidInputError(f"{label} must be greater than 0")
    return value

def normalize_pages(pages: Union[str, int, Iterable[Union[str, int]]]) -> List[str]:
    """
    Normalizes a page selection into a list of selector tokens.

    - 3           -> ["3"]
    - "1, 3-last" -> ["1", "3-last"]
    - [1, "last"] -> ["1", "last"]
    """
    if isinstance(pages, bool):
        raise InvalidInputError(f"Invalid page selection: {pages!r}")
    if isinstance(pages, int):
        tokens = [str(pages)]
    elif isinstance(pages, str):
        tokens = [part.strip() for part in pages.split(",")]
    else:
        try:
            tokens = [str(part).strip() for part in pages]
        except TypeError:
            raise InvalidInputError(f"Invalid page selection: {pages!r}")

    tokens = [token for token in tokens if token]
    if not tokens:
        raise InvalidInputError("Page selection must not be empty")
    return tokens

# ==========================================
# Configuration Data Classes
# ==========================================

@dataclass(kw_only=True)
class WatermarkConfig:
    """
    Settings shared by every watermark: anchor, opacity, rotation and the
    pages it applies to. These are keyword-only so the content field of
    each variant (text or image) comes first positionally.

    With ``strict_rotation`` (the default) a nonzero angle is only allowed
    for the center position; the check runs whichever of angle or position
    is set last.
    """

    position: WatermarkPosition = WatermarkPosition.BOTTOM_RIGHT
    opacity: float = 1.0            # 0.0 (transparent) to 1.0 (solid)
    angle: float = 0.0              # Degrees (counter-clockwise)
    pages: List[str] = field(default_factory=lambda: list(DEFAULT_PAGES))
    strict_rotation: bool = True

    watermark_type = None

    def __post_init__(self):
        """Validates configuration after initialization."""
        self.position = WatermarkPosition.parse(self.position)
        self.opacity = _check_unit_range(self.opacity, "Opacity")
        self.angle = _check_finite(self.angle, "Angle")
        self.pages = normalize_pages(self.pages)
        self._validate_rotation(self.angle, self.position)

    def _validate_rotation(self, angle: float, position: WatermarkPosition):
        if self.strict_rotation and angle != 0 and position != WatermarkPosition.CENTER:
            raise InvalidInputError("Rotation angle can only be used with the center position")

    def set_position(self, position: Union[str, WatermarkPosition]) -> "WatermarkConfig":
        position = WatermarkPosition.parse(position)
        if self.strict_rotation and self.angle != 0 and position != WatermarkPosition.CENTER:
            raise InvalidInputError("Cannot set position other than center when angle is not 0")
        self.position = position
        return self

    def set_opacity(self, opacity: float) -> "WatermarkConfig":
        self.opacity = _check_unit_range(opacity, "Opacity")
        return self

    def set_angle(self, angle: float) -> "WatermarkConfig":
        angle = _check_finite(angle, "Angle")
        self._validate_rotation(angle, self.position)
        self.angle = angle
        return self

    def set_pages(self, pages: Union[str, int, Iterable[Union[str, int]]]) -> "WatermarkConfig":
        self.pages = normalize_pages(pages)
        return self


@dataclass
class TextWatermarkConfig(WatermarkConfig):
    """
    A text stamp, optionally on a filled background box.

    ``text`` may contain ``{page}`` and ``{pages}``, replaced with the
    current page number and the page count. Text and background alpha are
    controlled by ``text_opacity`` and ``background_opacity``; the base
    ``opacity`` does not apply to text watermarks.
    """

    text: str = ""
    font_name: str = "Helvetica"
    font_style: FontStyle = FontStyle.REGULAR
    font_size: int = 24
    text_color: RGB = (0, 0, 0)
    text_opacity: float = 1.0
    background_color: RGB = (255, 255, 255)
    background_opacity: float = 0.0   # Transparent background by default
    padding: int = 0

    watermark_type = WatermarkType.TEXT

    def __post_init__(self):
        super().__post_init__()
        if not isinstance(self.text, str):
            raise InvalidInputError(f"Watermark text must be a string, got {self.text!r}")
        self.font_style = FontStyle.parse(self.font_style)
        self.font_size = _check_positive_int(self.font_size, "Font size")
        self.text_color = _check_rgb(self.text_color, "Text color")
        self.background_color = _check_rgb(self.background_color, "Background color")
        self.text_opacity = _check_unit_range(self.text_opacity, "Text opacity")
        self.background_opacity = _check_unit_range(self.background_opacity, "Background opacity")
        self._validate_padding(self.padding)

    @staticmethod
    def _validate_padding(padding: int):
        if isinstance(padding, bool) or not isinstance(padding, int) or padding < 0:
            raise InvalidInputError("Padding must be an integer greater than or equal to 0")

    def set_text(self, text: str) -> "TextWatermarkConfig":
        if not isinstance(text, str):
            raise InvalidInputError(f"Watermark text must be a string, got {text!r}")
        self.text = text
        return self

    def set_font_name(self, font_name: str) -> "TextWatermarkConfig":
        if not font_name:
            raise InvalidInputError("Font name must not be empty")
        self.font_name = font_name
        return self

    def set_font_style(self, font_style: Union[str, int, FontStyle]) -> "TextWatermarkConfig":
        self.font_style = FontStyle.parse(font_style)
        return self

    def set_font_size(self, font_size: int) -> "TextWatermarkConfig":
        self.font_size = _check_positive_int(font_size, "Font size")
        return self

    def set_text_color(self, r: int, g: int, b: int) -> "TextWatermarkConfig":
        self.text_color = _check_rgb((r, g, b), "Text color")
        return self

    def set_text_opacity(self, opacity: float) -> "TextWatermarkConfig":
        self.text_opacity = _check_unit_range(opacity, "Text opacity")
        return self

    def set_background_color(self, r: int, g: int, b: int) -> "TextWatermarkConfig":
        self.background_color = _check_rgb((r, g, b), "Background color")
        return self

    def set_background_opacity(self, opacity: float) -> "TextWatermarkConfig":
        self.background_opacity = _check_unit_range(opacity, "Background opacity")
        return self

    def set_padding(self, padding: int) -> "TextWatermarkConfig":
        self._validate_padding(padding)
        self.padding = padding
        return self

    def text_for_page(self, page_index: int, total_pages: int) -> str:
        """Returns the text with page placeholders substituted."""
        return self.text.replace("{page}", str(page_index)).replace("{pages}", str(total_pages))


@dataclass
class ImageWatermarkConfig(WatermarkConfig):
    """
    An image stamp (JPEG or PNG) read from a path or from raw bytes.

    Sizing uses at most one of ``scale``, ``width`` and ``height``; each
    setter clears the other two. With none set, the image is drawn at the
    default scale of the run.
    """

    image: Union[str, Path, bytes, None] = None
    scale: Optional[float] = None
    width: Optional[int] = None
    height: Optional[int] = None

    watermark_type = WatermarkType.IMAGE

    def __post_init__(self):
        super().__post_init__()
        self._validate_image()
        modes = [mode for mode in (self.scale, self.width, self.height) if mode is not None]
        if len(modes) > 1:
            raise InvalidInputError("Only one of scale, width or height can be set")
        if self.scale is not None:
            self.set_scale(self.scale)
        elif self.width is not None:
            self.set_width(self.width)
        elif self.height is not None:
            self.set_height(self.height)

    def _validate_image(self):
        """Checks that the referenced image exists."""
        if isinstance(self.image, (bytes, bytearray)):
            if not self.image:
                raise InvalidInputError("Image data is empty.")
            self.image = bytes(self.image)
            return
        if not self.image:
            raise InvalidInputError("Watermark type is IMAGE, but 'image' is missing.")
        path_obj = Path(self.image)
        if not path_obj.exists() or not path_obj.is_file():
            raise InvalidInputError(f'Image file "{self.image}" does not exist')
        self.image = path_obj  # Standardize to Path object

    def set_scale(self, scale: float) -> "ImageWatermarkConfig":
        scale = _check_finite(scale, "Scale")
        if scale <= 0:
            raise InvalidInputError("Scale must be greater than 0")
        self.scale = scale
        self.width = None
        self.height = None
        return self

    def set_width(self, width: int) -> "ImageWatermarkConfig":
        self.width = _check_positive_int(width, "Width")
        self.height = None
        self.scale = None
        return self

    def set_height(self, height: int) -> "ImageWatermarkConfig":
        self.height = _check_positive_int(height, "Height")
        self.width = None
        self.scale = None
        return self
