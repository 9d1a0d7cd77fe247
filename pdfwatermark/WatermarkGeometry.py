"""
Watermark geometry: anchor placement and content metrics.

All functions here are pure. Coordinates are in points. With the default
``YAxisOrigin.BOTTOM`` the returned (x, y) is the lower-left corner of the
box (PDF convention); with ``YAxisOrigin.TOP`` y is the distance from the
top of the page to the upper edge of the box.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .WatermarkConfig import WatermarkPosition

# ==========================================
# Constants
# ==========================================

TEXT_HORIZONTAL_PADDING = 2.0    # per side, points
TEXT_VERTICAL_PADDING = 0.5      # total, points
DEFAULT_LINE_HEIGHT_FACTOR = 0.4
BASELINE_SHIFT = 0.05            # fraction of the font size

DEFAULT_IMAGE_SCALE = 1.0
DEFAULT_SCALE_FACTOR = 0.15      # "fit" default for images with no explicit size

# ==========================================
# Data Types
# ==========================================

class YAxisOrigin(Enum):
    BOTTOM = "bottom"
    TOP = "top"

class PageOrientation(Enum):
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"

@dataclass(frozen=True)
class AnchorPolicy:
    """Margin kept from each page edge, and the y axis convention."""
    margin: float = 0.0
    y_origin: YAxisOrigin = YAxisOrigin.BOTTOM

@dataclass(frozen=True)
class PageGeometry:
    """Displayed size of one source page."""
    index: int        # 1-based
    width: float
    height: float

    @property
    def orientation(self) -> PageOrientation:
        if self.width > self.height:
            return PageOrientation.LANDSCAPE
        return PageOrientation.PORTRAIT

@dataclass(frozen=True)
class Box:
    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> Tuple[float, float]:
        return rotation_pivot(self.x, self.y, self.width, self.height)

@dataclass(frozen=True)
class TextLayout:
    """Background box plus the text origin inside it."""
    box: Box
    text_x: float
    text_y: float
    text_height: float

# ==========================================
# Anchors
# ==========================================

def resolve_anchor(
    position: WatermarkPosition,
    page_width: float,
    page_height: float,
    box_width: float,
    box_height: float,
    policy: AnchorPolicy = AnchorPolicy(),
) -> Tuple[float, float]:
    """
    Calculates the (x, y) origin of a box anchored at ``position``.

    Boxes larger than the page produce negative coordinates; the overflow
    is clipped by the viewer.
    """
    margin = policy.margin

    horizontal = position.horizontal
    if horizontal == "left":
        x = margin
    elif horizontal == "right":
        x = page_width - box_width - margin
    else:
        x = (page_width - box_width) / 2

    vertical = position.vertical
    if vertical == "middle":
        y = (page_height - box_height) / 2
    else:
        # Distance from the page edge the box is anchored to.
        near = margin
        far = page_height - box_height - margin
        at_top = vertical == "top"
        if policy.y_origin == YAxisOrigin.BOTTOM:
            y = far if at_top else near
        else:
            y = near if at_top else far

    return x, y

def rotation_pivot(x: float, y: float, width: float, height: float) -> Tuple[float, float]:
    """Center of the box; rotations turn about this point."""
    return x + width / 2, y + height / 2

# ==========================================
# Text Metrics
# ==========================================

def text_box(
    position: WatermarkPosition,
    page: PageGeometry,
    text_width: float,
    font_size: float,
    padding: float = 0,
    line_height_factor: float = DEFAULT_LINE_HEIGHT_FACTOR,
    policy: AnchorPolicy = AnchorPolicy(),
) -> TextLayout:
    """
    Lays out a text watermark: a tight box around the measured string,
    anchored on the page, with the text origin shifted down slightly so the
    glyphs sit visually centered.
    """
    inset = TEXT_HORIZONTAL_PADDING + padding
    box_width = math.ceil(text_width) + 2 * inset

    text_height = font_size * line_height_factor
    box_height = text_height + TEXT_VERTICAL_PADDING + 2 * padding

    x, y = resolve_anchor(position, page.width, page.height, box_width, box_height, policy)

    text_x = x + inset
    text_y = y + (box_height - text_height) / 2 - font_size * BASELINE_SHIFT

    return TextLayout(Box(x, y, box_width, box_height), text_x, text_y, text_height)

# ==========================================
# Image Metrics
# ==========================================

def resolve_image_size(
    natural_width: float,
    natural_height: float,
    scale: Optional[float] = None,
    width: Optional[float] = None,
    height: Optional[float] = None,
    default_scale: float = DEFAULT_IMAGE_SCALE,
) -> Tuple[float, float]:
    """Applies the image sizing mode, keeping the aspect ratio for width/height."""
    aspect = natural_width / natural_height

    if scale is not None:
        return natural_width * scale, natural_height * scale
    if width is not None:
        return float(width), width / aspect
    if height is not None:
        return height * aspect, float(height)
    return natural_width * default_scale, natural_height * default_scale

def clamp_factor(width: float, height: float, page_width: float, page_height: float) -> float:
    """
    Downscale factor that fits the box inside the page, truncated (not
    rounded) to two decimals. Returns 1.0 when the box already fits.
    """
    if width <= page_width and height <= page_height:
        return 1.0
    ratio = min(page_width / width, page_height / height)
    # round() first so 0.29 * 100 == 28.999... still truncates to 0.29
    truncated = math.floor(round(ratio * 100, 9)) / 100
    # Below 1% the truncation would collapse the image to nothing.
    return truncated or ratio

def clamp_to_page(width: float, height: float, page_width: float, page_height: float) -> Tuple[float, float]:
    factor = clamp_factor(width, height, page_width, page_height)
    return width * factor, height * factor

def image_box(
    position: WatermarkPosition,
    page: PageGeometry,
    width: float,
    height: float,
    policy: AnchorPolicy = AnchorPolicy(),
) -> Box:
    """Clamps an image to the page and anchors it."""
    width, height = clamp_to_page(width, height, page.width, page.height)
    x, y = resolve_anchor(position, page.width, page.height, width, height, policy)
    return Box(x, y, width, height)
