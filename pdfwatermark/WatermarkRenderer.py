from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple, Union

from .DocumentAdapter import DocumentAdapter, ImageSource
from .WatermarkConfig import (
    RGB,
    FontStyle,
    ImageWatermarkConfig,
    InvalidInputError,
    TextWatermarkConfig,
    WatermarkConfig,
    WatermarkType,
)
from .WatermarkGeometry import (
    DEFAULT_IMAGE_SCALE,
    DEFAULT_LINE_HEIGHT_FACTOR,
    AnchorPolicy,
    PageGeometry,
    image_box,
    resolve_image_size,
    text_box,
)

Point = Tuple[float, float]

# ==========================================
# Draw Commands
# ==========================================

@dataclass(frozen=True)
class DrawRect:
    x: float
    y: float
    width: float
    height: float
    color: RGB
    alpha: float
    rotation: float = 0.0
    pivot: Optional[Point] = None

    def draw(self, adapter: DocumentAdapter) -> None:
        adapter.draw_rect(self.x, self.y, self.width, self.height, self.color, self.alpha,
                          rotation=self.rotation, pivot=self.pivot)

@dataclass(frozen=True)
class DrawText:
    x: float
    y: float
    text: str
    font: str
    size: float
    color: RGB
    alpha: float
    rotation: float = 0.0
    pivot: Optional[Point] = None
    underline: bool = False
    strikethrough: bool = False

    def draw(self, adapter: DocumentAdapter) -> None:
        adapter.draw_text(self.x, self.y, self.text, self.font, self.size, self.color, self.alpha,
                          rotation=self.rotation, pivot=self.pivot,
                          underline=self.underline, strikethrough=self.strikethrough)

@dataclass(frozen=True)
class DrawImage:
    x: float
    y: float
    width: float
    height: float
    image: ImageSource
    alpha: float
    rotation: float = 0.0
    pivot: Optional[Point] = None

    def draw(self, adapter: DocumentAdapter) -> None:
        adapter.draw_image(self.x, self.y, self.width, self.height, self.image, self.alpha,
                           rotation=self.rotation, pivot=self.pivot)

DrawCommand = Union[DrawRect, DrawText, DrawImage]

# ==========================================
# Watermark Renderer
# ==========================================

class WatermarkRenderer:
    """
    Turns a watermark and a page into the draw commands that place it.

    This class is responsible for:
    1. Measuring the content (text advance width, image natural size).
    2. Calculating geometry (anchor, sizing, clamping, rotation pivot).
    3. Emitting DrawRect / DrawText / DrawImage commands in paint order.
    4. Caching decoded images for the lifetime of one run.

    Coordinates follow the adapter's y axis convention.
    """

    def __init__(
        self,
        adapter: DocumentAdapter,
        margin: float = 0.0,
        line_height_factor: float = DEFAULT_LINE_HEIGHT_FACTOR,
        default_image_scale: float = DEFAULT_IMAGE_SCALE,
    ):
        self.adapter = adapter
        self.policy = AnchorPolicy(margin=margin, y_origin=adapter.y_axis_origin)
        self.line_height_factor = line_height_factor
        self.default_image_scale = default_image_scale
        # Cache key: id(config), Value: decoded image
        self._images: Dict[int, ImageSource] = {}
        self._renderers: Dict[WatermarkType, Callable[..., List[DrawCommand]]] = {
            WatermarkType.TEXT: self._render_text,
            WatermarkType.IMAGE: self._render_image,
        }

    def render(self, watermark: WatermarkConfig, page: PageGeometry,
               total_pages: Optional[int] = None) -> List[DrawCommand]:
        renderer = self._renderers.get(watermark.watermark_type)
        if renderer is None:
            raise InvalidInputError(f"Unsupported watermark: {type(watermark).__name__}")
        return renderer(watermark, page, total_pages or page.index)

    def _render_text(self, watermark: TextWatermarkConfig, page: PageGeometry,
                     total_pages: int) -> List[DrawCommand]:
        """Background box (if visible) then the text, both turned about the box center."""
        font = self.adapter.resolve_font(watermark.font_name, watermark.font_style)
        size = watermark.font_size
        text = watermark.text_for_page(page.index, total_pages)

        text_w = self.adapter.measure_text_width(text, font, size)
        layout = text_box(watermark.position, page, text_w, size, watermark.padding,
                          self.line_height_factor, self.policy)
        box = layout.box
        pivot = box.center

        commands: List[DrawCommand] = []
        if watermark.background_opacity > 0:
            commands.append(DrawRect(box.x, box.y, box.width, box.height,
                                     watermark.background_color, watermark.background_opacity,
                                     watermark.angle, pivot))
        if text:
            style = watermark.font_style
            commands.append(DrawText(layout.text_x, layout.text_y, text, font, size,
                                     watermark.text_color, watermark.text_opacity,
                                     watermark.angle, pivot,
                                     underline=bool(style & FontStyle.UNDERLINE),
                                     strikethrough=bool(style & FontStyle.STRIKETHROUGH)))
        return commands

    def _render_image(self, watermark: ImageWatermarkConfig, page: PageGeometry,
                      total_pages: int) -> List[DrawCommand]:
        image = self._load_image(watermark)

        target_w, target_h = resolve_image_size(
            image.width, image.height,
            scale=watermark.scale, width=watermark.width, height=watermark.height,
            default_scale=self.default_image_scale,
        )
        box = image_box(watermark.position, page, target_w, target_h, self.policy)

        return [DrawImage(box.x, box.y, box.width, box.height, image,
                          watermark.opacity, watermark.angle, box.center)]

    def _load_image(self, watermark: ImageWatermarkConfig) -> ImageSource:
        key = id(watermark)
        if key not in self._images:
            self._images[key] = self.adapter.load_image(watermark.image)
        return self._images[key]
