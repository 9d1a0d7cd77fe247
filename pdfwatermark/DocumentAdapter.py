"""
Document adapter: the boundary between the compositing engine and the PDF
libraries.

The engine only talks to ``DocumentAdapter``. ``ReportLabDocumentAdapter``
implements it by drawing each page's watermarks on an in-memory ReportLab
canvas of the same size and merging that overlay on top of the original
pypdf page, so the source content stays untouched underneath.
"""

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

# Check for required libraries at import time
try:
    from PIL import Image, UnidentifiedImageError
    from pypdf import PageObject, PasswordType, PdfReader, PdfWriter, Transformation
    from pypdf.errors import DependencyError, FileNotDecryptedError, ParseError, PdfReadError
    from reportlab.lib.utils import ImageReader
    from reportlab.pdfbase import pdfmetrics
    from reportlab.pdfgen import canvas
except ImportError as e:
    raise ImportError(f"Missing required dependency: {e}. Please install 'reportlab', 'pypdf' and 'Pillow'.")

from .WatermarkConfig import (
    RGB,
    FontStyle,
    InvalidInputError,
    PDFParseError,
    PDFProcessingError,
    ResourceError,
    UnsupportedFormatError,
)
from .WatermarkGeometry import PageGeometry, YAxisOrigin

logger = logging.getLogger(__name__)

# Errors pypdf raises for structurally broken files
_PARSE_ERRORS = (PdfReadError, ParseError, ValueError, KeyError)

SUPPORTED_IMAGE_FORMATS = ("JPEG", "PNG")

# Regular, Bold, Italic, BoldItalic
_STANDARD_FAMILIES = {
    "helvetica": ("Helvetica", "Helvetica-Bold", "Helvetica-Oblique", "Helvetica-BoldOblique"),
    "arial": ("Helvetica", "Helvetica-Bold", "Helvetica-Oblique", "Helvetica-BoldOblique"),
    "times": ("Times-Roman", "Times-Bold", "Times-Italic", "Times-BoldItalic"),
    "times-roman": ("Times-Roman", "Times-Bold", "Times-Italic", "Times-BoldItalic"),
    "courier": ("Courier", "Courier-Bold", "Courier-Oblique", "Courier-BoldOblique"),
}

# ==========================================
# Images
# ==========================================

@dataclass(frozen=True)
class ImageSource:
    """A decoded watermark image: natural size plus a drawable reader."""
    width: int
    height: int
    format: str
    reader: ImageReader

def load_image(source: Union[str, Path, bytes]) -> ImageSource:
    """Reads a JPEG or PNG from a path or from raw bytes."""
    try:
        data = source if isinstance(source, bytes) else Path(source).read_bytes()
    except OSError as e:
        raise ResourceError(f"Failed to read image {source}: {e}") from e

    try:
        with Image.open(BytesIO(data)) as img:
            image_format = img.format
            width, height = img.size
    except UnidentifiedImageError as e:
        raise UnsupportedFormatError("Unsupported image type. Only JPEG and PNG are supported.") from e

    if image_format not in SUPPORTED_IMAGE_FORMATS:
        raise UnsupportedFormatError(
            f"Unsupported image type {image_format}. Only JPEG and PNG are supported."
        )
    if not width or not height:
        raise UnsupportedFormatError("Image has no pixels.")

    return ImageSource(width, height, image_format, ImageReader(BytesIO(data)))

# ==========================================
# Adapter Interface
# ==========================================

class DocumentAdapter(ABC):
    """
    Capabilities the compositing engine needs from a PDF backend.

    One adapter instance serves one run: open a source, then for every page
    call ``begin_output_page``, any number of ``draw_*`` calls and
    ``end_output_page``, and finally ``finalize``.

    Errors: ``PDFParseError`` when the source is structurally unreadable
    (the caller may retry through the normalizer), ``PDFProcessingError``
    for anything else that aborts the run.
    """

    y_axis_origin = YAxisOrigin.BOTTOM

    @abstractmethod
    def open_source(self, path: Union[str, Path], password: Optional[str] = None) -> None: ...

    @abstractmethod
    def page_count(self) -> int: ...

    @abstractmethod
    def page_media_box(self, page_index: int) -> Tuple[float, float]: ...

    @abstractmethod
    def begin_output_page(self, page: PageGeometry) -> None: ...

    @abstractmethod
    def end_output_page(self) -> None: ...

    @abstractmethod
    def draw_rect(self, x: float, y: float, width: float, height: float, color: RGB, alpha: float,
                  rotation: float = 0.0, pivot: Optional[Tuple[float, float]] = None) -> None: ...

    @abstractmethod
    def draw_text(self, x: float, y: float, text: str, font: str, size: float, color: RGB, alpha: float,
                  rotation: float = 0.0, pivot: Optional[Tuple[float, float]] = None,
                  underline: bool = False, strikethrough: bool = False) -> None: ...

    @abstractmethod
    def draw_image(self, x: float, y: float, width: float, height: float, image: ImageSource, alpha: float,
                   rotation: float = 0.0, pivot: Optional[Tuple[float, float]] = None) -> None: ...

    @abstractmethod
    def measure_text_width(self, text: str, font: str, size: float) -> float: ...

    @abstractmethod
    def resolve_font(self, family: str, style: FontStyle) -> str: ...

    @abstractmethod
    def finalize(self, output_path: Union[str, Path]) -> None: ...

    def load_image(self, source: Union[str, Path, bytes]) -> ImageSource:
        return load_image(source)

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

# ==========================================
# ReportLab / pypdf Implementation
# ==========================================

class ReportLabDocumentAdapter(DocumentAdapter):
    """Draws with ReportLab, reads and writes with pypdf."""

    def __init__(self):
        self._reader: Optional[PdfReader] = None
        self._pages: List[PageObject] = []
        self._writer = PdfWriter()
        self._current: Optional[PageObject] = None
        self._packet: Optional[BytesIO] = None
        self._canvas: Optional[canvas.Canvas] = None
        self._drawn = False

    # --- Source -------------------------------------------------------

    def open_source(self, path: Union[str, Path], password: Optional[str] = None) -> None:
        """Loads the PDF, decrypting it if necessary."""
        try:
            reader = PdfReader(str(path))
            if reader.is_encrypted:
                self._decrypt(reader, password)
            # Pages are edited in place, so they must belong to the writer
            writer = PdfWriter(clone_from=reader)
            pages = list(writer.pages)
            for page in pages:
                # Fold /Rotate into the content so the media box is the displayed size
                if page.rotation % 360:
                    page.transfer_rotation_to_content()
        except PDFProcessingError:
            raise
        except (FileNotDecryptedError, DependencyError) as e:
            raise PDFProcessingError(f"Cannot decrypt PDF: {e}") from e
        except _PARSE_ERRORS as e:
            raise PDFParseError(f"Failed to parse PDF {path}: {e}") from e
        except OSError as e:
            raise ResourceError(f"Failed to read PDF {path}: {e}") from e

        self._reader = reader
        self._writer = writer
        self._pages = pages

    @staticmethod
    def _decrypt(reader: PdfReader, password: Optional[str]):
        # Attempt empty password (common for some restricted PDFs)
        result = reader.decrypt(password or "")
        if result == PasswordType.NOT_DECRYPTED:
            raise PDFProcessingError("PDF is encrypted. Please provide a valid password.")

    def page_count(self) -> int:
        return len(self._pages)

    def page_media_box(self, page_index: int) -> Tuple[float, float]:
        page = self._source_page(page_index)
        try:
            box = page.mediabox
            return float(box.width), float(box.height)
        except _PARSE_ERRORS as e:
            raise PDFParseError(f"Invalid media box on page {page_index}: {e}") from e

    def _source_page(self, page_index: int) -> PageObject:
        if not 1 <= page_index <= len(self._pages):
            raise PDFProcessingError(f"Page {page_index} out of range (1-{len(self._pages)})")
        return self._pages[page_index - 1]

    # --- Pages --------------------------------------------------------

    def begin_output_page(self, page: PageGeometry) -> None:
        self._current = self._source_page(page.index)
        self._packet = BytesIO()
        self._canvas = canvas.Canvas(self._packet, pagesize=(page.width, page.height))
        self._drawn = False

    def end_output_page(self) -> None:
        """Merges the overlay ON TOP of the original page."""
        if self._current is None:
            raise PDFProcessingError("end_output_page() called without begin_output_page()")

        source = self._current
        if self._drawn:
            self._canvas.save()
            self._packet.seek(0)
            overlay = PdfReader(self._packet).pages[0]
            try:
                box = source.mediabox
                if box.left or box.bottom:
                    offset = Transformation().translate(float(box.left), float(box.bottom))
                    source.merge_transformed_page(overlay, offset)
                else:
                    source.merge_page(overlay)
            except _PARSE_ERRORS as e:
                raise PDFParseError(f"Failed to merge watermark into page: {e}") from e

        self._current = None
        self._packet = None
        self._canvas = None

    # --- Drawing ------------------------------------------------------

    @contextmanager
    def _scoped(self, rotation: float, pivot: Optional[Tuple[float, float]]) -> Iterator[canvas.Canvas]:
        """Graphics state for one draw call; rotation and alpha never outlive it."""
        if self._canvas is None:
            raise PDFProcessingError("Drawing requires begin_output_page()")
        c = self._canvas
        c.saveState()
        try:
            if rotation:
                px, py = pivot
                c.translate(px, py)
                c.rotate(rotation)
                c.translate(-px, -py)
            yield c
        finally:
            c.restoreState()
        self._drawn = True

    def draw_rect(self, x, y, width, height, color, alpha, rotation=0.0, pivot=None) -> None:
        with self._scoped(rotation, pivot) as c:
            c.setFillColorRGB(*_unit_rgb(color))
            c.setFillAlpha(alpha)
            c.rect(x, y, width, height, stroke=0, fill=1)

    def draw_text(self, x, y, text, font, size, color, alpha, rotation=0.0, pivot=None,
                  underline=False, strikethrough=False) -> None:
        with self._scoped(rotation, pivot) as c:
            rgb = _unit_rgb(color)
            c.setFont(font, size)
            c.setFillColorRGB(*rgb)
            c.setFillAlpha(alpha)
            c.drawString(x, y, text)

            if underline or strikethrough:
                width = self.measure_text_width(text, font, size)
                c.setStrokeColorRGB(*rgb)
                c.setStrokeAlpha(alpha)
                c.setLineWidth(max(size * 0.05, 0.5))
                if underline:
                    c.line(x, y - size * 0.1, x + width, y - size * 0.1)
                if strikethrough:
                    c.line(x, y + size * 0.3, x + width, y + size * 0.3)

    def draw_image(self, x, y, width, height, image, alpha, rotation=0.0, pivot=None) -> None:
        with self._scoped(rotation, pivot) as c:
            c.setFillAlpha(alpha)
            c.drawImage(image.reader, x, y, width=width, height=height, mask="auto")

    # --- Fonts --------------------------------------------------------

    def measure_text_width(self, text: str, font: str, size: float) -> float:
        return pdfmetrics.stringWidth(text, font, size)

    def resolve_font(self, family: str, style: FontStyle) -> str:
        """Maps a family plus bold/italic flags to a ReportLab font name."""
        variants = _STANDARD_FAMILIES.get(family.strip().lower())
        if variants:
            index = (1 if style & FontStyle.BOLD else 0) + (2 if style & FontStyle.ITALIC else 0)
            return variants[index]
        try:
            pdfmetrics.getFont(family)
        except KeyError:
            raise InvalidInputError(f'Unknown font "{family}"')
        return family

    # --- Output -------------------------------------------------------

    def finalize(self, output_path: Union[str, Path]) -> None:
        """Writes the result next to the target and renames it into place."""
        output_path = Path(output_path)
        if self._reader is not None and self._reader.metadata:
            self._writer.add_metadata(self._reader.metadata)

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            fd, staging = tempfile.mkstemp(prefix=f".{output_path.name}.", suffix=".part",
                                           dir=str(output_path.parent))
        except OSError as e:
            raise ResourceError(f"Failed to save output PDF: {e}") from e

        try:
            with os.fdopen(fd, "wb") as handle:
                self._writer.write(handle)
            os.replace(staging, output_path)
        except _PARSE_ERRORS as e:
            raise PDFParseError(f"Failed to serialize PDF: {e}") from e
        except OSError as e:
            raise ResourceError(f"Failed to save output PDF: {e}") from e
        finally:
            if os.path.exists(staging):
                os.unlink(staging)

        logger.debug("Wrote %s", output_path)

    def close(self) -> None:
        self._reader = None
        self._pages = []
        self._canvas = None
        self._packet = None


def _unit_rgb(color: RGB) -> Tuple[float, float, float]:
    return tuple(component / 255 for component in color)
