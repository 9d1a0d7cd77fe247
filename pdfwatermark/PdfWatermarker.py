import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Callable, List, Optional, Union

from .CompatibilityFallback import Normalizer, build_normalizer
from .DocumentAdapter import DocumentAdapter, ReportLabDocumentAdapter
from .PDFProcessor import PDFProcessor
from .WatermarkConfig import (
    ImageWatermarkConfig,
    InputNotFoundError,
    InvalidInputError,
    NoWatermarksError,
    PDFParseError,
    ResourceError,
    TextWatermarkConfig,
    WatermarkConfig,
    WatermarkType,
)
from .WatermarkSettings import WatermarkSettings, get_settings

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

TEMP_DIR_PREFIX = "pdf_watermark_"


class PdfWatermarker:
    """
    Applies a list of watermarks to PDF files.

    Example:
        watermarker = create_document()
        watermarker.add_watermark(TextWatermarkConfig("DRAFT", pages=1))
        watermarker.add_watermark(ImageWatermarkConfig("logo.png", position="top-right", scale=0.2))
        watermarker.apply("source.pdf", "output.pdf")

    Files the parser rejects are retried through the normalizer (pdftk by
    default): uncompress, watermark, compress. Intermediate files live in a
    temporary directory that is removed when apply() returns or raises.
    """

    def __init__(
        self,
        pdftk: Optional[str] = None,
        temp_dir: Optional[PathLike] = None,
        settings: Optional[WatermarkSettings] = None,
        normalizer: Optional[Normalizer] = None,
        adapter_factory: Callable[[], DocumentAdapter] = ReportLabDocumentAdapter,
    ):
        self.settings = settings or get_settings()
        self.temp_dir = Path(temp_dir) if temp_dir else self.settings.temp_dir
        self.normalizer = normalizer or build_normalizer(
            self.settings.normalizer,
            pdftk or self.settings.pdftk_path,
            self.settings.tool_timeout,
        )
        self.adapter_factory = adapter_factory
        self.watermarks: List[WatermarkConfig] = []

    def add_watermark(self, watermark: WatermarkConfig) -> "PdfWatermarker":
        if not isinstance(watermark, WatermarkConfig) or watermark.watermark_type is None:
            raise InvalidInputError(f"Not a watermark configuration: {watermark!r}")
        if watermark.watermark_type == WatermarkType.TEXT:
            # Font names are only known to the backend
            with self.adapter_factory() as adapter:
                adapter.resolve_font(watermark.font_name, watermark.font_style)
        self.watermarks.append(watermark)
        return self

    def apply(self, input_path: PathLike, output_path: PathLike, password: Optional[str] = None):
        """
        Watermarks ``input_path`` into ``output_path``.

        Raises:
            InputNotFoundError: the input file does not exist.
            NoWatermarksError: no watermark has been added.
            PDFProcessingError: the document could not be processed, even
                after normalization.
            ExternalToolError: the normalizer failed.
            ResourceError: a file could not be read or written.
            InvalidInputError: a font set after add_watermark() is unknown
                to the PDF backend.
        """
        input_path = Path(input_path)
        output_path = Path(output_path)

        if not input_path.is_file():
            raise InputNotFoundError(f'Input file "{input_path}" does not exist')
        if not self.watermarks:
            raise NoWatermarksError("No watermarks have been added")

        processor = PDFProcessor(
            self.watermarks,
            adapter_factory=self.adapter_factory,
            margin=self.settings.anchor_margin,
            line_height_factor=self.settings.line_height_factor,
            default_image_scale=self.settings.default_image_scale,
            password=password,
        )

        with self._work_dir() as work_dir:
            try:
                processor.process(input_path, output_path)
            except PDFParseError as e:
                logger.warning("Could not parse %s directly (%s); retrying through %s",
                               input_path, e, self.normalizer.name)
                self._process_normalized(processor, input_path, output_path, Path(work_dir))

        logger.info("Watermarked %s -> %s", input_path, output_path)

    def _work_dir(self) -> tempfile.TemporaryDirectory:
        try:
            if self.temp_dir:
                self.temp_dir.mkdir(parents=True, exist_ok=True)
            return tempfile.TemporaryDirectory(
                prefix=TEMP_DIR_PREFIX,
                dir=str(self.temp_dir) if self.temp_dir else None,
            )
        except OSError as e:
            raise ResourceError(f"Failed to create temporary directory: {e}") from e

    def _process_normalized(self, processor: PDFProcessor, input_path: Path, output_path: Path,
                            work_dir: Path):
        """Uncompress -> watermark -> compress, all inside work_dir."""
        uncompressed = work_dir / "uncompressed.pdf"
        processed = work_dir / "processed.pdf"
        compressed = work_dir / "compressed.pdf"

        self.normalizer.uncompress(input_path, uncompressed)
        processor.process(uncompressed, processed)
        self.normalizer.compress(processed, compressed)
        publish_file(compressed, output_path)


def publish_file(source: Path, target: Path):
    """Copies source over target so target is never seen half written."""
    staging = None
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, staging = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".part", dir=str(target.parent))
        os.close(fd)
        shutil.copyfile(source, staging)
        os.replace(staging, target)
    except OSError as e:
        raise ResourceError(f"Failed to save output PDF: {e}") from e
    finally:
        if staging and os.path.exists(staging):
            os.unlink(staging)

# ==========================================
# Factory helpers
# ==========================================

def create_document(
    pdftk: Optional[str] = None,
    temp_dir: Optional[PathLike] = None,
    settings: Optional[WatermarkSettings] = None,
) -> PdfWatermarker:
    """Creates a watermarker; pdftk and temp_dir override the settings."""
    return PdfWatermarker(pdftk=pdftk, temp_dir=temp_dir, settings=settings)

def create_text_watermark(text: str, **options) -> TextWatermarkConfig:
    return TextWatermarkConfig(text, **options)

def create_image_watermark(image: Union[PathLike, bytes], **options) -> ImageWatermarkConfig:
    return ImageWatermarkConfig(image, **options)

def create_with_watermark(watermark: WatermarkConfig, pdftk: Optional[str] = None,
                          temp_dir: Optional[PathLike] = None) -> PdfWatermarker:
    """Shortcut for a watermarker holding a single watermark."""
    return create_document(pdftk, temp_dir).add_watermark(watermark)
