import logging
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from .DocumentAdapter import DocumentAdapter, ReportLabDocumentAdapter
from .PageSelector import page_matches, selected_pages
from .WatermarkConfig import WatermarkConfig
from .WatermarkGeometry import DEFAULT_IMAGE_SCALE, DEFAULT_LINE_HEIGHT_FACTOR, PageGeometry
from .WatermarkRenderer import WatermarkRenderer

logger = logging.getLogger(__name__)

# ==========================================
# PDF Processor
# ==========================================

class PDFProcessor:
    """
    Runs one watermarking pass from a source PDF to an output PDF.

    Responsibilities:
    1. Loading the source and reading every page's size once.
    2. Filtering watermarks per page with the page selector.
    3. Drawing matching watermarks in registration order (later on top).
    4. Writing the result.

    Each call to process() opens a fresh adapter and renderer, so nothing
    carries over between runs.
    """

    def __init__(
        self,
        watermarks: Sequence[WatermarkConfig],
        adapter_factory: Callable[[], DocumentAdapter] = ReportLabDocumentAdapter,
        margin: float = 0.0,
        line_height_factor: float = DEFAULT_LINE_HEIGHT_FACTOR,
        default_image_scale: float = DEFAULT_IMAGE_SCALE,
        password: Optional[str] = None,
    ):
        self.watermarks = list(watermarks)
        self.adapter_factory = adapter_factory
        self.margin = margin
        self.line_height_factor = line_height_factor
        self.default_image_scale = default_image_scale
        self.password = password

    def process(self, input_path: Union[str, Path], output_path: Union[str, Path]):
        """Main execution loop."""
        with self.adapter_factory() as adapter:
            adapter.open_source(input_path, self.password)
            pages = self.load_geometry(adapter)
            total_pages = len(pages)

            renderer = WatermarkRenderer(
                adapter,
                margin=self.margin,
                line_height_factor=self.line_height_factor,
                default_image_scale=self.default_image_scale,
            )

            logger.info("Processing %d pages of %s with %d watermark(s)",
                        total_pages, input_path, len(self.watermarks))
            for index, watermark in enumerate(self.watermarks, start=1):
                logger.debug("Watermark %d (%s) applies to pages %s", index,
                             watermark.watermark_type.value,
                             selected_pages(watermark.pages, total_pages))

            for page in pages:
                adapter.begin_output_page(page)
                self._apply_watermarks_to_page(adapter, renderer, page, total_pages)
                adapter.end_output_page()

            adapter.finalize(output_path)

    @staticmethod
    def load_geometry(adapter: DocumentAdapter) -> List[PageGeometry]:
        pages = []
        for index in range(1, adapter.page_count() + 1):
            width, height = adapter.page_media_box(index)
            pages.append(PageGeometry(index, width, height))
        return pages

    def _apply_watermarks_to_page(self, adapter: DocumentAdapter, renderer: WatermarkRenderer,
                                  page: PageGeometry, total_pages: int):
        """Draws every watermark selected for this page onto the overlay."""
        for watermark in self.watermarks:
            if not page_matches(watermark.pages, page.index, total_pages):
                continue
            for command in renderer.render(watermark, page, total_pages):
                command.draw(adapter)
