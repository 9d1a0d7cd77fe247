from pathlib import Path
from typing import List, Sequence, Tuple

import pytest
from PIL import Image
from reportlab.pdfgen import canvas

from pdfwatermark.DocumentAdapter import DocumentAdapter, ImageSource
from pdfwatermark.WatermarkGeometry import PageGeometry
from pdfwatermark.WatermarkSettings import WatermarkSettings

LETTER = (612.0, 792.0)


def make_pdf(path: Path, sizes: Sequence[Tuple[float, float]]) -> Path:
    """One page per entry in sizes, each carrying a line of original text."""
    c = canvas.Canvas(str(path))
    for number, size in enumerate(sizes, start=1):
        c.setPageSize(size)
        c.drawString(36, 36, f"Original page {number}")
        c.showPage()
    c.save()
    return path


def make_image(path: Path, size=(300, 50), fmt="PNG", mode="RGBA") -> Path:
    color = (200, 30, 30, 128) if mode == "RGBA" else (200, 30, 30)
    Image.new(mode, size, color).save(path, format=fmt)
    return path


@pytest.fixture
def settings(tmp_path):
    return WatermarkSettings(temp_dir=tmp_path / "work", pdftk_path="pdftk")


@pytest.fixture
def one_page_pdf(tmp_path):
    return make_pdf(tmp_path / "one.pdf", [LETTER])


@pytest.fixture
def three_page_pdf(tmp_path):
    return make_pdf(tmp_path / "three.pdf", [LETTER] * 3)


@pytest.fixture
def png_image(tmp_path):
    return make_image(tmp_path / "logo.png")


@pytest.fixture
def jpeg_image(tmp_path):
    return make_image(tmp_path / "photo.jpg", size=(40, 20), fmt="JPEG", mode="RGB")


@pytest.fixture
def gif_image(tmp_path):
    return make_image(tmp_path / "anim.gif", size=(10, 10), fmt="GIF", mode="RGB")


class RecordingAdapter(DocumentAdapter):
    """In-memory adapter that logs every call instead of drawing."""

    def __init__(self, sizes: Sequence[Tuple[float, float]] = (LETTER,), image_size=(300, 50)):
        self.sizes = list(sizes)
        self.image_size = image_size
        self.calls: List[tuple] = []
        self.images_loaded = 0
        self.closed = False

    def open_source(self, path, password=None):
        self.calls.append(("open", str(path)))

    def page_count(self):
        return len(self.sizes)

    def page_media_box(self, page_index):
        return self.sizes[page_index - 1]

    def begin_output_page(self, page: PageGeometry):
        self.calls.append(("begin", page.index))

    def end_output_page(self):
        self.calls.append(("end",))

    def draw_rect(self, x, y, width, height, color, alpha, rotation=0.0, pivot=None):
        self.calls.append(("rect", x, y, width, height, color, alpha, rotation, pivot))

    def draw_text(self, x, y, text, font, size, color, alpha, rotation=0.0, pivot=None,
                  underline=False, strikethrough=False):
        self.calls.append(("text", text, x, y, font, size, color, alpha, rotation, pivot))

    def draw_image(self, x, y, width, height, image, alpha, rotation=0.0, pivot=None):
        self.calls.append(("image", x, y, width, height, alpha, rotation, pivot))

    def measure_text_width(self, text, font, size):
        return len(text) * size * 0.5

    def resolve_font(self, family, style):
        return family

    def load_image(self, source):
        self.images_loaded += 1
        return ImageSource(self.image_size[0], self.image_size[1], "PNG", None)

    def finalize(self, output_path):
        self.calls.append(("finalize", str(output_path)))

    def close(self):
        self.closed = True

    def drawn(self, kind: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == kind]

    def texts_by_page(self):
        pages, current = {}, None
        for call in self.calls:
            if call[0] == "begin":
                current = call[1]
                pages[current] = []
            elif call[0] == "text":
                pages[current].append(call[1])
        return pages
