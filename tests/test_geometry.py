import pytest

from pdfwatermark.WatermarkConfig import WatermarkPosition
from pdfwatermark.WatermarkGeometry import (
    DEFAULT_SCALE_FACTOR,
    AnchorPolicy,
    PageGeometry,
    PageOrientation,
    YAxisOrigin,
    clamp_factor,
    clamp_to_page,
    image_box,
    resolve_anchor,
    resolve_image_size,
    rotation_pivot,
    text_box,
)

ALL_POSITIONS = list(WatermarkPosition)


@pytest.mark.parametrize("W,H,w,h", [
    (612, 792, 100, 50),
    (100, 100, 100, 100),
    (595.28, 841.89, 33.3, 12.7),
    (200, 50, 400, 80),
])
def test_center_is_exact(W, H, w, h):
    assert resolve_anchor(WatermarkPosition.CENTER, W, H, w, h) == ((W - w) / 2, (H - h) / 2)


@pytest.mark.parametrize("position", ALL_POSITIONS)
def test_zero_box_stays_on_page(position):
    x, y = resolve_anchor(position, 612, 792, 0, 0)
    assert 0 <= x <= 612
    assert 0 <= y <= 792


@pytest.mark.parametrize("position", ALL_POSITIONS)
def test_box_that_fits_stays_on_page(position):
    x, y = resolve_anchor(position, 612, 792, 200, 100)
    assert 0 <= x <= 612 - 200
    assert 0 <= y <= 792 - 100


@pytest.mark.parametrize("position,expected", [
    (WatermarkPosition.TOP_LEFT, (0, 700)),
    (WatermarkPosition.TOP_CENTER, (250, 700)),
    (WatermarkPosition.TOP_RIGHT, (500, 700)),
    (WatermarkPosition.MIDDLE_LEFT, (0, 350)),
    (WatermarkPosition.CENTER, (250, 350)),
    (WatermarkPosition.MIDDLE_RIGHT, (500, 350)),
    (WatermarkPosition.BOTTOM_LEFT, (0, 0)),
    (WatermarkPosition.BOTTOM_CENTER, (250, 0)),
    (WatermarkPosition.BOTTOM_RIGHT, (500, 0)),
])
def test_anchor_points_bottom_origin(position, expected):
    assert resolve_anchor(position, 600, 800, 100, 100) == expected


@pytest.mark.parametrize("position,expected", [
    (WatermarkPosition.TOP_LEFT, (10, 10)),
    (WatermarkPosition.CENTER, (250, 350)),
    (WatermarkPosition.BOTTOM_RIGHT, (490, 690)),
])
def test_anchor_points_top_origin_with_margin(position, expected):
    policy = AnchorPolicy(margin=10, y_origin=YAxisOrigin.TOP)
    assert resolve_anchor(position, 600, 800, 100, 100, policy) == expected


def test_margin_applies_to_edges_only():
    policy = AnchorPolicy(margin=20)
    assert resolve_anchor(WatermarkPosition.TOP_RIGHT, 600, 800, 100, 100, policy) == (480, 680)
    assert resolve_anchor(WatermarkPosition.BOTTOM_LEFT, 600, 800, 100, 100, policy) == (20, 20)
    assert resolve_anchor(WatermarkPosition.CENTER, 600, 800, 100, 100, policy) == (250, 350)


def test_oversized_box_overflows_with_negative_coordinates():
    x, y = resolve_anchor(WatermarkPosition.CENTER, 100, 100, 300, 200)
    assert (x, y) == (-100, -50)
    x, _ = resolve_anchor(WatermarkPosition.BOTTOM_RIGHT, 100, 100, 300, 20)
    assert x == -200


def test_rotation_pivot_is_box_center():
    assert rotation_pivot(10, 20, 100, 50) == (60, 45)


def test_page_orientation():
    assert PageGeometry(1, 792, 612).orientation == PageOrientation.LANDSCAPE
    assert PageGeometry(1, 612, 792).orientation == PageOrientation.PORTRAIT
    assert PageGeometry(1, 500, 500).orientation == PageOrientation.PORTRAIT


class TestTextBox:

    def test_tight_box_metrics(self):
        page = PageGeometry(1, 200, 100)
        layout = text_box(WatermarkPosition.CENTER, page, text_width=50.2, font_size=20)

        # ceil(50.2) + 2pt per side; 0.4 * 20 + 0.5
        assert layout.box.width == 55
        assert layout.box.height == pytest.approx(8.5)
        assert layout.box.x == pytest.approx(72.5)
        assert layout.box.y == pytest.approx(45.75)
        assert layout.text_x == pytest.approx(74.5)
        # box_y + (box_h - text_h) / 2 - 0.05 * font_size
        assert layout.text_y == pytest.approx(45.0)
        assert layout.text_height == pytest.approx(8.0)

    def test_padding_and_line_height(self):
        page = PageGeometry(1, 200, 100)
        layout = text_box(WatermarkPosition.BOTTOM_LEFT, page, text_width=40, font_size=10,
                          padding=5, line_height_factor=1.2)
        assert layout.box.width == 40 + 2 * 7
        assert layout.box.height == pytest.approx(12 + 0.5 + 10)
        assert (layout.box.x, layout.box.y) == (0, 0)
        assert layout.text_x == 7

    def test_empty_text_is_padding_only(self):
        page = PageGeometry(1, 200, 100)
        layout = text_box(WatermarkPosition.CENTER, page, text_width=0, font_size=10, padding=3)
        assert layout.box.width == 4 + 6
        assert layout.box.height == pytest.approx(4 + 0.5 + 6)


class TestImageSizing:

    def test_scale(self):
        assert resolve_image_size(300, 50, scale=0.5) == (150, 25)

    def test_width_keeps_aspect(self):
        assert resolve_image_size(300, 50, width=60) == (60, 10)

    def test_height_keeps_aspect(self):
        assert resolve_image_size(300, 50, height=10) == (60, 10)

    def test_default_scale(self):
        assert resolve_image_size(300, 50) == (300, 50)
        w, h = resolve_image_size(300, 50, default_scale=DEFAULT_SCALE_FACTOR)
        assert (w, h) == (pytest.approx(45), pytest.approx(7.5))

    def test_clamp_truncates_to_two_decimals(self):
        assert clamp_factor(300, 50, 100, 100) == 0.33
        w, h = clamp_to_page(300, 50, 100, 100)
        assert w == pytest.approx(99)
        assert h == pytest.approx(16.5)

    def test_clamp_truncation_is_not_fooled_by_float_error(self):
        # 29 / 100 * 100 == 28.999999999999996
        assert clamp_factor(100, 10, 29, 1000) == 0.29

    def test_clamp_leaves_fitting_images_alone(self):
        assert clamp_to_page(50, 50, 100, 100) == (50, 50)

    def test_image_box_clamps_then_anchors(self):
        box = image_box(WatermarkPosition.CENTER, PageGeometry(1, 100, 100), 300, 50)
        assert box.width == pytest.approx(99)
        assert box.height == pytest.approx(16.5)
        assert box.x == pytest.approx(0.5)
        assert box.y == pytest.approx(41.75)
