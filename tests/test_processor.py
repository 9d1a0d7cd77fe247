from conftest import RecordingAdapter

from pdfwatermark.PDFProcessor import PDFProcessor
from pdfwatermark.WatermarkConfig import ImageWatermarkConfig, TextWatermarkConfig
from pdfwatermark.WatermarkGeometry import PageGeometry


def run(watermarks, sizes, **kwargs):
    adapter = RecordingAdapter(sizes=sizes)
    PDFProcessor(watermarks, adapter_factory=lambda: adapter, **kwargs).process("in.pdf", "out.pdf")
    return adapter


def test_page_selection_per_watermark():
    a = TextWatermarkConfig("A", pages=[1])
    b = TextWatermarkConfig("B", pages=["2-last"])

    adapter = run([a, b], [(612, 792)] * 3)

    assert adapter.texts_by_page() == {1: ["A"], 2: ["B"], 3: ["B"]}


def test_registration_order_is_draw_order():
    first = TextWatermarkConfig("first")
    second = TextWatermarkConfig("second", background_opacity=0.5)
    third = TextWatermarkConfig("third")

    adapter = run([first, second, third], [(612, 792)])

    drawn = [call[0] if call[0] == "rect" else call[1]
             for call in adapter.calls if call[0] in ("rect", "text")]
    assert drawn == ["first", "rect", "second", "third"]


def test_every_page_is_emitted_even_without_watermarks():
    adapter = run([TextWatermarkConfig("only last", pages="last")], [(612, 792)] * 3)

    kinds = [call[0] for call in adapter.calls]
    assert kinds.count("begin") == 3
    assert kinds.count("end") == 3
    assert adapter.texts_by_page() == {1: [], 2: [], 3: ["only last"]}


def test_lifecycle_order():
    adapter = run([TextWatermarkConfig("x")], [(612, 792)])

    kinds = [call[0] for call in adapter.calls]
    assert kinds == ["open", "begin", "text", "end", "finalize"]
    assert adapter.calls[-1] == ("finalize", "out.pdf")
    assert adapter.closed


def test_load_geometry_reads_each_media_box():
    adapter = RecordingAdapter(sizes=[(612, 792), (792, 612)])
    pages = PDFProcessor.load_geometry(adapter)
    assert pages == [PageGeometry(1, 612, 792), PageGeometry(2, 792, 612)]


def test_watermarks_follow_each_page_size(png_image):
    image = ImageWatermarkConfig(png_image, position="top-right", scale=0.5)

    adapter = run([image], [(612, 792), (792, 612)])

    (first, second) = adapter.drawn("image")
    # 300x50 at 0.5 -> 150x25, anchored to the top right corner of each page
    assert first[1:5] == (462, 767, 150, 25)
    assert second[1:5] == (642, 587, 150, 25)


def test_nothing_survives_between_runs(png_image):
    image = ImageWatermarkConfig(png_image)
    adapters = []

    def factory():
        adapters.append(RecordingAdapter())
        return adapters[-1]

    processor = PDFProcessor([image], adapter_factory=factory)
    processor.process("a.pdf", "b.pdf")
    processor.process("a.pdf", "c.pdf")

    assert [a.images_loaded for a in adapters] == [1, 1]
