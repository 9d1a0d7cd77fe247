import argparse
import sys
from typing import List, Optional, Tuple

from .PdfWatermarker import create_document
from .WatermarkConfig import (
    ImageWatermarkConfig,
    TextWatermarkConfig,
    WatermarkConfig,
    WatermarkError,
    WatermarkPosition,
)
from .WatermarkGeometry import DEFAULT_SCALE_FACTOR
from .WatermarkSettings import configure_logging

# ==========================================
# CLI & Execution
# ==========================================

def _parse_rgb(value: str) -> Tuple[int, int, int]:
    """'255,0,0' -> (255, 0, 0)"""
    parts = [part.strip() for part in value.split(",")]
    if len(parts) != 3:
        raise argparse.ArgumentTypeError(f"expected R,G,B, got {value!r}")
    try:
        return tuple(int(part) for part in parts)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected integers in R,G,B, got {value!r}")

def build_watermark(args: argparse.Namespace) -> WatermarkConfig:
    """Creates the watermark configuration described by the command line."""
    common = dict(position=args.pos, opacity=args.opacity, angle=args.rotate)
    if args.pages:
        common["pages"] = args.pages

    # 1. Image watermark
    if args.image:
        config = ImageWatermarkConfig(args.image, **common)
        if args.scale is not None:
            config.set_scale(args.scale)
        elif args.width is not None:
            config.set_width(args.width)
        elif args.height is not None:
            config.set_height(args.height)
        elif args.fit:
            config.set_scale(DEFAULT_SCALE_FACTOR)
        return config

    # 2. Text watermark
    config = TextWatermarkConfig(args.text, **common)
    config.set_font_name(args.font).set_font_size(args.font_size).set_text_opacity(args.opacity)
    if args.font_style:
        config.set_font_style(args.font_style)
    if args.color:
        config.set_text_color(*args.color)
    if args.bg_color:
        config.set_background_color(*args.bg_color)
    if args.bg_opacity is not None:
        config.set_background_opacity(args.bg_opacity)
    if args.padding is not None:
        config.set_padding(args.padding)
    return config

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pdfwatermark",
        description="Add text or image watermarks to the pages of a PDF",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    # Files
    parser.add_argument("-i", "--input", required=True, help="Path to source PDF")
    parser.add_argument("-o", "--output", required=True, help="Path to save watermarked PDF")

    # Watermark Content
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("-t", "--text", help="Text to use as watermark ({page} and {pages} are substituted)")
    group.add_argument("-img", "--image", help="Path to image (PNG/JPG) to use as watermark")

    # Appearance
    parser.add_argument("--pos", default=WatermarkPosition.CENTER.value,
                        choices=[p.value for p in WatermarkPosition],
                        help="Position on the page")
    parser.add_argument("--opacity", type=float, default=0.5, help="Opacity (0.0 to 1.0)")
    parser.add_argument("--rotate", type=float, default=0.0, help="Rotation in degrees (center position only)")
    parser.add_argument("--pages", help="Pages to watermark (e.g. 'all', 'last', '1, 3-5, 7-last')")
    parser.add_argument("--password", help="Password for encrypted PDFs")

    # Text
    parser.add_argument("--font", default="Helvetica", help="Font family")
    parser.add_argument("--font-style", help="Combination of B, I, U, D (bold, italic, underline, strikethrough)")
    parser.add_argument("--font-size", type=int, default=24, help="Font size in points")
    parser.add_argument("--color", type=_parse_rgb, help="Text color as R,G,B")
    parser.add_argument("--bg-color", type=_parse_rgb, help="Background color as R,G,B")
    parser.add_argument("--bg-opacity", type=float, help="Background opacity (0.0 to 1.0)")
    parser.add_argument("--padding", type=int, help="Padding around the text in points")

    # Image sizing
    sizing = parser.add_mutually_exclusive_group()
    sizing.add_argument("--scale", type=float, help="Scale relative to the image's natural size")
    sizing.add_argument("--width", type=int, help="Image width in points (keeps aspect ratio)")
    sizing.add_argument("--height", type=int, help="Image height in points (keeps aspect ratio)")
    sizing.add_argument("--fit", action="store_true",
                        help=f"Draw the image at scale {DEFAULT_SCALE_FACTOR} of its natural size")

    # Environment
    parser.add_argument("--pdftk", help="Path to pdftk, used for PDFs that need normalization")
    parser.add_argument("--temp-dir", help="Directory for intermediate files")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every page")
    return parser

def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging("DEBUG" if args.verbose else None)

    try:
        watermarker = create_document(pdftk=args.pdftk, temp_dir=args.temp_dir)
        watermarker.add_watermark(build_watermark(args))
        watermarker.apply(args.input, args.output, password=args.password)
    except WatermarkError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Successfully saved to: {args.output}")
    return 0

if __name__ == "__main__":
    sys.exit(main())
