#!/usr/bin/env python3
"""
Test Graphics Module

Test the pixel canvas, color parsing and layout helpers.
"""

import sys
from pathlib import Path

import pytest
from PIL import Image

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from matrix_hopper.errors import InvalidRequest
from matrix_hopper.graphics import (
    PixelCanvas,
    ScaleMode,
    centered_offset,
    fit_to_height,
    parse_color,
    render_led_preview,
    scale_to_canvas,
    to_png_bytes,
)


def test_parse_color():
    """Test color names, hex strings and tuples."""
    print("\n[1] Testing color parsing...")

    assert parse_color('amber') == (255, 191, 0, 255)
    assert parse_color('Orange') == (255, 153, 0, 255)
    assert parse_color('#ff0000') == (255, 0, 0, 255)
    assert parse_color('#00ff0080') == (0, 255, 0, 128)
    assert parse_color('navy') == (0, 0, 128, 255)
    assert parse_color((1, 2, 3)) == (1, 2, 3, 255)
    assert parse_color((1, 2, 3, 4)) == (1, 2, 3, 4)
    print("  ✓ Names, hex and tuples work")

    for bad in ('not-a-color', '#12', (300, 0, 0), (1, 2), 42):
        with pytest.raises(InvalidRequest):
            parse_color(bad)
    print("  ✓ Bad colors are rejected")


def test_canvas_buffer():
    """Test buffer size and replacement."""
    print("\n[2] Testing canvas buffer...")

    canvas = PixelCanvas(64, 32)
    assert len(canvas.get_buffer()) == 64 * 32 * 4
    assert canvas.get_buffer() == bytes(64 * 32 * 4)

    data = bytes([10, 20, 30, 255]) * (64 * 32)
    canvas.set_buffer(data)
    assert canvas.get_buffer() == data
    assert canvas.image.getpixel((63, 31)) == (10, 20, 30, 255)

    with pytest.raises(ValueError):
        canvas.set_buffer(b"\x00" * 10)
    print("  ✓ Buffer is always width * height * 4 bytes")

    with pytest.raises(ValueError):
        PixelCanvas(0, 8)


def test_fill_rect_clipping():
    """Test fills at the edges and with empty sizes."""
    print("\n[3] Testing fill_rect...")

    canvas = PixelCanvas(8, 4)
    canvas.fill_rect(-2, -2, 4, 4, 'red')
    assert canvas.image.getpixel((0, 0)) == (255, 0, 0, 255)
    assert canvas.image.getpixel((1, 1)) == (255, 0, 0, 255)
    assert canvas.image.getpixel((2, 2)) == (0, 0, 0, 0)
    print("  ✓ Negative coordinates are clipped")

    before = canvas.get_buffer()
    canvas.fill_rect(3, 1, 0, 5, 'blue')
    canvas.fill_rect(3, 1, 5, -1, 'blue')
    canvas.fill_rect(20, 20, 4, 4, 'blue')
    assert canvas.get_buffer() == before
    print("  ✓ Empty and off-canvas fills are no-ops")

    canvas.fill('green')
    canvas.clear_rect(0, 0, 1, 1)
    assert canvas.image.getpixel((0, 0)) == (0, 0, 0, 0)
    assert canvas.image.getpixel((1, 0)) == (0, 255, 0, 255)

    canvas.clear()
    assert canvas.get_buffer() == bytes(8 * 4 * 4)


def test_draw_image():
    """Test scaled, clipped and alpha-blended image drawing."""
    print("\n[4] Testing draw_image...")

    canvas = PixelCanvas(8, 8)
    canvas.fill('blue')

    src = Image.new('RGBA', (2, 2), (255, 0, 0, 255))
    src.putpixel((1, 1), (0, 0, 0, 0))
    canvas.draw_image(src, (-1, -1, 4, 4), resample=Image.Resampling.NEAREST)

    assert canvas.image.getpixel((0, 0)) == (255, 0, 0, 255)
    assert canvas.image.getpixel((2, 0)) == (255, 0, 0, 255)
    assert canvas.image.getpixel((1, 1)) == (0, 0, 255, 255)
    assert canvas.image.getpixel((2, 2)) == (0, 0, 255, 255)
    assert canvas.image.getpixel((3, 3)) == (0, 0, 255, 255)
    print("  ✓ Transparent source pixels keep the background")

    canvas = PixelCanvas(8, 8)
    canvas.draw_image(src, (0, 0, 4, 4), src_rect=(0, 0, 1, 1), resample=Image.Resampling.NEAREST)
    assert canvas.image.getpixel((3, 3)) == (255, 0, 0, 255)
    assert canvas.image.getpixel((4, 4)) == (0, 0, 0, 0)
    print("  ✓ Source rectangles are cropped and scaled")


def test_layout_helpers():
    """Test height-fit, centering and zoom/fit scaling."""
    print("\n[5] Testing layout helpers...")

    assert fit_to_height(10, 20, 8) == (4, 8)
    assert fit_to_height(80, 10, 8) == (64, 8)
    assert fit_to_height(1, 100, 8) == (1, 8)

    assert centered_offset(32, 4) == 14
    assert centered_offset(32, 64) == -16
    assert centered_offset(32, 5) == 13
    assert centered_offset(32, 35) == -2
    print("  ✓ Centering floors and may go negative")

    assert scale_to_canvas((10, 10), (64, 32), ScaleMode.FIT) == (0, 0, 64, 32)
    assert scale_to_canvas((10, 10), (64, 32), ScaleMode.ZOOM) == (0, -16, 64, 64)
    assert scale_to_canvas((20, 10), (32, 32), 'zoom') == (-16, 0, 64, 32)
    assert scale_to_canvas((16, 16), (32, 32), ScaleMode.ZOOM) == (0, 0, 32, 32)
    print("  ✓ Zoom covers the canvas, fit stretches")


def test_led_preview():
    """Test the LED-style preview and PNG conversion."""
    print("\n[6] Testing LED preview...")

    frame = Image.new('RGBA', (4, 2), (0, 0, 0, 0))
    frame.putpixel((0, 0), (255, 0, 0, 255))
    preview = render_led_preview(frame, scale=4, gap=1)

    assert preview.size == (4 * 5 + 1, 2 * 5 + 1)
    assert preview.getpixel((1, 1)) == (255, 0, 0)
    assert preview.getpixel((6, 1)) == (5, 5, 8)
    assert preview.getpixel((0, 0)) == (10, 10, 15)

    png = to_png_bytes(preview)
    assert png[:8] == b'\x89PNG\r\n\x1a\n'
    print("  ✓ Preview renders lit and dark LEDs")


if __name__ == "__main__":
    test_parse_color()
    test_canvas_buffer()
    test_fill_rect_clipping()
    test_draw_image()
    test_layout_helpers()
    test_led_preview()
    print("\n✓ All graphics tests passed!")
