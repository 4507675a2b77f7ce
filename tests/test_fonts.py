#!/usr/bin/env python3
"""
Test Fonts Module

Test BDF parsing, text measurement, glyph drawing and the font loader.
"""

import asyncio
import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from matrix_hopper.errors import FontLoadError
from matrix_hopper.fonts import BdfFont, FontLoader
from matrix_hopper.graphics import PixelCanvas

SAMPLE_BDF = """\
STARTFONT 2.1
FONTBOUNDINGBOX 9 3 0 0
CHARS 5
STARTCHAR one
ENCODING 49
BBX 3 3 0 0
BITMAP
A0
40
E0
ENDCHAR
STARTCHAR wide
ENCODING 87
BBX 9 2 1 -1
BITMAP
8080
FF80
ENDCHAR
STARTCHAR empty
ENCODING 69
BBX 3 3 0 0
BITMAP
ENDCHAR
STARTCHAR broken
ENCODING 66
BBX 3 3 0 0
BITMAP
ZZ
ENDCHAR
STARTCHAR unencoded
ENCODING -1
BBX 3 3 0 0
BITMAP
E0
ENDCHAR
ENDFONT
"""


def lit(canvas: PixelCanvas, x: int, y: int) -> bool:
    return canvas.image.getpixel((x, y))[3] > 0


def test_parse():
    """Test glyph records, including malformed ones."""
    print("\n[1] Testing BDF parsing...")

    font = BdfFont.parse(SAMPLE_BDF)
    assert len(font) == 2
    assert ord('1') in font and ord('W') in font
    assert ord('E') not in font, "glyph without rows must be dropped"
    assert ord('B') not in font, "glyph with garbage hex must be dropped"
    assert font.line_height == 3
    print(f"  ✓ Parsed {len(font)} glyphs, skipped malformed records")

    one = font.get_glyph(ord('1'))
    assert (one.width, one.height, one.bytes_per_row) == (3, 3, 1)
    assert [one.pixel(c, 0) for c in range(3)] == [True, False, True]
    assert [one.pixel(c, 1) for c in range(3)] == [False, True, False]

    wide = font.get_glyph(ord('W'))
    assert wide.bytes_per_row == 2
    assert (wide.x_offset, wide.y_offset) == (1, -1)
    assert wide.pixel(0, 0) and wide.pixel(8, 0)
    assert not wide.pixel(1, 0)
    assert all(wide.pixel(c, 1) for c in range(9))
    print("  ✓ Rows are MSB-first across padded bytes")

    assert font.get_glyph(ord('?')) is None


def test_bundled_font(font):
    """Test the bundled dot-matrix font."""
    print("\n[2] Testing bundled font...")

    assert len(font) >= 70
    assert font.line_height == 7
    for char in "AZaz09:° ":
        assert ord(char) in font, f"missing {char!r}"
    print(f"  ✓ {len(font)} glyphs loaded")


def test_measure(font):
    """Test measurement properties."""
    print("\n[3] Testing measure_text...")

    assert font.measure_text("") == 0
    assert font.measure_text("A") == 6
    assert font.measure_text("AB") == 12
    assert font.measure_text("AB", scale=2) == 24
    assert font.measure_text("AB", spacing=0) == 10

    # Missing glyphs advance 4 * scale + spacing * scale
    assert font.measure_text("~") == 5
    assert font.measure_text("~", scale=3, spacing=2) == 18

    text = "HELLO ~ WORLD 12:30"
    widths = [font.measure_text(text[:n]) for n in range(len(text) + 1)]
    assert widths == sorted(widths)

    widths = [font.measure_text(text[:n], spacing=-9) for n in range(len(text) + 1)]
    assert widths == sorted(widths)
    print("  ✓ Empty is 0 and width never shrinks as text grows")


def test_draw_text(font):
    """Test glyph blitting, scale and background."""
    print("\n[4] Testing draw_text...")

    canvas = PixelCanvas(32, 16)
    advance = font.draw_text(canvas, "H~I", 0, 0)
    assert advance == font.measure_text("H~I")

    # 'H' top row is 0x88: columns 0 and 4
    assert lit(canvas, 0, 0) and lit(canvas, 4, 0)
    assert not lit(canvas, 1, 0)
    # Missing glyph leaves a blank gap
    assert not any(lit(canvas, x, y) for x in range(6, 11) for y in range(7))
    assert canvas.image.getpixel((0, 0)) == (255, 255, 255, 255)
    print("  ✓ Glyph bits and missing-glyph gaps")

    canvas = PixelCanvas(32, 16)
    font.draw_text(canvas, "H", 2, 1, scale=2, color='red', background_color='blue')
    assert canvas.image.getpixel((2, 1)) == (255, 0, 0, 255)
    assert canvas.image.getpixel((3, 2)) == (255, 0, 0, 255)
    assert canvas.image.getpixel((4, 1)) == (0, 0, 255, 255)
    assert canvas.image.getpixel((12, 1)) == (0, 0, 0, 0)
    print("  ✓ Scaled glyphs over a background box")

    canvas = PixelCanvas(8, 8)
    font.draw_text(canvas, "HELLO", -20, -3)
    font.draw_text(canvas, "HELLO", 6, 6)
    print("  ✓ Off-canvas text is clipped")


def test_font_loader(font, tmp_path):
    """Test the ready barrier."""
    print("\n[5] Testing FontLoader...")

    async def run():
        loader = FontLoader()
        assert not loader.loaded
        loader.start()
        first, second = await asyncio.gather(loader.ready(), loader.ready())
        assert first is second
        assert loader.loaded
        assert ord('A') in first

        preloaded = FontLoader.preloaded(font)
        assert await preloaded.ready() is font

        missing = FontLoader(tmp_path / "nope.bdf")
        missing.start()
        for _ in range(2):
            with pytest.raises(FontLoadError):
                await missing.ready()

    asyncio.run(run())
    print("  ✓ Waiters share one load, failures reach every waiter")


if __name__ == "__main__":
    from matrix_hopper.fonts import DEFAULT_FONT_PATH
    bundled = BdfFont.load(DEFAULT_FONT_PATH)
    test_parse()
    test_bundled_font(bundled)
    test_measure(bundled)
    test_draw_text(bundled)
    print("\n✓ All font tests passed!")
