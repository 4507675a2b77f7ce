"""
Bitmap Font Module

Parses BDF bitmap fonts into glyph bitmaps and draws text onto a pixel canvas.
Glyphs use fixed advance widths; there is no hinting or kerning.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .errors import FontLoadError
from .graphics import Color, PixelCanvas, parse_color

logger = logging.getLogger(__name__)

DEFAULT_FONT_PATH = Path(__file__).parent / "data" / "dot_matrix_5x7.bdf"

# Advance used for characters the font has no glyph for
MISSING_GLYPH_WIDTH = 4

_HEX_ROW = re.compile(r"^[0-9A-Fa-f]+$")


@dataclass(frozen=True)
class Glyph:
    """One character's bitmap. Row bits are MSB-first: the top bit is the leftmost pixel."""
    code: int
    width: int
    height: int
    x_offset: int
    y_offset: int
    rows: tuple[int, ...]
    bytes_per_row: int

    def pixel(self, col: int, row: int) -> bool:
        """Whether the pixel at (col, row) is set."""
        if row >= len(self.rows) or col >= self.width:
            return False
        return bool((self.rows[row] >> (self.bytes_per_row * 8 - 1 - col)) & 1)


class BdfFont:
    """A read-only mapping of codepoints to glyphs."""

    def __init__(self, glyphs: dict[int, Glyph], line_height: Optional[int] = None):
        self._glyphs = dict(glyphs)
        if line_height is None:
            line_height = max((g.height for g in self._glyphs.values()), default=0)
        self.line_height = line_height

    def __len__(self) -> int:
        return len(self._glyphs)

    def __contains__(self, code: int) -> bool:
        return code in self._glyphs

    def get_glyph(self, code: int) -> Optional[Glyph]:
        return self._glyphs.get(code)

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    @classmethod
    def load(cls, path: Union[Path, str]) -> "BdfFont":
        """
        Load a BDF font file.

        Raises:
            FontLoadError: If the file cannot be read.
        """
        path = Path(path)
        try:
            text = path.read_text(encoding="latin-1")
        except OSError as e:
            raise FontLoadError(f"Failed to load BDF font {path}: {e}") from e

        font = cls.parse(text)
        logger.info(f"Loaded font {path.name}: {len(font)} glyphs")
        return font

    @classmethod
    def parse(cls, text: str) -> "BdfFont":
        """
        Parse BDF source text.

        Records without bitmap rows, or with unparseable fields, are skipped.
        """
        glyphs: dict[int, Glyph] = {}
        line_height = None

        current: Optional[dict] = None
        rows: list[int] = []
        in_bitmap = False

        for raw in text.splitlines():
            line = raw.strip()
            if not line:
                continue
            keyword, _, rest = line.partition(" ")
            fields = rest.split()

            if keyword == "FONTBOUNDINGBOX" and len(fields) >= 2:
                try:
                    line_height = int(fields[1])
                except ValueError:
                    pass

            elif keyword == "ENCODING":
                rows = []
                in_bitmap = False
                try:
                    code = int(fields[0])
                except (IndexError, ValueError):
                    logger.debug(f"Skipping glyph with bad encoding: {line!r}")
                    current = None
                    continue
                # Unencoded glyphs carry -1
                current = {"code": code, "width": 0, "height": 0, "x_offset": 0, "y_offset": 0} if code >= 0 else None

            elif keyword == "BBX":
                if current is None:
                    continue
                try:
                    width, height, x_offset, y_offset = (int(v) for v in fields[:4])
                except ValueError:
                    logger.debug(f"Skipping glyph {current['code']} with bad BBX: {line!r}")
                    current = None
                    continue
                current.update(width=width, height=height, x_offset=x_offset, y_offset=y_offset)

            elif keyword == "BITMAP":
                rows = []
                in_bitmap = True

            elif keyword == "ENDCHAR":
                if current is not None and rows:
                    glyphs[current["code"]] = Glyph(
                        rows=tuple(rows),
                        bytes_per_row=(current["width"] + 7) // 8,
                        **current,
                    )
                current = None
                rows = []
                in_bitmap = False

            elif in_bitmap and current is not None:
                if _HEX_ROW.match(line):
                    rows.append(_normalize_row(int(line, 16), len(line), current["width"]))
                else:
                    logger.debug(f"Skipping glyph {current['code']} with bad bitmap row: {line!r}")
                    current = None
                    in_bitmap = False

        return cls(glyphs, line_height)

    # -------------------------------------------------------------------------
    # Measuring & Drawing
    # -------------------------------------------------------------------------

    def _advance(self, glyph: Optional[Glyph], scale: int, spacing: int) -> int:
        width = glyph.width if glyph else MISSING_GLYPH_WIDTH
        return max(0, width * scale + spacing * scale)

    def measure_text(self, text: str, scale: int = 1, spacing: int = 1) -> int:
        """Pixel width of `text`, using the same advances as draw_text()."""
        return sum(self._advance(self._glyphs.get(ord(char)), scale, spacing) for char in text)

    def draw_text(
        self,
        canvas: PixelCanvas,
        text: str,
        x: int,
        y: int,
        scale: int = 1,
        color: Color = "white",
        background_color: Optional[Color] = None,
        spacing: int = 1,
    ) -> int:
        """
        Draw `text` with its top-left corner at (x, y).

        Args:
            canvas: Canvas to draw on.
            text: Text to draw. Characters without a glyph leave a blank gap.
            x, y: Top-left position; may lie outside the canvas.
            scale: Size of one font pixel in canvas pixels.
            color: Foreground color.
            background_color: If set, each glyph box is filled first.
            spacing: Extra advance after each glyph, in font pixels (may be negative).

        Returns:
            Total horizontal advance in canvas pixels.
        """
        fg = parse_color(color)
        bg = parse_color(background_color) if background_color is not None else None

        cursor = x
        for char in text:
            glyph = self._glyphs.get(ord(char))
            if glyph is None:
                logger.debug(f"No glyph for {char!r} ({ord(char)})")
                cursor += self._advance(None, scale, spacing)
                continue

            if bg is not None:
                canvas.fill_rect(cursor, y, glyph.width * scale, glyph.height * scale, bg)

            for row in range(glyph.height):
                for col in range(glyph.width):
                    if glyph.pixel(col, row):
                        canvas.fill_rect(cursor + col * scale, y + row * scale, scale, scale, fg)

            cursor += self._advance(glyph, scale, spacing)

        return cursor - x


def _normalize_row(value: int, digits: int, width: int) -> int:
    """Align a hex row so its bit width is exactly ceil(width / 8) bytes."""
    row_bits = ((width + 7) // 8) * 8
    have_bits = digits * 4
    if have_bits > row_bits:
        return value >> (have_bits - row_bits)
    return value << (row_bits - have_bits)


# =============================================================================
# Initialization Barrier
# =============================================================================

class FontLoader:
    """
    Loads a font once in the background.

    Renderers hold the loader, not the font, and await ready() before
    drawing so nothing draws text until the font is available.
    """

    def __init__(self, path: Union[Path, str, None] = None):
        self.path = Path(path) if path else DEFAULT_FONT_PATH
        self._font: Optional[BdfFont] = None
        self._task: Optional[asyncio.Future] = None

    @classmethod
    def preloaded(cls, font: BdfFont) -> "FontLoader":
        """A loader whose font is already available."""
        loader = cls()
        loader._font = font
        return loader

    @property
    def loaded(self) -> bool:
        return self._font is not None

    def start(self) -> None:
        """Begin loading, if not already started. Requires a running event loop."""
        if self._font is None and self._task is None:
            logger.info(f"Loading font from {self.path}")
            self._task = asyncio.ensure_future(asyncio.to_thread(BdfFont.load, self.path))

    async def ready(self) -> BdfFont:
        """
        Wait for the font.

        Raises:
            FontLoadError: If loading failed. Every waiter sees the same error.
        """
        if self._font is not None:
            return self._font
        self.start()
        # Shielded so a cancelled waiter does not cancel the shared load
        self._font = await asyncio.shield(self._task)
        return self._font
