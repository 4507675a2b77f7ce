"""
Graphics Module - Pixel canvas and image helpers for LED matrices.

Supports:
- RGBA pixel canvas sized to a panel (any columns x rows)
- Color parsing (LED color names, CSS names, hex, tuples)
- Height-fit, zoom and fit scaling for images and GIF frames
- LED-style previews of rendered frames
"""

from enum import Enum
from io import BytesIO
from typing import Optional, Union

from PIL import Image, ImageColor, ImageDraw

from .errors import InvalidRequest

# =============================================================================
# Constants
# =============================================================================

TRANSPARENT = (0, 0, 0, 0)

# LED-specific color names on top of the CSS names Pillow knows
COLORS = {
    'black': (0, 0, 0),
    'white': (255, 255, 255),
    'red': (255, 0, 0),
    'green': (0, 255, 0),
    'blue': (0, 0, 255),
    'yellow': (255, 255, 0),
    'orange': (255, 153, 0),    # #ff9900
    'cyan': (0, 255, 255),
    'magenta': (255, 0, 255),
    'amber': (255, 191, 0),     # Highway sign color
    'purple': (128, 0, 255),
}

Color = Union[str, tuple]
Rect = tuple[int, int, int, int]


class ScaleMode(str, Enum):
    """How a GIF is scaled onto the panel."""
    FIT = "fit"     # stretch to exactly the canvas size
    ZOOM = "zoom"   # cover the canvas, keep aspect ratio, center the overflow


# =============================================================================
# Color Helpers
# =============================================================================

def parse_color(color: Color) -> tuple[int, int, int, int]:
    """Convert a color name, hex string, or tuple to an RGBA tuple."""
    if isinstance(color, (tuple, list)):
        if len(color) in (3, 4) and all(isinstance(c, int) and 0 <= c <= 255 for c in color):
            return tuple(color) + (255,) * (4 - len(color))
        raise InvalidRequest(f"Invalid color tuple: {color!r}")

    if isinstance(color, str):
        name = color.strip().lower()
        if name in COLORS:
            return COLORS[name] + (255,)
        try:
            return ImageColor.getcolor(color.strip(), "RGBA")
        except ValueError:
            raise InvalidRequest(f"Unknown color: {color!r}") from None

    raise InvalidRequest(f"Unsupported color value: {color!r}")


# =============================================================================
# Layout Helpers
# =============================================================================

def centered_offset(outer: int, inner: int) -> int:
    """Offset that centers `inner` within `outer`. Negative when inner overflows."""
    return (outer - inner) // 2


def fit_to_height(src_width: int, src_height: int, height: int) -> tuple[int, int]:
    """Scale a source size to the given height, preserving aspect ratio."""
    aspect_ratio = src_width / src_height
    return max(1, int(height * aspect_ratio + 0.5)), height


def scale_to_canvas(
    src_size: tuple[int, int],
    canvas_size: tuple[int, int],
    mode: ScaleMode = ScaleMode.ZOOM,
) -> Rect:
    """
    Destination rectangle (x, y, width, height) for drawing a source onto a canvas.

    Modes:
    - zoom: Scale to cover the canvas, keep aspect ratio, center the overflow
    - fit: Stretch to exactly the canvas size (may distort)
    """
    src_w, src_h = src_size
    canvas_w, canvas_h = canvas_size

    if ScaleMode(mode) == ScaleMode.FIT:
        return 0, 0, canvas_w, canvas_h

    scale = max(canvas_w / src_w, canvas_h / src_h)
    width = max(1, int(src_w * scale + 0.5))
    height = max(1, int(src_h * scale + 0.5))
    return centered_offset(canvas_w, width), centered_offset(canvas_h, height), width, height


def composite_over(base: Image.Image, overlay: Image.Image, x: int, y: int) -> None:
    """Alpha-blend `overlay` onto `base` at (x, y), clipping to the base bounds."""
    left, top = max(x, 0), max(y, 0)
    right = min(x + overlay.width, base.width)
    bottom = min(y + overlay.height, base.height)
    if right <= left or bottom <= top:
        return

    source = (left - x, top - y, right - x, bottom - y)
    base.alpha_composite(overlay, dest=(left, top), source=source)


# =============================================================================
# Pixel Canvas
# =============================================================================

class PixelCanvas:
    """
    An RGBA pixel grid sized to one panel.

    Every renderer draws through this surface; the scheduler reads the raw
    buffer from it.
    """

    def __init__(self, width: int, height: int):
        if width <= 0 or height <= 0:
            raise ValueError(f"Canvas size must be positive, got {width}x{height}")
        self.width = width
        self.height = height
        self.image = Image.new('RGBA', (width, height), TRANSPARENT)
        self._draw = ImageDraw.Draw(self.image)

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    def clear(self) -> None:
        """Reset every pixel to transparent black."""
        self.image.paste(TRANSPARENT, (0, 0, self.width, self.height))

    def clear_rect(self, x: int, y: int, width: int, height: int) -> None:
        """Reset a rectangle to transparent black."""
        self.fill_rect(x, y, width, height, TRANSPARENT)

    def fill_rect(self, x: int, y: int, width: int, height: int, color: Color) -> None:
        """Fill a rectangle, replacing the pixels underneath (clipped to the canvas)."""
        if width <= 0 or height <= 0:
            return
        self._draw.rectangle([x, y, x + width - 1, y + height - 1], fill=parse_color(color))

    def fill(self, color: Color) -> None:
        """Flood-fill the whole canvas."""
        self.fill_rect(0, 0, self.width, self.height, color)

    def draw_image(
        self,
        source: Image.Image,
        dst_rect: Rect,
        src_rect: Optional[Rect] = None,
        resample: int = Image.Resampling.LANCZOS,
    ) -> None:
        """
        Draw a region of `source` scaled into `dst_rect` (x, y, width, height).

        The destination may lie partly outside the canvas; it is clipped.
        """
        x, y, width, height = dst_rect
        if width <= 0 or height <= 0:
            return

        if src_rect is not None:
            sx, sy, sw, sh = src_rect
            source = source.crop((sx, sy, sx + sw, sy + sh))

        img = source.convert('RGBA')
        if img.size != (width, height):
            img = img.resize((width, height), resample)

        composite_over(self.image, img, x, y)

    def get_buffer(self) -> bytes:
        """Raw RGBA bytes, row-major, width * height * 4 long."""
        return self.image.tobytes()

    def set_buffer(self, data: bytes) -> None:
        """Replace the canvas contents with raw RGBA bytes."""
        expected = self.width * self.height * 4
        if len(data) != expected:
            raise ValueError(f"Buffer must be {expected} bytes, got {len(data)}")
        self.image.frombytes(bytes(data))

    def snapshot(self) -> Image.Image:
        """Copy of the current canvas contents."""
        return self.image.copy()


# =============================================================================
# Previews & PNG Conversion
# =============================================================================

def render_led_preview(image: Image.Image, scale: int = 4, gap: int = 1) -> Image.Image:
    """Upscale a frame into an LED-dot style preview image."""
    img = image.convert('RGB')
    pitch = scale + gap
    preview = Image.new('RGB', (img.width * pitch + gap, img.height * pitch + gap), (10, 10, 15))
    draw = ImageDraw.Draw(preview)

    for y in range(img.height):
        for x in range(img.width):
            color = img.getpixel((x, y))
            dx = gap + x * pitch
            dy = gap + y * pitch
            if color == (0, 0, 0):
                color = (5, 5, 8)
            draw.rectangle([dx, dy, dx + scale - 1, dy + scale - 1], fill=color)

    return preview


def to_png_bytes(img: Image.Image) -> bytes:
    """Convert PIL Image to PNG bytes."""
    buf = BytesIO()
    img.save(buf, format='PNG', optimize=False)
    return buf.getvalue()
