"""
GIF Module - Frame decoding and disposal-aware compositing.

The GIF block structure (color tables, graphic control extensions, image
descriptors) is walked here so every frame keeps its own region, disposal
method, transparency and delay. Pixel data is LZW-decoded by Pillow one frame
at a time, which gives raw palette indices without Pillow's own compositing.
"""

import logging
import struct
from dataclasses import dataclass, field
from enum import IntEnum
from io import BytesIO
from typing import Optional

from PIL import Image

from .errors import AssetLoadError
from .graphics import TRANSPARENT, Color, composite_over, parse_color

logger = logging.getLogger(__name__)

# Floor for frame delays so zero-delay GIFs cannot spin the draw loop
MIN_FRAME_DELAY_MS = 20

_EXTENSION = 0x21
_IMAGE = 0x2C
_TRAILER = 0x3B
_GRAPHIC_CONTROL = 0xF9


class Disposal(IntEnum):
    """What happens to a frame's region before the next frame is drawn."""
    NONE = 0
    DO_NOT_DISPOSE = 1
    RESTORE_TO_BACKGROUND = 2
    RESTORE_TO_PREVIOUS = 3

    @classmethod
    def from_code(cls, code: int) -> "Disposal":
        try:
            return cls(code)
        except ValueError:
            return cls.NONE


@dataclass(frozen=True)
class FrameRegion:
    left: int
    top: int
    width: int
    height: int

    @property
    def box(self) -> tuple[int, int, int, int]:
        return self.left, self.top, self.left + self.width, self.top + self.height


@dataclass
class GifFrame:
    """One decoded GIF image with its control metadata."""
    region: FrameRegion
    disposal: Disposal
    transparent_index: Optional[int]
    delay_ms: int
    pixel_indices: bytes
    palette: bytes
    _patch: Optional[Image.Image] = field(default=None, repr=False, compare=False)

    def rgba_patch(self) -> Image.Image:
        """The frame as an RGBA image; the transparent index gets alpha 0."""
        if self._patch is None:
            size = (self.region.width, self.region.height)
            indexed = Image.frombytes('P', size, self.pixel_indices)
            indexed.putpalette(self.palette.ljust(768, b'\x00')[:768])
            patch = indexed.convert('RGBA')

            if self.transparent_index is not None:
                t = self.transparent_index
                alpha = Image.frombytes('L', size, self.pixel_indices).point(lambda i: 0 if i == t else 255)
                patch.putalpha(alpha)

            self._patch = patch
        return self._patch


@dataclass
class GifImage:
    width: int
    height: int
    frames: list[GifFrame]
    background_index: int = 0


# =============================================================================
# Decoding
# =============================================================================

class _Reader:
    def __init__(self, data: bytes):
        self.data = data
        self.pos = 0

    def read(self, size: int) -> bytes:
        chunk = self.data[self.pos:self.pos + size]
        if len(chunk) != size:
            raise EOFError("Unexpected end of GIF data")
        self.pos += size
        return chunk

    def byte(self) -> int:
        return self.read(1)[0]

    def sub_blocks(self) -> bytes:
        """Read data sub-blocks up to the zero-length terminator, returned raw."""
        start = self.pos
        while True:
            size = self.byte()
            if size == 0:
                return self.data[start:self.pos]
            self.read(size)


def _table_size(packed: int) -> int:
    return 3 * (2 ** ((packed & 0x07) + 1))


def _check_size(width: int, height: int) -> None:
    """Refuse surfaces larger than Pillow's decompression bomb limit."""
    limit = Image.MAX_IMAGE_PIXELS
    if limit and width * height > limit:
        raise AssetLoadError(f"GIF size {width}x{height} exceeds the {limit} pixel limit")


def _decode_indices(screen: bytes, global_table: bytes, descriptor: bytes, local_table: bytes, lzw: bytes) -> bytes:
    """LZW-decode one frame by handing Pillow a single-image GIF of just that frame."""
    left, top, width, height, packed = struct.unpack('<HHHHB', descriptor)
    header = b'GIF89a' + struct.pack('<HH', width, height) + screen[4:7] + global_table
    image = b',' + struct.pack('<HHHHB', 0, 0, width, height, packed) + local_table + lzw
    try:
        with Image.open(BytesIO(header + image + b';')) as im:
            im.load()
            if im.mode not in ('P', 'L'):
                raise AssetLoadError(f"Unexpected GIF frame mode {im.mode}")
            return im.tobytes()
    except (Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
        raise AssetLoadError(f"Failed to decode GIF frame: {e}") from e


def decode_gif(data: bytes) -> GifImage:
    """
    Decode every frame of a GIF up front.

    Args:
        data: Raw GIF file contents.

    Returns:
        GifImage with frames in display order.

    Raises:
        AssetLoadError: If the data is not a GIF or holds no complete frame.
    """
    if data[:6] not in (b'GIF87a', b'GIF89a'):
        raise AssetLoadError("Not a GIF file")

    reader = _Reader(data)
    frames: list[GifFrame] = []

    try:
        reader.read(6)
        screen = reader.read(7)
        width, height, packed, background_index, _aspect = struct.unpack('<HHBBB', screen)
        _check_size(width, height)
        global_table = reader.read(_table_size(packed)) if packed & 0x80 else b''

        # Graphic control state applies to the next image only
        disposal, transparent_index, delay_ms = Disposal.NONE, None, 0

        while True:
            block = reader.byte()

            if block == _TRAILER:
                break

            elif block == _EXTENSION:
                label = reader.byte()
                body = reader.sub_blocks()
                if label == _GRAPHIC_CONTROL and len(body) >= 5:
                    flags = body[1]
                    disposal = Disposal.from_code((flags >> 2) & 0x07)
                    delay_ms = struct.unpack('<H', body[2:4])[0] * 10
                    transparent_index = body[4] if flags & 0x01 else None

            elif block == _IMAGE:
                descriptor = reader.read(9)
                left, top, w, h, image_packed = struct.unpack('<HHHHB', descriptor)
                _check_size(w, h)
                local_table = reader.read(_table_size(image_packed)) if image_packed & 0x80 else b''
                lzw = reader.read(1) + reader.sub_blocks()

                if w == 0 or h == 0:
                    logger.debug(f"Skipping empty GIF frame at {left},{top}")
                else:
                    palette = local_table or global_table or bytes(i for i in range(256) for _ in range(3))
                    frames.append(GifFrame(
                        region=FrameRegion(left, top, w, h),
                        disposal=disposal,
                        transparent_index=transparent_index,
                        delay_ms=delay_ms,
                        pixel_indices=_decode_indices(screen, global_table, descriptor, local_table, lzw),
                        palette=palette,
                    ))
                disposal, transparent_index, delay_ms = Disposal.NONE, None, 0

            else:
                logger.warning(f"Unknown GIF block 0x{block:02x}, stopping after {len(frames)} frame(s)")
                break

    except EOFError:
        if not frames:
            raise AssetLoadError("Truncated GIF: no complete frame") from None
        logger.warning(f"Truncated GIF, keeping {len(frames)} complete frame(s)")

    if not frames:
        raise AssetLoadError("GIF contains no frames")

    # Some encoders write a 0x0 logical screen
    if width == 0 or height == 0:
        width = max(f.region.left + f.region.width for f in frames)
        height = max(f.region.top + f.region.height for f in frames)
        _check_size(width, height)

    for frame in frames:
        frame.rgba_patch()

    logger.debug(f"Decoded GIF {width}x{height} with {len(frames)} frame(s)")
    return GifImage(width, height, frames, background_index)


# =============================================================================
# Animation State
# =============================================================================

class GifAnimator:
    """
    Accumulated animation state for one GIF playback.

    Holds the composited surface, the backup surface used by
    restore-to-previous frames, and the previous frame's region and disposal.
    """

    def __init__(self, gif: GifImage, fill_color: Optional[Color] = None):
        self.gif = gif
        self.fill = parse_color(fill_color) if fill_color is not None else TRANSPARENT
        self.frame_index = 0
        self.composited = Image.new('RGBA', (gif.width, gif.height), self.fill)
        self.backup: Optional[Image.Image] = None
        self.previous_region: Optional[FrameRegion] = None
        self.previous_disposal: Optional[Disposal] = None

    @property
    def frame_count(self) -> int:
        return len(self.gif.frames)

    def _dispose_previous(self) -> None:
        if self.previous_disposal == Disposal.RESTORE_TO_BACKGROUND:
            self.composited.paste(self.fill, self.previous_region.box)
        elif self.previous_disposal == Disposal.RESTORE_TO_PREVIOUS and self.backup is not None:
            self.composited = self.backup.copy()

    def advance(self) -> tuple[Image.Image, int]:
        """
        Draw the current frame onto the composited surface and move to the next.

        Returns:
            (composited surface, delay in ms before the next advance)
        """
        frame = self.gif.frames[self.frame_index]

        if self.previous_disposal is not None:
            self._dispose_previous()

        if frame.disposal == Disposal.RESTORE_TO_PREVIOUS:
            self.backup = self.composited.copy()

        patch = frame.rgba_patch()
        if frame.transparent_index is None:
            self.composited.paste(patch, (frame.region.left, frame.region.top))
        else:
            composite_over(self.composited, patch, frame.region.left, frame.region.top)

        self.previous_region = frame.region
        self.previous_disposal = frame.disposal
        self.frame_index = (self.frame_index + 1) % self.frame_count

        next_frame = self.gif.frames[self.frame_index]
        return self.composited, max(next_frame.delay_ms, MIN_FRAME_DELAY_MS)
