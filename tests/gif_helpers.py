"""
Helpers for building small GIF files in tests.

Frames are LZW-encoded the simplest valid way: a clear code before every
literal, so the code width never grows past 3 bits (palette of 4 colors).
"""

import struct

# black, red, green, blue
PALETTE = [(0, 0, 0), (255, 0, 0), (0, 255, 0), (0, 0, 255)]


def _lzw_encode(indices: list[int]) -> bytes:
    clear, end = 4, 5
    codes = []
    for index in indices:
        codes += [clear, index]
    codes.append(end)

    bits = 0
    bit_count = 0
    out = bytearray()
    for code in codes:
        bits |= code << bit_count
        bit_count += 3
        while bit_count >= 8:
            out.append(bits & 0xFF)
            bits >>= 8
            bit_count -= 8
    if bit_count:
        out.append(bits & 0xFF)

    data = bytearray([2])  # minimum code size
    for i in range(0, len(out), 255):
        chunk = out[i:i + 255]
        data.append(len(chunk))
        data += chunk
    data.append(0)
    return bytes(data)


def frame(pixels, left=0, top=0, width=None, height=None, disposal=0, delay_cs=10, transparent=None) -> dict:
    """Describe one frame. `pixels` are palette indices, row-major."""
    return {
        "pixels": list(pixels),
        "left": left,
        "top": top,
        "width": width,
        "height": height,
        "disposal": disposal,
        "delay_cs": delay_cs,
        "transparent": transparent,
    }


def build_gif(width: int, height: int, frames: list[dict], palette=PALETTE) -> bytes:
    """Encode a GIF89a with a 4-color global palette."""
    table = b"".join(bytes(color) for color in palette)
    out = bytearray(b"GIF89a")
    out += struct.pack("<HHBBB", width, height, 0x80 | 0x01, 0, 0)
    out += table

    for f in frames:
        w = f["width"] if f["width"] is not None else width
        h = f["height"] if f["height"] is not None else height
        assert len(f["pixels"]) == w * h

        flags = (f["disposal"] & 0x07) << 2
        transparent = f["transparent"]
        if transparent is not None:
            flags |= 0x01
        out += bytes([0x21, 0xF9, 4, flags]) + struct.pack("<H", f["delay_cs"]) + bytes([transparent or 0, 0])

        out += b"," + struct.pack("<HHHHB", f["left"], f["top"], w, h, 0)
        out += _lzw_encode(f["pixels"])

    out += b";"
    return bytes(out)
