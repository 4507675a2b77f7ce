#!/usr/bin/env python3
"""
Test Asset Sources

Test local fetching, GIF detection and image decoding without network.
"""

import sys
from pathlib import Path

import pytest
from PIL import Image

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from matrix_hopper.errors import AssetLoadError
from matrix_hopper.graphics import to_png_bytes
from matrix_hopper.sources import fetch_bytes, is_gif, open_image


def test_fetch_local(tmp_path):
    """Test paths and file:// URLs."""
    print("\n[1] Testing local fetch...")

    path = tmp_path / "data.bin"
    path.write_bytes(b"hello")
    assert fetch_bytes(str(path)) == b"hello"
    assert fetch_bytes(path.as_uri()) == b"hello"

    with pytest.raises(AssetLoadError):
        fetch_bytes(str(tmp_path / "missing.bin"))
    with pytest.raises(AssetLoadError):
        fetch_bytes("")
    print("  ✓ Local files read, missing ones raise AssetLoadError")


def test_is_gif():
    """Test GIF detection by extension."""
    assert is_gif("http://example.com/cat.GIF")
    assert is_gif("https://example.com/a/b.gif?size=large")
    assert not is_gif("/tmp/cat.png")
    assert not is_gif("cat.jpeg")


def test_open_image():
    """Test decoding to RGBA."""
    print("\n[2] Testing image decode...")

    img = open_image(to_png_bytes(Image.new('RGB', (3, 2), (1, 2, 3))))
    assert img.mode == 'RGBA'
    assert img.size == (3, 2)
    assert img.getpixel((0, 0)) == (1, 2, 3, 255)

    with pytest.raises(AssetLoadError):
        open_image(b"definitely not an image")
    print("  ✓ Undecodable data raises AssetLoadError")


def test_open_image_too_large(monkeypatch):
    """Test images past the pixel limit raise AssetLoadError."""
    print("\n[3] Testing oversized image...")

    data = to_png_bytes(Image.new('RGB', (20, 20)))
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)
    with pytest.raises(AssetLoadError):
        open_image(data)
    print("  ✓ Decompression bombs become AssetLoadError")


if __name__ == "__main__":
    import tempfile
    with tempfile.TemporaryDirectory() as tmp:
        test_fetch_local(Path(tmp))
    test_is_gif()
    test_open_image()
    test_open_image_too_large(pytest.MonkeyPatch())
    print("\n✓ All source tests passed!")
