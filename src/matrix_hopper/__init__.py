"""
Matrix Hopper - LED Matrix Render Engine

A Python toolkit for rendering content onto addressable RGB LED matrix
panels of any size.

Supports:
- Still images scaled to the panel height
- Animated GIFs with proper frame disposal
- Scrolling text in a bitmap (BDF) font
- A live clock with optional weekday and temperature lines
- FPS-throttled frame delivery per panel
- Web interface and CLI tools
"""

__version__ = "1.0.0"
__author__ = "Matrix Hopper Contributors"

from .config import MatrixConfig, Panel, load_config, save_config
from .core import MatrixController, build_controller, setup_logging
from .errors import AssetLoadError, FontLoadError, InvalidRequest, MatrixError, TransportError, UnknownDeviceError
from .fonts import BdfFont, FontLoader
from .gif import GifAnimator, decode_gif
from .graphics import PixelCanvas, ScaleMode, parse_color, render_led_preview, to_png_bytes
from .renderer import DeviceRenderer
from .sessions import Alignment, ClockRequest, GifRequest, ImageRequest, TextRequest, media_request
from .sinks import DeviceSink, MemorySink, PngPreviewSink, create_sink

__all__ = [
    # Config
    "MatrixConfig",
    "Panel",
    "load_config",
    "save_config",
    # Core
    "MatrixController",
    "DeviceRenderer",
    "build_controller",
    "setup_logging",
    # Errors
    "MatrixError",
    "AssetLoadError",
    "FontLoadError",
    "InvalidRequest",
    "TransportError",
    "UnknownDeviceError",
    # Rendering
    "BdfFont",
    "FontLoader",
    "GifAnimator",
    "decode_gif",
    "PixelCanvas",
    "ScaleMode",
    "parse_color",
    "render_led_preview",
    "to_png_bytes",
    # Requests
    "Alignment",
    "ClockRequest",
    "GifRequest",
    "ImageRequest",
    "TextRequest",
    "media_request",
    # Sinks
    "DeviceSink",
    "MemorySink",
    "PngPreviewSink",
    "create_sink",
]
