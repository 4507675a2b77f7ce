"""
Device Sinks

A sink is the hand-off point between the renderer and a physical panel:
it reports the panel geometry and accepts finished RGBA buffers.
Discovery and the wire protocol live behind this interface.
"""

import logging
from pathlib import Path
from typing import Optional, Protocol, Union

from PIL import Image

from .errors import TransportError
from .graphics import render_led_preview

logger = logging.getLogger(__name__)


class DeviceSink(Protocol):
    """Contract every panel transport implements."""

    device_id: str

    @property
    def geometry(self) -> tuple[int, int]:
        """(columns, rows) of the panel."""
        ...

    def push_frame(self, rgba: bytes) -> None:
        """Deliver one frame of exactly columns * rows * 4 bytes."""
        ...


def _check_length(rgba: bytes, columns: int, rows: int) -> None:
    expected = columns * rows * 4
    if len(rgba) != expected:
        raise ValueError(f"Frame must be {expected} bytes for {columns}x{rows}, got {len(rgba)}")


class MemorySink:
    """Keeps the latest frame in memory. Used for headless panels and tests."""

    def __init__(self, device_id: str, columns: int, rows: int):
        self.device_id = device_id.upper()
        self.columns = columns
        self.rows = rows
        self.last_frame: Optional[bytes] = None
        self.frame_count = 0

    @property
    def geometry(self) -> tuple[int, int]:
        return self.columns, self.rows

    def push_frame(self, rgba: bytes) -> None:
        _check_length(rgba, self.columns, self.rows)
        self.last_frame = bytes(rgba)
        self.frame_count += 1

    def last_image(self) -> Optional[Image.Image]:
        """The latest frame as an RGBA image."""
        if self.last_frame is None:
            return None
        return Image.frombytes('RGBA', self.geometry, self.last_frame)


class PngPreviewSink(MemorySink):
    """Writes every delivered frame to a PNG file as an LED-style preview."""

    def __init__(self, device_id: str, columns: int, rows: int, path: Union[Path, str], scale: int = 4):
        super().__init__(device_id, columns, rows)
        self.path = Path(path)
        self.scale = scale

    def push_frame(self, rgba: bytes) -> None:
        super().push_frame(rgba)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            render_led_preview(self.last_image(), scale=self.scale).save(self.path, format='PNG')
        except OSError as e:
            raise TransportError(f"[{self.device_id}] Failed to write preview {self.path}: {e}") from e


def create_sink(panel, preview_dir: Union[Path, str] = "previews") -> MemorySink:
    """
    Build the sink configured for a panel.

    Args:
        panel: config.Panel with mac, columns, rows and output.
        preview_dir: Directory for PNG previews.
    """
    if panel.output == "preview":
        filename = panel.mac.replace(":", "") + ".png"
        return PngPreviewSink(panel.mac, panel.columns, panel.rows, Path(preview_dir) / filename)
    if panel.output == "memory":
        return MemorySink(panel.mac, panel.columns, panel.rows)
    raise ValueError(f"Unknown output '{panel.output}' for panel {panel.name}")
