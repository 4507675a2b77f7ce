"""
Frame Scheduler

Throttles canvas snapshots to a maximum frame rate before handing them to a
device sink. Frames pushed faster than that are coalesced: only the latest
buffer of each interval is delivered.
"""

import asyncio
import logging
import time
from typing import Optional

from .errors import TransportError
from .graphics import PixelCanvas
from .sinks import DeviceSink

logger = logging.getLogger(__name__)


class FrameScheduler:
    """Per-renderer frame delivery, bounded to max_fps."""

    def __init__(self, sink: DeviceSink, max_fps: float = 15):
        self.sink = sink
        self.max_fps = max_fps
        self.frames_sent = 0
        self.errors = 0
        self._last_sent: Optional[float] = None
        self._pending: Optional[bytes] = None
        self._flush_handle: Optional[asyncio.TimerHandle] = None

    @property
    def interval(self) -> float:
        """Minimum seconds between deliveries; 0 means unthrottled."""
        return 1.0 / self.max_fps if self.max_fps > 0 else 0.0

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def push(self, canvas: PixelCanvas) -> None:
        """Snapshot the canvas and deliver it now or at the end of the current interval."""
        buffer = canvas.get_buffer()
        now = time.monotonic()

        if self._last_sent is None or now - self._last_sent >= self.interval:
            self._cancel_flush()
            self._pending = None
            self._deliver(buffer, now)
            return

        self._pending = buffer
        if self._flush_handle is None:
            delay = self.interval - (now - self._last_sent)
            self._flush_handle = asyncio.get_running_loop().call_later(delay, self._flush)

    def cancel(self) -> None:
        """Drop any pending frame and its timer."""
        self._cancel_flush()
        self._pending = None

    def _cancel_flush(self) -> None:
        if self._flush_handle is not None:
            self._flush_handle.cancel()
            self._flush_handle = None

    def _flush(self) -> None:
        self._flush_handle = None
        if self._pending is not None:
            buffer, self._pending = self._pending, None
            self._deliver(buffer, time.monotonic())

    def _deliver(self, buffer: bytes, now: float) -> None:
        self._last_sent = now
        try:
            self.sink.push_frame(buffer)
        except TransportError as e:
            self.errors += 1
            logger.error(f"[{self.sink.device_id}] Frame delivery failed: {e}")
            return
        self.frames_sent += 1
