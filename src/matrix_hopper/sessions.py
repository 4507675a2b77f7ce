"""
Render Sessions

Content modes, render requests and the per-renderer session states.
A renderer owns exactly one session at a time; replacing it cancels the
old session's draw loop.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from .errors import InvalidRequest
from .gif import GifAnimator
from .graphics import Color, ScaleMode, parse_color
from .weather import TemperatureReading


class ContentMode(str, Enum):
    IMAGE = "image"
    GIF = "gif"
    TEXT = "text"
    CLOCK = "clock"


class Alignment(str, Enum):
    TOP = "top"
    CENTER = "center"
    BOTTOM = "bottom"


def parse_alignment(value: Union[str, Alignment]) -> Alignment:
    try:
        return Alignment(value)
    except ValueError:
        raise InvalidRequest(f"Unknown alignment: {value!r}") from None


def parse_scale_mode(value: Union[str, ScaleMode]) -> ScaleMode:
    try:
        return ScaleMode(value)
    except ValueError:
        raise InvalidRequest(f"Unknown scale mode: {value!r}") from None


# =============================================================================
# Requests
# =============================================================================

@dataclass
class ImageRequest:
    url: str
    fill_color: Optional[Color] = None
    mode: ContentMode = field(default=ContentMode.IMAGE, init=False)


@dataclass
class GifRequest:
    url: str
    fill_color: Optional[Color] = None
    scale_mode: ScaleMode = ScaleMode.ZOOM
    mode: ContentMode = field(default=ContentMode.GIF, init=False)


@dataclass
class TextRequest:
    text: str
    alignment: Alignment = Alignment.CENTER
    color: Color = "white"
    mode: ContentMode = field(default=ContentMode.TEXT, init=False)


@dataclass
class ClockRequest:
    color: Color = "white"
    show_seconds: bool = False
    show_ampm: bool = True
    show_date: bool = False
    show_weather: bool = False
    mode: ContentMode = field(default=ContentMode.CLOCK, init=False)


RenderRequest = Union[ImageRequest, GifRequest, TextRequest, ClockRequest]


def validate_request(request: RenderRequest) -> None:
    """
    Check every option of a request without drawing anything.

    Raises:
        InvalidRequest: If a color, alignment or scale mode is not understood.
    """
    if request.mode == ContentMode.TEXT:
        parse_alignment(request.alignment)
        parse_color(request.color)
    elif request.mode == ContentMode.CLOCK:
        parse_color(request.color)
    else:
        if request.mode == ContentMode.GIF:
            parse_scale_mode(request.scale_mode)
        if request.fill_color is not None:
            parse_color(request.fill_color)


def media_request(
    url: str,
    is_gif: bool,
    fill_color: Optional[Color] = None,
    scale_mode: Union[str, ScaleMode] = ScaleMode.ZOOM,
) -> RenderRequest:
    """Pick the GIF or still-image request for a media URL."""
    if is_gif:
        return GifRequest(url, fill_color, parse_scale_mode(scale_mode))
    return ImageRequest(url, fill_color)


# =============================================================================
# Text Layout
# =============================================================================

@dataclass
class TextScroll:
    """
    Horizontal position of a text line.

    Text wider than the canvas scrolls in from the right edge one pixel per
    step, and starts over once it has fully left on the left side.
    """
    text_width: int
    canvas_width: int
    offset: int = 0

    @property
    def scrolling(self) -> bool:
        return self.text_width > self.canvas_width

    @property
    def x(self) -> int:
        return self.canvas_width - self.offset if self.scrolling else 0

    def step(self) -> int:
        if self.scrolling:
            self.offset += 1
            if self.offset > self.text_width + self.canvas_width:
                self.offset = 0
        return self.x


def text_y(alignment: Alignment, canvas_height: int, text_height: int) -> int:
    """Top edge of a text line for a vertical alignment."""
    if alignment == Alignment.TOP:
        return 0
    if alignment == Alignment.BOTTOM:
        return canvas_height - text_height
    return (canvas_height - text_height) // 2


# =============================================================================
# Clock Formatting
# =============================================================================

def format_clock(now: datetime, show_seconds: bool = False, show_ampm: bool = True) -> str:
    """12-hour time, e.g. '2:05', '2:05:09' or '2:05 PM'."""
    hour = now.hour % 12 or 12
    text = f"{hour}:{now.minute:02d}"
    if show_seconds:
        text += f":{now.second:02d}"
    if show_ampm:
        text += " AM" if now.hour < 12 else " PM"
    return text


def format_temperature(reading: TemperatureReading) -> str:
    return f"{round(reading.temperature_f)}°F"


def clock_lines(now: datetime, request: ClockRequest, reading: Optional[TemperatureReading] = None) -> list[str]:
    """Clock text lines, top to bottom."""
    lines = []
    if request.show_date:
        lines.append(now.strftime("%a"))
    if request.show_weather and reading is not None:
        lines.append(format_temperature(reading))
    lines.append(format_clock(now, request.show_seconds, request.show_ampm))
    return lines


# =============================================================================
# Sessions
# =============================================================================

@dataclass
class Session:
    """Base for every session; `task` is the draw loop, if the mode has one."""
    mode: Optional[ContentMode] = None
    task: Optional[asyncio.Task] = field(default=None, repr=False)

    def cancel(self) -> None:
        if self.task is not None and not self.task.done():
            self.task.cancel()
        self.task = None


@dataclass
class IdleSession(Session):
    pass


@dataclass
class ImageSession(Session):
    mode: Optional[ContentMode] = ContentMode.IMAGE
    url: str = ""


@dataclass
class TextSession(Session):
    mode: Optional[ContentMode] = ContentMode.TEXT
    text: str = ""
    scroll: Optional[TextScroll] = None
    alignment: Alignment = Alignment.CENTER
    color: Color = "white"


@dataclass
class ClockSession(Session):
    mode: Optional[ContentMode] = ContentMode.CLOCK
    request: ClockRequest = field(default_factory=ClockRequest)


@dataclass
class GifSession(Session):
    mode: Optional[ContentMode] = ContentMode.GIF
    animator: Optional[GifAnimator] = None
    scale_mode: ScaleMode = ScaleMode.ZOOM
    fill_color: Optional[Color] = None
