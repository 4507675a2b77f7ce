"""
Device Renderer

One renderer per connected panel. It owns the panel's canvas and frame
scheduler, and runs at most one render session (image, GIF, text or clock)
at a time. Starting any session resets the panel first; the latest request
always wins.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional, Union

from PIL import Image

from .errors import AssetLoadError
from .fonts import BdfFont, FontLoader
from .gif import GifAnimator, decode_gif
from .graphics import (
    Color,
    PixelCanvas,
    ScaleMode,
    centered_offset,
    fit_to_height,
    parse_color,
    scale_to_canvas,
)
from .scheduler import FrameScheduler
from .sessions import (
    Alignment,
    ClockRequest,
    ClockSession,
    ContentMode,
    GifSession,
    IdleSession,
    ImageSession,
    RenderRequest,
    Session,
    TextScroll,
    TextSession,
    clock_lines,
    parse_alignment,
    parse_scale_mode,
    text_y,
)
from .sinks import DeviceSink
from .sources import fetch_bytes, open_image
from .weather import WeatherSource

logger = logging.getLogger(__name__)

TEXT_INTERVAL = 0.075
CLOCK_INTERVAL = 1.0
CLOCK_LINE_GAP = 2


async def ticks(interval: float):
    """
    Yield every `interval` seconds on a fixed schedule.

    Deadlines are measured from the first call, so time spent drawing between
    ticks does not push later ticks back. Ticks that were missed entirely are
    skipped.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time()
    while True:
        deadline += interval
        now = loop.time()
        if interval > 0 and deadline < now:
            deadline += ((now - deadline) // interval + 1) * interval
        await asyncio.sleep(deadline - now)
        yield


class DeviceRenderer:
    """
    Renders content modes onto one panel.

    The font loader and weather source are shared between renderers; the
    canvas, scheduler and session belong to this renderer alone.
    """

    def __init__(
        self,
        sink: DeviceSink,
        font_loader: FontLoader,
        weather: Optional[WeatherSource] = None,
        max_fps: float = 15,
        name: Optional[str] = None,
        text_interval: float = TEXT_INTERVAL,
        clock_interval: float = CLOCK_INTERVAL,
        text_scale: int = 1,
        text_spacing: int = 1,
        fetch_timeout: float = 30.0,
        fetcher: Callable[[str, float], bytes] = fetch_bytes,
        now: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the renderer.

        Args:
            sink: Panel transport; its geometry fixes the canvas size.
            font_loader: Shared font handle, awaited before drawing text.
            weather: Optional temperature source for the clock.
            max_fps: Frame delivery ceiling (0 = unthrottled).
            name: Friendly name for logging.
            text_interval: Seconds between scrolling text ticks.
            clock_interval: Seconds between clock ticks.
            text_scale: Font pixel size for text and clock.
            text_spacing: Extra advance after each glyph, in font pixels.
            fetch_timeout: Timeout for image and GIF downloads.
            fetcher: Blocking function (url, timeout) -> bytes.
            now: Clock source for the clock mode.
        """
        self.sink = sink
        self.device_id = sink.device_id
        self.name = name or sink.device_id
        self.font_loader = font_loader
        self.weather = weather
        self.text_interval = text_interval
        self.clock_interval = clock_interval
        self.text_scale = text_scale
        self.text_spacing = text_spacing
        self.fetch_timeout = fetch_timeout
        self.fetcher = fetcher
        self.now = now

        columns, rows = sink.geometry
        self.canvas = PixelCanvas(columns, rows)
        self.scheduler = FrameScheduler(sink, max_fps)
        self.session: Session = IdleSession()
        self._generation = 0

    @property
    def mode(self) -> Optional[ContentMode]:
        return self.session.mode

    # -------------------------------------------------------------------------
    # Session control
    # -------------------------------------------------------------------------

    def reset(self) -> None:
        """Stop the active session and show a blank frame."""
        self._generation += 1
        self._replace_session(IdleSession())

    def close(self) -> None:
        """Stop all drawing without pushing anything further."""
        self._generation += 1
        self.session.cancel()
        self.scheduler.cancel()
        self.session = IdleSession()

    def _replace_session(self, session: Session) -> None:
        self.session.cancel()
        self.scheduler.cancel()
        self.canvas.clear()
        self.scheduler.push(self.canvas)
        self.session = session

    def _start(self, session: Session) -> int:
        """Reset into a new session; returns its generation."""
        self._generation += 1
        self._replace_session(session)
        logger.info(f"[{self.name}] Starting {session.mode.value} session")
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _run(self, session: Session, draw_loop) -> None:
        session.task = asyncio.create_task(draw_loop)
        session.task.add_done_callback(self._on_loop_done)

    def _on_loop_done(self, task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"[{self.name}] Draw loop crashed", exc_info=task.exception())

    def _abort(self, generation: int, error: Exception) -> None:
        logger.error(f"[{self.name}] Render failed: {error}")
        if self._is_current(generation):
            self.session = IdleSession()

    async def _await_font(self, generation: int) -> BdfFont:
        try:
            return await self.font_loader.ready()
        except AssetLoadError as e:
            self._abort(generation, e)
            raise

    async def render(self, request: RenderRequest) -> None:
        """Start the content mode the request selects."""
        handlers = {
            ContentMode.IMAGE: lambda r: self.render_image(r.url, r.fill_color),
            ContentMode.GIF: lambda r: self.render_gif(r.url, r.fill_color, r.scale_mode),
            ContentMode.TEXT: lambda r: self.render_text(r.text, r.alignment, r.color),
            ContentMode.CLOCK: self.render_clock,
        }
        await handlers[request.mode](request)

    # -------------------------------------------------------------------------
    # Image
    # -------------------------------------------------------------------------

    async def render_image(self, url: str, fill_color: Optional[Color] = None) -> None:
        """
        Show a still image scaled to the panel height and centered horizontally.

        Raises:
            InvalidRequest: Bad fill color (nothing is changed).
            AssetLoadError: Fetch or decode failed (the panel stays blank).
        """
        if fill_color is not None:
            parse_color(fill_color)

        generation = self._start(ImageSession(url=url))
        try:
            data = await asyncio.to_thread(self.fetcher, url, self.fetch_timeout)
            image = await asyncio.to_thread(open_image, data)
        except Exception as e:
            self._abort(generation, e)
            raise

        if not self._is_current(generation):
            logger.debug(f"[{self.name}] Dropping superseded image {url}")
            return

        self.draw_still(image, fill_color)
        self.scheduler.push(self.canvas)

    def draw_still(self, image: Image.Image, fill_color: Optional[Color] = None) -> tuple[int, int, int, int]:
        """Draw a height-fitted, horizontally centered image. Returns the destination rect."""
        self.canvas.clear()
        if fill_color is not None:
            self.canvas.fill(fill_color)

        width, height = fit_to_height(image.width, image.height, self.canvas.height)
        rect = (centered_offset(self.canvas.width, width), 0, width, height)
        self.canvas.draw_image(image, rect)
        return rect

    # -------------------------------------------------------------------------
    # GIF
    # -------------------------------------------------------------------------

    async def render_gif(
        self,
        url: str,
        fill_color: Optional[Color] = None,
        scale_mode: Union[str, ScaleMode] = ScaleMode.ZOOM,
    ) -> None:
        """
        Loop an animated GIF until another session replaces it.

        Raises:
            InvalidRequest: Bad fill color or scale mode (nothing is changed).
            AssetLoadError: Fetch or decode failed (the panel stays blank).
        """
        scale_mode = parse_scale_mode(scale_mode)
        if fill_color is not None:
            parse_color(fill_color)

        session = GifSession(scale_mode=scale_mode, fill_color=fill_color)
        generation = self._start(session)
        try:
            data = await asyncio.to_thread(self.fetcher, url, self.fetch_timeout)
            gif = await asyncio.to_thread(decode_gif, data)
        except Exception as e:
            self._abort(generation, e)
            raise

        if not self._is_current(generation):
            logger.debug(f"[{self.name}] Dropping superseded GIF {url}")
            return

        logger.info(f"[{self.name}] Playing GIF {gif.width}x{gif.height}, {len(gif.frames)} frame(s)")
        session.animator = GifAnimator(gif, fill_color)
        delay_ms = self._draw_gif_frame(session)
        self._run(session, self._gif_loop(session, delay_ms))

    def _draw_gif_frame(self, session: GifSession) -> int:
        composited, delay_ms = session.animator.advance()

        self.canvas.clear()
        if session.fill_color is not None:
            self.canvas.fill(session.fill_color)

        square = self.canvas.width == self.canvas.height
        mode = ScaleMode.ZOOM if square else session.scale_mode
        rect = scale_to_canvas(composited.size, self.canvas.size, mode)
        self.canvas.draw_image(composited, rect, resample=Image.Resampling.NEAREST)

        self.scheduler.push(self.canvas)
        return delay_ms

    async def _gif_loop(self, session: GifSession, delay_ms: int) -> None:
        while True:
            await asyncio.sleep(delay_ms / 1000)
            delay_ms = self._draw_gif_frame(session)

    # -------------------------------------------------------------------------
    # Text
    # -------------------------------------------------------------------------

    async def render_text(
        self,
        text: str,
        alignment: Union[str, Alignment] = Alignment.CENTER,
        color: Color = "white",
    ) -> None:
        """
        Show a line of text, scrolling right-to-left if it is wider than the panel.

        Raises:
            InvalidRequest: Bad alignment or color (nothing is changed).
            FontLoadError: The font could not be loaded.
        """
        alignment = parse_alignment(alignment)
        parse_color(color)

        session = TextSession(text=text, alignment=alignment, color=color)
        generation = self._start(session)
        font = await self._await_font(generation)
        if not self._is_current(generation):
            return

        text_width = font.measure_text(text, self.text_scale, self.text_spacing)
        session.scroll = TextScroll(text_width, self.canvas.width)
        if session.scroll.scrolling:
            logger.debug(f"[{self.name}] Text is {text_width}px wide, scrolling")

        self._draw_text_frame(font, session)
        self._run(session, self._text_loop(font, session))

    def _draw_text_frame(self, font: BdfFont, session: TextSession) -> None:
        y = text_y(session.alignment, self.canvas.height, font.line_height * self.text_scale)
        self.canvas.clear()
        font.draw_text(
            self.canvas, session.text, session.scroll.x, y,
            scale=self.text_scale, color=session.color, spacing=self.text_spacing,
        )
        self.scheduler.push(self.canvas)

    async def _text_loop(self, font: BdfFont, session: TextSession) -> None:
        async for _ in ticks(self.text_interval):
            session.scroll.step()
            self._draw_text_frame(font, session)

    # -------------------------------------------------------------------------
    # Clock
    # -------------------------------------------------------------------------

    async def render_clock(self, request: Optional[ClockRequest] = None) -> None:
        """
        Show a ticking clock, optionally with weekday and temperature lines.

        The first frame is drawn before this returns.

        Raises:
            InvalidRequest: Bad color (nothing is changed).
            FontLoadError: The font could not be loaded.
        """
        request = request or ClockRequest()
        parse_color(request.color)

        session = ClockSession(request=request)
        generation = self._start(session)
        font = await self._await_font(generation)
        if not self._is_current(generation):
            return

        await self._draw_clock_frame(font, session, generation)
        if not self._is_current(generation):
            return
        self._run(session, self._clock_loop(font, session, generation))

    async def _draw_clock_frame(self, font: BdfFont, session: ClockSession, generation: int) -> None:
        request = session.request
        now = self.now()

        reading = None
        if request.show_weather and self.weather is not None:
            reading = await self.weather.temperature_at(now)
            if not self._is_current(generation):
                return

        line_height = font.line_height * self.text_scale
        y = self.canvas.height - line_height

        self.canvas.clear()
        # Bottom line first, stacking upwards
        for line in reversed(clock_lines(now, request, reading)):
            width = font.measure_text(line, self.text_scale, self.text_spacing)
            font.draw_text(
                self.canvas, line, centered_offset(self.canvas.width, width), y,
                scale=self.text_scale, color=request.color, spacing=self.text_spacing,
            )
            y -= line_height + CLOCK_LINE_GAP
        self.scheduler.push(self.canvas)

    async def _clock_loop(self, font: BdfFont, session: ClockSession, generation: int) -> None:
        async for _ in ticks(self.clock_interval):
            await self._draw_clock_frame(font, session, generation)
