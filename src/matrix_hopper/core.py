"""
Core Controller Module

Keeps one DeviceRenderer per announced panel and fans render requests out
to a selection of them. The font loader and weather source are created once
and shared by every renderer.
"""

import logging
from typing import Optional, Union

from .config import MatrixConfig
from .errors import InvalidRequest, MatrixError, UnknownDeviceError
from .fonts import FontLoader
from .renderer import DeviceRenderer
from .sessions import RenderRequest, validate_request
from .sinks import DeviceSink, create_sink
from .weather import OpenMeteoWeather, WeatherSource

logger = logging.getLogger(__name__)

Selection = Union[str, list[str]]


class MatrixController:
    """
    Registry of device renderers.

    Devices are added when they announce themselves and removed when they
    go away; presence tracking itself belongs to the transport.
    """

    def __init__(
        self,
        font_loader: FontLoader,
        weather: Optional[WeatherSource] = None,
        max_fps: float = 15,
        **renderer_options,
    ):
        """
        Initialize the controller.

        Args:
            font_loader: Shared font handle for text and clock rendering.
            weather: Optional temperature source for the clock.
            max_fps: Frame rate ceiling for every renderer.
            **renderer_options: Passed through to each DeviceRenderer.
        """
        self.font_loader = font_loader
        self.weather = weather
        self.max_fps = max_fps
        self.renderer_options = renderer_options
        self.renderers: dict[str, DeviceRenderer] = {}

    # -------------------------------------------------------------------------
    # Device registry
    # -------------------------------------------------------------------------

    def add_device(self, sink: DeviceSink, name: Optional[str] = None) -> DeviceRenderer:
        """Create the renderer for a newly announced device."""
        device_id = sink.device_id.upper()
        if device_id in self.renderers:
            logger.warning(f"[{device_id}] Device announced twice, replacing renderer")
            self.remove_device(device_id)

        renderer = DeviceRenderer(
            sink,
            self.font_loader,
            weather=self.weather,
            max_fps=self.max_fps,
            name=name,
            **self.renderer_options,
        )
        self.renderers[device_id] = renderer
        columns, rows = sink.geometry
        logger.info(f"[{renderer.name}] Device added ({columns}x{rows})")
        return renderer

    def remove_device(self, device_id: str) -> bool:
        """Stop and forget a device's renderer."""
        renderer = self.renderers.pop(device_id.upper(), None)
        if renderer is None:
            return False
        renderer.close()
        logger.info(f"[{renderer.name}] Device removed")
        return True

    def get_renderer(self, device_id: str) -> DeviceRenderer:
        renderer = self.renderers.get(device_id.upper())
        if renderer is None:
            raise UnknownDeviceError(f"Unknown device: {device_id}")
        return renderer

    def devices(self) -> list[dict]:
        """Summary of every registered device."""
        result = []
        for device_id, renderer in self.renderers.items():
            columns, rows = renderer.sink.geometry
            mode = renderer.mode
            result.append({
                "id": device_id,
                "name": renderer.name,
                "columns": columns,
                "rows": rows,
                "mode": mode.value if mode else None,
                "frames_sent": renderer.scheduler.frames_sent,
            })
        return result

    def resolve(self, selection: Selection) -> list[DeviceRenderer]:
        """
        Map a selection to renderers.

        Args:
            selection: "all", a comma-separated id string, or a list of ids.

        Raises:
            InvalidRequest: If the selection is empty or names an unknown device.
        """
        if isinstance(selection, str):
            if selection.strip().lower() == "all":
                renderers = list(self.renderers.values())
                if not renderers:
                    raise InvalidRequest("No devices connected")
                return renderers
            selection = [s.strip() for s in selection.split(",") if s.strip()]

        if not selection:
            raise InvalidRequest("No devices selected")

        # Validate all before touching any of them
        return [self.get_renderer(device_id) for device_id in selection]

    # -------------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------------

    async def render(self, selection: Selection, request: RenderRequest) -> list[tuple[str, bool, str]]:
        """
        Start a render request on every selected device.

        Returns:
            List of (device_id, success, message) tuples.

        Raises:
            InvalidRequest: If the selection or the request options are invalid
                (nothing is changed).
        """
        validate_request(request)
        renderers = self.resolve(selection)
        results = []

        for renderer in renderers:
            try:
                await renderer.render(request)
                results.append((renderer.device_id, True, "OK"))
            except MatrixError as e:
                results.append((renderer.device_id, False, str(e)))

        return results

    def clear(self, selection: Selection) -> list[str]:
        """Reset the selected devices to a blank frame."""
        renderers = self.resolve(selection)
        for renderer in renderers:
            renderer.reset()
        return [r.device_id for r in renderers]

    def shutdown(self) -> None:
        """Stop every renderer."""
        for renderer in self.renderers.values():
            renderer.close()
        self.renderers.clear()
        logger.info("Controller shut down")


def build_controller(config: MatrixConfig, start_font: bool = True) -> MatrixController:
    """
    Build a controller with one device per enabled panel in the config.

    Args:
        config: Loaded MatrixConfig.
        start_font: Begin loading the font right away (needs a running loop).
    """
    font_loader = FontLoader(config.font_path)
    if start_font:
        font_loader.start()

    weather = None
    if config.weather_enabled:
        weather = OpenMeteoWeather(
            latitude=config.weather_latitude,
            longitude=config.weather_longitude,
            timezone=config.weather_timezone,
        )

    controller = MatrixController(
        font_loader,
        weather=weather,
        max_fps=config.max_fps,
        text_interval=config.text_interval_ms / 1000,
        clock_interval=config.clock_interval_ms / 1000,
        fetch_timeout=config.fetch_timeout,
    )

    for panel in config.get_enabled_panels():
        controller.add_device(create_sink(panel, config.preview_dir), panel.name)

    return controller


def setup_logging(level: Union[int, str] = logging.INFO) -> None:
    """Configure logging for matrix operations."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )
