"""
Matrix Configuration Management

Handles loading, saving, and managing panel and renderer settings.
Configurations are stored in JSON format for easy editing.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Default paths
DEFAULT_CONFIG_FILE = Path("matrix.json")
DEFAULT_PREVIEW_DIR = "previews"

# Panel outputs understood by sinks.create_sink
OUTPUTS = ("preview", "memory")


@dataclass
class Panel:
    """Information about a single LED matrix panel."""
    mac: str
    name: str
    columns: int = 32
    rows: int = 32
    enabled: bool = True
    order: int = 99
    output: str = "preview"
    notes: str = ""

    def __post_init__(self):
        # Normalize MAC address to uppercase
        self.mac = self.mac.upper()


@dataclass
class MatrixConfig:
    """Complete matrix configuration."""
    panels: dict[str, Panel] = field(default_factory=dict)

    # Render settings
    max_fps: float = 15
    font_path: Optional[str] = None
    text_interval_ms: int = 75
    clock_interval_ms: int = 1000
    fetch_timeout: float = 30.0
    preview_dir: str = DEFAULT_PREVIEW_DIR

    # Weather settings
    weather_enabled: bool = True
    weather_latitude: float = 36.3026
    weather_longitude: float = -115.2946
    weather_timezone: str = "America/Los_Angeles"

    # Server settings
    server_host: str = "0.0.0.0"
    server_port: int = 8000
    log_level: str = "INFO"

    def get_panel_by_name(self, name: str) -> Optional[Panel]:
        """Find a panel by its name."""
        for panel in self.panels.values():
            if panel.name.lower() == name.lower():
                return panel
        return None

    def get_panel_by_mac(self, mac: str) -> Optional[Panel]:
        """Find a panel by its MAC address."""
        return self.panels.get(mac.upper())

    def get_enabled_panels(self) -> list[Panel]:
        """Get all enabled panels, sorted by order."""
        enabled = [p for p in self.panels.values() if p.enabled]
        return sorted(enabled, key=lambda p: p.order)

    def add_panel(self, mac: str, name: str, columns: int = 32, rows: int = 32, enabled: bool = True) -> Panel:
        """Add a new panel to the configuration."""
        if columns <= 0 or rows <= 0:
            raise ValueError(f"Invalid panel geometry {columns}x{rows}")
        panel = Panel(mac=mac, name=name, columns=columns, rows=rows, enabled=enabled)
        self.panels[panel.mac] = panel
        return panel

    def remove_panel(self, mac: str) -> bool:
        """Remove a panel from the configuration."""
        mac = mac.upper()
        if mac in self.panels:
            del self.panels[mac]
            return True
        return False


_SETTINGS = (
    "max_fps",
    "font_path",
    "text_interval_ms",
    "clock_interval_ms",
    "fetch_timeout",
    "preview_dir",
    "server_host",
    "server_port",
    "log_level",
)

_WEATHER = {
    "enabled": "weather_enabled",
    "latitude": "weather_latitude",
    "longitude": "weather_longitude",
    "timezone": "weather_timezone",
}


def load_config(config_file: Path = DEFAULT_CONFIG_FILE) -> MatrixConfig:
    """
    Load matrix configuration from JSON file.

    Args:
        config_file: Path to the configuration file.

    Returns:
        MatrixConfig object with loaded or default settings.
    """
    config = MatrixConfig()
    config_file = Path(config_file)

    if not config_file.exists():
        logger.info(f"No config file found at {config_file}, using defaults")
        return config

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = json.load(f)

        # Load panels
        for mac, info in data.get("panels", {}).items():
            output = info.get("output", "preview")
            if output not in OUTPUTS:
                logger.warning(f"Panel {mac}: unknown output '{output}', using preview")
                output = "preview"
            config.panels[mac.upper()] = Panel(
                mac=info.get("mac", mac),
                name=info.get("name", f"Panel {mac[-5:]}"),
                columns=int(info.get("columns", 32)),
                rows=int(info.get("rows", 32)),
                enabled=info.get("enabled", True),
                order=info.get("order", 99),
                output=output,
                notes=info.get("notes", ""),
            )

        # Load settings
        settings = data.get("settings", {})
        for key in _SETTINGS:
            setattr(config, key, settings.get(key, getattr(config, key)))

        weather = data.get("weather", {})
        for key, attr in _WEATHER.items():
            setattr(config, attr, weather.get(key, getattr(config, attr)))

        logger.info(f"Loaded {len(config.panels)} panels from {config_file}")

    except (OSError, ValueError, TypeError, AttributeError) as e:
        logger.error(f"Failed to load config: {e}")
        return MatrixConfig()

    return config


def config_to_dict(config: MatrixConfig) -> dict:
    """JSON-ready representation of a configuration."""
    return {
        "panels": {
            mac: {
                "mac": panel.mac,
                "name": panel.name,
                "columns": panel.columns,
                "rows": panel.rows,
                "enabled": panel.enabled,
                "order": panel.order,
                "output": panel.output,
                "notes": panel.notes,
            }
            for mac, panel in config.panels.items()
        },
        "settings": {key: getattr(config, key) for key in _SETTINGS},
        "weather": {key: getattr(config, attr) for key, attr in _WEATHER.items()},
    }


def save_config(config: MatrixConfig, config_file: Path = DEFAULT_CONFIG_FILE) -> bool:
    """
    Save matrix configuration to JSON file.

    Args:
        config: MatrixConfig object to save.
        config_file: Path to the configuration file.

    Returns:
        True if saved successfully, False otherwise.
    """
    try:
        with open(config_file, "w", encoding="utf-8") as f:
            json.dump(config_to_dict(config), f, indent=2)
        logger.info(f"Saved {len(config.panels)} panels to {config_file}")
        return True
    except OSError as e:
        logger.error(f"Failed to save config: {e}")
        return False


def create_example_config(config_file: Path = Path("matrix.example.json")) -> None:
    """Create an example configuration file for new users."""
    example = MatrixConfig()
    example.add_panel("AA:BB:CC:DD:EE:FF", "panel_1", columns=64, rows=32)
    example.panels["AA:BB:CC:DD:EE:FF"].order = 1
    example.panels["AA:BB:CC:DD:EE:FF"].notes = "Example panel - replace with your panel's MAC"

    with open(config_file, "w", encoding="utf-8") as f:
        json.dump(config_to_dict(example), f, indent=2)

    print(f"Created example config: {config_file}")
