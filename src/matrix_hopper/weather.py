"""
Weather Source

Hourly temperature lookups for the clock overlay, backed by the Open-Meteo
forecast API.
"""

import asyncio
import json
import logging
import time
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"


@dataclass(frozen=True)
class TemperatureReading:
    time: datetime
    temperature_f: float


class WeatherSource(Protocol):
    async def temperature_at(self, when: datetime) -> Optional[TemperatureReading]:
        """The reading covering the hour of `when`, or None if there is none."""
        ...


class OpenMeteoWeather:
    """
    Hourly Fahrenheit forecast for one location.

    The forecast is cached. When no reading covers a requested hour the
    forecast is fetched again, at most once per `refetch_after` seconds.
    """

    def __init__(
        self,
        latitude: float = 36.302564114392815,
        longitude: float = -115.2946230730017,
        timezone: str = "America/Los_Angeles",
        refetch_after: float = 300.0,
        timeout: float = 10.0,
    ):
        self.latitude = latitude
        self.longitude = longitude
        self.timezone = timezone
        self.refetch_after = refetch_after
        self.timeout = timeout
        self._readings: Optional[list[TemperatureReading]] = None
        self._fetched_at: Optional[float] = None

    @property
    def url(self) -> str:
        query = urllib.parse.urlencode({
            "latitude": self.latitude,
            "longitude": self.longitude,
            "hourly": "temperature_2m",
            "timezone": self.timezone,
            "temperature_unit": "fahrenheit",
            "wind_speed_unit": "mph",
            "precipitation_unit": "inch",
        })
        return f"{OPEN_METEO_URL}?{query}"

    def _fetch_json(self) -> dict:
        with urllib.request.urlopen(self.url, timeout=self.timeout) as response:
            return json.loads(response.read().decode())

    @staticmethod
    def parse_readings(data: dict) -> list[TemperatureReading]:
        """Map the hourly forecast arrays to readings. Null temperatures are skipped."""
        hourly = data.get("hourly") if isinstance(data, dict) else None
        if not isinstance(hourly, dict):
            return []
        readings = []
        for timestamp, temperature in zip(hourly.get("time", []), hourly.get("temperature_2m", [])):
            if temperature is None:
                continue
            readings.append(TemperatureReading(datetime.fromisoformat(timestamp), float(temperature)))
        return readings

    async def refresh(self) -> None:
        """Fetch the forecast again."""
        self._fetched_at = time.monotonic()
        try:
            data = await asyncio.to_thread(self._fetch_json)
            self._readings = self.parse_readings(data)
        except (urllib.error.URLError, OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Weather fetch failed: {e}")
            return
        logger.info(f"Weather forecast updated: {len(self._readings)} hourly readings")

    def _find(self, when: datetime) -> Optional[TemperatureReading]:
        for reading in self._readings or []:
            t = reading.time
            if (t.year, t.month, t.day, t.hour) == (when.year, when.month, when.day, when.hour):
                return reading
        return None

    async def temperature_at(self, when: datetime) -> Optional[TemperatureReading]:
        reading = self._find(when)
        if reading is not None:
            return reading

        stale = self._fetched_at is None or time.monotonic() - self._fetched_at >= self.refetch_after
        if stale:
            await self.refresh()
            reading = self._find(when)

        if reading is None:
            logger.debug(f"No temperature reading for {when:%Y-%m-%d %H:00}")
        return reading
