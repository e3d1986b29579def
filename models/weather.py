"""Dataclasses for weather readings and solar events."""
from dataclasses import dataclass, asdict, replace
from datetime import datetime
from typing import Optional

from models.enums import SolarEventName


@dataclass(frozen=True)
class WeatherSnapshot:
    cloud_cover: float = 0.0                 # percent, 0-100
    wind_speed: float = 0.0                  # mph
    visibility: float = 10.0                 # km
    precipitation_probability: float = 0.0   # percent, 0-100
    temperature: float = 15.0                # Celsius
    description: str = "Unknown"


@dataclass(frozen=True)
class SolarEventSet:
    """Solar events for one calendar day at one location.

    Any event may be None when it does not occur that day (polar day/night).
    """
    sunrise: Optional[datetime] = None
    sunset: Optional[datetime] = None
    golden_hour_end: Optional[datetime] = None
    golden_hour_start: Optional[datetime] = None

    def events(self):
        """Events in the order golden-hour alerts evaluate them."""
        return [
            (SolarEventName.SUNRISE, self.sunrise),
            (SolarEventName.GOLDEN_HOUR_END, self.golden_hour_end),
            (SolarEventName.GOLDEN_HOUR_START, self.golden_hour_start),
            (SolarEventName.SUNSET, self.sunset),
        ]


@dataclass(frozen=True)
class ConditionsSnapshot:
    """Point-in-time copy of the values an evaluation was decided on."""
    cloud_cover: float = 0.0
    wind_speed: float = 0.0
    visibility: float = 10.0
    precipitation_probability: float = 0.0
    temperature: float = 15.0
    weather_description: str = "Unknown"
    sun_event: Optional[str] = None
    sun_event_time: Optional[datetime] = None

    @classmethod
    def from_weather(cls, weather: WeatherSnapshot):
        return cls(
            cloud_cover=weather.cloud_cover,
            wind_speed=weather.wind_speed,
            visibility=weather.visibility,
            precipitation_probability=weather.precipitation_probability,
            temperature=weather.temperature,
            weather_description=weather.description,
        )

    def with_sun_event(self, event, event_time):
        name = event.value if hasattr(event, "value") else str(event)
        return replace(self, sun_event=name, sun_event_time=event_time)

    def to_dict(self):
        d = asdict(self)
        if self.sun_event is None:
            d.pop("sun_event")
            d.pop("sun_event_time")
        else:
            d["sun_event_time"] = self.sun_event_time.isoformat() if self.sun_event_time else None
        return d

    @classmethod
    def from_dict(cls, d):
        d = dict(d or {})
        event_time = d.get("sun_event_time")
        if isinstance(event_time, str):
            event_time = datetime.fromisoformat(event_time)
        return cls(
            cloud_cover=d.get("cloud_cover", 0.0),
            wind_speed=d.get("wind_speed", 0.0),
            visibility=d.get("visibility", 10.0),
            precipitation_probability=d.get("precipitation_probability", 0.0),
            temperature=d.get("temperature", 15.0),
            weather_description=d.get("weather_description", "Unknown"),
            sun_event=d.get("sun_event"),
            sun_event_time=event_time,
        )
