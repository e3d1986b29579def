"""Sunrise, sunset and golden-hour boundaries via astral."""
import logging
import threading
from datetime import timedelta, timezone

from astral import Observer
from astral.sun import SunDirection, golden_hour, sunrise, sunset

from models.weather import SolarEventSet

logger = logging.getLogger("spotalerts.weather.solar")


def solar_timezone(lng):
    """Fixed-offset zone tracking local mean solar time at longitude lng."""
    return timezone(timedelta(minutes=round(lng * 4)))


def _safe(func, *args, **kwargs):
    # astral raises ValueError when the sun never reaches the elevation that day
    try:
        return func(*args, **kwargs)
    except ValueError:
        return None


class SolarEventCalculator:
    """Computes the solar events of the calendar day an observer at a location is in."""

    def __init__(self):
        self._cache = {}
        self._lock = threading.Lock()

    def calculate(self, location, instant):
        tz = solar_timezone(location.lng)
        day = instant.astimezone(tz).date()
        key = (location.lat, location.lng)

        # one day per location; a new day replaces the previous one
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None and cached[0] == day:
            return cached[1]

        events = self._compute(location.lat, location.lng, day, tz)
        with self._lock:
            self._cache[key] = (day, events)
        return events

    def _compute(self, lat, lng, day, tz):
        observer = Observer(latitude=lat, longitude=lng)

        rise = _safe(sunrise, observer, date=day, tzinfo=tz)
        set_ = _safe(sunset, observer, date=day, tzinfo=tz)
        morning = _safe(golden_hour, observer, date=day, direction=SunDirection.RISING, tzinfo=tz)
        evening = _safe(golden_hour, observer, date=day, direction=SunDirection.SETTING, tzinfo=tz)

        events = SolarEventSet(
            sunrise=_utc(rise),
            sunset=_utc(set_),
            golden_hour_end=_utc(morning[1]) if morning else None,
            golden_hour_start=_utc(evening[0]) if evening else None,
        )
        logger.debug(f"Solar events for ({lat:.3f}, {lng:.3f}) on {day}: {events}")
        return events

    def clear(self):
        with self._lock:
            self._cache.clear()


def _utc(dt):
    return dt.astimezone(timezone.utc) if dt is not None else None
