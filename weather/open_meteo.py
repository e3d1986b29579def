"""Open-Meteo current-conditions client (no API key required)."""
import logging

from alerts.errors import WeatherFetchError
from models.weather import WeatherSnapshot
from utils.http_client import HTTPClient, APIError
from utils.rate_limiter import RateLimiter

logger = logging.getLogger("spotalerts.weather.open_meteo")

CURRENT_FIELDS = (
    "temperature_2m,cloud_cover,wind_speed_10m,"
    "precipitation_probability,visibility,weather_code"
)

# WMO weather interpretation codes
WEATHER_DESCRIPTIONS = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    71: "Slight snow",
    73: "Moderate snow",
    75: "Heavy snow",
    80: "Slight rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}


def describe_weather_code(code):
    return WEATHER_DESCRIPTIONS.get(code, "Unknown")


def _value(current, key, default):
    val = current.get(key)
    return default if val is None else val


class OpenMeteoClient:
    """WeatherProvider backed by the Open-Meteo forecast API."""

    def __init__(self, base_url="https://api.open-meteo.com/v1", rate_limit=60,
                 cache_ttl=0, timeout=15, max_retries=2):
        self.client = HTTPClient(
            base_url=base_url,
            rate_limiter=RateLimiter(rate_limit),
            timeout=timeout,
            max_retries=max_retries,
            cache_ttl=cache_ttl,
        )

    def get_current_weather(self, lat, lng):
        params = {
            "latitude": str(lat),
            "longitude": str(lng),
            "current": CURRENT_FIELDS,
            "wind_speed_unit": "mph",
            "timezone": "auto",
        }
        try:
            data = self.client.get_json("/forecast", params=params)
        except APIError as e:
            raise WeatherFetchError(f"Weather API error: {e}", lat=lat, lng=lng) from e

        return self.parse_current(data, lat, lng)

    @staticmethod
    def parse_current(data, lat=None, lng=None):
        """Turn an Open-Meteo response body into a WeatherSnapshot."""
        current = data.get("current") if isinstance(data, dict) else None
        if not isinstance(current, dict):
            raise WeatherFetchError("Weather API response missing 'current' block", lat=lat, lng=lng)

        try:
            return WeatherSnapshot(
                cloud_cover=float(_value(current, "cloud_cover", 0)),
                wind_speed=float(_value(current, "wind_speed_10m", 0)),
                visibility=float(_value(current, "visibility", 10000)) / 1000,
                precipitation_probability=float(_value(current, "precipitation_probability", 0)),
                temperature=float(_value(current, "temperature_2m", 15)),
                description=describe_weather_code(current.get("weather_code")),
            )
        except (TypeError, ValueError) as e:
            raise WeatherFetchError(f"Malformed weather data: {e}", lat=lat, lng=lng) from e

    def close(self):
        self.client.close()
