"""Weather and solar data providers."""
from weather.open_meteo import OpenMeteoClient
from weather.solar import SolarEventCalculator
