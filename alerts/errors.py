"""Exceptions raised by the alert engine and its collaborators."""


class AlertEngineError(Exception):
    """Base class for alert engine errors."""


class WeatherFetchError(AlertEngineError):
    """Weather for a location could not be fetched or parsed."""
    def __init__(self, message, lat=None, lng=None):
        super().__init__(message)
        self.lat = lat
        self.lng = lng


class CycleError(AlertEngineError):
    """The cycle could not run at all (e.g. active rules could not be listed)."""


class CycleInProgressError(AlertEngineError):
    """Another cycle is already running in this process."""
