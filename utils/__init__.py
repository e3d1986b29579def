"""Utility modules for Spot Alerts."""
from utils.logger import setup_logging
from utils.formatters import format_hour_range, format_days, format_conditions, time_ago
from utils.rate_limiter import RateLimiter
from utils.http_client import HTTPClient, APIError
