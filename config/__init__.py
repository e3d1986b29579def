"""Configuration: bundled defaults, optional user YAML, then environment overrides."""
import os
import yaml
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

_config = None
_DEFAULT_CONFIG = Path(__file__).parent / "default_config.yaml"

PUSH_TRANSPORTS = ("webhook", "log", "none")

# env var -> (config path, type)
ENV_OVERRIDES = {
    "SPOT_ALERTS_DB_PATH": (("database", "path"), str),
    "SPOT_ALERTS_LOG_LEVEL": (("logging", "level"), str),
    "SPOT_ALERTS_TIMEZONE": (("alerts", "timezone"), str),
    "SPOT_ALERTS_INTERVAL": (("scheduler", "interval_minutes"), int),
    "SPOT_ALERTS_PUSH_TRANSPORT": (("push", "transport"), str),
    "CRON_SECRET": (("web", "cron_secret"), str),
}


def load_config(path=None):
    """Build the effective config. path defaults to $SPOT_ALERTS_CONFIG when set."""
    global _config

    with open(_DEFAULT_CONFIG) as f:
        config = yaml.safe_load(f)

    path = path or os.environ.get("SPOT_ALERTS_CONFIG")
    if path and Path(path).exists():
        with open(path) as f:
            config = _deep_merge(config, yaml.safe_load(f) or {})

    _apply_env(config, os.environ)
    _validate_config(config)
    _config = config
    return config


def get_config():
    """Return cached config, loading defaults if needed."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def get_timezone(config):
    """ZoneInfo for alerts.timezone, or None for the host's local zone."""
    name = config.get("alerts", {}).get("timezone")
    return ZoneInfo(name) if name else None


def _apply_env(config, environ):
    for env_key, (keys, cast) in ENV_OVERRIDES.items():
        raw = environ.get(env_key)
        if not raw:
            continue
        try:
            value = cast(raw)
        except ValueError as e:
            raise ValueError(f"{env_key} must be {cast.__name__}, got {raw!r}") from e
        section = config
        for k in keys[:-1]:
            section = section.setdefault(k, {})
        section[keys[-1]] = value


def _deep_merge(base, override):
    """Recursively merge override into base dict."""
    result = base.copy()
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _validate_config(config):
    for section in ("database", "weather", "alerts", "push", "scheduler", "logging"):
        if not isinstance(config.get(section), dict):
            raise ValueError(f"Missing required config section: {section}")

    if config["scheduler"]["interval_minutes"] < 1:
        raise ValueError("scheduler.interval_minutes must be >= 1")
    if config["alerts"].get("max_workers", 1) < 1:
        raise ValueError("alerts.max_workers must be >= 1")
    if config["weather"].get("rate_limit", 60) <= 0:
        raise ValueError("weather.rate_limit must be > 0")

    transport = config["push"].get("transport")
    if transport not in PUSH_TRANSPORTS:
        raise ValueError(f"push.transport must be one of {', '.join(PUSH_TRANSPORTS)}, got {transport}")

    tz_name = config["alerts"].get("timezone")
    if tz_name:
        try:
            ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {tz_name}") from e
