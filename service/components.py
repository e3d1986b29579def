"""Wires the store, providers and orchestrator from a config dict."""
import logging

from alerts.engine import AlertOrchestrator
from config import get_timezone
from models.database import Database
from notifications.push import create_push_transport
from weather.open_meteo import OpenMeteoClient
from weather.solar import SolarEventCalculator

logger = logging.getLogger("spotalerts.components")


def build_components(config, db_path=None):
    """Connect the database and build everything a cycle needs."""
    db = Database(db_path or config["database"]["path"])
    db.connect()

    weather_cfg = config.get("weather", {})
    weather = OpenMeteoClient(
        base_url=weather_cfg.get("base_url", "https://api.open-meteo.com/v1"),
        rate_limit=weather_cfg.get("rate_limit", 60),
        cache_ttl=weather_cfg.get("cache_ttl", 0),
        timeout=weather_cfg.get("timeout", 15),
        max_retries=weather_cfg.get("max_retries", 2),
    )
    push = create_push_transport(config, db)

    alerts_cfg = config.get("alerts", {})
    orchestrator = AlertOrchestrator(
        rule_store=db,
        weather_provider=weather,
        preference_store=db,
        history_store=db,
        push_transport=push,
        solar=SolarEventCalculator(),
        tz=get_timezone(config),
        max_workers=alerts_cfg.get("max_workers", 4),
        cache_preferences=alerts_cfg.get("cache_preferences", True),
    )
    logger.debug(f"Components ready (db={db.db_path}, push={type(push).__name__})")
    return {"config": config, "db": db, "weather": weather, "push": push,
            "orchestrator": orchestrator}


def close_components(components):
    for key in ("weather", "push"):
        obj = components.get(key)
        if obj is not None:
            obj.close()
    components["db"].close()
