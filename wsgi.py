"""WSGI entry point for production deployment."""
import sys
import logging
from pathlib import Path

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).parent))

# Ensure data directory exists
Path("data").mkdir(exist_ok=True)

from config import load_config
from utils.logger import setup_logging
from service.components import build_components
from web.app import create_app

logger = logging.getLogger("spotalerts.wsgi")

config = load_config()
setup_logging(config["logging"]["level"], config["logging"].get("file"))

engines = build_components(config)
app = create_app(config, engines)

if not config.get("web", {}).get("cron_secret"):
    logger.warning("CRON_SECRET is not set; /api/cron/check-alerts will reject every request")
