"""
Flask app exposing the alert cycle to an external cron trigger.

Endpoints:
  GET|POST /api/cron/check-alerts  Run one cycle. Requires "Authorization: Bearer <CRON_SECRET>"
  GET      /api/health             Liveness plus database reachability

Started via: python main.py web [--port 5000] [--host 0.0.0.0]
"""
import hmac
import logging
from datetime import datetime, timezone

from flask import Flask, jsonify, request

from alerts.errors import CycleInProgressError

logger = logging.getLogger("spotalerts.web.app")


def create_app(config: dict, engines: dict) -> Flask:
    """
    Factory function. Receives initialized components from main.py or wsgi.py.

    Args:
        config: Application config dict
        engines: dict with at least "orchestrator" and "db"
    """
    app = Flask(__name__)
    cron_secret = (config.get("web") or {}).get("cron_secret")

    def _authorized():
        if not cron_secret:
            return False
        header = request.headers.get("Authorization", "")
        return hmac.compare_digest(header.encode(), f"Bearer {cron_secret}".encode())

    @app.route("/api/cron/check-alerts", methods=["GET", "POST"])
    def check_alerts():
        if not _authorized():
            logger.warning(f"Rejected cron request from {request.remote_addr}")
            return jsonify({"error": "Unauthorized"}), 401

        try:
            summary = engines["orchestrator"].run_cycle()
        except CycleInProgressError as e:
            return jsonify({"success": False, "error": str(e)}), 409
        except Exception as e:
            logger.error(f"Alert cycle failed: {e}")
            return jsonify({"success": False, "error": str(e)}), 500

        include = app.debug or request.args.get("details") in ("1", "true")
        return jsonify({
            "success": True,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "duration": summary.duration_ms,
            "summary": summary.to_dict(include_outcomes=include),
        })

    @app.route("/api/health")
    def health():
        try:
            engines["db"].list_rules()
            db_ok = True
        except Exception as e:
            logger.error(f"Health check database error: {e}")
            db_ok = False
        status = 200 if db_ok else 503
        return jsonify({"status": "ok" if db_ok else "degraded", "database": db_ok}), status

    return app
