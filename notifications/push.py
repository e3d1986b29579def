"""Push transports: deliver a notification payload to a user's subscribed devices."""
import logging

from utils.http_client import HTTPClient, APIError

logger = logging.getLogger("spotalerts.push")

GONE_STATUS = {404, 410}


class WebhookPushTransport:
    """POSTs the JSON payload to every active subscription endpoint of a user.

    send() returns True when at least one endpoint accepted the push (2xx).
    A user without subscriptions is not an error, just False. Endpoints that
    answer 404/410 are deactivated.
    """

    def __init__(self, subscription_store, timeout=10, max_retries=1, auth_token=None):
        self.store = subscription_store
        self.client = HTTPClient(timeout=timeout, max_retries=max_retries)
        self.auth_token = auth_token

    def send(self, user_id, payload):
        subscriptions = self.store.get_push_subscriptions(user_id)
        if not subscriptions:
            logger.info(f"No push subscriptions for user {user_id}")
            return False

        headers = {"TTL": "3600"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"

        accepted = 0
        for sub in subscriptions:
            try:
                resp = self.client.post_json(sub["endpoint"], payload, headers=headers)
            except APIError as e:
                logger.warning(f"Push to {sub['endpoint']} failed: {e}")
                continue

            if 200 <= resp.status_code < 300:
                accepted += 1
            elif resp.status_code in GONE_STATUS:
                logger.info(f"Push subscription {sub['id']} is gone, deactivating")
                self.store.deactivate_push_subscription(sub["id"])
            else:
                logger.warning(f"Push to {sub['endpoint']} rejected: HTTP {resp.status_code}")

        logger.debug(f"Push for user {user_id}: {accepted}/{len(subscriptions)} accepted")
        return accepted > 0

    def close(self):
        self.client.close()


class LoggingPushTransport:
    """Logs the payload instead of sending it. Succeeds whenever the user has a subscription."""

    def __init__(self, subscription_store):
        self.store = subscription_store

    def send(self, user_id, payload):
        subscriptions = self.store.get_push_subscriptions(user_id)
        if not subscriptions:
            logger.info(f"No push subscriptions for user {user_id}")
            return False
        logger.info(
            f"Would send push to {len(subscriptions)} subscription(s) for user {user_id}: "
            f"{payload.get('title')} - {payload.get('body')}"
        )
        return True

    def close(self):
        pass


def create_push_transport(config, store):
    """Build the transport named by config['push']['transport'] ('webhook', 'log' or 'none')."""
    push_cfg = config.get("push", {})
    kind = push_cfg.get("transport", "log")
    if kind == "webhook":
        return WebhookPushTransport(
            store,
            timeout=push_cfg.get("timeout", 10),
            max_retries=push_cfg.get("max_retries", 1),
            auth_token=push_cfg.get("auth_token"),
        )
    if kind == "log":
        return LoggingPushTransport(store)
    if kind == "none":
        return None
    raise ValueError(f"Unknown push transport: {kind}")
