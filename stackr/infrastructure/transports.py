"""
Delivery transports for the email and push channels.

Each transport exposes ``send(user_id, notification) -> bool`` and never
raises: failures are logged and reported as False.

- EmailTransport: Resend HTTP API via requests; logs a stub line without a key
- WebPushTransport: pywebpush to every stored subscription of the user
- LoggingTransport: log-only stub
"""
import json
import logging
from typing import Callable

import requests
from pywebpush import WebPushException, webpush

from stackr.config import Settings, get_settings
from stackr.domain.notification import Notification
from stackr.infrastructure.store import PUSH_SUBSCRIPTIONS, UserStateStore

logger = logging.getLogger(__name__)

AddressLookup = Callable[[str], str | None]


class LoggingTransport:
    def __init__(self, channel: str = "log"):
        self.channel = channel

    def send(self, user_id: str, notification: Notification) -> bool:
        logger.info("%s stub: user_id=%s title=%s", self.channel.upper(), user_id, notification.title)
        return True


# ---------------------------------------------------------------------------
# Email
# ---------------------------------------------------------------------------

class EmailTransport:
    def __init__(self, address_lookup: AddressLookup, settings: Settings | None = None):
        self._lookup = address_lookup
        self._settings = settings or get_settings()

    def send(self, user_id: str, notification: Notification) -> bool:
        cfg = self._settings
        if not cfg.RESEND_API_KEY:
            logger.info("EMAIL stub: user_id=%s title=%s", user_id, notification.title)
            return False
        address = self._lookup(user_id)
        if not address:
            logger.warning("No email address for user_id=%s, skipping email", user_id)
            return False
        try:
            resp = requests.post(
                cfg.EMAIL_API_URL,
                headers={"Authorization": f"Bearer {cfg.RESEND_API_KEY}"},
                json={
                    "from": cfg.EMAIL_FROM,
                    "to": [address],
                    "subject": notification.title,
                    "text": notification.message,
                },
                timeout=5,
            )
        except requests.RequestException:
            logger.exception("Email send failed for user_id=%s", user_id)
            return False
        if resp.status_code >= 400:
            logger.error("Email API error (HTTP %d) for user_id=%s", resp.status_code, user_id)
            return False
        return True


# ---------------------------------------------------------------------------
# Web Push
# ---------------------------------------------------------------------------

def register_push_subscription(store: UserStateStore, user_id: str, subscription: dict) -> None:
    """
    Store a browser subscription ({"endpoint", "keys": {"p256dh", "auth"}}).
    Re-registering the same endpoint replaces it.
    """
    with store.lock(user_id):
        subs = [s for s in store.get(PUSH_SUBSCRIPTIONS, user_id, []) if s["endpoint"] != subscription["endpoint"]]
        subs.append(subscription)
        store.put(PUSH_SUBSCRIPTIONS, user_id, subs)


def remove_push_subscription(store: UserStateStore, user_id: str, endpoint: str) -> bool:
    with store.lock(user_id):
        subs = store.get(PUSH_SUBSCRIPTIONS, user_id, [])
        kept = [s for s in subs if s["endpoint"] != endpoint]
        if len(kept) == len(subs):
            return False
        store.put(PUSH_SUBSCRIPTIONS, user_id, kept)
        return True


def _vapid_private_key(raw_key: str) -> str:
    # .env may store PEM with literal \n or real newlines depending on quoting
    if "\\n" in raw_key:
        raw_key = raw_key.replace("\\n", "\n")
    # pywebpush accepts a raw base64url key; strip PEM armour if present
    if "BEGIN" in raw_key:
        lines = [
            line.strip() for line in raw_key.strip().splitlines()
            if line.strip() and not line.strip().startswith("-----")
        ]
        raw_key = "".join(lines)
    return raw_key


class WebPushTransport:
    def __init__(self, store: UserStateStore, settings: Settings | None = None):
        self._store = store
        self._settings = settings or get_settings()

    def _push_one(self, user_id: str, subscription: dict, payload: dict) -> bool:
        cfg = self._settings
        try:
            webpush(
                subscription_info=subscription,
                data=json.dumps(payload, ensure_ascii=False),
                vapid_private_key=_vapid_private_key(cfg.VAPID_PRIVATE_KEY),
                vapid_claims={"sub": cfg.VAPID_MAILTO},
            )
            return True
        except WebPushException as e:
            status_code = e.response.status_code if e.response is not None else 0
            if status_code in (404, 410):
                logger.info("Subscription expired (HTTP %d), removing: %s",
                            status_code, subscription["endpoint"][:60])
                remove_push_subscription(self._store, user_id, subscription["endpoint"])
            else:
                logger.error("WebPush error (HTTP %d): %s", status_code, e)
            return False

    def send(self, user_id: str, notification: Notification) -> bool:
        cfg = self._settings
        if not cfg.VAPID_PRIVATE_KEY or not cfg.VAPID_PUBLIC_KEY:
            logger.warning("VAPID keys not configured, skipping push")
            return False
        subs = self._store.get(PUSH_SUBSCRIPTIONS, user_id, [])
        if not subs:
            return False
        payload = {
            "title": notification.title,
            "body": notification.message,
            "tag": notification.type.value,
            "notificationId": notification.id,
        }
        sent = sum(1 for sub in subs if self._push_one(user_id, sub, payload))
        return sent > 0
