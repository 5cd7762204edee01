# notifier.py
import logging

import httpx

from config import NOTIFY_TIMEOUT_SECONDS, PUSH_WEBHOOK_URL

logger = logging.getLogger(__name__)


def notify_new_match(to_user_id: str, match_id: str, from_user_name: str) -> None:
    """Push a "new match" message to ``to_user_id`` through the configured webhook."""
    payload = {
        "to": to_user_id,
        "title": "New match! 🎉",
        "body": f"{from_user_name or 'Someone'} and you are a match! Start a conversation.",
        "data": {"type": "match", "match_id": match_id},
    }
    if not PUSH_WEBHOOK_URL:
        logger.info(f"PUSH_WEBHOOK_URL not set, skipping match notification for {to_user_id}")
        return

    resp = httpx.post(PUSH_WEBHOOK_URL, json=payload, timeout=NOTIFY_TIMEOUT_SECONDS)
    resp.raise_for_status()
