"""
Push broadcast service - Firebase Cloud Messaging

Broadcasts a notification to every device registered by users attached to
the targeted franchise locations.
"""

import logging
from typing import Optional

from firebase_admin import exceptions as firebase_exceptions
from firebase_admin import messaging
from pydantic import ValidationError

from ...errors import CallableError
from ...firestore import get_firebase_app
from ...utils.formatters import now_iso
from .repository import PushRepository
from .schemas import PushBroadcastRequest

logger = logging.getLogger(__name__)

# FCM multicast limit
MULTICAST_CHUNK_SIZE = 500

STALE_TOKEN_ERRORS = (messaging.UnregisteredError, firebase_exceptions.InvalidArgumentError)


def _matches(value: Optional[str], wanted: Optional[str]) -> bool:
    if not wanted:
        return True
    return (value or "").strip().lower() == wanted.strip().lower()


def location_matches(location: dict, country: Optional[str], state: Optional[str]) -> bool:
    location_country = location.get("countryCode") or location.get("country")
    return _matches(location_country, country) and _matches(location.get("state"), state)


def chunked(items: list, size: int = MULTICAST_CHUNK_SIZE):
    for start in range(0, len(items), size):
        yield items[start:start + size]


def collect_tokens(db, location_ids: list[str]) -> tuple[list[str], dict[str, str], int]:
    """
    Gather device tokens for users of the given locations.

    Returns the unique token list, a token -> user id map and the number of
    users holding at least one token.
    """
    tokens: list[str] = []
    owners: dict[str, str] = {}
    users = 0
    for location_id in location_ids:
        for user_id, user in PushRepository.list_users_for_location(db, location_id):
            user_tokens = [t for t in (user.get("fcmTokens") or []) if t]
            if not user_tokens:
                continue
            users += 1
            for token in user_tokens:
                if token not in owners:
                    owners[token] = user_id
                    tokens.append(token)
    return tokens, owners, users


def _remove_stale_tokens(db, stale: dict[str, list[str]]) -> int:
    removed = 0
    for user_id, user_tokens in stale.items():
        try:
            PushRepository.remove_tokens(db, user_id, user_tokens)
            removed += len(user_tokens)
        except Exception as e:
            logger.error(f"❌ Failed to remove stale push tokens for user {user_id}: {e}")
    return removed


def send_push_broadcast(
    db,
    title: str,
    body: str,
    country: Optional[str] = None,
    state: Optional[str] = None,
    data: Optional[dict] = None,
    sent_by: Optional[str] = None,
) -> dict:
    """Send a notification to every device at the targeted locations"""
    location_ids = [
        location_id
        for location_id, location in PushRepository.list_locations(db)
        if location_matches(location, country, state)
    ]
    tokens, owners, users = collect_tokens(db, location_ids)
    logger.info(
        f"📣 Push broadcast '{title}' to {len(tokens)} devices "
        f"({users} users, {len(location_ids)} locations)"
    )

    # FCM data payloads only carry strings
    payload = {str(k): str(v) for k, v in (data or {}).items() if v is not None}

    success_count = 0
    failure_count = 0
    stale: dict[str, list[str]] = {}
    app = get_firebase_app()

    for batch in chunked(tokens):
        message = messaging.MulticastMessage(
            tokens=batch,
            notification=messaging.Notification(title=title, body=body),
            data=payload or None,
        )
        response = messaging.send_each_for_multicast(message, app=app)
        success_count += response.success_count
        failure_count += response.failure_count

        for token, result in zip(batch, response.responses):
            if not result.success and isinstance(result.exception, STALE_TOKEN_ERRORS):
                stale.setdefault(owners[token], []).append(token)

    removed = _remove_stale_tokens(db, stale)
    if removed:
        logger.info(f"Removed {removed} stale push tokens")

    summary = {
        "targetLocations": len(location_ids),
        "targetUsers": users,
        "tokenCount": len(tokens),
        "successCount": success_count,
        "failureCount": failure_count,
        "removedTokens": removed,
    }

    broadcast_id = None
    try:
        broadcast_id = PushRepository.create_broadcast(
            db,
            {
                "title": title,
                "body": body,
                "country": country,
                "state": state,
                "data": payload,
                "sentBy": sent_by,
                "sentAt": now_iso(),
                **summary,
            },
        )
    except Exception as e:
        logger.error(f"❌ Failed to record push broadcast: {e}")

    return {"success": True, "broadcastId": broadcast_id, **summary}


class PushService:
    """Service for push broadcasts"""

    def __init__(self, db):
        self.db = db

    def broadcast(self, payload: dict, sent_by: Optional[str] = None) -> dict:
        try:
            request = PushBroadcastRequest.model_validate(payload or {})
        except ValidationError as e:
            raise CallableError("invalid-argument", "A title and body are required.") from e

        return send_push_broadcast(
            self.db,
            request.title,
            request.body,
            country=request.country,
            state=request.state,
            data=request.data,
            sent_by=sent_by,
        )
