"""
Event Delivery Security

Document-event deliveries to /events/* carry a shared secret in the
X-Trigger-Token header. It is compared in constant time against
TRIGGER_SECRET.
"""

import hmac
import logging
from typing import Optional

from fastapi import Header, HTTPException

from . import config

logger = logging.getLogger(__name__)


def constant_time_compare(a: Optional[str], b: Optional[str]) -> bool:
    """
    Compare two strings in constant time to prevent timing attacks.
    Uses hmac.compare_digest which is designed for this purpose.
    """
    if not a or not b:
        return False
    return hmac.compare_digest(a, b)


async def verify_trigger_token(x_trigger_token: Optional[str] = Header(default=None)) -> None:
    """FastAPI dependency rejecting event deliveries without the shared secret"""
    if not config.TRIGGER_SECRET:
        logger.error("❌ TRIGGER_SECRET not configured - rejecting event delivery")
        raise HTTPException(status_code=503, detail="Event delivery not configured")

    if not constant_time_compare(x_trigger_token, config.TRIGGER_SECRET):
        logger.warning("⚠️ Event delivery rejected: invalid trigger token")
        raise HTTPException(status_code=401, detail="Invalid trigger token")
