"""Push domain schemas"""

from typing import Any, Optional

from pydantic import BaseModel, field_validator


class PushBroadcastRequest(BaseModel):
    """Schema for sendPushBroadcast"""

    title: str
    body: str
    country: Optional[str] = None
    state: Optional[str] = None
    data: Optional[dict[str, Any]] = None

    @field_validator("title", "body")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v
