"""Shared request/response envelopes"""

from typing import Any

from pydantic import BaseModel


class CallableRequest(BaseModel):
    """Callable protocol envelope: {"data": {...}}"""

    data: dict[str, Any] = {}


def callable_result(result: Any) -> dict:
    """Callable protocol response envelope"""
    return {"result": result}
