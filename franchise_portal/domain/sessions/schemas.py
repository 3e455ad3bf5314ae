"""Session domain schemas"""

import re

from pydantic import BaseModel, field_validator

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class GenerateSessionsRequest(BaseModel):
    """Schema for generateSessions"""

    saleId: str
    startDate: str
    time: str
    weeks: int = 10

    @field_validator("startDate")
    @classmethod
    def validate_start_date(cls, v: str) -> str:
        if not DATE_PATTERN.match(v):
            raise ValueError("startDate must be YYYY-MM-DD")
        return v

    @field_validator("time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        if not TIME_PATTERN.match(v):
            raise ValueError("time must be HH:MM")
        return v

    @field_validator("weeks")
    @classmethod
    def validate_weeks(cls, v: int) -> int:
        if v < 1 or v > 52:
            raise ValueError("weeks must be between 1 and 52")
        return v
