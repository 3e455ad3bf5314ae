"""Structured errors surfaced to callers of the callable operations"""

from fastapi import HTTPException

# Category -> HTTP status, mirroring the Firebase callable protocol
ERROR_STATUS = {
    "unauthenticated": 401,
    "invalid-argument": 400,
    "not-found": 404,
    "permission-denied": 403,
    "failed-precondition": 400,
    "internal": 500,
}


class CallableError(HTTPException):
    """Caller-visible failure with a distinguishing category"""

    def __init__(self, code: str, message: str):
        if code not in ERROR_STATUS:
            raise ValueError(f"Unknown error category: {code}")
        super().__init__(status_code=ERROR_STATUS[code], detail=message)
        self.code = code
        self.message = message

    def to_payload(self) -> dict:
        return {"error": {"status": self.code.replace("-", "_").upper(), "message": self.message}}


class EmailNotConfiguredError(Exception):
    """Raised when no mail transport credential is configured"""

    pass
