from __future__ import annotations
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    UNAUTHORIZED = "Unauthorized"
    NOT_FOUND = "NotFound"
    UNKNOWN_USER = "UnknownUser"
    FORBIDDEN = "Forbidden"
    EXPIRED = "Expired"
    DUPLICATE_SUBMISSION = "DuplicateSubmission"
    INSUFFICIENT_FUNDS = "InsufficientFunds"
    ALREADY_ACTIVE = "AlreadyActive"
    NOT_ACCEPTED = "NotAccepted"
    INVALID_INPUT = "InvalidInput"
    INTERNAL = "Internal"


HTTP_STATUS: Dict[ErrorCode, int] = {
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.UNKNOWN_USER: 404,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.EXPIRED: 410,
    ErrorCode.DUPLICATE_SUBMISSION: 409,
    ErrorCode.INSUFFICIENT_FUNDS: 402,
    ErrorCode.ALREADY_ACTIVE: 409,
    ErrorCode.NOT_ACCEPTED: 409,
    ErrorCode.INVALID_INPUT: 422,
    ErrorCode.INTERNAL: 500,
}


class GameError(Exception):
    """Expected failure of a game operation.

    Attributes:
        code: ErrorCode enum
        message: human readable text returned to the client
        details: optional structured data for logs
    """

    def __init__(
        self,
        code: ErrorCode,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.code = code
        self.message = message or code.value
        self.details = details or {}
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return HTTP_STATUS.get(self.code, 500)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code.value, "message": self.message}


class InsufficientFunds(GameError):
    def __init__(self, need: int, have: int):
        super().__init__(
            ErrorCode.INSUFFICIENT_FUNDS,
            "You don't have enough coins.",
            details={"need": need, "have": have},
        )
