from __future__ import annotations
import hmac
from fastapi import Depends, Header
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from castncatch.config import settings
from castncatch.errors import ErrorCode, GameError
from castncatch.security import token_subject

# auto_error off so a missing header still produces the uniform error body
security = HTTPBearer(auto_error=False)

async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    return token_subject(credentials.credentials if credentials else None, "access")

def _token_matches(given: str | None, expected: str) -> bool:
    return bool(expected) and bool(given) and hmac.compare_digest(given, expected)

async def require_cron_token(x_cron_token: str | None = Header(None)) -> None:
    if not _token_matches(x_cron_token, settings.cron_token):
        raise GameError(ErrorCode.UNAUTHORIZED, "Unauthorized.")

async def require_admin_token(x_admin_token: str | None = Header(None)) -> None:
    if not _token_matches(x_admin_token, settings.admin_token):
        raise GameError(ErrorCode.UNAUTHORIZED, "Unauthorized.")
