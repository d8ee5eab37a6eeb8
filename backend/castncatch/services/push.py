"""Push delivery gateways (Firebase Cloud Messaging)."""
from __future__ import annotations
import asyncio
from typing import Protocol
import structlog
from castncatch.config import settings

log = structlog.get_logger()


class PushGateway(Protocol):
    async def send(self, tokens: list[str], message: str, category: str, data: str) -> None: ...


class LoggingPushGateway:
    """Used when FCM is disabled (local dev, tests)."""

    async def send(self, tokens: list[str], message: str, category: str, data: str) -> None:
        log.info("push_skipped", devices=len(tokens), category=category)


class FcmPushGateway:
    def __init__(self):
        import firebase_admin

        if not firebase_admin._apps:
            # GOOGLE_APPLICATION_CREDENTIALS supplies the service account
            firebase_admin.initialize_app()

    async def send(self, tokens: list[str], message: str, category: str, data: str) -> None:
        from firebase_admin import messaging

        if not tokens:
            return
        multicast = messaging.MulticastMessage(
            tokens=tokens,
            notification=messaging.Notification(body=message),
            data={"category": category, "data": data},
        )
        # the Admin SDK is blocking
        response = await asyncio.to_thread(messaging.send_each_for_multicast, multicast)
        if response.failure_count:
            log.warning("push_partial_failure", devices=len(tokens), failures=response.failure_count)


def build_push_gateway() -> PushGateway:
    if settings.fcm_enabled:
        return FcmPushGateway()
    return LoggingPushGateway()
