# fms/notification/transport.py
"""Push transport interface and implementations."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Protocol

import httpx

from fms.core.config import Settings, get_settings
from fms.core.logging import mask_token

logger = logging.getLogger(__name__)

UNREGISTERED_MARKERS = (
    "registration-token-not-registered",
    "notregistered",
    "unregistered",
    "requested entity was not found",
)
INVALID_ENDPOINT_STATUSES = {404, 410}


class PushOutcome(str, Enum):
    DELIVERED = "delivered"
    INVALID_ENDPOINT = "invalid_endpoint"
    TRANSIENT_FAILURE = "transient_failure"
    NO_GATEWAY = "no_gateway"


@dataclass(frozen=True)
class PushPayload:
    title: str
    body: str
    data: dict[str, str] = field(default_factory=dict)


class PushTransport(Protocol):
    def send(self, token: str, payload: PushPayload) -> PushOutcome: ...

    def close(self) -> None: ...


def is_unregistered_error(message: str | None) -> bool:
    if not message:
        return False
    lowered = message.lower()
    return any(marker in lowered for marker in UNREGISTERED_MARKERS)


class HttpPushTransport:
    """Posts one message per token to an FCM-style HTTP gateway."""

    def __init__(self, url: str, api_key: str | None = None, timeout: float = 5.0,
                 client: httpx.Client | None = None):
        self.url = url
        self.api_key = api_key
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=timeout)

    def send(self, token: str, payload: PushPayload) -> PushOutcome:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"key={self.api_key}"
        body = {
            "token": token,
            "notification": {"title": payload.title, "body": payload.body},
            "data": payload.data,
            "webpush": {"headers": {"Urgency": "high"}},
        }
        try:
            response = self.client.post(self.url, json=body, headers=headers)
        except httpx.RequestError as exc:
            logger.warning("Push gateway unreachable for %s: %s", mask_token(token), exc)
            return PushOutcome.TRANSIENT_FAILURE

        if response.is_success:
            return PushOutcome.DELIVERED
        if response.status_code in INVALID_ENDPOINT_STATUSES or is_unregistered_error(response.text):
            return PushOutcome.INVALID_ENDPOINT
        logger.warning(
            "Push gateway returned %s for %s", response.status_code, mask_token(token)
        )
        return PushOutcome.TRANSIENT_FAILURE

    def close(self) -> None:
        if self._owns_client:
            self.client.close()


class LoggingPushTransport:
    """Used when no gateway is configured. Nothing leaves the process, so nothing counts as delivered."""

    def send(self, token: str, payload: PushPayload) -> PushOutcome:
        logger.info("Push not sent to %s, no gateway configured: %s", mask_token(token), payload.title)
        return PushOutcome.NO_GATEWAY

    def close(self) -> None:
        pass


def build_push_transport(settings: Settings) -> PushTransport:
    if settings.PUSH_GATEWAY_URL:
        return HttpPushTransport(
            settings.PUSH_GATEWAY_URL,
            api_key=settings.PUSH_GATEWAY_KEY,
            timeout=settings.PUSH_TIMEOUT_SECONDS,
        )
    return LoggingPushTransport()


@lru_cache
def get_push_transport() -> PushTransport:
    """One transport (and one connection pool) per process."""
    return build_push_transport(get_settings())


def close_push_transport() -> None:
    if get_push_transport.cache_info().currsize:
        get_push_transport().close()
        get_push_transport.cache_clear()
