"""Forwarding of routed webhooks to the internal handlers."""

import logging
from enum import Enum

import httpx

from app.schemas.webhook import HandlerResponse

logger = logging.getLogger(__name__)


class RouteTarget(str, Enum):
    """Internal handler a webhook can be dispatched to."""

    SMS = "sms"
    AI_DISPATCHER = "ai-dispatcher"
    BASIC_TELEPHONY = "basic-telephony"


class HandlerGatewayError(Exception):
    """Handler could not produce a response."""

    status_code = 502


class HandlerTimeoutError(HandlerGatewayError):
    """Handler did not answer within the timeout."""

    status_code = 504


class HandlerUnavailableError(HandlerGatewayError):
    """Handler could not be reached."""

    status_code = 502


class HandlerGateway:
    """POSTs the original webhook body to a handler and returns its response as-is."""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        timeout: float = 8.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.client = http_client or httpx.AsyncClient(timeout=timeout)

    def url_for(self, target: RouteTarget) -> str:
        """Handler endpoint URL."""
        return f"{self.base_url}/api/v1/webhooks/telnyx/{target.value}"

    async def forward(self, target: RouteTarget, body: bytes) -> HandlerResponse:
        """Forward a raw webhook body.

        Raises:
            HandlerTimeoutError: Handler timed out
            HandlerUnavailableError: Connection or protocol failure
        """
        url = self.url_for(target)
        try:
            response = await self.client.post(
                url,
                content=body,
                headers={
                    "Authorization": f"Bearer {self.service_key}",
                    "Content-Type": "application/json",
                },
            )
        except httpx.TimeoutException as e:
            logger.error(f"❌ Handler {target.value} timed out")
            raise HandlerTimeoutError(f"Handler {target.value} timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"❌ Handler {target.value} unreachable: {e}")
            raise HandlerUnavailableError(f"Handler {target.value} unavailable") from e

        logger.info(f"Handler {target.value} answered {response.status_code}")

        media_type = response.headers.get("content-type", "application/json").split(";")[0]
        body_out: dict | str
        if media_type == "application/json":
            try:
                body_out = response.json()
            except ValueError:
                body_out = response.text
                media_type = "text/plain"
        else:
            body_out = response.text

        if not isinstance(body_out, (dict, str)):
            body_out = response.text
        return HandlerResponse(status_code=response.status_code, body=body_out, media_type=media_type)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()
