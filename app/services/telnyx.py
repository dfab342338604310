"""Telnyx API client - messaging and call control."""

import logging
import uuid
from enum import Enum
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class TelnyxErrorCategory(str, Enum):
    """Coarse classification of provider failures."""

    AUTHENTICATION = "authentication"
    INVALID_REQUEST = "invalid_request"
    RATE_LIMITED = "rate_limited"
    TRANSIENT = "transient"
    UNKNOWN = "unknown"


_USER_MESSAGES = {
    TelnyxErrorCategory.AUTHENTICATION: "SMS provider rejected our credentials. Check the Telnyx API key.",
    TelnyxErrorCategory.INVALID_REQUEST: "The phone number or message was rejected by the SMS provider.",
    TelnyxErrorCategory.RATE_LIMITED: "Too many messages sent. Please wait a moment and try again.",
    TelnyxErrorCategory.TRANSIENT: "SMS provider is temporarily unavailable. Please try again.",
    TelnyxErrorCategory.UNKNOWN: "Failed to send SMS via Telnyx.",
}

_RETRYABLE = {TelnyxErrorCategory.RATE_LIMITED, TelnyxErrorCategory.TRANSIENT}


class TelnyxSendError(Exception):
    """Provider call failed."""

    def __init__(
        self,
        category: TelnyxErrorCategory,
        detail: str | None = None,
        status_code: int | None = None,
    ):
        self.category = category
        self.detail = detail
        self.status_code = status_code
        super().__init__(detail or _USER_MESSAGES[category])

    @property
    def user_message(self) -> str:
        """Message safe to show to the tenant."""
        return _USER_MESSAGES[self.category]

    @property
    def retryable(self) -> bool:
        """Whether trying again later may succeed."""
        return self.category in _RETRYABLE


def categorize_status(status_code: int) -> TelnyxErrorCategory:
    """Map a provider HTTP status to an error category."""
    if status_code in (401, 403):
        return TelnyxErrorCategory.AUTHENTICATION
    if status_code in (400, 404, 422):
        return TelnyxErrorCategory.INVALID_REQUEST
    if status_code == 429:
        return TelnyxErrorCategory.RATE_LIMITED
    if status_code >= 500:
        return TelnyxErrorCategory.TRANSIENT
    return TelnyxErrorCategory.UNKNOWN


def _error_detail(response: httpx.Response) -> str | None:
    """First `errors[].detail` from a Telnyx error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or None
    errors = body.get("errors") if isinstance(body, dict) else None
    if errors and isinstance(errors, list) and isinstance(errors[0], dict):
        return errors[0].get("detail") or errors[0].get("title")
    return None


class TelnyxClient:
    """Client for the Telnyx v2 API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.telnyx.com/v2",
        timeout: float = 10.0,
        mock_mode: bool | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize Telnyx client.

        Args:
            api_key: Telnyx API key
            base_url: API root, including the /v2 prefix
            timeout: Per-request timeout in seconds
            mock_mode: If True, don't actually call Telnyx (defaults to True without an API key)
            http_client: Preconfigured client, mainly for tests
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.mock_mode = (not api_key) if mock_mode is None else mock_mode
        self.client = http_client or httpx.AsyncClient(timeout=timeout)

        if self.mock_mode:
            logger.warning("⚠️  Telnyx client in mock mode - nothing will be sent")

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = await self.client.post(
                url,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.TimeoutException as e:
            logger.error(f"❌ Telnyx request timed out: {path}")
            raise TelnyxSendError(TelnyxErrorCategory.TRANSIENT, f"Timeout calling {path}") from e
        except httpx.HTTPError as e:
            logger.error(f"❌ Telnyx request failed: {path}: {e}")
            raise TelnyxSendError(TelnyxErrorCategory.TRANSIENT, str(e)) from e

        if response.is_error:
            category = categorize_status(response.status_code)
            detail = _error_detail(response)
            logger.error(f"❌ Telnyx API error {response.status_code} on {path}: {detail}")
            raise TelnyxSendError(category, detail, status_code=response.status_code)

        try:
            result = response.json()
        except ValueError:
            return {}
        return result.get("data", result) if isinstance(result, dict) else {}

    async def send_message(self, from_: str, to: str, text: str) -> dict[str, Any]:
        """Send an SMS.

        Args:
            from_: Sender number (E.164)
            to: Recipient number (E.164)
            text: Message body

        Returns:
            Message resource from Telnyx (or mock response); always has "id"
        """
        if self.mock_mode:
            logger.info(
                f"📱 [MOCK] Sending SMS:\n"
                f"  From: {from_}\n"
                f"  To: {to}\n"
                f"  Message: {text}"
            )
            return {"id": f"mock_msg_{uuid.uuid4().hex}", "from": from_, "to": to, "text": text}

        result = await self._post("/messages", {"from": from_, "to": to, "text": text})
        logger.info(f"✅ Sent SMS via Telnyx to {to} (ID: {result.get('id')})")
        return result

    async def answer_call(self, call_control_id: str, webhook_url: str | None = None) -> dict[str, Any]:
        """Answer an incoming call."""
        if self.mock_mode:
            logger.info(f"📞 [MOCK] Answering call {call_control_id}")
            return {"result": "ok"}

        payload: dict[str, Any] = {}
        if webhook_url:
            payload["webhook_url"] = webhook_url
        return await self._post(f"/calls/{call_control_id}/actions/answer", payload)

    async def speak(
        self,
        call_control_id: str,
        text: str,
        voice: str = "female",
        language: str = "en-US",
    ) -> dict[str, Any]:
        """Speak text on an active call."""
        if self.mock_mode:
            logger.info(f"📞 [MOCK] Speaking on call {call_control_id}: {text}")
            return {"result": "ok"}

        return await self._post(
            f"/calls/{call_control_id}/actions/speak",
            {"payload": text, "voice": voice, "language": language},
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()
