"""Tests for forwarding webhooks to internal handlers."""

import httpx
import pytest

from app.services.handler_gateway import (
    HandlerGateway,
    HandlerTimeoutError,
    HandlerUnavailableError,
    RouteTarget,
)

pytestmark = pytest.mark.asyncio


def _gateway(handler) -> HandlerGateway:
    return HandlerGateway(
        base_url="http://handlers.internal/",
        service_key="svc-key",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


class TestForward:
    """Tests for HandlerGateway.forward."""

    async def test_posts_raw_body_with_service_key(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = request.content
            return httpx.Response(200, json={"success": True, "message": "ok"})

        gateway = _gateway(handler)
        result = await gateway.forward(RouteTarget.AI_DISPATCHER, b'{"data": {}}')

        assert seen["url"] == "http://handlers.internal/api/v1/webhooks/telnyx/ai-dispatcher"
        assert seen["auth"] == "Bearer svc-key"
        assert seen["body"] == b'{"data": {}}'
        assert result.status_code == 200
        assert result.body == {"success": True, "message": "ok"}
        await gateway.close()

    async def test_error_status_passed_through(self):
        gateway = _gateway(lambda request: httpx.Response(404, json={"success": False, "error": "nope"}))
        result = await gateway.forward(RouteTarget.SMS, b"{}")

        assert result.status_code == 404
        assert result.body == {"success": False, "error": "nope"}

    async def test_plain_text_response(self):
        gateway = _gateway(lambda request: httpx.Response(200, text="Event processed"))
        result = await gateway.forward(RouteTarget.BASIC_TELEPHONY, b"{}")

        assert result.body == "Event processed"
        assert result.media_type == "text/plain"

    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(HandlerTimeoutError):
            await _gateway(handler).forward(RouteTarget.SMS, b"{}")

    async def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(HandlerUnavailableError) as exc_info:
            await _gateway(handler).forward(RouteTarget.SMS, b"{}")
        assert exc_info.value.status_code == 502
