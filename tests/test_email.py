import json
from datetime import datetime

import httpx
import pytest

from app.core.email import EmailService
from app.core.exceptions import ExternalServiceError

ITEMS = [{"equipment_name": "Microscope", "quantity": 2}]


def _service(handler, **overrides) -> EmailService:
    options = dict(
        api_key="test-key",
        api_url="https://mail.test/v3/smtp/email",
        sender_email="desk@lab.example.edu",
        sender_name="Lab Desk",
        cc_email="",
        enabled=True,
        transport=httpx.MockTransport(handler),
    )
    options.update(overrides)
    return EmailService(**options)


async def test_send_approved_posts_brevo_payload() -> None:
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["headers"] = request.headers
        captured["body"] = json.loads(request.content)
        return httpx.Response(201, json={"messageId": "<abc@brevo>"})

    service = _service(handler, cc_email="audit@lab.example.edu")

    data = await service.send_approved(
        "alice@lab.example.edu", "Alice", 12, ITEMS, datetime(2026, 11, 2, 9, 0)
    )

    assert data == {"messageId": "<abc@brevo>"}
    assert captured["headers"]["api-key"] == "test-key"
    body = captured["body"]
    assert body["to"] == [{"email": "alice@lab.example.edu"}]
    assert body["cc"] == [{"email": "audit@lab.example.edu"}]
    assert body["sender"] == {"email": "desk@lab.example.edu", "name": "Lab Desk"}
    assert "Microscope (Quantity: 2)" in body["textContent"]
    assert "2026-11-02" in body["textContent"]
    assert "Transaction ID:</strong> 12" in body["htmlContent"]


async def test_rejected_uses_default_reason() -> None:
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["body"] = json.loads(request.content)
        return httpx.Response(201, json={"messageId": "1"})

    await _service(handler).send_rejected("alice@lab.example.edu", "Alice", 3)

    assert "No specific reason provided" in captured["body"]["textContent"]
    assert "cc" not in captured["body"]


async def test_disabled_service_skips_request() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    service = _service(handler, enabled=False)

    assert await service.send_borrowed("a@b.c", "A", 1, ITEMS, None) is None


async def test_missing_api_key_skips_request() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    assert await _service(handler, api_key="").send_overdue_reminder("a@b.c", "A", 1, ITEMS, None) is None


async def test_http_error_raises_external_service_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "Key not found"})

    with pytest.raises(ExternalServiceError):
        await _service(handler).send_borrowed("a@b.c", "A", 1, ITEMS, datetime(2026, 12, 1))


async def test_transport_error_raises_external_service_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ExternalServiceError):
        await _service(handler).send_approved("a@b.c", "A", 1, ITEMS, None)
