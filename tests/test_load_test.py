"""Load generator payloads stay acceptable to the gateway."""

import asyncio
import json
from datetime import datetime, timezone

import httpx

from scripts.load_test import future_expiry, send_one
from skyfox.services.payment_gateway.schemas import PaymentRequest
from skyfox.services.payment_gateway.validator import validate


def test_send_one_posts_a_valid_payment():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"status": "ACCEPT", "message": "Transaction processed successfully"})

    async def run_once():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await send_one(client, "http://gateway", "secret", "4242424242424242")

    status_code, outcome, _ = asyncio.run(run_once())

    assert (status_code, outcome) == (200, "Transaction processed successfully")
    [request] = seen
    assert request.url.path == "/payment"
    assert request.headers["x-api-key"] == "secret"
    assert "x-correlation-id" not in request.headers
    payload = json.loads(request.content)
    req = PaymentRequest(**payload).received_at(datetime.now(timezone.utc))
    assert validate(req) == []


def test_future_expiry_is_current_month_two_years_out():
    now = datetime.now(timezone.utc)
    assert future_expiry() == f"{now.month:02d}/{(now.year + 2) % 100:02d}"
