import json

import pytest

from reviewplates.auth.jwt import issue_jwt
from reviewplates.config import settings
from reviewplates.services.signature import compute_shopify_hmac


def _build_order_payload(
    *,
    order_number: int | str = 1001,
    email: str = "client@example.com",
    line_items: list[dict] | None = None,
) -> dict:
    if line_items is None:
        line_items = [
            {
                "id": "li_77",
                "name": "Plaque NFC Avis Google - blanc / 2 Plaques",
                "variant_title": "blanc / 2 Plaques",
                "quantity": 1,
                "properties": [
                    {"name": "google_business_url", "value": "https://g.page/r/ABC123/review"}
                ],
            }
        ]
    return {
        "id": 5550001,
        "order_number": order_number,
        "name": f"#{order_number}",
        "email": email,
        "line_items": line_items,
    }


@pytest.fixture
def auth_headers():
    def _headers(role: str, sub: str) -> dict[str, str]:
        token = issue_jwt({"sub": sub, "role": role}, settings.jwt_secret)
        return {"Authorization": f"Bearer {token}"}

    return {
        "ops": _headers("OPS", "ops-1"),
        "admin": _headers("ADMIN", "admin-1"),
        "merchant": _headers("MERCHANT", "merchant-1"),
    }


@pytest.fixture
def post_orders_paid(client, webhook_secret):
    def _post(
        payload: dict | bytes,
        *,
        webhook_id: str = "wh-1",
        topic: str | None = "orders/paid",
        signature: str | None = None,
    ):
        raw_body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
        headers = {"Content-Type": "application/json"}
        if topic is not None:
            headers["X-Shopify-Topic"] = topic
        if webhook_id:
            headers["X-Shopify-Webhook-Id"] = webhook_id
        headers["X-Shopify-Hmac-Sha256"] = (
            signature if signature is not None else compute_shopify_hmac(raw_body, webhook_secret)
        )
        return client.post("/shopify/webhook/orders-paid", content=raw_body, headers=headers)

    return _post


@pytest.fixture
def build_order_payload():
    return _build_order_payload
