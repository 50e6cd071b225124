# Overview: Razorpay gateway adapter (orders, refunds, HMAC signatures) over httpx.

"""
Payment gateway adapter.

Wraps the three gateway calls the checkout needs (create order, refund a
captured payment) plus the two signature schemes:

- checkout signature: HMAC-SHA256(key_secret, "<order_id>|<payment_id>")
- webhook signature:  HMAC-SHA256(webhook_secret, raw request body)

Both are hex digests and are compared in constant time.

The adapter instance lives in ``app.extensions["payment_gateway"]`` so tests
and alternative providers can swap it without patching module globals.
"""

from __future__ import annotations

import hashlib
import hmac

import httpx
from flask import current_app


class GatewayError(Exception):
    """
    Upstream payment gateway failure.

    description is the gateway's structured error message when it sent one;
    callers surface it to the client as a 400, otherwise respond 500.
    """
    def __init__(self, message: str, description: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.description = description
        self.status_code = status_code


def sign(secret: str, message: str | bytes) -> str:
    if isinstance(message, str):
        message = message.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def payment_signature(secret: str, gateway_order_id: str, gateway_payment_id: str) -> str:
    return sign(secret, f"{gateway_order_id}|{gateway_payment_id}")


def signatures_match(expected: str, supplied: str | None) -> bool:
    if not supplied:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8"))


class RazorpayGateway:
    """Thin REST client for the Razorpay v1 API."""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        *,
        base_url: str = "https://api.razorpay.com/v1",
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.key_id = key_id
        self.key_secret = key_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def create_order(self, *, amount: int, currency: str, receipt: str, notes: dict | None = None) -> dict:
        return self._post("/orders", {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        })

    def refund_payment(self, payment_id: str, *, amount: int, notes: dict | None = None) -> dict:
        return self._post(f"/payments/{payment_id}/refund", {
            "amount": amount,
            "notes": notes or {},
        })

    def verify_payment_signature(self, gateway_order_id: str, gateway_payment_id: str, signature: str | None) -> bool:
        expected = payment_signature(self.key_secret, gateway_order_id, gateway_payment_id)
        return signatures_match(expected, signature)

    def _post(self, path: str, body: dict) -> dict:
        if not self.key_id or not self.key_secret:
            raise GatewayError("Payment gateway is not configured")

        try:
            with httpx.Client(
                base_url=self.base_url,
                auth=(self.key_id, self.key_secret),
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = client.post(path, json=body)
        except httpx.HTTPError as exc:
            raise GatewayError(f"Payment gateway request failed: {exc.__class__.__name__}") from exc

        if response.status_code >= 400:
            description = None
            try:
                description = (response.json().get("error") or {}).get("description")
            except ValueError:
                pass
            raise GatewayError(
                f"Payment gateway returned HTTP {response.status_code}",
                description=description,
                status_code=response.status_code,
            )

        return response.json()


def verify_webhook_signature(secret: str, raw_body: bytes, signature: str | None) -> bool:
    return signatures_match(sign(secret, raw_body), signature)


def build_gateway(app) -> RazorpayGateway:
    return RazorpayGateway(
        app.config.get("RAZORPAY_KEY_ID", ""),
        app.config.get("RAZORPAY_KEY_SECRET", ""),
        base_url=app.config.get("RAZORPAY_API_BASE", "https://api.razorpay.com/v1"),
        timeout=app.config.get("GATEWAY_TIMEOUT_SECONDS", 15.0),
    )


def get_gateway():
    return current_app.extensions["payment_gateway"]
