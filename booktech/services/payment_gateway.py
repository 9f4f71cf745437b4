"""Razorpay payment-links client and webhook verification.

Outbound calls return ``(ok, payload)`` and never raise for network
problems; callers decide what an unavailable gateway means for them.
"""
from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any, Dict, Mapping, Optional, Tuple

import requests

from booktech import config as app_config
from booktech.utils.currency import to_minor_units
from booktech.utils.logging import get_logger

LOG = get_logger("payment_gateway")

SUBSCRIPTION_PREFIX = "Subscription payment for plan:"
SIGNATURE_HEADER = "X-Razorpay-Signature"


def is_configured() -> bool:
    return bool(app_config.razorpay_key_id() and app_config.razorpay_key_secret())


def _auth() -> Tuple[str, str]:
    return app_config.razorpay_key_id() or "", app_config.razorpay_key_secret() or ""


def create_payment_link(
    *,
    amount: Any,
    description: str,
    customer: Dict[str, Any],
    reference_id: Optional[str] = None,
    callback_path: str = "/payment-success",
    timeout: Optional[int] = None,
) -> Tuple[bool, Dict[str, Any]]:
    """Create a hosted payment link; amounts are sent in minor units."""
    if not is_configured():
        return False, {"error": "gateway_not_configured"}
    body: Dict[str, Any] = {
        "amount": to_minor_units(amount),
        "currency": app_config.currency(),
        "description": description,
        "customer": {
            "name": customer.get("name") or "",
            "email": customer.get("email") or "",
            "contact": customer.get("phone") or "",
        },
        "notify": {"sms": True, "email": True},
        "callback_url": f"{app_config.frontend_url()}{callback_path}",
        "callback_method": "get",
    }
    if reference_id:
        body["reference_id"] = reference_id
    url = f"{app_config.razorpay_api_base().rstrip('/')}/payment_links"
    try:
        r = requests.post(url, json=body, auth=_auth(), timeout=timeout or app_config.http_timeout())
        try:
            data = r.json()
        except ValueError:
            data = {"raw": r.text}
        if r.status_code not in (200, 201):
            LOG.warning("Payment link rejected status=%s details=%s", r.status_code, data)
            return False, {"error": "http_error", "status": r.status_code, "details": data}
        if not data.get("id") or not data.get("short_url"):
            return False, {"error": "malformed_response", "details": data}
        LOG.info("Payment link created id=%s amount=%s", data["id"], body["amount"])
        return True, data
    except requests.RequestException as exc:
        LOG.warning("Payment link request failed: %s", exc)
        return False, {"error": str(exc)}


def compute_signature(raw_body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify_signature(raw_body: bytes, provided: Optional[str], secret: str) -> bool:
    if not provided:
        return False
    return hmac.compare_digest(compute_signature(raw_body, secret), provided)


def parse_webhook(raw_body: bytes, headers: Mapping[str, str]) -> Tuple[bool, str, Optional[Dict[str, Any]]]:
    """Verify and parse an inbound webhook.

    Returns (accepted, event_or_reason, payload); payload is None when rejected.
    """
    secret = app_config.razorpay_webhook_secret()
    if not secret:
        return False, "webhook_secret_not_configured", None
    if not verify_signature(raw_body, headers.get(SIGNATURE_HEADER), secret):
        return False, "signature_invalid", None
    try:
        payload = json.loads(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return False, "invalid_json", None
    if not isinstance(payload, dict):
        return False, "invalid_json", None
    event = str(payload.get("event") or "").strip()
    LOG.info("Gateway webhook accepted event=%s", event or "unknown")
    return True, event or "unknown", payload


def payment_link_entity(payload: Dict[str, Any]) -> Dict[str, Any]:
    link = (payload.get("payload") or {}).get("payment_link") or {}
    entity = link.get("entity") if isinstance(link, dict) else None
    return entity if isinstance(entity, dict) else {}


def payment_entity(payload: Dict[str, Any]) -> Dict[str, Any]:
    payment = (payload.get("payload") or {}).get("payment") or {}
    entity = payment.get("entity") if isinstance(payment, dict) else None
    return entity if isinstance(entity, dict) else {}


__all__ = [
    "SUBSCRIPTION_PREFIX",
    "SIGNATURE_HEADER",
    "is_configured",
    "create_payment_link",
    "compute_signature",
    "verify_signature",
    "parse_webhook",
    "payment_link_entity",
    "payment_entity",
]
