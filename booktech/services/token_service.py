"""Fernet-encrypted bearer and password-reset tokens.

The encryption key is derived from the application secret so that every
worker can decode tokens issued by any other.
"""
from __future__ import annotations

import base64
import hashlib
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from cryptography.fernet import Fernet, InvalidToken

from booktech import config as app_config
from booktech.utils.identity import normalize_email
from booktech.utils.logging import get_logger

LOG = get_logger("token_service")

_SESSION = "session"
_RESET = "reset"


class TokenError(RuntimeError):
    """Base error for token failures."""


class SecretKeyUnavailableError(TokenError):
    """Raised when no secret key is configured."""


class TokenDecodeError(TokenError):
    """Raised when a token cannot be decrypted or its payload is malformed."""


class TokenExpiredError(TokenError):
    """Raised when a token is older than its allowed lifetime."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).replace(microsecond=0).isoformat()


def _parse_timestamp(raw: str) -> datetime:
    candidate = raw[:-1] + "+00:00" if raw.endswith("Z") else raw
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise TokenDecodeError("invalid_timestamp") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _derive_fernet_key(secret_value: Any) -> bytes:
    if not secret_value:
        raise SecretKeyUnavailableError("secret_key_missing")
    secret_bytes = secret_value if isinstance(secret_value, bytes) else str(secret_value).encode("utf-8")
    return base64.urlsafe_b64encode(hashlib.sha256(secret_bytes).digest())


def _fernet() -> Fernet:
    return Fernet(_derive_fernet_key(app_config.secret_key()))


def _encode(document: Dict[str, Any]) -> str:
    raw = json.dumps(document, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return _fernet().encrypt(raw).decode("utf-8")


def _decode(token: str, kind: str, ttl: timedelta) -> Dict[str, Any]:
    if not token or not isinstance(token, str):
        raise TokenDecodeError("token_required")
    try:
        decrypted = _fernet().decrypt(token.encode("utf-8"))
    except InvalidToken as exc:
        raise TokenDecodeError("invalid_token") from exc
    try:
        payload = json.loads(decrypted.decode("utf-8"))
    except json.JSONDecodeError as exc:
        raise TokenDecodeError("invalid_payload") from exc
    if not isinstance(payload, dict) or payload.get("kind") != kind:
        raise TokenDecodeError("wrong_token_kind")
    issued_at = payload.get("issued_at")
    if not isinstance(issued_at, str):
        raise TokenDecodeError("issued_at_missing")
    if _utcnow() - _parse_timestamp(issued_at) > ttl:
        raise TokenExpiredError("token_expired")
    try:
        payload["user_id"] = int(payload["user_id"])
    except (KeyError, TypeError, ValueError) as exc:
        raise TokenDecodeError("user_id_invalid") from exc
    return payload


def issue_session_token(user: Dict[str, Any]) -> str:
    """Bearer token carrying ``{user_id, email, role, issued_at}``."""
    email = normalize_email(user.get("email"))
    if not email or user.get("id") is None:
        raise TokenDecodeError("user_incomplete")
    return _encode(
        {
            "kind": _SESSION,
            "user_id": int(user["id"]),
            "email": email,
            "role": user.get("role"),
            "issued_at": _format_timestamp(_utcnow()),
        }
    )


def decode_session_token(token: str) -> Dict[str, Any]:
    return _decode(token, _SESSION, timedelta(days=app_config.token_ttl_days()))


def issue_reset_token(user_id: int, email: str, password_hash: str) -> str:
    """Reset token bound to the current password hash.

    A fingerprint of the hash is embedded so the token stops working as soon
    as the password changes, which makes it single use.
    """
    return _encode(
        {
            "kind": _RESET,
            "user_id": int(user_id),
            "email": normalize_email(email),
            "fingerprint": password_fingerprint(password_hash),
            "issued_at": _format_timestamp(_utcnow()),
        }
    )


def decode_reset_token(token: str) -> Dict[str, Any]:
    return _decode(token, _RESET, timedelta(hours=app_config.reset_token_ttl_hours()))


def password_fingerprint(password_hash: str) -> str:
    return hashlib.sha256((password_hash or "").encode("utf-8")).hexdigest()[:16]


__all__ = [
    "TokenError",
    "SecretKeyUnavailableError",
    "TokenDecodeError",
    "TokenExpiredError",
    "issue_session_token",
    "decode_session_token",
    "issue_reset_token",
    "decode_reset_token",
    "password_fingerprint",
]
