"""Account signup / signin and password management."""
from __future__ import annotations

from typing import Any, Dict, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from booktech import config as app_config
from booktech.db.repositories import users_repo
from booktech.services import token_service, wallet_service
from booktech.utils import constants
from booktech.utils.identity import normalize_email
from booktech.utils.logging import get_logger

LOG = get_logger("auth_service")

_MIN_PASSWORD_LENGTH = 6
FORGOT_PASSWORD_MESSAGE = "If that email exists, a reset link has been sent."


class AuthError(RuntimeError):
    """Base error for authentication workflows."""


class AuthValidationError(ValueError):
    """Raised when signup / password payloads are malformed."""


class InvalidCredentialsError(AuthError):
    """Raised when email / password do not match."""


class EmailInUseError(AuthError):
    """Raised when signing up with a registered email."""


class UserNotFoundError(AuthError):
    """Raised when the token's user no longer exists."""


class ResetTokenError(AuthError):
    """Raised when a password reset token is invalid, expired or used."""


def _require_password(password: Any) -> str:
    if not isinstance(password, str) or len(password) < _MIN_PASSWORD_LENGTH:
        raise AuthValidationError("password_too_short")
    return password


def _session_payload(user) -> Dict[str, Any]:
    data = user.as_dict()
    return {"token": token_service.issue_session_token(data), "user": data}


def signup(
    *,
    email: Any,
    password: Any,
    name: Optional[str] = None,
    role: Optional[str] = None,
    referral_code: Optional[str] = None,
) -> Dict[str, Any]:
    normalized = normalize_email(email)
    if not normalized or "@" not in normalized:
        raise AuthValidationError("email_required")
    _require_password(password)
    role = role or constants.ROLE_CUSTOMER
    if role not in constants.SELF_SIGNUP_ROLES:
        raise AuthValidationError("role_not_allowed")
    try:
        user = users_repo.create_user(
            normalized,
            generate_password_hash(password),
            name=(name or "").strip() or None,
            role=role,
        )
    except users_repo.UserExistsError as exc:
        raise EmailInUseError("email_in_use") from exc
    LOG.info("User signed up id=%s role=%s", user.id, role)
    payload = _session_payload(user)
    if referral_code:
        try:
            payload["referral"] = wallet_service.redeem_referral(referral_code, user.id)
        except wallet_service.ReferralCodeError as exc:
            # the account is already created; report the code problem alongside it
            LOG.warning("Referral redemption failed user_id=%s code=%s: %s", user.id, referral_code, exc)
            payload["referral_error"] = str(exc)
    return payload


def signin(*, email: Any, password: Any) -> Dict[str, Any]:
    normalized = normalize_email(email)
    user = users_repo.get_user_by_email(normalized) if normalized else None
    if not user or not isinstance(password, str) or not check_password_hash(user.password_hash, password):
        raise InvalidCredentialsError("invalid_credentials")
    return _session_payload(user)


def me(user_id: int) -> Dict[str, Any]:
    user = users_repo.get_user(user_id)
    if not user:
        raise UserNotFoundError("user_not_found")
    return user.as_dict()


def change_password(user_id: int, current_password: Any, new_password: Any) -> None:
    user = users_repo.get_user(user_id)
    if not user:
        raise UserNotFoundError("user_not_found")
    if not isinstance(current_password, str) or not check_password_hash(user.password_hash, current_password):
        raise InvalidCredentialsError("current_password_incorrect")
    _require_password(new_password)
    users_repo.update_user(user_id, password_hash=generate_password_hash(new_password))
    LOG.info("Password changed user_id=%s", user_id)


def forgot_password(email: Any) -> Optional[str]:
    """Issue a reset link for known emails.

    Returns the link (for logging / tests); callers always answer with
    FORGOT_PASSWORD_MESSAGE so account existence is not revealed.
    """
    normalized = normalize_email(email)
    user = users_repo.get_user_by_email(normalized) if normalized else None
    if not user:
        LOG.info("Password reset requested for unknown email")
        return None
    token = token_service.issue_reset_token(user.id, user.email, user.password_hash)
    link = f"{app_config.frontend_url()}/reset-password?token={token}"
    LOG.info("Password reset link issued user_id=%s link=%s", user.id, link)
    return link


def reset_password(token: Any, new_password: Any) -> None:
    _require_password(new_password)
    try:
        claims = token_service.decode_reset_token(token)
    except token_service.TokenError as exc:
        raise ResetTokenError("invalid_or_expired_token") from exc
    user = users_repo.get_user(claims["user_id"])
    if not user:
        raise ResetTokenError("invalid_or_expired_token")
    if claims.get("fingerprint") != token_service.password_fingerprint(user.password_hash):
        raise ResetTokenError("token_already_used")
    users_repo.update_user(user.id, password_hash=generate_password_hash(new_password))
    LOG.info("Password reset completed user_id=%s", user.id)


def ensure_admin_account(email: str, password: Optional[str]) -> Optional[int]:
    """Create the bootstrap admin when a password is configured."""
    if not password:
        return None
    normalized = normalize_email(email)
    existing = users_repo.get_user_by_email(normalized)
    if existing:
        if existing.role != constants.ROLE_ADMIN:
            users_repo.update_user(existing.id, role=constants.ROLE_ADMIN)
        return existing.id
    user = users_repo.create_user(
        normalized,
        generate_password_hash(password),
        name="Administrator",
        role=constants.ROLE_ADMIN,
    )
    LOG.info("Bootstrap admin created id=%s", user.id)
    return user.id


__all__ = [
    "AuthError",
    "AuthValidationError",
    "InvalidCredentialsError",
    "EmailInUseError",
    "UserNotFoundError",
    "ResetTokenError",
    "FORGOT_PASSWORD_MESSAGE",
    "signup",
    "signin",
    "me",
    "change_password",
    "forgot_password",
    "reset_password",
    "ensure_admin_account",
]
