"""Profile reads and edits for the signed-in user."""
from __future__ import annotations

from typing import Any, Dict
from urllib.parse import urlparse

from booktech.db.repositories import users_repo
from booktech.utils.identity import normalize_email
from booktech.utils.logging import get_logger

LOG = get_logger("users_service")


class ProfileError(RuntimeError):
    pass


class ProfileValidationError(ValueError):
    pass


def get_profile(user_id: int) -> Dict[str, Any]:
    user = users_repo.get_user(user_id)
    if not user:
        raise ProfileError("user_not_found")
    return user.as_dict()


def _valid_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def update_profile(user_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    if "name" in payload:
        name = (payload.get("name") or "").strip()
        if not name:
            raise ProfileValidationError("name_required")
        fields["name"] = name
    if "email" in payload:
        email = normalize_email(payload.get("email"))
        if not email or "@" not in email:
            raise ProfileValidationError("email_invalid")
        fields["email"] = email
    if "avatar" in payload:
        avatar = (payload.get("avatar") or "").strip() or None
        if avatar and not _valid_url(avatar):
            raise ProfileValidationError("avatar_invalid")
        fields["avatar"] = avatar
    if "phone" in payload:
        fields["phone"] = (payload.get("phone") or "").strip() or None
    if not fields:
        return get_profile(user_id)
    try:
        user = users_repo.update_user(user_id, **fields)
    except users_repo.UserExistsError as exc:
        raise ProfileError("email_in_use") from exc
    if not user:
        raise ProfileError("user_not_found")
    LOG.info("Profile updated user_id=%s fields=%s", user_id, sorted(fields))
    return user.as_dict()


__all__ = ["ProfileError", "ProfileValidationError", "get_profile", "update_profile"]
