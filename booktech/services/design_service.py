"""Book designs: formatted author manuscripts with their own approval queue.

Authors submit a design (text, cover and page formatting); it stays
``pending`` until an admin approves or rejects it, and the author is
notified either way. Approved designs are public and can no longer be
edited by their author. Readers bump a read counter; paid designs can be
purchased, which bumps a purchase counter.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from booktech.db.models.base import dump_json
from booktech.db.repositories import designs_repo
from booktech.services import notifications_service
from booktech.utils import constants
from booktech.utils.currency import as_float, to_decimal
from booktech.utils.logging import get_logger

LOG = get_logger("design_service")

DEFAULT_FORMATTING: Dict[str, Any] = {
    "font_size": 16,
    "font_family": "Arial",
    "line_height": 1.5,
    "text_color": "#000000",
    "background_color": "#ffffff",
    "page_width": 5.5,
    "page_height": 8.5,
    "margins": {"top": 0.5, "bottom": 0.5, "left": 0.75, "right": 0.75},
}
_NUMERIC_FORMATTING = ("font_size", "line_height", "page_width", "page_height")
_REQUIRED = ("title", "author", "cover_image_url", "content")


class DesignError(RuntimeError):
    pass


class DesignValidationError(ValueError):
    pass


class DesignNotFoundError(DesignError):
    pass


class DesignLockedError(DesignError):
    """Raised when an author edits a design that is already approved."""


def _merge_formatting(raw: Any, base: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise DesignValidationError("formatting_invalid")
    merged = dict(base or DEFAULT_FORMATTING)
    merged["margins"] = dict(merged.get("margins") or DEFAULT_FORMATTING["margins"])
    for key, value in raw.items():
        if key == "margins":
            if not isinstance(value, dict):
                raise DesignValidationError("formatting_invalid")
            for side in ("top", "bottom", "left", "right"):
                if side in value:
                    merged["margins"][side] = _positive_number(value[side], allow_zero=True)
        elif key in _NUMERIC_FORMATTING:
            merged[key] = _positive_number(value)
        elif key in DEFAULT_FORMATTING:
            merged[key] = str(value)
    return merged


def _positive_number(value: Any, *, allow_zero: bool = False) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise DesignValidationError("formatting_invalid") from exc
    if number < 0 or (number == 0 and not allow_zero):
        raise DesignValidationError("formatting_invalid")
    return number


def _clean_fields(payload: Dict[str, Any], *, creating: bool, current_formatting=None) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    for key in _REQUIRED:
        if creating or key in payload:
            value = payload.get(key)
            value = value.strip() if isinstance(value, str) else ""
            if not value:
                raise DesignValidationError("design_fields_required")
            fields[key] = value
    for key in ("description", "category"):
        if key in payload:
            value = payload.get(key)
            fields[key] = value.strip() if isinstance(value, str) and value.strip() else None
    if creating or "formatting" in payload:
        fields["formatting"] = dump_json(_merge_formatting(payload.get("formatting"), current_formatting))
    if creating or "tags" in payload:
        tags = payload.get("tags") or []
        if not isinstance(tags, list):
            raise DesignValidationError("tags_invalid")
        fields["tags"] = dump_json([str(t).strip() for t in tags if str(t).strip()])
    if creating or "is_free" in payload:
        fields["is_free"] = bool(payload.get("is_free", True))
    if creating or "price" in payload:
        price = to_decimal(payload.get("price") or 0)
        if price < 0:
            raise DesignValidationError("price_invalid")
        fields["price"] = as_float(price)
    if creating or "is_premium" in payload:
        fields["is_premium"] = bool(payload.get("is_premium", False))
    return fields


def _is_staff(viewer: Optional[Dict[str, Any]], design) -> bool:
    if not viewer:
        return False
    return viewer.get("role") == constants.ROLE_ADMIN or viewer.get("id") == design.author_id


def list_public() -> List[Dict[str, Any]]:
    return [d.as_dict() for d in designs_repo.list_designs(status=constants.BOOK_APPROVED)]


def get_design(design_id: int, viewer: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    design = designs_repo.get_design(design_id)
    if not design:
        raise DesignNotFoundError("design_not_found")
    if design.status != constants.BOOK_APPROVED and not _is_staff(viewer, design):
        raise DesignNotFoundError("design_not_found")
    return design.as_dict()


def list_for_author(author_id: int) -> List[Dict[str, Any]]:
    return [d.as_dict() for d in designs_repo.list_designs(author_id=author_id)]


def create_design(author: Dict[str, Any], payload: Dict[str, Any]) -> Dict[str, Any]:
    fields = _clean_fields(payload, creating=True)
    design = designs_repo.create_design(
        author_id=author["id"], status=constants.BOOK_PENDING, **fields
    )
    LOG.info("Book design submitted id=%s author_id=%s", design.id, author["id"])
    return design.as_dict()


def update_design(author_id: int, design_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
    design = designs_repo.get_design(design_id)
    if not design or design.author_id != author_id:
        raise DesignNotFoundError("design_not_found_or_not_yours")
    if design.status == constants.BOOK_APPROVED:
        raise DesignLockedError("design_locked")
    fields = _clean_fields(payload, creating=False, current_formatting=design.as_dict()["formatting"])
    if not fields:
        raise DesignValidationError("nothing_to_update")
    updated = designs_repo.update_design(
        design_id, fields, author_id=author_id, unless_status=constants.BOOK_APPROVED
    )
    if updated is None:
        raise DesignLockedError("design_locked")
    return updated.as_dict()


def delete_design(author_id: int, design_id: int) -> None:
    if not designs_repo.delete_design(design_id, author_id=author_id):
        raise DesignNotFoundError("design_not_found_or_not_yours")
    LOG.info("Book design deleted id=%s author_id=%s", design_id, author_id)


def list_pending() -> List[Dict[str, Any]]:
    return [d.as_dict() for d in designs_repo.list_designs(status=constants.BOOK_PENDING)]


def set_status(design_id: int, status: str) -> Dict[str, Any]:
    if status not in (constants.BOOK_APPROVED, constants.BOOK_REJECTED):
        raise DesignValidationError("status_invalid")
    design = designs_repo.update_design(design_id, {"status": status})
    if not design:
        raise DesignNotFoundError("design_not_found")
    if status == constants.BOOK_APPROVED:
        notifications_service.notify(
            design.author_id,
            f'Your book design "{design.title}" has been approved and is now available for reading.',
            type="success",
        )
    else:
        notifications_service.notify(
            design.author_id,
            f'Your book design "{design.title}" has been rejected. Please review and resubmit.',
            type="warning",
        )
    LOG.info("Book design moderated id=%s status=%s", design_id, status)
    return design.as_dict()


def record_read(design_id: int) -> Dict[str, Any]:
    count = designs_repo.increment(design_id, "read_count", status=constants.BOOK_APPROVED)
    if count is None:
        raise DesignNotFoundError("design_not_found")
    return {"read_count": count}


def purchase(design_id: int, buyer_id: int) -> Dict[str, Any]:
    design = designs_repo.get_design(design_id)
    if not design or design.status != constants.BOOK_APPROVED:
        raise DesignNotFoundError("design_not_found")
    if design.is_free:
        raise DesignValidationError("design_is_free")
    count = designs_repo.increment(design_id, "purchase_count", status=constants.BOOK_APPROVED)
    if count is None:
        raise DesignNotFoundError("design_not_found")
    LOG.info("Book design purchased id=%s buyer_id=%s", design_id, buyer_id)
    return {"message": "Purchase successful", "purchase_count": count}


__all__ = [
    "DEFAULT_FORMATTING",
    "DesignError",
    "DesignValidationError",
    "DesignNotFoundError",
    "DesignLockedError",
    "list_public",
    "get_design",
    "list_for_author",
    "create_design",
    "update_design",
    "delete_design",
    "list_pending",
    "set_status",
    "record_read",
    "purchase",
]
