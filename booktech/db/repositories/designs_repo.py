"""Repository helpers for author book designs."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from booktech.db import app_session
from booktech.db.models import BookDesign

_UPDATABLE = {
    "title",
    "author",
    "description",
    "cover_image_url",
    "content",
    "formatting",
    "category",
    "tags",
    "is_free",
    "price",
    "is_premium",
    "status",
}
_COUNTERS = {"read_count": BookDesign.read_count, "purchase_count": BookDesign.purchase_count}


def create_design(**fields: Any) -> BookDesign:
    row = BookDesign(**fields)
    with app_session() as session:
        session.add(row)
    return row


def get_design(design_id: int) -> Optional[BookDesign]:
    with app_session() as session:
        return session.query(BookDesign).filter(BookDesign.id == design_id).one_or_none()


def list_designs(*, status: Optional[str] = None, author_id: Optional[int] = None) -> List[BookDesign]:
    with app_session() as session:
        query = session.query(BookDesign)
        if status:
            query = query.filter(BookDesign.status == status)
        if author_id is not None:
            query = query.filter(BookDesign.author_id == author_id)
        return query.order_by(BookDesign.created_at.desc(), BookDesign.id.desc()).all()


def update_design(
    design_id: int,
    fields: Dict[str, Any],
    *,
    author_id: Optional[int] = None,
    unless_status: Optional[str] = None,
) -> Optional[BookDesign]:
    """Apply ``fields`` and return the row, or None when nothing matched.

    ``author_id`` restricts the update to the owner's design and
    ``unless_status`` skips rows currently in that status; both are part of
    the UPDATE so a concurrent approval cannot slip between check and write.
    """
    unknown = set(fields) - _UPDATABLE
    if unknown:
        raise ValueError(f"unsupported design fields: {sorted(unknown)}")
    values = {getattr(BookDesign, key): value for key, value in fields.items()}
    with app_session() as session:
        query = session.query(BookDesign).filter(BookDesign.id == design_id)
        if author_id is not None:
            query = query.filter(BookDesign.author_id == author_id)
        if unless_status:
            query = query.filter(BookDesign.status != unless_status)
        if values and not query.update(values, synchronize_session=False):
            return None
        return session.query(BookDesign).filter(BookDesign.id == design_id).one_or_none()


def delete_design(design_id: int, *, author_id: Optional[int] = None) -> bool:
    with app_session() as session:
        query = session.query(BookDesign).filter(BookDesign.id == design_id)
        if author_id is not None:
            query = query.filter(BookDesign.author_id == author_id)
        return bool(query.delete(synchronize_session=False))


def increment(design_id: int, counter: str, *, status: Optional[str] = None) -> Optional[int]:
    """Bump ``read_count`` or ``purchase_count`` in place; returns the new value."""
    column = _COUNTERS[counter]
    with app_session() as session:
        query = session.query(BookDesign).filter(BookDesign.id == design_id)
        if status:
            query = query.filter(BookDesign.status == status)
        if not query.update({column: column + 1}, synchronize_session=False):
            return None
        return session.query(column).filter(BookDesign.id == design_id).scalar()


__all__ = [
    "create_design",
    "get_design",
    "list_designs",
    "update_design",
    "delete_design",
    "increment",
]
