"""Repository helpers for subscription plans."""
from __future__ import annotations

from typing import Any, List, Optional

from sqlalchemy.exc import IntegrityError

from booktech.db import app_session
from booktech.db.models import Plan
from booktech.db.models.base import dump_json


class PlanExistsError(Exception):
    """Raised when a plan name is already taken."""


def list_plans() -> List[Plan]:
    with app_session() as session:
        return session.query(Plan).order_by(Plan.price.asc(), Plan.id.asc()).all()


def get_plan_by_name(name: str) -> Optional[Plan]:
    with app_session() as session:
        return session.query(Plan).filter(Plan.name.ilike(name)).one_or_none()


def create_plan(name: str, price: float, features: List[str], is_popular: bool = False) -> Plan:
    row = Plan(name=name, price=price, features=dump_json(features), is_popular=is_popular)
    try:
        with app_session() as session:
            session.add(row)
    except IntegrityError as exc:
        raise PlanExistsError(name) from exc
    return row


def update_plan(plan_id: int, **fields: Any) -> Optional[Plan]:
    if "features" in fields:
        fields["features"] = dump_json(fields["features"])
    try:
        with app_session() as session:
            row = session.query(Plan).filter(Plan.id == plan_id).one_or_none()
            if not row:
                return None
            for key in ("name", "price", "features", "is_popular"):
                if key in fields:
                    setattr(row, key, fields[key])
            return row
    except IntegrityError as exc:
        raise PlanExistsError(fields.get("name")) from exc


def delete_plan(plan_id: int) -> bool:
    with app_session() as session:
        return bool(session.query(Plan).filter(Plan.id == plan_id).delete(synchronize_session=False))


def ensure_plan(name: str, price: float, features: List[str], is_popular: bool = False) -> Plan:
    """Insert the plan unless one with this name already exists."""
    with app_session() as session:
        row = session.query(Plan).filter(Plan.name == name).one_or_none()
        if row:
            return row
        row = Plan(name=name, price=price, features=dump_json(features), is_popular=is_popular)
        session.add(row)
        return row


__all__ = [
    "PlanExistsError",
    "list_plans",
    "get_plan_by_name",
    "create_plan",
    "update_plan",
    "delete_plan",
    "ensure_plan",
]
