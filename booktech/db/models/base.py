"""Declarative base plus small column helpers shared by every model."""
from __future__ import annotations

import datetime
import json
from typing import Any, Optional

from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime.datetime:
    return datetime.datetime.utcnow()


def iso(value: Optional[datetime.datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def dump_json(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value)


def load_json(raw: Optional[str], default: Any) -> Any:
    if not raw:
        return default
    try:
        return json.loads(raw)
    except ValueError:
        return default


__all__ = ["Base", "utcnow", "iso", "dump_json", "load_json"]
