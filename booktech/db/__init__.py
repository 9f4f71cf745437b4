"""Persistence for the store: models, engine and the ``app_session`` unit of work."""

from .engine import app_session, get_engine, init_engine_once, remove_scoped_session

__all__ = ["app_session", "get_engine", "init_engine_once", "remove_scoped_session"]
