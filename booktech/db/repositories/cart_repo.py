"""Repository helpers for cart and wishlist rows."""
from __future__ import annotations

from typing import List, Optional, Tuple

from booktech.db import app_session
from booktech.db.models import CartItem, WishlistItem


def list_items(user_id: int) -> List[CartItem]:
    with app_session() as session:
        return (
            session.query(CartItem)
            .filter(CartItem.user_id == user_id)
            .order_by(CartItem.added_at.asc(), CartItem.id.asc())
            .all()
        )


def add_item(user_id: int, book_id: int, quantity: int = 1) -> CartItem:
    """Insert or merge: an existing (user, book) row gets its quantity bumped."""
    with app_session() as session:
        item = (
            session.query(CartItem)
            .filter(CartItem.user_id == user_id, CartItem.book_id == book_id)
            .one_or_none()
        )
        if item:
            item.quantity = (item.quantity or 0) + quantity
            return item
        item = CartItem(user_id=user_id, book_id=book_id, quantity=quantity)
        session.add(item)
        return item


def set_quantity(user_id: int, item_id: int, quantity: int) -> Tuple[bool, Optional[CartItem]]:
    """Returns (found, item). A quantity of zero or less removes the row."""
    with app_session() as session:
        item = (
            session.query(CartItem)
            .filter(CartItem.id == item_id, CartItem.user_id == user_id)
            .one_or_none()
        )
        if not item:
            return False, None
        if quantity <= 0:
            session.delete(item)
            return True, None
        item.quantity = quantity
        return True, item


def remove_item(user_id: int, item_id: int) -> bool:
    with app_session() as session:
        deleted = (
            session.query(CartItem)
            .filter(CartItem.id == item_id, CartItem.user_id == user_id)
            .delete(synchronize_session=False)
        )
        return bool(deleted)


def clear(user_id: int) -> int:
    with app_session() as session:
        return session.query(CartItem).filter(CartItem.user_id == user_id).delete(synchronize_session=False)


def list_wishlist(user_id: int) -> List[WishlistItem]:
    with app_session() as session:
        return (
            session.query(WishlistItem)
            .filter(WishlistItem.user_id == user_id)
            .order_by(WishlistItem.created_at.desc(), WishlistItem.id.desc())
            .all()
        )


def add_wishlist(user_id: int, book_id: int) -> Tuple[WishlistItem, bool]:
    with app_session() as session:
        existing = (
            session.query(WishlistItem)
            .filter(WishlistItem.user_id == user_id, WishlistItem.book_id == book_id)
            .one_or_none()
        )
        if existing:
            return existing, False
        item = WishlistItem(user_id=user_id, book_id=book_id)
        session.add(item)
        return item, True


def remove_wishlist(user_id: int, book_id: int) -> bool:
    with app_session() as session:
        deleted = (
            session.query(WishlistItem)
            .filter(WishlistItem.user_id == user_id, WishlistItem.book_id == book_id)
            .delete(synchronize_session=False)
        )
        return bool(deleted)


__all__ = [
    "list_items",
    "add_item",
    "set_quantity",
    "remove_item",
    "clear",
    "list_wishlist",
    "add_wishlist",
    "remove_wishlist",
]
