"""Wishlist: saved books, optionally moved into the cart."""
from __future__ import annotations

from typing import Any, Dict, List

from booktech.db.repositories import books_repo, cart_repo
from booktech.services import cart_service
from booktech.utils.logging import get_logger

LOG = get_logger("wishlist_service")


class WishlistError(RuntimeError):
    pass


def list_wishlist(user_id: int) -> List[Dict[str, Any]]:
    items = cart_repo.list_wishlist(user_id)
    books = books_repo.get_books(item.book_id for item in items)
    return [
        dict(item.as_dict(), book=books[item.book_id].as_dict())
        for item in items
        if item.book_id in books
    ]


def add(user_id: int, book_id: int) -> Dict[str, Any]:
    if not books_repo.get_book(book_id):
        raise WishlistError("book_not_found")
    item, created = cart_repo.add_wishlist(user_id, book_id)
    return {"item": item.as_dict(), "created": created}


def remove(user_id: int, book_id: int) -> None:
    if not cart_repo.remove_wishlist(user_id, book_id):
        raise WishlistError("wishlist_item_not_found")


def move_to_cart(user_id: int, book_id: int) -> Dict[str, Any]:
    if not any(item.book_id == book_id for item in cart_repo.list_wishlist(user_id)):
        raise WishlistError("wishlist_item_not_found")
    cart = cart_service.add_to_cart(user_id, book_id)
    cart_repo.remove_wishlist(user_id, book_id)
    LOG.debug("Moved book_id=%s from wishlist to cart user_id=%s", book_id, user_id)
    return cart


__all__ = ["WishlistError", "list_wishlist", "add", "remove", "move_to_cart"]
