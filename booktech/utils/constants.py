"""Enumerated values shared by models, services and routes."""
from __future__ import annotations

ROLE_CUSTOMER = "customer"
ROLE_AUTHOR = "author"
ROLE_ADMIN = "admin"
ROLE_DELIVERY = "delivery_boy"
ROLES = (ROLE_CUSTOMER, ROLE_AUTHOR, ROLE_ADMIN, ROLE_DELIVERY)
SELF_SIGNUP_ROLES = (ROLE_CUSTOMER, ROLE_AUTHOR)

SUBSCRIPTIONS = ("none", "basic", "premium", "enterprise")

BOOK_PENDING = "pending"
BOOK_APPROVED = "approved"
BOOK_REJECTED = "rejected"
READING_TYPES = ("soft", "hard")

# Order fulfilment: forward chain plus cancellation from the early states.
ORDER_STATUSES = ("pending", "confirmed", "processing", "shipped", "delivered", "cancelled")
ORDER_TRANSITIONS = {
    "pending": ("confirmed", "cancelled"),
    "confirmed": ("processing", "cancelled"),
    "processing": ("shipped",),
    "shipped": ("delivered",),
    "delivered": (),
    "cancelled": (),
}
PAYMENT_STATUSES = ("pending", "completed", "failed")

DELIVERY_TRANSITIONS = {
    "assigned": ("picked_up",),
    "picked_up": ("in_transit",),
    "in_transit": ("delivered", "failed"),
    "delivered": (),
    "failed": (),
}

TRANSACTION_TYPES = ("credit", "debit", "referral", "settlement", "purchase")
TRANSACTION_STATUSES = ("pending", "completed", "failed")

SETTLEMENT_TRANSITIONS = {
    "pending": ("processing", "completed", "rejected"),
    "processing": ("completed", "rejected"),
    "completed": (),
    "rejected": (),
}
MIN_SETTLEMENT_AMOUNT = 100

TICKET_CATEGORIES = ("order", "payment", "delivery", "technical", "account", "refund", "general")
TICKET_PRIORITIES = ("low", "medium", "high", "urgent")
TICKET_TRANSITIONS = {
    "open": ("in-progress", "resolved", "closed"),
    "in-progress": ("resolved", "closed", "open"),
    "resolved": ("closed", "open"),
    "closed": (),
}

NOTIFICATION_TYPES = ("info", "success", "warning", "error")

__all__ = [name for name in dir() if name.isupper()]
