"""Service layer: one module per area, imported by routes as modules.

Example: ``from booktech.services import cart_service``.
"""

__all__ = [
    "admin_service",
    "analytics_service",
    "auth_service",
    "books_service",
    "cart_service",
    "checkout_service",
    "delivery_service",
    "design_service",
    "notifications_service",
    "orders_service",
    "payment_gateway",
    "reading_service",
    "subscription_service",
    "support_service",
    "token_service",
    "users_service",
    "wallet_service",
    "wishlist_service",
]
