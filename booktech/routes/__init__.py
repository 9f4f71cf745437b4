"""Blueprint registration.

Called from startup to register every API blueprint on the Flask app.
"""
from __future__ import annotations

from typing import Any

from .admin import register_admin_routes
from .analytics import register_analytics_routes
from .auth import register_auth_routes
from .books import register_books_routes
from .cart import register_cart_routes
from .checkout import register_checkout_routes
from .designs import register_designs_routes
from .health import register_health
from .notifications import register_notifications_routes
from .orders import register_orders_routes
from .payments import register_payments_routes
from .subscription import register_subscription_routes
from .support import register_support_routes
from .users import register_users_routes
from .wallet import register_wallet_routes


def register_all(app: Any) -> None:
    register_health(app)
    register_auth_routes(app)
    register_users_routes(app)
    register_wallet_routes(app)
    register_books_routes(app)
    register_designs_routes(app)
    register_cart_routes(app)
    register_checkout_routes(app)
    register_payments_routes(app)
    register_orders_routes(app)
    register_notifications_routes(app)
    register_subscription_routes(app)
    register_support_routes(app)
    register_admin_routes(app)
    register_analytics_routes(app)


__all__ = ["register_all"]
