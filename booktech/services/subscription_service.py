"""Subscription plans and the user's current subscription."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from booktech import config as app_config
from booktech.db.repositories import plans_repo, users_repo
from booktech.services import notifications_service, payment_gateway
from booktech.utils import constants
from booktech.utils.currency import as_float, to_decimal
from booktech.utils.identity import normalize_email
from booktech.utils.logging import get_logger

LOG = get_logger("subscription_service")

DEFAULT_PLANS = (
    ("Basic", 9.99, ["Access to 1000+ books", "Standard support", "Basic reading features"], False),
    (
        "Premium",
        19.99,
        ["Access to all books", "Priority support", "Advanced reading features", "Offline reading"],
        True,
    ),
    (
        "Enterprise",
        39.99,
        ["Everything in Premium", "Team collaboration", "Admin dashboard", "Custom integrations"],
        False,
    ),
)


class SubscriptionError(RuntimeError):
    pass


class SubscriptionValidationError(ValueError):
    pass


class PlanNotFoundError(SubscriptionError):
    pass


class GatewayUnavailableError(SubscriptionError):
    pass


def seed_default_plans() -> int:
    for name, price, features, popular in DEFAULT_PLANS:
        plans_repo.ensure_plan(name, price, features, popular)
    return len(DEFAULT_PLANS)


def list_plans() -> List[Dict[str, Any]]:
    return [row.as_dict() for row in plans_repo.list_plans()]


def _plan_fields(payload: Dict[str, Any], *, creating: bool) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    if creating or "name" in payload:
        name = (payload.get("name") or "").strip()
        if not name:
            raise SubscriptionValidationError("name_required")
        if name.lower() not in constants.SUBSCRIPTIONS:
            raise SubscriptionValidationError("plan_name_invalid")
        fields["name"] = name
    if creating or "price" in payload:
        price = to_decimal(payload.get("price"))
        if price <= 0:
            raise SubscriptionValidationError("price_invalid")
        fields["price"] = as_float(price)
    if creating or "features" in payload:
        features = payload.get("features") or []
        if not isinstance(features, list):
            raise SubscriptionValidationError("features_invalid")
        fields["features"] = [str(f).strip() for f in features if str(f).strip()]
    if "is_popular" in payload:
        fields["is_popular"] = bool(payload.get("is_popular"))
    return fields


def create_plan(payload: Dict[str, Any]) -> Dict[str, Any]:
    fields = _plan_fields(payload, creating=True)
    try:
        row = plans_repo.create_plan(**fields)
    except plans_repo.PlanExistsError as exc:
        raise SubscriptionError("plan_exists") from exc
    return row.as_dict()


def update_plan(plan_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
    fields = _plan_fields(payload, creating=False)
    try:
        row = plans_repo.update_plan(plan_id, **fields)
    except plans_repo.PlanExistsError as exc:
        raise SubscriptionError("plan_exists") from exc
    if not row:
        raise PlanNotFoundError("plan_not_found")
    return row.as_dict()


def delete_plan(plan_id: int) -> None:
    if not plans_repo.delete_plan(plan_id):
        raise PlanNotFoundError("plan_not_found")


def _normalize_plan(plan: Any) -> str:
    value = plan.strip().lower() if isinstance(plan, str) and plan.strip() else "premium"
    if value not in constants.SUBSCRIPTIONS or value == "none":
        raise SubscriptionValidationError("plan_invalid")
    return value


def get_subscription(user_id: int) -> Dict[str, Any]:
    user = users_repo.get_user(user_id)
    if not user:
        raise SubscriptionError("user_not_found")
    return {"subscription": user.subscription}


def subscribe(user_id: int, plan: Any) -> Dict[str, Any]:
    value = _normalize_plan(plan)
    user = users_repo.update_user(user_id, subscription=value)
    if not user:
        raise SubscriptionError("user_not_found")
    LOG.info("Subscription set user_id=%s plan=%s", user_id, value)
    return {"subscription": user.subscription}


def cancel(user_id: int) -> Dict[str, Any]:
    user = users_repo.update_user(user_id, subscription="none")
    if not user:
        raise SubscriptionError("user_not_found")
    LOG.info("Subscription cancelled user_id=%s", user_id)
    return {"subscription": user.subscription}


def subscribe_with_payment(user: Dict[str, Any], plan: Any) -> Dict[str, Any]:
    """Create a gateway link for a plan; demo mode activates it directly."""
    value = _normalize_plan(plan)
    row = plans_repo.get_plan_by_name(value)
    if not row:
        raise PlanNotFoundError("plan_not_found")
    ok, payload = payment_gateway.create_payment_link(
        amount=row.price,
        description=f"{payment_gateway.SUBSCRIPTION_PREFIX} {row.name}",
        customer=user,
        callback_path="/subscription-success",
    )
    if ok:
        return {"status": "created", "payment_link": payload["short_url"], "plan": row.as_dict()}
    if not app_config.demo_orders_enabled():
        raise GatewayUnavailableError("payment_gateway_unavailable")
    LOG.warning("Gateway unavailable (%s); activating demo subscription user_id=%s", payload.get("error"), user["id"])
    result = subscribe(user["id"], value)
    return {"status": "demo", "subscription": result["subscription"], "plan": row.as_dict()}


def apply_paid_subscription(email: Any, description: str) -> Optional[int]:
    """Webhook side: set the plan named in a paid link's description."""
    plan = description[len(payment_gateway.SUBSCRIPTION_PREFIX):].strip().lower()
    normalized = normalize_email(email)
    user = users_repo.get_user_by_email(normalized) if normalized else None
    if not user or plan not in constants.SUBSCRIPTIONS:
        LOG.warning("Paid subscription could not be applied email=%s plan=%s", normalized, plan)
        return None
    users_repo.update_user(user.id, subscription=plan)
    notifications_service.notify(user.id, f"Your {plan} subscription is now active.", "success")
    LOG.info("Subscription activated via webhook user_id=%s plan=%s", user.id, plan)
    return user.id


__all__ = [
    "DEFAULT_PLANS",
    "SubscriptionError",
    "SubscriptionValidationError",
    "PlanNotFoundError",
    "GatewayUnavailableError",
    "seed_default_plans",
    "list_plans",
    "create_plan",
    "update_plan",
    "delete_plan",
    "get_subscription",
    "subscribe",
    "cancel",
    "subscribe_with_payment",
    "apply_paid_subscription",
]
