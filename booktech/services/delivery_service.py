"""Delivery assignments and the delivery-boy workflow."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from booktech.db.repositories import orders_repo, users_repo
from booktech.services import notifications_service
from booktech.utils import constants
from booktech.utils.logging import get_logger

LOG = get_logger("delivery_service")


class DeliveryError(RuntimeError):
    pass


class DeliveryNotFoundError(DeliveryError):
    pass


class DeliveryTransitionError(DeliveryError):
    pass


def assign(order_id: int, delivery_boy_id: Any, notes: Optional[str] = None) -> Dict[str, Any]:
    order = orders_repo.get_order(order_id)
    if not order:
        raise DeliveryNotFoundError("order_not_found")
    try:
        courier = users_repo.get_user(int(delivery_boy_id))
    except (TypeError, ValueError):
        courier = None
    if not courier or courier.role != constants.ROLE_DELIVERY:
        raise DeliveryError("delivery_boy_not_found")
    if order.status in ("cancelled", "delivered"):
        raise DeliveryTransitionError("order_not_deliverable")
    try:
        delivery = orders_repo.create_delivery(order.id, courier.id, notes)
    except orders_repo.DeliveryExistsError as exc:
        raise DeliveryError("order_already_assigned") from exc
    notifications_service.notify(courier.id, f"Order {order.order_number} was assigned to you.")
    LOG.info("Order id=%s assigned to delivery_boy=%s", order.id, courier.id)
    return delivery.as_dict()


def _payload(delivery) -> Dict[str, Any]:
    data = delivery.as_dict()
    order = orders_repo.get_order(delivery.order_id)
    data["order"] = order.as_dict() if order else None
    return data


def list_for(delivery_boy_id: int, status: Optional[str] = None) -> List[Dict[str, Any]]:
    if status and status not in constants.DELIVERY_TRANSITIONS:
        raise DeliveryError("status_invalid")
    return [_payload(d) for d in orders_repo.list_deliveries(delivery_boy_id, status)]


def stats(delivery_boy_id: int) -> Dict[str, int]:
    counts = {status: 0 for status in constants.DELIVERY_TRANSITIONS}
    for delivery in orders_repo.list_deliveries(delivery_boy_id):
        counts[delivery.status] = counts.get(delivery.status, 0) + 1
    counts["total"] = sum(counts.values())
    return counts


def update_status(delivery_boy_id: int, delivery_id: int, status: Any, notes: Optional[str] = None) -> Dict[str, Any]:
    delivery = orders_repo.get_delivery(delivery_id)
    if not delivery or delivery.delivery_boy_id != delivery_boy_id:
        raise DeliveryNotFoundError("delivery_not_found")
    if status not in constants.DELIVERY_TRANSITIONS.get(delivery.status, ()):
        raise DeliveryTransitionError(f"cannot_move_{delivery.status}_to_{status}")
    fields: Dict[str, Any] = {"status": status}
    if notes:
        fields["notes"] = notes
    if status == "delivered":
        fields["delivered_at"] = datetime.utcnow()
    delivery = orders_repo.update_delivery(delivery.id, **fields)
    order = orders_repo.get_order(delivery.order_id)
    if order and status == "delivered" and order.status != "delivered":
        orders_repo.update_order(order.id, status="delivered")
        notifications_service.notify(order.user_id, f"Order {order.order_number} was delivered.", "success")
    elif order and status == "failed":
        notifications_service.notify(order.user_id, f"Delivery of order {order.order_number} failed.", "warning")
    LOG.info("Delivery id=%s -> %s", delivery.id, status)
    return _payload(delivery)


__all__ = [
    "DeliveryError",
    "DeliveryNotFoundError",
    "DeliveryTransitionError",
    "assign",
    "list_for",
    "stats",
    "update_status",
]
