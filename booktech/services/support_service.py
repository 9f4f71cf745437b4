"""Contact messages, support tickets and the help-centre catalogue."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from booktech.db.repositories import support_repo
from booktech.services import notifications_service
from booktech.utils import constants
from booktech.utils.identity import normalize_email
from booktech.utils.logging import get_logger

LOG = get_logger("support_service")

HELP_ARTICLES = (
    {
        "id": 1,
        "title": "How do I track my order?",
        "category": "order",
        "content": "Open Orders from your dashboard to see the live status of every order.",
        "helpful": 42,
    },
    {
        "id": 2,
        "title": "My payment failed but money was debited",
        "category": "payment",
        "content": "Failed payments are reversed by the bank within 5-7 working days.",
        "helpful": 31,
    },
    {
        "id": 3,
        "title": "When will my hard copy arrive?",
        "category": "delivery",
        "content": "Hard copies ship once the author confirms the order and usually arrive within a week.",
        "helpful": 18,
    },
    {
        "id": 4,
        "title": "The reader does not remember my page",
        "category": "technical",
        "content": "Progress syncs every few seconds while you are online; stay signed in on every device.",
        "helpful": 25,
    },
    {
        "id": 5,
        "title": "How do I reset my password?",
        "category": "account",
        "content": "Use Forgot password on the sign-in page and follow the emailed link within an hour.",
        "helpful": 37,
    },
    {
        "id": 6,
        "title": "Can I get a refund for an e-book?",
        "category": "refund",
        "content": "Refunds are available within 7 days if less than 10% of the book was read.",
        "helpful": 12,
    },
    {
        "id": 7,
        "title": "How do referral rewards work?",
        "category": "general",
        "content": "Share a referral code; you and your friend both get a wallet credit when they sign up.",
        "helpful": 20,
    },
)


class SupportError(RuntimeError):
    pass


class SupportValidationError(ValueError):
    pass


class TicketNotFoundError(SupportError):
    pass


class TicketTransitionError(SupportError):
    pass


def _text(raw: Any, code: str) -> str:
    value = raw.strip() if isinstance(raw, str) else ""
    if not value:
        raise SupportValidationError(code)
    return value


def submit_message(message: Any, *, email: Any = None, user_id: Optional[int] = None) -> Dict[str, Any]:
    row = support_repo.create_message(_text(message, "message_required"), user_id=user_id, email=normalize_email(email))
    LOG.info("Support message received id=%s user_id=%s", row.id, user_id)
    return row.as_dict()


def create_ticket(user_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
    category = payload.get("category") or "general"
    priority = payload.get("priority") or "medium"
    if category not in constants.TICKET_CATEGORIES:
        raise SupportValidationError("category_invalid")
    if priority not in constants.TICKET_PRIORITIES:
        raise SupportValidationError("priority_invalid")
    row = support_repo.create_ticket(
        user_id,
        _text(payload.get("subject"), "subject_required"),
        _text(payload.get("description"), "description_required"),
        category,
        priority,
    )
    LOG.info("Ticket opened id=%s user_id=%s category=%s", row.id, user_id, category)
    return row.as_dict()


def _detail(ticket) -> Dict[str, Any]:
    data = ticket.as_dict()
    data["replies"] = [r.as_dict() for r in support_repo.list_replies(ticket.id)]
    return data


def list_tickets(user_id: int) -> List[Dict[str, Any]]:
    return [t.as_dict() for t in support_repo.list_tickets(user_id=user_id)]


def _visible_ticket(ticket_id: int, viewer: Dict[str, Any]):
    ticket = support_repo.get_ticket(ticket_id)
    if not ticket:
        raise TicketNotFoundError("ticket_not_found")
    if viewer.get("role") != constants.ROLE_ADMIN and ticket.user_id != viewer.get("id"):
        raise TicketNotFoundError("ticket_not_found")
    return ticket


def get_ticket(ticket_id: int, viewer: Dict[str, Any]) -> Dict[str, Any]:
    return _detail(_visible_ticket(ticket_id, viewer))


def reply(ticket_id: int, viewer: Dict[str, Any], message: Any) -> Dict[str, Any]:
    ticket = _visible_ticket(ticket_id, viewer)
    if ticket.status == "closed":
        raise TicketTransitionError("ticket_closed")
    is_staff = viewer.get("role") == constants.ROLE_ADMIN
    support_repo.add_reply(ticket.id, viewer["id"], _text(message, "message_required"), is_staff=is_staff)
    if is_staff and ticket.user_id != viewer["id"]:
        notifications_service.notify(ticket.user_id, f"Support replied to your ticket '{ticket.subject}'.")
    return _detail(support_repo.get_ticket(ticket.id))


def admin_list(status: Optional[str] = None) -> List[Dict[str, Any]]:
    return [t.as_dict() for t in support_repo.list_tickets(status=status or None)]


def set_status(ticket_id: int, status: Any) -> Dict[str, Any]:
    ticket = support_repo.get_ticket(ticket_id)
    if not ticket:
        raise TicketNotFoundError("ticket_not_found")
    if status not in constants.TICKET_TRANSITIONS.get(ticket.status, ()):
        raise TicketTransitionError(f"cannot_move_{ticket.status}_to_{status}")
    ticket = support_repo.set_ticket_status(ticket.id, status)
    notifications_service.notify(ticket.user_id, f"Your ticket '{ticket.subject}' is now {status}.")
    LOG.info("Ticket id=%s -> %s", ticket.id, status)
    return _detail(ticket)


def help_articles(category: Optional[str] = None) -> List[Dict[str, Any]]:
    return [dict(a) for a in HELP_ARTICLES if not category or a["category"] == category]


__all__ = [
    "HELP_ARTICLES",
    "SupportError",
    "SupportValidationError",
    "TicketNotFoundError",
    "TicketTransitionError",
    "submit_message",
    "create_ticket",
    "list_tickets",
    "get_ticket",
    "reply",
    "admin_list",
    "set_status",
    "help_articles",
]
