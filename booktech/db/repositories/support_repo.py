"""Repository helpers for contact messages and support tickets."""
from __future__ import annotations

from typing import List, Optional

from booktech.db import app_session
from booktech.db.models import SupportMessage, Ticket, TicketReply


def create_message(message: str, *, user_id: Optional[int] = None, email: Optional[str] = None) -> SupportMessage:
    row = SupportMessage(user_id=user_id, email=email, message=message)
    with app_session() as session:
        session.add(row)
    return row


def create_ticket(user_id: int, subject: str, description: str, category: str, priority: str) -> Ticket:
    row = Ticket(
        user_id=user_id,
        subject=subject,
        description=description,
        category=category,
        priority=priority,
    )
    with app_session() as session:
        session.add(row)
    return row


def get_ticket(ticket_id: int) -> Optional[Ticket]:
    with app_session() as session:
        return session.query(Ticket).filter(Ticket.id == ticket_id).one_or_none()


def list_tickets(user_id: Optional[int] = None, status: Optional[str] = None) -> List[Ticket]:
    with app_session() as session:
        query = session.query(Ticket)
        if user_id is not None:
            query = query.filter(Ticket.user_id == user_id)
        if status:
            query = query.filter(Ticket.status == status)
        return query.order_by(Ticket.updated_at.desc(), Ticket.id.desc()).all()


def set_ticket_status(ticket_id: int, status: str) -> Optional[Ticket]:
    with app_session() as session:
        row = session.query(Ticket).filter(Ticket.id == ticket_id).one_or_none()
        if not row:
            return None
        row.status = status
        return row


def add_reply(ticket_id: int, user_id: int, message: str, *, is_staff: bool = False) -> TicketReply:
    row = TicketReply(ticket_id=ticket_id, user_id=user_id, message=message, is_staff=is_staff)
    with app_session() as session:
        session.add(row)
    return row


def list_replies(ticket_id: int) -> List[TicketReply]:
    with app_session() as session:
        return (
            session.query(TicketReply)
            .filter(TicketReply.ticket_id == ticket_id)
            .order_by(TicketReply.created_at.asc(), TicketReply.id.asc())
            .all()
        )


__all__ = [
    "create_message",
    "create_ticket",
    "get_ticket",
    "list_tickets",
    "set_ticket_status",
    "add_reply",
    "list_replies",
]
