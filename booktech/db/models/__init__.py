"""ORM models aggregate exports.

Importing this package registers every table on ``Base.metadata`` so
``create_all`` sees the full schema.
"""
from .base import Base  # noqa: F401
from .users import User, Notification, Plan  # noqa: F401
from .catalog import Book, Review, ModerationLog, WishlistItem  # noqa: F401
from .designs import BookDesign  # noqa: F401
from .commerce import CartItem, Order, OrderItem, Delivery  # noqa: F401
from .reading import ReadingProgress, Bookmark  # noqa: F401
from .ledger import Transaction, ReferralCode, SettlementRequest  # noqa: F401
from .support import SupportMessage, Ticket, TicketReply  # noqa: F401

__all__ = [
	"Base",
	"User",
	"Notification",
	"Plan",
	"Book",
	"Review",
	"ModerationLog",
	"BookDesign",
	"WishlistItem",
	"CartItem",
	"Order",
	"OrderItem",
	"Delivery",
	"ReadingProgress",
	"Bookmark",
	"Transaction",
	"ReferralCode",
	"SettlementRequest",
	"SupportMessage",
	"Ticket",
	"TicketReply",
]
