"""Author-laid-out book designs: text plus page formatting, moderated like books."""
from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Text

from .base import Base, iso, load_json, utcnow


class BookDesign(Base):
    __tablename__ = "book_designs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    author = Column(String(255), nullable=False)
    author_id = Column(Integer, nullable=False, index=True)
    description = Column(Text, nullable=True)
    cover_image_url = Column(String(500), nullable=False)
    content = Column(Text, nullable=False)
    formatting = Column(Text, nullable=True)  # JSON object
    category = Column(String(64), nullable=True)
    tags = Column(Text, nullable=True)  # JSON array
    is_free = Column(Boolean, nullable=False, default=True)
    price = Column(Float, nullable=False, default=0.0)
    is_premium = Column(Boolean, nullable=False, default=False)
    status = Column(String(16), nullable=False, default="pending", index=True)
    read_count = Column(Integer, nullable=False, default=0)
    purchase_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "author_id": self.author_id,
            "description": self.description,
            "cover_image_url": self.cover_image_url,
            "content": self.content,
            "formatting": load_json(self.formatting, {}),
            "category": self.category,
            "tags": load_json(self.tags, []),
            "is_free": bool(self.is_free),
            "price": self.price,
            "is_premium": bool(self.is_premium),
            "status": self.status,
            "read_count": self.read_count or 0,
            "purchase_count": self.purchase_count or 0,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self) -> str:  # pragma: no cover
        return f"<BookDesign id={self.id} title={self.title!r} status={self.status}>"


__all__ = ["BookDesign"]
