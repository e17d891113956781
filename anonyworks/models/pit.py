from datetime import datetime, timezone
from uuid import uuid4
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship

from anonyworks.db.base import Base


def _utcnow():
    return datetime.now(timezone.utc)


class Pit(Base):
    """Time-boxed anonymous feedback session owned by an account."""
    __tablename__ = "pits"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    creator_id = Column(Uuid(as_uuid=True), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False, default="Anonymous Feedback")
    is_active = Column(Boolean, nullable=False, default=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    creator = relationship("Account", back_populates="pits")
    messages = relationship(
        "PitMessage",
        back_populates="pit",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PitMessage.created_at.desc()",
    )


class PitMessage(Base):
    """A single anonymous submission. Immutable once written."""
    __tablename__ = "messages"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    pit_id = Column(Uuid(as_uuid=True), ForeignKey("pits.id", ondelete="CASCADE"), nullable=False, index=True)

    original_message = Column(Text, nullable=False)
    processed_message = Column(Text, nullable=True)
    is_professional = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    pit = relationship("Pit", back_populates="messages")
