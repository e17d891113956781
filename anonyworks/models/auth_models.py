from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4
from sqlalchemy import Column, String, DateTime, Boolean, Uuid, Enum as SAEnum
from sqlalchemy.orm import relationship

from anonyworks.db.base import Base


def _utcnow():
    return datetime.now(timezone.utc)


class AccountType(str, Enum):
    INDIVIDUAL = "individual"
    ORGANIZATION = "organization"


class Account(Base):
    __tablename__ = "accounts"
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    email = Column(String(320), unique=True, index=True, nullable=False)  # store lowercase
    name = Column(String(255), nullable=False)
    account_type = Column(
        SAEnum(AccountType, name="account_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=AccountType.INDIVIDUAL,
    )
    password_hash = Column(String(255), nullable=True)  # None for Google-only accounts
    google_sub = Column(String(128), nullable=True, unique=True)
    is_verified = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    pits = relationship("Pit", back_populates="creator", passive_deletes=True)
