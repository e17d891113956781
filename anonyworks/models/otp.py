from datetime import datetime, timezone
from sqlalchemy import Column, DateTime, String

from anonyworks.db.base import Base


class OneTimeCode(Base):
    """Short-lived, single-use code proving control of an email address.

    One row per email: issuing a new code overwrites the previous one in place.
    Only the SHA-256 of ``email:code`` is stored.
    """
    __tablename__ = "otp_codes"

    email = Column(String(320), primary_key=True)
    code_hash = Column(String(128), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
