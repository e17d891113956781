"""
Pit lifecycle: create, list, end, delete, and the liveness check used by the
submission path.

A pit accepts submissions only while ``is_active`` is set and ``now`` is
strictly before ``expires_at``. The sweep flips ``is_active`` after expiry, but
nothing here relies on it having run.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.orm import Session

from anonyworks.core.security import now_utc, ensure_aware
from anonyworks.models.pit import Pit, PitMessage

logger = logging.getLogger(__name__)

PIT_TTL = timedelta(hours=24)
DEFAULT_TITLE = "Anonymous Feedback"


def parse_pit_id(raw) -> Optional[UUID]:
    """Return the UUID for ``raw`` or None when it is not a valid pit id."""
    if isinstance(raw, UUID):
        return raw
    try:
        return UUID(str(raw))
    except (TypeError, ValueError, AttributeError):
        return None


class SessionRegistry:

    def create(self, db: Session, owner_id: UUID, title: Optional[str] = None, now: Optional[datetime] = None) -> Pit:
        now = now or now_utc()
        title = (title or "").strip() or DEFAULT_TITLE
        pit = Pit(
            creator_id=owner_id,
            title=title,
            is_active=True,
            expires_at=now + PIT_TTL,
            created_at=now,
        )
        db.add(pit)
        db.commit()
        db.refresh(pit)
        logger.info("Pit %s created by %s, expires %s", pit.id, owner_id, pit.expires_at)
        return pit

    def list_active(self, db: Session, owner_id: UUID, now: Optional[datetime] = None) -> List[Pit]:
        """Owner's pits whose expiry has not passed, newest first.

        Filters on expiry rather than the flag so expired pits disappear before
        the sweep gets to them.
        """
        now = now or now_utc()
        return (
            db.query(Pit)
            .filter(Pit.creator_id == owner_id, Pit.expires_at > now)
            .order_by(Pit.created_at.desc())
            .all()
        )

    def get_owned(self, db: Session, owner_id: UUID, pit_id) -> Optional[Pit]:
        pid = parse_pit_id(pit_id)
        if pid is None:
            return None
        return db.query(Pit).filter(Pit.id == pid, Pit.creator_id == owner_id).first()

    def end(self, db: Session, owner_id: UUID, pit_id) -> bool:
        pit = self.get_owned(db, owner_id, pit_id)
        if not pit:
            return False
        pit.is_active = False
        db.commit()
        logger.info("Pit %s ended by owner", pit.id)
        return True

    def delete(self, db: Session, owner_id: UUID, pit_id) -> bool:
        pit = self.get_owned(db, owner_id, pit_id)
        if not pit:
            return False
        # messages first: the store may not cascade
        db.execute(delete(PitMessage).where(PitMessage.pit_id == pit.id))
        db.execute(delete(Pit).where(Pit.id == pit.id, Pit.creator_id == owner_id))
        db.commit()
        logger.info("Pit %s deleted by owner", pit_id)
        return True

    def is_accepting_submissions(self, db: Session, pit_id, now: Optional[datetime] = None) -> bool:
        pid = parse_pit_id(pit_id)
        if pid is None:
            return False
        # populate_existing: a concurrent end or sweep must not be masked by the identity map
        pit = db.query(Pit).populate_existing().filter(Pit.id == pid).first()
        if pit is None:
            return False
        now = now or now_utc()
        return bool(pit.is_active) and now < ensure_aware(pit.expires_at)
