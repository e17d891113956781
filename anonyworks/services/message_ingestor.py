"""
Public submission path: liveness check, optional refinement, persist, fan out.
"""
import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from anonyworks.core.errors import SessionUnavailable
from anonyworks.models.pit import PitMessage
from anonyworks.schemas.pit import PitMessageOut
from anonyworks.services.connection_broker import ConnectionBroker
from anonyworks.services.pit_registry import SessionRegistry, parse_pit_id
from anonyworks.services.refinement import refine_message

logger = logging.getLogger(__name__)


class MessageIngestor:
    def __init__(
        self,
        registry: SessionRegistry,
        broker: ConnectionBroker,
        refiner: Optional[Callable[[str], str]] = None,
    ):
        self.registry = registry
        self.broker = broker
        self.refiner = refiner or refine_message

    def _refine(self, text: str) -> str:
        try:
            return self.refiner(text) or text
        except Exception:
            logger.exception("Refiner raised; storing original text")
            return text

    def submit(self, db: Session, pit_id, text: str, wants_refinement: bool = False) -> PitMessage:
        """Store a submission and push it to live viewers.

        Raises SessionUnavailable when the pit is missing, ended or expired.
        Succeeds whether or not anyone is watching.
        """
        if not self.registry.is_accepting_submissions(db, pit_id):
            raise SessionUnavailable()

        processed = self._refine(text) if wants_refinement else text

        msg = PitMessage(
            pit_id=parse_pit_id(pit_id),
            original_message=text,
            processed_message=processed,
            is_professional=bool(wants_refinement),
        )
        db.add(msg)
        db.commit()
        db.refresh(msg)

        payload = PitMessageOut.model_validate(msg).model_dump(mode="json")
        delivered = self.broker.broadcast(msg.pit_id, payload)
        logger.info("Message %s stored for pit %s, %d live viewer(s)", msg.id, msg.pit_id, delivered)
        return msg
