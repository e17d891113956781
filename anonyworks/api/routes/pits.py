from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from anonyworks.api.deps import get_db, get_registry, get_ingestor
from anonyworks.api.deps_auth import current_account
from anonyworks.core.errors import SessionUnavailable
from anonyworks.models.auth_models import Account
from anonyworks.models.pit import PitMessage
from anonyworks.schemas.auth import MessageResponse
from anonyworks.schemas.pit import PitCreate, PitOut, PitListOut, PitMessageListOut, MessageCreate
from anonyworks.services.message_ingestor import MessageIngestor
from anonyworks.services.pit_registry import SessionRegistry

router = APIRouter(prefix="/pits", tags=["pits"])

PIT_NOT_FOUND = "Pit not found"
PIT_UNAVAILABLE = "Pit not found, inactive, or expired"


# ============================================================================
# Owner endpoints
# ============================================================================

@router.post(
    "",
    response_model=PitOut,
    status_code=status.HTTP_201_CREATED,
    summary="Open a new pit",
    description="""
    Create an anonymous feedback session that accepts submissions for 24 hours.

    The returned `id` is the public, unguessable identifier to share.
    """,
)
def create_pit(
    body: PitCreate,
    account: Account = Depends(current_account),
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
):
    return registry.create(db, account.id, body.title)


@router.get(
    "",
    response_model=PitListOut,
    summary="List the caller's unexpired pits",
)
def list_pits(
    account: Account = Depends(current_account),
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
):
    return PitListOut(pits=registry.list_active(db, account.id))


@router.post(
    "/{pit_id}/end",
    response_model=MessageResponse,
    summary="Stop accepting submissions",
)
def end_pit(
    pit_id: str,
    account: Account = Depends(current_account),
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
):
    if not registry.end(db, account.id, pit_id):
        raise HTTPException(status_code=404, detail=PIT_NOT_FOUND)
    return MessageResponse(message="Pit session ended")


@router.delete(
    "/{pit_id}",
    response_model=MessageResponse,
    summary="Delete a pit and all its messages",
)
def delete_pit(
    pit_id: str,
    account: Account = Depends(current_account),
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
):
    if not registry.delete(db, account.id, pit_id):
        raise HTTPException(status_code=404, detail=PIT_NOT_FOUND)
    return MessageResponse(message="Pit deleted")


@router.get(
    "/{pit_id}/messages",
    response_model=PitMessageListOut,
    summary="List a pit's messages, newest first",
)
def list_messages(
    pit_id: str,
    account: Account = Depends(current_account),
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
):
    pit = registry.get_owned(db, account.id, pit_id)
    if not pit:
        raise HTTPException(status_code=404, detail=PIT_NOT_FOUND)

    messages = (
        db.query(PitMessage)
        .filter(PitMessage.pit_id == pit.id)
        .order_by(PitMessage.created_at.desc())
        .all()
    )
    return PitMessageListOut(messages=messages)


# ============================================================================
# Public submission
# ============================================================================

@router.post(
    "/{pit_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit anonymous feedback",
    description="""
    No authentication. The response never says why a pit is unavailable:
    missing, ended and expired pits all return the same `404`.
    """,
)
def submit_message(
    pit_id: str,
    body: MessageCreate,
    db: Session = Depends(get_db),
    ingestor: MessageIngestor = Depends(get_ingestor),
):
    try:
        ingestor.submit(db, pit_id, body.message, body.is_professional)
    except SessionUnavailable:
        raise HTTPException(status_code=404, detail=PIT_UNAVAILABLE)
    return MessageResponse(message="Message sent anonymously")
