from typing import Generator

from fastapi import Request
from sqlalchemy.orm import Session

from anonyworks.services.connection_broker import ConnectionBroker
from anonyworks.services.message_ingestor import MessageIngestor
from anonyworks.services.otp_service import OtpAuthenticator
from anonyworks.services.pit_registry import SessionRegistry


def get_db(request: Request) -> Generator[Session, None, None]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_broker(request: Request) -> ConnectionBroker:
    return request.app.state.broker


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


def get_otp(request: Request) -> OtpAuthenticator:
    return request.app.state.otp


def get_ingestor(request: Request) -> MessageIngestor:
    return request.app.state.ingestor
