import time

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from anonyworks.core.security import hash_password, make_access_token
from anonyworks.db.model_registry import metadata
from anonyworks.main import create_app
from anonyworks.models.auth_models import Account, AccountType
from anonyworks.services.otp_service import OtpAuthenticator


class FakeConnection:
    """Stands in for a websocket in broker and ingestor tests."""

    def __init__(self, is_open=True, fail=False):
        self.is_open = is_open
        self.fail = fail
        self.sent = []

    def send(self, payload):
        if self.fail:
            raise RuntimeError("socket gone")
        self.sent.append(payload)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_fks(dbapi_conn, _record):
        dbapi_conn.execute("PRAGMA foreign_keys=ON")

    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def outbox():
    """(email, code) pairs handed to the delivery collaborator."""
    return []


@pytest.fixture
def otp(outbox):
    return OtpAuthenticator(deliver=lambda email, code: outbox.append((email, code)))


@pytest.fixture
def app(session_factory, otp):
    app = create_app(session_factory=session_factory, start_sweeper=False)
    app.state.otp = otp
    app.state.ingestor.refiner = lambda text: f"Refined: {text}"
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_account(db):
    def _make(email="owner@acme.io", password="secret123", name="Owner", verified=True,
              account_type=AccountType.INDIVIDUAL):
        account = Account(
            email=email,
            name=name,
            account_type=account_type,
            password_hash=hash_password(password) if password else None,
            is_verified=verified,
        )
        db.add(account)
        db.commit()
        db.refresh(account)
        return account
    return _make


@pytest.fixture
def owner(make_account):
    return make_account()


def auth_headers(account):
    return {"Authorization": f"Bearer {make_access_token(str(account.id), account.email)}"}


@pytest.fixture
def owner_headers(owner):
    return auth_headers(owner)


def wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()
