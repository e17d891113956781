from datetime import timedelta
from uuid import uuid4

from anonyworks.core.security import now_utc, ensure_aware
from anonyworks.models.pit import Pit, PitMessage
from anonyworks.services.pit_registry import SessionRegistry, PIT_TTL, DEFAULT_TITLE, parse_pit_id

registry = SessionRegistry()


def test_create_sets_24h_expiry_and_title(db, owner):
    t0 = now_utc()
    pit = registry.create(db, owner.id, "Standup Feedback", now=t0)

    assert pit.title == "Standup Feedback"
    assert pit.is_active is True
    assert ensure_aware(pit.expires_at) == t0 + PIT_TTL
    assert pit.creator_id == owner.id


def test_create_defaults_title(db, owner):
    assert registry.create(db, owner.id).title == DEFAULT_TITLE
    assert registry.create(db, owner.id, "   ").title == DEFAULT_TITLE


def test_accepting_until_exact_expiry_instant(db, owner):
    t0 = now_utc()
    pit = registry.create(db, owner.id, now=t0)
    expiry = t0 + PIT_TTL

    assert registry.is_accepting_submissions(db, pit.id, now=t0) is True
    assert registry.is_accepting_submissions(db, pit.id, now=expiry - timedelta(microseconds=1)) is True
    assert registry.is_accepting_submissions(db, pit.id, now=expiry) is False


def test_end_stops_submissions_before_any_sweep(db, owner):
    pit = registry.create(db, owner.id)

    assert registry.end(db, owner.id, pit.id) is True
    assert registry.is_accepting_submissions(db, pit.id) is False


def test_end_by_non_owner_is_not_found(db, owner, make_account):
    intruder = make_account(email="intruder@acme.io")
    pit = registry.create(db, owner.id)

    assert registry.end(db, intruder.id, pit.id) is False
    assert registry.is_accepting_submissions(db, pit.id) is True


def test_unknown_and_malformed_ids_are_not_accepting(db):
    assert registry.is_accepting_submissions(db, uuid4()) is False
    assert registry.is_accepting_submissions(db, "not-a-uuid") is False
    assert parse_pit_id("not-a-uuid") is None


def test_list_active_filters_on_expiry_not_flag(db, owner, make_account):
    now = now_utc()
    old = registry.create(db, owner.id, "expired, not swept", now=now - PIT_TTL - timedelta(seconds=1))
    ended = registry.create(db, owner.id, "ended", now=now - timedelta(hours=2))
    registry.end(db, owner.id, ended.id)
    fresh = registry.create(db, owner.id, "fresh", now=now - timedelta(hours=1))
    other = make_account(email="other@acme.io")
    registry.create(db, other.id, "not mine")

    listed = registry.list_active(db, owner.id, now=now)

    assert [p.id for p in listed] == [fresh.id, ended.id]
    assert old.is_active is True  # still flagged, yet hidden


def test_delete_removes_messages_then_pit(db, owner):
    pit = registry.create(db, owner.id)
    db.add_all([PitMessage(pit_id=pit.id, original_message=f"m{i}", processed_message=f"m{i}") for i in range(3)])
    db.commit()

    assert registry.delete(db, owner.id, pit.id) is True
    assert db.query(Pit).count() == 0
    assert db.query(PitMessage).count() == 0


def test_delete_by_non_owner_is_not_found(db, owner, make_account):
    intruder = make_account(email="intruder@acme.io")
    pit = registry.create(db, owner.id)
    db.add(PitMessage(pit_id=pit.id, original_message="keep me"))
    db.commit()

    assert registry.delete(db, intruder.id, pit.id) is False
    assert db.query(Pit).count() == 1
    assert db.query(PitMessage).count() == 1
