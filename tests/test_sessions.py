"""
Tests for the session policy: expiry buffer, per-user cap, resolution and revocation
"""

import gc
import pytest
import uuid
from datetime import datetime, timezone, timedelta

from demo_banking.errors import InternalError
from demo_banking.security import TokenIssuer
from demo_banking.sessions import Session, SessionManager, SessionState, EXPIRY_BUFFER
from demo_banking.storage import InMemoryStorage


SECRET = "test-secret-key-that-is-long-enough-for-hs256"


class NoDeleteStorage(InMemoryStorage):
    """Storage whose deletes report success but keep the row"""

    def delete(self, table, record_id):
        return True


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def issuer():
    return TokenIssuer(SECRET)


@pytest.fixture
def session_manager(storage, issuer):
    return SessionManager(storage, issuer)


def make_session(expires_at, created_at=None, user_id="user-1"):
    return Session(
        id=str(uuid.uuid4()),
        created_at=created_at or datetime.now(timezone.utc),
        token=uuid.uuid4().hex,
        user_id=user_id,
        expires_at=expires_at
    )


class TestExpiryBuffer:
    """A session stops being valid five minutes before it expires"""

    def test_buffer_is_five_minutes(self):
        assert EXPIRY_BUFFER == timedelta(milliseconds=300000)

    def test_expiring_in_three_minutes_is_invalid(self, session_manager):
        now = datetime.now(timezone.utc)
        session = make_session(now + timedelta(minutes=3))
        assert not session_manager.is_valid(session, now)
        assert session_manager.state_of(session, now) == SessionState.EXPIRING

    def test_expiring_in_ten_minutes_is_valid(self, session_manager):
        now = datetime.now(timezone.utc)
        session = make_session(now + timedelta(minutes=10))
        assert session_manager.is_valid(session, now)
        assert session_manager.state_of(session, now) == SessionState.ACTIVE

    def test_boundary_is_exclusive(self, session_manager):
        now = datetime.now(timezone.utc)
        session = make_session(now + EXPIRY_BUFFER)
        assert not session_manager.is_valid(session, now)
        assert session_manager.is_valid(session, now - timedelta(milliseconds=1))

    def test_past_expiry(self, session_manager):
        now = datetime.now(timezone.utc)
        session = make_session(now - timedelta(seconds=1))
        assert session_manager.state_of(session, now) == SessionState.EXPIRED


class TestSessionCap:
    """A user never holds more than five sessions"""

    def test_sixth_login_evicts_oldest(self, session_manager):
        base = datetime.now(timezone.utc) - timedelta(hours=1)
        created = [
            session_manager.create_session("user-1", now=base + timedelta(minutes=index))
            for index in range(6)
        ]

        remaining = session_manager.get_user_sessions("user-1")
        assert len(remaining) == 5
        remaining_ids = {session.id for session in remaining}
        assert created[0].id not in remaining_ids
        assert {session.id for session in created[1:]} == remaining_ids

    def test_over_cap_rows_are_trimmed_to_newest(self, storage, session_manager):
        """Pre-existing rows beyond the cap are cut back to the newest four plus the new one"""
        base = datetime.now(timezone.utc) - timedelta(hours=1)
        seeded = []
        for index in range(6):
            session = make_session(
                expires_at=base + timedelta(days=7),
                created_at=base + timedelta(minutes=index)
            )
            storage.save("sessions", session.id, session.to_dict())
            seeded.append(session)

        new_session = session_manager.create_session("user-1")

        remaining = session_manager.get_user_sessions("user-1")
        assert len(remaining) == 5
        assert remaining[0].id == new_session.id
        assert [session.id for session in remaining[1:]] == [s.id for s in reversed(seeded[2:])]

    def test_cap_is_per_user(self, session_manager):
        for _ in range(5):
            session_manager.create_session("user-1")
        session_manager.create_session("user-2")

        assert len(session_manager.get_user_sessions("user-1")) == 5
        assert len(session_manager.get_user_sessions("user-2")) == 1

    def test_configurable_cap(self, storage, issuer):
        manager = SessionManager(storage, issuer, max_sessions=2)
        for _ in range(4):
            manager.create_session("user-1")
        assert len(manager.get_user_sessions("user-1")) == 2

    def test_cap_must_be_positive(self, storage, issuer):
        with pytest.raises(ValueError):
            SessionManager(storage, issuer, max_sessions=0)


class TestSessionResolution:
    """Test resolving presented tokens"""

    def test_fresh_session_resolves(self, session_manager):
        session = session_manager.create_session("user-1")
        resolved = session_manager.resolve(session.token)
        assert resolved is not None
        assert resolved.user_id == "user-1"

    def test_session_expires_after_seven_days(self, session_manager):
        now = datetime.now(timezone.utc)
        session = session_manager.create_session("user-1", now=now)
        assert session.expires_at == now + timedelta(days=7)

    def test_tokens_are_unique(self, session_manager):
        now = datetime.now(timezone.utc)
        first = session_manager.create_session("user-1", now=now)
        second = session_manager.create_session("user-1", now=now)
        assert first.token != second.token

    def test_unknown_token(self, session_manager):
        assert session_manager.resolve("not-a-token") is None

    def test_token_from_other_secret(self, session_manager):
        foreign = TokenIssuer("another-secret-key-that-is-long-enough-for-hs256").issue("user-1")
        assert session_manager.resolve(foreign) is None

    def test_revoked_token_no_longer_resolves(self, session_manager):
        session = session_manager.create_session("user-1")
        session_manager.revoke(session.token)
        assert session_manager.resolve(session.token) is None

    def test_expiring_row_is_rejected_but_kept(self, storage, session_manager):
        session = session_manager.create_session("user-1")
        row = storage.load("sessions", session.id)
        row["expires_at"] = (datetime.now(timezone.utc) + timedelta(minutes=2)).isoformat()
        storage.save("sessions", session.id, row)

        assert session_manager.resolve(session.token) is None
        assert storage.exists("sessions", session.id)

    def test_expired_row_is_removed(self, storage, session_manager):
        session = session_manager.create_session("user-1")
        row = storage.load("sessions", session.id)
        row["expires_at"] = (datetime.now(timezone.utc) - timedelta(minutes=1)).isoformat()
        storage.save("sessions", session.id, row)

        assert session_manager.resolve(session.token) is None
        assert not storage.exists("sessions", session.id)


class TestSessionRevocation:
    """Test logout deletion"""

    def test_revoke_deletes_row(self, storage, session_manager):
        session = session_manager.create_session("user-1")
        assert session_manager.revoke(session.token)
        assert not storage.exists("sessions", session.id)

    def test_revoke_unknown_token(self, session_manager):
        assert not session_manager.revoke("missing")

    def test_surviving_row_is_an_error(self, issuer):
        manager = SessionManager(NoDeleteStorage(), issuer)
        session = manager.create_session("user-1")
        with pytest.raises(InternalError):
            manager.revoke(session.token)


class TestUserLocks:
    """Per-user locks live only while someone holds them"""

    def test_same_user_shares_a_lock_while_held(self, session_manager):
        lock = session_manager._lock_for("user-1")
        assert session_manager._lock_for("user-1") is lock
        assert session_manager._lock_for("user-2") is not lock

    def test_locks_are_released_after_use(self, session_manager):
        for index in range(20):
            session_manager.create_session(f"user-{index}")
        gc.collect()
        assert len(session_manager._user_locks) == 0
