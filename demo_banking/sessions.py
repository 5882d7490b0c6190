"""
Session Policy Module

Session lifecycle for logged-in users:

    ACTIVE -> EXPIRED (time based) or REVOKED (logout / cap eviction) -> deleted

A session stops being usable five minutes before its stored expiry, and a
user never holds more than ``max_sessions`` sessions: creating one more
evicts the oldest rows first.
"""

from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional
import logging
import threading
import uuid
import weakref

from .config import BankingConfig
from .errors import InternalError
from .security import TokenIssuer
from .storage import StorageInterface, StorageRecord

logger = logging.getLogger(__name__)

EXPIRY_BUFFER = timedelta(milliseconds=300_000)
MAX_SESSIONS_PER_USER = 5


class SessionState(Enum):
    """Observable session states; revoked sessions are deleted immediately"""
    ACTIVE = "active"
    EXPIRING = "expiring"  # Inside the buffer window, row not yet removed
    EXPIRED = "expired"


@dataclass
class Session(StorageRecord):
    """Authentication session bound to a user"""
    token: str
    user_id: str
    expires_at: datetime

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Session':
        return cls(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            token=data['token'],
            user_id=data['user_id'],
            expires_at=datetime.fromisoformat(data['expires_at'])
        )


class SessionManager:
    """
    Issues, validates and revokes sessions.

    The cap check, eviction and insert for one user run under a per-user
    lock so concurrent logins in this process cannot overshoot the cap.
    """

    def __init__(
        self,
        storage: StorageInterface,
        token_issuer: TokenIssuer,
        max_sessions: int = MAX_SESSIONS_PER_USER,
        expiry_buffer: timedelta = EXPIRY_BUFFER
    ):
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self.storage = storage
        self.token_issuer = token_issuer
        self.max_sessions = max_sessions
        self.expiry_buffer = expiry_buffer
        self.table_name = "sessions"
        # Entries disappear once no caller holds a reference to the lock
        self._user_locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    @classmethod
    def from_config(cls, storage: StorageInterface, token_issuer: TokenIssuer,
                    config: BankingConfig) -> 'SessionManager':
        return cls(
            storage,
            token_issuer,
            max_sessions=config.max_sessions_per_user,
            expiry_buffer=timedelta(seconds=config.session_expiry_buffer_seconds)
        )

    def _lock_for(self, user_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._user_locks.get(user_id)
            if lock is None:
                lock = threading.Lock()
                self._user_locks[user_id] = lock
            return lock

    # Validity

    def state_of(self, session: Session, now: Optional[datetime] = None) -> SessionState:
        now = now or datetime.now(timezone.utc)
        if now >= session.expires_at:
            return SessionState.EXPIRED
        if now >= session.expires_at - self.expiry_buffer:
            return SessionState.EXPIRING
        return SessionState.ACTIVE

    def is_valid(self, session: Session, now: Optional[datetime] = None) -> bool:
        """Usable only while now < expires_at - buffer"""
        return self.state_of(session, now) == SessionState.ACTIVE

    # Lookup

    def get_session(self, token: str) -> Optional[Session]:
        data = self.storage.find_one(self.table_name, {"token": token})
        if data:
            return Session.from_dict(data)
        return None

    def get_user_sessions(self, user_id: str) -> List[Session]:
        """All sessions for a user, newest first"""
        rows = self.storage.find_ordered(self.table_name, {"user_id": user_id},
                                         order_by="created_at", descending=True)
        return [Session.from_dict(row) for row in rows]

    def resolve(self, token: str, now: Optional[datetime] = None) -> Optional[Session]:
        """
        Return the usable session for a presented token, or None.

        The signature is checked by the token issuer first; the stored row
        must then exist, belong to the token's subject and be outside the
        expiry buffer. Rows past their absolute expiry are removed.
        """
        claims = self.token_issuer.verify(token)
        if claims is None:
            return None

        session = self.get_session(token)
        if session is None or session.user_id != claims["sub"]:
            return None

        state = self.state_of(session, now)
        if state == SessionState.EXPIRED:
            self.storage.delete(self.table_name, session.id)
            return None
        if state != SessionState.ACTIVE:
            return None
        return session

    # Creation

    def create_session(self, user_id: str, now: Optional[datetime] = None) -> Session:
        """
        Issue a new session, evicting the oldest ones beyond the cap

        Raises:
            InternalError: If the new session cannot be read back
        """
        now = now or datetime.now(timezone.utc)

        with self._lock_for(user_id):
            existing = self.get_user_sessions(user_id)
            if len(existing) >= self.max_sessions:
                # Keep the newest max_sessions - 1 so the new one brings us to the cap
                for stale in existing[self.max_sessions - 1:]:
                    self.storage.delete(self.table_name, stale.id)
                logger.info(
                    "Evicted %d sessions over cap", len(existing) - (self.max_sessions - 1),
                    extra={"user_id": user_id, "action": "session_evict"}
                )

            token = self.token_issuer.issue(user_id, now=now)
            session = Session(
                id=str(uuid.uuid4()),
                created_at=now,
                token=token,
                user_id=user_id,
                expires_at=now + self.token_issuer.lifetime
            )
            self.storage.save(self.table_name, session.id, session.to_dict())

        stored = self.storage.load(self.table_name, session.id)
        if stored is None:
            raise InternalError("Failed to create session")
        return Session.from_dict(stored)

    # Revocation

    def revoke(self, token: str) -> bool:
        """
        Delete the session for a token and confirm it is gone

        Returns:
            True if a row was removed, False if no row matched

        Raises:
            InternalError: If the row still exists after deletion
        """
        session = self.get_session(token)
        if session is None:
            return False

        self.storage.delete(self.table_name, session.id)

        if self.get_session(token) is not None:
            logger.error(
                "Session row still present after delete",
                extra={"user_id": session.user_id, "action": "logout"}
            )
            raise InternalError("Failed to delete session")
        return True
