"""
Signup, Login and Logout

Composes field validation, hashing, user records and the session policy
into the three user-facing authentication flows.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional
import logging
import secrets

from .errors import InternalError, UnauthorizedError
from .logging_config import log_action
from .security import PasswordHasher, SSNHasher
from .sessions import Session, SessionManager
from .users import User, UserManager
from .validators import validate_signup, validate_email

logger = logging.getLogger(__name__)


@dataclass
class AuthResult:
    """Outcome of signup or login: the public user view and a session"""
    user: Dict[str, Any]
    session: Session
    notices: List[str] = field(default_factory=list)

    @property
    def token(self) -> str:
        return self.session.token


@dataclass
class LogoutResult:
    success: bool
    message: str


class AuthService:
    """Signup, login and logout flows"""

    def __init__(
        self,
        user_manager: UserManager,
        session_manager: SessionManager,
        password_hasher: PasswordHasher,
        ssn_hasher: SSNHasher,
        password_min_length: int = 8
    ):
        self.user_manager = user_manager
        self.session_manager = session_manager
        self.password_hasher = password_hasher
        self.ssn_hasher = ssn_hasher
        self.password_min_length = password_min_length
        # Unknown emails are checked against this so both failure paths cost one scrypt run
        self._dummy_hash = password_hasher.hash(secrets.token_hex(16))

    def signup(self, data: Dict[str, Any], today: Optional[date] = None) -> AuthResult:
        """
        Register a user and start their first session

        Raises:
            ValidationFailure: If any field is invalid (all failures are reported)
            ConflictError: If the email is already registered
            InternalError: If the user or session cannot be read back
        """
        signup = validate_signup(data, today=today, password_min_length=self.password_min_length)

        user = self.user_manager.create_user(
            email=signup.email,
            password_hash=self.password_hasher.hash(signup.password),
            first_name=signup.first_name,
            last_name=signup.last_name,
            phone_number=signup.phone_number,
            date_of_birth=signup.date_of_birth,
            ssn_hash=self.ssn_hasher.hash(signup.ssn),
            address=signup.address,
            city=signup.city,
            state=signup.state,
            zip_code=signup.zip_code
        )
        session = self.session_manager.create_session(user.id)

        log_action(logger, "info", "User signed up", user_id=user.id, action="signup", resource="auth")
        return AuthResult(user=user.public_dict(), session=session, notices=signup.notices)

    def login(self, email: str, password: str) -> AuthResult:
        """
        Verify credentials and start a session

        Unknown email and wrong password produce the same error.

        Raises:
            UnauthorizedError: If the credentials do not match a user
        """
        normalized = validate_email(email)
        user = self.user_manager.get_user_by_email(normalized.value) if normalized.ok else None

        stored_hash = user.password_hash if user is not None else self._dummy_hash
        password_ok = self.password_hasher.verify(password or "", stored_hash)

        if user is None or not password_ok:
            log_action(logger, "warning", "Login failed", action="login_failed", resource="auth")
            raise UnauthorizedError("Invalid credentials")

        session = self.session_manager.create_session(user.id)

        log_action(logger, "info", "User logged in", user_id=user.id, action="login", resource="auth")
        return AuthResult(user=user.public_dict(), session=session)

    def authenticate(self, token: Optional[str]) -> Optional[User]:
        """Resolve a presented token to its user, or None"""
        if not token:
            return None
        session = self.session_manager.resolve(token)
        if session is None:
            return None
        return self.user_manager.get_user(session.user_id)

    def logout(self, token: Optional[str], user: Optional[User]) -> LogoutResult:
        """
        End the session for the presented token

        With no authenticated user this succeeds trivially.

        Raises:
            InternalError: If the session row survives deletion, or an
                authenticated request carried no token to delete
        """
        if user is None:
            return LogoutResult(success=True, message="No active session")

        if not token:
            raise InternalError("Failed to delete session")
        deleted = self.session_manager.revoke(token)

        log_action(logger, "info", "User logged out", user_id=user.id, action="logout",
                   resource="auth", extra={"session_found": deleted})
        return LogoutResult(success=True, message="Logged out successfully")
