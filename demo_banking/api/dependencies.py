"""
Application wiring and request dependencies
"""

from decimal import Decimal
from typing import Optional

from fastapi import Depends, Request

from ..accounts import AccountManager
from ..auth import AuthService
from ..config import BankingConfig, get_config
from ..errors import UnauthorizedError
from ..ledger import Ledger
from ..security import PasswordHasher, SSNHasher, TokenIssuer
from ..sessions import SessionManager
from ..storage import StorageInterface, create_storage
from ..users import User, UserManager


class BankingSystem:
    """All components wired to one storage backend and one configuration"""

    def __init__(self, config: Optional[BankingConfig] = None,
                 storage: Optional[StorageInterface] = None):
        self.config = config or get_config()
        self.storage = storage or create_storage(self.config.database_url)

        self.token_issuer = TokenIssuer.from_config(self.config)
        self.user_manager = UserManager(self.storage)
        self.session_manager = SessionManager.from_config(self.storage, self.token_issuer, self.config)
        self.account_manager = AccountManager(self.storage)
        self.ledger = Ledger(
            self.storage,
            self.account_manager,
            min_amount=Decimal(self.config.min_transaction_amount),
            max_amount=Decimal(self.config.max_transaction_amount)
        )
        self.auth_service = AuthService(
            self.user_manager,
            self.session_manager,
            PasswordHasher(),
            SSNHasher(self.config.ssn_salt),
            password_min_length=self.config.password_min_length
        )

    def close(self) -> None:
        self.storage.close()


_banking_system: Optional[BankingSystem] = None


def get_banking_system() -> BankingSystem:
    """Dependency returning the process-wide banking system, built on first use"""
    global _banking_system
    if _banking_system is None:
        _banking_system = BankingSystem()
    return _banking_system


def get_session_token(request: Request, system: BankingSystem = Depends(get_banking_system)) -> Optional[str]:
    """Session token from the session cookie, falling back to a Bearer header"""
    token = request.cookies.get(system.config.session_cookie_name)
    if token:
        return token
    authorization = request.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


def get_optional_user(
    token: Optional[str] = Depends(get_session_token),
    system: BankingSystem = Depends(get_banking_system)
) -> Optional[User]:
    return system.auth_service.authenticate(token)


def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    """Dependency that requires a valid session"""
    if user is None:
        raise UnauthorizedError("Not authenticated")
    return user
