"""
Account Management Module

Opens accounts for users and loads them back. Balances are stored as
Decimal strings and only change through the ledger.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from enum import Enum
import logging
import uuid

from .errors import ConflictError, InternalError, NotFoundError
from .security import generate_account_number
from .storage import StorageInterface, StorageRecord

logger = logging.getLogger(__name__)


class AccountType(Enum):
    """Deposit products a user can open"""
    CHECKING = "checking"
    SAVINGS = "savings"


class AccountStatus(Enum):
    """Account lifecycle states"""
    PENDING = "pending"
    ACTIVE = "active"
    CLOSED = "closed"


@dataclass
class Account(StorageRecord):
    """Deposit account owned by exactly one user"""
    user_id: str
    account_number: str
    account_type: AccountType
    balance: Decimal = Decimal("0.00")
    status: AccountStatus = AccountStatus.ACTIVE

    def can_transact(self) -> bool:
        return self.status == AccountStatus.ACTIVE

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Account':
        return cls(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            user_id=data['user_id'],
            account_number=data['account_number'],
            account_type=AccountType(data['account_type']),
            balance=Decimal(data['balance']),
            status=AccountStatus(data['status'])
        )


class AccountManager:
    """Creates, loads and saves accounts"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "accounts"

    def create_account(self, user_id: str, account_type: AccountType) -> Account:
        """
        Open a new account with a zero balance

        Raises:
            ConflictError: If the user already has an account of this type
            InternalError: If the stored row cannot be read back
        """
        existing = self.storage.find(
            self.table_name, {"user_id": user_id, "account_type": account_type.value}
        )
        if existing:
            raise ConflictError(f"You already have a {account_type.value} account")

        account = Account(
            id=str(uuid.uuid4()),
            created_at=datetime.now(timezone.utc),
            user_id=user_id,
            account_number=generate_account_number(),
            account_type=account_type,
            balance=Decimal("0.00"),
            status=AccountStatus.ACTIVE
        )
        self.save_account(account)

        stored = self.get_account(account.id)
        if stored is None:
            logger.error("Account row missing after insert",
                         extra={"user_id": user_id, "resource": "account"})
            raise InternalError("Failed to create account")

        logger.info("Account opened", extra={
            "user_id": user_id, "action": "account_create", "resource": stored.id
        })
        return stored

    def get_account(self, account_id: str) -> Optional[Account]:
        """Get account by ID"""
        data = self.storage.load(self.table_name, account_id)
        if data:
            return Account.from_dict(data)
        return None

    def get_user_account(self, user_id: str, account_id: str) -> Account:
        """
        Get an account owned by user_id

        Raises:
            NotFoundError: If the account does not exist or belongs to someone else
        """
        account = self.get_account(account_id)
        if account is None or account.user_id != user_id:
            raise NotFoundError("Account not found")
        return account

    def list_accounts(self, user_id: str) -> List[Account]:
        """All accounts for a user, oldest first"""
        rows = self.storage.find_ordered(self.table_name, {"user_id": user_id},
                                         order_by="created_at", descending=False)
        return [Account.from_dict(row) for row in rows]

    def save_account(self, account: Account) -> None:
        self.storage.save(self.table_name, account.id, account.to_dict())
