"""
Ledger Operations Module

Funding, withdrawals and transaction history. Balance arithmetic is done
in Decimal and rounded half-up to cents, so 100.1 + 0.2 is exactly 100.30.

A newly written transaction is always read back by its own id. Looking up
"the latest transaction for this account" could return a concurrent
writer's row instead.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional
import logging
import threading
import uuid
import weakref

from .accounts import Account, AccountManager
from .cards import CardBrand, detect_card_brand, mask_card_number
from .currency import Numeric, round_currency, to_decimal
from .errors import InternalError, ValidationFailure
from .storage import StorageInterface, StorageRecord
from .validators import (
    MAX_AMOUNT, MIN_AMOUNT, validate_amount, validate_card_number, validate_routing_number
)

logger = logging.getLogger(__name__)


def balance_update(current_balance: Numeric, signed_amount: Numeric) -> Decimal:
    """New balance after applying a signed amount, exact to two decimal places"""
    return round_currency(to_decimal(current_balance) + to_decimal(signed_amount))


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


class TransactionStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class FundingSourceType(Enum):
    CARD = "card"
    BANK = "bank"


@dataclass
class FundingSource:
    """Where funding money comes from: a card number or a bank account"""
    type: FundingSourceType
    account_number: str
    routing_number: Optional[str] = None


@dataclass
class Transaction(StorageRecord):
    """
    Posted ledger movement. Amount is signed: deposits positive,
    withdrawals negative. The description is stored verbatim as plain text.
    """
    account_id: str
    transaction_type: TransactionType
    amount: Decimal
    description: str
    status: TransactionStatus
    processed_at: datetime

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Transaction':
        return cls(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            account_id=data['account_id'],
            transaction_type=TransactionType(data['transaction_type']),
            amount=Decimal(data['amount']),
            description=data['description'],
            status=TransactionStatus(data['status']),
            processed_at=datetime.fromisoformat(data['processed_at'])
        )


@dataclass
class LedgerResult:
    """Transaction just posted and the account after the balance change"""
    transaction: Transaction
    account: Account


class Ledger:
    """
    Posts deposits and withdrawals and lists transaction history.

    Balance read-modify-write for one account runs under a per-account lock.
    """

    def __init__(
        self,
        storage: StorageInterface,
        account_manager: AccountManager,
        min_amount: Decimal = MIN_AMOUNT,
        max_amount: Decimal = MAX_AMOUNT
    ):
        self.storage = storage
        self.account_manager = account_manager
        self.min_amount = min_amount
        self.max_amount = max_amount
        self.table_name = "transactions"
        # Entries disappear once no caller holds a reference to the lock
        self._account_locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    def _lock_for(self, account_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._account_locks.get(account_id)
            if lock is None:
                lock = threading.Lock()
                self._account_locks[account_id] = lock
            return lock

    # Posting

    def fund_account(self, user_id: str, account_id: str, amount: Numeric,
                     funding_source: FundingSource) -> LedgerResult:
        """
        Deposit money into a user's account from a card or bank

        Raises:
            NotFoundError: If the account is not the user's
            ValidationFailure: For a bad amount, funding source or inactive account
            InternalError: If the transaction cannot be read back
        """
        account = self.account_manager.get_user_account(user_id, account_id)
        value = validate_amount(amount, self.min_amount, self.max_amount).raise_for_errors()
        description = self._describe_funding_source(funding_source)

        return self._post(account, TransactionType.DEPOSIT, value, description)

    def withdraw(self, user_id: str, account_id: str, amount: Numeric,
                 description: Optional[str] = None) -> LedgerResult:
        """
        Withdraw money from a user's account

        Raises:
            NotFoundError: If the account is not the user's
            ValidationFailure: For a bad amount, insufficient funds or inactive account
            InternalError: If the transaction cannot be read back
        """
        account = self.account_manager.get_user_account(user_id, account_id)
        value = validate_amount(amount, self.min_amount, self.max_amount).raise_for_errors()

        return self._post(account, TransactionType.WITHDRAWAL, -value, description or "Withdrawal")

    def _describe_funding_source(self, source: FundingSource) -> str:
        routing = validate_routing_number(source.type.value, source.routing_number)
        routing.raise_for_errors()

        if source.type == FundingSourceType.CARD:
            card_number = validate_card_number(source.account_number).raise_for_errors()
            brand = detect_card_brand(card_number)
            if brand == CardBrand.UNKNOWN:
                raise ValidationFailure("card_number", ["Unsupported card type"])
            return f"Funding from {brand.value} {mask_card_number(card_number)}"

        if not source.account_number or not source.account_number.isdigit():
            raise ValidationFailure("account_number", ["Bank account number must contain only digits"])
        return "Funding from bank"

    def _post(self, account: Account, transaction_type: TransactionType,
              signed_amount: Decimal, description: str) -> LedgerResult:
        if not account.can_transact():
            raise ValidationFailure("account_id", [f"Account is {account.status.value}"])

        with self._lock_for(account.id):
            # Re-read under the lock so concurrent posts see each other's balance
            current = self.account_manager.get_account(account.id)
            if current is None:
                raise InternalError("Account disappeared during posting")

            new_balance = balance_update(current.balance, signed_amount)
            if new_balance < 0:
                raise ValidationFailure("amount", ["Insufficient funds"])

            now = datetime.now(timezone.utc)
            transaction = Transaction(
                id=str(uuid.uuid4()),
                created_at=now,
                account_id=current.id,
                transaction_type=transaction_type,
                amount=round_currency(signed_amount),
                description=description,
                status=TransactionStatus.COMPLETED,
                processed_at=now
            )
            current.balance = new_balance

            with self.storage.atomic():
                self.storage.save(self.table_name, transaction.id, transaction.to_dict())
                self.account_manager.save_account(current)

        stored = self.get_transaction(transaction.id)
        if stored is None:
            logger.error("Transaction row missing after insert",
                         extra={"user_id": current.user_id, "resource": current.id})
            raise InternalError("Failed to record transaction")

        logger.info("Transaction posted", extra={
            "user_id": current.user_id,
            "action": transaction_type.value,
            "resource": current.id,
            "extra": {"transaction_id": stored.id, "amount": str(stored.amount)}
        })
        return LedgerResult(transaction=stored, account=current)

    # Lookup

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        data = self.storage.load(self.table_name, transaction_id)
        if data:
            return Transaction.from_dict(data)
        return None

    def list_transactions(self, user_id: str, account_id: str,
                          limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Transaction history for one of the user's accounts, newest first.

        Each row carries the account number and type; the account is
        loaded once for the whole listing.

        Raises:
            NotFoundError: If the account is not the user's
        """
        account = self.account_manager.get_user_account(user_id, account_id)
        rows = self.storage.find_ordered(self.table_name, {"account_id": account.id},
                                         order_by="created_at", descending=True, limit=limit)

        history = []
        for row in rows:
            transaction = Transaction.from_dict(row)
            entry = transaction.to_dict()
            entry["account_number"] = account.account_number
            entry["account_type"] = account.account_type.value
            history.append(entry)
        return history
