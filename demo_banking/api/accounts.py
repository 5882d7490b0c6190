"""
Account, funding and transaction history endpoints
"""

from decimal import Decimal
from typing import Optional, Union

from fastapi import APIRouter, Depends, Query, status

from .dependencies import BankingSystem, get_banking_system, get_current_user
from .schemas import CreateAccountRequest, FundAccountRequest, WithdrawRequest
from ..accounts import Account, AccountType
from ..errors import ValidationFailure
from ..ledger import FundingSource, FundingSourceType, LedgerResult
from ..users import User
from ..validators import parse_amount_text, validate_amount


router = APIRouter()


def _parse_enum(enum_type, value: str, field: str):
    try:
        return enum_type(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_type)
        raise ValidationFailure(field, [f"Must be one of: {allowed}"])


def _amount_from_request(value: Union[str, float], system: BankingSystem) -> Decimal:
    """Text amounts go through the leading-zero check; JSON numbers do not"""
    minimum = Decimal(system.config.min_transaction_amount)
    maximum = Decimal(system.config.max_transaction_amount)
    if isinstance(value, str):
        return parse_amount_text(value, minimum, maximum).raise_for_errors()
    return validate_amount(value, minimum, maximum).raise_for_errors()


def _account_payload(account: Account) -> dict:
    return account.to_dict()


def _ledger_payload(result: LedgerResult) -> dict:
    return {
        "transaction": result.transaction.to_dict(),
        "account": _account_payload(result.account)
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_account(
    request: CreateAccountRequest,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Open a new account"""
    account_type = _parse_enum(AccountType, request.account_type, "account_type")
    account = system.account_manager.create_account(user.id, account_type)
    return _account_payload(account)


@router.get("")
async def list_accounts(
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """List the user's accounts"""
    accounts = system.account_manager.list_accounts(user.id)
    return {"accounts": [_account_payload(account) for account in accounts]}


@router.get("/{account_id}")
async def get_account(
    account_id: str,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Get account details"""
    return _account_payload(system.account_manager.get_user_account(user.id, account_id))


@router.post("/{account_id}/fund")
async def fund_account(
    account_id: str,
    request: FundAccountRequest,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Fund an account from a card or bank account"""
    amount = _amount_from_request(request.amount, system)
    source = FundingSource(
        type=_parse_enum(FundingSourceType, request.funding_source.type, "funding_source.type"),
        account_number=request.funding_source.account_number,
        routing_number=request.funding_source.routing_number
    )
    result = system.ledger.fund_account(user.id, account_id, amount, source)
    return _ledger_payload(result)


@router.post("/{account_id}/withdraw")
async def withdraw(
    account_id: str,
    request: WithdrawRequest,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Withdraw from an account"""
    amount = _amount_from_request(request.amount, system)
    result = system.ledger.withdraw(user.id, account_id, amount, request.description)
    return _ledger_payload(result)


@router.get("/{account_id}/transactions")
async def get_account_transactions(
    account_id: str,
    limit: Optional[int] = Query(None, ge=1, le=500),
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Transaction history, newest first"""
    transactions = system.ledger.list_transactions(user.id, account_id, limit=limit)
    return {"transactions": transactions}
