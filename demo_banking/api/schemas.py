"""
Pydantic schemas for API requests

Request models only carry raw input; field rules live in
demo_banking.validators so the same checks apply outside HTTP.
"""

from typing import Optional, Union
from pydantic import BaseModel, Field


class SignupRequest(BaseModel):
    email: str
    password: str
    first_name: str
    last_name: str
    phone_number: str
    date_of_birth: str = Field(..., description="ISO date (YYYY-MM-DD)")
    ssn: str = Field(..., description="9 digits, stored only as a salted hash")
    address: str
    city: str
    state: str = Field(..., description="2-letter US state code")
    zip_code: str


class LoginRequest(BaseModel):
    email: str
    password: str


class CreateAccountRequest(BaseModel):
    account_type: str = Field(..., description="Account type (checking, savings)")


class FundingSourceModel(BaseModel):
    type: str = Field(..., description="Funding source type (card, bank)")
    account_number: str = Field(..., description="Card number or bank account number")
    routing_number: Optional[str] = None


class FundAccountRequest(BaseModel):
    amount: Union[str, float] = Field(..., description="Amount as typed, or a JSON number")
    funding_source: FundingSourceModel


class WithdrawRequest(BaseModel):
    amount: Union[str, float]
    description: Optional[str] = Field(None, max_length=200)
