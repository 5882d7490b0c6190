"""
Authentication endpoints
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status

from .dependencies import (
    BankingSystem, get_banking_system, get_current_user, get_optional_user, get_session_token
)
from .errors import banking_error_handler
from .schemas import LoginRequest, SignupRequest
from ..auth import AuthResult
from ..errors import BankingError
from ..users import User


router = APIRouter()


def set_session_cookie(response: Response, system: BankingSystem, token: str) -> None:
    response.set_cookie(
        key=system.config.session_cookie_name,
        value=token,
        max_age=system.config.session_lifetime_days * 24 * 60 * 60,
        path="/",
        httponly=True,
        samesite="strict"
    )


def clear_session_cookie(response: Response, system: BankingSystem) -> None:
    response.set_cookie(
        key=system.config.session_cookie_name,
        value="",
        max_age=0,
        path="/",
        httponly=True,
        samesite="strict"
    )


def _auth_payload(result: AuthResult) -> dict:
    return {
        "user": result.user,
        "token": result.token,
        "expires_at": result.session.expires_at.isoformat(),
        "notices": result.notices
    }


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(
    request: SignupRequest,
    response: Response,
    system: BankingSystem = Depends(get_banking_system)
):
    """Create a user and log them in"""
    result = system.auth_service.signup(request.model_dump())
    set_session_cookie(response, system, result.token)
    return _auth_payload(result)


@router.post("/login")
async def login(
    request: LoginRequest,
    response: Response,
    system: BankingSystem = Depends(get_banking_system)
):
    """Authenticate and start a session"""
    result = system.auth_service.login(request.email, request.password)
    set_session_cookie(response, system, result.token)
    return _auth_payload(result)


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    token: Optional[str] = Depends(get_session_token),
    user: Optional[User] = Depends(get_optional_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """End the current session; the cookie is cleared even when deletion fails"""
    try:
        result = system.auth_service.logout(token, user)
    except BankingError as exc:
        error_response = await banking_error_handler(request, exc)
        clear_session_cookie(error_response, system)
        return error_response

    clear_session_cookie(response, system)
    return {"success": result.success, "message": result.message}


@router.get("/me")
async def read_current_user(user: User = Depends(get_current_user)):
    """Details for the logged-in user"""
    return {"user": user.public_dict()}
