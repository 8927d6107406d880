"""Account endpoints: registration, login, token refresh and profile."""

from typing import Optional

from fastapi import APIRouter, Depends, status

from qrmenu.models import User
from qrmenu.routers.deps import get_account_service, get_current_user, get_optional_user
from qrmenu.schemas import (
    AuthResult,
    Envelope,
    TokenPair,
    TokenRefresh,
    UserLogin,
    UserOut,
    UserRegister,
)
from qrmenu.services.auth import AccountService

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=Envelope[AuthResult],
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
)
async def register(
    data: UserRegister,
    accounts: AccountService = Depends(get_account_service),
    caller: Optional[User] = Depends(get_optional_user),
) -> Envelope[AuthResult]:
    user = await accounts.register(data, created_by=caller)
    return Envelope(
        message="User registered successfully",
        data=AuthResult(user=UserOut.model_validate(user), tokens=accounts.tokens.issue(user)),
    )


@router.post("/login", response_model=Envelope[AuthResult], summary="Log in")
async def login(
    data: UserLogin,
    accounts: AccountService = Depends(get_account_service),
) -> Envelope[AuthResult]:
    user, tokens = await accounts.login(data.email, data.password)
    return Envelope(
        message="Login successful",
        data=AuthResult(user=UserOut.model_validate(user), tokens=tokens),
    )


@router.post("/refresh", response_model=Envelope[TokenPair], summary="Refresh the token pair")
async def refresh(
    data: TokenRefresh,
    accounts: AccountService = Depends(get_account_service),
) -> Envelope[TokenPair]:
    return Envelope(data=await accounts.refresh(data.refresh_token))


@router.get("/profile", response_model=Envelope[UserOut], summary="Current user")
async def profile(user: User = Depends(get_current_user)) -> Envelope[UserOut]:
    return Envelope(data=UserOut.model_validate(user))
