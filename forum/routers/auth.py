from fastapi import APIRouter, Depends, Query

from forum.database import Gateway, get_gateway
from forum.dependencies import get_current_claims
from forum.schemas import (
    EmailRequest,
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    MessageResponse,
    PasswordReset,
    PasswordResetConfirm,
    RefreshRequest,
    RegisterRequest,
    RegisterResponse,
    TokenPair,
    TokenRequest,
)
from forum.security import TokenClaims
from forum.services import auth_service

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", status_code=201, response_model=RegisterResponse)
async def register(data: RegisterRequest, gateway: Gateway = Depends(get_gateway)):
    return await auth_service.register(gateway, data)


@router.post("/login", response_model=LoginResponse)
async def login(data: LoginRequest, gateway: Gateway = Depends(get_gateway)):
    return await auth_service.login(gateway, data)


@router.post("/refresh", response_model=TokenPair)
async def refresh(data: RefreshRequest, gateway: Gateway = Depends(get_gateway)):
    return await auth_service.refresh(gateway, data.refresh_token)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    data: LogoutRequest | None = None,
    claims: TokenClaims = Depends(get_current_claims),
    gateway: Gateway = Depends(get_gateway),
):
    return await auth_service.logout(gateway, claims, data.refresh_token if data else None)


# --- Email confirmation ---

@router.get("/verify-email", response_model=MessageResponse)
async def verify_email_link(
    token: str = Query(..., min_length=1, max_length=128),
    gateway: Gateway = Depends(get_gateway),
):
    return await auth_service.verify_email(gateway, token)


@router.post("/verify-email", response_model=MessageResponse)
async def verify_email(data: TokenRequest, gateway: Gateway = Depends(get_gateway)):
    return await auth_service.verify_email(gateway, data.token)


@router.post("/resend-verification", response_model=MessageResponse)
async def resend_verification(data: EmailRequest, gateway: Gateway = Depends(get_gateway)):
    return await auth_service.resend_verification(gateway, data.email)


# --- Password reset ---

@router.post("/password-reset", response_model=MessageResponse)
async def request_password_reset(data: EmailRequest, gateway: Gateway = Depends(get_gateway)):
    return await auth_service.request_password_reset(gateway, data.email)


@router.post("/password-reset/confirm", response_model=MessageResponse)
async def reset_password(data: PasswordReset, gateway: Gateway = Depends(get_gateway)):
    return await auth_service.reset_password(gateway, data.token, data.password)


@router.post("/password-reset/{token}", response_model=MessageResponse)
async def reset_password_with_path_token(
    token: str,
    data: PasswordResetConfirm,
    gateway: Gateway = Depends(get_gateway),
):
    return await auth_service.reset_password(gateway, token, data.password)
