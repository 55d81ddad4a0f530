"""Authentication routes: accounts, tokens and the organizer upgrade."""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from gowra.schemas import (
    RegisterRequest, LoginRequest, RefreshTokenRequest, UpgradeRequest, ProfileUpdate,
    AuthResponse, RefreshResponse, UpgradeResponse, UserResponse, MessageResponse,
    TokenData, UserOut,
)
from gowra.services.auth_service import AuthService
from gowra.services.token_service import TokenService
from gowra.db.session import get_session
from gowra.auth import get_current_user
from gowra.core.rate_limit import limiter

router = APIRouter(prefix="/auth", tags=["auth"])


def get_auth_service(session: AsyncSession = Depends(get_session)) -> AuthService:
    return AuthService(session)


def get_token_service(session: AsyncSession = Depends(get_session)) -> TokenService:
    return TokenService(session)


@router.post("/register", response_model=AuthResponse)
@limiter.limit("3/minute")
async def register(
    request: Request,
    payload: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    Register a new account and sign it in.

    Rate limit: 3 requests per minute
    """
    result = await auth_service.register(payload)
    return AuthResponse(
        user=UserOut.model_validate(result["user"]),
        token=result["access_token"],
        refresh_token=result["refresh_token"],
    )


@router.post("/login", response_model=AuthResponse)
@limiter.limit("5/minute")
async def login(
    request: Request,
    form_data: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    Exchange email and password for an access and refresh token.

    Rate limit: 5 requests per minute
    """
    result = await auth_service.login(form_data)
    return AuthResponse(
        user=UserOut.model_validate(result["user"]),
        token=result["access_token"],
        refresh_token=result["refresh_token"],
    )


@router.post("/refresh", response_model=RefreshResponse)
@limiter.limit("10/minute")
async def refresh_access_token(
    request: Request,
    payload: RefreshTokenRequest,
    token_service: TokenService = Depends(get_token_service)
):
    """
    Trade a refresh token for a new access token.

    The new token carries the user's current role, so this is how a token
    issued before an upgrade catches up. Rate limit: 10 requests per minute
    """
    user, access_token, rotated = await token_service.refresh(payload.refresh_token)
    return RefreshResponse(
        user=UserOut.model_validate(user),
        token=access_token,
        refresh_token=rotated,
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    payload: RefreshTokenRequest,
    token_service: TokenService = Depends(get_token_service)
):
    """
    Revoke the given refresh token.

    Access tokens already handed out stay valid until they expire.
    """
    await token_service.revoke(payload.refresh_token)
    return MessageResponse(message="Logout successful")


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: TokenData = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
):
    """Current user as stored, which may be newer than the token's claims."""
    user = await auth_service.get_user(current_user.id)
    return UserResponse(user=UserOut.model_validate(user))


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    payload: ProfileUpdate,
    current_user: TokenData = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
):
    user = await auth_service.update_profile(current_user.id, payload.name)
    return UserResponse(user=UserOut.model_validate(user))


@router.post("/upgrade-to-organizer", response_model=UpgradeResponse)
async def upgrade_to_organizer(
    payload: UpgradeRequest,
    current_user: TokenData = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    Upgrade the caller to organizer and return a token with the new role.

    The caller must switch to the returned token; the one used for this
    request still says ``regular``.
    """
    result = await auth_service.upgrade_to_organizer(current_user.id, payload)
    return UpgradeResponse(
        user=UserOut.model_validate(result["user"]),
        token=result["access_token"],
    )
