from fastapi import APIRouter, Body, Depends
from typing import Optional
import logging

from ...api.deps import get_bearer_token, get_current_identity, get_token_authority
from ...core.security import MissingCredentials, MissingToken
from ...services.auth_service import Identity, TokenAuthority
from ...schemas.auth import (
    LoginRequest, RefreshTokenRequest, LogoutRequest, TokenResponse,
    IdentityResponse, MessageResponse, ErrorResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

@router.post(
    "/login",
    response_model=TokenResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def login(
    login_data: LoginRequest,
    authority: TokenAuthority = Depends(get_token_authority)
):
    """Authenticate the administrator and return bearer token(s)."""
    if not login_data.username or not login_data.password:
        raise MissingCredentials()

    return authority.login(login_data.username, login_data.password)

@router.post(
    "/refresh",
    response_model=TokenResponse,
    response_model_exclude_none=True,
    responses={401: {"model": ErrorResponse}},
)
async def refresh_token(
    refresh_data: RefreshTokenRequest,
    authority: TokenAuthority = Depends(get_token_authority)
):
    """Issue a new access token from a refresh token."""
    return authority.refresh(refresh_data.refresh_token)

@router.post(
    "/logout",
    response_model=MessageResponse,
    responses={401: {"model": ErrorResponse}},
)
async def logout(
    logout_data: Optional[LogoutRequest] = Body(default=None),
    token: Optional[str] = Depends(get_bearer_token),
    authority: TokenAuthority = Depends(get_token_authority)
):
    """Revoke the presented token and, if given, a refresh token.

    The bearer token is not verified first: expired, revoked or unknown
    tokens are still removed and the call succeeds.
    """
    if not token:
        raise MissingToken()

    authority.logout(token)
    if logout_data and logout_data.refresh_token:
        authority.logout(logout_data.refresh_token)

    logger.info("Logout completed")
    return {"message": "Successfully logged out"}

@router.get("/me", response_model=IdentityResponse)
async def get_current_identity_info(
    identity: Identity = Depends(get_current_identity)
):
    """Get the identity bound to the presented token."""
    return IdentityResponse(
        username=identity.username,
        token_type=identity.token_type.value,
        issued_at=identity.issued_at,
        expires_at=identity.expires_at,
    )
