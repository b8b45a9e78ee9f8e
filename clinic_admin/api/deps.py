from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials
from typing import Optional

from ..core.security import security
from ..services.auth_service import Identity, TokenAuthority


def get_token_authority(request: Request) -> TokenAuthority:
    """The application's single TokenAuthority, created in create_app."""
    return request.app.state.token_authority


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[str]:
    """Extract the bearer token from the Authorization header, if any."""
    if credentials is None:
        return None
    return credentials.credentials


async def get_current_identity(
    request: Request,
    token: Optional[str] = Depends(get_bearer_token),
    authority: TokenAuthority = Depends(get_token_authority),
) -> Identity:
    """Verify the request's bearer token before any protected handler runs.

    Auth errors propagate to the application's AuthError handler, which
    answers without invoking the route.
    """
    identity = authority.verify(token)
    request.state.identity = identity
    request.state.token = token
    return identity
