from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python; both accepted on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LoginRequest(CamelModel):
    # Blank fields are answered with 400 MISSING_CREDENTIALS by the route
    username: Optional[str] = None
    password: Optional[str] = None


class RefreshTokenRequest(CamelModel):
    refresh_token: str = Field(min_length=1)


class LogoutRequest(CamelModel):
    refresh_token: Optional[str] = None


class TokenResponse(CamelModel):
    access_token: str
    token_type: str = "Bearer"
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    username: Optional[str] = None


class IdentityResponse(CamelModel):
    username: str
    token_type: str
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
    code: str
