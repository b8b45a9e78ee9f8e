from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from fastapi.security import HTTPBearer
from pydantic import BaseModel, ValidationError
from enum import Enum
import uuid

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer extraction; a missing header is reported as MISSING_TOKEN, not by FastAPI
security = HTTPBearer(auto_error=False)


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class TokenPayload(BaseModel):
    sub: str
    token_type: TokenType
    iat: int
    jti: str
    exp: Optional[int] = None

    @property
    def issued_at(self) -> datetime:
        return datetime.fromtimestamp(self.iat, tz=timezone.utc)

    @property
    def expires_at(self) -> Optional[datetime]:
        if self.exp is None:
            return None
        return datetime.fromtimestamp(self.exp, tz=timezone.utc)


# Authentication errors
class AuthError(Exception):
    """Base class for authentication failures.

    Each subclass carries the HTTP status and machine-readable code the
    routing layer answers with. The message is fixed per class.
    """

    status_code: int = 401
    code: str = "UNAUTHORIZED"
    message: str = "Authentication failed"

    def __init__(self, message: Optional[str] = None):
        if message:
            self.message = message
        super().__init__(self.message)


class MissingCredentials(AuthError):
    status_code = 400
    code = "MISSING_CREDENTIALS"
    message = "Username and password are required"


class InvalidCredentials(AuthError):
    code = "INVALID_CREDENTIALS"
    message = "Invalid username or password"


class MissingToken(AuthError):
    code = "MISSING_TOKEN"
    message = "Token not provided"


class InvalidToken(AuthError):
    status_code = 403
    code = "INVALID_TOKEN"
    message = "Invalid token"


class TokenExpired(AuthError):
    code = "TOKEN_EXPIRED"
    message = "Token expired"


class InvalidRefreshToken(AuthError):
    code = "INVALID_REFRESH_TOKEN"
    message = "Invalid or expired refresh token"


# Password utilities
def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against its hash. Malformed hashes never match."""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


def dummy_verify() -> None:
    """Spend the time of one hash verification without checking anything."""
    pwd_context.dummy_verify()


def get_password_hash(password: str) -> str:
    """Generate password hash."""
    return pwd_context.hash(password)


# JWT utilities
def create_token(
    subject: str,
    token_type: TokenType,
    secret: str,
    algorithm: str = "HS256",
    expires_delta: Optional[timedelta] = None,
) -> Tuple[str, TokenPayload]:
    """Create a signed JWT.

    Without ``expires_delta`` the token carries no ``exp`` claim and never
    expires. Every token gets a random ``jti`` so two tokens minted within
    the same second are distinct registry keys.
    """
    issued_at = int(datetime.now(timezone.utc).timestamp())
    to_encode = {
        "sub": subject,
        "token_type": token_type.value,
        "iat": issued_at,
        "jti": uuid.uuid4().hex,
    }

    if expires_delta is not None:
        to_encode["exp"] = issued_at + int(expires_delta.total_seconds())

    encoded_jwt = jwt.encode(to_encode, secret, algorithm=algorithm)
    return encoded_jwt, TokenPayload(**to_encode)


def decode_token(
    token: str,
    secret: str,
    expected_type: TokenType,
    algorithm: str = "HS256",
) -> TokenPayload:
    """Verify signature, expiry and type of a JWT.

    Raises TokenExpired when only the expiry check fails and InvalidToken
    for everything else.
    """
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
    except ExpiredSignatureError:
        raise TokenExpired() from None
    except JWTError:
        raise InvalidToken() from None

    try:
        token_payload = TokenPayload(**payload)
    except ValidationError:
        raise InvalidToken() from None

    if token_payload.token_type is not expected_type:
        raise InvalidToken()

    return token_payload
