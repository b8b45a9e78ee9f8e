from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
import logging
import secrets

from ..core.config import Settings, TokenMode
from ..core.registry import RevocationRegistry, SessionEntry
from ..core.security import (
    TokenType, AuthError, InvalidCredentials, MissingToken, InvalidToken,
    InvalidRefreshToken, create_token, decode_token, verify_password, dummy_verify
)
from ..schemas.auth import TokenResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    username: str
    token_type: Optional[TokenType] = None
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


class CredentialVerifier:
    """Checks a username/password pair against the single admin identity."""

    def __init__(self, username: str, password_hash: str):
        self._username = username
        self._password_hash = password_hash

    def verify_credentials(self, username: str, password: str) -> Identity:
        """Return the admin identity or raise InvalidCredentials.

        Username mismatch, password mismatch and an unusable hash all raise
        the same error. A dummy hash check runs on username mismatch so the
        two failures take the same time.
        """
        if not username or not password:
            dummy_verify()
            raise InvalidCredentials()

        if not secrets.compare_digest(
            username.encode("utf-8"), self._username.encode("utf-8")
        ):
            dummy_verify()
            raise InvalidCredentials()

        if not verify_password(password, self._password_hash):
            raise InvalidCredentials()

        return Identity(username=self._username)


@dataclass(frozen=True)
class TokenPolicy:
    """Token strategy selected once at startup from AUTH_MODE.

    fixed_secret: a single access token without expiry; only logout revokes it.
    access_refresh: short-lived access tokens plus refresh tokens signed with
    a separate secret.
    """

    mode: TokenMode
    access_secret: str
    refresh_secret: Optional[str] = None
    algorithm: str = "HS256"
    access_lifetime: Optional[timedelta] = None
    refresh_lifetime: Optional[timedelta] = None
    rotate_refresh_tokens: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenPolicy":
        if settings.AUTH_MODE is TokenMode.FIXED_SECRET:
            return cls(
                mode=TokenMode.FIXED_SECRET,
                access_secret=settings.JWT_SECRET,
                algorithm=settings.ALGORITHM,
            )
        return cls(
            mode=TokenMode.ACCESS_REFRESH,
            access_secret=settings.JWT_SECRET,
            refresh_secret=settings.JWT_REFRESH_SECRET,
            algorithm=settings.ALGORITHM,
            access_lifetime=settings.access_token_lifetime,
            refresh_lifetime=settings.refresh_token_lifetime,
            rotate_refresh_tokens=settings.REFRESH_TOKEN_ROTATION,
        )

    @property
    def issues_refresh_tokens(self) -> bool:
        return self.mode is TokenMode.ACCESS_REFRESH and bool(self.refresh_secret)

    @property
    def expires_in(self) -> Optional[int]:
        if self.access_lifetime is None:
            return None
        return int(self.access_lifetime.total_seconds())

    def secret_for(self, token_type: TokenType) -> str:
        if token_type is TokenType.REFRESH:
            return self.refresh_secret
        return self.access_secret

    def lifetime_for(self, token_type: TokenType) -> Optional[timedelta]:
        if token_type is TokenType.REFRESH:
            return self.refresh_lifetime
        return self.access_lifetime


class TokenAuthority:
    """Issues, verifies, refreshes and revokes bearer tokens for the admin."""

    def __init__(
        self,
        verifier: CredentialVerifier,
        policy: TokenPolicy,
        registry: RevocationRegistry,
    ):
        self.verifier = verifier
        self.policy = policy
        self.registry = registry

    @classmethod
    def from_settings(
        cls, settings: Settings, registry: Optional[RevocationRegistry] = None
    ) -> "TokenAuthority":
        return cls(
            CredentialVerifier(settings.ADMIN_USERNAME, settings.ADMIN_PASSWORD_HASH),
            TokenPolicy.from_settings(settings),
            registry if registry is not None else RevocationRegistry(),
        )

    def login(self, username: str, password: str) -> TokenResponse:
        """Verify credentials and issue a token (pair)."""
        try:
            identity = self.verifier.verify_credentials(username, password)
        except InvalidCredentials:
            logger.warning("Login rejected: invalid credentials")
            raise

        access_token = self._issue(identity.username, TokenType.ACCESS)
        refresh_token = None
        if self.policy.issues_refresh_tokens:
            refresh_token = self._issue(identity.username, TokenType.REFRESH)

        logger.info(f"Login succeeded for {identity.username}")

        return TokenResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=self.policy.expires_in,
            username=identity.username,
        )

    def refresh(self, refresh_token: str) -> TokenResponse:
        """Exchange a honored refresh token for a new access token.

        With rotation enabled the presented refresh token is consumed and a
        new one is returned; otherwise its registry entry is left untouched.
        """
        if not refresh_token or not self.policy.issues_refresh_tokens:
            raise InvalidRefreshToken()

        entry = self.registry.get(refresh_token)
        if entry is None or entry.token_type is not TokenType.REFRESH:
            raise InvalidRefreshToken()

        try:
            payload = decode_token(
                refresh_token,
                self.policy.refresh_secret,
                TokenType.REFRESH,
                algorithm=self.policy.algorithm,
            )
        except AuthError:
            raise InvalidRefreshToken() from None

        new_refresh_token = None
        if self.policy.rotate_refresh_tokens:
            # Only one concurrent caller can consume a given refresh token
            if not self.registry.discard(refresh_token):
                raise InvalidRefreshToken()
            new_refresh_token = self._issue(payload.sub, TokenType.REFRESH)

        access_token = self._issue(payload.sub, TokenType.ACCESS)

        return TokenResponse(
            access_token=access_token,
            refresh_token=new_refresh_token,
            expires_in=self.policy.expires_in,
        )

    def logout(self, token: Optional[str]) -> bool:
        """Revoke a token. Idempotent: revoking an unknown token still succeeds."""
        if token:
            self.registry.discard(token)
        return True

    def verify(self, token: Optional[str]) -> Identity:
        """Authenticate a bearer token presented on a protected request."""
        if not token:
            raise MissingToken()

        # Registry first: revoked tokens are rejected without crypto work
        entry = self.registry.get(token)
        if entry is None or entry.token_type is not TokenType.ACCESS:
            raise InvalidToken()

        payload = decode_token(
            token,
            self.policy.access_secret,
            TokenType.ACCESS,
            algorithm=self.policy.algorithm,
        )

        # A logout that lands during verification wins
        if not self.registry.touch(token):
            raise InvalidToken()

        return Identity(
            username=payload.sub,
            token_type=payload.token_type,
            issued_at=payload.issued_at,
            expires_at=payload.expires_at,
        )

    def purge_expired(self) -> int:
        """Drop expired tokens from the registry."""
        removed = self.registry.purge_expired()
        if removed:
            logger.info(f"Purged {removed} expired token(s) from the registry")
        return removed

    def _issue(self, subject: str, token_type: TokenType) -> str:
        token, payload = create_token(
            subject,
            token_type,
            self.policy.secret_for(token_type),
            algorithm=self.policy.algorithm,
            expires_delta=self.policy.lifetime_for(token_type),
        )
        self.registry.add(
            token,
            SessionEntry(
                subject=payload.sub,
                token_type=token_type,
                issued_at=payload.issued_at,
                expires_at=payload.expires_at,
            ),
        )
        return token
