import time
from concurrent.futures import ThreadPoolExecutor

import pytest
from jose import jwt

from clinic_admin.core.config import TokenMode
from clinic_admin.core.security import (
    TokenType, InvalidCredentials, MissingToken, InvalidToken, TokenExpired,
    InvalidRefreshToken, create_token
)
from clinic_admin.services.auth_service import (
    CredentialVerifier, TokenAuthority, TokenPolicy
)
from tests.conftest import ACCESS_SECRET, REFRESH_SECRET


class TestCredentialVerifier:

    @pytest.fixture
    def verifier(self, admin_password_hash):
        return CredentialVerifier("admin", admin_password_hash)

    def test_valid_credentials(self, verifier):
        identity = verifier.verify_credentials("admin", "admin123")
        assert identity.username == "admin"

    @pytest.mark.parametrize("username,password", [
        ("admin", "wrong"),
        ("nobody", "admin123"),
        ("admin ", "admin123"),
        ("admin", " admin123"),
        ("", "admin123"),
        ("admin", ""),
    ])
    def test_invalid_credentials(self, verifier, username, password):
        with pytest.raises(InvalidCredentials) as exc_info:
            verifier.verify_credentials(username, password)
        assert exc_info.value.code == "INVALID_CREDENTIALS"

    def test_same_error_for_username_and_password(self, verifier):
        errors = []
        for username, password in [("nobody", "admin123"), ("admin", "wrong")]:
            with pytest.raises(InvalidCredentials) as exc_info:
                verifier.verify_credentials(username, password)
            errors.append((type(exc_info.value), str(exc_info.value)))
        assert errors[0] == errors[1]

    def test_malformed_hash_is_invalid_credentials(self):
        verifier = CredentialVerifier("admin", "not-a-hash")
        with pytest.raises(InvalidCredentials):
            verifier.verify_credentials("admin", "admin123")


class TestTokenPolicy:

    def test_access_refresh_policy(self, settings):
        policy = TokenPolicy.from_settings(settings)
        assert policy.mode is TokenMode.ACCESS_REFRESH
        assert policy.issues_refresh_tokens
        assert policy.expires_in == 15 * 60
        assert policy.secret_for(TokenType.REFRESH) == REFRESH_SECRET
        assert not policy.rotate_refresh_tokens

    def test_fixed_secret_policy(self, make_settings):
        policy = TokenPolicy.from_settings(
            make_settings(AUTH_MODE="fixed_secret", JWT_REFRESH_SECRET=None)
        )
        assert policy.mode is TokenMode.FIXED_SECRET
        assert not policy.issues_refresh_tokens
        assert policy.expires_in is None
        assert policy.lifetime_for(TokenType.ACCESS) is None


class TestLoginAndVerify:

    def test_login_token_passes_verify(self, authority):
        tokens = authority.login("admin", "admin123")
        identity = authority.verify(tokens.access_token)
        assert identity.username == "admin"
        assert identity.token_type is TokenType.ACCESS

    def test_login_records_both_tokens(self, authority, registry):
        tokens = authority.login("admin", "admin123")
        assert tokens.access_token in registry
        assert tokens.refresh_token in registry
        assert registry.count(TokenType.ACCESS) == 1
        assert registry.count(TokenType.REFRESH) == 1

    def test_tokens_are_signed_with_separate_secrets(self, authority):
        tokens = authority.login("admin", "admin123")
        access = jwt.decode(tokens.access_token, ACCESS_SECRET, algorithms=["HS256"])
        refresh = jwt.decode(tokens.refresh_token, REFRESH_SECRET, algorithms=["HS256"])
        assert access["token_type"] == "access"
        assert refresh["token_type"] == "refresh"
        assert access["sub"] == refresh["sub"] == "admin"

    def test_consecutive_logins_issue_distinct_tokens(self, authority):
        first = authority.login("admin", "admin123")
        second = authority.login("admin", "admin123")
        assert first.access_token != second.access_token

    def test_failed_login_records_nothing(self, authority, registry):
        with pytest.raises(InvalidCredentials):
            authority.login("admin", "wrong")
        assert len(registry) == 0

    def test_verify_missing_token(self, authority):
        with pytest.raises(MissingToken):
            authority.verify(None)
        with pytest.raises(MissingToken):
            authority.verify("")

    def test_verify_unknown_token(self, authority):
        with pytest.raises(InvalidToken):
            authority.verify("garbage")

    def test_verify_rejects_signed_but_unregistered_token(self, authority):
        token, _ = create_token("admin", TokenType.ACCESS, ACCESS_SECRET)
        with pytest.raises(InvalidToken):
            authority.verify(token)

    def test_verify_rejects_tampered_token(self, authority, registry):
        tokens = authority.login("admin", "admin123")
        forged, _ = create_token("admin", TokenType.ACCESS, "some-other-secret")
        # Registered under the wrong key material: signature must still fail
        registry.add(forged, registry.get(tokens.access_token))
        with pytest.raises(InvalidToken):
            authority.verify(forged)

    def test_verify_rejects_token_revoked_mid_verification(
        self, authority, registry, monkeypatch
    ):
        tokens = authority.login("admin", "admin123")
        original_touch = registry.touch

        def logout_then_touch(token, now=None):
            # A concurrent logout removes the entry between lookup and touch
            registry.discard(token)
            return original_touch(token, now)

        monkeypatch.setattr(registry, "touch", logout_then_touch)
        with pytest.raises(InvalidToken):
            authority.verify(tokens.access_token)

    def test_verify_updates_last_activity(self, authority, registry):
        tokens = authority.login("admin", "admin123")
        before = registry.get(tokens.access_token).last_activity
        time.sleep(0.01)
        authority.verify(tokens.access_token)
        assert registry.get(tokens.access_token).last_activity > before

    def test_expired_access_token(self, make_settings, registry):
        authority = TokenAuthority.from_settings(
            make_settings(ACCESS_TOKEN_EXPIRE_SECONDS=1), registry
        )
        tokens = authority.login("admin", "admin123")
        assert authority.verify(tokens.access_token).username == "admin"

        size = len(registry)
        time.sleep(2.1)
        with pytest.raises(TokenExpired) as exc_info:
            authority.verify(tokens.access_token)
        assert exc_info.value.code == "TOKEN_EXPIRED"
        assert len(registry) == size


class TestLogout:

    def test_verify_fails_after_logout(self, authority):
        tokens = authority.login("admin", "admin123")
        assert authority.logout(tokens.access_token) is True
        with pytest.raises(InvalidToken):
            authority.verify(tokens.access_token)

    def test_logout_is_idempotent(self, authority):
        tokens = authority.login("admin", "admin123")
        assert authority.logout(tokens.access_token) is True
        assert authority.logout(tokens.access_token) is True
        assert authority.logout("never-issued") is True
        assert authority.logout(None) is True


class TestRefresh:

    def test_refresh_issues_new_access_token(self, authority, registry):
        tokens = authority.login("admin", "admin123")
        refreshed = authority.refresh(tokens.refresh_token)

        assert refreshed.refresh_token is None
        assert authority.verify(refreshed.access_token).username == "admin"
        # Without rotation the refresh token stays usable
        assert tokens.refresh_token in registry
        authority.refresh(tokens.refresh_token)

    def test_refresh_never_issued(self, authority):
        token, _ = create_token(
            "admin", TokenType.REFRESH, REFRESH_SECRET
        )
        with pytest.raises(InvalidRefreshToken):
            authority.refresh(token)

    def test_refresh_with_access_token(self, authority):
        tokens = authority.login("admin", "admin123")
        with pytest.raises(InvalidRefreshToken):
            authority.refresh(tokens.access_token)

    def test_refresh_after_logout(self, authority):
        tokens = authority.login("admin", "admin123")
        authority.logout(tokens.refresh_token)
        with pytest.raises(InvalidRefreshToken):
            authority.refresh(tokens.refresh_token)

    def test_refresh_empty(self, authority):
        with pytest.raises(InvalidRefreshToken):
            authority.refresh("")

    def test_rotation_consumes_refresh_token(self, make_settings, registry):
        authority = TokenAuthority.from_settings(
            make_settings(REFRESH_TOKEN_ROTATION=True), registry
        )
        tokens = authority.login("admin", "admin123")
        refreshed = authority.refresh(tokens.refresh_token)

        assert refreshed.refresh_token
        assert tokens.refresh_token not in registry
        with pytest.raises(InvalidRefreshToken):
            authority.refresh(tokens.refresh_token)
        authority.refresh(refreshed.refresh_token)

    def test_rotation_single_winner_under_concurrency(self, make_settings, registry):
        authority = TokenAuthority.from_settings(
            make_settings(REFRESH_TOKEN_ROTATION=True), registry
        )
        tokens = authority.login("admin", "admin123")

        def attempt(_):
            try:
                authority.refresh(tokens.refresh_token)
                return True
            except InvalidRefreshToken:
                return False

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(attempt, range(16)))

        assert results.count(True) == 1

    def test_fixed_secret_mode_has_no_refresh(self, make_settings, registry):
        authority = TokenAuthority.from_settings(
            make_settings(AUTH_MODE="fixed_secret", JWT_REFRESH_SECRET=None), registry
        )
        tokens = authority.login("admin", "admin123")
        assert tokens.refresh_token is None
        assert tokens.expires_in is None
        with pytest.raises(InvalidRefreshToken):
            authority.refresh(tokens.access_token)


class TestConcurrency:

    def test_concurrent_login_verify_logout(self, authority, registry):
        """Each worker logs in, verifies, then logs out its own token."""

        def session(_):
            tokens = authority.login("admin", "admin123")
            for _ in range(20):
                authority.verify(tokens.access_token)
            authority.logout(tokens.access_token)
            authority.logout(tokens.refresh_token)
            try:
                authority.verify(tokens.access_token)
            except InvalidToken:
                return True
            return False

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(session, range(32)))

        assert all(results)
        assert len(registry) == 0

    def test_concurrent_operations_on_shared_token(self, authority, registry):
        tokens = authority.login("admin", "admin123")
        shared = tokens.access_token

        def hammer(i):
            if i % 5 == 0:
                authority.logout(shared)
                return "logout"
            try:
                authority.verify(shared)
                return "ok"
            except InvalidToken:
                return "revoked"

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(hammer, range(100)))

        assert "logout" in results
        assert shared not in registry
        assert tokens.refresh_token in registry
        with pytest.raises(InvalidToken):
            authority.verify(shared)
