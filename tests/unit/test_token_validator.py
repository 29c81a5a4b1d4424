"""
Unit tests for TokenVerifier.
"""

import time

import pytest
from jose import jwt
from unittest.mock import AsyncMock, MagicMock

from firebase_edge_auth.models import DecodedIdToken
from firebase_edge_auth.shared.errors import (
    AuthenticationError,
    TokenExpiredError,
    ValidationError,
)
from firebase_edge_auth.shared.test_helpers import PROJECT_ID, MockTokenGenerator
from firebase_edge_auth.validation.token_validator import (
    ID_TOKEN_ISSUER_PREFIX,
    SESSION_COOKIE_ISSUER_PREFIX,
    TokenVerifier,
)


@pytest.fixture(scope="module")
def generator():
    """Token generator shared by the module (key generation is slow)."""
    return MockTokenGenerator()


class TestTokenVerifier:
    """Test cases for TokenVerifier."""

    @pytest.fixture
    def key_client(self, generator):
        """Key client returning the generator's certificate for its kid."""
        client = MagicMock()

        async def get_key(kid):
            return generator.public_keys().get(kid)

        client.get_key = AsyncMock(side_effect=get_key)
        return client

    @pytest.fixture
    def verifier(self, key_client):
        """ID token verifier."""
        return TokenVerifier(key_client, PROJECT_ID, ID_TOKEN_ISSUER_PREFIX)

    @pytest.fixture
    def cookie_verifier(self, key_client):
        """Session cookie verifier."""
        return TokenVerifier(key_client, PROJECT_ID, SESSION_COOKIE_ISSUER_PREFIX, token_kind="session cookie")

    @pytest.mark.asyncio
    async def test_verify_valid_id_token(self, verifier, key_client, generator):
        """A correctly signed token with valid claims is accepted."""
        token = generator.generate_id_token("user-42", admin=True)

        decoded = await verifier.verify(token)

        assert isinstance(decoded, DecodedIdToken)
        assert decoded.uid == "user-42"
        assert decoded.aud == PROJECT_ID
        assert decoded.iss == f"https://securetoken.google.com/{PROJECT_ID}"
        assert decoded.firebase.sign_in_provider == "password"
        assert decoded.custom_claims == {"admin": True}
        key_client.get_key.assert_awaited_once_with(generator.kid)

    @pytest.mark.asyncio
    async def test_verify_valid_session_cookie(self, cookie_verifier, generator):
        """Session cookies are checked against the session issuer."""
        cookie = generator.generate_session_cookie("user-7")

        decoded = await cookie_verifier.verify(cookie)

        assert decoded.sub == "user-7"
        assert decoded.iss == f"https://session.firebase.google.com/{PROJECT_ID}"

    @pytest.mark.asyncio
    async def test_id_token_rejected_as_session_cookie(self, cookie_verifier, generator):
        """An ID token carries the wrong issuer for a session cookie."""
        with pytest.raises(AuthenticationError) as exc_info:
            await cookie_verifier.verify(generator.generate_id_token())

        assert exc_info.value.code == "AUTHENTICATION_ERROR"
        assert exc_info.value.details["issuer"] == f"https://session.firebase.google.com/{PROJECT_ID}"

    @pytest.mark.asyncio
    async def test_verify_expired_token(self, verifier, generator):
        """Expired tokens raise TokenExpiredError."""
        token = generator.generate_id_token(expires_in=-60)

        with pytest.raises(TokenExpiredError) as exc_info:
            await verifier.verify(token)

        assert exc_info.value.code == "TOKEN_EXPIRED"

    @pytest.mark.asyncio
    async def test_expired_token_within_clock_skew(self, key_client, generator):
        """Leeway tolerates small clock differences."""
        verifier = TokenVerifier(key_client, PROJECT_ID, ID_TOKEN_ISSUER_PREFIX, clock_skew=30)
        token = generator.generate_id_token(expires_in=-5)

        decoded = await verifier.verify(token)

        assert decoded.uid == "user-1"

    @pytest.mark.asyncio
    async def test_verify_wrong_audience(self, verifier, generator):
        """Tokens minted for another project are rejected."""
        token = generator.generate_id_token(aud="another-project")

        with pytest.raises(AuthenticationError):
            await verifier.verify(token)

    @pytest.mark.asyncio
    async def test_verify_wrong_issuer(self, verifier, generator):
        """Tokens from another issuer are rejected."""
        token = generator.generate_id_token(iss="https://securetoken.google.com/another-project")

        with pytest.raises(AuthenticationError):
            await verifier.verify(token)

    @pytest.mark.asyncio
    async def test_verify_tampered_signature(self, verifier, generator):
        """A token signed by a different key under the same kid fails."""
        impostor = MockTokenGenerator(kid=generator.kid)
        token = impostor.generate_id_token()

        with pytest.raises(AuthenticationError) as exc_info:
            await verifier.verify(token)

        assert not isinstance(exc_info.value, TokenExpiredError)

    @pytest.mark.asyncio
    async def test_verify_modified_payload(self, verifier, generator):
        """Swapping the payload invalidates the signature."""
        token = generator.generate_id_token("user-1")
        other = generator.generate_id_token("admin")
        header, _, signature = token.split(".")
        forged = ".".join([header, other.split(".")[1], signature])

        with pytest.raises(AuthenticationError):
            await verifier.verify(forged)

    @pytest.mark.asyncio
    async def test_verify_unknown_kid(self, verifier, generator):
        """A kid missing from the key set is rejected."""
        stranger = MockTokenGenerator()

        with pytest.raises(AuthenticationError) as exc_info:
            await verifier.verify(stranger.generate_id_token())

        assert exc_info.value.message == "Cannot find public key"
        assert exc_info.value.details == {"kid": stranger.kid}

    @pytest.mark.asyncio
    async def test_verify_missing_kid(self, verifier, generator):
        """Tokens without a kid header are rejected before key lookup."""
        claims = generator.claims("user-1", ID_TOKEN_ISSUER_PREFIX)
        token = jwt.encode(claims, generator.private_key, algorithm="RS256")

        with pytest.raises(AuthenticationError):
            await verifier.verify(token)

        verifier.key_client.get_key.assert_not_called()

    @pytest.mark.asyncio
    async def test_verify_rejects_hmac_algorithm(self, verifier, generator):
        """Only RS256 is accepted."""
        claims = generator.claims("user-1", ID_TOKEN_ISSUER_PREFIX)
        token = jwt.encode(claims, "shared-secret", algorithm="HS256", headers={"kid": generator.kid})

        with pytest.raises(AuthenticationError) as exc_info:
            await verifier.verify(token)

        assert exc_info.value.details == {"expected": "RS256", "actual": "HS256"}
        verifier.key_client.get_key.assert_not_called()

    @pytest.mark.asyncio
    async def test_verify_malformed_token(self, verifier):
        """Garbage input raises AuthenticationError."""
        with pytest.raises(AuthenticationError):
            await verifier.verify("not.a.jwt")

    @pytest.mark.asyncio
    async def test_verify_empty_token(self, verifier):
        """Empty input is a caller error."""
        with pytest.raises(ValidationError):
            await verifier.verify("")

    @pytest.mark.asyncio
    async def test_verify_subject_too_long(self, verifier, generator):
        """Subjects longer than 128 characters are rejected."""
        token = generator.generate_id_token("u" * 129)

        with pytest.raises(AuthenticationError):
            await verifier.verify(token)

    @pytest.mark.asyncio
    async def test_verify_issued_in_future(self, verifier, generator):
        """iat later than now is rejected."""
        now = int(time.time())
        token = generator.generate_id_token(iat=now + 3600, exp=now + 7200)

        with pytest.raises(AuthenticationError):
            await verifier.verify(token)

    @pytest.mark.asyncio
    async def test_verify_auth_time_in_future(self, verifier, generator):
        """auth_time later than now is rejected."""
        token = generator.generate_id_token(auth_time=int(time.time()) + 3600)

        with pytest.raises(AuthenticationError):
            await verifier.verify(token)
