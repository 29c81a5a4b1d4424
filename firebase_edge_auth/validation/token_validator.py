"""
Verification of provider-issued JWTs (ID tokens and session cookies).
"""

import time
from typing import Any, Dict

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError, JWTError
from pydantic import ValidationError as ModelValidationError

from ..jwks.client import PublicKeyClient
from ..models import DecodedIdToken
from ..shared.errors import AuthenticationError, TokenExpiredError, ValidationError
from ..shared.logging import get_logger

ID_TOKEN_ISSUER_PREFIX = "https://securetoken.google.com/"
SESSION_COOKIE_ISSUER_PREFIX = "https://session.firebase.google.com/"
ALGORITHM = "RS256"
MAX_SUBJECT_LENGTH = 128


class TokenVerifier:
    """Verifies one kind of provider JWT against the project's settings.

    The signing certificate is chosen by the token's ``kid`` header. The
    signature must be RS256, the issuer must be ``<issuer_prefix><project_id>``
    and the audience the project id.
    """

    def __init__(
        self,
        key_client: PublicKeyClient,
        project_id: str,
        issuer_prefix: str,
        token_kind: str = "ID token",
        clock_skew: int = 0,
    ):
        self.key_client = key_client
        self.project_id = project_id
        self.issuer = f"{issuer_prefix}{project_id}"
        self.token_kind = token_kind
        self.clock_skew = clock_skew
        self.logger = get_logger("firebase_auth.validation")

    async def verify(self, token: str) -> DecodedIdToken:
        """Verify a token and return its decoded claims."""
        if not isinstance(token, str) or not token:
            raise ValidationError(f"{self.token_kind} must be a non-empty string")

        try:
            header = jwt.get_unverified_header(token)
        except JWTError as e:
            raise AuthenticationError(
                f"Decoding {self.token_kind} header failed",
                details={"error": str(e)},
            ) from e

        algorithm = header.get("alg")
        if algorithm != ALGORITHM:
            raise AuthenticationError(
                f"{self.token_kind} has incorrect algorithm",
                details={"expected": ALGORITHM, "actual": algorithm},
            )

        kid = header.get("kid")
        if not isinstance(kid, str) or not kid:
            raise AuthenticationError(f"{self.token_kind} has no key id (kid) header")

        certificate = await self.key_client.get_key(kid)
        if certificate is None:
            raise AuthenticationError("Cannot find public key", details={"kid": kid})

        claims = self._decode(token, certificate)
        self._check_subject(claims)
        self._check_times(claims)

        try:
            decoded = DecodedIdToken.model_validate(claims)
        except ModelValidationError as e:
            raise AuthenticationError(
                f"{self.token_kind} has malformed claims",
                details={"error": str(e)},
            ) from e

        self.logger.info(
            "Token verified successfully",
            token_kind=self.token_kind,
            sub=decoded.sub,
            tenant_id=decoded.firebase.tenant,
        )
        return decoded

    def _decode(self, token: str, certificate: str) -> Dict[str, Any]:
        try:
            return jwt.decode(
                token,
                certificate,
                algorithms=[ALGORITHM],
                audience=self.project_id,
                issuer=self.issuer,
                options={
                    "leeway": self.clock_skew,
                    "require_aud": True,
                    "require_iss": True,
                    "require_iat": True,
                    "require_exp": True,
                    "require_sub": True,
                },
            )
        except ExpiredSignatureError as e:
            self.logger.info("Expired token rejected", token_kind=self.token_kind)
            raise TokenExpiredError(f"{self.token_kind} has expired") from e
        except JWTClaimsError as e:
            self.logger.warning("Token claims rejected", token_kind=self.token_kind, error=str(e))
            raise AuthenticationError(
                f"{self.token_kind} has invalid claims",
                details={"error": str(e), "issuer": self.issuer, "audience": self.project_id},
            ) from e
        except JWTError as e:
            self.logger.warning("Token verification failed", token_kind=self.token_kind, error=str(e))
            raise AuthenticationError(
                f"{self.token_kind} verification failed",
                details={"error": str(e)},
            ) from e

    def _check_subject(self, claims: Dict[str, Any]) -> None:
        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            raise AuthenticationError(f"{self.token_kind} has an empty subject (sub) claim")
        if len(subject) > MAX_SUBJECT_LENGTH:
            raise AuthenticationError(
                f"{self.token_kind} has a subject (sub) claim longer than {MAX_SUBJECT_LENGTH} characters"
            )

    def _check_times(self, claims: Dict[str, Any]) -> None:
        latest = time.time() + self.clock_skew

        if claims["iat"] > latest:
            raise AuthenticationError(f"{self.token_kind} was issued in the future")

        auth_time = claims.get("auth_time")
        if auth_time is not None and (not isinstance(auth_time, (int, float)) or auth_time > latest):
            raise AuthenticationError(f"{self.token_kind} has an invalid auth_time claim")
