"""
Data models for Identity Toolkit responses and verified token claims.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ProviderModel(BaseModel):
    """Base for provider JSON: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class ProviderUserInfo(ProviderModel):
    """A linked sign-in provider of a user."""
    provider_id: str
    federated_id: Optional[str] = None
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    raw_id: Optional[str] = None


class User(ProviderModel):
    """User record as returned by ``accounts:lookup``."""
    local_id: str
    email: Optional[str] = None
    email_verified: bool = False
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    phone_number: Optional[str] = None
    disabled: bool = False
    password_hash: Optional[str] = None
    password_updated_at: Optional[float] = None
    valid_since: Optional[int] = None
    last_login_at: Optional[int] = None
    created_at: Optional[int] = None
    last_refresh_at: Optional[str] = None
    custom_attributes: Optional[str] = None
    tenant_id: Optional[str] = None
    provider_user_info: List[ProviderUserInfo] = Field(default_factory=list)

    @property
    def uid(self) -> str:
        return self.local_id

    @property
    def custom_claims(self) -> Dict[str, Any]:
        """Developer claims set through ``set_custom_user_claims``."""
        if not self.custom_attributes:
            return {}
        return json.loads(self.custom_attributes)


class TokenResponse(ProviderModel):
    """Tokens returned by sign-in, sign-up, password update and refresh."""
    id_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    local_id: Optional[str] = None
    email: Optional[str] = None
    registered: Optional[bool] = None
    display_name: Optional[str] = None
    kind: Optional[str] = None


class FirebaseClaims(BaseModel):
    """The ``firebase`` claim of an ID token."""

    model_config = ConfigDict(extra="allow")

    identities: Dict[str, Any] = Field(default_factory=dict)
    sign_in_provider: Optional[str] = None
    tenant: Optional[str] = None


STANDARD_CLAIMS = frozenset({
    "iss", "aud", "sub", "iat", "exp", "auth_time", "user_id", "email",
    "email_verified", "phone_number", "picture", "name", "firebase",
})


class DecodedIdToken(BaseModel):
    """Claims of a verified ID token or session cookie."""

    model_config = ConfigDict(extra="allow")

    iss: str
    aud: Union[str, List[str]]
    sub: str
    iat: int
    exp: int
    auth_time: Optional[int] = None
    user_id: Optional[str] = None
    email: Optional[str] = None
    email_verified: Optional[bool] = None
    phone_number: Optional[str] = None
    picture: Optional[str] = None
    name: Optional[str] = None
    firebase: FirebaseClaims = Field(default_factory=FirebaseClaims)

    @property
    def uid(self) -> str:
        return self.sub

    @property
    def custom_claims(self) -> Dict[str, Any]:
        return {
            key: value
            for key, value in (self.model_extra or {}).items()
            if key not in STANDARD_CLAIMS
        }


@dataclass(frozen=True)
class AuthResult:
    """Tokens and user record from a password sign-in or sign-up."""

    token: TokenResponse
    user: User
