"""
Shared configuration management for firebase-edge-auth.
"""

from typing import Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1/"
SECURE_TOKEN_URL = "https://securetoken.googleapis.com/v1/token"
OAUTH_TOKEN_URL = "https://oauth2.googleapis.com/token"
ID_TOKEN_CERTS_URL = (
    "https://www.googleapis.com/robot/v1/metadata/x509/securetoken@system.gserviceaccount.com"
)
SESSION_COOKIE_CERTS_URL = "https://www.googleapis.com/identitytoolkit/v3/relyingparty/publicKeys"
IDENTITY_TOOLKIT_SCOPE = "https://www.googleapis.com/auth/identitytoolkit"


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="FIREBASE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Optional shared cache for the OAuth token and public keys
    redis_url: Optional[str] = Field(default=None)

    # HTTP behaviour
    http_timeout: float = Field(default=10.0)
    http_max_attempts: int = Field(default=3)
    http_retry_base_delay: float = Field(default=0.5)
    circuit_failure_threshold: int = Field(default=5)
    circuit_recovery_timeout: float = Field(default=30.0)

    # Provider endpoints
    identity_toolkit_url: str = Field(default=IDENTITY_TOOLKIT_URL)
    secure_token_url: str = Field(default=SECURE_TOKEN_URL)
    oauth_token_url: str = Field(default=OAUTH_TOKEN_URL)
    id_token_certs_url: str = Field(default=ID_TOKEN_CERTS_URL)
    session_cookie_certs_url: str = Field(default=SESSION_COOKIE_CERTS_URL)
    oauth_scope: str = Field(default=IDENTITY_TOOLKIT_SCOPE)

    # Token handling
    clock_skew_seconds: int = Field(default=0, ge=0, le=60)
    oauth_token_ttl: int = Field(default=3300, gt=0, le=3600)
    public_keys_default_ttl: int = Field(default=3600, gt=0)


class FirebaseConfig(BaseConfig):
    """Project credentials plus the common settings."""

    project_id: str
    api_key: str
    service_account_email: str
    private_key: SecretStr

    @field_validator("private_key", mode="before")
    @classmethod
    def _unescape_newlines(cls, value):
        # Keys pasted into env vars usually carry literal "\n" sequences.
        if isinstance(value, str):
            return value.replace("\\n", "\n")
        return value


def get_config(**overrides) -> FirebaseConfig:
    """Build configuration from the environment, with explicit overrides."""
    return FirebaseConfig(**overrides)
