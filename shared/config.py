"""
Shared configuration management for the session authorization service.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.errors import ConfigurationError


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="AUTHZ_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Observability
    enable_docs: bool = Field(default=True)


class ServiceConfig(BaseConfig):
    """Settings consumed by the authorization service."""

    service_name: str = "authz"
    host: str = "0.0.0.0"
    port: int = 8181

    # Token verification
    jwks_url: Optional[str] = Field(default=None)
    issuer: Optional[str] = Field(default=None)
    audience: Optional[str] = Field(default=None)
    subject_claim: str = Field(default="fedid")

    # Key material cache
    jwks_cache_ttl: float = Field(default=3600.0, gt=0)
    jwks_fetch_timeout: float = Field(default=3.0, gt=0)
    jwks_fetch_attempts: int = Field(default=3, ge=1, le=5)
    jwks_retry_base_delay: float = Field(default=0.2, ge=0)

    # Directory and permission data
    directory_path: Optional[str] = Field(default=None)
    permissions_path: Optional[str] = Field(default=None)

    # Development only
    dev_bypass: bool = Field(default=False)
    dev_token: str = Field(default="ANY_TOKEN")
    dev_subject: str = Field(default="dev")

    def validate_required(self) -> "ServiceConfig":
        """Fail fast on settings the service cannot run without."""
        missing = [
            name for name in ("jwks_url", "issuer", "audience")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationError(
                "Missing required settings",
                details={"missing": [f"AUTHZ_{name.upper()}" for name in missing]}
            )

        if self.dev_bypass and not self.local_env_declared():
            raise ConfigurationError(
                "Development bypass needs AUTHZ_ENV=local set explicitly",
                details={"env": self.env, "env_set": "env" in self.model_fields_set}
            )

        return self

    def local_env_declared(self) -> bool:
        """True only when AUTHZ_ENV=local was given, not merely defaulted."""
        return "env" in self.model_fields_set and self.env == "local"


def get_config(**overrides) -> ServiceConfig:
    """Load service configuration from the environment."""
    return ServiceConfig(**overrides)
