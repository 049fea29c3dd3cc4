"""
Development-only token bypass.

Lets a developer exercise the service locally without an identity provider
by presenting a fixed sentinel token. It is constructed only from
configuration, only when AUTHZ_DEV_BYPASS is set, and refuses to exist
unless AUTHZ_ENV=local was set explicitly; the default environment does not
count. The token validator never consults it unless an instance was handed
to it.
"""

import hmac
from typing import Optional

from shared.config import ServiceConfig
from shared.errors import ConfigurationError
from shared.logging import get_logger
from .claims import VerifiedClaims

logger = get_logger("authz.dev_bypass")


class DevBypass:
    """Accepts a single sentinel token as the configured subject."""

    def __init__(self, token: str, subject: str):
        if not token or not subject:
            raise ConfigurationError("Development bypass needs a token and a subject")
        self._token = token
        self.subject = subject

    @classmethod
    def from_config(cls, config: ServiceConfig) -> Optional["DevBypass"]:
        if not config.dev_bypass:
            return None
        if not config.local_env_declared():
            raise ConfigurationError(
                "Development bypass needs AUTHZ_ENV=local set explicitly",
                details={"env": config.env}
            )
        logger.warning("Development token bypass is ENABLED", subject=config.dev_subject)
        return cls(config.dev_token, config.dev_subject)

    def matches(self, token: str) -> bool:
        return hmac.compare_digest(token.encode(), self._token.encode())

    def claims(self) -> VerifiedClaims:
        return VerifiedClaims(fedid=self.subject, claims={"sub": self.subject, "dev_bypass": True})
