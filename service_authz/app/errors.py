"""
Token verification error taxonomy.

Every error here aborts a decision and resolves it to deny. The subclasses
exist so operators can tell failures apart in logs and metrics; callers of
the service only ever see the boolean decision.
"""

from typing import Dict, Any, Optional

from shared.errors import AuthenticationError


class TokenVerificationError(AuthenticationError):
    """Base class for anything that stops a token from being trusted."""

    reason = "invalid_token"

    def __init__(self, message: str = "Token verification failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details, code=self.reason.upper())


class MalformedTokenError(TokenVerificationError):
    reason = "malformed_token"


class KeyFetchError(TokenVerificationError):
    """Signing key could not be obtained (network, timeout, non-success, unknown kid)."""

    reason = "key_fetch_failed"


class InvalidSignatureError(TokenVerificationError):
    reason = "invalid_signature"


class ExpiredTokenError(TokenVerificationError):
    reason = "expired_token"


class IssuerMismatchError(TokenVerificationError):
    reason = "issuer_mismatch"


class AudienceMismatchError(TokenVerificationError):
    reason = "audience_mismatch"


class InvalidClaimsError(TokenVerificationError):
    """Claims are well signed but unusable (not yet valid, no subject)."""

    reason = "invalid_claims"
