"""
Token validation package.

Validates JWTs issued by the facility identity provider:

- Peeking at the header to find the key id, without trusting it.
- Fetching the signing key through the JWKS cache.
- Verifying the RS256 signature, expiry, issuer and audience.
- Exposing the subject (fedid) through VerifiedClaims.

The development bypass lives in its own module and is only wired in when
configuration explicitly enables it for a local environment.
"""

from .claims import VerifiedClaims
from .dev_bypass import DevBypass
from .token_validator import TokenValidator, strip_bearer

__all__ = ["VerifiedClaims", "DevBypass", "TokenValidator", "strip_bearer"]
