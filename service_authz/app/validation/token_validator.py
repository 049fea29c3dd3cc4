"""
Token validation for the authorization service.
"""

from typing import Dict, Any, Optional, Tuple, Union, List

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JOSEError, JWTClaimsError, JWTError

from shared.logging import get_logger
from ..errors import (
    AudienceMismatchError,
    ExpiredTokenError,
    InvalidClaimsError,
    InvalidSignatureError,
    IssuerMismatchError,
    MalformedTokenError,
)
from ..jwks.client import JWKSClient
from .claims import VerifiedClaims
from .dev_bypass import DevBypass

ALGORITHMS = ["RS256"]


def strip_bearer(token: str) -> str:
    """Remove a leading ``Bearer`` scheme if present."""
    token = token.strip()
    if token[:7].lower() == "bearer ":
        return token[7:].strip()
    return token


class TokenValidator:
    """Verifies RS256 bearer tokens against a published key set."""

    def __init__(self,
                 jwks_client: JWKSClient,
                 issuer: Optional[str] = None,
                 audience: Optional[str] = None,
                 subject_claim: str = "fedid",
                 dev_bypass: Optional[DevBypass] = None):
        self.jwks_client = jwks_client
        self.issuer = issuer
        self.audience = audience
        self.subject_claim = subject_claim
        self.dev_bypass = dev_bypass
        self.logger = get_logger("authz.validator")

    def peek(self, token: str) -> Tuple[Dict[str, Any], str]:
        """Read the header and key id without trusting anything in the token."""
        token = strip_bearer(token)
        segments = token.split(".")
        if len(segments) != 3 or not all(segments[:2]):
            raise MalformedTokenError("Token must have three dot-separated segments")

        try:
            header = jwt.get_unverified_header(token)
        except JWTError as e:
            raise MalformedTokenError("Token header is not decodable") from e

        kid = header.get("kid")
        if not isinstance(kid, str) or not kid:
            raise MalformedTokenError("Token header has no key id")

        return header, kid

    async def verify(self,
                     token: str,
                     expected_issuer: Optional[str] = None,
                     expected_audience: Optional[str] = None) -> VerifiedClaims:
        """Verify signature and standard claims, returning the trusted claims.

        Issuer and audience default to the values the validator was built
        with. Raises a ``TokenVerificationError`` subclass on any failure,
        including ``KeyFetchError`` when the signing key cannot be obtained.
        """
        token = strip_bearer(token)

        if self.dev_bypass is not None and self.dev_bypass.matches(token):
            self.logger.warning("Development token accepted", fedid=self.dev_bypass.subject)
            return self.dev_bypass.claims()

        _, kid = self.peek(token)
        key_data = await self.jwks_client.get_key(kid)

        try:
            claims = jwt.decode(
                token,
                key_data,
                algorithms=ALGORITHMS,
                options={"verify_aud": False, "verify_iss": False}
            )
        except ExpiredSignatureError as e:
            raise ExpiredTokenError("Token has expired", details={"kid": kid}) from e
        except JWTClaimsError as e:
            raise InvalidClaimsError(str(e), details={"kid": kid}) from e
        except JOSEError as e:
            raise InvalidSignatureError("Signature verification failed", details={"kid": kid}) from e

        if "exp" not in claims:
            raise InvalidClaimsError("Token has no expiry", details={"kid": kid})

        self._check_issuer(claims, expected_issuer or self.issuer)
        self._check_audience(claims, expected_audience or self.audience)

        fedid = claims.get(self.subject_claim)
        if not isinstance(fedid, str) or not fedid:
            raise InvalidClaimsError(
                "Token carries no subject",
                details={"claim": self.subject_claim}
            )

        self.logger.debug("Token verified", fedid=fedid, kid=kid)
        return VerifiedClaims(fedid=fedid, claims=claims)

    @staticmethod
    def _check_issuer(claims: Dict[str, Any], expected: Optional[str]):
        if expected is None:
            return
        if claims.get("iss") != expected:
            raise IssuerMismatchError(
                "Token issuer does not match",
                details={"expected": expected, "actual": claims.get("iss")}
            )

    @staticmethod
    def _check_audience(claims: Dict[str, Any], expected: Optional[str]):
        if expected is None:
            return
        aud: Union[str, List[str], None] = claims.get("aud")
        audiences = [aud] if isinstance(aud, str) else list(aud or [])
        if expected not in audiences:
            raise AudienceMismatchError(
                "Token audience does not match",
                details={"expected": expected, "actual": aud}
            )
