"""
Trusted claim set produced by token verification.
"""

from dataclasses import dataclass, field
from typing import Dict, Any


@dataclass(frozen=True)
class VerifiedClaims:
    """Claims of a token whose signature, lifetime, issuer and audience checked out."""
    fedid: str
    claims: Dict[str, Any] = field(default_factory=dict)
