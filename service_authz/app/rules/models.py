"""
Rule data models for the authorization evaluator.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from pydantic import BaseModel, Field

from ..directory import DirectoryIndex, Subject
from ..validation.claims import VerifiedClaims
from .permissions import PermissionTable


@dataclass(frozen=True)
class RuleContext:
    """Everything a rule may look at: verified claims, request and directory."""
    claims: VerifiedClaims
    proposal_number: int
    visit_number: Optional[int]
    directory: DirectoryIndex
    permissions: PermissionTable

    @property
    def subject(self) -> Optional[Subject]:
        return self.directory.get_subject(self.claims.fedid)


@dataclass
class EvaluationResult:
    """Result of evaluating every rule, kept for telemetry."""
    allowed: bool
    matched_rules: List[str] = field(default_factory=list)
    evaluation_time_ms: float = 0.0


class SessionParameters(BaseModel):
    """The resource being accessed."""
    proposal: int = Field(..., description="Proposal number")
    visit: Optional[int] = Field(None, description="Visit number within the proposal")


class PolicyInput(BaseModel):
    """Token plus parameters, as posted by the sessions service."""
    token: Optional[str] = Field(None, description="Bearer access token")
    parameters: SessionParameters


class PolicyQuery(BaseModel):
    """Policy-engine style request envelope."""
    input: PolicyInput


class PolicyResult(BaseModel):
    """Policy-engine style response envelope."""
    result: bool


class AuthorizationRequest(BaseModel):
    """Flat authorization request."""
    token: Optional[str] = Field(None, description="Bearer access token")
    proposal: int = Field(..., description="Proposal number")
    visit: Optional[int] = Field(None, description="Visit number within the proposal")


class AuthorizationResponse(BaseModel):
    """The only thing a caller learns: allowed or not."""
    allow: bool
