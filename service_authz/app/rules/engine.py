"""
Rule evaluation for session authorization.

Access is granted when any rule holds. Rules are independent predicates over
a RuleContext; none of them depends on another having run, so the decision
is the same whichever order they are evaluated in. A directory lookup that
finds nothing makes that rule fail and leaves the others alone.
"""

import time
from typing import Callable, Optional, Sequence, Tuple

from shared.logging import get_logger
from ..directory import DirectoryIndex
from ..validation.claims import VerifiedClaims
from .models import EvaluationResult, RuleContext
from .permissions import PermissionTable

Rule = Callable[[RuleContext], bool]


def proposal_member(ctx: RuleContext) -> bool:
    """The subject is a member of the whole proposal."""
    subject = ctx.subject
    return subject is not None and ctx.proposal_number in subject.proposals


def session_member(ctx: RuleContext) -> bool:
    """The subject is on the requested visit, even if not on the proposal."""
    if ctx.visit_number is None:
        return False
    subject = ctx.subject
    if subject is None:
        return False

    for session_id in subject.sessions:
        session = ctx.directory.get_session(session_id)
        if (session is not None
                and session.proposal_number == ctx.proposal_number
                and session.visit_number == ctx.visit_number):
            return True
    return False


def beamline_admin(ctx: RuleContext) -> bool:
    """The subject administers the beamline the requested visit ran on."""
    if ctx.visit_number is None:
        return False
    proposal = ctx.directory.get_proposal(ctx.proposal_number)
    if proposal is None:
        return False
    session_id = proposal.session_for_visit(ctx.visit_number)
    if session_id is None:
        return False
    session = ctx.directory.get_session(session_id)
    if session is None or session.proposal_number != ctx.proposal_number:
        return False

    permission = ctx.permissions.permission_for(session.beamline)
    if permission is None:
        return False
    subject = ctx.subject
    return subject is not None and permission in subject.permissions


RULES: Tuple[Tuple[str, Rule], ...] = (
    ("proposal_member", proposal_member),
    ("session_member", session_member),
    ("beamline_admin", beamline_admin),
)


class AuthorizationEvaluator:
    """Combines the allow rules against an injected directory snapshot."""

    def __init__(self,
                 directory: DirectoryIndex,
                 permissions: Optional[PermissionTable] = None,
                 rules: Sequence[Tuple[str, Rule]] = RULES):
        self.directory = directory
        self.permissions = permissions if permissions is not None else PermissionTable()
        self.rules = tuple(rules)
        self.logger = get_logger("authz.evaluator")

    def _context(self, claims: VerifiedClaims, proposal_number: int,
                 visit_number: Optional[int]) -> RuleContext:
        return RuleContext(
            claims=claims,
            proposal_number=proposal_number,
            visit_number=visit_number,
            directory=self.directory,
            permissions=self.permissions,
        )

    def decide(self, claims: VerifiedClaims, proposal_number: int,
               visit_number: Optional[int] = None) -> bool:
        """Return True if any rule allows access; deny otherwise."""
        ctx = self._context(claims, proposal_number, visit_number)
        return any(rule(ctx) for _, rule in self.rules)

    def evaluate(self, claims: VerifiedClaims, proposal_number: int,
                 visit_number: Optional[int] = None) -> EvaluationResult:
        """Run every rule and report which matched."""
        start_time = time.time()
        ctx = self._context(claims, proposal_number, visit_number)
        matched = [name for name, rule in self.rules if rule(ctx)]

        result = EvaluationResult(
            allowed=bool(matched),
            matched_rules=matched,
            evaluation_time_ms=(time.time() - start_time) * 1000
        )
        self.logger.debug(
            "Rule evaluation result",
            fedid=claims.fedid,
            proposal=proposal_number,
            visit=visit_number,
            allowed=result.allowed,
            matched_rules=matched
        )
        return result
