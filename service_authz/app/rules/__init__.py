"""
Rules package.

- permissions: Beamline -> admin permission data table.
- models: Rule context, evaluation result and request/response models.
- engine: The allow rules and the evaluator that ORs them together.

Adding a beamline is a data change in the permission table; adding a rule
means adding one predicate to engine.RULES.
"""

from .engine import AuthorizationEvaluator, RULES, beamline_admin, proposal_member, session_member
from .permissions import DEFAULT_BEAMLINE_PERMISSIONS, PermissionTable

__all__ = [
    "AuthorizationEvaluator",
    "RULES",
    "beamline_admin",
    "proposal_member",
    "session_member",
    "DEFAULT_BEAMLINE_PERMISSIONS",
    "PermissionTable",
]
