"""
Decision point: token in, boolean out.
"""

import time
from typing import Optional

from shared.logging import get_logger, set_subject_context
from shared.metrics import MetricsCollector
from .errors import TokenVerificationError
from .rules.engine import AuthorizationEvaluator
from .validation.token_validator import TokenValidator


class DecisionPoint:
    """Verifies the caller's token and evaluates the allow rules.

    Every failure (bad token, unreachable key set, unexpected error) ends in
    deny. The reason is logged and counted but never returned, so a caller
    cannot tell a rejected token from a legitimate refusal.
    """

    def __init__(self,
                 validator: TokenValidator,
                 evaluator: AuthorizationEvaluator,
                 metrics: Optional[MetricsCollector] = None):
        self.validator = validator
        self.evaluator = evaluator
        self.metrics = metrics
        self.logger = get_logger("authz.decision")

    async def authorize(self, token: Optional[str], proposal_number: int,
                        visit_number: Optional[int] = None) -> bool:
        start_time = time.time()
        allowed = False
        reason = "no_rule_matched"

        try:
            if not token:
                reason = "missing_token"
            else:
                claims = await self.validator.verify(token)
                set_subject_context(claims.fedid)
                result = self.evaluator.evaluate(claims, proposal_number, visit_number)
                allowed = result.allowed
                if allowed:
                    reason = "+".join(result.matched_rules)
        except TokenVerificationError as e:
            reason = e.reason
            self.logger.warning("Token rejected", reason=e.reason, error=e.message, details=e.details)
        except Exception as e:
            reason = "internal_error"
            self.logger.error("Authorization failed, denying", error=str(e), exc_info=True)

        duration = time.time() - start_time
        if self.metrics is not None:
            self.metrics.record_decision(allowed, reason, duration)

        self.logger.info(
            "Authorization decision",
            allowed=allowed,
            reason=reason,
            proposal=proposal_number,
            visit=visit_number,
            duration_ms=round(duration * 1000, 2)
        )
        return allowed
