"""Credit score evaluator."""

from autolend.services.rule_engine.base import (
    CheckResult,
    LoanRequest,
    Rule,
    RuleEvaluator,
)


class CreditEvaluator(RuleEvaluator):
    """
    Evaluator for the rule's minimum credit score.

    Uses the request's effective score: the reported credit score, or the
    floor score of its risk tier when only a tier is known.
    """

    check_name = "credit"

    def applies(self, rule: Rule) -> bool:
        return rule.min_credit_score is not None

    def evaluate(self, request: LoanRequest, rule: Rule) -> CheckResult:
        """
        Evaluate the minimum credit score requirement.

        Args:
            request: Loan request under evaluation
            rule: Rule with a minimum credit score

        Returns:
            CheckResult with the score gap when below the minimum
        """
        if not self.applies(rule):
            return self._skipped()

        min_score = rule.min_credit_score
        actual_score = request.effective_credit_score

        # Handle missing score and tier
        if actual_score is None:
            return CheckResult(
                passed=False,
                check=self.check_name,
                reason=f"Credit score or risk tier is required (minimum: {min_score})",
                evidence={"actual": None, "required": min_score},
            )

        passed = actual_score >= min_score
        if passed:
            reason = f"Credit score {actual_score} meets minimum requirement of {min_score}"
        else:
            reason = (
                f"Credit score {actual_score} is below minimum requirement of {min_score} "
                f"(gap: {min_score - actual_score})"
            )

        return CheckResult(
            passed=passed,
            check=self.check_name,
            reason=reason,
            evidence={
                "actual": actual_score,
                "required": min_score,
                "from_tier": request.credit_score is None,
            },
        )
