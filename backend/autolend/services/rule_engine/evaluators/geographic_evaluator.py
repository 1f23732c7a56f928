"""Region evaluator for rule-level geographic preferences."""

from autolend.services.rule_engine.base import (
    CheckResult,
    LoanRequest,
    Rule,
    RuleEvaluator,
)


class RegionEvaluator(RuleEvaluator):
    """
    Evaluator for the rule's preferred regions.

    Region codes are compared case-insensitively after trimming; an empty
    preference set accepts every region.
    """

    check_name = "region"

    def applies(self, rule: Rule) -> bool:
        return bool(rule.preferred_regions)

    def evaluate(self, request: LoanRequest, rule: Rule) -> CheckResult:
        """
        Evaluate the request region against the rule's preferred regions.

        Args:
            request: Loan request under evaluation
            rule: Rule with region preferences

        Returns:
            CheckResult indicating whether the region is allowed
        """
        if not self.applies(rule):
            return self._skipped()

        region = (request.region or "").strip().lower()
        passed = region in rule.preferred_regions

        if passed:
            reason = f"Region '{request.region}' is preferred"
        else:
            reason = f"Region '{request.region}' is outside the rule's preferred regions"

        return CheckResult(
            passed=passed,
            check=self.check_name,
            reason=reason,
            evidence={
                "actual": region,
                "allowed": sorted(rule.preferred_regions),
            },
        )
