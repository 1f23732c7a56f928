"""Goods category evaluator."""

from autolend.services.rule_engine.base import (
    CheckResult,
    LoanRequest,
    Rule,
    RuleEvaluator,
)


class CategoryEvaluator(RuleEvaluator):
    """Passes when the request's goods category is one of the rule's preferred categories."""

    check_name = "category"

    def applies(self, rule: Rule) -> bool:
        return bool(rule.preferred_categories)

    def evaluate(self, request: LoanRequest, rule: Rule) -> CheckResult:
        if not self.applies(rule):
            return self._skipped()

        category = (request.goods_category or "").strip().lower()
        passed = category in rule.preferred_categories
        if passed:
            reason = f"Goods category '{request.goods_category}' is preferred"
        else:
            reason = f"Goods category '{request.goods_category}' is not a preferred category"

        return CheckResult(
            passed=passed,
            check=self.check_name,
            reason=reason,
            evidence={
                "actual": category,
                "allowed": sorted(rule.preferred_categories),
            },
        )
