"""First-match rule selection for automated lending."""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from autolend.services.rule_engine.base import CheckResult, LoanRequest, Rule
from autolend.services.rule_engine.evaluators import (
    CategoryEvaluator,
    CreditEvaluator,
    LoanAmountEvaluator,
    RegionEvaluator,
)


@dataclass
class RuleTrace:
    """
    Outcome of evaluating one rule against a loan request.

    Attributes:
        rule: The rule evaluated
        matched: Whether every applicable check passed (or was waived)
        checks: Check results in evaluation order, up to the first failure
        trusted_supplier_bypass: Whether the credit check was waived
    """

    rule: Rule
    matched: bool
    checks: List[CheckResult] = field(default_factory=list)
    trusted_supplier_bypass: bool = False

    @property
    def failed_check(self) -> Optional[CheckResult]:
        for check in self.checks:
            if not check.passed:
                return check
        return None

    def to_dict(self) -> dict:
        failed = self.failed_check
        return {
            "rule_id": str(self.rule.id),
            "rule_name": self.rule.name,
            "matched": self.matched,
            "trusted_supplier_bypass": self.trusted_supplier_bypass,
            "failed_check": failed.check if failed else None,
            "reason": failed.reason if failed else None,
        }


def order_rules(rules: Iterable[Rule]) -> List[Rule]:
    """Active rules in match order: ``created_at`` ascending, ties by ``id``."""
    return sorted((rule for rule in rules if rule.active), key=lambda r: r.sort_key)


class RuleSelector:
    """
    Selects the first rule whose constraints a loan request satisfies.

    Checks run in a fixed order and short-circuit on the first failure:

    1. Amount bounds (closed interval)
    2. Preferred goods categories
    3. Preferred regions
    4. Trusted-supplier bypass: if the rule auto-approves trusted suppliers
       and the request's supplier is trusted, the rule matches here and the
       remaining checks are waived
    5. Minimum credit score

    Rules are always visited in ``(created_at, id)`` order, whatever order the
    caller supplies them in, so selection is deterministic.
    """

    def __init__(self):
        """Initialize the selector with its ordered evaluators."""
        # Checks the trusted-supplier bypass can never waive
        self.portfolio_checks = [
            LoanAmountEvaluator(),
            CategoryEvaluator(),
            RegionEvaluator(),
        ]
        # Checks a trusted supplier relationship substitutes for
        self.vetting_checks = [CreditEvaluator()]

    def select_rule(self, request: LoanRequest, rules: Iterable[Rule]) -> Optional[Rule]:
        """
        Return the first matching rule, or None.

        Args:
            request: Loan request under evaluation
            rules: The lender's rules; inactive rules are ignored

        Returns:
            The first matching rule in match order, or None if nothing fits
        """
        for trace in self._traces(request, rules):
            if trace.matched:
                return trace.rule
        return None

    def explain(self, request: LoanRequest, rules: Iterable[Rule]) -> List[RuleTrace]:
        """
        Evaluate rules in match order, stopping after the first match.

        Returns:
            One trace per rule visited; the last trace is the match, if any
        """
        traces: List[RuleTrace] = []
        for trace in self._traces(request, rules):
            traces.append(trace)
            if trace.matched:
                break
        return traces

    def _traces(self, request: LoanRequest, rules: Iterable[Rule]):
        for rule in order_rules(rules):
            if rule.lender_id != request.lender_id:
                continue
            yield self.evaluate_rule(request, rule)

    def evaluate_rule(self, request: LoanRequest, rule: Rule) -> RuleTrace:
        """
        Evaluate a single rule against a request.

        Args:
            request: Loan request under evaluation
            rule: Rule to evaluate

        Returns:
            RuleTrace with the checks run and whether the rule matched
        """
        checks: List[CheckResult] = []

        for evaluator in self.portfolio_checks:
            result = evaluator.evaluate(request, rule)
            checks.append(result)
            if not result.passed:
                return RuleTrace(rule=rule, matched=False, checks=checks)

        if rule.auto_approve_trusted_suppliers and request.supplier_is_trusted:
            return RuleTrace(
                rule=rule,
                matched=True,
                checks=checks,
                trusted_supplier_bypass=True,
            )

        for evaluator in self.vetting_checks:
            result = evaluator.evaluate(request, rule)
            checks.append(result)
            if not result.passed:
                return RuleTrace(rule=rule, matched=False, checks=checks)

        return RuleTrace(rule=rule, matched=True, checks=checks)
