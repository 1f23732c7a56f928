"""Loan amount evaluator for rule amount bounds."""

from autolend.services.rule_engine.base import (
    CheckResult,
    LoanRequest,
    Rule,
    RuleEvaluator,
)


class LoanAmountEvaluator(RuleEvaluator):
    """
    Evaluator for the rule's loan amount bounds.

    The request amount must lie in the closed interval
    ``[min_loan_amount, max_loan_amount]``; either bound may be unset.
    """

    check_name = "amount"

    def applies(self, rule: Rule) -> bool:
        return rule.min_loan_amount is not None or rule.max_loan_amount is not None

    def evaluate(self, request: LoanRequest, rule: Rule) -> CheckResult:
        """
        Evaluate the loan amount against the rule bounds.

        Args:
            request: Loan request under evaluation
            rule: Rule with amount bounds

        Returns:
            CheckResult with the gap or excess when the amount is out of bounds
        """
        if not self.applies(rule):
            return self._skipped()

        amount = request.loan_amount
        evidence = {
            "actual": str(amount),
            "min": str(rule.min_loan_amount) if rule.min_loan_amount is not None else None,
            "max": str(rule.max_loan_amount) if rule.max_loan_amount is not None else None,
        }

        if rule.min_loan_amount is not None and amount < rule.min_loan_amount:
            gap = rule.min_loan_amount - amount
            return CheckResult(
                passed=False,
                check=self.check_name,
                reason=(
                    f"Loan amount {amount:,.2f} is below minimum of "
                    f"{rule.min_loan_amount:,.2f} (gap: {gap:,.2f})"
                ),
                evidence=evidence,
            )

        if rule.max_loan_amount is not None and amount > rule.max_loan_amount:
            excess = amount - rule.max_loan_amount
            return CheckResult(
                passed=False,
                check=self.check_name,
                reason=(
                    f"Loan amount {amount:,.2f} exceeds maximum of "
                    f"{rule.max_loan_amount:,.2f} (excess: {excess:,.2f})"
                ),
                evidence=evidence,
            )

        return CheckResult(
            passed=True,
            check=self.check_name,
            reason=f"Loan amount {amount:,.2f} is within rule bounds",
            evidence=evidence,
        )
