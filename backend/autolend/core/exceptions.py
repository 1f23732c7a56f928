"""Error taxonomy for the automated-lending engine.

Denials are not errors: a denied loan request is a well-formed ``Decision``.
Only validation, lookup and dependency failures surface as exceptions.
"""


class AutoLendingError(Exception):
    """Base exception for the automated-lending engine."""

    pass


class ValidationError(AutoLendingError):
    """Rule, request or alert-rule shape is malformed."""

    pass


class NotFoundError(AutoLendingError):
    """Loan request, lender or rule set does not exist."""

    def __init__(self, entity: str, identifier: object):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} {identifier} not found")


class DependencyError(AutoLendingError):
    """A collaborator (rule store, blacklist store, ledger) failed or timed out."""

    pass


class EvaluationFailed(DependencyError):
    """Evaluation aborted because a dependency failed; no decision was made."""

    def __init__(self, loan_request_id: object, cause: str):
        self.loan_request_id = loan_request_id
        self.cause = cause
        super().__init__(f"Evaluation of loan request {loan_request_id} failed: {cause}")


class ConcurrencyConflict(AutoLendingError):
    """Ledger write contention. Retried internally, never surfaced directly."""

    pass
