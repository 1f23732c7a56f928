"""Rule-triggered portfolio alerting."""

from .evaluator import AlertRuleEvaluator
from .log import AlertLog, InMemoryAlertLog
from .portfolio import PaymentRecord, PortfolioLoan, PortfolioSource, StaticPortfolioSource
from .publishers import (
    AlertPublisher,
    LoggingAlertPublisher,
    WebhookAlertPublisher,
    build_publisher,
)

__all__ = [
    "AlertLog",
    "AlertPublisher",
    "AlertRuleEvaluator",
    "InMemoryAlertLog",
    "LoggingAlertPublisher",
    "PaymentRecord",
    "PortfolioLoan",
    "PortfolioSource",
    "StaticPortfolioSource",
    "WebhookAlertPublisher",
    "build_publisher",
]
