"""Structured JSON logging for production observability."""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

SERVICE_NAME = "autolend"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter stamping timestamp, level and service name."""

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = SERVICE_NAME


def setup_logging(level: str = "INFO", json_output: bool = True) -> None:
    """Configure root logging once for the process."""
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        handler.setFormatter(CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    root.addHandler(handler)


def log_decision(
    loan_request_id: str,
    lender_id: str,
    outcome: str,
    reason: str,
    matched_rule_id: Optional[str],
    duration_ms: float,
) -> None:
    """Log the outcome of one auto-lending evaluation."""
    logging.getLogger("autolend.decisions").info(
        "Decision completed",
        extra={
            "step": "decision_complete",
            "loan_request_id": loan_request_id,
            "lender_id": lender_id,
            "outcome": outcome,
            "reason": reason,
            "matched_rule_id": matched_rule_id,
            "duration_ms": duration_ms,
        },
    )
