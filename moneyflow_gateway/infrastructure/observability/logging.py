"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = "moneyflow-gateway"


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_settlement(
    request_id: str,
    sender_id: str,
    status: str,
    reason: str | None,
    money_moved: bool,
    duration_ms: float,
) -> None:
    """Log structured settlement outcome for reconciliation and analysis"""
    level = logging.ERROR if reason == "partial_settlement_inconsistency" else logging.INFO
    logging.log(
        level,
        "Settlement completed",
        extra={
            "request_id": request_id,
            "sender_id": sender_id,
            "step": "settlement_complete",
            "settlement_status": status,
            "failure_reason": reason,
            "money_moved": money_moved,
            "duration_ms": duration_ms,
        },
    )
