"""Structured JSON logging"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from studio_core.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_attendance_mark(
    student_id: str,
    class_id: str,
    on_date: str,
    status: str,
    credit_effect: str,
) -> None:
    """Log an attendance mark and its credit-bank effect"""
    logging.getLogger("studio_core.attendance").info(
        "Attendance marked",
        extra={
            "student_id": student_id,
            "class_id": class_id,
            "date": on_date,
            "status": status,
            "credit_effect": credit_effect,
        },
    )


def log_batch_outcome(operation: str, student_id: str, matched: int, succeeded: int, failed: int) -> None:
    """Log the outcome of a non-transactional batch edit"""
    level = logging.WARNING if failed else logging.INFO
    logging.getLogger("studio_core.billing").log(
        level,
        "Batch completed",
        extra={
            "operation": operation,
            "student_id": student_id,
            "matched": matched,
            "succeeded": succeeded,
            "failed": failed,
        },
    )
