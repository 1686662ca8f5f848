"""Structured JSON logging"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from opencredit.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: Optional[str] = None, stream=None) -> None:
    """Configure structured JSON logging on the root logger"""
    logger = logging.getLogger()
    logger.setLevel((level or settings.log_level).upper())

    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_assessment(
    subject_id: Optional[str],
    eligible: bool,
    credit_score: int,
    risk_band: str,
    fraud_indicator_count: int,
    catalog_version: str,
    duration_ms: float,
) -> None:
    """Log structured assessment outcome for analysis"""
    logging.getLogger("opencredit.assessment").info(
        "Assessment completed",
        extra={
            "subject_id": subject_id,
            "step": "assessment_complete",
            "outcome": "eligible" if eligible else "ineligible",
            "credit_score": credit_score,
            "risk_band": risk_band,
            "fraud_indicator_count": fraud_indicator_count,
            "catalog_version": catalog_version,
            "duration_ms": duration_ms,
        },
    )
