"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from retirement_engine.config import settings


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


def log_projection(
    request_id: str,
    computable: bool,
    total_savings: Optional[float],
    replacement_ratio: Optional[float],
    warning_count: int,
    duration_ms: float,
) -> None:
    """Log structured projection outcome for analysis"""
    logging.info(
        "Projection completed",
        extra={
            "request_id": request_id,
            "step": "projection_complete",
            "outcome": "computed" if computable else "not_computable",
            "total_savings": total_savings,
            "replacement_ratio": replacement_ratio,
            "warning_count": warning_count,
            "duration_ms": duration_ms,
        },
    )


def log_health_report(request_id: str, total_score: float, status: str, warning_count: int, duration_ms: float) -> None:
    """Log structured health-score outcome"""
    logging.info(
        "Health score completed",
        extra={
            "request_id": request_id,
            "step": "health_score_complete",
            "total_score": total_score,
            "status": status,
            "warning_count": warning_count,
            "duration_ms": duration_ms,
        },
    )


def log_stress_test(
    request_id: str,
    scenario_key: str,
    savings_change_pct: Optional[float],
    duration_ms: float,
) -> None:
    logging.info(
        "Stress test completed",
        extra={
            "request_id": request_id,
            "step": "stress_test_complete",
            "scenario": scenario_key,
            "savings_change_pct": savings_change_pct,
            "duration_ms": duration_ms,
        },
    )
