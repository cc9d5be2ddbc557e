"""POST /v1/health-score - financial health scoring endpoint"""

import logging
import time
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Request

from retirement_engine.api.dependencies import get_engine_config, get_request_id
from retirement_engine.api.v1.schemas import HealthScoreRequest, HealthScoreResponse
from retirement_engine.domain.engine_config import EngineConfig
from retirement_engine.domain.scoring import calculate_financial_health_score
from retirement_engine.infrastructure.observability.logging import log_health_report
from retirement_engine.infrastructure.observability.metrics import record_health_report

router = APIRouter()


@router.post("/health-score", response_model=HealthScoreResponse)
def create_health_score(
    request_body: HealthScoreRequest,
    request: Request,
    config: EngineConfig = Depends(get_engine_config),
):
    """Score a financial snapshot 0-100 with per-category breakdown and suggestions"""
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        report = calculate_financial_health_score(
            request_body.snapshot,
            phase=request_body.wizard_phase,
            locale=request_body.locale,
            config=config,
        )

        duration_ms = (time.time() - start_time) * 1000
        record_health_report(report.total_score, report.status)
        log_health_report(request_id, report.total_score, report.status, len(report.warnings), duration_ms)

        return HealthScoreResponse(**asdict(report))

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
