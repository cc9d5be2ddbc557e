"""POST /v1/projection - retirement savings and income projection endpoint"""

import logging
import time
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Request

from retirement_engine.api.dependencies import get_engine_config, get_request_id
from retirement_engine.api.v1.schemas import ProjectionRequest, ProjectionResponse
from retirement_engine.domain.engine_config import EngineConfig
from retirement_engine.domain.exceptions import InvalidWorkPeriodError
from retirement_engine.domain.field_resolution import canonicalize
from retirement_engine.domain.projection import calculate_retirement, coerce_work_periods
from retirement_engine.domain.validation import require_valid_timeline
from retirement_engine.infrastructure.observability.logging import log_projection
from retirement_engine.infrastructure.observability.metrics import record_projection

router = APIRouter()


@router.post("/projection", response_model=ProjectionResponse)
def create_projection(
    request_body: ProjectionRequest,
    request: Request,
    config: EngineConfig = Depends(get_engine_config),
):
    """
    Project retirement savings and monthly income.

    A snapshot whose current age is at or past retirement age is not an
    error: the response carries ``computable: false`` and no result.
    With ``strict_timeline`` set, work periods that overlap, leave gaps or
    fall outside the working years are rejected with 422.
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        if request_body.strict_timeline and request_body.work_periods:
            household = canonicalize(request_body.snapshot, phase=request_body.wizard_phase, config=config)
            require_valid_timeline(
                coerce_work_periods(request_body.work_periods), household.current_age, household.retirement_age
            )

        result = calculate_retirement(
            request_body.snapshot,
            request_body.work_periods,
            request_body.pension_allocation,
            request_body.training_fund_allocation,
            request_body.historical_returns,
            request_body.training_fund_seed,
            request_body.extra_income_sources,
            phase=request_body.wizard_phase,
            config=config,
        )

        duration_ms = (time.time() - start_time) * 1000
        record_projection(result is not None)
        log_projection(
            request_id,
            result is not None,
            result.total_savings if result else None,
            result.replacement_ratio if result else None,
            len(result.warnings) if result else 0,
            duration_ms,
        )

        return ProjectionResponse(computable=result is not None, result=asdict(result) if result else None)

    except InvalidWorkPeriodError as e:
        logging.warning(f"Invalid work periods: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
