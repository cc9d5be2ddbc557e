"""Pydantic schemas for API request/response validation"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from retirement_engine.config import settings
from retirement_engine.domain.field_resolution import WizardPhase

PHASES = {"early": WizardPhase.EARLY, "complete": WizardPhase.COMPLETE}


class SnapshotRequest(BaseModel):
    """Fields shared by every engine request; the snapshot itself is free-form"""

    snapshot: Dict[str, Any] = Field(default_factory=dict, description="Financial snapshot, any field names")
    phase: Literal["early", "complete"] = Field("complete", description="Wizard phase; partners combine only when complete")

    @property
    def wizard_phase(self) -> WizardPhase:
        return PHASES[self.phase]


class ProjectionRequest(SnapshotRequest):
    """Request body for POST /v1/projection"""

    work_periods: List[Dict[str, Any]] = Field(default_factory=list)
    pension_allocation: List[Dict[str, Any]] = Field(default_factory=list)
    training_fund_allocation: List[Dict[str, Any]] = Field(default_factory=list)
    historical_returns: Optional[Dict[str, Any]] = None
    training_fund_seed: float = Field(0.0, ge=0, description="Monthly training-fund deposit for periods without one")
    extra_income_sources: List[Dict[str, Any]] = Field(default_factory=list)
    strict_timeline: bool = Field(False, description="Reject work periods with gaps or overlaps instead of warning")


class ProjectionResponse(BaseModel):
    """Response for POST /v1/projection"""

    computable: bool
    result: Optional[Dict[str, Any]] = None


class HealthScoreRequest(SnapshotRequest):
    """Request body for POST /v1/health-score"""

    locale: str = settings.default_locale


class HealthScoreResponse(BaseModel):
    """Response for POST /v1/health-score"""

    total_score: float
    status: str
    factors: Dict[str, Dict[str, Any]]
    suggestions: List[Dict[str, Any]]
    peer_comparison: Dict[str, Any]
    validation: Dict[str, Any]
    zero_score_factors: List[str]
    warnings: List[str]


class StressTestRequest(SnapshotRequest):
    """Request body for POST /v1/stress-tests/{scenario_key}"""

    work_periods: List[Dict[str, Any]] = Field(default_factory=list)
    pension_allocation: List[Dict[str, Any]] = Field(default_factory=list)
    training_fund_allocation: List[Dict[str, Any]] = Field(default_factory=list)
    historical_returns: Optional[Dict[str, Any]] = None
    training_fund_seed: float = Field(0.0, ge=0)
    locale: str = settings.default_locale


class StressScenarioSchema(BaseModel):
    """One catalog scenario"""

    key: str
    name: str
    description: str
    income_reduction: float
    portfolio_decline: float
    real_estate_decline: float
    inflation_increase: float
    duration_years: float
    recovery_years: float


class StressScenarioList(BaseModel):
    """Response for GET /v1/stress-tests"""

    scenarios: List[StressScenarioSchema]


class StressTestResponse(BaseModel):
    """Response for POST /v1/stress-tests/{scenario_key}"""

    scenario: StressScenarioSchema
    computable: bool
    stressed_result: Optional[Dict[str, Any]] = None
    baseline_result: Optional[Dict[str, Any]] = None
    impact: Optional[Dict[str, Any]] = None
    recommendations: List[str]
