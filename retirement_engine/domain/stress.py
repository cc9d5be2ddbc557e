"""Stress test engine - re-runs the projection under adverse economic scenarios"""

import logging
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Tuple

from retirement_engine.domain.engine_config import EngineConfig, resolve_config
from retirement_engine.domain.exceptions import UnknownScenarioError
from retirement_engine.domain.field_resolution import (
    WizardPhase,
    candidate_keys,
    canonicalize,
    partner_keys,
)
from retirement_engine.domain.models import (
    CalculationResult,
    StressComparison,
    StressImpact,
    StressResult,
    StressScenario,
    WorkPeriod,
)
from retirement_engine.domain.projection import (
    base_pension_return,
    base_training_fund_return,
    calculate_retirement,
    coerce_work_periods,
)
from retirement_engine.domain.safe_math import safe_parse_float, safe_percentage

logger = logging.getLogger(__name__)

SALARY_FIELD = "currentMonthlySalary"


def list_scenarios(config: Optional[EngineConfig] = None) -> Tuple[StressScenario, ...]:
    config = resolve_config(config)
    return tuple(get_scenario(key, config) for key in config.stress_scenarios)


def get_scenario(scenario_key: str, config: Optional[EngineConfig] = None) -> StressScenario:
    """Look up a catalog scenario; raises UnknownScenarioError for unknown keys"""
    config = resolve_config(config)
    entry = config.stress_scenarios.get(scenario_key) if isinstance(scenario_key, str) else None
    if entry is None:
        raise UnknownScenarioError(f"Unknown stress scenario: {scenario_key!r}")
    return StressScenario(
        key=scenario_key,
        names=dict(entry["name"]),
        descriptions=dict(entry["description"]),
        income_reduction=entry["income_reduction"],
        portfolio_decline=entry["portfolio_decline"],
        real_estate_decline=entry["real_estate_decline"],
        inflation_increase=entry["inflation_increase"],
        duration_years=entry["duration_years"],
        recovery_years=entry["recovery_years"],
    )


def decline(rate: float, points: float) -> float:
    """Lower a return by ``points``, floored at 0 and never above the starting rate"""
    return min(rate, max(0.0, rate - points))


def _scale(value: Any, factor: float) -> Any:
    parsed = safe_parse_float(value, None)
    return value if parsed is None else parsed * factor


def stressed_snapshot(
    snapshot: Any,
    scenario: StressScenario,
    pension_allocation: Any = (),
    training_fund_allocation: Any = (),
    historical_returns: Optional[Mapping[Any, Any]] = None,
    *,
    phase: WizardPhase = WizardPhase.COMPLETE,
    config: Optional[EngineConfig] = None,
) -> Dict[str, Any]:
    """
    Copy of ``snapshot`` with the scenario applied.

    Inflation rises by the scenario's increase. Portfolio and real-estate
    returns fall by their declines, crypto by 1.5x the portfolio decline,
    pension and training-fund returns by half of it. Every salary field,
    individual or per partner, shrinks by the income reduction. The input
    mapping is not modified.
    """
    config = resolve_config(config)
    source = snapshot if isinstance(snapshot, Mapping) else {}
    base = canonicalize(source, phase=phase, config=config)
    derived = dict(source)

    derived["inflationRate"] = base.inflation_rate + scenario.inflation_increase
    derived["personalPortfolioReturn"] = decline(base.portfolio_return, scenario.portfolio_decline)
    derived["realEstateReturn"] = decline(base.real_estate_return, scenario.real_estate_decline)
    derived["cryptoReturn"] = decline(base.crypto_return, scenario.portfolio_decline * 1.5)
    derived["pensionReturn"] = decline(
        base_pension_return(base, pension_allocation, historical_returns, config), scenario.portfolio_decline / 2
    )
    derived["trainingFundReturn"] = decline(
        base_training_fund_return(base, training_fund_allocation, historical_returns, config),
        scenario.portfolio_decline / 2,
    )

    income_factor = 1 - scenario.income_reduction / 100
    salary_keys = set(candidate_keys(SALARY_FIELD)) | set(partner_keys(SALARY_FIELD, 1)) | set(partner_keys(SALARY_FIELD, 2))
    for key in salary_keys & set(derived):
        derived[key] = _scale(derived[key], income_factor)
    return derived


def stressed_work_periods(work_periods: Any, scenario: StressScenario, fallback_pension_return: float) -> List[WorkPeriod]:
    """Periods with salary and contributions cut by the income reduction and pension return by half the decline"""
    income_factor = 1 - scenario.income_reduction / 100
    derived = []
    for period in coerce_work_periods(work_periods):
        pension_return = period.pension_return if period.pension_return is not None else fallback_pension_return
        derived.append(
            replace(
                period,
                monthly_salary=period.monthly_salary * income_factor,
                monthly_contribution=period.monthly_contribution * income_factor,
                monthly_training_fund=None
                if period.monthly_training_fund is None
                else period.monthly_training_fund * income_factor,
                pension_return=decline(pension_return, scenario.portfolio_decline / 2),
                training_fund_return=None
                if period.training_fund_return is None
                else decline(period.training_fund_return, scenario.portfolio_decline / 2),
            )
        )
    return derived


def _impact(baseline: Optional[CalculationResult], stressed: Optional[CalculationResult]) -> Optional[StressImpact]:
    if baseline is None or stressed is None:
        return None
    savings_change = stressed.total_savings - baseline.total_savings
    income_change = stressed.total_net_income - baseline.total_net_income
    return StressImpact(
        savings_change=savings_change,
        savings_change_pct=safe_percentage(savings_change, baseline.total_savings).value,
        income_change=income_change,
        income_change_pct=safe_percentage(income_change, baseline.total_net_income).value,
    )


def recommendations(locale: str = "en", config: Optional[EngineConfig] = None) -> Tuple[str, ...]:
    config = resolve_config(config)
    return tuple(config.stress_recommendations.get(locale) or config.stress_recommendations["en"])


def _run(
    scenario: StressScenario,
    snapshot: Any,
    work_periods: Any,
    pension_allocation: Any,
    training_fund_allocation: Any,
    historical_returns: Optional[Mapping[Any, Any]],
    training_fund_seed: float,
    baseline: Optional[CalculationResult],
    locale: str,
    phase: WizardPhase,
    config: EngineConfig,
) -> StressResult:
    derived = stressed_snapshot(
        snapshot, scenario, pension_allocation, training_fund_allocation, historical_returns, phase=phase, config=config
    )
    base = canonicalize(snapshot, phase=phase, config=config)
    periods = stressed_work_periods(
        work_periods, scenario, base_pension_return(base, pension_allocation, historical_returns, config)
    )
    stressed = calculate_retirement(
        derived,
        periods,
        pension_allocation,
        training_fund_allocation,
        historical_returns,
        safe_parse_float(training_fund_seed) * (1 - scenario.income_reduction / 100),
        phase=phase,
        config=config,
    )
    return StressResult(
        scenario=scenario,
        stressed_result=stressed,
        baseline_result=baseline,
        recommendations=recommendations(locale, config),
        impact=_impact(baseline, stressed),
    )


def run_stress_test(
    scenario_key: str,
    snapshot: Any,
    work_periods: Any = (),
    pension_allocation: Any = (),
    training_fund_allocation: Any = (),
    historical_returns: Optional[Mapping[Any, Any]] = None,
    training_fund_seed: float = 0.0,
    *,
    locale: str = "en",
    phase: WizardPhase = WizardPhase.COMPLETE,
    config: Optional[EngineConfig] = None,
) -> Optional[StressResult]:
    """
    Project retirement under one catalog scenario.

    Returns None for an unknown scenario key. The stressed projection reuses
    ``calculate_retirement`` on derived inputs; ``stressed_result`` is None
    when the snapshot itself is not computable.
    """
    config = resolve_config(config)
    try:
        scenario = get_scenario(scenario_key, config)
    except UnknownScenarioError as e:
        logger.warning(str(e), extra={"step": "stress_test"})
        return None

    baseline = calculate_retirement(
        snapshot, work_periods, pension_allocation, training_fund_allocation,
        historical_returns, training_fund_seed, phase=phase, config=config,
    )
    return _run(
        scenario, snapshot, work_periods, pension_allocation, training_fund_allocation,
        historical_returns, training_fund_seed, baseline, locale, phase, config,
    )


def compare_stress_scenarios(
    snapshot: Any,
    work_periods: Any = (),
    pension_allocation: Any = (),
    training_fund_allocation: Any = (),
    historical_returns: Optional[Mapping[Any, Any]] = None,
    training_fund_seed: float = 0.0,
    *,
    locale: str = "en",
    phase: WizardPhase = WizardPhase.COMPLETE,
    config: Optional[EngineConfig] = None,
) -> StressComparison:
    """Baseline projection plus every catalog scenario, sharing one baseline run"""
    config = resolve_config(config)
    baseline = calculate_retirement(
        snapshot, work_periods, pension_allocation, training_fund_allocation,
        historical_returns, training_fund_seed, phase=phase, config=config,
    )
    results = {
        scenario.key: _run(
            scenario, snapshot, work_periods, pension_allocation, training_fund_allocation,
            historical_returns, training_fund_seed, baseline, locale, phase, config,
        )
        for scenario in list_scenarios(config)
    }
    return StressComparison(baseline=baseline, results=results)
