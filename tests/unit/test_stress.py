"""Unit tests for the stress test engine"""

import pytest

from retirement_engine.domain.exceptions import UnknownScenarioError
from retirement_engine.domain.projection import calculate_retirement
from retirement_engine.domain.stress import (
    compare_stress_scenarios,
    decline,
    get_scenario,
    list_scenarios,
    run_stress_test,
    stressed_snapshot,
    stressed_work_periods,
)

SCENARIO_KEYS = ("financial_crisis_2008", "covid_pandemic", "high_inflation")


def test_unknown_scenario_returns_none():
    assert run_stress_test("unknown_scenario", {}, [], [], [], {}) is None


def test_get_scenario_raises_for_unknown_key():
    with pytest.raises(UnknownScenarioError):
        get_scenario("meteor_strike")


def test_catalog_contents():
    scenarios = list_scenarios()

    assert tuple(s.key for s in scenarios) == SCENARIO_KEYS
    crisis = get_scenario("financial_crisis_2008")
    assert crisis.portfolio_decline == 40
    assert crisis.income_reduction == 15
    assert crisis.name("he") == "המשבר הפיננסי של 2008"
    assert crisis.name("fr") == "2008 Financial Crisis"


def test_decline_floors_at_zero_and_never_raises_rate():
    assert decline(7, 40) == 0
    assert decline(7, 2) == 5
    assert decline(-3, 5) == -3


@pytest.mark.parametrize("scenario_key", SCENARIO_KEYS)
def test_stress_never_improves_savings(scenario_key, individual_snapshot, work_periods):
    """Every catalog scenario leaves total savings at or below the baseline"""
    allocation = [{"assetClass": "stocks", "allocation": 70}, {"assetClass": "bonds", "allocation": 30}]

    baseline = calculate_retirement(individual_snapshot, work_periods, allocation, allocation)
    result = run_stress_test(scenario_key, individual_snapshot, work_periods, allocation, allocation)

    assert result.stressed_result.total_savings <= baseline.total_savings
    assert result.baseline_result == baseline


@pytest.mark.parametrize("scenario_key", SCENARIO_KEYS)
def test_stress_never_improves_couple_savings(scenario_key, couple_snapshot):
    baseline = calculate_retirement(couple_snapshot)
    result = run_stress_test(scenario_key, couple_snapshot)

    assert result.stressed_result.total_savings <= baseline.total_savings


def test_stressed_snapshot_applies_shocks(individual_snapshot):
    scenario = get_scenario("financial_crisis_2008")

    derived = stressed_snapshot(individual_snapshot, scenario)

    assert derived["inflationRate"] == 4
    assert derived["personalPortfolioReturn"] == 0
    assert derived["realEstateReturn"] == 0
    assert derived["pensionReturn"] == 0
    assert derived["currentMonthlySalary"] == pytest.approx(17000)
    assert individual_snapshot["currentMonthlySalary"] == 20000


def test_stressed_snapshot_scales_partner_salaries(couple_snapshot):
    derived = stressed_snapshot(couple_snapshot, get_scenario("covid_pandemic"))

    assert derived["partner1Salary"] == pytest.approx(13500)
    assert derived["partner2Salary"] == pytest.approx(9000)


def test_stressed_work_periods(work_periods):
    """Salary and contributions shrink by the income cut, pension return by half the decline"""
    scenario = get_scenario("high_inflation")

    periods = stressed_work_periods(work_periods, scenario, 6.5)

    assert periods[0].monthly_salary == pytest.approx(19000)
    assert periods[0].monthly_contribution == pytest.approx(2375)
    assert periods[0].pension_return == 0
    assert periods[1].monthly_salary == pytest.approx(24700)
    assert periods[0].pension_annual_fee == 0.3


def test_stressed_work_periods_fallback_return():
    periods = stressed_work_periods([{"startAge": 30, "endAge": 40}], get_scenario("high_inflation"), 10)

    assert periods[0].pension_return == pytest.approx(2.5)


def test_stress_result_carries_recommendations_and_impact(individual_snapshot):
    result = run_stress_test("covid_pandemic", individual_snapshot, locale="he")

    assert len(result.recommendations) == 4
    assert result.recommendations[0].startswith("שמרו")
    assert result.impact.savings_change <= 0
    assert result.impact.savings_change_pct <= 0


def test_stress_not_computable_snapshot():
    result = run_stress_test("high_inflation", {"currentAge": 70, "retirementAge": 67})

    assert result is not None
    assert result.stressed_result is None
    assert result.impact is None


def test_compare_stress_scenarios(individual_snapshot):
    comparison = compare_stress_scenarios(individual_snapshot)

    assert set(comparison.results) == set(SCENARIO_KEYS)
    for result in comparison.results.values():
        assert result.baseline_result == comparison.baseline
        assert result.stressed_result.total_savings <= comparison.baseline.total_savings
