"""Unit tests for input and timeline validation"""

import pytest

from retirement_engine.domain.exceptions import InvalidWorkPeriodError
from retirement_engine.domain.models import WorkPeriod
from retirement_engine.domain.validation import (
    require_valid_timeline,
    validate_financial_inputs,
    validate_work_periods,
)


def test_valid_snapshot(individual_snapshot):
    validation = validate_financial_inputs(individual_snapshot)

    assert validation.is_valid
    assert validation.errors == ()
    assert validation.critical_missing == ()
    assert validation.data_completeness == 100


def test_empty_snapshot_reports_critical_fields():
    validation = validate_financial_inputs({})

    assert not validation.is_valid
    assert validation.critical_missing == ("currentAge", "currentMonthlySalary")
    assert validation.data_completeness == 0


def test_negative_values_and_bad_rates():
    validation = validate_financial_inputs(
        {"currentAge": 30, "currentMonthlySalary": 10000, "currentMonthlyExpenses": -1, "pensionContributionRate": 120}
    )

    assert "currentMonthlyExpenses cannot be negative" in validation.errors
    assert "pensionContributionRate must be between 0 and 100" in validation.errors
    assert not validation.is_valid


def test_warnings_for_age_order_and_non_numeric_text():
    validation = validate_financial_inputs(
        {"currentAge": 70, "retirementAge": 65, "currentMonthlySalary": 10000, "totalDebt": "a lot"}
    )

    assert "currentAge is greater than or equal to retirementAge" in validation.warnings
    assert "totalDebt is not a number and was ignored" in validation.warnings
    assert validation.is_valid


def test_couple_income_from_partners():
    validation = validate_financial_inputs({"planningType": "couple", "currentAge": 40, "partner2Salary": 9000})

    assert validation.critical_missing == ()


def test_contiguous_periods_have_no_issues():
    periods = [WorkPeriod(30, 45), WorkPeriod(45, 67)]

    assert validate_work_periods(periods, 30, 67) == []


def test_gap_overlap_and_inverted_periods():
    periods = [WorkPeriod(30, 40), WorkPeriod(38, 50), WorkPeriod(55, 60), WorkPeriod(62, 61)]

    issues = validate_work_periods(periods, 30, 67)

    assert "work periods overlap between ages 38 and 40" in issues
    assert "no work period covers ages 50 to 55" in issues
    assert "work period 62-61 ends before it starts" in issues
    assert "no work period covers ages 60 to 67" in issues


def test_periods_checked_per_partner():
    periods = [WorkPeriod(30, 67), WorkPeriod(30, 50, partner=2)]

    issues = validate_work_periods(periods, 30, 67)

    assert issues == ["partner 2: no work period covers ages 50 to 67"]


def test_require_valid_timeline_raises():
    with pytest.raises(InvalidWorkPeriodError):
        require_valid_timeline([WorkPeriod(30, 40)], 30, 67)

    require_valid_timeline([WorkPeriod(30, 67)], 30, 67)


def test_couple_with_partner_ages_only():
    validation = validate_financial_inputs(
        {"planningType": "couple", "partner1Age": 70, "partner2Age": 42, "retirementAge": 67, "partner1Salary": 9000}
    )

    assert validation.critical_missing == ()
    assert "currentAge is greater than or equal to retirementAge" in validation.warnings
