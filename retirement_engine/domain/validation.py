"""Input validation for snapshots and work-period timelines"""

from itertools import groupby
from typing import Any, List, Mapping, Sequence

from retirement_engine.domain.constants import DEFAULT_RETIREMENT_AGE
from retirement_engine.domain.exceptions import InvalidWorkPeriodError
from retirement_engine.domain.field_resolution import FIELD_ALIASES, is_couple, resolve_age, resolve_field
from retirement_engine.domain.models import InputValidation, WorkPeriod
from retirement_engine.domain.safe_math import safe_parse_float

NON_NEGATIVE_FIELDS = (
    "currentAge",
    "retirementAge",
    "currentMonthlySalary",
    "currentMonthlyExpenses",
    "currentPensionSavings",
)

OPTIONAL_FIELDS = (
    "emergencyFund",
    "currentPersonalPortfolio",
    "currentTrainingFund",
    "equityPercentage",
    "bondPercentage",
)

RATE_FIELDS = ("pensionContributionRate", "trainingFundContributionRate")

NUMERIC_KEYS = frozenset(key for canonical, aliases in FIELD_ALIASES.items() for key in (canonical,) + aliases)


def validate_financial_inputs(snapshot: Any) -> InputValidation:
    """
    Check a snapshot for missing essentials, impossible values and gaps.

    Critical fields are current age and monthly income. Completeness is the
    share of optional fields (emergency fund, portfolio, training fund,
    equity and bond split) that were supplied.
    """
    if not isinstance(snapshot, Mapping):
        snapshot = {}

    errors: List[str] = []
    warnings: List[str] = []
    critical_missing: List[str] = []

    if not resolve_age(snapshot, "currentAge"):
        critical_missing.append("currentAge")
    income = resolve_field(snapshot, "currentMonthlySalary", default=None, allow_zero=False, combine_partners=is_couple(snapshot))
    if income is None:
        critical_missing.append("currentMonthlySalary")

    for field in NON_NEGATIVE_FIELDS:
        value = resolve_field(snapshot, field, default=None)
        if value is not None and value < 0:
            errors.append(f"{field} cannot be negative")

    for field in RATE_FIELDS:
        value = resolve_field(snapshot, field, default=None)
        if value is not None and not 0 <= value <= 100:
            errors.append(f"{field} must be between 0 and 100")

    current_age = resolve_age(snapshot, "currentAge")
    retirement_age = resolve_age(snapshot, "retirementAge") or DEFAULT_RETIREMENT_AGE
    if current_age > 0 and current_age >= retirement_age:
        warnings.append("currentAge is greater than or equal to retirementAge")

    for key, value in snapshot.items():
        if isinstance(value, str) and value.strip() and safe_parse_float(value, None) is None and key in NUMERIC_KEYS:
            warnings.append(f"{key} is not a number and was ignored")

    supplied = sum(1 for field in OPTIONAL_FIELDS if resolve_field(snapshot, field, default=None) is not None)
    completeness = round(supplied / len(OPTIONAL_FIELDS) * 100)

    return InputValidation(
        is_valid=not errors and not critical_missing,
        errors=tuple(errors),
        warnings=tuple(warnings),
        critical_missing=tuple(critical_missing),
        data_completeness=completeness,
    )


def validate_work_periods(periods: Sequence[WorkPeriod], current_age: float, retirement_age: float) -> List[str]:
    """
    Report timeline problems: empty or inverted periods, overlaps, and gaps
    between ``current_age`` and ``retirement_age``. Each partner's periods
    are checked as a separate timeline.
    """
    issues: List[str] = []
    if not periods:
        return issues

    ordered = sorted(periods, key=lambda p: (p.partner, p.start_age, p.end_age))
    for partner, group in groupby(ordered, key=lambda p: p.partner):
        label = f"partner {partner}: " if any(p.partner == 2 for p in periods) else ""
        cursor = current_age
        for period in group:
            if period.end_age <= period.start_age:
                issues.append(f"{label}work period {period.start_age:g}-{period.end_age:g} ends before it starts")
                continue
            if period.end_age <= current_age or period.start_age >= retirement_age:
                issues.append(f"{label}work period {period.start_age:g}-{period.end_age:g} is outside the working years")
                continue
            if period.start_age < cursor and cursor > current_age:
                issues.append(f"{label}work periods overlap between ages {period.start_age:g} and {cursor:g}")
            elif period.start_age > cursor:
                issues.append(f"{label}no work period covers ages {cursor:g} to {period.start_age:g}")
            cursor = max(cursor, period.end_age)
        if cursor < retirement_age:
            issues.append(f"{label}no work period covers ages {cursor:g} to {retirement_age:g}")
    return issues


def require_valid_timeline(periods: Sequence[WorkPeriod], current_age: float, retirement_age: float) -> None:
    """Raise InvalidWorkPeriodError when the timeline has any problem"""
    issues = validate_work_periods(periods, current_age, retirement_age)
    if issues:
        raise InvalidWorkPeriodError("; ".join(issues))
