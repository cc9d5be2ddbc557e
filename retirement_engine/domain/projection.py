"""Retirement projection engine - accumulation through work periods and income at retirement"""

import logging
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from retirement_engine.domain.engine_config import EngineConfig, resolve_config
from retirement_engine.domain.field_resolution import WizardPhase, canonicalize, has_partner_data
from retirement_engine.domain.models import (
    AssetBalance,
    AssetBalances,
    CalculationResult,
    CanonicalSnapshot,
    IncomeBreakdown,
    IncomeSource,
    PartnerResults,
    PeriodResult,
    PersonProjection,
    WorkPeriod,
)
from retirement_engine.domain.returns import calculate_weighted_return, future_value, net_return, risk_multiplier
from retirement_engine.domain.safe_math import clamp_value, finite_or, safe_parse_float, safe_percentage
from retirement_engine.domain.validation import validate_work_periods

logger = logging.getLogger(__name__)

Segment = Tuple[Optional[WorkPeriod], float, float]


def coerce_work_periods(work_periods: Any) -> List[WorkPeriod]:
    """Accept WorkPeriod instances or UI mappings; anything else is dropped"""
    if not isinstance(work_periods, (list, tuple)):
        return []
    periods = []
    for raw in work_periods:
        if isinstance(raw, WorkPeriod):
            periods.append(raw)
        elif isinstance(raw, Mapping):
            periods.append(WorkPeriod.from_mapping(raw))
        else:
            logger.warning("Ignoring work period that is not a mapping", extra={"step": "projection"})
    return periods


def build_timeline(periods: Iterable[WorkPeriod], start_age: float, end_age: float) -> List[Segment]:
    """
    Lay periods end to end across [start_age, end_age).

    Periods are clipped to the working span and to whatever earlier
    periods already covered, so no year is counted twice. Uncovered spans
    become segments with no period (balances grow, nothing is contributed).
    """
    segments: List[Segment] = []
    cursor = start_age
    for period in sorted(periods, key=lambda p: (p.start_age, p.end_age)):
        seg_start = max(period.start_age, cursor)
        seg_end = min(period.end_age, end_age)
        if seg_end <= seg_start:
            continue
        if seg_start > cursor:
            segments.append((None, cursor, seg_start))
        segments.append((period, seg_start, seg_end))
        cursor = seg_end
    if cursor < end_age:
        segments.append((None, cursor, end_age))
    return segments


def _implicit_period(person: CanonicalSnapshot) -> WorkPeriod:
    return WorkPeriod(
        start_age=person.current_age,
        end_age=person.retirement_age,
        monthly_salary=person.monthly_salary,
        monthly_contribution=person.monthly_pension_contribution,
        monthly_training_fund=person.monthly_training_fund_contribution or None,
        pension_return=None,
        pension_deposit_fee=person.pension_deposit_fee,
        pension_annual_fee=person.pension_annual_fee,
        country=person.country,
    )


def base_pension_return(
    person: CanonicalSnapshot,
    pension_allocation: Any,
    historical_returns: Optional[Mapping[Any, Any]],
    config: EngineConfig,
) -> float:
    """Pension return before risk adjustment: snapshot rate, else allocation, else default"""
    if person.pension_return is not None:
        return person.pension_return
    if pension_allocation:
        return calculate_weighted_return(pension_allocation, person.years_to_retirement, historical_returns, config=config)
    return config.default_rate("pension_return")


def base_training_fund_return(
    person: CanonicalSnapshot,
    training_fund_allocation: Any,
    historical_returns: Optional[Mapping[Any, Any]],
    config: EngineConfig,
) -> float:
    if person.training_fund_return is not None:
        return person.training_fund_return
    if training_fund_allocation:
        return calculate_weighted_return(
            training_fund_allocation, person.years_to_retirement, historical_returns, config=config
        )
    return config.default_rate("training_fund_return")


def _capital_gains(gross: float, tax_rate: float) -> AssetBalance:
    return AssetBalance(gross=gross, net=gross * (1 - tax_rate / 100))


def _project_person(
    person: CanonicalSnapshot,
    periods: Sequence[WorkPeriod],
    pension_return: float,
    training_fund_return: float,
    training_fund_seed: float,
    config: EngineConfig,
) -> PersonProjection:
    multiplier = risk_multiplier(person.risk_tolerance, config=config)
    if not periods and (person.monthly_salary > 0 or person.monthly_pension_contribution > 0):
        periods = [_implicit_period(person)]

    pension = person.current_pension_savings
    training_fund = person.current_training_fund
    period_results: List[PeriodResult] = []
    final_salary = person.monthly_salary
    retirement_country = person.country

    for period, seg_start, seg_end in build_timeline(periods, person.current_age, person.retirement_age):
        months = (seg_end - seg_start) * 12

        if period is None:
            idle_rate = net_return(pension_return * multiplier, person.pension_annual_fee)
            pension = future_value(pension, 0.0, idle_rate, months)
            training_fund = future_value(
                training_fund, 0.0, net_return(training_fund_return * multiplier, person.training_fund_management_fee), months
            )
            continue

        gross_rate = period.pension_return if period.pension_return is not None else pension_return
        adjusted = gross_rate * multiplier
        effective = net_return(adjusted, period.pension_annual_fee)
        deposit_fee = clamp_value(period.pension_deposit_fee, 0, 100)
        contribution = max(0.0, period.monthly_contribution)
        net_contribution = contribution * (1 - deposit_fee / 100)
        new_pension = future_value(pension, net_contribution, effective, months)

        tf_contribution = period.monthly_training_fund if period.monthly_training_fund is not None else training_fund_seed
        tf_contribution = max(0.0, safe_parse_float(tf_contribution))
        tf_gross = period.training_fund_return if period.training_fund_return is not None else training_fund_return
        training_fund = future_value(
            training_fund, tf_contribution, net_return(tf_gross * multiplier, person.training_fund_management_fee), months
        )

        period_results.append(
            PeriodResult(
                start_age=seg_start,
                end_age=seg_end,
                country=config.country_key(period.country or person.country),
                partner=period.partner,
                years=seg_end - seg_start,
                pension_return=adjusted,
                effective_return=effective,
                contributions=contribution * months,
                net_contributions=net_contribution * months,
                growth=new_pension - pension,
                pension_balance=new_pension,
                training_fund_contributions=tf_contribution * months,
            )
        )
        pension = new_pension
        if period.monthly_salary > 0:
            final_salary = period.monthly_salary
        retirement_country = config.country_key(period.country or person.country)

    months = person.years_to_retirement * 12
    portfolio = future_value(
        person.current_portfolio, person.monthly_portfolio_contribution, person.portfolio_return * multiplier, months
    )
    crypto = future_value(person.current_crypto, person.monthly_crypto_contribution, person.crypto_return * multiplier, months)
    real_estate = future_value(
        person.current_real_estate, person.monthly_real_estate_contribution, person.real_estate_return * multiplier, months
    )

    balances = AssetBalances(
        pension=AssetBalance(gross=pension, net=pension),
        training_fund=AssetBalance(gross=training_fund, net=training_fund),
        personal_portfolio=_capital_gains(portfolio, person.portfolio_tax_rate),
        crypto=AssetBalance(gross=crypto, net=crypto),
        real_estate=_capital_gains(real_estate, person.portfolio_tax_rate),
    )
    income = _retirement_income(person, balances, retirement_country, config)

    return PersonProjection(
        balances=balances,
        total_savings=finite_or(balances.total_net),
        income=income,
        final_salary=final_salary,
        period_results=tuple(period_results),
    )


def _retirement_income(
    person: CanonicalSnapshot,
    balances: AssetBalances,
    country_key: str,
    config: EngineConfig,
) -> IncomeBreakdown:
    """Monthly income each asset supports at retirement, before and after tax"""
    country = config.country(country_key)
    income_tax = country["pension_tax"]
    rates = config.withdrawal_rates

    pension = balances.pension.net * rates["pension"] / 12
    training_fund = balances.training_fund.net * rates["training_fund"] / 12
    portfolio = balances.personal_portfolio.net * rates["personal_portfolio"] / 12
    crypto = balances.crypto.net * rates["crypto"] / 12
    rental = balances.real_estate.gross * person.real_estate_rental_yield / 100 / 12
    social_security = person.social_security if person.social_security is not None else float(country["social_security"])

    return IncomeBreakdown(
        pension=IncomeSource(gross=pension, net=pension * (1 - income_tax)),
        training_fund=IncomeSource(gross=training_fund, net=training_fund),  # tax-exempt
        personal_portfolio=IncomeSource(gross=portfolio, net=portfolio),  # taxed on the balance
        crypto=IncomeSource(gross=crypto, net=crypto * (1 - person.crypto_tax_rate / 100)),
        real_estate=IncomeSource(gross=rental, net=rental * (1 - income_tax)),
        social_security=IncomeSource(gross=social_security, net=social_security),
        additional=IncomeSource(gross=0.0, net=0.0),
    )


def _extra_income(extra_income_sources: Any) -> IncomeSource:
    """Sum of caller-supplied monthly income streams ({amount|monthlyAmount, taxRate})"""
    if not isinstance(extra_income_sources, (list, tuple)):
        return IncomeSource(gross=0.0, net=0.0)
    gross = net = 0.0
    for source in extra_income_sources:
        if not isinstance(source, Mapping):
            continue
        amount = max(0.0, safe_parse_float(source.get("amount", source.get("monthlyAmount"))))
        tax = clamp_value(source.get("taxRate", 0), 0, 100)
        gross += amount
        net += amount * (1 - tax / 100)
    return IncomeSource(gross=gross, net=net)


def inflate(amount: float, annual_rate: float, years: float) -> float:
    """Grow ``amount`` by ``annual_rate`` percent a year; deflation is floored at -99%"""
    try:
        return finite_or(amount * (1 + max(annual_rate, -99.0) / 100) ** years)
    except OverflowError:
        logger.warning("Inflation overflow", extra={"step": "projection", "years": years})
        return 0.0


def _add_balance(a: AssetBalance, b: AssetBalance) -> AssetBalance:
    return AssetBalance(gross=a.gross + b.gross, net=a.net + b.net)


def _add_source(a: IncomeSource, b: IncomeSource) -> IncomeSource:
    return IncomeSource(gross=a.gross + b.gross, net=a.net + b.net)


def _combine_balances(a: AssetBalances, b: AssetBalances) -> AssetBalances:
    return AssetBalances(
        pension=_add_balance(a.pension, b.pension),
        training_fund=_add_balance(a.training_fund, b.training_fund),
        personal_portfolio=_add_balance(a.personal_portfolio, b.personal_portfolio),
        crypto=_add_balance(a.crypto, b.crypto),
        real_estate=_add_balance(a.real_estate, b.real_estate),
    )


def _combine_income(a: IncomeBreakdown, b: IncomeBreakdown) -> IncomeBreakdown:
    return IncomeBreakdown(
        pension=_add_source(a.pension, b.pension),
        training_fund=_add_source(a.training_fund, b.training_fund),
        personal_portfolio=_add_source(a.personal_portfolio, b.personal_portfolio),
        crypto=_add_source(a.crypto, b.crypto),
        real_estate=_add_source(a.real_estate, b.real_estate),
        social_security=_add_source(a.social_security, b.social_security),
        additional=_add_source(a.additional, b.additional),
    )


def _with_additional(income: IncomeBreakdown, extra: IncomeSource) -> IncomeBreakdown:
    return IncomeBreakdown(
        pension=income.pension,
        training_fund=income.training_fund,
        personal_portfolio=income.personal_portfolio,
        crypto=income.crypto,
        real_estate=income.real_estate,
        social_security=income.social_security,
        additional=_add_source(income.additional, extra),
    )


def _projection_inputs(
    person: CanonicalSnapshot,
    periods: Sequence[WorkPeriod],
    pension_allocation: Any,
    training_fund_allocation: Any,
    historical_returns: Any,
    training_fund_seed: float,
    config: EngineConfig,
    warnings: List[str],
) -> PersonProjection:
    warnings.extend(validate_work_periods(periods, person.current_age, person.retirement_age))
    return _project_person(
        person,
        periods,
        base_pension_return(person, pension_allocation, historical_returns, config),
        base_training_fund_return(person, training_fund_allocation, historical_returns, config),
        training_fund_seed,
        config,
    )


def calculate_retirement(
    snapshot: Any,
    work_periods: Any = (),
    pension_allocation: Any = (),
    training_fund_allocation: Any = (),
    historical_returns: Optional[Mapping[Any, Any]] = None,
    training_fund_seed: float = 0.0,
    extra_income_sources: Any = None,
    *,
    phase: WizardPhase = WizardPhase.COMPLETE,
    config: Optional[EngineConfig] = None,
) -> Optional[CalculationResult]:
    """
    Project savings and monthly income at retirement.

    Returns None when the snapshot is not computable (current age at or past
    retirement age, including an empty snapshot). Work periods drive pension
    and training-fund accumulation; with none supplied, one period spanning
    the working years is derived from salary and contribution rates.
    ``training_fund_seed`` is the monthly training-fund deposit for periods
    that do not state their own.

    For couples who have completed data entry, each partner is projected
    and taxed on their own terms and the after-tax figures are summed.
    Periods tagged ``partner=2`` belong to partner 2; all others to partner 1.
    """
    config = resolve_config(config)
    household = canonicalize(snapshot, phase=phase, config=config)
    if household.current_age >= household.retirement_age:
        logger.info(
            "Projection not computable",
            extra={"step": "projection", "current_age": household.current_age, "retirement_age": household.retirement_age},
        )
        return None

    periods = coerce_work_periods(work_periods)
    seed = max(0.0, safe_parse_float(training_fund_seed))
    warnings: List[str] = []
    partner_results = None

    if household.is_couple and phase >= WizardPhase.COMPLETE and has_partner_data(snapshot):
        people = []
        for partner in (1, 2):
            person = canonicalize(snapshot, phase=phase, partner=partner, config=config)
            own_periods = [p for p in periods if (p.partner == 2) == (partner == 2)]
            people.append(
                _projection_inputs(
                    person, own_periods, pension_allocation, training_fund_allocation,
                    historical_returns, seed, config, warnings,
                )
            )
        partner_results = PartnerResults(partner1=people[0], partner2=people[1])
        balances = _combine_balances(people[0].balances, people[1].balances)
        income = _combine_income(people[0].income, people[1].income)
        final_salary = people[0].final_salary + people[1].final_salary
        period_results = people[0].period_results + people[1].period_results
    else:
        person = _projection_inputs(
            household, periods, pension_allocation, training_fund_allocation,
            historical_returns, seed, config, warnings,
        )
        balances, income = person.balances, person.income
        final_salary = person.final_salary
        period_results = person.period_results

    for issue in warnings:
        logger.warning(f"Work period timeline: {issue}", extra={"step": "projection"})

    income = _with_additional(income, _extra_income(extra_income_sources))
    years = household.years_to_retirement
    total_net_income = finite_or(income.total_net)
    future_expenses = inflate(household.monthly_expenses, household.inflation_rate, years)
    replacement = safe_percentage(total_net_income, final_salary, 0.0, "replacement_ratio").value

    return CalculationResult(
        years_to_retirement=years,
        balances=balances,
        total_savings=finite_or(balances.total_net),
        income=income,
        total_gross_income=finite_or(income.total_gross),
        total_net_income=total_net_income,
        monthly_expenses=household.monthly_expenses,
        future_monthly_expenses=future_expenses,
        surplus=finite_or(total_net_income - future_expenses),
        final_salary=final_salary,
        replacement_ratio=replacement,
        target_replacement=household.target_replacement,
        achieves_target=replacement >= household.target_replacement,
        period_results=period_results,
        warnings=tuple(warnings),
        partner_results=partner_results,
    )
