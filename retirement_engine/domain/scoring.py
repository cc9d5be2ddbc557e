"""Financial health scoring engine - weighted 0-100 score across eight categories"""

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from retirement_engine.domain.constants import DEFAULT_RETIREMENT_AGE
from retirement_engine.domain.engine_config import EngineConfig, FactorDefinition, resolve_config
from retirement_engine.domain.field_resolution import WizardPhase, canonicalize
from retirement_engine.domain.models import CanonicalSnapshot, HealthReport, PeerComparison, ScoreFactor, Suggestion
from retirement_engine.domain.returns import future_value
from retirement_engine.domain.safe_math import clamp_value, finite_or, guarded_value, safe_divide, safe_percentage
from retirement_engine.domain.validation import validate_financial_inputs

logger = logging.getLogger(__name__)

Calculator = Callable[[CanonicalSnapshot, FactorDefinition, EngineConfig], ScoreFactor]

SUGGESTION_THRESHOLD = 70  # percent of a factor's max score
MAX_SUGGESTIONS = 3


def benchmark_percent(value: float, factor: FactorDefinition) -> float:
    """
    Map a raw metric onto 0-100 using the factor's benchmark bands.

    Bands (higher is better):
    - >= excellent: 100
    - good..excellent: 75-100
    - fair..good: 50-75
    - poor..fair: 25-50
    - below poor: proportional, 0-25
    """
    if value >= factor.excellent:
        return 100.0
    if value >= factor.good:
        return 75 + (value - factor.good) / (factor.excellent - factor.good) * 25
    if value >= factor.fair:
        return 50 + (value - factor.fair) / (factor.good - factor.fair) * 25
    if value >= factor.poor:
        return 25 + (value - factor.poor) / (factor.fair - factor.poor) * 25
    if value > 0:
        return value / factor.poor * 25
    return 0.0


def inverse_benchmark_percent(ratio: float, factor: FactorDefinition) -> float:
    """Same as ``benchmark_percent`` for metrics where lower is better (debt ratios)"""
    if ratio <= factor.excellent:
        return 100.0
    if ratio <= factor.good:
        return 90 - (ratio - factor.excellent) / (factor.good - factor.excellent) * 15
    if ratio <= factor.fair:
        return 75 - (ratio - factor.good) / (factor.fair - factor.good) * 25
    if ratio <= factor.poor:
        return 50 - (ratio - factor.fair) / (factor.poor - factor.fair) * 25
    return max(0.0, 25 - (ratio - factor.poor) * 50)


def factor_percent(value: float, factor: FactorDefinition) -> float:
    if factor.lower_is_better:
        return inverse_benchmark_percent(value, factor)
    return benchmark_percent(value, factor)


def _points(percent: float, factor: FactorDefinition, **details: Any) -> ScoreFactor:
    percent = clamp_value(percent, 0, 100)
    return ScoreFactor(
        score=clamp_value(percent * factor.weight / 100, 0, factor.weight),
        max_score=factor.weight,
        details={"percent": round(percent, 2), **details},
    )


def calculate_savings_rate_score(snap: CanonicalSnapshot, factor: FactorDefinition, config: EngineConfig) -> ScoreFactor:
    """
    Share of income saved each month.

    Counts the employee's pension and training-fund contributions plus
    discretionary monthly investing (portfolio, crypto, real estate).
    Employer contributions are not the household's own saving.
    """
    employee = snap.monthly_salary * (snap.pension_contribution_rate + snap.training_fund_contribution_rate) / 100
    saved = employee + snap.monthly_discretionary_savings
    rate = safe_percentage(saved, snap.monthly_income, 0.0, "savings_rate")
    return _points(
        benchmark_percent(rate.value, factor),
        factor,
        savings_rate=round(rate.value, 2),
        monthly_savings=round(saved, 2),
        error=rate.error,
    )


def savings_target_multiple(age: float, config: EngineConfig) -> float:
    """Age-based savings target (multiple of annual income); earliest target below the first age"""
    ages = sorted(config.age_based_targets)
    eligible = [a for a in ages if a <= age]
    return config.age_based_targets[eligible[-1] if eligible else ages[0]]


def calculate_retirement_readiness_score(
    snap: CanonicalSnapshot, factor: FactorDefinition, config: EngineConfig
) -> ScoreFactor:
    """
    Projected savings at retirement against the age-based target.

    Savings compound at a fixed assumed return with today's contributions;
    the target is final annual salary times the multiple for the retirement age.
    """
    retirement_age = snap.retirement_age or DEFAULT_RETIREMENT_AGE
    months = max(0.0, retirement_age - snap.current_age) * 12
    present = (
        snap.current_pension_savings
        + snap.current_training_fund
        + snap.current_portfolio
        + snap.current_crypto
        + snap.current_savings
    )
    monthly = snap.monthly_pension_contribution + snap.monthly_training_fund_contribution + snap.monthly_discretionary_savings
    projected = future_value(present, monthly, config.default_rate("readiness_assumed_return"), months)

    multiple = savings_target_multiple(retirement_age, config)
    target = snap.monthly_salary * 12 * multiple
    ratio = safe_divide(projected, target, 0.0, "retirement_readiness")
    return _points(
        benchmark_percent(ratio.value, factor),
        factor,
        projected_savings=round(projected, 2),
        target_savings=round(target, 2),
        readiness_ratio=round(ratio.value, 3),
        error=ratio.error,
    )


def calculate_time_horizon_score(snap: CanonicalSnapshot, factor: FactorDefinition, config: EngineConfig) -> ScoreFactor:
    retirement_age = snap.retirement_age or DEFAULT_RETIREMENT_AGE
    years = max(0.0, retirement_age - snap.current_age)
    return _points(benchmark_percent(years, factor), factor, years_to_retirement=years)


def recommended_equity(age: float, risk_tolerance: str, config: EngineConfig) -> float:
    """Age-rule equity share (100 - age, at least 20) kept inside the profile's equity range"""
    base = max(20.0, 100.0 - age)
    profile = config.risk_profiles.get(risk_tolerance)
    if profile is None:
        profile = config.risk_profiles["conservative" if risk_tolerance == "veryConservative" else "moderate"]
    return clamp_value(base, profile["equity_min"], profile["equity_max"])


def calculate_risk_alignment_score(snap: CanonicalSnapshot, factor: FactorDefinition, config: EngineConfig) -> ScoreFactor:
    """
    Alignment of the declared equity/bond split with age and risk tolerance.

    Alignment = 100 - 2 x average deviation (percentage points). A missing
    split is read as 60/40.
    """
    age = snap.current_age or 30
    equity = snap.equity_allocation if snap.equity_allocation is not None else 60.0
    bonds = snap.bond_allocation if snap.bond_allocation is not None else max(0.0, 100 - equity)
    target_equity = recommended_equity(age, snap.risk_tolerance, config)
    target_bonds = 100 - target_equity
    deviation = (abs(equity - target_equity) + abs(bonds - target_bonds)) / 2
    alignment = max(0.0, 100 - deviation * 2)
    return _points(
        benchmark_percent(alignment, factor),
        factor,
        alignment=round(alignment, 2),
        equity=equity,
        recommended_equity=target_equity,
        risk_tolerance=snap.risk_tolerance,
    )


def held_asset_classes(snap: CanonicalSnapshot) -> Tuple[str, ...]:
    held = []
    if (snap.equity_allocation or 0) > 5 or snap.current_portfolio > 0:
        held.append("stocks")
    if (snap.bond_allocation or 0) > 5:
        held.append("bonds")
    if snap.current_real_estate > 0:
        held.append("real_estate")
    if snap.current_crypto > 0:
        held.append("crypto")
    if snap.current_savings + snap.emergency_fund > 0:
        held.append("cash")
    if snap.current_pension_savings + snap.current_training_fund > 0:
        held.append("retirement_funds")
    return tuple(held)


def calculate_diversification_score(snap: CanonicalSnapshot, factor: FactorDefinition, config: EngineConfig) -> ScoreFactor:
    held = held_asset_classes(snap)
    return _points(benchmark_percent(len(held), factor), factor, asset_class_count=len(held), asset_classes=list(held))


def calculate_tax_efficiency_score(snap: CanonicalSnapshot, factor: FactorDefinition, config: EngineConfig) -> ScoreFactor:
    """
    Use of tax-advantaged saving: the employee's pension plus training-fund
    rate as a share of the rate that exhausts the country's tax benefit.
    No contributions means no tax advantage captured, so zero points.
    """
    combined = snap.pension_contribution_rate + snap.training_fund_contribution_rate
    optimal = config.country(snap.country)["optimal_contribution_rate"]
    efficiency = min(100.0, safe_percentage(combined, optimal, 0.0, "tax_efficiency").value)
    return _points(
        benchmark_percent(efficiency, factor),
        factor,
        contribution_rate=round(combined, 2),
        optimal_rate=optimal,
        efficiency=round(efficiency, 2),
        country=snap.country,
    )


JOB_STABILITY_ADJUSTMENTS = {
    "unstable": -10,
    "contract": -10,
    "freelance": -10,
    "verystable": 5,
    "government": 5,
}


def calculate_emergency_fund_score(snap: CanonicalSnapshot, factor: FactorDefinition, config: EngineConfig) -> ScoreFactor:
    """Months of expenses covered by liquid savings, adjusted for job stability"""
    liquid = snap.emergency_fund + snap.current_savings
    months = safe_divide(liquid, snap.monthly_expenses, 0.0, "emergency_fund")
    adjustment = JOB_STABILITY_ADJUSTMENTS.get(snap.job_stability.replace(" ", "").replace("_", "").lower(), 0)
    percent = benchmark_percent(months.value, factor)
    if percent > 0:
        percent += adjustment
    return _points(
        percent,
        factor,
        months_covered=round(months.value, 1),
        stability_adjustment=adjustment,
        error=months.error,
    )


def calculate_debt_management_score(snap: CanonicalSnapshot, factor: FactorDefinition, config: EngineConfig) -> ScoreFactor:
    """
    Monthly debt service against income, inverted (lower is better).

    Without stated payments, total debt is assumed repaid over 60 months.
    High-interest debt costs up to 30 further percent of the category.
    """
    payments = snap.monthly_debt_payments or snap.total_debt / 60
    if payments <= 0 and snap.high_interest_debt <= 0:
        return _points(100.0, factor, debt_to_income=0.0, debt_to_income_pct=0.0, high_interest_penalty=0.0)

    ratio = safe_divide(payments, snap.monthly_income, factor.poor * 2, "debt_to_income")
    penalty_ratio = safe_divide(snap.high_interest_debt, snap.monthly_income, 3.0, "high_interest_debt")
    penalty = min(30.0, penalty_ratio.value * 10)
    percent = factor_percent(ratio.value, factor) - penalty
    return _points(
        percent,
        factor,
        debt_to_income=round(ratio.value, 3),
        debt_to_income_pct=round(ratio.value * 100, 1),
        high_interest_penalty=round(penalty, 2),
        error=ratio.error,
    )


CALCULATORS: Dict[str, Calculator] = {
    "savings_rate": calculate_savings_rate_score,
    "retirement_readiness": calculate_retirement_readiness_score,
    "time_horizon": calculate_time_horizon_score,
    "risk_alignment": calculate_risk_alignment_score,
    "diversification": calculate_diversification_score,
    "tax_efficiency": calculate_tax_efficiency_score,
    "emergency_fund": calculate_emergency_fund_score,
    "debt_management": calculate_debt_management_score,
}


def _guarded(
    calculator: Calculator,
    snap: CanonicalSnapshot,
    factor: FactorDefinition,
    config: EngineConfig,
    warnings: List[str],
) -> ScoreFactor:
    """A failing calculator scores zero and is reported instead of failing the whole report"""
    try:
        result = calculator(snap, factor, config)
    except Exception as e:
        logger.warning(f"Score calculator {factor.key} failed: {e}", extra={"step": "scoring", "factor": factor.key})
        warnings.append(f"{factor.key} could not be scored")
        return ScoreFactor(score=0.0, max_score=factor.weight, details={"error": "calculation_failed"})

    score = finite_or(result.score)
    if score != result.score or not 0 <= score <= factor.weight:
        logger.warning(f"Score calculator {factor.key} out of range", extra={"step": "scoring", "factor": factor.key})
        score = clamp_value(score, 0, factor.weight)
    return ScoreFactor(score=score, max_score=factor.weight, details=result.details)


def health_status(total_score: float, config: EngineConfig) -> str:
    for threshold, status in config.status_thresholds:
        if total_score >= threshold:
            return status
    return "critical"


def age_group(age: float) -> str:
    if age < 30:
        return "20-29"
    if age < 40:
        return "30-39"
    if age < 50:
        return "40-49"
    if age < 60:
        return "50-59"
    return "60+"


def peer_percentile(score: float, average: float, top_quartile: float) -> float:
    """Percentile estimate: linear within 1-50 below average, 50-75 to top quartile, 75-99 above"""
    if score >= top_quartile:
        return min(99.0, 75 + (score - top_quartile) / (100 - top_quartile) * 24)
    if score >= average:
        return 50 + (score - average) / (top_quartile - average) * 25
    return max(1.0, score / average * 50)


def get_peer_comparison(age: float, total_score: float, config: EngineConfig) -> PeerComparison:
    group = age_group(age or 30)
    benchmark = config.peer_benchmarks[group]
    average, top_quartile = benchmark["average"], benchmark["top_quartile"]
    if total_score >= top_quartile:
        comparison = "aboveTopQuartile"
    elif total_score >= average:
        comparison = "aboveAverage"
    else:
        comparison = "belowAverage"
    return PeerComparison(
        age_group=group,
        average_score=average,
        top_quartile_score=top_quartile,
        percentile=round(peer_percentile(total_score, average, top_quartile), 1),
        comparison=comparison,
    )


SUGGESTION_TEMPLATES: Dict[str, Dict[str, Dict[str, str]]] = {
    "en": {
        "savings_rate": {
            "title": "Increase your savings rate",
            "description": "You save {savings_rate}% of your income. Aim for 15-20% by raising pension or training-fund contributions.",
            "impact": "Each 5% increase in savings rate can bring retirement forward by several years.",
        },
        "retirement_readiness": {
            "title": "Boost retirement savings",
            "description": "Projected savings reach {readiness_ratio}x of the target for your retirement age.",
            "impact": "Catching up now compounds over every remaining working year.",
        },
        "time_horizon": {
            "title": "Limited time to retirement",
            "description": "With {years_to_retirement} years left, maximize contributions or consider working longer.",
            "impact": "Each additional working year adds both contributions and growth.",
        },
        "risk_alignment": {
            "title": "Align risk with age",
            "description": "Your equity share is {equity}% against a recommended {recommended_equity}%.",
            "impact": "Proper alignment protects wealth while ensuring growth.",
        },
        "diversification": {
            "title": "Diversify investments",
            "description": "You hold {asset_class_count} asset classes. Add more for better risk management.",
            "impact": "Diversification reduces portfolio volatility.",
        },
        "tax_efficiency": {
            "title": "Optimize tax strategies",
            "description": "You contribute {contribution_rate}% against a tax-optimal {optimal_rate}%.",
            "impact": "Tax-advantaged contributions add directly to your retirement savings.",
        },
        "emergency_fund": {
            "title": "Build emergency reserves",
            "description": "You have {months_covered} months of expenses saved. Target 6 months minimum.",
            "impact": "A reserve prevents early withdrawals from retirement savings.",
        },
        "debt_management": {
            "title": "Reduce debt burden",
            "description": "Debt payments take {debt_to_income_pct}% of your income. Pay down high-interest debt first.",
            "impact": "Eliminating debt frees up money for retirement savings.",
        },
        "general": {
            "title": "Keep up the excellent work!",
            "description": "Your financial health is in great shape. Continue your current habits.",
            "impact": "Maintaining your current trajectory keeps retirement on track.",
        },
    },
    "he": {
        "savings_rate": {
            "title": "הגדילו את שיעור החיסכון",
            "description": "אתם חוסכים {savings_rate}% מההכנסה. שאפו ל-15-20% באמצעות הגדלת ההפקדות לפנסיה ולקרן ההשתלמות.",
            "impact": "כל תוספת של 5% בשיעור החיסכון יכולה להקדים את הפרישה בכמה שנים.",
        },
        "retirement_readiness": {
            "title": "הגדילו את החיסכון לפרישה",
            "description": "החיסכון הצפוי מגיע ל-{readiness_ratio} מהיעד לגיל הפרישה שלכם.",
            "impact": "השלמת פערים כעת נהנית מריבית דריבית לאורך כל שנות העבודה.",
        },
        "time_horizon": {
            "title": "זמן מוגבל עד הפרישה",
            "description": "נותרו {years_to_retirement} שנים. מקסמו הפקדות או שקלו לעבוד זמן רב יותר.",
            "impact": "כל שנת עבודה נוספת מוסיפה הפקדות ותשואה.",
        },
        "risk_alignment": {
            "title": "התאימו את הסיכון לגיל",
            "description": "חלק המניות שלכם {equity}% לעומת {recommended_equity}% מומלץ.",
            "impact": "התאמה נכונה שומרת על ההון ומאפשרת צמיחה.",
        },
        "diversification": {
            "title": "פזרו את ההשקעות",
            "description": "יש לכם {asset_class_count} אפיקי השקעה. הוסיפו אפיקים לניהול סיכונים טוב יותר.",
            "impact": "פיזור מקטין את התנודתיות של התיק.",
        },
        "tax_efficiency": {
            "title": "מטבו את הטבות המס",
            "description": "אתם מפקידים {contribution_rate}% לעומת {optimal_rate}% אופטימלי.",
            "impact": "הפקדות מוטבות מס מגדילות ישירות את החיסכון לפרישה.",
        },
        "emergency_fund": {
            "title": "בנו קרן חירום",
            "description": "יש לכם חיסכון של {months_covered} חודשי הוצאות. היעד הוא לפחות 6 חודשים.",
            "impact": "קרן חירום מונעת משיכות מוקדמות מהחיסכון הפנסיוני.",
        },
        "debt_management": {
            "title": "הקטינו את נטל החוב",
            "description": "החזרי החוב מהווים {debt_to_income_pct}% מההכנסה. פרעו קודם חובות בריבית גבוהה.",
            "impact": "סילוק חובות משחרר כסף לחיסכון לפרישה.",
        },
        "general": {
            "title": "המשיכו כך!",
            "description": "המצב הפיננסי שלכם מצוין. המשיכו בהרגלים הנוכחיים.",
            "impact": "שמירה על המסלול הנוכחי תשאיר את הפרישה על המסלול.",
        },
    },
}


class _TemplateValues(dict):
    def __missing__(self, key: str) -> str:
        return "-"


def _render(template: str, details: Mapping[str, Any]) -> str:
    values = _TemplateValues({key: _format_detail(value) for key, value in details.items()})
    return template.format_map(values)


def _format_detail(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


def generate_suggestions(factors: Mapping[str, ScoreFactor], locale: str = "en") -> Tuple[Suggestion, ...]:
    """
    Up to three suggestions for the factors losing the most weighted points.

    Only factors below 70% of their max qualify. When none do, a single
    general suggestion is returned. Derived from ``factors`` alone.
    """
    templates = SUGGESTION_TEMPLATES.get(locale) or SUGGESTION_TEMPLATES["en"]
    lacking = [
        (key, factor) for key, factor in factors.items()
        if factor.ratio * 100 < SUGGESTION_THRESHOLD and key in templates
    ]
    ranked = sorted(
        lacking,
        key=lambda item: (100 - item[1].ratio * 100) * item[1].max_score,
        reverse=True,
    )

    suggestions = []
    for key, factor in ranked[:MAX_SUGGESTIONS]:
        percent = factor.ratio * 100
        template = templates[key]
        suggestions.append(
            Suggestion(
                category=key,
                priority="high" if percent < 25 else "medium" if percent < 50 else "low",
                title=template["title"],
                description=_render(template["description"], factor.details),
                impact=template["impact"],
                points_available=round(factor.max_score - factor.score, 2),
            )
        )

    if not suggestions:
        general = templates["general"]
        suggestions.append(
            Suggestion(
                category="general",
                priority="low",
                title=general["title"],
                description=general["description"],
                impact=general["impact"],
            )
        )
    return tuple(suggestions)


def calculate_financial_health_score(
    snapshot: Any,
    *,
    phase: WizardPhase = WizardPhase.COMPLETE,
    locale: str = "en",
    config: Optional[EngineConfig] = None,
) -> HealthReport:
    """
    Score a snapshot 0-100 across eight weighted categories.

    Each category scores within [0, weight] and the weights total 100.
    Status: excellent >= 80, good >= 60, needsWork >= 40, else critical.
    Never raises: a failing category scores zero and is listed in warnings.
    """
    config = resolve_config(config)
    snap = canonicalize(snapshot, phase=phase, config=config)
    warnings: List[str] = []

    factors: Dict[str, ScoreFactor] = {}
    for definition in config.factors:
        calculator = CALCULATORS.get(definition.key)
        if calculator is None:
            logger.warning(f"No calculator for score factor {definition.key}", extra={"step": "scoring"})
            factor = ScoreFactor(score=0.0, max_score=definition.weight)
        else:
            factor = _guarded(calculator, snap, definition, config, warnings)
        factors[definition.key] = replace(factor, name=definition.label(locale))

    total = round(clamp_value(guarded_value("total_score", lambda: sum(f.score for f in factors.values())), 0, 100), 2)

    return HealthReport(
        total_score=total,
        status=health_status(total, config),
        factors=factors,
        suggestions=generate_suggestions(factors, locale),
        peer_comparison=get_peer_comparison(snap.current_age, total, config),
        validation=validate_financial_inputs(snapshot),
        zero_score_factors=tuple(key for key, factor in factors.items() if factor.score == 0),
        warnings=tuple(warnings),
    )
