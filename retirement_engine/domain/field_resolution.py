"""Field resolution - maps loosely-keyed snapshots onto canonical fields"""

import logging
import math
from enum import IntEnum
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from retirement_engine.domain.engine_config import EngineConfig, resolve_config
from retirement_engine.domain.models import CanonicalSnapshot
from retirement_engine.domain.safe_math import clamp_value, safe_parse_float, safe_percentage

logger = logging.getLogger(__name__)


class WizardPhase(IntEnum):
    """How far the user has progressed through data entry"""

    EARLY = 1  # individual fields only, partners never combined
    COMPLETE = 2


# Canonical field -> alternate keys, tried in order after the canonical key itself
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "currentAge": ("age", "userAge"),
    "retirementAge": ("targetRetirementAge", "plannedRetirementAge"),
    "currentMonthlySalary": ("monthlySalary", "salary", "currentSalary", "grossSalary", "monthlyIncome"),
    "pensionContributionRate": ("employeePensionRate", "pensionEmployeeRate", "pensionRate"),
    "employerPensionRate": ("pensionEmployerRate", "employerContributionRate"),
    "trainingFundContributionRate": ("trainingFundEmployeeRate", "trainingFundRate"),
    "employerTrainingFundRate": ("trainingFundEmployerRate",),
    "currentPensionSavings": ("currentPension", "pensionSavings", "retirementSavings", "currentRetirementSavings"),
    "currentTrainingFund": ("trainingFund", "trainingFundValue", "currentTrainingFundValue"),
    "currentPersonalPortfolio": ("personalPortfolio", "portfolioValue", "currentPortfolio", "portfolio"),
    "currentCrypto": ("crypto", "cryptoValue", "currentCryptoValue", "currentCryptoFiatValue"),
    "currentRealEstate": ("realEstate", "realEstateValue", "propertyValue"),
    "currentSavings": ("savings", "bankAccount", "currentBankAccount", "cashSavings"),
    "emergencyFund": ("emergencySavings", "emergencyFundAmount"),
    "personalPortfolioMonthly": ("monthlyPortfolioContribution", "portfolioMonthly"),
    "cryptoMonthly": ("monthlyCryptoContribution",),
    "realEstateMonthly": ("monthlyRealEstateContribution",),
    "currentMonthlyExpenses": ("monthlyExpenses", "expenses", "totalMonthlyExpenses"),
    "totalDebt": ("debt", "totalDebtAmount"),
    "monthlyDebtPayments": ("debtPayments", "monthlyDebtPayment"),
    "highInterestDebt": ("creditCardDebt",),
    "equityPercentage": ("stocksPercentage", "equityAllocation", "stockPercentage"),
    "bondPercentage": ("bondsPercentage", "bondAllocation"),
    "pensionReturn": ("expectedPensionReturn",),
    "trainingFundReturn": ("expectedTrainingFundReturn",),
    "personalPortfolioReturn": ("portfolioReturn",),
    "cryptoReturn": ("expectedCryptoReturn",),
    "realEstateReturn": ("realEstateAppreciation",),
    "realEstateRentalYield": ("rentalYield",),
    "pensionAnnualFee": ("pensionManagementFee",),
    "pensionDepositFee": ("depositFee",),
    "trainingFundManagementFee": ("trainingFundFee",),
    "personalPortfolioTaxRate": ("portfolioTaxRate", "capitalGainsTaxRate"),
    "cryptoTaxRate": ("cryptoCapitalGainsTaxRate",),
    "inflationRate": ("inflation",),
    "targetReplacement": ("targetReplacementRate",),
    "socialSecurity": ("socialSecurityBenefit", "nationalInsurance"),
    "additionalIncome": ("otherIncome",),
    "freelanceIncome": (),
    "rentalIncome": (),
    "dividendIncome": (),
    "annualBonus": ("bonus",),
    "quarterlyRSU": ("quarterlyRsu",),
}

TEXT_ALIASES: Dict[str, Tuple[str, ...]] = {
    "planningType": ("planning_type", "planningMode"),
    "riskTolerance": ("riskProfile", "investmentRiskProfile", "riskLevel"),
    "country": ("residenceCountry", "taxCountry"),
    "jobStability": ("employmentStability",),
}

# Key templates for partner-scoped variants of a field
PARTNER_KEY_TEMPLATES: Dict[int, Tuple[str, ...]] = {
    1: ("partner1{cap}", "partner1_{name}", "p1{cap}"),
    2: ("partner2{cap}", "partner2_{name}", "partner{cap}", "p2{cap}"),
}

# Partner keys the templates do not produce
PARTNER_ALIASES: Dict[Tuple[str, int], Tuple[str, ...]] = {
    ("currentMonthlySalary", 1): ("partner1Salary",),
    ("currentMonthlySalary", 2): ("partner2Salary", "partnerSalary"),
    ("pensionContributionRate", 1): ("partner1EmployeeRate",),
    ("pensionContributionRate", 2): ("partner2EmployeeRate",),
    ("employerPensionRate", 1): ("partner1EmployerRate",),
    ("employerPensionRate", 2): ("partner2EmployerRate",),
    ("currentPensionSavings", 1): ("partner1CurrentPension",),
    ("currentPensionSavings", 2): ("partner2CurrentPension",),
    ("currentTrainingFund", 1): ("partner1TrainingFund",),
    ("currentTrainingFund", 2): ("partner2TrainingFund",),
    ("currentSavings", 1): ("partner1BankAccount",),
    ("currentSavings", 2): ("partner2BankAccount",),
    ("currentAge", 2): ("partnerCurrentAge",),
    ("retirementAge", 2): ("partnerRetirementAge",),
}

# Fields held per person; everything else is household-level
PER_PERSON_FIELDS = frozenset({
    "currentAge",
    "retirementAge",
    "currentMonthlySalary",
    "pensionContributionRate",
    "employerPensionRate",
    "trainingFundContributionRate",
    "employerTrainingFundRate",
    "currentPensionSavings",
    "currentTrainingFund",
    "currentSavings",
    "currentPersonalPortfolio",
    "currentCrypto",
    "currentRealEstate",
    "additionalIncome",
    "freelanceIncome",
    "rentalIncome",
    "dividendIncome",
    "annualBonus",
    "quarterlyRSU",
})

INCOME_FIELDS = ("additionalIncome", "freelanceIncome", "rentalIncome", "dividendIncome")

RISK_TOLERANCES = {
    "veryconservative": "veryConservative",
    "very_conservative": "veryConservative",
    "conservative": "conservative",
    "low": "conservative",
    "moderate": "moderate",
    "medium": "moderate",
    "balanced": "moderate",
    "aggressive": "aggressive",
    "high": "aggressive",
    "veryaggressive": "veryAggressive",
    "very_aggressive": "veryAggressive",
}

COUPLE_PLANNING_TYPES = frozenset({"couple", "married", "partners"})


def _lookup(snapshot: Mapping[str, Any], keys: Iterable[str], allow_zero: bool) -> Optional[float]:
    for key in keys:
        if key not in snapshot:
            continue
        value = safe_parse_float(snapshot[key], math.nan)
        if math.isnan(value):
            continue
        if value == 0 and not allow_zero:
            continue
        return value
    return None


def candidate_keys(canonical: str, aliases: Mapping[str, Tuple[str, ...]] = FIELD_ALIASES) -> Tuple[str, ...]:
    return (canonical,) + tuple(aliases.get(canonical, ()))


def partner_keys(
    canonical: str,
    partner: int,
    aliases: Mapping[str, Tuple[str, ...]] = FIELD_ALIASES,
) -> Tuple[str, ...]:
    """Every key under which ``partner``'s value for ``canonical`` may appear"""
    keys = []
    for name in candidate_keys(canonical, aliases):
        cap = name[0].upper() + name[1:]
        keys.extend(template.format(cap=cap, name=name) for template in PARTNER_KEY_TEMPLATES.get(partner, ()))
    keys.extend(PARTNER_ALIASES.get((canonical, partner), ()))
    return tuple(dict.fromkeys(keys))


def resolve_text(snapshot: Any, canonical: str, default: str = "") -> str:
    if not isinstance(snapshot, Mapping):
        return default
    for key in (canonical,) + TEXT_ALIASES.get(canonical, ()):
        value = snapshot.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return default


def is_couple(snapshot: Any) -> bool:
    if not isinstance(snapshot, Mapping):
        return False
    if snapshot.get("partnerPlanningEnabled") is True:
        return True
    return resolve_text(snapshot, "planningType").lower() in COUPLE_PLANNING_TYPES


def has_partner_data(snapshot: Any, canonical: str = "currentMonthlySalary") -> bool:
    if not isinstance(snapshot, Mapping):
        return False
    return any(
        _lookup(snapshot, partner_keys(canonical, partner), allow_zero=True) is not None
        for partner in (1, 2)
    )


def resolve_partner_field(
    snapshot: Any,
    canonical: str,
    partner: int,
    *,
    default: Optional[float] = 0.0,
    allow_zero: bool = True,
    aliases: Mapping[str, Tuple[str, ...]] = FIELD_ALIASES,
) -> Optional[float]:
    """One partner's value; partner 1 falls back to the individual field"""
    if not isinstance(snapshot, Mapping):
        return default
    value = _lookup(snapshot, partner_keys(canonical, partner, aliases), allow_zero)
    if value is None and partner == 1:
        value = _lookup(snapshot, candidate_keys(canonical, aliases), allow_zero)
    return default if value is None else value


def resolve_field(
    snapshot: Any,
    canonical: str,
    *,
    default: Optional[float] = 0.0,
    allow_zero: bool = True,
    combine_partners: bool = False,
    phase: WizardPhase = WizardPhase.COMPLETE,
    aliases: Mapping[str, Tuple[str, ...]] = FIELD_ALIASES,
) -> Optional[float]:
    """
    Resolve a canonical numeric field from a snapshot.

    Tried in order: the canonical key, then its aliases. For couples with
    ``combine_partners`` set, once data entry is complete the two partners'
    values are summed instead; if neither partner has a value the
    individual field is used. Values that do not parse, and zeros when
    ``allow_zero`` is False, are skipped. Never raises.
    """
    if not isinstance(snapshot, Mapping):
        return default

    if combine_partners and phase >= WizardPhase.COMPLETE and is_couple(snapshot):
        first = _lookup(snapshot, partner_keys(canonical, 1, aliases), allow_zero)
        second = _lookup(snapshot, partner_keys(canonical, 2, aliases), allow_zero)
        if first is not None or second is not None:
            return (first or 0.0) + (second or 0.0)

    value = _lookup(snapshot, candidate_keys(canonical, aliases), allow_zero)
    return default if value is None else value


def resolve_age(snapshot: Any, canonical: str, partner: Optional[int] = None, default: float = 0.0) -> float:
    """
    Age field for one partner or the household.

    Order: the partner's own key, the shared key, then partner 1's key for
    couples whose snapshot only carries per-partner ages.
    """
    if not isinstance(snapshot, Mapping):
        return default
    value = None
    if partner is not None:
        value = _lookup(snapshot, partner_keys(canonical, partner), allow_zero=True)
    if value is None:
        value = _lookup(snapshot, candidate_keys(canonical), allow_zero=True)
    if value is None and is_couple(snapshot):
        value = _lookup(snapshot, partner_keys(canonical, 1), allow_zero=True)
    return default if value is None else value


def resolve_social_security(snapshot: Any, partner: Optional[int] = None, *, combine: bool = False) -> Optional[float]:
    """
    Monthly state benefit, or None when the snapshot does not state one.

    A benefit under the shared key belongs to partner 1 only; partner 2
    receives 0 for it. The combined view is the sum of both partners.
    """
    if not isinstance(snapshot, Mapping):
        return None
    if partner is None and not combine:
        return resolve_field(snapshot, "socialSecurity", default=None)
    if partner is None:
        first = resolve_social_security(snapshot, 1)
        second = resolve_social_security(snapshot, 2)
        if first is None and second is None:
            return None
        return (first or 0.0) + (second or 0.0)

    own = _lookup(snapshot, partner_keys("socialSecurity", partner), allow_zero=True)
    if own is not None:
        return own
    shared = _lookup(snapshot, candidate_keys("socialSecurity"), allow_zero=True)
    if shared is None:
        return None
    return shared if partner == 1 else 0.0


def normalize_risk_tolerance(value: str) -> str:
    key = value.strip().replace(" ", "").replace("-", "_").lower()
    return RISK_TOLERANCES.get(key, "moderate")


def _person_terms(snapshot: Mapping[str, Any], partner: Optional[int]) -> Dict[str, float]:
    """Per-person amounts and rates for one partner, or for the individual when ``partner`` is None"""
    def value(canonical: str) -> float:
        if partner is None:
            return resolve_field(snapshot, canonical)
        return resolve_partner_field(snapshot, canonical, partner)

    terms = {name: max(0.0, value(name)) for name in PER_PERSON_FIELDS if name not in ("currentAge", "retirementAge")}
    salary = terms["currentMonthlySalary"]
    terms["employee_contribution"] = salary * (terms["pensionContributionRate"] + terms["trainingFundContributionRate"]) / 100
    terms["pension_contribution"] = salary * (terms["pensionContributionRate"] + terms["employerPensionRate"]) / 100
    terms["training_fund_contribution"] = (
        salary * (terms["trainingFundContributionRate"] + terms["employerTrainingFundRate"]) / 100
    )
    terms["income"] = (
        salary
        + sum(terms[name] for name in INCOME_FIELDS)
        + terms["annualBonus"] / 12
        + terms["quarterlyRSU"] / 3
    )
    return terms


def _sum_terms(people: Iterable[Dict[str, float]]) -> Dict[str, float]:
    total: Dict[str, float] = {}
    for terms in people:
        for name, amount in terms.items():
            total[name] = total.get(name, 0.0) + amount
    return total


def _household_rate(total: Dict[str, float], rate_field: str, people: Tuple[Dict[str, float], ...]) -> float:
    """Contribution rate of the household: contributed money over combined salary"""
    if len(people) == 1:
        return people[0][rate_field]
    money = sum(terms["currentMonthlySalary"] * terms[rate_field] for terms in people) / 100
    return safe_percentage(money, total["currentMonthlySalary"]).value


def canonicalize(
    snapshot: Any,
    *,
    phase: WizardPhase = WizardPhase.COMPLETE,
    partner: Optional[int] = None,
    config: Optional[EngineConfig] = None,
) -> CanonicalSnapshot:
    """
    Build the canonical view of a snapshot.

    With ``partner`` unset this is the household view: for couples who have
    completed data entry, per-person amounts are summed across partners and
    contribution rates become household rates (combined contributions over
    combined salary). With ``partner`` set to 1 or 2 it is that partner's
    view; household-level assets and liabilities are carried by partner 1.
    """
    config = resolve_config(config)
    if not isinstance(snapshot, Mapping):
        logger.warning("Snapshot is not a mapping, treating as empty", extra={"step": "canonicalize"})
        snapshot = {}

    couple = is_couple(snapshot)
    combine = couple and partner is None and phase >= WizardPhase.COMPLETE and has_partner_data(snapshot)

    if partner is not None:
        people: Tuple[Dict[str, float], ...] = (_person_terms(snapshot, partner),)
    elif combine:
        people = (_person_terms(snapshot, 1), _person_terms(snapshot, 2))
    else:
        people = (_person_terms(snapshot, None),)
    terms = _sum_terms(people)

    def shared(canonical: str, default: Optional[float] = 0.0) -> Optional[float]:
        return resolve_field(snapshot, canonical, default=default)

    def household(canonical: str) -> float:
        # Household assets are attributed to partner 1 in partner views
        if partner == 2:
            return 0.0
        return max(0.0, shared(canonical))

    def rate(canonical: str, default_name: str) -> float:
        return shared(canonical, config.default_rate(default_name))

    current_age = resolve_age(snapshot, "currentAge", partner)
    retirement_age = resolve_age(snapshot, "retirementAge", partner)

    equity = shared("equityPercentage", None)
    bonds = shared("bondPercentage", None)
    social_security = resolve_social_security(snapshot, partner, combine=combine)
    tax_ceiling = config.max_capital_gains_tax

    return CanonicalSnapshot(
        planning_type="couple" if couple else "individual",
        current_age=max(0.0, current_age),
        retirement_age=max(0.0, retirement_age),
        monthly_salary=terms["currentMonthlySalary"],
        monthly_income=terms["income"],
        pension_contribution_rate=_household_rate(terms, "pensionContributionRate", people),
        employer_pension_rate=_household_rate(terms, "employerPensionRate", people),
        training_fund_contribution_rate=_household_rate(terms, "trainingFundContributionRate", people),
        employer_training_fund_rate=_household_rate(terms, "employerTrainingFundRate", people),
        monthly_pension_contribution=terms["pension_contribution"],
        monthly_training_fund_contribution=terms["training_fund_contribution"],
        monthly_portfolio_contribution=household("personalPortfolioMonthly"),
        monthly_crypto_contribution=household("cryptoMonthly"),
        monthly_real_estate_contribution=household("realEstateMonthly"),
        current_pension_savings=terms["currentPensionSavings"],
        current_training_fund=terms["currentTrainingFund"],
        current_portfolio=terms["currentPersonalPortfolio"],
        current_crypto=terms["currentCrypto"],
        current_real_estate=terms["currentRealEstate"],
        current_savings=terms["currentSavings"],
        emergency_fund=household("emergencyFund"),
        monthly_expenses=household("currentMonthlyExpenses"),
        total_debt=household("totalDebt"),
        monthly_debt_payments=household("monthlyDebtPayments"),
        high_interest_debt=household("highInterestDebt"),
        equity_allocation=None if equity is None else clamp_value(equity, 0, 100),
        bond_allocation=None if bonds is None else clamp_value(bonds, 0, 100),
        pension_return=shared("pensionReturn", None),
        training_fund_return=shared("trainingFundReturn", None),
        portfolio_return=rate("personalPortfolioReturn", "portfolio_return"),
        crypto_return=rate("cryptoReturn", "crypto_return"),
        real_estate_return=rate("realEstateReturn", "real_estate_return"),
        real_estate_rental_yield=max(0.0, rate("realEstateRentalYield", "real_estate_rental_yield")),
        pension_annual_fee=clamp_value(shared("pensionAnnualFee"), 0, 100),
        pension_deposit_fee=clamp_value(shared("pensionDepositFee"), 0, 100),
        training_fund_management_fee=clamp_value(shared("trainingFundManagementFee"), 0, 100),
        portfolio_tax_rate=clamp_value(rate("personalPortfolioTaxRate", "portfolio_tax_rate"), 0, tax_ceiling),
        crypto_tax_rate=clamp_value(rate("cryptoTaxRate", "crypto_tax_rate"), 0, tax_ceiling),
        inflation_rate=rate("inflationRate", "inflation_rate"),
        target_replacement=max(0.0, rate("targetReplacement", "target_replacement")),
        social_security=None if social_security is None else max(0.0, social_security),
        risk_tolerance=normalize_risk_tolerance(resolve_text(snapshot, "riskTolerance", "moderate")),
        country=config.country_key(resolve_text(snapshot, "country", config.default_country)),
        job_stability=resolve_text(snapshot, "jobStability", "stable"),
    )
