"""Domain models - pure Python dataclasses representing projection and scoring entities"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from retirement_engine.domain.safe_math import safe_parse_float


def _first(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data and data[key] not in (None, ""):
            return data[key]
    return None


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    parsed = safe_parse_float(value, float("nan"))
    return None if math.isnan(parsed) else parsed


@dataclass(frozen=True)
class WorkPeriod:
    """Employment interval [start_age, end_age) with its pension contribution terms"""

    start_age: float
    end_age: float
    monthly_salary: float = 0.0
    monthly_contribution: float = 0.0
    monthly_training_fund: Optional[float] = None
    pension_return: Optional[float] = None  # None: use the pension allocation's weighted return
    pension_deposit_fee: float = 0.0  # % of each deposit
    pension_annual_fee: float = 0.0  # % of balance per year
    training_fund_return: Optional[float] = None
    country: Optional[str] = None
    partner: int = 1

    @property
    def years(self) -> float:
        return max(0.0, self.end_age - self.start_age)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "WorkPeriod":
        """Build from the UI's camelCase payload; missing numbers become 0"""
        partner = safe_parse_float(_first(data, "partner", "partnerIndex"), 1)
        return cls(
            start_age=safe_parse_float(_first(data, "startAge", "start_age")),
            end_age=safe_parse_float(_first(data, "endAge", "end_age")),
            monthly_salary=safe_parse_float(_first(data, "salary", "monthlySalary", "monthly_salary")),
            monthly_contribution=safe_parse_float(
                _first(data, "monthlyContribution", "pensionContribution", "monthly_contribution")
            ),
            monthly_training_fund=_optional_float(
                _first(data, "monthlyTrainingFund", "trainingFundContribution", "monthly_training_fund")
            ),
            pension_return=_optional_float(_first(data, "pensionReturn", "pension_return")),
            pension_deposit_fee=safe_parse_float(_first(data, "pensionDepositFee", "pension_deposit_fee")),
            pension_annual_fee=safe_parse_float(_first(data, "pensionAnnualFee", "pension_annual_fee")),
            training_fund_return=_optional_float(_first(data, "trainingFundReturn", "training_fund_return")),
            country=_first(data, "country"),
            partner=2 if int(partner) == 2 else 1,
        )


@dataclass(frozen=True)
class CanonicalSnapshot:
    """
    Typed, alias-free view of a financial snapshot.

    Produced by ``field_resolution.canonicalize``; both the projection and
    scoring engines read only this type. All numbers are finite floats,
    rates are percentages, amounts are monthly unless the name says otherwise.
    Optional rates are None when the snapshot did not specify them.
    """

    planning_type: str
    current_age: float
    retirement_age: float
    monthly_salary: float
    monthly_income: float
    pension_contribution_rate: float
    employer_pension_rate: float
    training_fund_contribution_rate: float
    employer_training_fund_rate: float
    monthly_pension_contribution: float
    monthly_training_fund_contribution: float
    monthly_portfolio_contribution: float
    monthly_crypto_contribution: float
    monthly_real_estate_contribution: float
    current_pension_savings: float
    current_training_fund: float
    current_portfolio: float
    current_crypto: float
    current_real_estate: float
    current_savings: float
    emergency_fund: float
    monthly_expenses: float
    total_debt: float
    monthly_debt_payments: float
    high_interest_debt: float
    equity_allocation: Optional[float]
    bond_allocation: Optional[float]
    pension_return: Optional[float]
    training_fund_return: Optional[float]
    portfolio_return: float
    crypto_return: float
    real_estate_return: float
    real_estate_rental_yield: float
    pension_annual_fee: float
    pension_deposit_fee: float
    training_fund_management_fee: float
    portfolio_tax_rate: float
    crypto_tax_rate: float
    inflation_rate: float
    target_replacement: float
    social_security: Optional[float]
    risk_tolerance: str
    country: str
    job_stability: str

    @property
    def years_to_retirement(self) -> float:
        return max(0.0, self.retirement_age - self.current_age)

    @property
    def is_couple(self) -> bool:
        return self.planning_type == "couple"

    @property
    def monthly_discretionary_savings(self) -> float:
        return self.monthly_portfolio_contribution + self.monthly_crypto_contribution + self.monthly_real_estate_contribution


@dataclass(frozen=True)
class AssetBalance:
    """Balance at retirement before and after capital-gains tax"""

    gross: float
    net: float


@dataclass(frozen=True)
class AssetBalances:
    pension: AssetBalance
    training_fund: AssetBalance
    personal_portfolio: AssetBalance
    crypto: AssetBalance
    real_estate: AssetBalance

    @property
    def total_net(self) -> float:
        return (
            self.pension.net
            + self.training_fund.net
            + self.personal_portfolio.net
            + self.crypto.net
            + self.real_estate.net
        )


@dataclass(frozen=True)
class IncomeSource:
    """Monthly retirement income from one source"""

    gross: float
    net: float


@dataclass(frozen=True)
class IncomeBreakdown:
    pension: IncomeSource
    training_fund: IncomeSource
    personal_portfolio: IncomeSource
    crypto: IncomeSource
    real_estate: IncomeSource
    social_security: IncomeSource
    additional: IncomeSource

    def sources(self) -> Tuple[IncomeSource, ...]:
        return (
            self.pension,
            self.training_fund,
            self.personal_portfolio,
            self.crypto,
            self.real_estate,
            self.social_security,
            self.additional,
        )

    @property
    def total_gross(self) -> float:
        return sum(source.gross for source in self.sources())

    @property
    def total_net(self) -> float:
        return sum(source.net for source in self.sources())


@dataclass(frozen=True)
class PeriodResult:
    """Pension accumulation over one (clipped) work period"""

    start_age: float
    end_age: float
    country: str
    partner: int
    years: float
    pension_return: float  # after risk adjustment, before fees
    effective_return: float  # after annual fee
    contributions: float
    net_contributions: float  # after deposit fee
    growth: float
    pension_balance: float
    training_fund_contributions: float


@dataclass(frozen=True)
class PersonProjection:
    """One partner's accumulation and retirement income"""

    balances: AssetBalances
    total_savings: float
    income: IncomeBreakdown
    final_salary: float
    period_results: Tuple[PeriodResult, ...]


@dataclass(frozen=True)
class PartnerResults:
    partner1: PersonProjection
    partner2: PersonProjection


@dataclass(frozen=True)
class CalculationResult:
    """Output of the retirement projection engine"""

    years_to_retirement: float
    balances: AssetBalances
    total_savings: float
    income: IncomeBreakdown
    total_gross_income: float
    total_net_income: float
    monthly_expenses: float
    future_monthly_expenses: float
    surplus: float
    final_salary: float
    replacement_ratio: float
    target_replacement: float
    achieves_target: bool
    period_results: Tuple[PeriodResult, ...] = ()
    warnings: Tuple[str, ...] = ()
    partner_results: Optional[PartnerResults] = None


@dataclass(frozen=True)
class ScoreFactor:
    """Points earned in one score category; ``score`` is within [0, max_score]"""

    score: float
    max_score: float
    details: Dict[str, Any] = field(default_factory=dict)
    name: str = ""

    @property
    def ratio(self) -> float:
        return self.score / self.max_score if self.max_score else 0.0


@dataclass(frozen=True)
class Suggestion:
    category: str
    priority: str  # high | medium | low
    title: str
    description: str
    impact: str
    points_available: float = 0.0


@dataclass(frozen=True)
class PeerComparison:
    age_group: str
    average_score: float
    top_quartile_score: float
    percentile: float
    comparison: str  # aboveTopQuartile | aboveAverage | belowAverage


@dataclass(frozen=True)
class InputValidation:
    is_valid: bool
    errors: Tuple[str, ...]
    warnings: Tuple[str, ...]
    critical_missing: Tuple[str, ...]
    data_completeness: int  # percent of optional fields supplied


@dataclass(frozen=True)
class HealthReport:
    """Output of the financial health scoring engine"""

    total_score: float
    status: str  # excellent | good | needsWork | critical
    factors: Dict[str, ScoreFactor]
    suggestions: Tuple[Suggestion, ...]
    peer_comparison: PeerComparison
    validation: InputValidation
    zero_score_factors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()


@dataclass(frozen=True)
class StressScenario:
    """Named, immutable perturbation applied to a projection's inputs"""

    key: str
    names: Mapping[str, str]
    descriptions: Mapping[str, str]
    income_reduction: float  # % of salary and contributions
    portfolio_decline: float  # percentage points off returns
    real_estate_decline: float
    inflation_increase: float  # percentage points
    duration_years: float
    recovery_years: float

    def name(self, locale: str = "en") -> str:
        return self.names.get(locale) or self.names.get("en", self.key)

    def description(self, locale: str = "en") -> str:
        return self.descriptions.get(locale) or self.descriptions.get("en", "")


@dataclass(frozen=True)
class StressImpact:
    savings_change: float
    savings_change_pct: float
    income_change: float
    income_change_pct: float


@dataclass(frozen=True)
class StressResult:
    scenario: StressScenario
    stressed_result: Optional[CalculationResult]
    baseline_result: Optional[CalculationResult]
    recommendations: Tuple[str, ...]
    impact: Optional[StressImpact] = None


@dataclass(frozen=True)
class StressComparison:
    """Baseline projection alongside every catalog scenario"""

    baseline: Optional[CalculationResult]
    results: Dict[str, StressResult]
