"""Engine configuration - the reference tables every engine reads, passed explicitly"""

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Mapping, Tuple

from retirement_engine.config import settings
from retirement_engine.domain import constants


@dataclass(frozen=True)
class FactorDefinition:
    """One score category: its weight (max points) and benchmark thresholds"""

    key: str
    weight: float
    excellent: float
    good: float
    fair: float
    poor: float
    names: Mapping[str, str] = field(default_factory=dict)
    lower_is_better: bool = False

    def label(self, locale: str = "en") -> str:
        return self.names.get(locale) or self.names.get("en") or self.key


@dataclass(frozen=True)
class EngineConfig:
    """
    Immutable bundle of weights, benchmarks and reference data.

    Built once per process by ``default_engine_config``; tests and callers
    that need different tables construct their own instance and pass it in.
    """

    factors: Tuple[FactorDefinition, ...]
    status_thresholds: Tuple[Tuple[float, str], ...]
    peer_benchmarks: Mapping[str, Mapping[str, float]]
    age_based_targets: Mapping[int, float]
    risk_profiles: Mapping[str, Mapping[str, float]]
    risk_multipliers: Mapping[str, float]
    country_data: Mapping[str, Mapping[str, Any]]
    country_aliases: Mapping[str, str]
    withdrawal_rates: Mapping[str, float]
    asset_class_returns: Mapping[str, float]
    asset_class_aliases: Mapping[str, Tuple[str, ...]]
    historical_returns: Mapping[Any, Mapping[str, float]]
    default_rates: Mapping[str, float]
    stress_scenarios: Mapping[str, Mapping[str, Any]]
    stress_recommendations: Mapping[str, Tuple[str, ...]]
    default_country: str = "israel"
    max_capital_gains_tax: float = constants.MAX_CAPITAL_GAINS_TAX

    def factor(self, key: str) -> FactorDefinition:
        for definition in self.factors:
            if definition.key == key:
                return definition
        raise KeyError(key)

    @property
    def total_weight(self) -> float:
        return sum(f.weight for f in self.factors)

    def country(self, name: str | None) -> Mapping[str, Any]:
        """Country row for ``name`` (aliases accepted), falling back to the default country"""
        key = (name or "").strip().lower()
        key = self.country_aliases.get(key, key)
        if key in self.country_data:
            return self.country_data[key]
        return self.country_data[self.default_country]

    def country_key(self, name: str | None) -> str:
        key = (name or "").strip().lower()
        key = self.country_aliases.get(key, key)
        return key if key in self.country_data else self.default_country

    def default_rate(self, name: str) -> float:
        return float(self.default_rates[name])


def _build_factors() -> Tuple[FactorDefinition, ...]:
    factors = []
    for key, entry in constants.SCORE_FACTORS.items():
        benchmarks = entry["benchmarks"]
        factors.append(
            FactorDefinition(
                key=key,
                weight=entry["weight"],
                excellent=benchmarks["excellent"],
                good=benchmarks["good"],
                fair=benchmarks["fair"],
                poor=benchmarks["poor"],
                names=entry["name"],
                lower_is_better=key == "debt_management",
            )
        )
    return tuple(factors)


@lru_cache(maxsize=1)
def default_engine_config() -> EngineConfig:
    """Process-wide configuration built from the static reference tables"""
    country = constants.COUNTRY_ALIASES.get(settings.default_country, settings.default_country)
    return EngineConfig(
        factors=_build_factors(),
        status_thresholds=constants.STATUS_THRESHOLDS,
        peer_benchmarks=constants.PEER_BENCHMARKS,
        age_based_targets=constants.AGE_BASED_TARGETS,
        risk_profiles=constants.RISK_PROFILES,
        risk_multipliers=constants.RISK_MULTIPLIERS,
        country_data=constants.COUNTRY_DATA,
        country_aliases=constants.COUNTRY_ALIASES,
        withdrawal_rates=constants.WITHDRAWAL_RATES,
        asset_class_returns=constants.ASSET_CLASS_RETURNS,
        asset_class_aliases=constants.ASSET_CLASS_ALIASES,
        historical_returns=constants.HISTORICAL_INDEX_RETURNS,
        default_rates=constants.DEFAULT_RATES,
        stress_scenarios=constants.STRESS_SCENARIOS,
        stress_recommendations=constants.STRESS_RECOMMENDATIONS,
        default_country=country if country in constants.COUNTRY_DATA else "israel",
    )


def resolve_config(config: EngineConfig | None) -> EngineConfig:
    return config if config is not None else default_engine_config()
