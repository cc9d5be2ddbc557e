"""Return and allocation calculator - weighted returns, risk adjustment and compounding"""

import logging
import math
from typing import Any, Mapping, Optional, Sequence

from retirement_engine.domain.engine_config import EngineConfig, resolve_config
from retirement_engine.domain.safe_math import finite_or, safe_parse_float

logger = logging.getLogger(__name__)

ASSET_KEYS = ("assetClass", "name", "type", "index")
WEIGHT_KEYS = ("allocation", "percentage", "weight")
RETURN_KEYS = ("average", "mean", "expectedReturn")

DYNAMIC_BASE_RETURNS = {"stocks": 8.0, "bonds": 4.0, "cash": 2.0, "alternatives": 6.0}


def _first_present(entry: Mapping[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        value = entry.get(key)
        if value is not None and value != "":
            return value
    return None


def _as_return(value: Any) -> Optional[float]:
    """A return is a number or a mapping carrying average/mean/expectedReturn"""
    if isinstance(value, Mapping):
        value = _first_present(value, RETURN_KEYS)
    parsed = safe_parse_float(value, math.nan)
    return None if math.isnan(parsed) else parsed


def _bucket_key(key: Any) -> Optional[float]:
    parsed = safe_parse_float(key, math.nan)
    return None if math.isnan(parsed) else parsed


def _is_bucketed(table: Mapping[Any, Any]) -> bool:
    """Horizon-bucketed tables map numeric year keys to per-asset sequences or mappings"""
    if not table:
        return False
    return all(
        _bucket_key(key) is not None and isinstance(value, (Mapping, list, tuple))
        for key, value in table.items()
    )


def select_horizon_bucket(table: Mapping[Any, Any], time_horizon: float) -> Any:
    """Return the bucket whose horizon is closest to ``time_horizon`` (shorter wins ties)"""
    horizon = safe_parse_float(time_horizon, 20.0)
    best_key = min(table, key=lambda key: (abs(_bucket_key(key) - horizon), _bucket_key(key)))
    return table[best_key]


def _lookup(source: Any, key: Any) -> Optional[float]:
    if isinstance(source, Mapping):
        if key in source:
            return _as_return(source[key])
        if isinstance(key, str):
            lowered = key.strip().lower()
            for candidate, value in source.items():
                if isinstance(candidate, str) and candidate.strip().lower() == lowered:
                    return _as_return(value)
        return None
    if isinstance(source, (list, tuple)):
        position = safe_parse_float(key, math.nan)
        if not math.isnan(position) and position == int(position) and 0 <= position < len(source):
            return _as_return(source[int(position)])
    return None


def _asset_class_return(key: Any, config: EngineConfig) -> Optional[float]:
    if not isinstance(key, str):
        return None
    lowered = key.strip().lower()
    for asset_class, aliases in config.asset_class_aliases.items():
        if lowered in aliases:
            return config.asset_class_returns.get(asset_class)
    return None


def calculate_weighted_return(
    allocations: Any,
    time_horizon: float = 20,
    historical_returns: Optional[Mapping[Any, Any]] = None,
    *,
    config: Optional[EngineConfig] = None,
) -> float:
    """
    Weighted annual return (percent) of an allocation plan.

    Entries name an asset through assetClass/name/type/index and a weight
    through allocation/percentage/weight (percent). ``customReturn``
    overrides the table lookup. When ``historical_returns`` is bucketed by
    horizon, the bucket closest to ``time_horizon`` is used; an empty table
    falls back to the configured index and asset-class returns.

    Weights that do not sum to 100% are renormalized, so a plan covering
    95% is averaged over 95%, not 100%. Never raises; unusable input yields 0.
    """
    config = resolve_config(config)

    if not isinstance(allocations, (list, tuple)) or not allocations:
        logger.warning("Empty allocation plan, weighted return is 0", extra={"step": "weighted_return"})
        return 0.0

    table = historical_returns if isinstance(historical_returns, Mapping) and historical_returns else config.historical_returns
    source = select_horizon_bucket(table, time_horizon) if _is_bucketed(table) else table

    weighted_sum = 0.0
    total_weight = 0.0
    for position, entry in enumerate(allocations):
        if not isinstance(entry, Mapping):
            logger.warning(f"Allocation entry {position} is not a mapping, skipped", extra={"step": "weighted_return"})
            continue

        weight = safe_parse_float(_first_present(entry, WEIGHT_KEYS)) / 100
        if weight <= 0:
            logger.warning(f"Allocation entry {position} has no usable weight, skipped", extra={"step": "weighted_return"})
            continue

        asset = _first_present(entry, ASSET_KEYS)
        annual_return = _as_return(entry.get("customReturn"))
        if annual_return is None:
            annual_return = _lookup(source, asset)
        if annual_return is None:
            annual_return = _asset_class_return(asset, config)
        if annual_return is None:
            logger.warning(f"No return found for allocation entry {asset!r}, skipped", extra={"step": "weighted_return"})
            continue

        weighted_sum += weight * annual_return
        total_weight += weight

    if total_weight <= 0:
        logger.warning("Allocation plan has no usable weight, weighted return is 0", extra={"step": "weighted_return"})
        return 0.0

    if abs(total_weight - 1.0) > 1e-9:
        logger.warning(
            f"Allocation weights sum to {total_weight * 100:.2f}%, normalizing",
            extra={"step": "weighted_return"},
        )
        weighted_sum /= total_weight

    return finite_or(weighted_sum)


def calculate_dynamic_return(
    portfolio: Any,
    time_until_retirement: float,
    risk_profile: Optional[str] = None,
    *,
    config: Optional[EngineConfig] = None,
) -> float:
    """
    Expected return of a stocks/bonds/cash/alternatives mix.

    Long horizons (over 10 years) earn 10% more, short ones (under 5 years)
    10% less. A risk profile, when given, applies its multiplier.
    """
    if not isinstance(portfolio, Mapping):
        return 0.0

    amounts = {bucket: max(0.0, safe_parse_float(portfolio.get(bucket))) for bucket in DYNAMIC_BASE_RETURNS}
    total = sum(amounts.values())
    if total <= 0:
        return 0.0

    base = sum(amounts[bucket] / total * rate for bucket, rate in DYNAMIC_BASE_RETURNS.items())

    years = safe_parse_float(time_until_retirement)
    if years > 10:
        base *= 1.1
    elif years < 5:
        base *= 0.9

    if risk_profile:
        base = get_adjusted_return(base, risk_profile, config=config)
    return finite_or(base)


def risk_multiplier(risk_tolerance: Optional[str], *, config: Optional[EngineConfig] = None) -> float:
    config = resolve_config(config)
    return config.risk_multipliers.get(risk_tolerance or "", 1.0)


def get_adjusted_return(base_return: Any, risk_tolerance: Optional[str], *, config: Optional[EngineConfig] = None) -> float:
    """Scale a return by the risk-tolerance multiplier (unknown tolerances scale by 1)"""
    return finite_or(safe_parse_float(base_return) * risk_multiplier(risk_tolerance, config=config))


def net_return(gross_return: Any, fee: Any) -> float:
    """Annual return after an annual management fee, both in percent"""
    return safe_parse_float(gross_return) - safe_parse_float(fee)


def future_value(present: float, monthly_contribution: float, annual_rate: float, months: float) -> float:
    """
    Balance after ``months`` of monthly compounding at ``annual_rate`` percent.

    Contributions are deposited at the end of each month. A zero rate grows
    linearly; overflow yields 0 with a warning so results stay finite.
    """
    if months <= 0:
        return finite_or(present)

    monthly_rate = max(annual_rate, -100.0) / 1200
    if abs(monthly_rate) < 1e-12:
        return finite_or(present + monthly_contribution * months)

    try:
        growth = math.pow(1 + monthly_rate, months)
    except OverflowError:
        logger.warning("Compounding overflow", extra={"step": "future_value", "months": months})
        return 0.0

    value = present * growth + monthly_contribution * (growth - 1) / monthly_rate
    return finite_or(value)
