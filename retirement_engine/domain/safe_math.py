"""Safe arithmetic primitives - every operation returns a finite number, never raises"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Optional

from retirement_engine.config import settings

logger = logging.getLogger(__name__)

DIVISION_BY_ZERO = "division_by_zero"
INVALID_RESULT = "invalid_result"
INVALID_INPUT = "invalid_input"


@dataclass(frozen=True)
class SafeResult:
    """Outcome of a guarded operation: the value plus an error tag when a default was used"""

    value: float
    error: Optional[str] = None
    context: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None


def _diagnose(message: str, **fields: Any) -> None:
    if settings.diagnostics_enabled:
        logger.warning(message, extra={"step": "safe_math", **fields})


def _finite(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def safe_parse_float(value: Any, default: float = 0.0) -> float:
    """
    Coerce arbitrary input to a finite float.

    Accepts numbers and numeric strings (surrounding whitespace and thousands
    separators tolerated). Booleans, None, NaN, infinities and unparseable
    text yield ``default``.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else default
    if isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return default
        try:
            parsed = float(text)
        except ValueError:
            return default
        return parsed if math.isfinite(parsed) else default
    return default


def safe_divide(numerator: Any, denominator: Any, default: float = 0.0, context: str = "") -> SafeResult:
    """Divide, substituting ``default`` for a zero or non-finite denominator or quotient"""
    num = safe_parse_float(numerator, math.nan)
    den = safe_parse_float(denominator, math.nan)

    if math.isnan(den) or den == 0:
        _diagnose("Division by zero", context=context, numerator=str(numerator))
        return SafeResult(default, DIVISION_BY_ZERO, context)
    if math.isnan(num):
        _diagnose("Invalid numerator", context=context, numerator=str(numerator))
        return SafeResult(default, INVALID_INPUT, context)
    if num == 0 and default == 0:
        return SafeResult(0.0, None, context)

    try:
        result = num / den
    except OverflowError:
        result = math.inf
    if not math.isfinite(result):
        _diagnose("Non-finite quotient", context=context)
        return SafeResult(default, INVALID_RESULT, context)
    return SafeResult(result, None, context)


def safe_multiply(a: Any, b: Any, default: float = 0.0, context: str = "") -> SafeResult:
    """Multiply, substituting ``default`` for non-numeric operands or a non-finite product"""
    left = safe_parse_float(a, math.nan)
    right = safe_parse_float(b, math.nan)
    if math.isnan(left) or math.isnan(right):
        _diagnose("Invalid multiplication operand", context=context)
        return SafeResult(default, INVALID_INPUT, context)

    result = left * right
    if not math.isfinite(result):
        _diagnose("Non-finite product", context=context)
        return SafeResult(default, INVALID_RESULT, context)
    return SafeResult(result, None, context)


def safe_percentage(value: Any, total: Any, default: float = 0.0, context: str = "") -> SafeResult:
    """``value`` as a percentage of ``total``"""
    if safe_parse_float(total) == 0:
        _diagnose("Percentage of zero total", context=context)
        return SafeResult(default, DIVISION_BY_ZERO, context)
    scaled = safe_multiply(value, 100, math.nan, context)
    if not scaled.ok:
        return SafeResult(default, scaled.error, context)
    return safe_divide(scaled.value, total, default, context)


def clamp_value(value: Any, minimum: float, maximum: float) -> float:
    """Clamp to ``[minimum, maximum]``; unparseable input clamps from ``minimum``"""
    parsed = safe_parse_float(value, minimum)
    return max(minimum, min(maximum, parsed))


def guarded_value(name: str, fn: Callable[[], Any], default: float = 0.0) -> float:
    """
    Evaluate ``fn`` and return a finite float.

    SafeResult outputs are unwrapped. Any exception or non-finite output is
    logged and replaced by ``default``.
    """
    try:
        result = fn()
    except (ArithmeticError, TypeError, ValueError, KeyError, AttributeError) as e:
        logger.warning(f"Calculation {name} failed: {e}", extra={"step": "safe_math", "calculation": name})
        return default

    if isinstance(result, SafeResult):
        result = result.value
    if not _finite(result):
        logger.warning(f"Calculation {name} produced a non-finite value", extra={"step": "safe_math", "calculation": name})
        return default
    return float(result)


def finite_or(value: Any, default: float = 0.0) -> float:
    """Return ``value`` as float when finite, otherwise ``default``"""
    return float(value) if _finite(value) else default
