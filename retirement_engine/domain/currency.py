"""Currency display helpers - formatting and conversion against a resolved rate table"""

import logging
from typing import Any, Mapping, Optional

from retirement_engine.domain.safe_math import safe_parse_float

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"

CURRENCY_SYMBOLS = {
    "ILS": "₪",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "BTC": "₿",
    "ETH": "Ξ",
}

# Fixed decimals for crypto; fiat renders as whole units with grouping
CRYPTO_DECIMALS = {"BTC": 6, "ETH": 6}
CONVERSION_DECIMALS = {"BTC": 6, "ETH": 4}


def format_currency(amount: Any, currency_code: str = "ILS") -> str:
    """
    Render an amount with its currency symbol.

    Non-numeric or non-finite amounts render as zero. Unknown codes are
    shown as the code followed by a space.
    """
    value = safe_parse_float(amount)
    code = (currency_code or "ILS").upper()
    symbol = CURRENCY_SYMBOLS.get(code, f"{code} ")
    if code in CRYPTO_DECIMALS:
        return f"{symbol}{value:.{CRYPTO_DECIMALS[code]}f}"
    return f"{symbol}{value:,.0f}"


def convert_currency(amount: Any, currency_code: str, rate_table: Optional[Mapping[str, Any]]) -> str:
    """
    Convert a base-currency amount using ``rate_table`` (units of base per unit of target).

    Returns "N/A" when the table is missing, lacks the code, holds a zero or
    unparseable rate, or when the amount itself is invalid.
    """
    code = (currency_code or "").upper()
    if not rate_table or code not in rate_table:
        logger.warning(f"No exchange rate for {code or currency_code!r}", extra={"step": "currency"})
        return NOT_AVAILABLE

    rate = safe_parse_float(rate_table[code])
    if rate == 0:
        logger.warning(f"Exchange rate for {code} is invalid", extra={"step": "currency"})
        return NOT_AVAILABLE

    value = safe_parse_float(amount, None)
    if value is None:
        logger.warning("Invalid amount for currency conversion", extra={"step": "currency"})
        return NOT_AVAILABLE

    converted = value / rate
    if code in CONVERSION_DECIMALS:
        return f"{CURRENCY_SYMBOLS[code]}{converted:.{CONVERSION_DECIMALS[code]}f}"
    if code in CURRENCY_SYMBOLS:
        return f"{CURRENCY_SYMBOLS[code]}{converted:,.0f}"
    return f"{converted:.2f} {code}"
