"""Reference tables for projection, scoring and stress testing"""

from types import MappingProxyType
from typing import Dict


def _frozen(table: Dict) -> MappingProxyType:
    return MappingProxyType({key: MappingProxyType(value) if isinstance(value, dict) else value for key, value in table.items()})


# Score categories: weight (max points) and benchmark thresholds.
# "higher is better" for every category except debt management, where the
# benchmark is a debt-service-to-income ratio.
SCORE_FACTORS = MappingProxyType({
    "savings_rate": _frozen({
        "weight": 25,
        "name": {"en": "Savings Rate", "he": "שיעור חיסכון"},
        "benchmarks": {"excellent": 20, "good": 15, "fair": 10, "poor": 5},  # % of income
    }),
    "retirement_readiness": _frozen({
        "weight": 20,
        "name": {"en": "Retirement Readiness", "he": "מוכנות לפרישה"},
        "benchmarks": {"excellent": 1.5, "good": 1.0, "fair": 0.7, "poor": 0.4},  # x target
    }),
    "time_horizon": _frozen({
        "weight": 15,
        "name": {"en": "Time to Retirement", "he": "זמן עד פרישה"},
        "benchmarks": {"excellent": 30, "good": 20, "fair": 10, "poor": 5},  # years
    }),
    "risk_alignment": _frozen({
        "weight": 12,
        "name": {"en": "Risk Alignment", "he": "התאמת סיכון"},
        "benchmarks": {"excellent": 95, "good": 85, "fair": 70, "poor": 50},  # alignment %
    }),
    "diversification": _frozen({
        "weight": 10,
        "name": {"en": "Portfolio Diversification", "he": "פיזור השקעות"},
        "benchmarks": {"excellent": 4, "good": 3, "fair": 2, "poor": 1},  # asset classes
    }),
    "tax_efficiency": _frozen({
        "weight": 8,
        "name": {"en": "Tax Optimization", "he": "אופטימיזציית מס"},
        "benchmarks": {"excellent": 90, "good": 75, "fair": 60, "poor": 40},  # % of optimal rate
    }),
    "emergency_fund": _frozen({
        "weight": 7,
        "name": {"en": "Emergency Fund", "he": "קרן חירום"},
        "benchmarks": {"excellent": 8, "good": 6, "fair": 3, "poor": 1},  # months of expenses
    }),
    "debt_management": _frozen({
        "weight": 3,
        "name": {"en": "Debt Management", "he": "ניהול חובות"},
        "benchmarks": {"excellent": 0.1, "good": 0.2, "fair": 0.3, "poor": 0.5},  # debt / income
    }),
})

STATUS_THRESHOLDS = (
    (80, "excellent"),
    (60, "good"),
    (40, "needsWork"),
)

PEER_BENCHMARKS = _frozen({
    "20-29": {"average": 45, "top_quartile": 65},
    "30-39": {"average": 55, "top_quartile": 75},
    "40-49": {"average": 65, "top_quartile": 80},
    "50-59": {"average": 70, "top_quartile": 85},
    "60+": {"average": 75, "top_quartile": 90},
})

# Age -> savings target as a multiple of annual income
AGE_BASED_TARGETS = MappingProxyType({
    25: 0.5, 30: 1.0, 35: 2.0, 40: 3.0, 45: 4.0, 50: 5.0, 55: 7.0, 60: 9.0, 65: 11.0,
})

RISK_PROFILES = _frozen({
    "conservative": {"equity_min": 20, "equity_max": 40},
    "moderate": {"equity_min": 40, "equity_max": 60},
    "aggressive": {"equity_min": 60, "equity_max": 80},
    "veryAggressive": {"equity_min": 80, "equity_max": 95},
})

RISK_MULTIPLIERS = MappingProxyType({
    "veryConservative": 0.7,
    "conservative": 0.85,
    "moderate": 1.0,
    "aggressive": 1.15,
    "veryAggressive": 1.3,
})

# pension_tax: flat rate applied to pension annuity income
# social_security: monthly state benefit at retirement
# optimal_contribution_rate: employee pension + training-fund rate that exhausts the tax benefit
COUNTRY_DATA = _frozen({
    "israel": {"pension_tax": 0.15, "social_security": 2500, "optimal_contribution_rate": 9.5, "currency": "ILS"},
    "usa": {"pension_tax": 0.12, "social_security": 1800, "optimal_contribution_rate": 10.0, "currency": "USD"},
    "uk": {"pension_tax": 0.20, "social_security": 1400, "optimal_contribution_rate": 8.0, "currency": "GBP"},
    "germany": {"pension_tax": 0.22, "social_security": 1500, "optimal_contribution_rate": 9.0, "currency": "EUR"},
    "france": {"pension_tax": 0.18, "social_security": 1600, "optimal_contribution_rate": 8.0, "currency": "EUR"},
})

COUNTRY_ALIASES = MappingProxyType({
    "isr": "israel", "il": "israel",
    "us": "usa", "united states": "usa",
    "gbr": "uk", "gb": "uk", "united kingdom": "uk",
    "de": "germany", "deu": "germany",
    "fr": "france", "fra": "france",
})

# Annual drawdown conventions at retirement (fraction of balance per year)
WITHDRAWAL_RATES = MappingProxyType({
    "pension": 0.04,
    "training_fund": 0.05,
    "personal_portfolio": 0.04,
    "crypto": 0.04,
})

# Flat annualized returns by asset class (percent)
ASSET_CLASS_RETURNS = MappingProxyType({
    "stocks": 8.0,
    "bonds": 4.0,
    "cash": 2.0,
    "alternatives": 6.0,
    "real_estate": 6.0,
    "commodities": 5.0,
    "crypto": 12.0,
})

ASSET_CLASS_ALIASES = MappingProxyType({
    "stocks": ("stocks", "stock", "equities", "equity", "shares"),
    "bonds": ("bonds", "bond", "fixed income", "fixedincome", "fixed_income"),
    "cash": ("cash", "savings", "money market", "moneymarket", "deposits"),
    "alternatives": ("alternatives", "alternative", "hedge funds", "private equity"),
    "real_estate": ("real estate", "realestate", "real_estate", "property", "reit"),
    "commodities": ("commodities", "gold", "precious metals"),
    "crypto": ("crypto", "cryptocurrency", "bitcoin", "ethereum"),
})

# Index returns (percent, annualized) by investment horizon in years
HISTORICAL_INDEX_RETURNS = _frozen({
    5: {"Tel Aviv 35": 6.5, "S&P 500": 9.0, "NASDAQ": 11.0, "Government Bonds": 3.0,
        "Corporate Bonds": 4.0, "Real Estate": 5.5, "Gold": 4.5, "Commodities": 3.5},
    10: {"Tel Aviv 35": 7.0, "S&P 500": 10.0, "NASDAQ": 12.5, "Government Bonds": 3.2,
         "Corporate Bonds": 4.3, "Real Estate": 6.0, "Gold": 5.0, "Commodities": 4.0},
    15: {"Tel Aviv 35": 7.2, "S&P 500": 9.8, "NASDAQ": 12.0, "Government Bonds": 3.5,
         "Corporate Bonds": 4.6, "Real Estate": 6.3, "Gold": 5.2, "Commodities": 4.2},
    20: {"Tel Aviv 35": 7.5, "S&P 500": 9.5, "NASDAQ": 11.5, "Government Bonds": 3.8,
         "Corporate Bonds": 4.8, "Real Estate": 6.5, "Gold": 5.5, "Commodities": 4.5},
    25: {"Tel Aviv 35": 7.8, "S&P 500": 9.3, "NASDAQ": 11.0, "Government Bonds": 4.0,
         "Corporate Bonds": 5.0, "Real Estate": 6.8, "Gold": 5.8, "Commodities": 4.8},
    30: {"Tel Aviv 35": 8.0, "S&P 500": 9.0, "NASDAQ": 10.5, "Government Bonds": 4.2,
         "Corporate Bonds": 5.2, "Real Estate": 7.0, "Gold": 6.0, "Commodities": 5.0},
})

# Defaults used when the snapshot leaves a rate unspecified (percent)
DEFAULT_RATES = MappingProxyType({
    "pension_return": 6.5,
    "training_fund_return": 5.5,
    "portfolio_return": 7.0,
    "crypto_return": 10.0,
    "real_estate_return": 5.0,
    "real_estate_rental_yield": 3.0,
    "portfolio_tax_rate": 25.0,
    "crypto_tax_rate": 25.0,
    "inflation_rate": 3.0,
    "target_replacement": 70.0,
    "readiness_assumed_return": 6.0,
})

MAX_CAPITAL_GAINS_TAX = 50.0

STRESS_SCENARIOS = _frozen({
    "financial_crisis_2008": {
        "name": {"en": "2008 Financial Crisis", "he": "המשבר הפיננסי של 2008"},
        "description": {
            "en": "Severe market crash with prolonged recovery",
            "he": "קריסת שווקים חמורה עם התאוששות ממושכת",
        },
        "income_reduction": 15,
        "portfolio_decline": 40,
        "real_estate_decline": 30,
        "inflation_increase": 1,
        "duration_years": 3,
        "recovery_years": 5,
    },
    "covid_pandemic": {
        "name": {"en": "COVID-19 Pandemic", "he": "מגפת הקורונה"},
        "description": {
            "en": "Sharp economic shock with job losses and fast market rebound",
            "he": "זעזוע כלכלי חד עם אובדן משרות והתאוששות מהירה של השווקים",
        },
        "income_reduction": 25,
        "portfolio_decline": 25,
        "real_estate_decline": 10,
        "inflation_increase": 3,
        "duration_years": 2,
        "recovery_years": 3,
    },
    "high_inflation": {
        "name": {"en": "High Inflation Period", "he": "תקופת אינפלציה גבוהה"},
        "description": {
            "en": "Sustained high inflation eroding purchasing power",
            "he": "אינפלציה גבוהה מתמשכת השוחקת את כוח הקנייה",
        },
        "income_reduction": 5,
        "portfolio_decline": 15,
        "real_estate_decline": 5,
        "inflation_increase": 12,
        "duration_years": 5,
        "recovery_years": 7,
    },
})

STRESS_RECOMMENDATIONS = MappingProxyType({
    "en": (
        "Maintain an emergency fund covering 6-12 months of expenses",
        "Diversify investments across asset classes and geographies",
        "Keep contributing to retirement accounts during downturns",
        "Review your risk tolerance and rebalance periodically",
    ),
    "he": (
        "שמרו על קרן חירום המכסה 6-12 חודשי הוצאות",
        "פזרו את ההשקעות בין אפיקים ואזורים גאוגרפיים",
        "המשיכו להפקיד לחיסכון הפנסיוני גם בתקופות שפל",
        "בחנו את רמת הסיכון ואזנו מחדש את התיק מעת לעת",
    ),
})

DEFAULT_RETIREMENT_AGE = 67
