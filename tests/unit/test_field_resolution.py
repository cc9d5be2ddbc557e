"""Unit tests for field resolution and canonical snapshots"""

import pytest

from retirement_engine.domain.field_resolution import (
    WizardPhase,
    canonicalize,
    is_couple,
    normalize_risk_tolerance,
    partner_keys,
    resolve_age,
    resolve_field,
    resolve_partner_field,
    resolve_social_security,
)


def test_resolve_canonical_key_first():
    snapshot = {"currentMonthlySalary": 15000, "salary": 9000}

    assert resolve_field(snapshot, "currentMonthlySalary") == 15000


def test_resolve_falls_back_to_alias():
    assert resolve_field({"employeePensionRate": 6}, "pensionContributionRate") == 6


def test_resolve_skips_zero_unless_allowed():
    snapshot = {"currentMonthlySalary": 0, "monthlySalary": 12000}

    assert resolve_field(snapshot, "currentMonthlySalary", allow_zero=False) == 12000
    assert resolve_field(snapshot, "currentMonthlySalary") == 0


def test_resolve_missing_returns_default():
    assert resolve_field({}, "totalDebt") == 0
    assert resolve_field({}, "totalDebt", default=None) is None
    assert resolve_field(None, "totalDebt", default=7) == 7


def test_resolve_ignores_unparseable_values():
    assert resolve_field({"currentAge": "thirty", "age": "31"}, "currentAge") == 31


def test_combine_partners_when_complete():
    snapshot = {"planningType": "couple", "partner1Salary": 10000, "partner2Salary": 8000, "currentMonthlySalary": 5}

    assert resolve_field(snapshot, "currentMonthlySalary", combine_partners=True) == 18000


def test_combine_partners_skipped_in_early_phase():
    """Partner data is not collected yet, so the individual field is used"""
    snapshot = {"planningType": "couple", "partner1Salary": 10000, "partner2Salary": 8000, "currentMonthlySalary": 5}

    assert resolve_field(snapshot, "currentMonthlySalary", combine_partners=True, phase=WizardPhase.EARLY) == 5


def test_combine_partners_with_one_partner_missing():
    snapshot = {"planningType": "couple", "partner1Salary": 10000}

    assert resolve_field(snapshot, "currentMonthlySalary", combine_partners=True) == 10000


def test_partner_keys_cover_template_and_legacy_names():
    keys = partner_keys("currentMonthlySalary", 2)

    assert "partner2CurrentMonthlySalary" in keys
    assert "partnerSalary" in keys
    assert "partner2Salary" in keys


def test_resolve_partner_field_partner1_falls_back_to_individual():
    snapshot = {"currentAge": 40, "partner2CurrentAge": 38}

    assert resolve_partner_field(snapshot, "currentAge", 1) == 40
    assert resolve_partner_field(snapshot, "currentAge", 2) == 38
    assert resolve_partner_field({"currentAge": 40}, "currentAge", 2, default=None) is None


def test_is_couple():
    assert is_couple({"planningType": "couple"})
    assert is_couple({"partnerPlanningEnabled": True})
    assert not is_couple({"planningType": "individual"})
    assert not is_couple([])


@pytest.mark.parametrize(
    "value,expected",
    [("Aggressive", "aggressive"), ("very aggressive", "veryAggressive"), ("low", "conservative"), ("???", "moderate")],
)
def test_normalize_risk_tolerance(value, expected):
    assert normalize_risk_tolerance(value) == expected


def test_canonicalize_empty_snapshot_defaults(engine_config):
    snap = canonicalize({}, config=engine_config)

    assert snap.current_age == 0
    assert snap.monthly_salary == 0
    assert snap.portfolio_return == engine_config.default_rate("portfolio_return")
    assert snap.portfolio_tax_rate == 25
    assert snap.country == "israel"
    assert snap.risk_tolerance == "moderate"
    assert snap.pension_return is None


def test_canonicalize_derives_contributions(individual_snapshot):
    snap = canonicalize(individual_snapshot)

    assert snap.monthly_pension_contribution == pytest.approx(20000 * 12.5 / 100)
    assert snap.monthly_training_fund_contribution == pytest.approx(20000 * 10 / 100)
    assert snap.monthly_portfolio_contribution == 1500


def test_canonicalize_clamps_capital_gains_tax():
    assert canonicalize({"personalPortfolioTaxRate": 80}).portfolio_tax_rate == 50
    assert canonicalize({"capitalGainsTaxRate": -5}).portfolio_tax_rate == 0


def test_canonicalize_household_rates_for_couples():
    """Household rate is combined contributions over combined salary"""
    snapshot = {
        "planningType": "couple",
        "partner1Salary": 10000,
        "partner2Salary": 10000,
        "partner1PensionContributionRate": 6,
        "partner2PensionContributionRate": 4,
    }

    household = canonicalize(snapshot)

    assert household.monthly_salary == 20000
    assert household.pension_contribution_rate == pytest.approx(5)


def test_canonicalize_partner_views_split_household_assets(couple_snapshot):
    partner1 = canonicalize(couple_snapshot, partner=1)
    partner2 = canonicalize(couple_snapshot, partner=2)

    assert partner1.monthly_salary == 18000
    assert partner2.monthly_salary == 12000
    assert partner1.current_pension_savings == 300000
    assert partner2.current_pension_savings == 150000
    assert partner1.current_portfolio == 200000
    assert partner2.current_portfolio == 0
    assert partner2.current_age == 40


def test_canonicalize_early_phase_uses_individual_fields(couple_snapshot):
    snap = canonicalize({**couple_snapshot, "currentMonthlySalary": 9000}, phase=WizardPhase.EARLY)

    assert snap.monthly_salary == 9000


def test_canonicalize_country_aliases():
    assert canonicalize({"country": "US"}).country == "usa"
    assert canonicalize({"country": "atlantis"}).country == "israel"


@pytest.fixture
def wizard_couple_snapshot() -> dict:
    """Couple entered through the wizard: per-partner ages, rates and holdings"""
    return {
        "planningType": "couple",
        "partner1Age": 40,
        "partner2Age": 42,
        "retirementAge": 67,
        "partner1Salary": 20000,
        "partner2Salary": 20000,
        "partner1EmployeeRate": 7,
        "partner2EmployeeRate": 7,
        "partner1EmployerRate": 6.5,
        "partner2EmployerRate": 6.5,
        "partner1PersonalPortfolio": 100000,
        "partner2PersonalPortfolio": 100000,
        "partner1Crypto": 5000,
        "partner2RealEstate": 900000,
    }


def test_canonicalize_wizard_couple_household(wizard_couple_snapshot):
    household = canonicalize(wizard_couple_snapshot)

    assert household.pension_contribution_rate == pytest.approx(7)
    assert household.employer_pension_rate == pytest.approx(6.5)
    assert household.monthly_pension_contribution == pytest.approx(5400)
    assert household.current_portfolio == 200000
    assert household.current_crypto == 5000
    assert household.current_real_estate == 900000


def test_canonicalize_wizard_couple_partner_views(wizard_couple_snapshot):
    partner1 = canonicalize(wizard_couple_snapshot, partner=1)
    partner2 = canonicalize(wizard_couple_snapshot, partner=2)

    assert partner2.pension_contribution_rate == 7
    assert partner2.monthly_pension_contribution == pytest.approx(2700)
    assert partner1.current_portfolio == 100000
    assert partner1.current_crypto == 5000
    assert partner1.current_real_estate == 0
    assert partner2.current_portfolio == 100000
    assert partner2.current_crypto == 0
    assert partner2.current_real_estate == 900000
    assert partner1.current_age == 40
    assert partner2.current_age == 42


def test_partner1_holdings_fall_back_to_household_key():
    snapshot = {"planningType": "couple", "partner1Salary": 10000, "currentCrypto": 8000, "partner2Crypto": 2000}

    assert canonicalize(snapshot, partner=1).current_crypto == 8000
    assert canonicalize(snapshot, partner=2).current_crypto == 2000
    assert canonicalize(snapshot).current_crypto == 10000


def test_household_age_falls_back_to_partner1(wizard_couple_snapshot):
    household = canonicalize(wizard_couple_snapshot)

    assert household.current_age == 40
    assert household.years_to_retirement == 27
    assert resolve_age({"currentAge": 35, "partner1Age": 40}, "currentAge") == 35
    assert resolve_age({"partner1Age": 40}, "currentAge") == 0


def test_shared_social_security_belongs_to_partner1():
    snapshot = {"planningType": "couple", "partner1Salary": 10000, "partner2Salary": 8000, "socialSecurity": 3000}

    assert resolve_social_security(snapshot, 1) == 3000
    assert resolve_social_security(snapshot, 2) == 0
    assert resolve_social_security(snapshot, combine=True) == 3000
    assert canonicalize(snapshot, partner=2).social_security == 0
    assert canonicalize(snapshot).social_security == 3000


def test_per_partner_social_security():
    snapshot = {"planningType": "couple", "partner1SocialSecurity": 2000, "partner2SocialSecurity": 1500}

    assert resolve_social_security(snapshot, 2) == 1500
    assert resolve_social_security(snapshot, combine=True) == 3500
    assert resolve_social_security({"planningType": "couple"}, 1) is None
