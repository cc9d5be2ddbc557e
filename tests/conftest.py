"""Pytest fixtures for testing"""

import pytest
from fastapi.testclient import TestClient

from retirement_engine.api.dependencies import get_engine_config
from retirement_engine.api.main import create_app
from retirement_engine.domain.engine_config import EngineConfig, default_engine_config


@pytest.fixture
def engine_config() -> EngineConfig:
    """Default reference tables"""
    return default_engine_config()


@pytest.fixture
def client(engine_config: EngineConfig) -> TestClient:
    """Create FastAPI test client with the default engine configuration"""
    app = create_app()
    app.dependency_overrides[get_engine_config] = lambda: engine_config
    return TestClient(app)


@pytest.fixture
def individual_snapshot() -> dict:
    """Mid-career individual with savings spread across several asset classes"""
    return {
        "planningType": "individual",
        "currentAge": 35,
        "retirementAge": 67,
        "currentMonthlySalary": 20000,
        "pensionContributionRate": 6,
        "employerPensionRate": 6.5,
        "trainingFundContributionRate": 2.5,
        "employerTrainingFundRate": 7.5,
        "currentPensionSavings": 250000,
        "currentTrainingFund": 80000,
        "currentPersonalPortfolio": 120000,
        "personalPortfolioMonthly": 1500,
        "currentCrypto": 10000,
        "currentRealEstate": 0,
        "currentSavings": 60000,
        "emergencyFund": 30000,
        "currentMonthlyExpenses": 12000,
        "equityPercentage": 65,
        "bondPercentage": 35,
        "riskTolerance": "moderate",
        "country": "israel",
    }


@pytest.fixture
def couple_snapshot() -> dict:
    """Couple who have completed data entry, each partner with their own salary and pension"""
    return {
        "planningType": "couple",
        "currentAge": 40,
        "retirementAge": 67,
        "partner1Salary": 18000,
        "partner2Salary": 12000,
        "partner1PensionContributionRate": 6,
        "partner2PensionContributionRate": 6,
        "partner1EmployerPensionRate": 6.5,
        "partner2EmployerPensionRate": 6.5,
        "partner1CurrentPension": 300000,
        "partner2CurrentPension": 150000,
        "currentPersonalPortfolio": 200000,
        "currentMonthlyExpenses": 18000,
        "country": "israel",
    }


@pytest.fixture
def work_periods() -> list:
    """Two consecutive employment periods covering ages 35-67"""
    return [
        {"startAge": 35, "endAge": 50, "salary": 20000, "monthlyContribution": 2500, "pensionReturn": 6.5,
         "pensionAnnualFee": 0.3, "pensionDepositFee": 1.5, "country": "israel"},
        {"startAge": 50, "endAge": 67, "salary": 26000, "monthlyContribution": 3200, "pensionReturn": 5.5,
         "pensionAnnualFee": 0.3, "pensionDepositFee": 1.5, "country": "israel"},
    ]
