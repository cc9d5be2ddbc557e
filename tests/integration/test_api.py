"""Integration tests for API endpoints"""

from fastapi.testclient import TestClient


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_request_id_header(client: TestClient):
    """Every response carries a request ID; a caller-supplied one is echoed"""
    assert client.get("/health").headers["X-Request-ID"]

    response = client.get("/health", headers={"X-Request-ID": "trace-123"})
    assert response.headers["X-Request-ID"] == "trace-123"


def test_metrics_endpoint(client: TestClient, individual_snapshot: dict):
    """Test Prometheus metrics endpoint"""
    client.post("/v1/projection", json={"snapshot": individual_snapshot})

    response = client.get("/metrics")
    assert response.status_code == 200
    assert "retirement_projection_total" in response.text
    assert "http_request_duration_seconds" in response.text


def test_projection_endpoint(client: TestClient, individual_snapshot: dict, work_periods: list):
    """Test POST /v1/projection with a computable snapshot"""
    response = client.post(
        "/v1/projection",
        json={
            "snapshot": individual_snapshot,
            "work_periods": work_periods,
            "pension_allocation": [{"assetClass": "stocks", "allocation": 60}, {"assetClass": "bonds", "allocation": 40}],
            "extra_income_sources": [{"amount": 1000}],
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["computable"] is True
    result = data["result"]
    assert result["total_savings"] > 0
    assert result["income"]["additional"]["gross"] == 1000
    assert set(result["balances"]) == {"pension", "training_fund", "personal_portfolio", "crypto", "real_estate"}


def test_projection_not_computable(client: TestClient):
    """Test POST /v1/projection when current age is past retirement age"""
    response = client.post("/v1/projection", json={"snapshot": {"currentAge": 70, "retirementAge": 67}})

    assert response.status_code == 200
    assert response.json() == {"computable": False, "result": None}


def test_projection_strict_timeline_rejects_gaps(client: TestClient, individual_snapshot: dict):
    """Test POST /v1/projection with strict_timeline and a gap in work periods"""
    response = client.post(
        "/v1/projection",
        json={
            "snapshot": individual_snapshot,
            "work_periods": [{"startAge": 35, "endAge": 50, "salary": 20000, "monthlyContribution": 2500}],
            "strict_timeline": True,
        },
    )

    assert response.status_code == 422
    assert "50 to 67" in response.json()["detail"]


def test_projection_lenient_timeline_warns(client: TestClient, individual_snapshot: dict):
    response = client.post(
        "/v1/projection",
        json={
            "snapshot": individual_snapshot,
            "work_periods": [{"startAge": 35, "endAge": 50, "salary": 20000, "monthlyContribution": 2500}],
        },
    )

    assert response.status_code == 200
    assert response.json()["result"]["warnings"] == ["no work period covers ages 50 to 67"]


def test_projection_rejects_invalid_envelope(client: TestClient):
    response = client.post("/v1/projection", json={"snapshot": {}, "phase": "sometime"})

    assert response.status_code == 422


def test_couple_projection_includes_partner_results(client: TestClient, couple_snapshot: dict):
    response = client.post("/v1/projection", json={"snapshot": couple_snapshot})

    result = response.json()["result"]
    assert result["partner_results"]["partner1"]["total_savings"] > 0
    assert result["partner_results"]["partner2"]["total_savings"] > 0


def test_health_score_endpoint(client: TestClient, individual_snapshot: dict):
    """Test POST /v1/health-score"""
    response = client.post("/v1/health-score", json={"snapshot": individual_snapshot})

    assert response.status_code == 200
    data = response.json()
    assert 0 <= data["total_score"] <= 100
    assert data["status"] in {"excellent", "good", "needsWork", "critical"}
    assert len(data["factors"]) == 8
    assert data["factors"]["savings_rate"]["name"] == "Savings Rate"
    assert data["validation"]["is_valid"] is True
    assert data["suggestions"]


def test_health_score_empty_snapshot(client: TestClient):
    response = client.post("/v1/health-score", json={})

    assert response.status_code == 200
    assert response.json()["validation"]["critical_missing"] == ["currentAge", "currentMonthlySalary"]


def test_stress_catalog_endpoint(client: TestClient):
    """Test GET /v1/stress-tests"""
    response = client.get("/v1/stress-tests", params={"locale": "he"})

    assert response.status_code == 200
    scenarios = response.json()["scenarios"]
    assert [s["key"] for s in scenarios] == ["financial_crisis_2008", "covid_pandemic", "high_inflation"]
    assert scenarios[1]["name"] == "מגפת הקורונה"


def test_stress_test_endpoint(client: TestClient, individual_snapshot: dict):
    """Test POST /v1/stress-tests/{scenario_key}"""
    response = client.post("/v1/stress-tests/financial_crisis_2008", json={"snapshot": individual_snapshot})

    assert response.status_code == 200
    data = response.json()
    assert data["computable"] is True
    assert data["scenario"]["portfolio_decline"] == 40
    assert data["stressed_result"]["total_savings"] <= data["baseline_result"]["total_savings"]
    assert data["impact"]["savings_change"] <= 0
    assert len(data["recommendations"]) == 4


def test_stress_test_unknown_scenario(client: TestClient):
    """Test POST /v1/stress-tests with a key outside the catalog"""
    response = client.post("/v1/stress-tests/unknown_scenario", json={"snapshot": {}})

    assert response.status_code == 404


def test_stress_test_not_computable(client: TestClient):
    response = client.post(
        "/v1/stress-tests/high_inflation", json={"snapshot": {"currentAge": 70, "retirementAge": 67}}
    )

    assert response.status_code == 200
    assert response.json()["computable"] is False
    assert response.json()["stressed_result"] is None
