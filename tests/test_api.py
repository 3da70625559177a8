"""
REST API tests against a temporary catalog and rule set.
"""
import pytest
from decimal import Decimal
from fastapi.testclient import TestClient

from parking_pricing.api.main import app
from parking_pricing.api.state import AppState, get_state
from parking_pricing.rules.compile_rules import compile_rules

from test_rule_store import row, write_rules_csv

TUESDAY = {"startDate": "2026-03-10T09:00:00", "endDate": "2026-03-10T12:00:00"}
SATURDAY = {"startDate": "2026-03-14T09:00:00", "endDate": "2026-03-14T12:00:00"}


@pytest.fixture
def state(settings):
    settings.parkings_csv.write_text(
        "parking_id,title,base_price,currency\n"
        "P-1,Test Garage,10,EUR\n"
        "P-2,Other Lot,2.50,usd\n",
        encoding="utf-8",
    )
    write_rules_csv(settings.rules_csv, [
        row("WEEKEND", type="DAY_BASED", adjustment_type="FIXED", adjustment_value="15", days_of_week="0,6"),
    ])
    success, _, errors = compile_rules(settings.rules_csv, settings.compiled_rules)
    assert success, errors
    settings.tax_rate = Decimal("0.1")
    return AppState.build(settings)


@pytest.fixture
def client(state):
    app.dependency_overrides[get_state] = lambda: state
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_root(client):
    assert client.get("/").json()["status"] == "online"


def test_list_rules_by_parking(client):
    response = client.get("/price-rules", params={"parkingId": "P-1"})

    assert response.status_code == 200
    rules = response.json()
    assert [r["id"] for r in rules] == ["WEEKEND"]
    assert rules[0]["conditions"]["day"]["daysOfWeek"] == [0, 6]
    assert client.get("/price-rules", params={"parkingId": "P-2"}).json() == []


def test_calculate_price_without_matching_rules(client):
    response = client.get("/price-rules/calculate-price/P-1", params=TUESDAY)

    assert response.status_code == 200
    assert response.json() == {
        "basePrice": 10.0,
        "appliedRules": [],
        "subtotal": 30.0,
        "taxes": 3.0,
        "total": 33.0,
        "currency": "EUR",
        "durationHours": 3,
    }


def test_calculate_price_with_weekend_rule(client):
    data = client.get("/price-rules/calculate-price/P-1", params=SATURDAY).json()

    assert data["appliedRules"] == [
        {"ruleId": "WEEKEND", "name": "Rule WEEKEND", "type": "DAY_BASED", "adjustment": 15.0, "amount": 15.0}
    ]
    assert data["subtotal"] == 45.0
    assert data["total"] == 49.5


def test_calculate_uses_parking_currency(client):
    data = client.get("/price-rules/calculate-price/P-2", params=TUESDAY).json()

    assert data["currency"] == "USD"
    assert data["subtotal"] == 7.5


def test_calculate_unknown_parking(client):
    assert client.get("/price-rules/calculate-price/NOPE", params=TUESDAY).status_code == 404


def test_calculate_rejects_reversed_interval(client):
    params = {"startDate": TUESDAY["endDate"], "endDate": TUESDAY["startDate"]}
    response = client.get("/price-rules/calculate-price/P-1", params=params)

    assert response.status_code == 400


def test_calculate_requires_dates(client):
    assert client.get("/price-rules/calculate-price/P-1").status_code == 422


def test_price_for_range(client):
    response = client.get("/pricing/price-for-range", params={"parkingId": "P-1", **SATURDAY})

    assert response.status_code == 200
    assert response.json() == 49.5


def test_rule_lifecycle_updates_prices(client):
    payload = {
        "parkingId": "P-1",
        "name": "Launch promo",
        "type": "DISCOUNT",
        "adjustmentType": "PERCENTAGE",
        "adjustmentValue": -20,
        "priority": 0,
    }
    created = client.post("/price-rules", json=payload)
    assert created.status_code == 201
    rule_id = created.json()["id"]

    data = client.get("/price-rules/calculate-price/P-1", params=TUESDAY).json()
    assert [r["ruleId"] for r in data["appliedRules"]] == [rule_id]
    assert data["subtotal"] == 24.0

    patched = client.patch(f"/price-rules/{rule_id}", json={"adjustmentValue": -50})
    assert patched.status_code == 200
    assert patched.json()["adjustmentValue"] == -50.0
    assert client.get("/price-rules/calculate-price/P-1", params=TUESDAY).json()["subtotal"] == 15.0

    assert client.get(f"/price-rules/{rule_id}").json()["name"] == "Launch promo"

    assert client.delete(f"/price-rules/{rule_id}").status_code == 200
    assert client.get(f"/price-rules/{rule_id}").status_code == 404
    assert client.get("/price-rules/calculate-price/P-1", params=TUESDAY).json()["subtotal"] == 30.0


def test_create_invalid_rule(client):
    payload = {
        "parkingId": "P-1",
        "name": "Bad days",
        "adjustmentType": "FIXED",
        "adjustmentValue": 1,
        "conditions": {"day": {"daysOfWeek": [9]}},
    }
    response = client.post("/price-rules", json=payload)

    assert response.status_code == 400
    assert "daysOfWeek" in response.json()["detail"]["errors"][0]


def test_missing_rule_endpoints(client):
    assert client.get("/price-rules/missing").status_code == 404
    assert client.patch("/price-rules/missing", json={"name": "x"}).status_code == 404
    assert client.delete("/price-rules/missing").status_code == 404


def test_unavailable_rule_store_answers_503(settings, state):
    settings.compiled_rules.write_text("not json", encoding="utf-8")
    broken = AppState.build(settings)
    app.dependency_overrides[get_state] = lambda: broken
    try:
        response = TestClient(app).get("/price-rules/calculate-price/P-1", params=TUESDAY)
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 503


def test_system_status(client):
    data = client.get("/system/status").json()

    assert data["rules_loaded"] is True
    assert data["rules_count"] == 1
    assert data["parkings_count"] == 2
    assert data["tax_rate"] == 0.1


def test_list_rules_in_priority_order(client):
    base = {"parkingId": "P-1", "type": "DISCOUNT", "adjustmentType": "PERCENTAGE", "adjustmentValue": -5}
    assert client.post("/price-rules", json={**base, "id": "LATE", "name": "Late", "priority": 5}).status_code == 201
    assert client.post("/price-rules", json={**base, "id": "EARLY", "name": "Early", "priority": 0}).status_code == 201

    rules = client.get("/price-rules", params={"parkingId": "P-1"}).json()

    assert [r["id"] for r in rules] == ["EARLY", "WEEKEND", "LATE"]


def test_blank_parking_id_is_rejected_and_later_rules_apply(client):
    surge = {"parkingId": "P-1", "name": "Surge", "adjustmentType": "FIXED", "adjustmentValue": 100}

    assert client.post("/price-rules", json={**surge, "parkingId": "   "}).status_code == 400
    assert client.post("/price-rules", json={**surge, "id": "SURGE"}).status_code == 201

    data = client.get("/price-rules/calculate-price/P-1", params=TUESDAY).json()
    assert [r["ruleId"] for r in data["appliedRules"]] == ["SURGE"]
    assert data["total"] == 143.0


def test_broken_rules_csv_answers_503(client, settings):
    write_rules_csv(settings.rules_csv, [
        row("WEEKEND", type="DAY_BASED", adjustment_type="FIXED", adjustment_value="15", days_of_week="0,6"),
        row("BROKEN", adjustment_type="PERCENT"),
    ])
    payload = {"parkingId": "P-1", "name": "New", "adjustmentType": "FIXED", "adjustmentValue": 1}

    assert client.get("/price-rules/stats").status_code == 503
    assert client.post("/price-rules", json=payload).status_code == 503
    assert client.delete("/price-rules/WEEKEND").status_code == 503
    # Compiled rules keep serving reads and prices
    assert [r["id"] for r in client.get("/price-rules").json()] == ["WEEKEND"]
