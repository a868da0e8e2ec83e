import pytest

URL = "/api/discounts/validate-discounts"

def test_validate_discounts_stacks_categories(client):
    r = client.post(URL, json={
        "basePrice": 500,
        "discounts": {"discountSeniors": 10, "discountStudents": 15},
    })
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["originalAmount"] == 500.0
    assert data["finalAmount"] == 375.0
    assert data["discountAmount"] == 125.0
    assert data["totalDiscountPercentage"] == 25.0
    assert data["discountBreakdown"] == {"seniors": 10.0, "students": 15.0}
    assert data["appliedDiscounts"] == ["Seniors: 10%", "Étudiants: 15%"]

def test_validate_discounts_response_is_camel_case_only(client):
    data = client.post(URL, json={"basePrice": 100}).json()["data"]
    assert set(data) == {
        "originalAmount", "finalAmount", "discountAmount",
        "totalDiscountPercentage", "appliedDiscounts", "discountBreakdown",
    }
    assert data["finalAmount"] == 100.0

def test_validate_discounts_total_capped_at_full_price(client):
    r = client.post(URL, json={
        "basePrice": 80,
        "discounts": {"discountSeniors": 60, "discountDisability": 50},
    })
    data = r.json()["data"]
    assert data["totalDiscountPercentage"] == 100.0
    assert data["finalAmount"] == 0.0

def test_validate_discounts_expired_early_bird_is_dropped(client):
    r = client.post(URL, json={
        "basePrice": 100,
        "discounts": {"discountEarlyBird": 20},
        "earlyBirdDeadline": "2000-01-01T00:00:00Z",
    })
    data = r.json()["data"]
    assert data["finalAmount"] == 100.0
    assert "earlyBird" not in data["discountBreakdown"]

def test_validate_discounts_open_early_bird_applies(client):
    r = client.post(URL, json={
        "basePrice": 100,
        "discounts": {"discountEarlyBird": 20},
        "earlyBirdDeadline": "2099-12-31",
    })
    data = r.json()["data"]
    assert data["finalAmount"] == 80.0
    assert data["discountBreakdown"] == {"earlyBird": 20.0}

def test_validate_discounts_rejects_non_positive_price(client):
    r = client.post(URL, json={"basePrice": 0})
    assert r.status_code == 400
    assert r.json()["success"] is False
    assert r.json()["code"] == "validation_error"

def test_validate_discounts_rejects_negative_percentage(client):
    r = client.post(URL, json={"basePrice": 100, "discounts": {"discountSeniors": -5}})
    assert r.status_code == 400

def test_validate_discounts_rejects_unreadable_deadline(client):
    r = client.post(URL, json={
        "basePrice": 100,
        "discounts": {"discountEarlyBird": 10},
        "earlyBirdDeadline": "pas-une-date",
    })
    assert r.status_code == 400
    assert r.json()["success"] is False

@pytest.mark.parametrize("raw", [
    '{"basePrice": Infinity}',
    '{"basePrice": NaN}',
    '{"basePrice": 100, "discounts": {"discountStudents": NaN}}',
])
def test_validate_discounts_rejects_non_finite_numbers(client, raw):
    r = client.post(URL, content=raw, headers={"content-type": "application/json"})
    assert r.status_code == 400
    assert r.json()["success"] is False
    assert r.json()["code"] == "validation_error"
