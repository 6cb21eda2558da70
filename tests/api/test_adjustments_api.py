"""
Tests for adjustment API endpoints.
"""

import pytest

from hours_bank.models import Company

JUSTIFICATION = "Hours granted after the March outage"


@pytest.fixture
def company_id(client, db_session):
    company = Company(name="Initech")
    db_session.add(company)
    db_session.commit()
    client.post(f"/companies/{company.id}/contract-parameters", json={
        "contract_kind": "hours",
        "effective_from": "2024-01-01",
        "baseline_hours": "100:00",
    })
    return company.id


def post_adjustment(client, company_id, **overrides):
    body = {
        "year": 2024,
        "month": 1,
        "direction": "in",
        "hours": "10:00",
        "justification": JUSTIFICATION,
    }
    body.update(overrides)
    return client.post(
        f"/companies/{company_id}/adjustments",
        json=body,
        headers={"X-Actor": "ana.souza"},
    )


class TestCreateAdjustment:

    def test_create_returns_201_with_cascade(self, client, company_id):
        response = post_adjustment(client, company_id)

        assert response.status_code == 201
        data = response.json()
        assert data["adjustment"]["hours"] == "10:00"
        assert data["adjustment"]["created_by"] == "ana.souza"
        assert data["cascade"]["recomputed"] == ["01/2024"]

        entry = client.get(f"/companies/{company_id}/ledger/2024/1").json()
        assert entry["hours"]["net_adjustment"] == "10:00"
        assert entry["hours"]["monthly_balance"] == "110:00"

    def test_short_justification_returns_400(self, client, company_id):
        response = post_adjustment(client, company_id, justification="ok")

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_ADJUSTMENT"
        listed = client.get(f"/companies/{company_id}/adjustments").json()
        assert listed == []

    def test_malformed_hours_returns_400(self, client, company_id):
        response = post_adjustment(client, company_id, hours="ten")
        assert response.status_code == 400

    def test_unknown_direction_returns_422(self, client, company_id):
        response = post_adjustment(client, company_id, direction="sideways")
        assert response.status_code == 422


class TestDeactivateAdjustment:

    def test_deactivate(self, client, company_id):
        created = post_adjustment(client, company_id).json()["adjustment"]

        response = client.post(
            f"/adjustments/{created['id']}/deactivate",
            json={"reason": "Duplicated request"},
        )

        assert response.status_code == 200
        assert response.json()["adjustment"]["is_active"] is False
        entry = client.get(f"/companies/{company_id}/ledger/2024/1").json()
        assert entry["hours"]["net_adjustment"] == "0:00"
        assert entry["version"] == 2

    def test_deactivate_without_reason_returns_400(self, client, company_id):
        created = post_adjustment(client, company_id).json()["adjustment"]
        response = client.post(f"/adjustments/{created['id']}/deactivate", json={})
        assert response.status_code == 400

    def test_list_includes_inactive_on_request(self, client, company_id):
        created = post_adjustment(client, company_id).json()["adjustment"]
        client.post(
            f"/adjustments/{created['id']}/deactivate",
            json={"reason": "Duplicated request"},
        )

        active = client.get(f"/companies/{company_id}/adjustments").json()
        everything = client.get(
            f"/companies/{company_id}/adjustments",
            params={"include_inactive": True},
        ).json()

        assert active == []
        assert len(everything) == 1
