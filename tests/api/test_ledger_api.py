"""
Tests for ledger API endpoints.

These test the HTTP layer: status codes, response format and
error mapping. Calculation rules are tested in
tests/services/test_ledger_calculator.py.
"""

from decimal import Decimal

import pytest

from hours_bank.models import Company


@pytest.fixture
def company_id(db_session):
    company = Company(name="Globex S.A.")
    db_session.add(company)
    db_session.commit()
    return company.id


def setup_contract(client, company_id, **overrides):
    body = {
        "contract_kind": "hours",
        "effective_from": "2024-01-01",
        "baseline_hours": "100:00",
    }
    body.update(overrides)
    response = client.post(f"/companies/{company_id}/contract-parameters", json=body)
    assert response.status_code == 201
    return response.json()


def put_usage(client, company_id, year, month, consumed):
    return client.put(
        f"/companies/{company_id}/usage/{year}/{month}",
        json={"consumed_hours": consumed},
    )


class TestGetLedger:

    def test_month_is_calculated_on_first_access(self, client, company_id):
        setup_contract(client, company_id)
        put_usage(client, company_id, 2024, 1, "80:00")

        response = client.get(f"/companies/{company_id}/ledger/2024/1")

        assert response.status_code == 200
        data = response.json()
        assert data["hours"]["baseline"] == "100:00"
        assert data["hours"]["consumption"] == "80:00"
        assert data["hours"]["monthly_balance"] == "20:00"
        assert data["hours"]["rollover_out"] == "0:00"
        assert data["tickets"] is None
        assert data["is_cycle_end"] is True
        assert data["version"] == 1

    def test_overage_is_reported_with_note(self, client, company_id):
        setup_contract(client, company_id)
        client.post(f"/companies/{company_id}/rates", json={
            "kind": "hours",
            "unit_rate": "150",
            "valid_from": "2024-01-01",
        })
        put_usage(client, company_id, 2024, 2, "130:00")

        data = client.get(f"/companies/{company_id}/ledger/2024/2").json()

        assert data["hours"]["monthly_balance"] == "-30:00"
        assert data["hours"]["overage"] == "30:00"
        assert Decimal(data["hours"]["decimal_hours"]["overage"]) == Decimal("30.00")
        assert Decimal(data["hours"]["decimal_hours"]["monthly_balance"]) == Decimal("-30.00")
        assert Decimal(data["total_to_bill"]) == Decimal("4500.00")
        assert "Amount: 4500.00 BRL" in data["public_note"]

    def test_missing_rate_returns_422_with_remediation(self, client, company_id):
        setup_contract(client, company_id)
        put_usage(client, company_id, 2024, 1, "130:00")

        response = client.get(f"/companies/{company_id}/ledger/2024/1")

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["code"] == "RATE_NOT_FOUND"
        assert "remediation" in detail["details"]

    def test_no_contract_returns_404(self, client, company_id):
        response = client.get(f"/companies/{company_id}/ledger/2024/1")
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "CONTRACT_NOT_CONFIGURED"

    def test_invalid_month_returns_400(self, client, company_id):
        setup_contract(client, company_id)
        response = client.get(f"/companies/{company_id}/ledger/2024/13")
        assert response.status_code == 400


class TestRecalculate:

    def test_recalculation_reports_the_cascade(self, client, company_id):
        setup_contract(client, company_id)
        client.get(f"/companies/{company_id}/ledger/2024/3")

        response = client.post(
            f"/companies/{company_id}/ledger/2024/2/recalculate",
            json={"reason": "Monthly close check"},
        )

        assert response.status_code == 200
        cascade = response.json()["cascade"]
        assert cascade["recomputed"] == ["02/2024", "03/2024"]
        assert cascade["completed"] is True

    def test_recalculation_without_body(self, client, company_id):
        setup_contract(client, company_id)
        client.get(f"/companies/{company_id}/ledger/2024/1")

        response = client.post(f"/companies/{company_id}/ledger/2024/1/recalculate")

        assert response.status_code == 200
        assert response.json()["entry"]["version"] == 1

    def test_adjustment_change_kind_is_rejected(self, client, company_id):
        setup_contract(client, company_id)
        response = client.post(
            f"/companies/{company_id}/ledger/2024/1/recalculate",
            json={"change_kind": "adjustment"},
        )
        assert response.status_code == 422


class TestVersions:

    def test_versions_and_diff(self, client, company_id):
        setup_contract(client, company_id)
        client.get(f"/companies/{company_id}/ledger/2024/1")
        put_usage(client, company_id, 2024, 1, "10:00")

        versions = client.get(
            f"/companies/{company_id}/ledger/2024/1/versions"
        ).json()

        assert len(versions) == 1
        assert versions[0]["change_kind"] == "recalculation"
        diff = client.get(f"/versions/{versions[0]['id']}/diff").json()
        assert diff["modified"]["hours_consumption"] == {"before": 0, "after": 600}

    def test_unknown_version_returns_404(self, client):
        response = client.get("/versions/999/diff")
        assert response.status_code == 404


class TestSegmented:

    def test_segmented_view(self, client, company_id):
        setup_contract(client, company_id)
        client.post(f"/companies/{company_id}/allocations", json={
            "name": "Support",
            "baseline_share_percent": "60",
        })
        client.post(f"/companies/{company_id}/allocations", json={
            "name": "Projects",
            "baseline_share_percent": "40",
        })

        response = client.get(f"/companies/{company_id}/ledger/2024/1/segmented")

        assert response.status_code == 200
        segments = response.json()
        assert [s["allocation_name"] for s in segments] == ["Support", "Projects"]
        assert [s["hours"]["baseline"] for s in segments] == ["60:00", "40:00"]
