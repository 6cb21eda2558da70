"""
Tests for observation API endpoints.
"""

import pytest

from hours_bank.models import Company


@pytest.fixture
def company_id(db_session):
    company = Company(name="Initech Ltda")
    db_session.add(company)
    db_session.commit()
    return company.id


def month_url(company_id, year=2024, month=1):
    return f"/companies/{company_id}/ledger/{year}/{month}/observations"


def test_add_returns_201(client, company_id):
    response = client.post(
        month_url(company_id),
        json={"text": "Client asked for weekly reports"},
        headers={"X-Actor": "ops"},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["text"] == "Client asked for weekly reports"
    assert data["created_by"] == "ops"
    assert data["month"] == 1


def test_empty_text_returns_400(client, company_id):
    response = client.post(month_url(company_id), json={"text": " "})
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "INVALID_OBSERVATION"


def test_invalid_month_returns_400(client, company_id):
    response = client.post(month_url(company_id, month=13), json={"text": "Note"})
    assert response.status_code == 400


def test_month_list_includes_adjustment_justifications(client, company_id):
    client.post(f"/companies/{company_id}/contract-parameters", json={
        "contract_kind": "hours",
        "effective_from": "2024-01-01",
        "baseline_hours": "100:00",
    })
    client.post(f"/companies/{company_id}/adjustments", json={
        "year": 2024,
        "month": 1,
        "direction": "in",
        "hours": "2:30",
        "justification": "Hours granted for the migration weekend",
    })
    client.post(month_url(company_id), json={"text": "Migration month"})

    response = client.get(month_url(company_id))

    assert response.status_code == 200
    by_source = {item["source"]: item for item in response.json()}
    assert by_source["manual"]["text"] == "Migration month"
    assert by_source["adjustment"]["hours"] == "2:30"
    assert by_source["adjustment"]["direction"] == "in"


def test_edit_and_delete(client, company_id):
    created = client.post(month_url(company_id), json={"text": "Draft"}).json()

    edited = client.patch(
        f"/observations/{created['id']}", json={"text": "Reviewed"}
    )
    assert edited.status_code == 200
    assert edited.json()["text"] == "Reviewed"

    deleted = client.delete(f"/observations/{created['id']}")
    assert deleted.status_code == 204
    assert client.get(f"/companies/{company_id}/observations").json() == []

    again = client.delete(f"/observations/{created['id']}")
    assert again.status_code == 404


def test_unknown_company_returns_404(client):
    response = client.get("/companies/999/observations")
    assert response.status_code == 404
