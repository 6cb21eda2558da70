"""
Tests for month observations and the merged observation list.
"""

import pytest

from hours_bank.exceptions import InvalidObservation, NotFoundError
from hours_bank.models import AdjustmentDirection, LedgerObservation, ObservationSource
from hours_bank.schemas.adjustment import AdjustmentCreate
from hours_bank.services import audit as audit_actions


def grant(service, company_id, month, hours="10:00", justification=None):
    adjustment, _ = service.create_adjustment(company_id, AdjustmentCreate(
        year=2024,
        month=month,
        direction=AdjustmentDirection.IN,
        hours=hours,
        justification=justification or "Hours granted after the quarterly review",
    ))
    return adjustment


class TestObservations:

    def test_add_observation(self, service, company):
        observation = service.add_observation(
            company.id, 2024, 3, "  Client asked for a detailed report  ", actor="ops"
        )

        assert observation.text == "Client asked for a detailed report"
        assert observation.created_by == "ops"
        logs = service.audit.list_for_company(
            company.id, audit_actions.OBSERVATION_CREATED
        )
        assert logs[0].payload["observation_id"] == observation.id

    def test_empty_text_is_rejected(self, service, db_session, company):
        with pytest.raises(InvalidObservation):
            service.add_observation(company.id, 2024, 3, "   ")
        assert db_session.query(LedgerObservation).count() == 0

    def test_invalid_month(self, service, company):
        with pytest.raises(ValueError):
            service.add_observation(company.id, 2024, 13, "Note")

    def test_unknown_company(self, service):
        with pytest.raises(NotFoundError):
            service.add_observation(999, 2024, 1, "Note")

    def test_edit_keeps_the_previous_text_in_the_audit_log(self, service, company):
        observation = service.add_observation(company.id, 2024, 3, "First draft")

        edited = service.update_observation(observation.id, "Final text", actor="lead")

        assert edited.text == "Final text"
        assert edited.updated_by == "lead"
        logs = service.audit.list_for_company(
            company.id, audit_actions.OBSERVATION_UPDATED
        )
        assert logs[0].payload == {
            "observation_id": observation.id,
            "before": "First draft",
            "after": "Final text",
        }

    def test_edit_to_empty_is_rejected(self, service, company):
        observation = service.add_observation(company.id, 2024, 3, "First draft")
        with pytest.raises(InvalidObservation):
            service.update_observation(observation.id, "")

    def test_delete(self, service, db_session, company):
        observation = service.add_observation(company.id, 2024, 3, "Temporary")

        service.delete_observation(observation.id, actor="ops")

        assert db_session.query(LedgerObservation).count() == 0
        logs = service.audit.list_for_company(
            company.id, audit_actions.OBSERVATION_DELETED
        )
        assert logs[0].payload["text"] == "Temporary"

    def test_unknown_observation(self, service):
        with pytest.raises(NotFoundError):
            service.update_observation(404, "Text")
        with pytest.raises(NotFoundError):
            service.delete_observation(404)


class TestMergedList:

    def test_month_list_merges_adjustment_justifications(
        self, service, company, make_contract
    ):
        make_contract(company.id)
        service.add_observation(company.id, 2024, 1, "Go-live month")
        grant(service, company.id, 1)
        service.add_observation(company.id, 2024, 2, "Quiet month")

        items = service.list_observations(company.id, 2024, 1)

        assert {item.source for item in items} == {
            ObservationSource.MANUAL, ObservationSource.ADJUSTMENT,
        }
        from_adjustment = next(
            item for item in items if item.source == ObservationSource.ADJUSTMENT
        )
        assert from_adjustment.text == "Hours granted after the quarterly review"
        assert from_adjustment.direction == AdjustmentDirection.IN
        assert from_adjustment.hours_minutes == 600
        created = [item.created_at for item in items]
        assert created == sorted(created, reverse=True)

    def test_deactivated_adjustments_are_left_out(
        self, service, company, make_contract
    ):
        make_contract(company.id)
        adjustment = grant(service, company.id, 1)
        service.deactivate_adjustment(adjustment.id, "Granted twice")

        assert service.list_observations(company.id, 2024, 1) == []

    def test_company_list_covers_every_month(self, service, company, make_contract):
        make_contract(company.id)
        service.add_observation(company.id, 2024, 1, "Go-live month")
        grant(service, company.id, 2)
        service.add_observation(company.id, 2024, 3, "Contract review")

        items = service.list_observations(company.id)

        assert sorted((item.year, item.month) for item in items) == [
            (2024, 1), (2024, 2), (2024, 3),
        ]

    def test_unknown_company(self, service):
        with pytest.raises(NotFoundError):
            service.list_observations(999)
