"""
Tests for manual adjustments.
"""

from decimal import Decimal

import pytest

from hours_bank.exceptions import InvalidAdjustment, NotFoundError
from hours_bank.models import Adjustment, AdjustmentDirection, ChangeKind, ContractKind
from hours_bank.schemas.adjustment import AdjustmentCreate
from hours_bank.services import audit as audit_actions
from hours_bank.services.notifications import EventKind

JUSTIFICATION = "Support hours granted by the account manager"


def adjustment(**overrides):
    fields = {
        "year": 2024,
        "month": 1,
        "direction": AdjustmentDirection.IN,
        "hours": "10:00",
        "justification": JUSTIFICATION,
    }
    fields.update(overrides)
    return AdjustmentCreate(**fields)


def count_adjustments(db_session):
    return db_session.query(Adjustment).count()


class TestValidation:

    @pytest.mark.parametrize("overrides, field", [
        ({"justification": "too short"}, "justification"),
        ({"justification": "          x"}, "justification"),
        ({"hours": "ten hours"}, "hours"),
        ({"hours": "-1:00"}, "hours"),
        ({"hours": None, "tickets": Decimal("-1")}, "tickets"),
    ])
    def test_rejected_before_anything_is_written(
        self, service, db_session, company, make_contract, overrides, field
    ):
        make_contract(company.id)

        with pytest.raises(InvalidAdjustment) as exc_info:
            service.create_adjustment(company.id, adjustment(**overrides))

        assert exc_info.value.details["field"] == field
        assert count_adjustments(db_session) == 0
        assert service.calculator.get_entry(company.id, 2024, 1) is None

    def test_needs_hours_or_tickets(self, service, company, make_contract):
        make_contract(company.id)
        with pytest.raises(InvalidAdjustment):
            service.create_adjustment(company.id, adjustment(hours="0:00"))

    def test_kind_must_belong_to_the_contract(self, service, company, make_contract):
        make_contract(company.id)
        with pytest.raises(InvalidAdjustment) as exc_info:
            service.create_adjustment(
                company.id, adjustment(hours=None, tickets=Decimal("2"))
            )
        assert exc_info.value.details["contract_kind"] == ContractKind.HOURS.value

    def test_unknown_company(self, service):
        with pytest.raises(NotFoundError):
            service.create_adjustment(999, adjustment())


class TestCreate:

    def test_adjustment_recomputes_the_cycle(
        self, service, notifier, company, make_contract, set_usage, add_rate
    ):
        make_contract(company.id, assessment_period_months=3)
        add_rate(company.id, "150")
        set_usage(company.id, 2024, 1, consumed="120:00")
        set_usage(company.id, 2024, 2, consumed="90:00")
        set_usage(company.id, 2024, 3, consumed="100:00")
        service.get_or_calculate(company.id, 2024, 3)

        created, result = service.create_adjustment(
            company.id, adjustment(), actor="manager"
        )

        assert created.hours_minutes == 600
        assert created.is_active
        assert result.recomputed == [(2024, 1), (2024, 2), (2024, 3)]

        jan = service.get_entry(company.id, 2024, 1)
        feb = service.get_entry(company.id, 2024, 2)
        mar = service.get_entry(company.id, 2024, 3)
        assert jan.hours_net_adjustment == 600
        assert jan.hours_total_consumption == 6600
        assert jan.hours_rollover_out == -600
        assert feb.hours_monthly_balance == 0
        assert mar.hours_overage == 0
        assert mar.total_to_bill == 0

        for month in (1, 2, 3):
            versions = service.list_versions(company.id, 2024, month)
            assert [v.to_version for v in versions] == [2]
            assert versions[0].change_kind == ChangeKind.ADJUSTMENT
            assert versions[0].reason == JUSTIFICATION

        assert EventKind.ADJUSTMENT_APPLIED in notifier.kinds()
        logs = service.audit.list_for_company(
            company.id, audit_actions.ADJUSTMENT_CREATED
        )
        assert logs[0].actor == "manager"

    def test_out_adjustment_reduces_balance(
        self, service, company, make_contract
    ):
        make_contract(company.id)
        service.create_adjustment(
            company.id, adjustment(direction=AdjustmentDirection.OUT, hours="5:30")
        )

        entry = service.get_entry(company.id, 2024, 1)
        assert entry.hours_net_adjustment == -330
        assert entry.hours_monthly_balance == 6000 - 330

    def test_aggregate_nets_active_adjustments(self, service, company, make_contract):
        make_contract(company.id)
        service.create_adjustment(company.id, adjustment(hours="3:00"))
        service.create_adjustment(
            company.id, adjustment(direction=AdjustmentDirection.OUT, hours="1:15")
        )
        removed, _ = service.create_adjustment(company.id, adjustment(hours="9:00"))
        service.deactivate_adjustment(removed.id, "Entered by mistake")

        totals = service.adjustments.aggregate(company.id, 2024, 1)

        assert totals.minutes == 105
        assert totals.tickets == Decimal("0")

    def test_ticket_adjustment_is_rounded_to_cents(
        self, service, company, make_contract
    ):
        make_contract(
            company.id,
            contract_kind=ContractKind.TICKETS,
            baseline_hours=None,
            baseline_tickets=Decimal("10"),
        )
        created, _ = service.create_adjustment(
            company.id, adjustment(hours=None, tickets=Decimal("1.255"))
        )
        assert created.tickets == Decimal("1.26")


class TestDeactivate:

    def test_deactivation_reverses_the_effect(self, service, company, make_contract):
        make_contract(company.id)
        created, _ = service.create_adjustment(company.id, adjustment())

        deactivated, result = service.deactivate_adjustment(
            created.id, "Granted twice", actor="manager"
        )

        assert not deactivated.is_active
        assert deactivated.deactivation_reason == "Granted twice"
        assert deactivated.deactivated_by == "manager"
        assert result.completed
        entry = service.get_entry(company.id, 2024, 1)
        assert entry.hours_net_adjustment == 0
        assert entry.version == 2
        assert service.list_adjustments(company.id) == []
        assert len(service.list_adjustments(company.id, include_inactive=True)) == 1

    def test_reason_is_required(self, service, company, make_contract):
        make_contract(company.id)
        created, _ = service.create_adjustment(company.id, adjustment())
        with pytest.raises(InvalidAdjustment):
            service.deactivate_adjustment(created.id, "   ")

    def test_cannot_deactivate_twice(self, service, company, make_contract):
        make_contract(company.id)
        created, _ = service.create_adjustment(company.id, adjustment())
        service.deactivate_adjustment(created.id, "Granted twice")
        with pytest.raises(InvalidAdjustment):
            service.deactivate_adjustment(created.id, "Again")

    def test_unknown_adjustment(self, service):
        with pytest.raises(NotFoundError):
            service.deactivate_adjustment(12345, "Missing")
