"""
Tests for contract parameter versions.
"""

from datetime import date

import pytest

from hours_bank.exceptions import (
    ContractNotConfigured,
    InvalidContractParameters,
    NotFoundError,
)
from hours_bank.models import ChangeKind, ContractKind
from hours_bank.schemas.contract import ContractParametersCreate
from hours_bank.services import audit as audit_actions


class TestResolve:

    def test_latest_effective_version_governs_the_month(
        self, service, company, make_contract
    ):
        first = make_contract(company.id)
        second = make_contract(
            company.id, effective_from=date(2024, 4, 1), baseline_hours="80:00"
        )

        assert service.contracts.resolve(company.id, 2024, 3).id == first.id
        assert service.contracts.resolve(company.id, 2024, 4).id == second.id
        assert service.contracts.resolve(company.id, 2025, 1).id == second.id

    def test_mid_month_start_governs_its_whole_month(
        self, service, company, make_contract
    ):
        params = make_contract(company.id, effective_from=date(2024, 3, 20))
        assert service.contracts.resolve(company.id, 2024, 3).id == params.id

    def test_no_parameters(self, service, company):
        with pytest.raises(ContractNotConfigured) as exc_info:
            service.contracts.resolve(company.id, 2024, 1)
        assert exc_info.value.details["period"] == "01/2024"

    def test_contract_start_is_earliest_version(self, service, company, make_contract):
        make_contract(company.id, effective_from=date(2024, 5, 1))
        make_contract(company.id, effective_from=date(2024, 2, 10))
        assert service.contracts.contract_start(company.id) == (2024, 2)

    def test_history_is_kept(self, service, company, make_contract):
        make_contract(company.id)
        make_contract(company.id, effective_from=date(2024, 6, 1))
        assert len(service.list_contract_parameters(company.id)) == 2


class TestCreate:

    def test_hours_baseline_is_stored_in_minutes(self, make_contract, company):
        params = make_contract(company.id, baseline_hours="37:30")
        assert params.baseline_minutes == 2250
        assert params.current_cycle_index == 1

    @pytest.mark.parametrize("overrides", [
        {"baseline_hours": None},
        {"contract_kind": ContractKind.TICKETS},
        {"contract_kind": ContractKind.BOTH},
        {"baseline_hours": "later"},
        {"baseline_hours": "-10:00"},
    ])
    def test_invalid_baselines_are_rejected(self, service, company, overrides):
        fields = {
            "contract_kind": ContractKind.HOURS,
            "effective_from": date(2024, 1, 1),
            "baseline_hours": "100:00",
        }
        fields.update(overrides)
        with pytest.raises(InvalidContractParameters):
            service.contracts.create(company.id, ContractParametersCreate(**fields))

    def test_unknown_company(self, service):
        data = ContractParametersCreate(
            contract_kind=ContractKind.HOURS,
            effective_from=date(2024, 1, 1),
            baseline_hours="10:00",
        )
        with pytest.raises(NotFoundError):
            service.contracts.create(404, data)

    def test_creation_is_audited(self, service, company, make_contract):
        make_contract(company.id)
        logs = service.audit.list_for_company(
            company.id, audit_actions.CONTRACT_PARAMETERS_CREATED
        )
        assert len(logs) == 1
        assert logs[0].payload["baseline_hours"] == "100:00"


class TestParameterChange:

    def test_new_version_recalculates_governed_months(
        self, service, company, make_contract, set_usage
    ):
        make_contract(company.id)
        set_usage(company.id, 2024, 3, consumed="40:00")
        service.get_or_calculate(company.id, 2024, 3)

        _, result = service.set_contract_parameters(
            company.id,
            ContractParametersCreate(
                contract_kind=ContractKind.HOURS,
                effective_from=date(2024, 2, 1),
                baseline_hours="50:00",
            ),
        )

        assert result.completed
        assert result.recomputed == [(2024, 2), (2024, 3)]
        jan = service.get_entry(company.id, 2024, 1)
        feb = service.get_entry(company.id, 2024, 2)
        mar = service.get_entry(company.id, 2024, 3)
        assert jan.hours_baseline == 6000
        assert jan.version == 1
        assert feb.hours_baseline == 3000
        assert feb.version == 2
        assert mar.hours_monthly_balance == 600

        versions = service.list_versions(company.id, 2024, 3)
        assert versions[-1].change_kind == ChangeKind.RECALCULATION

    def test_version_for_uncalculated_months_triggers_nothing(
        self, service, company, make_contract
    ):
        make_contract(company.id)
        service.get_or_calculate(company.id, 2024, 1)

        _, result = service.set_contract_parameters(
            company.id,
            ContractParametersCreate(
                contract_kind=ContractKind.HOURS,
                effective_from=date(2024, 6, 1),
                baseline_hours="50:00",
            ),
        )
        assert result is None
