"""
Observation service.

Observations are free-text notes on a company's month. The month's
observation list also shows the justification of every active
adjustment, so a reader sees why the balance moved next to what
was said about it. Only manual observations can be edited or
deleted here; adjustment justifications belong to their adjustment.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from hours_bank.exceptions import InvalidObservation, NotFoundError
from hours_bank.models.adjustment import Adjustment
from hours_bank.models.enums import AdjustmentDirection, ObservationSource
from hours_bank.models.observation import LedgerObservation
from hours_bank.services import audit as audit_actions
from hours_bank.services.audit import AuditService
from hours_bank.services.contract_service import ContractService
from hours_bank.services.periods import format_period, validate_period

logger = logging.getLogger(__name__)


@dataclass
class UnifiedObservation:
    """One line of a month's observation list, manual or from an adjustment."""
    id: int
    source: ObservationSource
    year: int
    month: int
    text: str
    created_at: datetime
    created_by: str | None
    updated_at: datetime | None = None
    direction: AdjustmentDirection | None = None
    hours_minutes: int | None = None
    tickets: Decimal | None = None

    @classmethod
    def from_observation(cls, row: LedgerObservation) -> "UnifiedObservation":
        return cls(
            id=row.id,
            source=ObservationSource.MANUAL,
            year=row.year,
            month=row.month,
            text=row.text,
            created_at=row.created_at,
            created_by=row.created_by,
            updated_at=row.updated_at,
        )

    @classmethod
    def from_adjustment(cls, row: Adjustment) -> "UnifiedObservation":
        return cls(
            id=row.id,
            source=ObservationSource.ADJUSTMENT,
            year=row.year,
            month=row.month,
            text=row.justification,
            created_at=row.created_at,
            created_by=row.created_by,
            direction=row.direction,
            hours_minutes=row.hours_minutes,
            tickets=row.tickets,
        )


class ObservationService:
    """Create, edit, delete and list month observations."""

    def __init__(
        self,
        db: Session,
        contracts: ContractService | None = None,
        audit: AuditService | None = None,
    ):
        self.db = db
        self.audit = audit or AuditService(db)
        self.contracts = contracts or ContractService(db, self.audit)

    @staticmethod
    def _clean(text: str | None) -> str:
        text = (text or "").strip()
        if not text:
            raise InvalidObservation(
                "An observation cannot be empty",
                details={"field": "text"},
            )
        return text

    def get_observation(self, observation_id: int) -> LedgerObservation:
        observation = self.db.get(LedgerObservation, observation_id)
        if not observation:
            raise NotFoundError(
                f"Observation {observation_id} not found",
                details={"observation_id": observation_id},
            )
        return observation

    def create(
        self,
        company_id: int,
        year: int,
        month: int,
        text: str,
        actor: str | None = None,
    ) -> LedgerObservation:
        validate_period(year, month)
        self.contracts.get_company(company_id)
        observation = LedgerObservation(
            company_id=company_id,
            year=year,
            month=month,
            text=self._clean(text),
            created_by=actor,
            updated_by=actor,
        )
        self.db.add(observation)
        self.db.flush()

        self.audit.record(
            audit_actions.OBSERVATION_CREATED,
            f"Observation added to {format_period(year, month)}",
            company_id=company_id,
            payload={"observation_id": observation.id, "text": observation.text},
            actor=actor,
        )
        logger.info(
            "Observation %s added",
            observation.id,
            extra={
                "company_id": company_id,
                "year": year,
                "month": month,
                "operation": "observation",
            },
        )
        return observation

    def update(
        self, observation_id: int, text: str, actor: str | None = None
    ) -> LedgerObservation:
        observation = self.get_observation(observation_id)
        previous = observation.text
        observation.text = self._clean(text)
        observation.updated_by = actor
        self.db.flush()

        self.audit.record(
            audit_actions.OBSERVATION_UPDATED,
            f"Observation {observation_id} edited",
            company_id=observation.company_id,
            payload={
                "observation_id": observation_id,
                "before": previous,
                "after": observation.text,
            },
            actor=actor,
        )
        return observation

    def delete(self, observation_id: int, actor: str | None = None) -> None:
        observation = self.get_observation(observation_id)
        self.audit.record(
            audit_actions.OBSERVATION_DELETED,
            f"Observation {observation_id} deleted from "
            f"{format_period(observation.year, observation.month)}",
            company_id=observation.company_id,
            payload={"observation_id": observation_id, "text": observation.text},
            actor=actor,
        )
        self.db.delete(observation)
        self.db.flush()

    def list_observations(
        self,
        company_id: int,
        year: int | None = None,
        month: int | None = None,
    ) -> list[LedgerObservation]:
        query = select(LedgerObservation).where(
            LedgerObservation.company_id == company_id
        )
        if year is not None:
            query = query.where(LedgerObservation.year == year)
        if month is not None:
            query = query.where(LedgerObservation.month == month)
        query = query.order_by(
            LedgerObservation.created_at.desc(), LedgerObservation.id.desc()
        )
        return list(self.db.execute(query).scalars().all())

    def list_unified(
        self,
        company_id: int,
        year: int | None = None,
        month: int | None = None,
    ) -> list[UnifiedObservation]:
        """
        Manual observations and active adjustment justifications, newest first.

        Deactivated adjustments are left out: they no longer explain
        anything about the month's figures.
        """
        query = select(Adjustment).where(
            Adjustment.company_id == company_id,
            Adjustment.is_active.is_(True),
            Adjustment.justification != "",
        )
        if year is not None:
            query = query.where(Adjustment.year == year)
        if month is not None:
            query = query.where(Adjustment.month == month)
        adjustments = self.db.execute(query).scalars().all()

        merged = [
            UnifiedObservation.from_observation(row)
            for row in self.list_observations(company_id, year, month)
        ]
        merged.extend(UnifiedObservation.from_adjustment(row) for row in adjustments)
        merged.sort(key=lambda item: item.created_at, reverse=True)
        return merged
