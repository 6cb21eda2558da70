"""
Audit service.

Append-only trail of everything the engine does. Entries are added
to the caller's session and committed together with the change they
describe.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import select
from sqlalchemy.orm import Session

from hours_bank.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


LEDGER_CALCULATED = "ledger.calculated"
LEDGER_RECALCULATED = "ledger.recalculated"
ADJUSTMENT_CREATED = "adjustment.created"
ADJUSTMENT_DEACTIVATED = "adjustment.deactivated"
CASCADE_COMPLETED = "cascade.completed"
CASCADE_HALTED = "cascade.halted"
CONTRACT_PARAMETERS_CREATED = "contract.parameters_created"
ALLOCATIONS_CHANGED = "allocations.changed"
USAGE_REFRESHED = "usage.refreshed"
OBSERVATION_CREATED = "observation.created"
OBSERVATION_UPDATED = "observation.updated"
OBSERVATION_DELETED = "observation.deleted"


def to_jsonable(value):
    """Convert Decimals, dates and enums so the value can go in a JSON column."""
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


class AuditService:
    """Adds audit entries to the caller's session."""

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        action: str,
        description: str,
        company_id: int | None = None,
        ledger_entry_id: int | None = None,
        payload: dict | None = None,
        actor: str | None = None,
    ) -> AuditLog:
        entry = AuditLog(
            company_id=company_id,
            ledger_entry_id=ledger_entry_id,
            action=action,
            description=description,
            payload=to_jsonable(payload or {}),
            actor=actor,
        )
        self.db.add(entry)
        logger.debug(
            description,
            extra={"company_id": company_id or "-", "operation": action},
        )
        return entry

    def list_for_company(
        self, company_id: int, action: str | None = None
    ) -> list[AuditLog]:
        query = select(AuditLog).where(AuditLog.company_id == company_id)
        if action:
            query = query.where(AuditLog.action == action)
        return list(
            self.db.execute(query.order_by(AuditLog.id)).scalars().all()
        )
