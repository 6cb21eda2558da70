"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from hours_bank.models.base import Base
from hours_bank.models.enums import (
    ContractKind,
    QuantityKind,
    AdjustmentDirection,
    ChangeKind,
    ObservationSource,
)
from hours_bank.models.company import Company
from hours_bank.models.contract import ContractParameters
from hours_bank.models.allocation import Allocation
from hours_bank.models.ledger_entry import MonthlyLedgerEntry, FIGURES
from hours_bank.models.segmented_entry import SegmentedLedgerEntry
from hours_bank.models.adjustment import Adjustment
from hours_bank.models.observation import LedgerObservation
from hours_bank.models.version import LedgerVersion
from hours_bank.models.audit_log import AuditLog
from hours_bank.models.rate import Rate
from hours_bank.models.usage import UsageSnapshot

__all__ = [
    "Base",
    "ContractKind",
    "QuantityKind",
    "AdjustmentDirection",
    "ChangeKind",
    "ObservationSource",
    "Company",
    "ContractParameters",
    "Allocation",
    "MonthlyLedgerEntry",
    "FIGURES",
    "SegmentedLedgerEntry",
    "Adjustment",
    "LedgerObservation",
    "LedgerVersion",
    "AuditLog",
    "Rate",
    "UsageSnapshot",
]
