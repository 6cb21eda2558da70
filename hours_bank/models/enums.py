"""
Shared enumerations for database models.

Python enums mapped to database enums, so an invalid contract
kind or change kind is rejected by the database as well.
"""

import enum


class ContractKind(str, enum.Enum):
    """What the contract is measured in."""
    HOURS = "hours"
    TICKETS = "tickets"
    BOTH = "both"

    @property
    def includes_hours(self) -> bool:
        return self in (ContractKind.HOURS, ContractKind.BOTH)

    @property
    def includes_tickets(self) -> bool:
        return self in (ContractKind.TICKETS, ContractKind.BOTH)


class QuantityKind(str, enum.Enum):
    """A single measured quantity (one side of a contract)."""
    HOURS = "hours"
    TICKETS = "tickets"


class AdjustmentDirection(str, enum.Enum):
    """Direction of a manual adjustment."""
    IN = "in"
    OUT = "out"


class ChangeKind(str, enum.Enum):
    """Why a ledger entry changed."""
    ADJUSTMENT = "adjustment"
    RECALCULATION = "recalculation"
    CORRECTION = "correction"


class ObservationSource(str, enum.Enum):
    """Where a note in the month's observation list comes from."""
    MANUAL = "manual"
    ADJUSTMENT = "adjustment"
