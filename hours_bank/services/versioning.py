"""
Ledger versions.

Every committed change to a monthly ledger entry leaves one
LedgerVersion behind holding the entry before and after the change.
Versions are append-only; nothing here updates or deletes them.
"""

import logging
from decimal import Decimal, InvalidOperation

from sqlalchemy import select
from sqlalchemy.orm import Session

from hours_bank.exceptions import NotFoundError
from hours_bank.models.enums import ChangeKind
from hours_bank.models.ledger_entry import FIGURES, MonthlyLedgerEntry
from hours_bank.models.version import LedgerVersion
from hours_bank.services.audit import to_jsonable

logger = logging.getLogger(__name__)

SNAPSHOT_FIELDS = (
    [f"hours_{name}" for name in FIGURES]
    + [f"tickets_{name}" for name in FIGURES]
    + [
        "total_to_bill",
        "is_cycle_end",
        "cycle_index",
        "hour_rate_used",
        "ticket_rate_used",
        "public_note",
    ]
)

NUMERIC_TOLERANCE = Decimal("0.01")


def snapshot(entry) -> dict:
    """JSON-safe copy of the entry's calculated state."""
    return {name: to_jsonable(getattr(entry, name)) for name in SNAPSHOT_FIELDS}


def _as_number(value):
    if isinstance(value, bool) or value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def values_equal(before, after, tolerance: Decimal = Decimal("0")) -> bool:
    left, right = _as_number(before), _as_number(after)
    if left is not None and right is not None:
        return abs(left - right) <= tolerance
    return before == after


def diff_snapshots(
    before: dict, after: dict, tolerance: Decimal = Decimal("0")
) -> dict:
    """
    Field-level difference between two snapshots.

    A field that goes from null to a value is "added", from a value
    to null "removed", and any other change "modified". Numbers
    within ``tolerance`` of each other count as equal.
    """
    added, removed, modified = {}, {}, {}
    for name in sorted(set(before) | set(after)):
        old, new = before.get(name), after.get(name)
        if old is None and new is None:
            continue
        if old is None:
            added[name] = new
        elif new is None:
            removed[name] = old
        elif not values_equal(old, new, tolerance):
            modified[name] = {"before": old, "after": new}
    return {"added": added, "removed": removed, "modified": modified}


def has_changes(before: dict, after: dict) -> bool:
    diff = diff_snapshots(before, after)
    return any(diff.values())


class VersionRecorder:
    """Writes and reads the before/after history of ledger entries."""

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        entry: MonthlyLedgerEntry,
        before: dict,
        reason: str,
        change_kind: ChangeKind,
        actor: str | None = None,
    ) -> LedgerVersion:
        """
        Bump the entry's version and store the before/after pair.

        Call after the new values have been written to ``entry``.
        """
        from_version = entry.version
        entry.version = from_version + 1
        version = LedgerVersion(
            ledger_entry_id=entry.id,
            from_version=from_version,
            to_version=entry.version,
            before=before,
            after=snapshot(entry),
            reason=reason,
            change_kind=change_kind,
            created_by=actor,
        )
        self.db.add(version)
        self.db.flush()

        logger.info(
            "Ledger entry v%s -> v%s (%s)",
            from_version,
            entry.version,
            change_kind.value,
            extra={
                "company_id": entry.company_id,
                "year": entry.year,
                "month": entry.month,
                "operation": "version",
            },
        )
        return version

    def list_versions(
        self, company_id: int, year: int, month: int
    ) -> list[LedgerVersion]:
        return list(
            self.db.execute(
                select(LedgerVersion)
                .join(MonthlyLedgerEntry)
                .where(
                    MonthlyLedgerEntry.company_id == company_id,
                    MonthlyLedgerEntry.year == year,
                    MonthlyLedgerEntry.month == month,
                )
                .order_by(LedgerVersion.to_version)
            ).scalars().all()
        )

    def get_version(self, version_id: int) -> LedgerVersion:
        version = self.db.get(LedgerVersion, version_id)
        if not version:
            raise NotFoundError(
                f"Version {version_id} not found",
                details={"version_id": version_id},
            )
        return version

    def compare_versions(self, version_id: int) -> dict:
        version = self.get_version(version_id)
        diff = diff_snapshots(version.before, version.after, NUMERIC_TOLERANCE)
        return {
            "version_id": version.id,
            "from_version": version.from_version,
            "to_version": version.to_version,
            **diff,
        }
