"""
Allocation service.

Allocations split a company's consolidated month into named
segments by baseline share. The split itself (split_entry) is a pure
function of the entry and the active allocations. Its result is
cached as SegmentedLedgerEntry rows, which are thrown away whenever
the entry is rewritten or the allocation set changes.

Rounding uses the largest-remainder method in the smallest unit of
each field (minute, ticket cent, currency cent), so a fully
allocated company's segments add up exactly to the parent entry.
"""

import logging
from decimal import Decimal

from sqlalchemy import select, delete
from sqlalchemy.orm import Session

from hours_bank.exceptions import InvalidAllocation, NotFoundError
from hours_bank.models.allocation import Allocation
from hours_bank.models.company import Company
from hours_bank.models.ledger_entry import FIGURES, MonthlyLedgerEntry
from hours_bank.models.segmented_entry import SegmentedLedgerEntry
from hours_bank.schemas.allocation import AllocationCreate, AllocationUpdate
from hours_bank.services import audit as audit_actions
from hours_bank.services.audit import AuditService

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")
CENT = Decimal("0.01")

# (column, stored as whole minutes?)
SPLIT_FIELDS = (
    [(f"hours_{name}", name != "overage_value") for name in FIGURES]
    + [(f"tickets_{name}", False) for name in FIGURES]
    + [("total_to_bill", False)]
)


def largest_remainder(total: int, shares: list[Decimal]) -> list[int]:
    """
    Split an integer amount by percentage shares.

    Every part gets the floor of its exact share; the units left
    over go one each to the parts with the largest remainders
    (earlier parts first on ties). With shares adding up to 100 the
    parts add up to ``total`` exactly.
    """
    sign = -1 if total < 0 else 1
    magnitude = abs(total)
    exact = [Decimal(magnitude) * share / HUNDRED for share in shares]
    parts = [int(value) for value in exact]

    covered = sum(shares, Decimal("0"))
    if covered >= HUNDRED:
        target = magnitude
    else:
        target = int(Decimal(magnitude) * covered / HUNDRED)

    leftover = max(target - sum(parts), 0)
    order = sorted(
        range(len(shares)),
        key=lambda i: (exact[i] - parts[i], -i),
        reverse=True,
    )
    for i in order[:leftover]:
        parts[i] += 1
    return [sign * part for part in parts]


def split_entry(entry, allocations: list[Allocation]) -> list[dict]:
    """Per-allocation values for every additive field of ``entry``."""
    shares = [Decimal(a.baseline_share_percent) for a in allocations]
    rows = [{} for _ in allocations]

    for column, in_minutes in SPLIT_FIELDS:
        value = getattr(entry, column)
        if value is None:
            for row in rows:
                row[column] = None
            continue

        if in_minutes:
            parts = largest_remainder(int(value), shares)
        else:
            cents = int((Decimal(value) / CENT).to_integral_value())
            parts = [Decimal(p) * CENT for p in largest_remainder(cents, shares)]

        for row, part in zip(rows, parts):
            row[column] = part
    return rows


class AllocationService:
    """
    Allocation CRUD and the per-allocation split of ledger entries.

    Segments are a cache of the entry and are rebuilt whenever the
    entry or the allocations change.
    """

    def __init__(self, db: Session, audit: AuditService | None = None):
        self.db = db
        self.audit = audit or AuditService(db)

    def _get_company(self, company_id: int) -> Company:
        company = self.db.get(Company, company_id)
        if not company:
            raise NotFoundError(
                f"Company {company_id} not found",
                details={"company_id": company_id},
            )
        return company

    def get_allocation(self, allocation_id: int) -> Allocation:
        allocation = self.db.get(Allocation, allocation_id)
        if not allocation:
            raise NotFoundError(
                f"Allocation {allocation_id} not found",
                details={"allocation_id": allocation_id},
            )
        return allocation

    def list_allocations(
        self, company_id: int, active_only: bool = False
    ) -> list[Allocation]:
        query = select(Allocation).where(Allocation.company_id == company_id)
        if active_only:
            query = query.where(Allocation.is_active.is_(True))
        return list(
            self.db.execute(query.order_by(Allocation.id)).scalars().all()
        )

    def _active_total(self, company_id: int, exclude_id: int | None = None) -> Decimal:
        total = Decimal("0")
        for allocation in self.list_allocations(company_id, active_only=True):
            if allocation.id != exclude_id:
                total += Decimal(allocation.baseline_share_percent)
        return total

    def _check_total(self, company_id: int, share: Decimal, exclude_id=None):
        current = self._active_total(company_id, exclude_id)
        if current + share > HUNDRED:
            raise InvalidAllocation(
                f"Active allocations would total {current + share}% "
                f"(maximum 100%)",
                details={
                    "company_id": company_id,
                    "allocated_percent": str(current),
                    "requested_percent": str(share),
                },
            )

    def _check_name(self, company_id: int, name: str, exclude_id=None):
        for allocation in self.list_allocations(company_id, active_only=True):
            if allocation.id != exclude_id and allocation.name == name:
                raise InvalidAllocation(
                    f"An active allocation named '{name}' already exists",
                    details={"company_id": company_id, "name": name},
                )

    def create(
        self,
        company_id: int,
        data: AllocationCreate,
        actor: str | None = None,
    ) -> Allocation:
        self._get_company(company_id)
        name = data.name.strip()
        self._check_name(company_id, name)
        self._check_total(company_id, data.baseline_share_percent)

        allocation = Allocation(
            company_id=company_id,
            name=name,
            baseline_share_percent=data.baseline_share_percent,
            is_active=True,
            created_by=actor,
            updated_by=actor,
        )
        self.db.add(allocation)
        self.db.flush()
        self._changed(company_id, "created", allocation, actor)
        return allocation

    def update(
        self,
        allocation_id: int,
        data: AllocationUpdate,
        actor: str | None = None,
    ) -> Allocation:
        allocation = self.get_allocation(allocation_id)
        company_id = allocation.company_id

        name = data.name.strip() if data.name is not None else allocation.name
        share = (
            data.baseline_share_percent
            if data.baseline_share_percent is not None
            else Decimal(allocation.baseline_share_percent)
        )
        active = data.is_active if data.is_active is not None else allocation.is_active

        if active:
            self._check_name(company_id, name, exclude_id=allocation.id)
            self._check_total(company_id, share, exclude_id=allocation.id)

        allocation.name = name
        allocation.baseline_share_percent = share
        allocation.is_active = active
        allocation.updated_by = actor
        self.db.flush()
        self._changed(company_id, "updated", allocation, actor)
        return allocation

    def deactivate(self, allocation_id: int, actor: str | None = None) -> Allocation:
        allocation = self.get_allocation(allocation_id)
        if not allocation.is_active:
            raise InvalidAllocation(
                f"Allocation {allocation_id} is already inactive",
                details={"allocation_id": allocation_id},
            )
        allocation.is_active = False
        allocation.updated_by = actor
        self.db.flush()
        self._changed(allocation.company_id, "deactivated", allocation, actor)
        return allocation

    def _changed(self, company_id: int, what: str, allocation: Allocation, actor):
        self.invalidate(company_id)
        self.audit.record(
            audit_actions.ALLOCATIONS_CHANGED,
            f"Allocation '{allocation.name}' {what}",
            company_id=company_id,
            payload={
                "allocation_id": allocation.id,
                "name": allocation.name,
                "baseline_share_percent": allocation.baseline_share_percent,
                "is_active": allocation.is_active,
            },
            actor=actor,
        )
        logger.info(
            "Allocation %s %s",
            allocation.id,
            what,
            extra={"company_id": company_id, "operation": "allocation"},
        )

    def validate_shares(self, company_id: int) -> dict:
        """
        Check the active allocation set.

        Errors make the set unusable; warnings (such as part of the
        baseline being left unallocated) are for the administrator.
        """
        active = self.list_allocations(company_id, active_only=True)
        total = sum(
            (Decimal(a.baseline_share_percent) for a in active), Decimal("0")
        )
        errors, warnings = [], []

        for allocation in active:
            share = Decimal(allocation.baseline_share_percent)
            if share <= 0 or share > HUNDRED:
                errors.append(
                    f"Allocation '{allocation.name}' has an invalid share ({share}%)"
                )
        if total > HUNDRED:
            errors.append(f"Active allocations total {total}%, above 100%")
        elif active and total < HUNDRED:
            warnings.append(f"{HUNDRED - total}% of the baseline is not allocated")
        if not active:
            warnings.append("The company has no active allocations")

        return {"total_percent": total, "errors": errors, "warnings": warnings}

    # --- Segmented view cache ---

    def invalidate(self, company_id: int) -> None:
        """Drop every cached segment of the company."""
        entry_ids = select(MonthlyLedgerEntry.id).where(
            MonthlyLedgerEntry.company_id == company_id
        )
        self.db.execute(
            delete(SegmentedLedgerEntry)
            .where(SegmentedLedgerEntry.ledger_entry_id.in_(entry_ids))
            .execution_options(synchronize_session="fetch")
        )

    def invalidate_entry(self, ledger_entry_id: int) -> None:
        self.db.execute(
            delete(SegmentedLedgerEntry)
            .where(SegmentedLedgerEntry.ledger_entry_id == ledger_entry_id)
            .execution_options(synchronize_session="fetch")
        )

    def segment(self, entry: MonthlyLedgerEntry) -> list[SegmentedLedgerEntry]:
        """Segmented view of ``entry``, from cache or freshly split."""
        allocations = self.list_allocations(entry.company_id, active_only=True)
        if not allocations:
            return []

        cached = list(
            self.db.execute(
                select(SegmentedLedgerEntry)
                .where(SegmentedLedgerEntry.ledger_entry_id == entry.id)
                .order_by(SegmentedLedgerEntry.allocation_id)
            ).scalars().all()
        )
        if [s.allocation_id for s in cached] == [a.id for a in allocations]:
            return cached
        if cached:
            self.invalidate_entry(entry.id)

        segments = [
            SegmentedLedgerEntry(
                ledger_entry_id=entry.id,
                allocation=allocation,
                **values,
            )
            for allocation, values in zip(allocations, split_entry(entry, allocations))
        ]
        self.db.add_all(segments)
        self.db.flush()
        return segments
