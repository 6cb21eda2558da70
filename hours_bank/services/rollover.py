"""
Period-boundary and rollover rules.

Decides, for one month, whether the month closes a cycle and what
balance is carried into the next month.

Which months close a cycle depends on the contract:

* Standard contracts close on a fixed calendar window. Counting the
  effective month as month 1, a month closes the cycle when its
  count is a multiple of assessment_period_months.
* Special-rollover contracts close on a running counter. Each month
  takes the next position in the cycle (1..cycles_before_zeroing)
  and the month that reaches cycles_before_zeroing closes it.

Inside a cycle the whole balance moves on, surplus or deficit. At
the close a deficit becomes overage, and a surplus is either
forfeited (standard) or partly carried (special rollover).
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN

from hours_bank.models.contract import ContractParameters
from hours_bank.models.enums import QuantityKind
from hours_bank.services.periods import months_between

TICKET_STEP = Decimal("0.01")


@dataclass(frozen=True)
class CyclePosition:
    cycle_index: int
    is_cycle_end: bool

    @property
    def next_index(self) -> int:
        return 1 if self.is_cycle_end else self.cycle_index + 1


@dataclass(frozen=True)
class RolloverOutcome:
    rollover_out: int | Decimal
    # Positive magnitude of the deficit billed at the close, else zero.
    overage: int | Decimal


def months_elapsed(params: ContractParameters, year: int, month: int) -> int:
    """The effective month is month 1."""
    effective = (params.effective_year, params.effective_month)
    return months_between(effective, (year, month)) + 1


def cycle_length(params: ContractParameters) -> int:
    if params.has_special_rollover:
        return max(params.cycles_before_zeroing, 1)
    return max(params.assessment_period_months, 1)


def calendar_cycle_index(params: ContractParameters, year: int, month: int) -> int:
    elapsed = months_elapsed(params, year, month)
    return ((elapsed - 1) % cycle_length(params)) + 1


def cycle_position(
    params: ContractParameters,
    year: int,
    month: int,
    previous_entry=None,
) -> CyclePosition:
    """
    Where the month sits in its cycle.

    ``previous_entry`` is the stored ledger entry of the month before,
    if any. It only matters for special-rollover contracts, whose
    counter continues from the previous month. A new parameter
    version always starts a fresh cycle in its effective month.
    """
    length = cycle_length(params)

    if not params.has_special_rollover:
        index = calendar_cycle_index(params, year, month)
        return CyclePosition(index, index == length)

    elapsed = months_elapsed(params, year, month)
    if elapsed <= 1:
        index = 1
    elif previous_entry is not None:
        index = 1 if previous_entry.is_cycle_end else previous_entry.cycle_index + 1
    else:
        index = calendar_cycle_index(params, year, month)

    # A shorter cycle in new parameters closes at once
    index = min(index, length)
    return CyclePosition(index, index == length)


def carry_share(balance, percent: Decimal, kind: QuantityKind):
    """balance x percent / 100, rounded toward zero to the minute or 0.01 ticket."""
    share = Decimal(balance) * Decimal(percent) / Decimal(100)
    if kind == QuantityKind.HOURS:
        return int(share.to_integral_value(rounding=ROUND_DOWN))
    return share.quantize(TICKET_STEP, rounding=ROUND_DOWN)


def apply_rollover(
    balance,
    position: CyclePosition,
    params: ContractParameters,
    kind: QuantityKind,
) -> RolloverOutcome:
    """Rollover out and overage for one kind's monthly balance."""
    zero = 0 if kind == QuantityKind.HOURS else Decimal("0.00")

    if not position.is_cycle_end:
        return RolloverOutcome(rollover_out=balance, overage=zero)

    if balance < 0:
        return RolloverOutcome(rollover_out=zero, overage=-balance)

    if params.has_special_rollover:
        return RolloverOutcome(
            rollover_out=carry_share(balance, params.monthly_rollover_percent, kind),
            overage=zero,
        )

    # Standard contract: surplus is forfeited at the close
    return RolloverOutcome(rollover_out=zero, overage=zero)
