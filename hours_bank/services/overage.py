"""
Overage billing.

Prices the deficit of a closing month. An overage without a rate
cannot be priced and is an error: the month is never finalised
with a zero value standing in for a missing price.

The biller only reports a missing rate itself. The overage event is
built here but emitted by the calculator after the month is stored.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from hours_bank.exceptions import RateNotFound
from hours_bank.models.enums import QuantityKind
from hours_bank.services.duration import format_duration
from hours_bank.services.notifications import EventKind, LedgerEvent, Notifier
from hours_bank.services.periods import format_period
from hours_bank.services.sources import RateTable

logger = logging.getLogger(__name__)

MONEY_STEP = Decimal("0.01")


@dataclass(frozen=True)
class OverageCharge:
    kind: QuantityKind
    quantity: int | Decimal
    rate: Decimal
    amount: Decimal
    description: str


def overage_value(quantity, rate: Decimal, kind: QuantityKind) -> Decimal:
    """|quantity| x rate, hours priced per hour, rounded half-up to cents."""
    magnitude = abs(Decimal(quantity))
    if kind == QuantityKind.HOURS:
        magnitude = magnitude / Decimal(60)
    return (magnitude * Decimal(rate)).quantize(MONEY_STEP, rounding=ROUND_HALF_UP)


def billing_description(
    kind: QuantityKind,
    quantity,
    year: int,
    month: int,
    amount: Decimal,
    currency: str,
) -> str:
    if kind == QuantityKind.HOURS:
        shown = f"{format_duration(abs(quantity))} hours"
    else:
        shown = f"{abs(Decimal(quantity)).quantize(MONEY_STEP)} tickets"
    return (
        f"Overage of {shown} in period {format_period(year, month)} "
        f"- Amount: {amount} {currency}"
    )


class OverageBiller:

    def __init__(self, rates: RateTable, notifier: Notifier, currency: str):
        self.rates = rates
        self.notifier = notifier
        self.currency = currency

    def bill(
        self,
        company_id: int,
        year: int,
        month: int,
        kind: QuantityKind,
        quantity,
    ) -> OverageCharge:
        rate = self.rates.rate_for(company_id, year, month, kind)
        if rate is None:
            details = {
                "company_id": company_id,
                "period": format_period(year, month),
                "kind": kind.value,
            }
            self.notifier.emit(LedgerEvent(
                EventKind.RATE_MISSING, company_id, year, month, details,
            ))
            logger.warning(
                "No %s rate for overage",
                kind.value,
                extra={"company_id": company_id, "year": year, "month": month},
            )
            raise RateNotFound(
                f"No {kind.value} rate configured for company {company_id} "
                f"in {format_period(year, month)}",
                details=details,
            )

        amount = overage_value(quantity, rate, kind)
        description = billing_description(
            kind, quantity, year, month, amount, self.currency
        )
        return OverageCharge(
            kind=kind,
            quantity=quantity,
            rate=Decimal(rate),
            amount=amount,
            description=description,
        )

    @staticmethod
    def generated_event(
        company_id: int, year: int, month: int, charge: OverageCharge
    ) -> LedgerEvent:
        """Announcement of a priced overage, emitted once the month is written."""
        return LedgerEvent(
            EventKind.OVERAGE_GENERATED,
            company_id,
            year,
            month,
            {
                "kind": charge.kind.value,
                "quantity": str(charge.quantity),
                "amount": str(charge.amount),
            },
        )
