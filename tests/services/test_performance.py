"""
Response time targets, measured against the SQLite test database.
"""

import time
from decimal import Decimal

from hours_bank.schemas.allocation import AllocationCreate


def elapsed(func, *args):
    started = time.perf_counter()
    result = func(*args)
    return time.perf_counter() - started, result


def test_single_month_calculation_under_two_seconds(
    service, company, make_contract, set_usage
):
    make_contract(company.id)
    set_usage(company.id, 2024, 1, consumed="80:00")

    seconds, _ = elapsed(service.get_or_calculate, company.id, 2024, 1)

    assert seconds < 2


def test_consolidated_view_under_one_second(
    service, company, make_contract, set_usage
):
    make_contract(company.id)
    set_usage(company.id, 2024, 1, consumed="80:00")
    service.get_or_calculate(company.id, 2024, 1)

    seconds, entry = elapsed(service.get_or_calculate, company.id, 2024, 1)

    assert entry.hours_consumption == 4800
    assert seconds < 1


def test_segmented_view_with_ten_allocations_under_one_second(
    service, company, make_contract, set_usage
):
    make_contract(company.id)
    set_usage(company.id, 2024, 1, consumed="80:00")
    for number in range(10):
        service.create_allocation(
            company.id,
            AllocationCreate(name=f"Team {number}", baseline_share_percent=Decimal("10")),
        )
    service.get_or_calculate(company.id, 2024, 1)

    seconds, segments = elapsed(service.get_segmented, company.id, 2024, 1)

    assert len(segments) == 10
    assert seconds < 1
