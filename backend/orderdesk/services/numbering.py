# Overview: Human-readable order numbers, YYYY-NNNN, sequential within a year.

from __future__ import annotations

import re
from typing import Iterable, Optional

from ..storage import UnitOfWork

ORDER_NUMBER_RE = re.compile(r"^(\d{4})-(\d+)$")


def format_order_number(year: int, sequence: int) -> str:
    return f"{year}-{sequence:04d}"


def parse_order_number(number: str) -> Optional[tuple[int, int]]:
    """Return (year, sequence), or None for anything not shaped YYYY-NNNN."""
    match = ORDER_NUMBER_RE.match(number or "")
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def highest_sequence(numbers: Iterable[str], year: int) -> int:
    highest = 0
    for number in numbers:
        parsed = parse_order_number(number)
        if parsed and parsed[0] == year and parsed[1] > highest:
            highest = parsed[1]
    return highest


def next_order_number_from(numbers: Iterable[str], year: int) -> str:
    """
    Scan-based next number: highest sequence of `year` plus one, or
    YYYY-0001 when the year has no orders yet.

    Not safe on its own under concurrent creation; `next_order_number`
    only uses it to seed the per-year counter.
    """
    return format_order_number(year, highest_sequence(numbers, year) + 1)


def next_order_number(uow: UnitOfWork, year: int) -> str:
    """Reserve the next number for `year` inside the caller's transaction."""
    sequence = uow.next_sequence_value(
        year,
        seed=lambda: highest_sequence(uow.order_numbers_for_year(year), year),
    )
    return format_order_number(year, sequence)
