"""
Duration arithmetic.

Hours are carried through the engine as signed integer minutes and
only turned into "H:MM" text at the edges (API, billing notes).
Negative durations are normal: a deficit is a negative balance.
"""

import re
from decimal import Decimal, ROUND_HALF_UP


_DURATION_PATTERN = re.compile(r"^\s*(-)?\s*(\d+)(?::(\d+))?\s*$")


class InvalidDuration(ValueError):
    """Text could not be read as a duration."""


def parse_duration_strict(text) -> int:
    """
    Parse "[-]H:MM" or a bare hour count into minutes.

    Minutes of 60 or more are normalised ("1:75" is 135 minutes).
    Raises InvalidDuration for anything else.
    """
    if isinstance(text, bool) or text is None:
        raise InvalidDuration(f"Not a duration: {text!r}")
    if isinstance(text, int):
        return text * 60

    match = _DURATION_PATTERN.match(str(text))
    if not match:
        raise InvalidDuration(f"Not a duration: {text!r}")

    negative, hours, minutes = match.groups()
    total = int(hours) * 60 + int(minutes or 0)
    return -total if negative else total


def parse_duration(text) -> int:
    """Lenient parse: malformed input reads as zero minutes."""
    try:
        return parse_duration_strict(text)
    except InvalidDuration:
        return 0


def format_duration(minutes: int) -> str:
    """Render minutes as "H:MM", with a leading "-" for deficits."""
    sign = "-" if minutes < 0 else ""
    hours, rest = divmod(abs(minutes), 60)
    return f"{sign}{hours}:{rest:02d}"


def add_durations(*minutes: int) -> int:
    return sum(minutes)


def subtract_durations(minuend: int, subtrahend: int) -> int:
    return minuend - subtrahend


def minutes_to_decimal_hours(minutes: int) -> Decimal:
    """90 minutes -> Decimal("1.50")."""
    return (Decimal(minutes) / Decimal(60)).quantize(
        Decimal("0.01"), rounding=ROUND_HALF_UP
    )

