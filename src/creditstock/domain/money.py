from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

_CENT = Decimal("0.01")

# Sorts unparseable timestamps after every real one in a newest-first list.
EPOCH_FLOOR = datetime.min.replace(tzinfo=timezone.utc)


def _to_decimal(value: object) -> Decimal:
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Not a number: {value!r}") from e
    if not number.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return number


def _to_cents(number: Decimal) -> float:
    try:
        return float(number.quantize(_CENT, rounding=ROUND_HALF_UP))
    except InvalidOperation as e:
        raise ValueError(f"Amount out of range: {number}") from e


def round_money(value: object) -> float:
    """Round half away from zero to 2 decimals."""
    return _to_cents(_to_decimal(value))


def line_amount(quantity: int, rate: float) -> float:
    return _to_cents(_to_decimal(quantity) * _to_decimal(rate))


def sum_money(values) -> float:
    return _to_cents(sum((_to_decimal(v) for v in values), Decimal("0")))


def now_iso(clock=None) -> str:
    moment = clock() if clock else datetime.now().astimezone()
    return moment.isoformat(timespec="milliseconds")


def parse_timestamp(value: object) -> datetime | None:
    """Parse an ISO-8601 timestamp to an aware datetime. Naive values are local time."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


def sort_key(value: object) -> datetime:
    return parse_timestamp(value) or EPOCH_FLOOR
