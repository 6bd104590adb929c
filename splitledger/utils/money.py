import decimal
from datetime import date, datetime, timezone
from typing import Optional

CENT = decimal.Decimal("0.01")
# Largest value a Numeric(12, 2) column holds
MAX_AMOUNT = decimal.Decimal("9999999999.99")


def to_money(value) -> decimal.Decimal:
    """Convert to a two-digit Decimal, refusing to silently drop precision."""
    try:
        amount = decimal.Decimal(str(value))
        if not amount.is_finite():
            raise ValueError(f"Invalid amount: {value!r}")
        if abs(amount) > MAX_AMOUNT:
            raise ValueError(f"Amount cannot exceed {MAX_AMOUNT}")
        if amount != amount.quantize(CENT):
            raise ValueError("Amount cannot have more than 2 decimal places")
        return amount.quantize(CENT)
    except decimal.InvalidOperation:
        raise ValueError(f"Invalid amount: {value!r}")


def format_money(value: Optional[decimal.Decimal]) -> Optional[str]:
    if value is None:
        return None
    return f"{decimal.Decimal(value).quantize(CENT):.2f}"


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def month_start(value: date) -> date:
    return value.replace(day=1)
