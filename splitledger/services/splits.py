import decimal
from typing import Any, Dict, List, Sequence

from splitledger.core.errors import ValidationError
from splitledger.models import SplitType
from splitledger.utils.money import CENT

HUNDRED = decimal.Decimal("100")


def _to_percentage(value) -> decimal.Decimal:
    # Stored as Numeric(5, 2); extra digits would not survive the round trip
    try:
        pct = decimal.Decimal(str(value))
        if not pct.is_finite() or pct <= 0 or pct > HUNDRED:
            raise ValidationError.field("participants", "Share percentages must be between 0 and 100")
        if pct != pct.quantize(CENT):
            raise ValidationError.field(
                "participants", "Share percentages cannot have more than 2 decimal places"
            )
        return pct.quantize(CENT)
    except decimal.InvalidOperation:
        raise ValidationError.field("participants", f"Invalid share percentage: {value!r}")


def calculate_shares(
    split_type: SplitType,
    amount: decimal.Decimal,
    participants: Sequence[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """Resolve each participant's share so that the shares add up to ``amount`` exactly.

    ``participants`` items carry ``payer_id`` and, depending on the split type,
    ``share_amount`` (FIXED) or ``share_percentage`` (PERCENTAGE). The result keeps
    the input order and always has ``payer_id``, ``share_amount`` and ``share_percentage``.
    """
    if not participants:
        raise ValidationError.field("participants", "At least one participant is required")

    if split_type == SplitType.EQUAL:
        count = len(participants)
        base = (amount / count).quantize(CENT, rounding=decimal.ROUND_DOWN)
        leftover_cents = int((amount - base * count) / CENT)
        return [
            {
                "payer_id": p["payer_id"],
                "share_amount": base + (CENT if index < leftover_cents else 0),
                "share_percentage": None,
            }
            for index, p in enumerate(participants)
        ]

    if split_type == SplitType.PERCENTAGE:
        if any(p.get("share_percentage") is None for p in participants):
            raise ValidationError.field(
                "participants", "Each participant must have a share_percentage for PERCENTAGE splits"
            )
        percentages = [_to_percentage(p["share_percentage"]) for p in participants]
        if sum(percentages) != HUNDRED:
            raise ValidationError.field("participants", "Share percentages must add up to 100")

        shares = [
            (amount * pct / HUNDRED).quantize(CENT, rounding=decimal.ROUND_HALF_UP)
            for pct in percentages
        ]
        # Rounding drift lands on the last participant
        shares[-1] = amount - sum(shares[:-1])
        return [
            {"payer_id": p["payer_id"], "share_amount": share, "share_percentage": pct}
            for p, share, pct in zip(participants, shares, percentages)
        ]

    if any(p.get("share_amount") is None for p in participants):
        raise ValidationError.field(
            "participants", "Each participant must have a share_amount for FIXED splits"
        )
    return [
        {"payer_id": p["payer_id"], "share_amount": p["share_amount"], "share_percentage": None}
        for p in participants
    ]
