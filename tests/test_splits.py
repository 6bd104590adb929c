import decimal
from datetime import date, datetime
import uuid

import pytest

from splitledger.core.errors import ValidationError
from splitledger.models import SplitType
from splitledger.services.splits import calculate_shares
from splitledger.utils.money import to_money, format_money, format_timestamp, month_start

D = decimal.Decimal


def _payers(n):
    return [{"payer_id": uuid.uuid4()} for _ in range(n)]


def test_equal_split_hands_leftover_cents_to_first_participants():
    shares = calculate_shares(SplitType.EQUAL, D("100.00"), _payers(3))
    assert [s["share_amount"] for s in shares] == [D("33.34"), D("33.33"), D("33.33")]


def test_equal_split_without_remainder():
    shares = calculate_shares(SplitType.EQUAL, D("90.00"), _payers(3))
    assert [s["share_amount"] for s in shares] == [D("30.00")] * 3


def test_percentage_split_sums_to_amount():
    participants = [
        {"payer_id": uuid.uuid4(), "share_percentage": "33.33"},
        {"payer_id": uuid.uuid4(), "share_percentage": "33.33"},
        {"payer_id": uuid.uuid4(), "share_percentage": "33.34"},
    ]
    shares = calculate_shares(SplitType.PERCENTAGE, D("10.00"), participants)
    assert sum(s["share_amount"] for s in shares) == D("10.00")
    assert shares[0]["share_percentage"] == D("33.33")


def test_percentage_split_requires_100_percent():
    participants = [
        {"payer_id": uuid.uuid4(), "share_percentage": 50},
        {"payer_id": uuid.uuid4(), "share_percentage": 49},
    ]
    with pytest.raises(ValidationError) as exc:
        calculate_shares(SplitType.PERCENTAGE, D("10.00"), participants)
    assert "participants" in exc.value.field_errors


def test_percentage_split_refuses_sub_cent_percentages():
    participants = [
        {"payer_id": uuid.uuid4(), "share_percentage": "33.333"},
        {"payer_id": uuid.uuid4(), "share_percentage": "33.333"},
        {"payer_id": uuid.uuid4(), "share_percentage": "33.334"},
    ]
    with pytest.raises(ValidationError) as exc:
        calculate_shares(SplitType.PERCENTAGE, D("10.00"), participants)
    assert "2 decimal places" in exc.value.message


@pytest.mark.parametrize("bad", ["abc", "0", "-10", "150", "NaN"])
def test_percentage_split_refuses_out_of_range_percentages(bad):
    participants = [
        {"payer_id": uuid.uuid4(), "share_percentage": bad},
        {"payer_id": uuid.uuid4(), "share_percentage": "50"},
    ]
    with pytest.raises(ValidationError) as exc:
        calculate_shares(SplitType.PERCENTAGE, D("10.00"), participants)
    assert "participants" in exc.value.field_errors


def test_percentage_split_requires_every_percentage():
    participants = [{"payer_id": uuid.uuid4(), "share_percentage": 100}, {"payer_id": uuid.uuid4()}]
    with pytest.raises(ValidationError):
        calculate_shares(SplitType.PERCENTAGE, D("10.00"), participants)


def test_fixed_split_requires_every_amount():
    with pytest.raises(ValidationError):
        calculate_shares(SplitType.FIXED, D("10.00"), [{"payer_id": uuid.uuid4()}])


def test_fixed_split_keeps_input_order():
    payers = [{"payer_id": uuid.uuid4(), "share_amount": D("4.00")},
              {"payer_id": uuid.uuid4(), "share_amount": D("6.00")}]
    shares = calculate_shares(SplitType.FIXED, D("10.00"), payers)
    assert [s["payer_id"] for s in shares] == [p["payer_id"] for p in payers]


@pytest.mark.parametrize("raw", ["abc", "1.001", "NaN", "Infinity", "1e30", "10000000000.00"])
def test_to_money_rejects_bad_amounts(raw):
    with pytest.raises(ValueError):
        to_money(raw)


def test_money_formatting():
    assert to_money("50") == D("50.00")
    assert format_money(D("50")) == "50.00"
    assert format_money(None) is None
    assert month_start(date(2024, 3, 15)) == date(2024, 3, 1)


def test_naive_timestamps_are_reported_as_utc():
    assert format_timestamp(datetime(2024, 3, 15, 12, 0)) == "2024-03-15T12:00:00+00:00"
