import pytest

from usdc_pay.payments.amounts import (
    MAX_AMOUNT,
    format_amount,
    meets_tolerance,
    parse_amount,
    validate_amount,
)
from usdc_pay.payments.exceptions import InvalidAmountError


@pytest.mark.parametrize(
    "text, expected",
    [
        ("1", 1_000_000),
        ("1.5", 1_500_000),
        ("0.01", 10_000),
        ("5.00", 5_000_000),
        (".25", 250_000),
        ("2.", 2_000_000),
        ("0.1234567", 123_456),
        ("0.9999999", 999_999),
        (" 3.5 ", 3_500_000),
    ],
)
def test_parse_amount(text, expected):
    assert parse_amount(text) == expected


def test_parse_truncates_instead_of_rounding():
    assert parse_amount("1.0000009") == 1_000_000


@pytest.mark.parametrize("text", ["", ".", "abc", "-1", "+1", "1.2.3", "1.2x", "1e6", "١"])
def test_parse_amount_rejects_malformed(text):
    with pytest.raises(InvalidAmountError):
        parse_amount(text)


@pytest.mark.parametrize(
    "raw, expected",
    [
        (0, "0.0"),
        (1, "0.000001"),
        (10_000, "0.01"),
        (1_500_000, "1.5"),
        (5_000_000, "5.0"),
        ("42000000", "42.0"),
    ],
)
def test_format_amount(raw, expected):
    assert format_amount(raw) == expected


def test_format_never_emits_bare_decimal_point():
    for raw in (0, 1_000_000, 7_000_000_000):
        assert not format_amount(raw).endswith(".")


def test_format_rejects_negative():
    with pytest.raises(InvalidAmountError):
        format_amount(-1)


@pytest.mark.parametrize("raw", [0, 1, 9, 10, 999_999, 1_000_000, 1_000_001, 123_456_789, MAX_AMOUNT])
def test_parse_inverts_format(raw):
    assert parse_amount(format_amount(raw)) == raw


def test_format_shortens_trailing_zeros_only():
    assert format_amount(parse_amount("5.10")) == "5.1"
    assert parse_amount(format_amount(parse_amount("5.10"))) == parse_amount("5.10")


def test_validate_amount_bounds():
    assert validate_amount("1000000") == MAX_AMOUNT
    with pytest.raises(InvalidAmountError):
        validate_amount("0")
    with pytest.raises(InvalidAmountError):
        validate_amount("0.0000001")
    with pytest.raises(InvalidAmountError):
        validate_amount("1000000.000001")


def test_tolerance_boundary():
    expected = parse_amount("5.00")
    assert meets_tolerance(parse_amount("4.95"), expected)
    assert not meets_tolerance(parse_amount("4.94"), expected)
    assert meets_tolerance(parse_amount("6"), expected)
