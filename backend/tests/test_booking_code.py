"""
Tests for booking reference generation.
"""

import re

import pytest

from app.services.booking_service import generate_booking_code, to_base36


@pytest.mark.parametrize("value, expected", [
    (0, "0"),
    (9, "9"),
    (10, "A"),
    (35, "Z"),
    (36, "10"),
    (1295, "ZZ"),
    (1296, "100"),
])
def test_to_base36(value, expected):
    assert to_base36(value) == expected


def test_to_base36_rejects_negative():
    with pytest.raises(ValueError):
        to_base36(-1)


def test_code_layout():
    """EP + base36 timestamp + 5 zero-padded random characters."""
    assert generate_booking_code(now_ms=36, random_part=1) == "EP1000001"
    assert generate_booking_code(now_ms=0, random_part=36 ** 5 - 1) == "EP0ZZZZZ"


def test_generated_codes_are_uppercase_base36():
    code = generate_booking_code()
    assert re.fullmatch(r"EP[0-9A-Z]+", code)
    assert code == code.upper()


def test_generated_codes_differ():
    codes = {generate_booking_code() for _ in range(200)}
    assert len(codes) == 200
