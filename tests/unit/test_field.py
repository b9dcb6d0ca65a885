"""Tests for the field guard and encoding helpers."""

import pytest

from zkpool.exceptions import OutOfFieldError
from zkpool.utils.encoding import (
    address_to_field,
    field_to_hex,
    hex_to_field,
    normalize_address,
    parse_field,
    short_hex,
)
from zkpool.utils.field import FIELD_MODULUS, check_in_field, is_in_field, to_field


class TestFieldGuard:
    """Tests for check_in_field."""

    def test_accepts_zero_and_max(self):
        assert check_in_field(0) == 0
        assert check_in_field(FIELD_MODULUS - 1) == FIELD_MODULUS - 1

    def test_rejects_modulus(self):
        with pytest.raises(OutOfFieldError):
            check_in_field(FIELD_MODULUS)

    def test_rejects_above_modulus(self):
        with pytest.raises(OutOfFieldError):
            check_in_field(2**256 - 1)

    def test_rejects_negative(self):
        with pytest.raises(OutOfFieldError):
            check_in_field(-1)

    def test_rejects_non_integers(self):
        with pytest.raises(TypeError):
            check_in_field("5")
        with pytest.raises(TypeError):
            check_in_field(True)

    def test_is_in_field(self):
        assert is_in_field(42)
        assert not is_in_field(FIELD_MODULUS)
        assert not is_in_field(None)

    def test_to_field_reduces(self):
        assert to_field(FIELD_MODULUS + 5) == 5
        assert to_field(b"\x01\x00") == 256


class TestEncoding:
    """Tests for hex and address conversions."""

    def test_field_to_hex_is_padded(self):
        assert field_to_hex(1) == "0x" + "0" * 63 + "1"
        assert len(field_to_hex(FIELD_MODULUS - 1)) == 66

    def test_field_to_hex_rejects_oversized(self):
        with pytest.raises(ValueError):
            field_to_hex(2**256)

    def test_hex_round_trip(self):
        value = 123456789
        assert hex_to_field(field_to_hex(value)) == value
        assert hex_to_field("ff") == 255

    def test_hex_to_field_rejects_empty(self):
        with pytest.raises(ValueError):
            hex_to_field("0x")

    def test_parse_field(self):
        assert parse_field(7) == 7
        assert parse_field("0x10") == 16
        assert parse_field("10") == 10

    def test_normalize_address(self):
        assert normalize_address("0x" + "AB" * 20) == "0x" + "ab" * 20
        assert normalize_address("cd" * 20) == "0x" + "cd" * 20

    def test_normalize_address_rejects_bad_input(self):
        with pytest.raises(ValueError):
            normalize_address("0x1234")
        with pytest.raises(ValueError):
            normalize_address("0x" + "zz" * 20)
        with pytest.raises(ValueError):
            normalize_address(1234)

    def test_address_to_field(self):
        assert address_to_field("0x" + "00" * 19 + "ff") == 255

    def test_short_hex(self):
        assert short_hex(255) == "0x0000000000000000..."
