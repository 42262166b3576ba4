"""Tests for per-vendor address grammars and tag type derivation."""

import pytest

from plc_tag_exchange import addresses
from plc_tag_exchange.models import TagType, Vendor


ROCKWELL_VALID = [
    "I:1/0", "O:2/0", "N7:0", "N7:0/3", "F8:1", "B3:0", "B3:0/5",
    "T4:0", "C5:0", "R6:0", "S2:1", "Motor_Run", "_hidden",
]

SIEMENS_VALID = [
    "I0.0", "E0.0", "Q0.1", "A0.1", "M10.7", "IW64", "QB0", "MD100",
    "DB1.DBX0.1", "DB1.DBD0", "DB10.DBW4", "L0.0", "ConveyorStart",
]

BECKHOFF_VALID = [
    "%I0.0", "%Q2", "%M1.5", "%IB0", "%QW1", "%MD200", "%ML100",
    "%IX0.0", "%QX1.7", "GVL.Start", "MAIN.Counter", "bSensor",
]


class TestRockwell:
    @pytest.mark.parametrize("address", ROCKWELL_VALID)
    def test_valid(self, address):
        assert addresses.validate_rockwell_address(address)

    @pytest.mark.parametrize("address", ["%I0.0", "I0.0", "DB1.DBD0", "GVL.Start", "N7", "I:1"])
    def test_cross_vendor_rejected(self, address):
        assert not addresses.validate_rockwell_address(address)

    def test_case_insensitive(self):
        assert addresses.validate_rockwell_address("n7:0")


class TestSiemens:
    @pytest.mark.parametrize("address", SIEMENS_VALID)
    def test_valid(self, address):
        assert addresses.validate_siemens_address(address)

    @pytest.mark.parametrize("address", ["I:1/0", "%IX0.0", "N7:0", "DB1.DBZ0", "MAIN.Counter"])
    def test_cross_vendor_rejected(self, address):
        assert not addresses.validate_siemens_address(address)


class TestBeckhoff:
    @pytest.mark.parametrize("address", BECKHOFF_VALID)
    def test_valid(self, address):
        assert addresses.validate_beckhoff_address(address)

    @pytest.mark.parametrize("address", ["I:1/0", "N7:0", "DB1.DBX0.1", "%Z0.0", "OTHER.Start"])
    def test_cross_vendor_rejected(self, address):
        assert not addresses.validate_beckhoff_address(address)


class TestValidateAddress:
    def test_dispatches_by_vendor(self):
        assert addresses.validate_address("N7:0", "rockwell")
        assert addresses.validate_address("DB1.DBX0.1", Vendor.SIEMENS)
        assert addresses.validate_address("%IX0.0", "BECKHOFF")

    def test_empty_is_not_valid(self):
        assert not addresses.validate_address("", "rockwell")
        assert not addresses.validate_address("   ", "siemens")

    def test_non_string(self):
        assert not addresses.validate_address(None, "beckhoff")

    def test_unknown_vendor(self):
        with pytest.raises(ValueError, match="Unsupported vendor"):
            addresses.validate_address("N7:0", "omron")


class TestIsSymbolic:
    def test_identifier(self):
        assert addresses.is_symbolic("Motor1")

    def test_absolute(self):
        assert not addresses.is_symbolic("I:1/0")
        assert not addresses.is_symbolic("")


class TestDeriveTagType:
    @pytest.mark.parametrize("address, vendor, expected", [
        ("I:1/0", "rockwell", TagType.INPUT),
        ("O:2/0", "rockwell", TagType.OUTPUT),
        ("N7:0", "rockwell", TagType.MEMORY),
        ("T4:0", "rockwell", TagType.MEMORY),
        ("I0.0", "siemens", TagType.INPUT),
        ("E0.0", "siemens", TagType.INPUT),
        ("IW64", "siemens", TagType.INPUT),
        ("Q0.1", "siemens", TagType.OUTPUT),
        ("a0.1", "siemens", TagType.OUTPUT),
        ("M0.0", "siemens", TagType.MEMORY),
        ("L0.0", "siemens", TagType.TEMP),
        ("DB1.DBX0.0", "siemens", TagType.MEMORY),
        ("%IX0.0", "beckhoff", TagType.INPUT),
        ("%QW2", "beckhoff", TagType.OUTPUT),
        ("%MD4", "beckhoff", TagType.MEMORY),
        ("%T0", "beckhoff", TagType.TEMP),
        ("GVL.Start", "beckhoff", TagType.MEMORY),
    ])
    def test_class_letter(self, address, vendor, expected):
        assert addresses.derive_tag_type(address, vendor) == expected

    @pytest.mark.parametrize("address", ["", None, "   ", "Motor1", "???"])
    def test_total_defaults_to_memory(self, address):
        for vendor in Vendor:
            assert addresses.derive_tag_type(address, vendor) == TagType.MEMORY
