"""Tests for row validation and the ValidationResult container."""

import pytest

from plc_tag_exchange.validator import ValidationResult, check_name, validate_row


class TestValidationResult:
    def test_empty_is_valid(self):
        result = ValidationResult()
        assert result.is_valid
        assert result.row is None

    def test_warning_keeps_valid(self):
        result = ValidationResult()
        result.add_warning("odd type")
        assert result.is_valid

    def test_merge(self):
        a = ValidationResult(row=4)
        a.add_error("one")
        b = ValidationResult()
        b.add_error("two")
        b.add_warning("three")
        a.merge(b)
        assert a.errors == ["one", "two"]
        assert a.warnings == ["three"]
        assert a.row == 4

    def test_to_row_error(self):
        result = validate_row({"name": "", "data_type": "BOOL"}, "rockwell", index=3)
        error = result.to_row_error({"name": "", "data_type": "BOOL"})
        assert error.row == 3
        assert error.errors == ["Missing tag name"]
        assert error.raw == {"name": "", "data_type": "BOOL"}

    def test_to_row_error_needs_index(self):
        with pytest.raises(ValueError):
            ValidationResult(errors=["bad"]).to_row_error({})


class TestCheckName:
    def test_identifier(self):
        assert check_name("_Motor_1", "beckhoff").is_valid

    def test_invalid_characters(self):
        result = check_name("Motor-1 A", "siemens")
        assert result.errors == ["Tag name 'Motor-1 A' contains invalid characters: ' -'"]

    def test_leading_digit(self):
        assert check_name("9Lives", "siemens").errors == [
            "Tag name '9Lives' must start with a letter or underscore"
        ]


class TestValidateRow:
    def test_valid_row(self):
        result = validate_row({"name": "Motor1", "data_type": "BOOL", "address": "N7:0"}, "rockwell")
        assert result.is_valid
        assert result.warnings == []

    def test_missing_name(self):
        result = validate_row({"name": "", "data_type": "BOOL"}, "rockwell")
        assert result.errors == ["Missing tag name"]

    def test_missing_data_type(self):
        result = validate_row({"name": "Motor1"}, "siemens")
        assert result.errors == ["Missing data type"]

    def test_bad_name(self):
        result = validate_row({"name": "1Motor", "data_type": "BOOL"}, "beckhoff")
        assert len(result.errors) == 1
        assert "must start with a letter or underscore" in result.errors[0]

    def test_rockwell_name_limit(self):
        long_name = "A" * 41
        assert not validate_row({"name": long_name, "data_type": "DINT"}, "rockwell").is_valid
        assert validate_row({"name": long_name, "data_type": "DINT"}, "siemens").is_valid

    def test_invalid_address(self):
        result = validate_row({"name": "Start", "data_type": "Bool", "address": "I:1/0"}, "siemens")
        assert result.errors == ["Invalid Siemens address format: I:1/0"]

    def test_empty_address_allowed(self):
        assert validate_row({"name": "Start", "data_type": "BOOL", "address": ""}, "beckhoff").is_valid

    def test_unknown_type_is_warning(self):
        result = validate_row({"name": "Drive", "data_type": "UDT_Drive"}, "rockwell")
        assert result.is_valid
        assert result.warnings == ["Unrecognised rockwell data type 'UDT_Drive', mapped to DINT"]

    def test_accumulates_errors(self):
        result = validate_row({"name": "", "data_type": "", "address": "???"}, "rockwell")
        assert len(result.errors) == 3
