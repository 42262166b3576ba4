"""Tests for the structured text declaration parser."""

from plc_tag_exchange.models import RawTagTuple
from plc_tag_exchange.st_parser import parse_st_variables


PROGRAM_ST = """\
PROGRAM MAIN
VAR_INPUT
    StartPB  : BOOL;                 // Start button address=I:1/0
    Speed AT %IW64 : INT := 0;       (* drive speed *)
END_VAR
VAR_OUTPUT
    MotorOn : BOOL;
END_VAR
VAR
    A, B : REAL := 1.5;
    Label : STRING[20] := 'Line one';
    Timer1 : TON;
END_VAR
VAR_GLOBAL CONSTANT
    MaxSpeed : DINT := 1500;
END_VAR

MotorOn := StartPB AND NOT Stop;
Counter : INT;
END_PROGRAM
"""


def _by_name(result):
    return {r.name: r for r in result}


class TestBlocks:
    def test_names_in_order(self):
        result = parse_st_variables(PROGRAM_ST)
        assert [r.name for r in result] == [
            "StartPB", "Speed", "MotorOn", "A", "B", "Label", "Timer1", "MaxSpeed",
        ]

    def test_scopes(self):
        tags = _by_name(parse_st_variables(PROGRAM_ST))
        assert tags["StartPB"].scope == "input"
        assert tags["MotorOn"].scope == "output"
        assert tags["A"].scope == "local"
        assert tags["MaxSpeed"].scope == "global"

    def test_other_blocks(self):
        code = (
            "VAR_IN_OUT\n  Ref : INT;\nEND_VAR\n"
            "VAR_TEMP\n  Tmp : INT;\nEND_VAR\n"
            "VAR_STAT\n  Keep : INT;\nEND_VAR\n"
        )
        assert [r.scope for r in parse_st_variables(code)] == ["in_out", "temp", "local"]

    def test_lowercase_keywords(self):
        result = parse_st_variables("var\n  x : bool;\nend_var\n")
        assert result == [RawTagTuple(name="x", data_type="BOOL", scope="local")]

    def test_outside_blocks_ignored(self):
        assert parse_st_variables("Counter : INT;\nx := 1;\n") == []

    def test_empty(self):
        assert parse_st_variables("") == []
        assert parse_st_variables(None) == []


class TestDeclarations:
    def test_address_note_in_comment(self):
        tag = _by_name(parse_st_variables(PROGRAM_ST))["StartPB"]
        assert tag.address == "I:1/0"
        assert tag.description == "Start button"

    def test_located_declaration(self):
        tag = _by_name(parse_st_variables(PROGRAM_ST))["Speed"]
        assert tag.address == "%IW64"
        assert tag.data_type == "INT"
        assert tag.default_value == "0"
        assert tag.description == "drive speed"

    def test_multiple_names(self):
        tags = _by_name(parse_st_variables(PROGRAM_ST))
        assert tags["A"].data_type == tags["B"].data_type == "REAL"
        assert tags["B"].default_value == "1.5"

    def test_quoted_default(self):
        tag = _by_name(parse_st_variables(PROGRAM_ST))["Label"]
        assert tag.default_value == "Line one"
        assert tag.data_type == "STRING[20]"

    def test_array_type(self):
        result = parse_st_variables("VAR\n  Buf : ARRAY [0..9] OF  int;\nEND_VAR")
        assert result[0].data_type == "ARRAY [0..9] OF INT"

    def test_multiline_comment(self):
        code = (
            "VAR\n"
            "  (* a comment\n"
            "     Hidden : BOOL;\n"
            "  *) Shown : BOOL;\n"
            "END_VAR\n"
        )
        assert [r.name for r in parse_st_variables(code)] == ["Shown"]

    def test_scope_note_removed_from_description(self):
        code = "VAR\n  Pump : BOOL; // scope=global, pump running\nEND_VAR"
        assert parse_st_variables(code)[0].description == "pump running"

    def test_vendor_hint_ignored(self):
        assert parse_st_variables(PROGRAM_ST, "siemens") == parse_st_variables(PROGRAM_ST)
