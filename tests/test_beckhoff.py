"""Tests for the Beckhoff CSV / variable list XML codec."""

import pytest
from lxml import etree

from plc_tag_exchange.beckhoff import BeckhoffCodec
from plc_tag_exchange.errors import ParseError
from plc_tag_exchange.models import CanonicalType, Scope, Tag, TagType, Vendor


VARIABLES_XML = """\
<?xml version="1.0" encoding="utf-8"?>
<Variables>
  <Variable>
    <Name>bStart</Name>
    <DataType>BOOL</DataType>
    <Scope>global</Scope>
    <Comment>Start request</Comment>
    <PhysicalAddress>%IX0.0</PhysicalAddress>
    <InitialValue>FALSE</InitialValue>
  </Variable>
  <Variable Name="nCount" DataType="UDINT" Scope="local"/>
</Variables>
"""

WRAPPED_XML = """\
<TcPlcObject>
  <GVL Name="GVL_IO">
    <Variables>
      <Variable><Name>fTemp</Name><DataType>LREAL</DataType></Variable>
    </Variables>
  </GVL>
</TcPlcObject>
"""

BECKHOFF_CSV = (
    "Name,DataType,Scope,Comment,Address,InitialValue,AccessMode\n"
    "bStart,BOOL,global,Start request,%IX0.0,FALSE,ReadWrite\n"
    "tDelay,TIME,local,,,T#5S,\n"
)


@pytest.fixture
def codec():
    return BeckhoffCodec()


class TestParse:
    def test_xml(self, codec):
        rows = codec.parse(VARIABLES_XML.encode("utf-8"))
        assert rows[0] == {
            "name": "bStart",
            "data_type": "BOOL",
            "scope": "global",
            "description": "Start request",
            "address": "%IX0.0",
            "default_value": "FALSE",
        }
        assert rows[1] == {"name": "nCount", "data_type": "UDINT", "scope": "local"}

    def test_nested_variables(self, codec):
        rows = codec.parse(WRAPPED_XML.encode("utf-8"), "text/xml")
        assert [r["name"] for r in rows] == ["fTemp"]

    def test_no_variables(self, codec):
        with pytest.raises(ParseError, match="No Variables found"):
            codec.parse(b"<TcPlcObject/>", "xml")
        with pytest.raises(ParseError, match="No Variables found"):
            codec.parse(b"<Variables/>", "xml")

    def test_csv(self, codec):
        rows = codec.parse(BECKHOFF_CSV.encode("utf-8"), "text/csv")
        assert len(rows) == 2
        assert rows[0]["access_mode"] == "ReadWrite"
        assert rows[1]["default_value"] == "T#5S"


class TestValidateAndMap:
    def test_located_input(self, codec):
        mapped = codec.validate_and_map(codec.parse(VARIABLES_XML.encode("utf-8"))[0])
        assert mapped.ok
        assert mapped.tag.tag_type == TagType.INPUT
        assert mapped.tag.vendor == Vendor.BECKHOFF

    def test_time_is_timer(self, codec):
        mapped = codec.validate_and_map({"name": "tDelay", "data_type": "TIME"})
        assert mapped.tag.data_type == CanonicalType.TIMER

    def test_rockwell_address_rejected(self, codec):
        mapped = codec.validate_and_map({"name": "bStart", "data_type": "BOOL", "address": "I:1/0"})
        assert mapped.errors == ["Invalid Beckhoff address format: I:1/0"]


class TestExport:
    TAGS = [
        Tag(name="bStart", data_type="BOOL", raw_data_type="BOOL", vendor=Vendor.BECKHOFF,
            address="%IX0.0", description="Start request", default_value="FALSE"),
        Tag(name="nCount", data_type="DINT", raw_data_type="", vendor=Vendor.BECKHOFF,
            scope=Scope.LOCAL),
    ]

    def test_csv(self, codec):
        lines = codec.export(self.TAGS).decode("utf-8").split("\r\n")
        assert lines[0] == "Name,DataType,Scope,Comment,Address,InitialValue"
        assert lines[1] == "bStart,BOOL,global,Start request,%IX0.0,FALSE"
        assert lines[2] == "nCount,DINT,local,,,"

    def test_xml(self, codec):
        root = etree.fromstring(codec.export(self.TAGS, "xml"))
        assert root.tag == "Variables"
        first, second = root.findall("Variable")
        assert first.findtext("PhysicalAddress") == "%IX0.0"
        assert first.findtext("InitialValue") == "FALSE"
        assert second.find("PhysicalAddress") is None
        assert second.findtext("Scope") == "local"

    def test_xml_reimport(self, codec):
        rows = codec.parse(codec.export(self.TAGS, "xml"))
        assert rows[0]["address"] == "%IX0.0"
        assert rows[1] == {"name": "nCount", "data_type": "DINT", "scope": "local"}

    def test_xlsx_not_supported(self, codec):
        with pytest.raises(ValueError, match="Must be one of: csv, xml"):
            codec.export(self.TAGS, "xlsx")
