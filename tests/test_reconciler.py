"""Tests for upsert-by-name reconciliation."""

from unittest.mock import patch

import pytest

from plc_tag_exchange.errors import AccessDenied, TagStoreError
from plc_tag_exchange.models import CanonicalType, RawTagTuple, Scope, Tag, Vendor
from plc_tag_exchange.reconciler import reconcile_tags, resolve_vendor
from plc_tag_exchange.st_parser import parse_st_variables
from plc_tag_exchange.store import InMemoryProjectDirectory, InMemoryTagStore


ST_V1 = """\
VAR_GLOBAL
    Start : BOOL;   // address=I:1/0
    Speed : INT := 10;
END_VAR
"""

ST_V2 = """\
VAR_GLOBAL
    Start : BOOL;   // Start button address=I:1/0
    Speed : DINT := 10;
    Level : REAL;
END_VAR
"""


@pytest.fixture
def store():
    return InMemoryTagStore()


@pytest.fixture
def directory():
    directory = InMemoryProjectDirectory()
    directory.add_project("1", "alice", vendor="rockwell")
    directory.add_project("2", "alice", vendor="siemens")
    return directory


def _reconcile(store, directory, code, project_id="1", user_id="alice", vendor=None):
    return reconcile_tags(store, directory, project_id, user_id,
                          parse_st_variables(code), vendor)


class TestCreateAndUpdate:
    def test_creates_new_tags(self, store, directory):
        result = _reconcile(store, directory, ST_V1)
        assert result.created == ["Start", "Speed"]
        assert result.updated == []
        tags = {t.name: t for t in store.list_tags("1")}
        assert tags["Start"].address == "I:1/0"
        assert tags["Start"].tag_type == "input"
        assert tags["Start"].scope == "global"
        assert tags["Speed"].default_value == "10"
        assert tags["Speed"].vendor == Vendor.ROCKWELL

    def test_idempotent(self, store, directory):
        _reconcile(store, directory, ST_V1)
        before = store.list_tags("1")
        result = _reconcile(store, directory, ST_V1)
        assert result.created == []
        assert result.updated == []
        assert result.unchanged == ["Start", "Speed"]
        assert store.list_tags("1") == before

    def test_update_preserves_identity(self, store, directory):
        _reconcile(store, directory, ST_V1)
        speed = store.get_tag("1", "Speed")
        store.update_tag(speed.id, {"is_ai_generated": True})

        result = _reconcile(store, directory, ST_V2)
        assert result.updated == ["Start", "Speed"]
        assert result.created == ["Level"]

        after = store.get_tag("1", "Speed")
        assert after.id == speed.id
        assert after.created_at == speed.created_at
        assert after.is_ai_generated is True
        assert after.data_type == CanonicalType.DINT
        assert after.raw_data_type == "DINT"
        assert store.get_tag("1", "Start").description == "Start button"

    def test_user_recorded_on_update(self, store, directory):
        store.insert_tag(Tag(name="Speed", data_type="INT", vendor=Vendor.ROCKWELL,
                             project_id="1", user_id="importer"))
        _reconcile(store, directory, ST_V2)
        assert store.get_tag("1", "Speed").user_id == "alice"

    def test_tag_type_left_alone_on_update(self, store, directory):
        store.insert_tag(Tag(name="Level", data_type="REAL", vendor=Vendor.ROCKWELL,
                             project_id="1", tag_type="constant"))
        _reconcile(store, directory, ST_V2)
        assert store.get_tag("1", "Level").tag_type == "constant"

    def test_rename_leaves_old_tag(self, store, directory):
        _reconcile(store, directory, "VAR\n  Pump1 : BOOL;\nEND_VAR")
        _reconcile(store, directory, "VAR\n  PumpA : BOOL;\nEND_VAR")
        assert [t.name for t in store.list_tags("1")] == ["Pump1", "PumpA"]


class TestVendor:
    def test_project_vendor_used(self, store, directory):
        result = _reconcile(store, directory, "VAR\n  Start : BOOL; // address=I0.0\nEND_VAR",
                            project_id="2")
        assert result.created == ["Start"]
        tag = store.get_tag("2", "Start")
        assert tag.vendor == Vendor.SIEMENS
        assert tag.tag_type == "input"

    def test_explicit_vendor(self, store, directory):
        result = _reconcile(store, directory, "VAR\n  Start : BOOL; // address=I0.0\nEND_VAR",
                            vendor="rockwell")
        assert result.skipped == ["Start"]

    def test_resolve_vendor_fallback(self, directory):
        assert resolve_vendor(directory, "2") == Vendor.SIEMENS
        assert resolve_vendor(directory, "404") == Vendor.ROCKWELL
        assert resolve_vendor(directory, "404", "beckhoff") == Vendor.BECKHOFF


class TestSkipping:
    def test_invalid_declarations_skipped(self, store, directory):
        parsed = [
            RawTagTuple(name="Good", data_type="BOOL", scope="local"),
            RawTagTuple(name="Bad", data_type="BOOL", address="%IX0.0"),
            {"name": "", "dataType": "INT"},
        ]
        result = reconcile_tags(store, directory, "1", "alice", parsed)
        assert result.created == ["Good"]
        assert result.skipped == ["Bad", "<unnamed>"]
        assert store.get_tag("1", "Good").scope == Scope.LOCAL

    def test_store_error_skips_one(self, store, directory):
        original = store.insert_tag

        def flaky(tag):
            if tag.name == "Speed":
                raise TagStoreError("write failed")
            return original(tag)

        with patch.object(store, "insert_tag", side_effect=flaky):
            result = _reconcile(store, directory, ST_V1)
        assert result.created == ["Start"]
        assert result.skipped == ["Speed"]

    def test_driver_error_does_not_abort_batch(self, store, directory):
        original = store.insert_tag

        def flaky(tag):
            if tag.name == "Start":
                raise RuntimeError("db connection reset")
            return original(tag)

        with patch.object(store, "insert_tag", side_effect=flaky):
            result = _reconcile(store, directory, ST_V1)
        assert result.created == ["Speed"]
        assert result.skipped == ["Start"]
        assert [t.name for t in store.list_tags("1")] == ["Speed"]

    def test_duplicate_names_in_batch(self, store, directory):
        result = _reconcile(store, directory, "VAR\n  A : BOOL;\n  A : BOOL;\nEND_VAR")
        assert result.created == ["A"]
        assert result.unchanged == ["A"]


class TestAccess:
    def test_non_owner_denied_without_writes(self, store, directory):
        with pytest.raises(AccessDenied):
            _reconcile(store, directory, ST_V1, user_id="mallory")
        assert len(store) == 0

    def test_unknown_project_denied(self, store, directory):
        with pytest.raises(AccessDenied):
            _reconcile(store, directory, ST_V1, project_id="404")

    def test_to_dict(self, store, directory):
        payload = _reconcile(store, directory, ST_V1).to_dict()
        assert payload == {
            "projectId": "1",
            "created": ["Start", "Speed"],
            "updated": [],
            "unchanged": [],
            "skipped": [],
        }
