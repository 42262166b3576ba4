"""Tests for the in-memory tag store and project directory."""

import pytest

from plc_tag_exchange.errors import DuplicateTagName, TagStoreError
from plc_tag_exchange.models import Tag, Vendor
from plc_tag_exchange.store import InMemoryProjectDirectory, InMemoryTagStore, project_key


def _tag(name, project_id="1", **kw):
    return Tag(name=name, data_type="BOOL", vendor=Vendor.ROCKWELL, project_id=project_id, **kw)


@pytest.fixture
def store():
    return InMemoryTagStore()


class TestInsert:
    def test_assigns_id_and_timestamps(self, store):
        tag = store.insert_tag(_tag("Motor1"))
        assert tag.id == 1
        assert tag.created_at is not None
        assert tag.created_at == tag.updated_at
        assert store.insert_tag(_tag("Motor2")).id == 2

    def test_duplicate_name(self, store):
        store.insert_tag(_tag("Motor1"))
        with pytest.raises(DuplicateTagName) as exc:
            store.insert_tag(_tag("Motor1"))
        assert exc.value.name == "Motor1"
        assert len(store) == 1

    def test_same_name_other_project(self, store):
        store.insert_tag(_tag("Motor1", project_id="1"))
        store.insert_tag(_tag("Motor1", project_id="2"))
        assert len(store) == 2

    def test_names_case_sensitive(self, store):
        store.insert_tag(_tag("Motor1"))
        store.insert_tag(_tag("MOTOR1"))
        assert store.get_tag("1", "motor1") is None

    def test_requires_project_and_name(self, store):
        with pytest.raises(TagStoreError):
            store.insert_tag(_tag("Motor1", project_id=None))
        with pytest.raises(TagStoreError):
            store.insert_tag(_tag(""))

    def test_returns_copies(self, store):
        tag = store.insert_tag(_tag("Motor1"))
        tag.description = "changed"
        assert store.get_tag("1", "Motor1").description == ""


class TestLookup:
    def test_project_ids_compare_as_strings(self, store):
        store.insert_tag(_tag("Motor1", project_id=1))
        assert store.get_tag("1", "Motor1") is not None
        assert [t.name for t in store.list_tags(" 1 ")] == ["Motor1"]
        with pytest.raises(DuplicateTagName):
            store.insert_tag(_tag("Motor1", project_id="1"))

    def test_list_in_insertion_order(self, store):
        for name in ("C", "A", "B"):
            store.insert_tag(_tag(name))
        store.insert_tag(_tag("Z", project_id="2"))
        assert [t.name for t in store.list_tags("1")] == ["C", "A", "B"]

    def test_project_key(self):
        assert project_key(7) == project_key("7") == "7"


class TestUpdate:
    def test_changes_fields(self, store):
        tag = store.insert_tag(_tag("Motor1"))
        updated = store.update_tag(tag.id, {"address": "N7:0", "description": "Main"})
        assert updated.address == "N7:0"
        assert updated.id == tag.id
        assert updated.created_at == tag.created_at
        assert updated.updated_at >= tag.updated_at

    def test_noop_keeps_updated_at(self, store):
        tag = store.insert_tag(_tag("Motor1", address="N7:0"))
        same = store.update_tag(tag.id, {"address": "N7:0"})
        assert same.updated_at == tag.updated_at

    def test_immutable_fields(self, store):
        tag = store.insert_tag(_tag("Motor1"))
        for field_name in ("id", "project_id", "created_at", "updated_at"):
            with pytest.raises(ValueError, match="immutable"):
                store.update_tag(tag.id, {field_name: None})

    def test_unknown_field(self, store):
        tag = store.insert_tag(_tag("Motor1"))
        with pytest.raises(ValueError, match="Unknown"):
            store.update_tag(tag.id, {"colour": "red"})

    def test_rename_collision(self, store):
        store.insert_tag(_tag("Motor1"))
        other = store.insert_tag(_tag("Motor2"))
        with pytest.raises(DuplicateTagName):
            store.update_tag(other.id, {"name": "Motor1"})
        assert store.get_tag("1", "Motor2") is not None

    def test_missing_tag(self, store):
        with pytest.raises(TagStoreError, match="not found"):
            store.update_tag(99, {"address": "N7:0"})


class TestDelete:
    def test_delete_tag(self, store):
        tag = store.insert_tag(_tag("Motor1"))
        assert store.delete_tag(tag.id)
        assert not store.delete_tag(tag.id)

    def test_delete_project_tags(self, store):
        store.insert_tag(_tag("A"))
        store.insert_tag(_tag("B"))
        store.insert_tag(_tag("C", project_id="2"))
        assert store.delete_project_tags(1) == 2
        assert [t.name for t in store.list_tags("2")] == ["C"]


class TestProjectDirectory:
    @pytest.fixture
    def directory(self):
        directory = InMemoryProjectDirectory()
        directory.add_project(1, "alice", vendor="siemens", name="Line 1")
        return directory

    def test_ownership(self, directory):
        assert directory.user_owns_project("alice", "1")
        assert not directory.user_owns_project("bob", "1")
        assert not directory.user_owns_project("alice", "2")
        assert not directory.user_owns_project(None, "1")

    def test_vendor(self, directory):
        assert directory.get_project_vendor("1") == Vendor.SIEMENS
        assert directory.get_project_vendor("2") is None

    def test_duplicate_project(self, directory):
        with pytest.raises(ValueError, match="already exists"):
            directory.add_project("1", "bob")

    def test_bad_vendor(self, directory):
        with pytest.raises(ValueError, match="Unsupported vendor"):
            directory.add_project("3", "bob", vendor="omron")

    def test_default_name(self, directory):
        assert directory.add_project("5", "bob").name == "Project 5"
        assert len(directory.list_projects()) == 2
