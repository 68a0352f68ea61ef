"""Tests for relation file writing and reading."""

import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from google.cloud.firestore import GeoPoint

from supamigrate.loaders.json_writer import (
    JSONRecordWriter,
    json_default,
    read_relation,
    sanitize_relation_name,
)


# --- Fixtures ---

@pytest.fixture
def writer(tmp_path):
    return JSONRecordWriter(str(tmp_path))


class TestJSONRecordWriter:
    def test_writes_json_array(self, writer, tmp_path):
        writer.write_record("users", {"id": 1})
        writer.write_record("users", {"id": 2})
        counts = writer.finalize()

        assert counts == {"users": 2}
        assert json.loads((tmp_path / "users.json").read_text()) == [{"id": 1}, {"id": 2}]

    def test_interrupted_file_is_readable(self, writer, tmp_path):
        writer.write_record("users", {"id": 1})
        writer.write_record("users", {"id": 2})
        assert read_relation(str(tmp_path / "users.json")) == [{"id": 1}, {"id": 2}]

    def test_previous_run_replaced(self, writer, tmp_path):
        (tmp_path / "users.json").write_text('[{"stale": true}]')
        writer.write_record("users", {"fresh": True})
        writer.finalize()
        assert read_relation(str(tmp_path / "users.json")) == [{"fresh": True}]

    def test_finalize_is_idempotent(self, writer, tmp_path):
        writer.write_record("users", {"id": 1})
        writer.finalize()
        writer.finalize()
        assert read_relation(str(tmp_path / "users.json")) == [{"id": 1}]

    def test_write_after_finalize(self, writer):
        writer.finalize()
        with pytest.raises(RuntimeError):
            writer.write_record("users", {"id": 1})

    def test_relation_without_records_emptied(self, writer, tmp_path):
        (tmp_path / "orders.json").write_text('[{"stale": true}]')
        writer.write_record("users", {"id": 1})
        counts = writer.finalize(["users", "orders"])

        assert counts == {"users": 1}
        assert read_relation(str(tmp_path / "orders.json")) == []
        assert read_relation(str(tmp_path / "users.json")) == [{"id": 1}]

    def test_reset_starts_a_new_run(self, writer, tmp_path):
        writer.write_record("users", {"id": 1})
        writer.finalize()
        writer.reset()
        writer.write_record("users", {"id": 2})
        writer.finalize()
        assert read_relation(str(tmp_path / "users.json")) == [{"id": 2}]

    def test_unicode_preserved(self, writer, tmp_path):
        writer.write_record("cities", {"name": "Zürich"})
        writer.finalize()
        assert "Zürich" in (tmp_path / "cities.json").read_text(encoding="utf-8")


class TestJsonDefault:
    def test_datetime(self):
        value = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert json_default(value) == "2024-01-02T03:04:05+00:00"

    def test_geopoint(self):
        assert json_default(GeoPoint(51.5, -0.12)) == {"latitude": 51.5, "longitude": -0.12}

    def test_bytes(self):
        assert json_default(b"hi") == "aGk="

    def test_decimal_and_set(self):
        assert json_default(Decimal("1.5")) == 1.5
        assert json_default({"a"}) == ["a"]

    def test_unknown_falls_back_to_str(self):
        class Thing:
            def __str__(self):
                return "thing"
        assert json_default(Thing()) == "thing"


class TestReadRelation:
    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.json"
        path.write_text("")
        assert read_relation(str(path)) == []

    def test_non_array_rejected(self, tmp_path):
        path = tmp_path / "object.json"
        path.write_text('{"a": 1}')
        with pytest.raises(ValueError):
            read_relation(str(path))


@pytest.mark.parametrize("name,expected", [
    ("users", "users"),
    ("users_orders", "users_orders"),
    ("team-members", "team_members"),
    ("a.b c", "a_b_c"),
])
def test_sanitize_relation_name(name, expected):
    assert sanitize_relation_name(name) == expected
