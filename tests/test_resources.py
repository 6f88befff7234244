"""Tests for the cache journal and session services."""

import json

import pytest

from ditestkit.caching.journal import Journal, SQLiteJournal
from ditestkit.http.session import FileSession


@pytest.fixture
def journal(tmp_path):
    j = SQLiteJournal(str(tmp_path / "cache" / "journal.db"))
    yield j
    j.close()


class TestSQLiteJournal:
    """Tests for SQLiteJournal."""

    def test_creates_database_lazily(self, tmp_path):
        path = tmp_path / "cache" / "journal.db"
        j = SQLiteJournal(str(path))
        assert not path.exists()

        j.write("a", {Journal.TAGS: ["x"]})

        assert path.exists()
        j.close()

    def test_clean_by_tag(self, journal):
        journal.write("a", {Journal.TAGS: ["users"]})
        journal.write("b", {Journal.TAGS: ["users", "posts"]})
        journal.write("c", {Journal.TAGS: ["posts"]})

        removed = journal.clean({Journal.TAGS: ["users"]})

        assert removed == ["a", "b"]
        assert journal.keys() == ["c"]

    def test_clean_by_priority(self, journal):
        journal.write("low", {Journal.PRIORITY: 10})
        journal.write("high", {Journal.PRIORITY: 90})

        assert journal.clean({Journal.PRIORITY: 50}) == ["low"]
        assert journal.keys() == ["high"]

    def test_rewrite_replaces_tags(self, journal):
        journal.write("a", {Journal.TAGS: ["old"]})
        journal.write("a", {Journal.TAGS: ["new"]})

        assert journal.clean({Journal.TAGS: ["old"]}) == []
        assert journal.clean({Journal.TAGS: ["new"]}) == ["a"]

    def test_clean_all(self, journal):
        journal.write("a", {Journal.TAGS: ["x"], Journal.PRIORITY: 1})
        journal.write("b", {Journal.TAGS: ["y"]})

        assert journal.clean({Journal.ALL: True}) is None
        assert journal.keys() == []

    def test_clean_with_no_conditions(self, journal):
        journal.write("a", {Journal.TAGS: ["x"]})
        assert journal.clean({}) == []
        assert journal.keys() == ["a"]


class TestFileSession:
    """Tests for FileSession."""

    def test_sections_start_session(self, tmp_path):
        session = FileSession(str(tmp_path / "sessions"))
        assert not session.is_started

        session.get_section("cart")["items"] = [1, 2]

        assert session.is_started
        assert session.has_section("cart")

    def test_close_persists_data(self, tmp_path):
        session = FileSession(str(tmp_path / "sessions"), session_id="abc")
        session.get_section("cart")["items"] = [1, 2]

        session.close()

        assert not session.is_started
        data = json.loads((tmp_path / "sessions" / "sess_abc.json").read_text())
        assert data == {"cart": {"items": [1, 2]}}

    def test_reopen_reads_data(self, tmp_path):
        first = FileSession(str(tmp_path), session_id="abc")
        first.get_section("user")["id"] = 7
        first.close()

        second = FileSession(str(tmp_path), session_id="abc")

        assert second.get_section("user") == {"id": 7}

    def test_close_without_start_writes_nothing(self, tmp_path):
        session = FileSession(str(tmp_path / "sessions"))
        session.close()
        assert not (tmp_path / "sessions").exists()

    def test_destroy_removes_file(self, tmp_path):
        session = FileSession(str(tmp_path), session_id="abc")
        session.get_section("x")["y"] = 1
        session.close()

        session.destroy()

        assert not session.file.exists()
        assert session.get_sections() == []
