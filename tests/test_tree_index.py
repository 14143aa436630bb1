"""Tests for TreeIndex and path normalization."""

import logging

import pytest

from notesync.tree import EntryKind, RemoteTreeEntry, TreeIndex, _normalize_path, normalize_root


def _file(path, sha="0" * 40, size=1):
    return RemoteTreeEntry(path, EntryKind.FILE, sha, size)


def _dir(path):
    return RemoteTreeEntry(path, EntryKind.DIRECTORY, "f" * 40)


class TestNormalizePath:
    def test_separators_and_slashes(self):
        assert _normalize_path("a\\b\\c.md") == "a/b/c.md"
        assert _normalize_path("/a/b/") == "a/b"
        assert _normalize_path("./a/b") == "a/b"

    def test_case_preserved(self):
        assert _normalize_path("Notes/README.md") == "Notes/README.md"

    def test_nfc(self):
        nfd = "cafe\u0301.md"
        assert _normalize_path(nfd) == "caf\u00e9.md"

    @pytest.mark.parametrize("bad", ["", "/", "a//b", "a/../b", "./."])
    def test_rejects(self, bad):
        with pytest.raises(ValueError):
            _normalize_path(bad)

    def test_normalize_root(self):
        assert normalize_root("") == ""
        assert normalize_root(None) == ""
        assert normalize_root("/") == ""
        assert normalize_root("/content/") == "content"


class TestFromListing:
    def test_blob(self):
        e = RemoteTreeEntry.from_listing(
            {"path": "content/a.md", "mode": "100644", "type": "blob", "sha": "abc", "size": 3})
        assert e == RemoteTreeEntry("content/a.md", EntryKind.FILE, "abc", 3)
        assert e.is_file

    def test_tree_has_no_size(self):
        e = RemoteTreeEntry.from_listing(
            {"path": "content", "mode": "040000", "type": "tree", "sha": "def"})
        assert e.mode is EntryKind.DIRECTORY
        assert e.size is None


class TestTreeIndex:
    def test_build_and_lookup(self):
        index = TreeIndex.build([_dir("content"), _file("content/a.md", "1" * 40)], commit="c0")
        assert index.commit == "c0"
        assert len(index) == 1
        assert "content/a.md" in index
        assert index.get("content/a.md").content_hash == "1" * 40
        assert index.get("content") is None
        assert index.get("missing.md") is None
        assert index.paths() == {"content/a.md"}

    def test_accepts_listing_dicts(self):
        index = TreeIndex.build([{"path": "a.md", "type": "blob", "sha": "1", "size": 1}])
        assert index.paths() == {"a.md"}

    def test_implied_directories(self):
        index = TreeIndex.build([_file("a/b/c.md")])
        assert index.is_dir("a") is True
        assert index.is_dir("a/b") is True
        assert index.is_dir("a/b/c.md") is False

    def test_duplicates_last_wins(self, caplog):
        with caplog.at_level(logging.WARNING, logger="notesync.tree"):
            index = TreeIndex.build([_file("a.md", "1" * 40), _file("a.md", "2" * 40)])
        assert index.get("a.md").content_hash == "2" * 40
        assert index.duplicates == ("a.md",)
        assert "Duplicate" in caplog.text

    def test_duplicate_file_then_directory(self):
        index = TreeIndex.build([_file("x"), _dir("x")])
        assert "x" not in index
        assert index.is_dir("x") is True

    def test_conflict_remote_directory(self):
        index = TreeIndex.build([_file("notes/a.md")])
        conflict = index.conflict_for("notes")
        assert conflict is not None
        assert conflict.remote_kind is EntryKind.DIRECTORY
        assert "directory on the remote" in conflict.message

    def test_conflict_remote_file_ancestor(self):
        index = TreeIndex.build([_file("notes")])
        conflict = index.conflict_for("notes/a.md")
        assert conflict.remote_path == "notes"
        assert conflict.remote_kind is EntryKind.FILE

    def test_no_conflict(self):
        index = TreeIndex.build([_file("notes/a.md")])
        assert index.conflict_for("notes/b.md") is None
        assert index.conflict_for("notes/a.md") is None

    def test_scoped(self):
        index = TreeIndex.build([_file("quartz.config.ts"), _file("content/a.md"),
                                 _file("contentious.md")], commit="c1")
        scoped = index.scoped("content")
        assert scoped.paths() == {"content/a.md"}
        assert scoped.commit == "c1"
        assert index.scoped("") is index
