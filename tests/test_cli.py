"""Tests for the notesync command line."""

import json

import pytest

from notesync.cli import main
from notesync.hashing import blob_hash
from notesync.remote import RemoteRelease


@pytest.fixture(autouse=True)
def _no_env(monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("NOTESYNC_CONFIG", raising=False)


class TestCheck:
    def test_all_valid(self, runner):
        result = runner.invoke(main, ["check", "private/*", "**/*.canvas"])
        assert result.exit_code == 0, result.output
        assert "ok       private/*" in result.output
        assert "ok       **/*.canvas" in result.output

    def test_invalid_exits_1(self, runner):
        result = runner.invoke(main, ["check", "ok/*", "/abs", "a b"])
        assert result.exit_code == 1
        assert "invalid  '/abs': Absolute paths are not allowed" in result.output
        assert "invalid  'a b'" in result.output


class TestHash:
    def test_matches_git(self, runner, tmp_path):
        f = tmp_path / "note.md"
        f.write_bytes(b"hello world\n")
        result = runner.invoke(main, ["hash", str(f)])
        assert result.exit_code == 0, result.output
        assert result.output.startswith(blob_hash(b"hello world\n"))


class TestStatus:
    def test_lists_changes(self, runner, seeded_remote, notes_dir):
        result = runner.invoke(main, ["status", str(notes_dir), "--repo", seeded_remote.path])
        assert result.exit_code == 0, result.output
        assert "+ content/b.md" in result.output
        assert "- content/c.md" in result.output
        assert "1 new, 0 modified, 1 deleted" in result.output

    def test_json(self, runner, seeded_remote, notes_dir):
        result = runner.invoke(main, ["status", str(notes_dir), "--repo", seeded_remote.path,
                                      "--json", "-x", "b.md"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["create"] == []
        assert data["excluded"] == ["content/b.md"]
        assert data["delete"] == ["content/c.md"]
        assert data["base_commit"] == seeded_remote.resolve_ref()

    def test_does_not_write(self, runner, seeded_remote, notes_dir):
        head = seeded_remote.resolve_ref()
        runner.invoke(main, ["status", str(notes_dir), "--repo", seeded_remote.path])
        assert seeded_remote.resolve_ref() == head

    def test_requires_remote(self, runner, notes_dir):
        result = runner.invoke(main, ["status", str(notes_dir)])
        assert result.exit_code == 1
        assert "exactly one" in result.output

    def test_not_a_repository(self, runner, notes_dir, tmp_path):
        result = runner.invoke(main, ["status", str(notes_dir), "--repo", str(tmp_path)])
        assert result.exit_code == 1
        assert "Not a git repository" in result.output

    def test_invalid_exclude(self, runner, seeded_remote, notes_dir):
        result = runner.invoke(main, ["status", str(notes_dir), "--repo", seeded_remote.path,
                                      "-x", "/abs"])
        assert result.exit_code == 1
        assert "Invalid pattern" in result.output


class TestPush:
    def test_push_yes(self, runner, seeded_remote, notes_dir):
        result = runner.invoke(main, ["push", str(notes_dir), "--repo", seeded_remote.path, "-y"])
        assert result.exit_code == 0, result.output
        assert seeded_remote.resolve_ref() in result.output
        assert seeded_remote.get_file_content("content/b.md") == b"y"
        assert seeded_remote.get_file_content("content/c.md") is None

    def test_push_confirmed(self, runner, seeded_remote, notes_dir):
        result = runner.invoke(main, ["push", str(notes_dir), "--repo", seeded_remote.path],
                               input="y\n")
        assert result.exit_code == 0, result.output
        assert "Push these changes?" in result.output

    def test_push_declined(self, runner, seeded_remote, notes_dir):
        head = seeded_remote.resolve_ref()
        result = runner.invoke(main, ["push", str(notes_dir), "--repo", seeded_remote.path],
                               input="n\n")
        assert result.exit_code == 1
        assert "Aborted." in result.output
        assert seeded_remote.resolve_ref() == head

    def test_up_to_date(self, runner, seeded_remote, notes_dir):
        args = ["push", str(notes_dir), "--repo", seeded_remote.path, "-y"]
        assert runner.invoke(main, args).exit_code == 0
        result = runner.invoke(main, args)
        assert result.exit_code == 0, result.output
        assert "Already up to date." in result.output

    def test_custom_root_and_message(self, runner, remote, notes_dir):
        result = runner.invoke(main, ["push", str(notes_dir), "--repo", remote.path,
                                      "--root", "docs", "-m", "Publish {new} notes", "-y"])
        assert result.exit_code == 0, result.output
        assert remote.get_file_content("docs/a.md") == b"x"

    def test_strict_size(self, runner, seeded_remote, notes_dir):
        result = runner.invoke(main, ["push", str(notes_dir), "--repo", seeded_remote.path,
                                      "--max-size", "0", "--strict-size", "-y"])
        assert result.exit_code == 1
        assert "exceed the size limit" in result.output

    def test_config_file(self, runner, seeded_remote, notes_dir, tmp_path):
        cfg = tmp_path / "notesync.yml"
        cfg.write_text(f"repo: {seeded_remote.path}\nexclude:\n  - b.md\n")
        result = runner.invoke(main, ["-c", str(cfg), "push", str(notes_dir), "-y"])
        assert result.exit_code == 0, result.output
        assert seeded_remote.get_file_content("content/b.md") is None
        assert seeded_remote.get_file_content("content/c.md") is None


class TestPublishFilter:
    def test_include_and_home(self, runner, remote, notes_dir):
        (notes_dir / "garden").mkdir()
        (notes_dir / "garden" / "tree.md").write_bytes(b"t")
        (notes_dir / "Home.md").write_bytes(b"home")
        result = runner.invoke(main, ["push", str(notes_dir), "--repo", remote.path,
                                      "-i", "garden/**", "--home", "Home.md", "-y"])
        assert result.exit_code == 0, result.output
        head = remote.resolve_ref()
        paths = {e.path for e in remote.get_tree(head) if e.is_file}
        assert paths == {"content/garden/tree.md", "content/index.md"}
        assert remote.get_file_content("content/index.md") == b"home"

    def test_missing_home(self, runner, remote, notes_dir):
        result = runner.invoke(main, ["status", str(notes_dir), "--repo", remote.path,
                                      "--home", "Nope.md"])
        assert result.exit_code == 1
        assert "not found" in result.output


class TestCommitMessageBraces:
    def test_stray_brace_in_message(self, runner, seeded_remote, notes_dir):
        result = runner.invoke(main, ["push", str(notes_dir), "--repo", seeded_remote.path,
                                      "-m", "Fix {typo", "-y"])
        assert result.exit_code == 0, result.output
        assert seeded_remote.resolve_ref() in result.output


class TestRelease:
    def test_latest(self, runner, monkeypatch):
        monkeypatch.setattr(
            "notesync.cli._basic.GitHubRemote.get_latest_release",
            lambda self: RemoteRelease("v4.4.0", "Quartz 4.4", "2024-01-02", "notes"),
        )
        result = runner.invoke(main, ["release", "jackyzha0/quartz"])
        assert result.exit_code == 0, result.output
        assert "v4.4.0  Quartz 4.4  2024-01-02" in result.output

    def test_bad_name(self, runner):
        result = runner.invoke(main, ["release", "quartz"])
        assert result.exit_code == 1
        assert "OWNER/REPO" in result.output


class TestConsoleScript:
    def test_missing_click(self, monkeypatch):
        from notesync import _cli_entry

        monkeypatch.setattr(_cli_entry.importlib.util, "find_spec", lambda name: None)
        with pytest.raises(SystemExit) as exc_info:
            _cli_entry.main()
        assert "notesync[cli]" in str(exc_info.value.code)

    def test_runs_cli(self, monkeypatch):
        from notesync import _cli_entry

        monkeypatch.setattr("sys.argv", ["notesync", "check", "*.md"])
        with pytest.raises(SystemExit) as exc_info:
            _cli_entry.main()
        assert exc_info.value.code == 0
