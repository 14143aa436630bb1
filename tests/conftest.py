"""Shared fixtures for notesync tests."""

import logging

import pytest
from click.testing import CliRunner

from notesync.commit import CommitFile
from notesync.gitrepo import RepoRemote


@pytest.fixture(autouse=True)
def _reset_notesync_logger():
    """Undo the handler the CLI installs so caplog keeps working."""
    yield
    logger = logging.getLogger("notesync")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def remote(tmp_path):
    """An empty bare repository with HEAD on 'main' (no commits yet)."""
    return RepoRemote.init(tmp_path / "site.git")


@pytest.fixture
def seeded_remote(remote):
    """Remote with a site config outside the content root and two notes.

    Tree:
        quartz.config.ts, content/a.md ("x"), content/c.md ("z")
    """
    result = remote.commit_files(
        [
            CommitFile("quartz.config.ts", b"export default {}\n"),
            CommitFile("content/a.md", b"x"),
            CommitFile("content/c.md", b"z"),
        ],
        "seed",
    )
    assert result.success, result.error
    return remote


# ---------------------------------------------------------------------------
# CLI fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def notes_dir(tmp_path):
    """A local notes folder with a.md ("x"), b.md ("y") and a hidden dir."""
    root = tmp_path / "notes"
    root.mkdir()
    (root / "a.md").write_bytes(b"x")
    (root / "b.md").write_bytes(b"y")
    (root / ".obsidian").mkdir()
    (root / ".obsidian" / "app.json").write_text("{}")
    return root
