"""Standalone commands: check, hash, release."""

from __future__ import annotations

import click

from ..exceptions import RemoteError
from ..github import GitHubRemote
from ..hashing import hash_file
from ..policy import validate_all
from ._helpers import main, _fail


@main.command()
@click.argument("patterns", nargs=-1, required=True)
def check(patterns):
    """Validate exclusion glob PATTERNS.

    Prints one line per pattern and exits with status 1 if any is invalid.
    """
    failed = False
    for pattern, result in zip(patterns, validate_all(patterns)):
        if result.valid:
            click.echo(f"ok       {pattern}")
        else:
            failed = True
            click.echo(f"invalid  {pattern!r}: {result.error}")
    if failed:
        raise SystemExit(1)


@main.command("hash")
@click.argument("files", nargs=-1, required=True,
                type=click.Path(exists=True, dir_okay=False))
def hash_cmd(files):
    """Print the git blob hash of each FILE (like git hash-object)."""
    for path in files:
        click.echo(f"{hash_file(path)}  {path}")


@main.command()
@click.argument("repository", metavar="OWNER/REPO")
@click.option("--token", envvar="GITHUB_TOKEN", help="GitHub token (or set GITHUB_TOKEN).")
def release(repository, token):
    """Show the latest GitHub release of OWNER/REPO."""
    owner, sep, name = repository.partition("/")
    if not sep or not owner or not name:
        raise click.ClickException(f"Expected OWNER/REPO, got {repository!r}")
    try:
        rel = GitHubRemote(owner, name, token=token).get_latest_release()
    except RemoteError as exc:
        raise _fail(exc)
    if rel is None:
        raise click.ClickException(f"No releases found for {repository}")
    click.echo(f"{rel.tag}  {rel.name}  {rel.published_at}")
    if rel.body:
        click.echo()
        click.echo(rel.body)
