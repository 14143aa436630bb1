"""Shared helpers, option decorators, and the main CLI group."""

from __future__ import annotations

import logging
import sys

import click

from ..config import SyncConfig, load_config
from ..exceptions import NotesyncError, RemoteError
from ..reconcile import SyncPlan


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

def _setup_logging(verbose: bool) -> None:
    """Log to stderr: DEBUG with -v, warnings only otherwise."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    root = logging.getLogger("notesync")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)
    root.propagate = False


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _status(ctx, msg):
    """Emit a status message to stderr when verbose mode (-v) is on."""
    if ctx.obj.get("verbose"):
        click.echo(msg, err=True)


def _remote_options(f):
    """Shared options selecting the remote and sync rules."""
    options = [
        click.option("--repo", "-r", type=click.Path(),
                     help="Path to a bare git repository to publish to."),
        click.option("--github", "-g", metavar="OWNER/REPO",
                     help="GitHub repository to publish to."),
        click.option("--token", envvar="GITHUB_TOKEN",
                     help="GitHub token (or set GITHUB_TOKEN)."),
        click.option("--branch", "-b", default=None,
                     help="Branch to publish to (default: main)."),
        click.option("--root", default=None,
                     help="Content folder inside the repository (default: content)."),
        click.option("--exclude", "-x", multiple=True,
                     help="Exclude files matching glob pattern (repeatable)."),
        click.option("--include", "-i", multiple=True,
                     help="Only publish files matching glob pattern (repeatable)."),
        click.option("--home", default=None, metavar="NOTE",
                     help="Local note to publish as index.md."),
        click.option("--max-size", "max_file_size", type=click.IntRange(min=0), default=None,
                     help="Skip files larger than this many bytes (default: 10 MiB)."),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def _message_option(f):
    return click.option("-m", "--message", default=None,
                        help="Commit message (supports {default}, {new}, {modified}, {deleted}, {total}).")(f)


def _resolve_config(ctx, **overrides) -> SyncConfig:
    """Load --config (if any) and apply command-line overrides on top."""
    path = ctx.obj.get("config_path")
    try:
        config = load_config(path) if path else SyncConfig()
    except (OSError, NotesyncError) as exc:
        raise click.ClickException(f"Cannot load config: {exc}")
    exclude = overrides.pop("exclude", ())
    include = overrides.pop("include", ())
    config = config.merged(**overrides)
    if exclude:
        config = config.merged(exclude=list(config.exclude) + list(exclude))
    if include:
        config = config.merged(include=list(config.include) + list(include))
    return config


def _build_syncer(config: SyncConfig):
    try:
        return config.build_syncer()
    except (NotesyncError, ValueError) as exc:
        raise click.ClickException(str(exc))


def _fail(exc: Exception) -> click.ClickException:
    if isinstance(exc, RemoteError) and exc.kind:
        return click.ClickException(f"{exc} [{exc.kind}]")
    return click.ClickException(str(exc))


def _print_plan(plan: SyncPlan) -> None:
    for action in plan.actions():
        sign = {"create": "+", "update": "~", "delete": "-"}[action.action]
        click.echo(f"{sign} {action.path}")
    for o in plan.oversized:
        click.echo(f"! {o.path} skipped: {o.formatted_size} exceeds the size limit", err=True)
    for c in plan.conflicts:
        click.echo(f"! {c.message}", err=True)
    counts = plan.counts
    click.echo(
        f"{counts.new} new, {counts.modified} modified, {counts.deleted} deleted",
        err=True,
    )


# ---------------------------------------------------------------------------
# Main group
# ---------------------------------------------------------------------------

@click.group()
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, dir_okay=False),
              envvar="NOTESYNC_CONFIG", help="YAML config file (or set NOTESYNC_CONFIG).")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output on stderr.")
@click.pass_context
def main(ctx, config_path, verbose):
    """Publish a folder of notes to a git repository.

    Computes which files changed by comparing git blob hashes, then writes
    all additions, updates and deletions as a single commit.

    \b
    Quick start:
      notesync status ./notes --repo site.git
      notesync push ./notes --github alice/garden
      notesync check "private/*" "**/*.canvas"
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_path"] = config_path
    _setup_logging(verbose)
