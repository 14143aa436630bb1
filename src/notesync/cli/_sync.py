"""The status and push commands."""

from __future__ import annotations

import json

import click

from ..exceptions import NotesyncError
from ..local import scan_directory
from ._helpers import (
    main,
    _build_syncer,
    _fail,
    _message_option,
    _print_plan,
    _remote_options,
    _resolve_config,
    _status,
)


def _plan_to_json(plan) -> dict:
    return {
        "base_commit": plan.base_commit,
        "create": list(plan.to_create),
        "update": list(plan.to_update),
        "delete": list(plan.to_delete),
        "excluded": list(plan.excluded),
        "oversized": [{"path": o.path, "size": o.size} for o in plan.oversized],
        "conflicts": [{"path": c.path, "remote_path": c.remote_path,
                       "remote_kind": str(c.remote_kind)} for c in plan.conflicts],
        "counts": {"new": plan.counts.new, "modified": plan.counts.modified,
                   "deleted": plan.counts.deleted},
    }


@main.command()
@click.argument("local_dir", type=click.Path(exists=True, file_okay=False))
@_remote_options
@click.option("--json", "as_json", is_flag=True, help="Print the plan as JSON.")
@click.pass_context
def status(ctx, local_dir, as_json, **options):
    """Show what a push of LOCAL_DIR would change, without writing.

    \b
    Output lines:
      + path    new on the remote
      ~ path    content differs
      - path    removed from the remote
    """
    config = _resolve_config(ctx, **options)
    syncer = _build_syncer(config)
    try:
        records = scan_directory(local_dir, config.root, home=config.home)
        _status(ctx, f"Scanned {len(records)} local file(s)")
        plan = syncer.plan(records)
    except NotesyncError as exc:
        raise _fail(exc)

    if as_json:
        click.echo(json.dumps(_plan_to_json(plan), indent=2))
    else:
        _print_plan(plan)


@main.command()
@click.argument("local_dir", type=click.Path(exists=True, file_okay=False))
@_remote_options
@_message_option
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
@click.option("--strict-size", is_flag=True,
              help="Fail instead of skipping files over the size limit.")
@click.pass_context
def push(ctx, local_dir, message, yes, strict_size, **options):
    """Publish LOCAL_DIR to the remote as a single commit.

    Files matching --exclude are never touched on the remote.  If the
    branch moves while pushing, nothing is written; run push again.
    """
    config = _resolve_config(ctx, **options)
    syncer = _build_syncer(config)
    try:
        records = scan_directory(local_dir, config.root, home=config.home)
        if strict_size:
            syncer.reconciler.size_guard.validate(records).raise_for_oversized()
    except NotesyncError as exc:
        raise _fail(exc)

    def confirm(plan):
        _print_plan(plan)
        if yes:
            return True
        return click.confirm("Push these changes?", default=False)

    try:
        outcome = syncer.push(records, message=message or config.message, confirm=confirm)
    except NotesyncError as exc:
        raise _fail(exc)

    if outcome.declined:
        click.echo("Aborted.", err=True)
        ctx.exit(1)
    if outcome.result is None:
        click.echo("Already up to date.", err=True)
        return
    result = outcome.result
    if not result.success:
        hint = " Run push again to re-plan." if result.needs_replan else ""
        raise click.ClickException(f"Push failed [{result.kind}]: {result.error}.{hint}")
    click.echo(result.commit_hash)
