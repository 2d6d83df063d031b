"""svnkit CLI entrypoint."""

import json
import sys
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Optional

import click

from svnkit.config import get_config
from svnkit.errors import SvnKitError
from svnkit.instance import Repository, SvnInstance, WorkingCopy
from svnkit.logging import get_logger, setup_logging

logger = get_logger(__name__)


def _open_instance(path: str) -> SvnInstance:
    """Working copy when path holds .svn metadata, repository otherwise."""
    config = get_config()
    if (Path(path) / ".svn").is_dir():
        return WorkingCopy(path, config=config)
    return Repository(path, config=config)


def _json_default(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _render_json(records: Iterable[Any]) -> str:
    return json.dumps([asdict(record) for record in records], default=_json_default, sort_keys=True)


def _fail(error: SvnKitError) -> None:
    logger.debug(f"{error.__class__.__name__}: {error.message}")
    click.echo(f"Error: {error.message}", err=True)
    sys.exit(error.exit_code)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
@click.version_option(package_name="svnkit")
def svnkit(verbose: bool) -> None:
    """svnkit - run svn subcommands and print structured results."""
    setup_logging(verbose=verbose)


@svnkit.command()
@click.argument("path", default=".")
@click.argument("targets", nargs=-1)
@click.option("--revision", "-r", help="Revision to query")
@click.option("--json", "json_output", is_flag=True, help="JSON output")
def info(path: str, targets: tuple[str, ...], revision: Optional[str], json_output: bool) -> None:
    """Show information about PATH or TARGETS within it."""
    try:
        instance = _open_instance(path)
        with instance.info() as cmd:
            if revision:
                cmd.revision(revision)
            for target in targets or (".",):
                cmd.target(target)
            entries = list(cmd.parse_output().execute())
    except SvnKitError as e:
        _fail(e)
        return

    if json_output:
        click.echo(_render_json(entries))
        return

    for entry in entries:
        click.echo(f"Path: {entry.path}")
        click.echo(f"URL: {entry.url}")
        click.echo(f"Repository Root: {entry.repository_root}")
        click.echo(f"Revision: {entry.revision}")
        click.echo(f"Node Kind: {entry.kind}")
        if entry.last_changed_rev is not None:
            click.echo(f"Last Changed Author: {entry.last_changed_author}")
            click.echo(f"Last Changed Rev: {entry.last_changed_rev}")
        click.echo("")


@svnkit.command()
@click.argument("path", default=".")
@click.option("--limit", "-l", type=int, help="Maximum number of entries")
@click.option("--revision", "-r", help="Revision or range (N:M)")
@click.option("--paths", "show_paths", is_flag=True, help="Include changed paths")
@click.option("--json", "json_output", is_flag=True, help="JSON output")
def log(
    path: str,
    limit: Optional[int],
    revision: Optional[str],
    show_paths: bool,
    json_output: bool,
) -> None:
    """Show the commit log of PATH."""
    try:
        instance = _open_instance(path)
        with instance.log() as cmd:
            if limit is not None:
                cmd.limit(limit)
            if revision:
                start, _, end = revision.partition(":")
                cmd.revision(start, end or None)
            if show_paths:
                cmd.verbose()
            entries = list(cmd.target(".").parse_output().execute())
    except SvnKitError as e:
        _fail(e)
        return

    if json_output:
        click.echo(_render_json(entries))
        return

    for entry in entries:
        date = entry.date.strftime("%Y-%m-%d %H:%M:%S") if entry.date else ""
        click.echo(f"r{entry.revision} | {entry.author or '(no author)'} | {date}")
        for changed in entry.paths:
            click.echo(f"   {changed.action} {changed.path}")
        if entry.message:
            click.echo(entry.message)
        click.echo("")


@svnkit.command(name="ls")
@click.argument("path", default=".")
@click.argument("subpath", default=".")
@click.option("--revision", "-r", help="Revision to list")
@click.option("--recursive", "-R", is_flag=True, help="Descend recursively")
@click.option("--json", "json_output", is_flag=True, help="JSON output")
def ls(path: str, subpath: str, revision: Optional[str], recursive: bool, json_output: bool) -> None:
    """List entries under SUBPATH of PATH."""
    try:
        instance = _open_instance(path)
        with instance.ls() as cmd:
            if revision:
                cmd.revision(revision)
            if recursive:
                cmd.recursive()
            entries = list(cmd.target(subpath).parse_output().execute())
    except SvnKitError as e:
        _fail(e)
        return

    if json_output:
        click.echo(_render_json(entries))
        return

    for entry in entries:
        suffix = "/" if entry.kind == "dir" else ""
        click.echo(f"{entry.name}{suffix}")


@svnkit.command()
@click.argument("path")
@click.argument("files", nargs=-1, required=True)
@click.option("--revision", "-r", help="Revision to read")
def cat(path: str, files: tuple[str, ...], revision: Optional[str]) -> None:
    """Print the contents of FILES from PATH."""
    try:
        instance = _open_instance(path)
        with instance.cat() as cmd:
            if revision:
                cmd.revision(revision)
            for name in files:
                cmd.target(name)
            output = cmd.execute()
    except SvnKitError as e:
        _fail(e)
        return

    click.echo(output, nl=False)


def main() -> None:
    svnkit()


if __name__ == "__main__":
    main()
