"""CLI entry point for payload projection commands."""

import sys
from pathlib import Path

import click

from projector import configure_logging, create_container
from projector.config import ConfigurationError, Settings
from projector.exceptions import CleanupIncompleteException, ProjectionException
from projector.utils.paths import validate_path
from projector.utils.payload_loader import load_payload_from_directory


def _parse_mode(ctx: click.Context, param: click.Parameter, value: str | None) -> int | None:
    """Parse an octal permission string such as 0644."""
    if value is None:
        return None
    try:
        mode = int(value, 8)
    except ValueError:
        raise click.BadParameter(f"{value!r} is not an octal mode") from None
    if not 0 <= mode <= 0o7777:
        raise click.BadParameter(f"{value!r} is outside 0000-7777")
    return mode


def _load_settings() -> Settings:
    settings = Settings.load()
    try:
        settings.validate_config()
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    configure_logging(settings)
    return settings


@click.group()
def cli() -> None:
    """Projector CLI - Atomic payload projection commands."""
    pass


@cli.command()
@click.argument("target", type=click.Path(path_type=Path))
@click.argument(
    "source",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
)
@click.option(
    "--mode",
    callback=_parse_mode,
    help="Octal mode for every projected file (default: keep each source file's mode)",
)
def write(target: Path, source: Path, mode: int | None) -> None:
    """Project the files below SOURCE into TARGET.

    Every regular file below SOURCE becomes one payload entry. TARGET must
    already exist; its visible entries are replaced atomically.

    Examples:
        projector-cli write /etc/app/config ./rendered             Keep source modes
        projector-cli write /etc/app/config ./rendered --mode 0444  Read-only files
    """
    settings = _load_settings()
    container = create_container(settings)

    try:
        payload = load_payload_from_directory(source, mode=mode)
    except OSError as e:
        click.echo(f"Error reading {source}: {e}", err=True)
        sys.exit(1)

    try:
        writer = container.atomic_writer(target_dir=target)
        result = writer.write(payload)
    except CleanupIncompleteException as e:
        click.echo(f"Projected {len(payload)} file(s) into {target} as {e.result.snapshot_dir}")
        click.echo(f"Warning: {e}", err=True)
        return
    except ProjectionException as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not result.changed:
        click.echo(f"{target} is already up to date ({result.snapshot_dir})")
        return

    click.echo(f"Projected {len(payload)} file(s) into {target} as {result.snapshot_dir}")
    for path in sorted(result.removed_paths):
        click.echo(f"  - removed {path}")


@cli.command()
@click.argument("target", type=click.Path(path_type=Path))
def status(target: Path) -> None:
    """Show the active snapshot of TARGET and the files it projects."""
    settings = _load_settings()
    container = create_container(settings)

    try:
        writer = container.atomic_writer(target_dir=target)
        snapshot = writer.current_snapshot()
        payload = writer.read_payload()
    except ProjectionException as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if snapshot is None:
        click.echo(f"Nothing projected into {target} yet")
        return

    click.echo(f"Active snapshot: {snapshot}")
    click.echo(f"Files: {len(payload)}")
    for path, projection in payload.items():
        click.echo(f"  {projection.mode:04o} {len(projection.data):>8} {path}")


@cli.command()
@click.argument("paths", nargs=-1, required=True)
def check(paths: tuple[str, ...]) -> None:
    """Validate logical payload PATHS and print their normalized form."""
    failed = False
    for path in paths:
        try:
            click.echo(f"{path} -> {validate_path(path)}")
        except ProjectionException as e:
            click.echo(f"Error: {e}", err=True)
            failed = True

    if failed:
        sys.exit(1)


def main() -> None:
    """Entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
