"""CLI entrypoint for ispy."""

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .config import SpyConfig, apply_config, find_config, load_config


@click.group()
@click.version_option(__version__, prog_name="ispy")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to a config file (defaults to the nearest .ispy.yml)",
)
@click.option("--verbose", is_flag=True, help="Show debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """ispy - spy on changing objects and log what changed, and when."""
    ctx.ensure_object(dict)

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )

    if config_path is None:
        config_path = find_config(Path.cwd())

    try:
        config = load_config(config_path) if config_path else SpyConfig()
    except ValueError as e:
        raise click.ClickException(str(e))

    apply_config(config)
    ctx.obj["config"] = config


@cli.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path))
@click.option("--interval", type=float, default=None, help="Seconds between cycles (default from config)")
@click.option("--cycles", type=click.IntRange(min=1), default=None, help="Stop after N cycles")
@click.option("--hash", "include_hash", is_flag=True, help="Include content hashes in snapshots")
@click.option(
    "--pattern",
    "patterns",
    multiple=True,
    help="Only track files matching this glob (repeatable)",
)
@click.option("--json", "output_json", is_flag=True, help="Output records as JSON lines")
@click.option("--prune", is_flag=True, help="Stop tracking files that disappear")
@click.option("--polling", is_flag=True, help="Use a polling observer instead of native events")
@click.pass_context
def watch(
    ctx: click.Context,
    path: Path,
    interval: float | None,
    cycles: int | None,
    include_hash: bool,
    patterns: tuple[str, ...],
    output_json: bool,
    prune: bool,
    polling: bool,
) -> None:
    """Track files under PATH and log every change, once per cycle.

    Examples:

        ispy watch src

        ispy watch src --pattern "*.py" --hash

        ispy watch notes --cycles 10 --json
    """
    from .commands.watch_cmd import run_watch

    config: SpyConfig = ctx.obj["config"]
    if interval is not None and interval <= 0:
        raise click.BadParameter("must be positive", param_hint="--interval")

    run_watch(
        path,
        interval=interval if interval is not None else config.poll_interval,
        cycles=cycles,
        include_hash=include_hash or config.include_hash,
        patterns=list(patterns) or config.patterns,
        output_json=output_json,
        prune=prune or config.prune_missing,
        polling=polling,
    )


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
