"""Watch command - drive a universe tracker over a directory."""

from __future__ import annotations

import json
import time
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..fs import DirectoryUniverse
from ..log import AppendEvent
from ..records import ChangeRecord, format_record
from ..tracking import UniverseTracker


def run_watch(
    path: Path,
    *,
    interval: float = 0.5,
    cycles: int | None = None,
    include_hash: bool = False,
    patterns: list[str] | None = None,
    output_json: bool = False,
    prune: bool = False,
    polling: bool = False,
) -> int:
    """
    Track files under `path`, logging every change once per cycle.

    Runs until interrupted (Ctrl+C) or until `cycles` cycles have completed.
    Files already present are logged on the first cycle.

    Returns the number of change records logged.
    """
    console = Console()
    status = Console(stderr=True)

    universe = DirectoryUniverse(path, patterns, include_hash=include_hash)
    tracker = UniverseTracker(universe, prune_missing=prune)

    def on_append(event: AppendEvent) -> None:
        record: ChangeRecord = event.value
        if output_json:
            line = {"time": round(event.key, 6), **record.to_dict()}
            console.print(json.dumps(line), markup=False, highlight=False, soft_wrap=True)
        else:
            console.print(format_record(event.key, record), markup=False, highlight=False, soft_wrap=True)

    tracker.on_append(on_append)

    if not output_json:
        status.print(f"[bold]Watching[/bold] {universe.root}")
        if patterns:
            status.print(f"  Patterns: {', '.join(patterns)}")
        status.print(f"  Hash tracking: {'on' if include_hash else 'off'}")
        if cycles is None:
            status.print("[dim]Press Ctrl+C to stop watching[/dim]")
        status.print()

    completed = 0
    universe.start(polling=polling)
    try:
        while cycles is None or completed < cycles:
            tracker.cycle()
            completed += 1
            if cycles is None or completed < cycles:
                time.sleep(interval)
    except KeyboardInterrupt:
        status.print()
    finally:
        universe.stop()

    if not output_json:
        _print_summary(status, tracker, completed)

    return len(tracker.log)


def _print_summary(console: Console, tracker: UniverseTracker, cycles: int) -> None:
    table = Table(title="Watch Summary")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Cycles", str(cycles))
    table.add_row("Files watched", str(len(tracker.watched)))
    table.add_row("Changes logged", str(len(tracker.log)))

    if tracker.log.first_key is not None:
        table.add_row("", "")
        table.add_row("First change", f"{tracker.log.first_key:.3f}s")
        table.add_row("Last change", f"{tracker.log.last_key:.3f}s")

    console.print(table)
