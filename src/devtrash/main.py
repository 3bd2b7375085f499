"""Main entry point for devtrash."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from . import __version__
from .app import collect_results, run_interactive, setup_logging
from .config import SweepConfig
from .errors import ConfigError
from .ui import format_gb, format_size

logger = logging.getLogger("devtrash")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments.

    """
    parser = argparse.ArgumentParser(
        prog="devtrash",
        description="Find stale node_modules and target directories and move them to the trash",
    )

    parser.add_argument(
        "path",
        nargs="?",
        default=None,
        help="Directory to scan (defaults to the working directory)",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        dest="list_only",
        help="Scan, print the matches and exit without deleting anything",
    )
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Create default configuration file",
    )
    parser.add_argument(
        "--show-config",
        action="store_true",
        help="Show current configuration",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser.parse_args(argv)


def resolve_root(path: str | None) -> Path:
    """Pick the scan root: ``path`` if it is a directory, else the working directory."""
    if path:
        candidate = Path(path).expanduser()
        if candidate.is_dir():
            return candidate.absolute()
        logger.debug("Not a directory, scanning working directory instead: %s", path)
    return Path.cwd()


def cmd_init_config(config: SweepConfig, config_path: Path | None, console: Console) -> int:
    """Write the default configuration file.

    Returns:
        Exit code.

    """
    path = config_path or SweepConfig.get_config_path()
    if path.exists():
        console.print(f"[yellow]Config already exists: {path}[/yellow]")
        return 1
    config.save(path)
    console.print(f"[green]Created config: {path}[/green]")
    return 0


def cmd_show_config(config: SweepConfig, console: Console) -> int:
    """Print the effective configuration.

    Returns:
        Exit code.

    """
    table = Table(title="Current Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Match names", "\n".join(config.match_names))
    table.add_row("Ignore patterns", "\n".join(config.ignore_patterns))
    table.add_row("Auto-select after", f"{config.auto_select_days} days")
    table.add_row("Tick interval", f"{config.tick_interval}s")
    table.add_row("Log file", str(config.log_file))
    table.add_row("Log level", config.log_level)

    console.print(table)
    return 0


def cmd_list(config: SweepConfig, root: Path, console: Console) -> int:
    """Scan ``root`` and print the candidates.

    Returns:
        Exit code.

    """
    with console.status(f"Scanning {root}..."):
        results = collect_results(config, root)

    if not len(results):
        console.print("[green]No matching directories found[/green]")
        return 0

    table = Table(title=f"Found {len(results)} directories under {root}")
    table.add_column("Sel", justify="center")
    table.add_column("Size", justify="right", style="cyan")
    table.add_column("Age", justify="right")
    table.add_column("Path", style="dim")

    for candidate in results:
        table.add_row(
            "x" if candidate.selected else "",
            format_size(candidate.size_bytes),
            f"{candidate.age_days}d",
            Text(str(candidate.path)),
        )

    console.print(table)
    stats = results.stats
    console.print(
        f"Total {format_gb(stats.total_size)}, "
        f"{stats.selected_count} older than {config.auto_select_days} days "
        f"({format_gb(stats.selected_size)})"
    )
    return 0


def cmd_interactive(config: SweepConfig, root: Path, console: Console) -> int:
    """Run the interactive session.

    Returns:
        Exit code.

    """
    summary = run_interactive(config, root, console)
    if summary is not None:
        console.print(
            f"[green]Cleaned {summary.count} folders, freeing {format_gb(summary.size_bytes)}.[/green]"
        )
        for path in summary.failed:
            console.print(f"[red]Could not move to trash: {escape(str(path))}[/red]")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code.

    """
    args = parse_args(argv)
    console = Console()

    try:
        config = SweepConfig.load(args.config)
    except ConfigError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        return 2

    if args.init_config:
        return cmd_init_config(config, args.config, console)
    if args.show_config:
        return cmd_show_config(config, console)

    setup_logging(
        config,
        console,
        console_level=logging.INFO if args.list_only else logging.WARNING,
    )
    root = resolve_root(args.path)

    try:
        if args.list_only:
            return cmd_list(config, root, console)
        return cmd_interactive(config, root, console)
    except ConfigError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        return 2
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
