"""Main entry point for artifact-sweep."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import NoReturn

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.text import Text

from .config import ConfigError, SweepConfig
from .report import ConsoleReporter
from .rules import InvalidPatternError, Rule, build_rules
from .runner import ShellRunner
from .walker import Walker

LOGGER_NAME = "artifact_sweep"


class _ArgumentParser(argparse.ArgumentParser):
    """Argument parser that exits with status 1 on usage errors."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        argv: Arguments to parse. Uses ``sys.argv`` if None.

    Returns:
        Parsed arguments.

    """
    parser = _ArgumentParser(
        prog="artifact-sweep",
        description="Find build artifact directories under a tree and clean them",
    )

    parser.add_argument(
        "root",
        nargs="?",
        type=Path,
        default=None,
        help="Directory to scan",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--dry-run",
        "-n",
        action="store_true",
        default=None,
        help="Only report matches, do not run clean commands",
    )
    parser.add_argument(
        "--list",
        "-l",
        action="store_true",
        dest="list_rules",
        help="Print rule definitions and exit",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=None,
        help="Show command output and shell tracing",
    )

    args = parser.parse_args(argv)
    if args.root is None and not args.list_rules:
        parser.error("the following arguments are required: root")
    return args


def setup_logging(config: SweepConfig, *, verbose: bool = False) -> logging.Logger:
    """Set up the application logger.

    Args:
        config: Sweep configuration.
        verbose: Log everything down to DEBUG.

    Returns:
        Configured logger instance.

    Raises:
        ConfigError: If the log level is unknown or the log file cannot be opened.

    """
    level_name = "DEBUG" if verbose else config.log_level
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        raise ConfigError(f"Invalid log_level: {config.log_level}")

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    # Clear existing handlers to avoid duplicates when called again
    if logger.handlers:
        logger.handlers.clear()

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
    )
    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    if config.log_file is not None:
        try:
            config.log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(config.log_file)
        except OSError as e:
            raise ConfigError(f"Cannot open log file {config.log_file}: {e}") from e
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(message)s"))
        logger.addHandler(file_handler)

    return logger


def cmd_list(rules: tuple[Rule, ...]) -> int:
    """Print the rule definitions.

    Returns:
        Exit code.

    """
    console = Console()
    table = Table(title=f"Rules ({len(rules)})")
    table.add_column("Rule", style="cyan")
    table.add_column("Files", style="green")
    table.add_column("Dirs", style="green")
    table.add_column("Verify", style="yellow")
    table.add_column("Clean", style="red")

    for rule in rules:
        described = rule.describe()
        # Plain Text cells: regex brackets are not rich markup
        cells = [Text("\n".join(described[key])) for key in ("files", "dirs", "verify", "clean")]
        table.add_row(Text(rule.name), *cells)

    console.print(table)
    return 0


def cmd_sweep(config: SweepConfig, rules: tuple[Rule, ...], root: Path, *, dry_run: bool, verbose: bool) -> int:
    """Sweep a directory tree.

    Returns:
        Exit code.

    """
    error_console = Console(stderr=True)

    if not root.exists():
        error_console.print(f"{root}: no such directory", markup=False, style="red", soft_wrap=True)
        return 1
    if not root.is_dir():
        error_console.print(f"{root}: not a directory", markup=False, style="red", soft_wrap=True)
        return 1

    runner = ShellRunner(
        config.command_timeout,
        config.kill_grace,
        verbose=verbose,
        shell=config.shell,
    )
    reporter = ConsoleReporter(error_console=error_console, dry_run=dry_run)
    walker = Walker(rules, runner, reporter, dry_run=dry_run)

    try:
        walker.run(root)
    except OSError as e:
        # Root disappeared or cannot be resolved
        error_console.print(f"{root}: {e}", markup=False, style="red", soft_wrap=True)
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code.

    """
    args = parse_args(argv)
    error_console = Console(stderr=True)

    try:
        config = SweepConfig.load(args.config)
        verbose = config.verbose if args.verbose is None else args.verbose
        dry_run = config.dry_run if args.dry_run is None else args.dry_run
        setup_logging(config, verbose=verbose)
        rules = build_rules(config)
    except (ConfigError, InvalidPatternError) as e:
        error_console.print(f"Invalid configuration: {e}", markup=False, style="red", soft_wrap=True)
        return 1

    if args.list_rules:
        return cmd_list(rules)

    return cmd_sweep(config, rules, args.root, dry_run=dry_run, verbose=verbose)


if __name__ == "__main__":
    sys.exit(main())
