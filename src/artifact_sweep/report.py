"""Reporting of matches, failures and the run summary."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from rich.console import Console

if TYPE_CHECKING:
    from .rules import CleanResult, Rule
    from .walker import RunSummary


class Reporter(Protocol):
    """Receives the events of a sweep."""

    def start(self, root: Path) -> None: ...

    def matched(self, path: Path, rule: Rule) -> None: ...

    def clean_failed(self, path: Path, rule: Rule, result: CleanResult) -> None: ...

    def match_error(self, path: Path, rule: Rule, error: Exception) -> None: ...

    def walk_error(self, path: Path, error: OSError) -> None: ...

    def summary(self, summary: RunSummary) -> None: ...


class ConsoleReporter:
    """Prints matches and the summary to stdout, problems to stderr."""

    def __init__(
        self,
        console: Console | None = None,
        error_console: Console | None = None,
        *,
        dry_run: bool = False,
    ) -> None:
        self.console = console or Console(highlight=False)
        self.error_console = error_console or Console(stderr=True, highlight=False)
        self.dry_run = dry_run
        self._root: Path | None = None

    def _display(self, path: Path) -> str:
        """Show a path relative to the scanned root."""
        if self._root is None:
            return str(path)
        try:
            return str(path.relative_to(self._root))
        except ValueError:
            return str(path)

    def _error(self, message: str) -> None:
        self.error_console.print(message, markup=False, style="red", soft_wrap=True)

    def start(self, root: Path) -> None:
        self._root = root

    def matched(self, path: Path, rule: Rule) -> None:
        self.console.print(f"{rule.name}: {self._display(path)}", markup=False, soft_wrap=True)

    def clean_failed(self, path: Path, rule: Rule, result: CleanResult) -> None:
        if result.error is not None:
            detail = str(result.error)
        else:
            detail = f"{result.failed_command!r} exited with status {result.exit_code}"
        self._error(f"{self._display(path)}: cleanup for {rule.name} failed: {detail}")

    def match_error(self, path: Path, rule: Rule, error: Exception) -> None:
        self._error(f"{self._display(path)}: error checking {rule.name}: {error}")

    def walk_error(self, path: Path, error: OSError) -> None:
        self._error(f"{self._display(path)}: cannot list directory: {error}")

    def summary(self, summary: RunSummary) -> None:
        if self.dry_run:
            line = f"Cleaned {summary.cleaned}/{summary.matched} matched directories (dry run)"
        else:
            line = f"Cleaned {summary.cleaned}/{summary.matched} matched directories"
        if summary.errors:
            line += f", {summary.errors} errors"
        self.console.print(line, markup=False, soft_wrap=True)
