"""Depth-first traversal that applies every rule to every directory."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from .rules import MatchOutcome

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .report import Reporter
    from .rules import Rule
    from .runner import CommandRunner

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    """Counters for a sweep."""

    matched: int = 0
    cleaned: int = 0
    visited: int = 0
    clean_failures: int = 0
    errors: int = 0


class Walker:
    """Walks a directory tree and applies rules to each directory."""

    def __init__(
        self,
        rules: Sequence[Rule],
        runner: CommandRunner,
        reporter: Reporter,
        *,
        dry_run: bool = False,
    ) -> None:
        """Initialize the walker.

        Args:
            rules: Rules in priority order.
            runner: Runs verify and clean commands.
            reporter: Receives matches, failures and the summary.
            dry_run: Report matches without cleaning.

        """
        self.rules = tuple(rules)
        self.runner = runner
        self.reporter = reporter
        self.dry_run = dry_run

    def run(self, root: Path) -> RunSummary:
        """Sweep the tree under ``root``.

        Per-directory failures are reported and counted; they never stop
        the sweep.

        Args:
            root: Directory to start from.

        Returns:
            RunSummary for the whole tree.

        Raises:
            OSError: If ``root`` does not exist.

        """
        root = root.resolve(strict=True)
        summary = RunSummary()
        self.reporter.start(root)

        stack = [root]
        while stack:
            directory = stack.pop()
            if not directory.is_dir():
                # Removed by a cleanup after it was queued
                logger.debug("Skipping vanished directory: %s", directory)
                continue

            summary.visited += 1
            listing_failed = self._apply_rules(directory, summary)
            stack.extend(self._subdirectories(directory, summary, reported=listing_failed))

        logger.info(
            "Sweep finished: visited=%d, matched=%d, cleaned=%d, errors=%d",
            summary.visited,
            summary.matched,
            summary.cleaned,
            summary.errors,
        )
        self.reporter.summary(summary)
        return summary

    def _apply_rules(self, directory: Path, summary: RunSummary) -> bool:
        """Classify a directory against each rule and clean matches.

        Returns:
            True if a rule failed because the directory could not be listed.

        """
        for rule in self.rules:
            result = rule.classify(directory, self.runner)

            if result.outcome is MatchOutcome.NO_MATCH:
                continue

            if result.outcome is MatchOutcome.ERROR:
                summary.errors += 1
                logger.debug("Error checking %s in %s: %s", rule.name, directory, result.error)
                self.reporter.match_error(directory, rule, result.error)
                return isinstance(result.error, OSError)

            summary.matched += 1
            self.reporter.matched(directory, rule)

            if self.dry_run:
                continue

            cleaned = rule.clean(directory, self.runner)
            if cleaned.success:
                summary.cleaned += 1
                logger.debug("Cleaned %s: %s", rule.name, directory)
            else:
                if cleaned.error is not None:
                    summary.errors += 1
                else:
                    summary.clean_failures += 1
                self.reporter.clean_failed(directory, rule, cleaned)

        return False

    def _subdirectories(self, directory: Path, summary: RunSummary, *, reported: bool = False) -> list[Path]:
        """List child directories to push, in reverse name order.

        Symlinks are not followed. When ``reported`` is set the directory's
        listing failure was already reported by a rule, so a second failure
        here is not reported again.
        """
        try:
            with os.scandir(directory) as entries:
                children = [entry.name for entry in entries if entry.is_dir(follow_symlinks=False)]
        except FileNotFoundError:
            logger.debug("Directory vanished before listing: %s", directory)
            return []
        except OSError as e:
            if reported:
                logger.debug("Skipping children of unreadable directory: %s", directory)
                return []
            summary.errors += 1
            self.reporter.walk_error(directory, e)
            return []

        return [directory / name for name in sorted(children, reverse=True)]
