"""Rule definition and the match/clean protocol for a single directory."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from ..runner import CommandError

if TYPE_CHECKING:
    from ..runner import CommandRunner

logger = logging.getLogger(__name__)


class InvalidPatternError(ValueError):
    """A rule pattern is not a valid regular expression."""


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a filename pattern.

    The pattern is grouped so alternations stay inside it; callers test it
    with ``fullmatch`` so it always covers the whole filename.

    Raises:
        InvalidPatternError: If the pattern does not compile.

    """
    try:
        return re.compile(f"(?:{pattern})")
    except re.error as e:
        raise InvalidPatternError(f"Compiling regex `{pattern}`: {e}") from e


class MatchOutcome(Enum):
    """Outcome of classifying a directory against a rule."""

    NO_MATCH = "no_match"
    MATCHED = "matched"
    ERROR = "error"


@dataclass(frozen=True)
class MatchResult:
    """Classification of one (rule, directory) pair."""

    outcome: MatchOutcome
    error: Exception | None = None

    @classmethod
    def matched(cls) -> MatchResult:
        return cls(MatchOutcome.MATCHED)

    @classmethod
    def no_match(cls) -> MatchResult:
        return cls(MatchOutcome.NO_MATCH)

    @classmethod
    def failed(cls, cause: Exception) -> MatchResult:
        return cls(MatchOutcome.ERROR, cause)

    @property
    def is_match(self) -> bool:
        return self.outcome is MatchOutcome.MATCHED


@dataclass(frozen=True)
class CleanResult:
    """Result of running a rule's clean commands in a directory."""

    success: bool
    failed_command: str | None = None
    exit_code: int | None = None
    error: CommandError | None = None


@dataclass(frozen=True)
class Rule:
    """Immutable signature of a build-artifact directory."""

    name: str
    required_file_patterns: tuple[re.Pattern[str], ...] = ()
    required_dir_patterns: tuple[re.Pattern[str], ...] = ()
    verify_commands: tuple[str, ...] = ()
    clean_commands: tuple[str, ...] = ()

    @classmethod
    def build(
        cls,
        name: str,
        *,
        files: Iterable[str] = (),
        dirs: Iterable[str] = (),
        verify: Iterable[str] = (),
        clean: Iterable[str] = (),
    ) -> Rule:
        """Create a rule from raw pattern strings and commands.

        Args:
            name: Display name.
            files: Patterns that must each match a plain file in the directory.
            dirs: Patterns that must each match a subdirectory.
            verify: Commands that must all exit 0 for the rule to match.
            clean: Commands run, in order, to clean a matched directory.

        Raises:
            InvalidPatternError: If any pattern does not compile.

        """
        return cls(
            name=name,
            required_file_patterns=tuple(compile_pattern(p) for p in files),
            required_dir_patterns=tuple(compile_pattern(p) for p in dirs),
            verify_commands=tuple(verify),
            clean_commands=tuple(clean),
        )

    def _structure_matches(self, directory: Path) -> bool:
        """Check the required file and directory patterns.

        Raises:
            OSError: If the directory cannot be listed.

        """
        files_hit: set[int] = set()
        dirs_hit: set[int] = set()

        with os.scandir(directory) as entries:
            for entry in entries:
                # Symlinks, sockets and devices never count
                if entry.is_file(follow_symlinks=False):
                    patterns, hit = self.required_file_patterns, files_hit
                elif entry.is_dir(follow_symlinks=False):
                    patterns, hit = self.required_dir_patterns, dirs_hit
                else:
                    continue

                hit.update(i for i, pattern in enumerate(patterns) if pattern.fullmatch(entry.name))

        return len(files_hit) == len(self.required_file_patterns) and len(dirs_hit) == len(
            self.required_dir_patterns
        )

    def classify(self, directory: Path, runner: CommandRunner) -> MatchResult:
        """Decide whether a directory matches this rule.

        Verify commands only run once the structural patterns are satisfied.
        A verify command exiting non-zero is a normal non-match; failing to
        list the directory or to run a command is an error.

        Args:
            directory: Absolute path of a directory.
            runner: Runs verify commands.

        Returns:
            MatchResult for this rule and directory.

        """
        try:
            if not self._structure_matches(directory):
                return MatchResult.no_match()
        except OSError as e:
            return MatchResult.failed(e)

        for command in self.verify_commands:
            try:
                status = runner.run(command, directory)
            except CommandError as e:
                return MatchResult.failed(e)
            if status != 0:
                logger.debug("%s: verify %r exited %d in %s", self.name, command, status, directory)
                return MatchResult.no_match()

        return MatchResult.matched()

    def clean(self, directory: Path, runner: CommandRunner) -> CleanResult:
        """Run the clean commands in a directory that already matched.

        Stops at the first command that fails.

        Args:
            directory: Directory that matched this rule.
            runner: Runs clean commands.

        Returns:
            CleanResult describing the outcome.

        """
        for command in self.clean_commands:
            try:
                status = runner.run(command, directory)
            except CommandError as e:
                return CleanResult(success=False, failed_command=command, error=e)
            if status != 0:
                return CleanResult(success=False, failed_command=command, exit_code=status)

        return CleanResult(success=True)

    def describe(self) -> dict[str, list[str]]:
        """Return the rule's patterns and commands as plain strings."""
        return {
            "files": [_source(p) for p in self.required_file_patterns],
            "dirs": [_source(p) for p in self.required_dir_patterns],
            "verify": list(self.verify_commands),
            "clean": list(self.clean_commands),
        }


def _source(pattern: re.Pattern[str]) -> str:
    """Strip the grouping added by compile_pattern."""
    return pattern.pattern[3:-1]
