"""Shared fixtures for artifact-sweep tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from artifact_sweep.rules import CleanResult, Rule
from artifact_sweep.walker import RunSummary


class FakeRunner:
    """Command runner that records calls instead of spawning processes."""

    def __init__(self, results: dict[str, int | Exception] | None = None) -> None:
        self.results = results or {}
        self.calls: list[tuple[str, Path]] = []

    def run(self, command: str, cwd: Path) -> int:
        self.calls.append((command, cwd))
        result = self.results.get(command, 0)
        if isinstance(result, Exception):
            raise result
        return result

    @property
    def commands(self) -> list[str]:
        return [command for command, _cwd in self.calls]


class RecordingReporter:
    """Reporter that keeps every event for later assertions."""

    def __init__(self) -> None:
        self.root: Path | None = None
        self.matches: list[tuple[Path, str]] = []
        self.clean_failures: list[tuple[Path, str, CleanResult]] = []
        self.match_errors: list[tuple[Path, str, Exception]] = []
        self.walk_errors: list[tuple[Path, OSError]] = []
        self.summaries: list[RunSummary] = []

    def start(self, root: Path) -> None:
        self.root = root

    def matched(self, path: Path, rule: Rule) -> None:
        self.matches.append((path, rule.name))

    def clean_failed(self, path: Path, rule: Rule, result: CleanResult) -> None:
        self.clean_failures.append((path, rule.name, result))

    def match_error(self, path: Path, rule: Rule, error: Exception) -> None:
        self.match_errors.append((path, rule.name, error))

    def walk_error(self, path: Path, error: OSError) -> None:
        self.walk_errors.append((path, error))

    def summary(self, summary: RunSummary) -> None:
        self.summaries.append(summary)


def make_tree(root: Path, layout: dict[str, object]) -> None:
    """Create files and directories from a nested dict.

    Dict values become directories, string values become file contents.
    """
    for name, value in layout.items():
        path = root / name
        if isinstance(value, dict):
            path.mkdir()
            make_tree(path, value)
        else:
            path.write_text(str(value))


@pytest.fixture(autouse=True)
def isolated_config_home(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep tests away from the user's configuration file."""
    config_home = tmp_path_factory.mktemp("config-home")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    return config_home


@pytest.fixture
def fake_runner() -> FakeRunner:
    """Create a runner where every command succeeds."""
    return FakeRunner()


@pytest.fixture
def reporter() -> RecordingReporter:
    """Create a recording reporter."""
    return RecordingReporter()
