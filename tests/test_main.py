"""Tests for the command line entry point."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest
import yaml
from conftest import make_tree

from artifact_sweep.config import ConfigError, SweepConfig
from artifact_sweep.main import LOGGER_NAME, main, parse_args, setup_logging


@pytest.fixture(autouse=True)
def reset_logger() -> Iterator[None]:
    """Drop handlers installed by main() between tests."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.propagate = True


@pytest.fixture(autouse=True)
def wide_console(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep rich from wrapping output in tests."""
    monkeypatch.setenv("COLUMNS", "200")


def _config(tmp_path: Path, data: dict[str, object]) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump(data), encoding="utf-8")
    return path


class TestParseArgs:
    """Tests for argument parsing."""

    def test_root_and_flags(self) -> None:
        """Test parsing a root with every flag."""
        args = parse_args(["-n", "-v", "some/dir"])

        assert args.root == Path("some/dir")
        assert args.dry_run is True
        assert args.verbose is True
        assert args.list_rules is False

    def test_flags_default_to_none(self) -> None:
        """Test that unset flags stay None so the config can supply them."""
        args = parse_args(["dir"])

        assert args.dry_run is None
        assert args.verbose is None

    def test_missing_root_exits_1(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that omitting the root is a usage error with status 1."""
        with pytest.raises(SystemExit) as exc_info:
            parse_args([])

        assert exc_info.value.code == 1
        assert "root" in capsys.readouterr().err

    def test_unknown_flag_exits_1(self) -> None:
        """Test that an unknown option is a usage error with status 1."""
        with pytest.raises(SystemExit) as exc_info:
            parse_args(["--bogus", "dir"])

        assert exc_info.value.code == 1

    def test_list_does_not_need_root(self) -> None:
        """Test that --list can be given alone."""
        assert parse_args(["--list"]).list_rules is True


class TestSetupLogging:
    """Tests for logger configuration."""

    def test_invalid_level_raises(self) -> None:
        """Test that an unknown log level is a configuration error."""
        config = SweepConfig()
        config.log_level = "LOUD"

        with pytest.raises(ConfigError, match="Invalid log_level"):
            setup_logging(config)

    def test_file_handler_added(self, tmp_path: Path) -> None:
        """Test that a log file gets its own handler."""
        config = SweepConfig()
        config.log_file = tmp_path / "logs" / "sweep.log"

        logger = setup_logging(config)
        logger.debug("hello file")
        for handler in logger.handlers:
            handler.flush()

        assert len(logger.handlers) == 2
        assert "hello file" in config.log_file.read_text()

    def test_unusable_log_file_raises(self, tmp_path: Path) -> None:
        """Test that a log file under a regular file is a configuration error."""
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        config = SweepConfig()
        config.log_file = blocker / "sub" / "log.txt"

        with pytest.raises(ConfigError, match="Cannot open log file"):
            setup_logging(config)

    def test_repeat_setup_does_not_duplicate(self) -> None:
        """Test that calling setup twice keeps a single console handler."""
        setup_logging(SweepConfig())
        logger = setup_logging(SweepConfig())

        assert len(logger.handlers) == 1


class TestMain:
    """Tests for full runs through main()."""

    def test_list_prints_rules(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that --list prints rules without touching the root."""
        assert main(["--list", str(tmp_path / "missing")]) == 0

        out = capsys.readouterr().out
        assert "built Rust project" in out
        assert "Makefile with clean target" in out
        assert "cargo clean" in out

    def test_missing_root(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that a root that does not exist exits with status 1."""
        assert main([str(tmp_path / "missing")]) == 1
        assert "no such directory" in capsys.readouterr().err

    def test_root_is_a_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that a file given as root exits with status 1."""
        target = tmp_path / "file.txt"
        target.write_text("x")

        assert main([str(target)]) == 1
        assert "not a directory" in capsys.readouterr().err

    def test_dry_run_reports_matches(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test the Rust scenario end to end in dry-run mode."""
        make_tree(tmp_path, {"proj": {"Cargo.toml": "", "target": {}}})

        assert main(["--dry-run", str(tmp_path)]) == 0

        captured = capsys.readouterr()
        assert captured.out.splitlines() == [
            "built Rust project: proj",
            "Cleaned 0/1 matched directories (dry run)",
        ]
        assert (tmp_path / "proj" / "target").is_dir()

    def test_configured_rule_cleans(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that a rule from the config file matches and runs its clean command."""
        tree = tmp_path / "tree"
        tree.mkdir()
        make_tree(tree, {"site": {"index.md": "", "build": {"page.html": ""}}})
        config = _config(
            tmp_path,
            {
                "rules_disabled": ["built Rust project", "Makefile with clean target", "Python bytecode cache"],
                "rules": [{"name": "static site", "files": [r".*\.md"], "dirs": ["build"], "clean": ["rm -r build"]}],
            },
        )

        assert main(["--config", str(config), str(tree)]) == 0

        assert capsys.readouterr().out.splitlines() == [
            "static site: site",
            "Cleaned 1/1 matched directories",
        ]
        assert not (tree / "site" / "build").exists()

    def test_clean_failure_still_exits_0(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that failed cleanups are reported but do not fail the run."""
        tree = tmp_path / "tree"
        tree.mkdir()
        make_tree(tree, {"site": {"build": {}}})
        config = _config(
            tmp_path,
            {
                "rules_disabled": ["built Rust project", "Makefile with clean target", "Python bytecode cache"],
                "rules": [{"name": "broken", "dirs": ["build"], "clean": ["exit 4"]}],
            },
        )

        assert main(["-c", str(config), str(tree)]) == 0

        captured = capsys.readouterr()
        assert "Cleaned 0/1 matched directories" in captured.out
        assert "exited with status 4" in captured.err

    def test_invalid_config_pattern_exits_1(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that a bad regex in the config stops before any traversal."""
        config = _config(tmp_path, {"rules": [{"name": "bad", "files": ["(open"]}]})

        assert main(["-c", str(config), str(tmp_path)]) == 1
        assert "Invalid configuration" in capsys.readouterr().err

    def test_unusable_log_file_exits_1(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that a log file that cannot be created stops before any traversal."""
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        config = _config(tmp_path, {"logging": {"file": str(blocker / "sub" / "log.txt")}})

        assert main(["-c", str(config), str(tmp_path)]) == 1

        captured = capsys.readouterr()
        assert "Invalid configuration" in captured.err
        assert "Cannot open log file" in captured.err
        assert captured.out == ""

    def test_config_dry_run_default(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that dry_run in the config applies when the flag is absent."""
        tree = tmp_path / "tree"
        tree.mkdir()
        make_tree(tree, {"pkg": {"__pycache__": {}}})
        config = _config(tmp_path, {"dry_run": True})

        assert main(["-c", str(config), str(tree)]) == 0

        assert "Cleaned 0/1 matched directories (dry run)" in capsys.readouterr().out
        assert (tree / "pkg" / "__pycache__").is_dir()
