"""Built-in artifact rules and assembly of the active rule set."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .base import CleanResult, InvalidPatternError, MatchOutcome, MatchResult, Rule, compile_pattern

if TYPE_CHECKING:
    from ..config import SweepConfig

__all__ = [
    "CleanResult",
    "InvalidPatternError",
    "MatchOutcome",
    "MatchResult",
    "Rule",
    "build_rules",
    "builtin_rules",
    "compile_pattern",
]

logger = logging.getLogger(__name__)


def builtin_rules() -> tuple[Rule, ...]:
    """Return the built-in rules in priority order."""
    return (
        Rule.build(
            "built Rust project",
            files=["Cargo.toml"],
            dirs=["target"],
            clean=["cargo clean"],
        ),
        Rule.build(
            "Makefile with clean target",
            files=["Makefile|makefile|GNUmakefile"],
            verify=["make clean --dry-run"],
            clean=["make clean"],
        ),
        Rule.build(
            "Python bytecode cache",
            dirs=["__pycache__"],
            clean=["rm -r __pycache__"],
        ),
    )


def build_rules(config: SweepConfig) -> tuple[Rule, ...]:
    """Assemble built-in and configured rules, minus disabled ones.

    Configured rules follow the built-ins in the order they are listed.

    Raises:
        InvalidPatternError: If a configured rule has an invalid pattern.

    """
    configured = tuple(
        Rule.build(spec.name, files=spec.files, dirs=spec.dirs, verify=spec.verify, clean=spec.clean)
        for spec in config.rules
    )

    disabled = set(config.rules_disabled)
    rules: list[Rule] = []
    for rule in builtin_rules() + configured:
        if rule.name in disabled:
            logger.info("Rule disabled by config: %s", rule.name)
            continue
        rules.append(rule)
        logger.debug("Loaded rule: %s", rule.name)

    return tuple(rules)
