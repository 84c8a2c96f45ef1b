"""
Table and database name filtering for MySQL Data Extractor.
"""

import logging
import re
from typing import Iterable


def compile_pattern(pattern: str) -> re.Pattern:
    """
    Compile a wildcard pattern to an anchored regex.

    ``*`` matches zero or more characters; everything else is literal.
    The whole name must match, so ``user_*`` never matches ``old_user_log``.
    """
    parts = [re.escape(part) for part in pattern.split('*')]
    return re.compile('^' + '.*'.join(parts) + '$', re.DOTALL)


def compile_patterns(patterns: Iterable[str]) -> list[re.Pattern]:
    """Pre-compile patterns for matching many names against the same list."""
    return [compile_pattern(p) for p in patterns]


def matches_any(name: str, compiled_patterns: list[re.Pattern]) -> bool:
    """Check a name against pre-compiled patterns."""
    return any(compiled.match(name) for compiled in compiled_patterns)


def should_include(
    table_name: str,
    include_patterns: Iterable[str],
    exclude_patterns: Iterable[str]
) -> bool:
    """
    Decide whether a table is in scope.

    Exclude patterns win over include patterns. With no include patterns
    every table that is not excluded is in scope.
    """
    return TableFilter(include_patterns, exclude_patterns).should_include(table_name)


class TableFilter:
    """Include/exclude pattern filter with pre-compiled patterns."""

    def __init__(self, include_patterns: Iterable[str] = (), exclude_patterns: Iterable[str] = ()):
        self.include_patterns = list(include_patterns)
        self.exclude_patterns = list(exclude_patterns)
        self._include = compile_patterns(self.include_patterns)
        self._exclude = compile_patterns(self.exclude_patterns)

    def should_include(self, name: str) -> bool:
        if matches_any(name, self._exclude):
            logging.debug(f"'{name}' excluded by exclude pattern")
            return False

        if self._include:
            if matches_any(name, self._include):
                return True
            logging.debug(f"'{name}' does not match any include pattern")
            return False

        return True

    def apply(self, names: Iterable[str]) -> list[str]:
        """Filter a list of names, preserving order."""
        names = list(names)
        kept = [n for n in names if self.should_include(n)]
        dropped = len(names) - len(kept)
        if dropped > 0:
            logging.info(f"Filtered out {dropped} name(s) by include/exclude patterns")
        return kept
