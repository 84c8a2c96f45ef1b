"""
Completion tracking so interrupted extractions can resume.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Union


class ProgressLedger:
    """Set of completed ``database.table`` keys.

    Entries are only ever added. Subclasses decide where they are kept.
    """

    def load(self) -> set[str]:
        raise NotImplementedError

    def mark_complete(self, key: str) -> None:
        raise NotImplementedError

    def is_complete(self, key: str) -> bool:
        return key in self.load()


class InMemoryProgressLedger(ProgressLedger):
    """Ledger kept in memory; used for dry runs and tests."""

    def __init__(self, completed: Union[set[str], None] = None):
        self._completed = set(completed or ())

    def load(self) -> set[str]:
        return set(self._completed)

    def mark_complete(self, key: str) -> None:
        self._completed.add(key)


class FileProgressLedger(ProgressLedger):
    """Plain-text ledger, one completed key per line."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> set[str]:
        """Read completed keys; a missing file means nothing is complete."""
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                return {line.strip() for line in f if line.strip()}
        except FileNotFoundError:
            return set()

    def mark_complete(self, key: str) -> None:
        """Add a key, rewriting the whole file sorted and deduplicated."""
        completed = self.load()
        completed.add(key)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(''.join(f"{k}\n" for k in sorted(completed)))
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

        logging.debug(f"Marked '{key}' complete in {self.path}")
