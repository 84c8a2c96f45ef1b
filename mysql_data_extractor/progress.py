"""
Elapsed time and ETA reporting for extraction runs.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional


@dataclass(frozen=True)
class ProgressSnapshot:
    """Timing statistics after a committed table."""
    elapsed: float
    completed: int
    remaining: int
    average_per_table: Optional[float]
    eta: Optional[float]


def compute_progress(elapsed: float, completed: int, remaining: int) -> ProgressSnapshot:
    """Average time per completed table, projected over the remaining ones."""
    if completed <= 0:
        return ProgressSnapshot(elapsed, completed, remaining, None, None)
    average = elapsed / completed
    return ProgressSnapshot(elapsed, completed, remaining, average, average * remaining)


def format_duration(seconds: Optional[float]) -> str:
    """Render seconds as ``1h02m03s`` / ``2m03s`` / ``3.4s``."""
    if seconds is None:
        return "unknown"
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(round(seconds)), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h{minutes:02d}m{secs:02d}s"
    return f"{minutes}m{secs:02d}s"


class ProgressReporter:
    """Logs row-level and table-level progress for the executor."""

    def __init__(self, total_tables: int, progress_interval: int = 1000,
                 clock: Callable[[], float] = time.monotonic):
        self.total_tables = total_tables
        self.progress_interval = progress_interval
        self.clock = clock
        self.started_at = clock()

    def elapsed(self) -> float:
        return self.clock() - self.started_at

    def row_progress(self, table_key: str, rows: int) -> None:
        if self.progress_interval > 0 and rows % self.progress_interval == 0:
            logging.info(f"    {table_key}: {rows} rows extracted")

    def table_committed(self, position: int, completed: int) -> ProgressSnapshot:
        """Log progress after the table at 1-based ``position`` committed."""
        snapshot = compute_progress(
            self.elapsed(), completed, self.total_tables - position
        )
        logging.info(
            f"Progress: {position}/{self.total_tables} tables | "
            f"Elapsed: {format_duration(snapshot.elapsed)} | "
            f"ETA: {format_duration(snapshot.eta)}"
        )
        return snapshot
