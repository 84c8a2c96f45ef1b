"""
Main extraction orchestration for MySQL Data Extractor.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from .config import ExtractionConfig
from .connection import DatabaseConnection
from .executor import ExtractionExecutor
from .ledger import FileProgressLedger
from .models import ExtractionSummary, TableExtractionPlan
from .planner import ExtractionPlanner, PlanningError
from .progress import format_duration


class DataExtractor:
    """Connects, plans and executes one extraction run."""

    def __init__(self, config: ExtractionConfig, run_id: Optional[str] = None):
        self.config = config
        self.run_id = run_id or config.resume or datetime.now().strftime('%Y%m%d_%H%M%S')

    @property
    def output_path(self) -> Path:
        """SQL artifact for this run."""
        return Path(self.config.output.directory) / f"{self.config.output.prefix}-{self.run_id}.sql"

    @property
    def ledger_path(self) -> Path:
        """Progress file for this run, next to the artifact."""
        return Path(self.config.output.directory) / f"{self.config.output.prefix}-{self.run_id}.progress"

    def _connect(self) -> DatabaseConnection:
        source = self.config.source
        return DatabaseConnection(
            host=source.host,
            port=source.port,
            user=source.user,
            password=source.password,
            timeout=source.timeout
        )

    def build_plan(self, conn) -> list[TableExtractionPlan]:
        """Select databases and plan their tables.

        Raises:
            PlanningError: If no database or no table is selected.
        """
        planner = ExtractionPlanner(conn, self.config)
        databases = planner.resolve_databases()
        if not databases:
            raise PlanningError("No databases found to extract")

        logging.info(f"Found {len(databases)} database(s) to process")
        plans = planner.plan(databases)
        logging.info(f"Created extraction plan for {len(plans)} table(s)")
        return plans

    def plan_only(self) -> list[TableExtractionPlan]:
        """Connect and plan without extracting anything."""
        with self._connect() as conn:
            return self.build_plan(conn)

    def run(self) -> ExtractionSummary:
        """Run the whole extraction and return its summary."""
        if self.config.resume:
            logging.info(f"Resuming run '{self.run_id}'")
        else:
            logging.info(f"Starting run '{self.run_id}' (resume with --resume {self.run_id})")

        with self._connect() as conn:
            plans = self.build_plan(conn)

            executor = ExtractionExecutor(
                conn,
                self._open_ledger(),
                batch_size=self.config.output.batch_size,
                progress_interval=self.config.output.progress_interval,
                source_label=self.config.source.label
            )
            summary = executor.execute(plans, self.output_path)

        log_summary(summary, self.output_path)
        return summary

    def _open_ledger(self) -> FileProgressLedger:
        ledger = FileProgressLedger(self.ledger_path)
        if not self.config.resume and ledger.load():
            # Same run id reused without --resume: start over
            logging.warning(f"Ignoring existing progress file {self.ledger_path}; use --resume to continue it")
            self.ledger_path.unlink()
        return ledger


def log_summary(summary: ExtractionSummary, output_path: Path) -> None:
    """Log the end-of-run summary."""
    logging.info("=" * 50)
    logging.info("EXTRACTION COMPLETE")
    logging.info(f"Total tables: {summary.total}")
    logging.info(f"Successful: {summary.succeeded}")
    logging.info(f"Failed: {summary.failed}")
    logging.info(f"Skipped (already completed): {summary.skipped}")
    logging.info(f"Total rows: {summary.rows}")
    logging.info(f"Total time: {format_duration(summary.duration)}")
    logging.info(f"Output file: {output_path}")

    if summary.failed:
        logging.warning(f"Errors: {summary.failed}")
        for stats in summary.failures:
            logging.warning(f"  - {stats.key}: {stats.error}")
