"""
Plan execution: writes extracted rows as a resumable SQL script.
"""

import logging
import time
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterator, TextIO, Union

from .connection import quote_identifier
from .ledger import ProgressLedger
from .models import ExtractionSummary, TableExtractionPlan, TableStats
from .progress import ProgressReporter, format_duration
from .serializer import RowSerializer


class ExtractionExecutor:
    """Extracts planned tables, one at a time, into a single SQL artifact.

    A table that fails is rolled back out of the artifact and left out of the
    ledger, so rerunning with the same ledger retries exactly the tables that
    did not finish.
    """

    DEFAULT_BATCH_SIZE = 100
    DEFAULT_PROGRESS_INTERVAL = 1000

    DISABLE_CHECKS = (
        "-- Disable foreign key checks for data import\n"
        "SET FOREIGN_KEY_CHECKS=0;\n\n"
    )
    ENABLE_CHECKS = (
        "\n-- Re-enable foreign key checks\n"
        "SET FOREIGN_KEY_CHECKS=1;\n"
    )

    def __init__(
        self,
        introspector,
        ledger: ProgressLedger,
        batch_size: int = DEFAULT_BATCH_SIZE,
        progress_interval: int = DEFAULT_PROGRESS_INTERVAL,
        source_label: str = '',
        clock: Callable[[], float] = time.monotonic
    ):
        self.introspector = introspector
        self.ledger = ledger
        self.batch_size = batch_size
        self.progress_interval = progress_interval
        self.source_label = source_label
        self.clock = clock
        self.serializer = RowSerializer()

    def execute(
        self,
        plans: list[TableExtractionPlan],
        output_path: Union[str, Path]
    ) -> ExtractionSummary:
        """
        Extract every plan in order into ``output_path``.

        Tables already in the ledger are skipped. With a non-empty ledger the
        artifact is appended to instead of recreated.

        Returns:
            ExtractionSummary with per-table results.
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        completed = self.ledger.load()
        if completed:
            logging.info(f"Resuming extraction with {len(completed)} completed table(s)")

        summary = ExtractionSummary(total=len(plans))
        reporter = ProgressReporter(len(plans), self.progress_interval, self.clock)

        with self._open_artifact(output_path, resume=bool(completed)) as file_handle:
            for position, plan in enumerate(plans, start=1):
                if plan.key in completed:
                    logging.info(f"[{position}/{summary.total}] Skipping {plan.key} (already completed)")
                    summary.skipped += 1
                    continue

                stats = self.extract_table(file_handle, plan, position, summary.total, reporter)
                summary.tables.append(stats)

                if not stats.success:
                    summary.failed += 1
                    continue

                summary.succeeded += 1
                summary.rows += stats.rows_extracted
                self._mark_complete(plan.key)
                completed.add(plan.key)
                reporter.table_committed(position, summary.succeeded)

            file_handle.write(self.ENABLE_CHECKS)

        summary.duration = reporter.elapsed()
        return summary

    @contextmanager
    def _open_artifact(self, output_path: Path, resume: bool) -> Iterator[TextIO]:
        """Open the artifact for a fresh run or for appending on resume."""
        if resume and output_path.exists():
            self._strip_footer(output_path)
            file_handle = open(output_path, 'a', encoding='utf-8')
            logging.info(f"Appending to existing output file: {output_path}")
        else:
            if resume:
                logging.warning(f"Output file {output_path} not found, starting a new one")
            file_handle = open(output_path, 'w', encoding='utf-8')
            self._write_header(file_handle)

        try:
            yield file_handle
        finally:
            file_handle.close()

    def _write_header(self, file_handle: TextIO) -> None:
        file_handle.write("-- MySQL Data Extract\n")
        file_handle.write(f"-- Generated on: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
        file_handle.write(f"-- Source: {self.source_label}\n\n")
        file_handle.write(self.DISABLE_CHECKS)

    def _strip_footer(self, output_path: Path) -> None:
        """Drop the closing enable statement written by a previous run.

        Tables appended after it would otherwise load with checks enabled.
        """
        footer = self.ENABLE_CHECKS.encode('utf-8')
        with open(output_path, 'rb+') as f:
            f.seek(0, 2)
            size = f.tell()
            if size < len(footer):
                return
            f.seek(size - len(footer))
            if f.read() == footer:
                f.truncate(size - len(footer))
                logging.debug(f"Removed previous footer from {output_path}")

    def extract_table(
        self,
        file_handle: TextIO,
        plan: TableExtractionPlan,
        position: int,
        total: int,
        reporter: ProgressReporter
    ) -> TableStats:
        """Count, sample and write one table; failures are recorded, not raised."""
        stats = TableStats(database=plan.database_name, table=plan.table_name)
        started_at = self.clock()

        try:
            row_count = self.introspector.count_rows(
                plan.database_name, plan.table_name, plan.where_clause
            )
        except Exception as e:
            logging.warning(f"Failed to get row count for {plan.key}: {e}")
            row_count = 0

        plan.resolve_sample_size(row_count)
        limit = plan.row_limit
        if limit is not None:
            logging.info(f"[{position}/{total}] Extracting {plan.key} (sampling {limit} of {row_count} rows)")
        else:
            logging.info(f"[{position}/{total}] Extracting {plan.key} ({row_count} rows)")

        start_offset = file_handle.tell()
        try:
            stats.rows_extracted, stats.statements = self._write_table_data(
                file_handle, plan, limit, reporter
            )
            file_handle.flush()
            stats.success = True
        except Exception as e:
            stats.error = str(e)
            file_handle.seek(start_offset)
            file_handle.truncate()

        elapsed = format_duration(self.clock() - started_at)
        if stats.success:
            logging.info(f"  ✓ {plan.key}: {stats.rows_extracted} rows in {elapsed}")
        else:
            logging.error(f"  ✗ {plan.key}: {stats.error}")

        return stats

    def _write_table_data(
        self,
        file_handle: TextIO,
        plan: TableExtractionPlan,
        limit,
        reporter: ProgressReporter
    ) -> tuple[int, int]:
        """Write the table block; returns (rows, insert statements)."""
        file_handle.write(f"-- Table: {plan.key}\n")
        file_handle.write(f"USE {quote_identifier(plan.database_name)};\n")

        rows_written = 0
        statements = 0

        with self.introspector.scan_rows(
            plan.database_name,
            plan.table_name,
            limit=limit,
            where_clause=plan.where_clause,
            order_by=plan.order_by,
            order_direction=plan.order_direction
        ) as (columns, rows):
            quoted_columns = ', '.join(quote_identifier(col) for col in columns)
            batch = []

            for row in rows:
                batch.append(self.serializer.format_row(row))
                rows_written += 1

                if len(batch) >= self.batch_size:
                    self._write_insert_batch(file_handle, plan.table_name, quoted_columns, batch)
                    statements += 1
                    batch = []

                reporter.row_progress(plan.key, rows_written)

            # Write remaining rows
            if batch:
                self._write_insert_batch(file_handle, plan.table_name, quoted_columns, batch)
                statements += 1

        file_handle.write("\n")
        return rows_written, statements

    def _write_insert_batch(
        self,
        file_handle: TextIO,
        table: str,
        columns: str,
        values: list[str]
    ) -> None:
        """Write a batch of formatted rows as one INSERT statement."""
        file_handle.write(f"INSERT INTO {quote_identifier(table)} ({columns}) VALUES\n")
        file_handle.write(',\n'.join(values))
        file_handle.write(';\n')

    def _mark_complete(self, key: str) -> None:
        try:
            self.ledger.mark_complete(key)
        except OSError as e:
            # The table is still good; a resume would just extract it again
            logging.error(f"Failed to record progress for {key}: {e}")
