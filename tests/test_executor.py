"""
Unit tests for executor.py
"""

from contextlib import contextmanager
from unittest import mock

import pytest

from mysql_data_extractor.executor import ExtractionExecutor
from mysql_data_extractor.ledger import FileProgressLedger, InMemoryProgressLedger
from mysql_data_extractor.models import TableExtractionPlan


class FakeSource:
    """In-memory stand-in for DatabaseConnection's row access."""

    def __init__(self, tables):
        # tables: {(db, table): (columns, rows)}
        self.tables = tables
        self.scans = []
        self.count_errors = set()
        self.scan_errors = {}

    def count_rows(self, database, table, where_clause=None):
        if (database, table) in self.count_errors:
            raise RuntimeError("count timed out")
        return len(self.tables[(database, table)][1])

    @contextmanager
    def scan_rows(self, database, table, limit=None, where_clause=None,
                  order_by=None, order_direction=None):
        self.scans.append((database, table, limit))
        columns, rows = self.tables[(database, table)]
        selected = rows if limit is None else rows[:limit]
        fail_after = self.scan_errors.get((database, table))
        yield list(columns), self._iterate(selected, fail_after)

    @staticmethod
    def _iterate(rows, fail_after):
        for i, row in enumerate(rows):
            if fail_after is not None and i == fail_after:
                raise RuntimeError("Lost connection to server during query")
            yield row


@pytest.fixture
def source():
    return FakeSource({
        ("shop", "users"): (["id", "name"], [(i, f"user{i}") for i in range(1, 6)]),
        ("shop", "orders"): (["id", "user_id"], [(10, 1), (11, 2)]),
    })


def plans():
    return [
        TableExtractionPlan("shop", "users", order=0),
        TableExtractionPlan("shop", "orders", order=1, dependencies=[("shop", "users")]),
    ]


class TestExecute:
    """Tests for ExtractionExecutor.execute."""

    def test_batches(self, source, tmp_path):
        """Test 5 rows with batch size 2 give INSERTs of 2, 2 and 1 rows."""
        output = tmp_path / "extract.sql"
        executor = ExtractionExecutor(source, InMemoryProgressLedger(), batch_size=2)

        summary = executor.execute([TableExtractionPlan("shop", "users")], output)

        content = output.read_text(encoding="utf-8")
        assert content.count("INSERT INTO `users` (`id`, `name`) VALUES\n") == 3
        assert "(1,'user1'),\n(2,'user2');\n" in content
        assert "(5,'user5');\n" in content
        assert summary.tables[0].statements == 3
        assert summary.tables[0].rows_extracted == 5

    def test_artifact_layout(self, source, tmp_path):
        output = tmp_path / "extract.sql"
        executor = ExtractionExecutor(
            source, InMemoryProgressLedger(), source_label="db.example.com:3306"
        )

        executor.execute(plans(), output)

        content = output.read_text(encoding="utf-8")
        assert content.startswith("-- MySQL Data Extract\n-- Generated on: ")
        assert "-- Source: db.example.com:3306\n" in content
        assert content.count("SET FOREIGN_KEY_CHECKS=0;") == 1
        assert content.endswith("SET FOREIGN_KEY_CHECKS=1;\n")
        assert content.index("-- Table: shop.users") < content.index("-- Table: shop.orders")
        assert "USE `shop`;\n" in content

    def test_summary(self, source, tmp_path):
        ledger = InMemoryProgressLedger()
        summary = ExtractionExecutor(source, ledger).execute(plans(), tmp_path / "out.sql")

        assert summary.total == 2
        assert summary.succeeded == 2
        assert summary.failed == 0
        assert summary.rows == 7
        assert ledger.load() == {"shop.users", "shop.orders"}

    def test_empty_table_writes_no_insert(self, tmp_path):
        source = FakeSource({("shop", "empty"): (["id"], [])})
        output = tmp_path / "out.sql"

        summary = ExtractionExecutor(source, InMemoryProgressLedger()).execute(
            [TableExtractionPlan("shop", "empty")], output
        )

        assert summary.succeeded == 1
        content = output.read_text(encoding="utf-8")
        assert "-- Table: shop.empty" in content
        assert "INSERT" not in content

    def test_skips_completed_tables(self, source, tmp_path):
        ledger = InMemoryProgressLedger({"shop.users"})

        summary = ExtractionExecutor(source, ledger).execute(plans(), tmp_path / "out.sql")

        assert summary.skipped == 1
        assert summary.succeeded == 1
        assert [scan[1] for scan in source.scans] == ["orders"]

    def test_sampling_limit_passed_to_scan(self, source, tmp_path):
        plan = TableExtractionPlan("shop", "users", sample_size=-40)

        ExtractionExecutor(source, InMemoryProgressLedger()).execute([plan], tmp_path / "out.sql")

        assert source.scans == [("shop", "users", 2)]

    def test_percentage_rounding_to_zero_extracts_all_rows(self, source, tmp_path):
        plan = TableExtractionPlan("shop", "users", sample_size=-10)

        summary = ExtractionExecutor(source, InMemoryProgressLedger()).execute(
            [plan], tmp_path / "out.sql"
        )

        assert source.scans == [("shop", "users", None)]
        assert summary.rows == 5

    def test_count_failure_still_extracts(self, source, tmp_path):
        source.count_errors.add(("shop", "users"))
        plan = TableExtractionPlan("shop", "users", sample_size=3)

        summary = ExtractionExecutor(source, InMemoryProgressLedger()).execute(
            [plan], tmp_path / "out.sql"
        )

        assert summary.succeeded == 1
        assert source.scans == [("shop", "users", 3)]

    def test_failed_table_rolled_back(self, source, tmp_path):
        """Test a table failing mid-stream leaves nothing behind and the run continues."""
        source.scan_errors[("shop", "users")] = 3
        output = tmp_path / "out.sql"
        ledger = InMemoryProgressLedger()

        summary = ExtractionExecutor(source, ledger, batch_size=1).execute(plans(), output)

        content = output.read_text(encoding="utf-8")
        assert summary.failed == 1
        assert summary.succeeded == 1
        assert "shop.users" not in content
        assert "user1" not in content
        assert "-- Table: shop.orders" in content
        assert ledger.load() == {"shop.orders"}
        assert summary.failures[0].error == "Lost connection to server during query"

    def test_ledger_write_failure_is_logged(self, source, tmp_path, caplog):
        ledger = mock.MagicMock()
        ledger.load.return_value = set()
        ledger.mark_complete.side_effect = OSError("read-only file system")

        summary = ExtractionExecutor(source, ledger).execute(plans(), tmp_path / "out.sql")

        assert summary.succeeded == 2
        assert "Failed to record progress" in caplog.text


class TestResume:
    """Tests for resuming into an existing artifact."""

    def test_resume_appends_after_failure(self, source, tmp_path):
        output = tmp_path / "out.sql"
        ledger = FileProgressLedger(tmp_path / "out.progress")
        source.scan_errors[("shop", "orders")] = 0

        first = ExtractionExecutor(source, ledger).execute(plans(), output)
        assert first.failed == 1

        del source.scan_errors[("shop", "orders")]
        second = ExtractionExecutor(source, ledger).execute(plans(), output)

        content = output.read_text(encoding="utf-8")
        assert second.skipped == 1
        assert second.succeeded == 1
        assert content.count("-- MySQL Data Extract") == 1
        assert content.count("-- Table: shop.users") == 1
        assert content.count("-- Table: shop.orders") == 1
        assert content.count("SET FOREIGN_KEY_CHECKS=1;") == 1
        assert content.endswith("SET FOREIGN_KEY_CHECKS=1;\n")

    def test_resume_of_finished_run_is_unchanged(self, source, tmp_path):
        output = tmp_path / "out.sql"
        ledger = FileProgressLedger(tmp_path / "out.progress")

        ExtractionExecutor(source, ledger).execute(plans(), output)
        before = output.read_bytes()

        summary = ExtractionExecutor(source, ledger).execute(plans(), output)

        assert summary.skipped == 2
        assert output.read_bytes() == before

    def test_resume_with_missing_artifact_starts_new(self, source, tmp_path):
        output = tmp_path / "out.sql"
        ledger = InMemoryProgressLedger({"shop.users"})

        ExtractionExecutor(source, ledger).execute(plans(), output)

        content = output.read_text(encoding="utf-8")
        assert content.startswith("-- MySQL Data Extract")
        assert "-- Table: shop.orders" in content
