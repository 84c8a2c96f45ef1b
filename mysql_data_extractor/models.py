"""
Data models and enums for MySQL Data Extractor.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class OrderDirection(Enum):
    """Sort order direction."""
    ASC = "ASC"
    DESC = "DESC"


@dataclass(frozen=True)
class ForeignKeyEdge:
    """A declared reference from one table's column to another table's column."""
    constraint_name: str
    owning_table: str
    owning_column: str
    referenced_table: str
    referenced_column: str
    owning_database: Optional[str] = None
    referenced_database: Optional[str] = None

    @property
    def is_self_reference(self) -> bool:
        """True when the edge points back at its own table."""
        return self.referenced_table == self.owning_table and (
            self.referenced_database is None
            or self.referenced_database == self.owning_database
        )


@dataclass
class TableExtractionPlan:
    """The plan for extracting a single table.

    ``sample_size`` encodes the sampling policy: 0 extracts every row, a
    positive value caps the row count and a negative value is a percentage
    of the live row count, resolved once by ``resolve_sample_size``.
    """
    database_name: str
    table_name: str
    row_count: int = 0
    sample_size: int = 0
    where_clause: Optional[str] = None
    # (database, table) pairs this table references.
    dependencies: list[tuple[str, str]] = field(default_factory=list)
    order: int = 0
    order_by: Optional[str] = None
    order_direction: OrderDirection = OrderDirection.ASC
    resolved_percent: Optional[int] = None

    @property
    def key(self) -> str:
        """Stable ledger key for this table."""
        return f"{self.database_name}.{self.table_name}"

    @property
    def sample_percent(self) -> Optional[int]:
        return -self.sample_size if self.sample_size < 0 else None

    def resolve_sample_size(self, row_count: int) -> int:
        """Record the live row count and resolve a pending percentage."""
        self.row_count = row_count
        if self.sample_size < 0:
            self.resolved_percent = -self.sample_size
            self.sample_size = (row_count * self.resolved_percent) // 100
        return self.sample_size

    @property
    def row_limit(self) -> Optional[int]:
        """LIMIT to apply to the scan, or None for a full scan.

        A row count of 0 may mean the count failed, so a cap still applies
        and a resolved percentage of an unknown count takes no rows. A
        percentage that floors to 0 rows of a known count scans everything,
        like an unsampled table.
        """
        if self.resolved_percent is not None:
            if self.row_count == 0:
                return 0
            if self.sample_size == 0 or self.sample_size >= self.row_count:
                return None
            return self.sample_size
        if self.sample_size > 0 and (self.row_count == 0 or self.sample_size < self.row_count):
            return self.sample_size
        return None

    def dependency_keys(self) -> list[tuple[str, str]]:
        """(database, table) pairs this table depends on."""
        return list(self.dependencies)


@dataclass(frozen=True)
class TableSample:
    """Per-table sampling override."""
    rows: int = 0
    where_clause: Optional[str] = None
    order_by: Optional[str] = None
    order_direction: OrderDirection = OrderDirection.ASC


@dataclass(frozen=True)
class SamplingDirectives:
    """How many rows to take from each table.

    Layered with priority: per-table override > percent > max_rows > all rows.
    """
    table_samples: dict[str, TableSample] = field(default_factory=dict)
    percent: int = 0
    max_rows: int = 0

    def for_table(self, database: str, table: str) -> TableSample:
        """Effective sampling settings for ``database.table``."""
        override = self.table_samples.get(f"{database}.{table}")
        if override is None:
            override = self.table_samples.get(table)
        if override is not None:
            return override
        if self.percent > 0:
            return TableSample(rows=-self.percent)
        if self.max_rows > 0:
            return TableSample(rows=self.max_rows)
        return TableSample()


@dataclass
class TableStats:
    """Statistics for a single table extraction."""
    database: str
    table: str
    rows_extracted: int = 0
    statements: int = 0
    success: bool = False
    error: Optional[str] = None

    @property
    def key(self) -> str:
        return f"{self.database}.{self.table}"


@dataclass
class ExtractionSummary:
    """Overall extraction statistics."""
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    rows: int = 0
    duration: float = 0.0
    tables: list[TableStats] = field(default_factory=list)

    @property
    def failures(self) -> list[TableStats]:
        return [t for t in self.tables if not t.success]
