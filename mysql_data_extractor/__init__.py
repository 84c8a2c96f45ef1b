"""
MySQL Data Extractor
====================
Extracts a selected subset of rows from MySQL/MariaDB into a portable SQL
script with support for:
- Foreign key aware table ordering
- Include/exclude table patterns
- Row sampling by count or percentage
- Resumable extraction of large datasets
"""

from .config import ConfigLoader, ExtractionConfig, build_config
from .connection import DatabaseConnection
from .executor import ExtractionExecutor
from .extractor import DataExtractor
from .filters import TableFilter, should_include
from .ledger import FileProgressLedger, InMemoryProgressLedger, ProgressLedger
from .main import main
from .models import (
    ExtractionSummary,
    ForeignKeyEdge,
    OrderDirection,
    SamplingDirectives,
    TableExtractionPlan,
    TableSample,
    TableStats,
)
from .planner import ExtractionPlanner, PlanningError
from .progress import ProgressReporter, compute_progress
from .resolver import resolve_dependencies
from .serializer import RowSerializer
from .utils import format_plan_display, print_dry_run_info, setup_logging

__version__ = "1.0.0"

__all__ = [
    # Main entry point
    "main",
    # Core classes
    "ConfigLoader",
    "DataExtractor",
    "DatabaseConnection",
    "ExtractionConfig",
    "ExtractionExecutor",
    "ExtractionPlanner",
    "FileProgressLedger",
    "InMemoryProgressLedger",
    "PlanningError",
    "ProgressLedger",
    "ProgressReporter",
    "RowSerializer",
    "TableFilter",
    # Models
    "ExtractionSummary",
    "ForeignKeyEdge",
    "OrderDirection",
    "SamplingDirectives",
    "TableExtractionPlan",
    "TableSample",
    "TableStats",
    # Functions
    "build_config",
    "compute_progress",
    "resolve_dependencies",
    "should_include",
    # Utilities
    "format_plan_display",
    "print_dry_run_info",
    "setup_logging",
]
