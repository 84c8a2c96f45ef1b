"""
Utility functions for MySQL Data Extractor.
"""

import logging
import sys
from pathlib import Path
from typing import Any

from .models import TableExtractionPlan


def setup_logging(log_settings: dict[str, Any]) -> None:
    """Setup logging configuration."""
    log_level = getattr(logging, log_settings.get('level', 'INFO').upper())
    log_file = log_settings.get('file')

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def print_dry_run_info(plans: list[TableExtractionPlan]) -> None:
    """Print the ordered extraction plan in dry-run mode."""
    logging.info(f"Would extract {len(plans)} table(s) in this order:")
    for plan in plans:
        settings_parts = format_plan_display(plan)
        if settings_parts:
            logging.info(f"  {plan.order + 1}. {plan.key} ({', '.join(settings_parts)})")
        else:
            logging.info(f"  {plan.order + 1}. {plan.key} (all rows)")


def format_plan_display(plan: TableExtractionPlan) -> list[str]:
    """Format a plan's sampling settings for display in dry-run mode."""
    parts = []
    if plan.sample_percent is not None:
        parts.append(f"sample={plan.sample_percent}%")
    elif plan.sample_size > 0:
        parts.append(f"limit={plan.sample_size}")
    if plan.order_by:
        parts.append(f"order={plan.order_by} {plan.order_direction.value}")
    if plan.where_clause:
        parts.append(f"where='{plan.where_clause}'")
    if plan.dependencies:
        names = [
            table if database == plan.database_name else f"{database}.{table}"
            for database, table in plan.dependencies
        ]
        parts.append(f"after={','.join(names)}")
    return parts
