"""
Extraction planning for MySQL Data Extractor.
"""

import logging

from .config import ExtractionConfig
from .filters import TableFilter
from .models import ForeignKeyEdge, TableExtractionPlan
from .resolver import assign_order, resolve_dependencies


class PlanningError(RuntimeError):
    """Raised when no extraction can be planned at all."""


class ExtractionPlanner:
    """Builds the ordered list of table extraction plans.

    ``introspector`` is anything exposing ``list_databases``,
    ``list_base_tables`` and ``list_foreign_keys``; normally a
    ``DatabaseConnection``.
    """

    def __init__(self, introspector, config: ExtractionConfig):
        self.introspector = introspector
        self.config = config
        self.table_filter = TableFilter(config.include_tables, config.exclude_tables)

    def resolve_databases(self) -> list[str]:
        """Databases selected by the configuration, minus excluded ones."""
        if self.config.all_databases:
            databases = self.introspector.list_databases(include_system=True)
        elif self.config.all_user_databases:
            databases = self.introspector.list_databases(include_system=False)
        else:
            databases = list(self.config.databases)

        if self.config.exclude_databases:
            databases = TableFilter(exclude_patterns=self.config.exclude_databases).apply(databases)

        return databases

    def plan(self, database_names: list[str]) -> list[TableExtractionPlan]:
        """
        Plan every in-scope table of the given databases.

        Plans from all databases are ordered together, so references between
        two databases in scope are respected.

        Raises:
            PlanningError: If no table is left to extract.
        """
        all_plans: list[TableExtractionPlan] = []

        for db_name in database_names:
            logging.info(f"Analyzing database: {db_name}")
            all_plans.extend(self._plan_database(db_name))

        if not all_plans:
            raise PlanningError("No tables found to extract")

        if self.config.dependency_check:
            all_plans = resolve_dependencies(all_plans)

        return assign_order(all_plans)

    def _plan_database(self, db_name: str) -> list[TableExtractionPlan]:
        try:
            tables = self.introspector.list_base_tables(db_name)
        except Exception as e:
            logging.warning(f"Failed to get tables for '{db_name}', skipping database: {e}")
            return []

        tables = self.table_filter.apply(tables)

        foreign_keys: list[ForeignKeyEdge] = []
        if self.config.dependency_check:
            try:
                foreign_keys = self.introspector.list_foreign_keys(db_name)
            except Exception as e:
                logging.warning(f"Failed to get foreign keys for '{db_name}': {e}")

        plans = self.create_table_plans(db_name, tables, foreign_keys)
        logging.info(f"  {len(plans)} table(s) planned from '{db_name}'")
        return plans

    def create_table_plans(
        self,
        db_name: str,
        tables: list[str],
        foreign_keys: list[ForeignKeyEdge]
    ) -> list[TableExtractionPlan]:
        """Build one plan per table with its sampling settings and dependencies."""
        edges_by_table: dict[str, list[ForeignKeyEdge]] = {}
        for fk in foreign_keys:
            edges_by_table.setdefault(fk.owning_table, []).append(fk)

        plans = []
        for table in tables:
            sample = self.config.sampling.for_table(db_name, table)
            plan = TableExtractionPlan(
                database_name=db_name,
                table_name=table,
                sample_size=sample.rows,
                where_clause=sample.where_clause,
                order_by=sample.order_by,
                order_direction=sample.order_direction,
            )

            for fk in edges_by_table.get(table, []):
                if fk.is_self_reference:
                    continue
                dep_key = (fk.referenced_database or db_name, fk.referenced_table)
                # Composite keys list one edge per column
                if dep_key not in plan.dependencies:
                    plan.dependencies.append(dep_key)

            logging.debug(
                f"Table '{plan.key}' plan: sample_size={plan.sample_size}, "
                f"where={plan.where_clause}, depends_on={plan.dependencies}"
            )
            plans.append(plan)

        return plans
