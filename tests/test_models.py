"""
Unit tests for models.py
"""

import pytest

from mysql_data_extractor.models import (
    ExtractionSummary,
    ForeignKeyEdge,
    OrderDirection,
    SamplingDirectives,
    TableExtractionPlan,
    TableSample,
    TableStats,
)


class TestOrderDirection:
    """Tests for OrderDirection enum."""

    def test_asc_direction(self):
        assert OrderDirection.ASC.value == "ASC"

    def test_desc_direction(self):
        assert OrderDirection.DESC.value == "DESC"

    def test_invalid_direction_raises(self):
        with pytest.raises(ValueError):
            OrderDirection("SIDEWAYS")


class TestForeignKeyEdge:
    """Tests for ForeignKeyEdge dataclass."""

    def test_self_reference(self):
        edge = ForeignKeyEdge("fk_parent", "categories", "parent_id", "categories", "id")
        assert edge.is_self_reference

    def test_self_reference_same_database(self):
        edge = ForeignKeyEdge(
            "fk_parent", "categories", "parent_id", "categories", "id",
            owning_database="shop", referenced_database="shop"
        )
        assert edge.is_self_reference

    def test_same_name_in_other_database_is_not_self_reference(self):
        edge = ForeignKeyEdge(
            "fk_user", "users", "legacy_id", "users", "id",
            owning_database="shop", referenced_database="legacy"
        )
        assert not edge.is_self_reference

    def test_plain_reference(self):
        edge = ForeignKeyEdge("fk_user", "orders", "user_id", "users", "id")
        assert not edge.is_self_reference


class TestTableExtractionPlan:
    """Tests for TableExtractionPlan dataclass."""

    def test_defaults(self):
        plan = TableExtractionPlan(database_name="shop", table_name="users")
        assert plan.key == "shop.users"
        assert plan.sample_size == 0
        assert plan.dependencies == []
        assert plan.order_direction == OrderDirection.ASC
        assert plan.sample_percent is None

    def test_mutable_defaults_not_shared(self):
        first = TableExtractionPlan("shop", "a")
        second = TableExtractionPlan("shop", "b")
        first.dependencies.append(("shop", "x"))
        assert second.dependencies == []

    def test_resolve_percentage(self):
        """Test 10% of 200 rows resolves to 20."""
        plan = TableExtractionPlan("shop", "events", sample_size=-10)
        assert plan.sample_percent == 10

        assert plan.resolve_sample_size(200) == 20
        assert plan.sample_size == 20
        assert plan.row_count == 200
        assert plan.row_limit == 20

    def test_percentage_rounding_to_zero_scans_everything(self):
        """Test 10% of 5 rows floors to 0, which means no sampling."""
        plan = TableExtractionPlan("shop", "events", sample_size=-10)
        assert plan.resolve_sample_size(5) == 0
        assert plan.row_limit is None

    def test_percentage_below_count(self):
        plan = TableExtractionPlan("shop", "events", sample_size=-50)
        plan.resolve_sample_size(7)
        assert plan.row_limit == 3

    def test_percentage_of_unknown_count_takes_nothing(self):
        plan = TableExtractionPlan("shop", "events", sample_size=-50)
        plan.resolve_sample_size(0)
        assert plan.row_limit == 0

    def test_full_percentage_scans_everything(self):
        plan = TableExtractionPlan("shop", "events", sample_size=-100)
        plan.resolve_sample_size(40)
        assert plan.row_limit is None

    def test_resolve_only_once(self):
        plan = TableExtractionPlan("shop", "events", sample_size=-10)
        plan.resolve_sample_size(200)
        plan.resolve_sample_size(1000)
        assert plan.sample_size == 20

    def test_fixed_cap_smaller_than_count(self):
        plan = TableExtractionPlan("shop", "users", sample_size=50)
        plan.resolve_sample_size(1000)
        assert plan.row_limit == 50

    def test_fixed_cap_larger_than_count(self):
        plan = TableExtractionPlan("shop", "users", sample_size=50)
        plan.resolve_sample_size(10)
        assert plan.row_limit is None

    def test_fixed_cap_with_unknown_count(self):
        plan = TableExtractionPlan("shop", "users", sample_size=50)
        plan.resolve_sample_size(0)
        assert plan.row_limit == 50

    def test_no_sampling(self):
        plan = TableExtractionPlan("shop", "users")
        plan.resolve_sample_size(1000)
        assert plan.row_limit is None

    def test_dependency_keys(self):
        plan = TableExtractionPlan(
            "shop", "orders",
            dependencies=[("shop", "users"), ("billing", "accounts")]
        )
        assert plan.dependency_keys() == [("shop", "users"), ("billing", "accounts")]


class TestSamplingDirectives:
    """Tests for SamplingDirectives.for_table."""

    def test_nothing_configured(self):
        assert SamplingDirectives().for_table("shop", "users") == TableSample()

    def test_override_beats_percent(self):
        directives = SamplingDirectives(
            table_samples={"users": TableSample(rows=5)}, percent=10, max_rows=100
        )
        assert directives.for_table("shop", "users").rows == 5

    def test_qualified_override_beats_plain(self):
        directives = SamplingDirectives(table_samples={
            "users": TableSample(rows=5),
            "shop.users": TableSample(rows=7),
        })
        assert directives.for_table("shop", "users").rows == 7
        assert directives.for_table("crm", "users").rows == 5

    def test_percent_beats_max_rows(self):
        directives = SamplingDirectives(percent=10, max_rows=100)
        assert directives.for_table("shop", "users").rows == -10

    def test_max_rows(self):
        directives = SamplingDirectives(max_rows=100)
        assert directives.for_table("shop", "users").rows == 100

    def test_override_keeps_filters(self):
        sample = TableSample(
            rows=10, where_clause="active = 1",
            order_by="created_at", order_direction=OrderDirection.DESC
        )
        directives = SamplingDirectives(table_samples={"users": sample})
        assert directives.for_table("shop", "users") is sample


class TestExtractionSummary:
    """Tests for ExtractionSummary and TableStats."""

    def test_failures(self):
        ok = TableStats("shop", "users", rows_extracted=3, success=True)
        bad = TableStats("shop", "orders", error="boom")
        summary = ExtractionSummary(total=2, tables=[ok, bad])

        assert summary.failures == [bad]
        assert bad.key == "shop.orders"

    def test_defaults(self):
        summary = ExtractionSummary()
        assert summary.total == 0
        assert summary.rows == 0
        assert summary.tables == []
