"""
Foreign key dependency ordering for MySQL Data Extractor.
"""

import logging
from enum import Enum

from .models import TableExtractionPlan


class VisitState(Enum):
    UNVISITED = 0
    IN_PROGRESS = 1
    DONE = 2


def resolve_dependencies(plans: list[TableExtractionPlan]) -> list[TableExtractionPlan]:
    """
    Order plans so every table comes after the tables it references.

    Depth-first post-order over all plans, taking each plan in input order as a
    traversal root. Dependencies without a plan (tables outside the current
    scope) are skipped. When a dependency is already in progress the edge
    closes a cycle: it is dropped with a warning, so the table that was
    entered first is emitted after the cycle members reachable from it.

    The walk uses an explicit stack, so long reference chains cannot hit the
    interpreter recursion limit.
    """
    index = {(p.database_name, p.table_name): p for p in plans}
    state: dict[tuple[str, str], VisitState] = {}
    ordered: list[TableExtractionPlan] = []

    for root in plans:
        root_key = (root.database_name, root.table_name)
        if state.get(root_key, VisitState.UNVISITED) is not VisitState.UNVISITED:
            continue

        state[root_key] = VisitState.IN_PROGRESS
        stack = [(root, iter(root.dependency_keys()))]

        while stack:
            plan, pending = stack[-1]
            plan_key = (plan.database_name, plan.table_name)

            for dep_key in pending:
                if dep_key == plan_key or dep_key not in index:
                    continue

                dep_state = state.get(dep_key, VisitState.UNVISITED)
                if dep_state is VisitState.DONE:
                    continue
                if dep_state is VisitState.IN_PROGRESS:
                    logging.warning(
                        f"Foreign key cycle detected: {plan.key} -> {dep_key[0]}.{dep_key[1]}; "
                        f"ignoring this edge for ordering"
                    )
                    continue

                state[dep_key] = VisitState.IN_PROGRESS
                dep_plan = index[dep_key]
                stack.append((dep_plan, iter(dep_plan.dependency_keys())))
                break
            else:
                stack.pop()
                state[plan_key] = VisitState.DONE
                ordered.append(plan)

    return ordered


def assign_order(plans: list[TableExtractionPlan]) -> list[TableExtractionPlan]:
    """Record each plan's position in the final list."""
    for position, plan in enumerate(plans):
        plan.order = position
    return plans
