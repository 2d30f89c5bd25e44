from typing import Any, Dict, List, Mapping

from sqlalchemy import and_, func, select
from sqlalchemy.sql import Select

from app.db.models.customer_lookup import CustomerLookup
from app.db.models.order_stats import OrderStats
from app.schemas.customer_report import CustomerReportQuery
from app.services.reports.customers.columns import FLOAT_COLUMNS, INTEGER_COLUMNS, REPORT_COLUMNS
from app.services.reports.customers.predicates import PredicateSet
from app.services.reports.pagination import PageWindow


def _from_clause(predicates: PredicateSet):
    on_clause = CustomerLookup.customer_id == OrderStats.customer_id
    if predicates.join:
        on_clause = and_(on_clause, predicates.join_clause)
    return CustomerLookup.__table__.outerjoin(OrderStats.__table__, on_clause)


def _filtered(statement: Select, predicates: PredicateSet) -> Select:
    return (
        statement
        .select_from(_from_clause(predicates))
        .where(predicates.where_clause)
        .group_by(CustomerLookup.customer_id)
        .having(predicates.having_clause)
    )


def build_count_statement(predicates: PredicateSet) -> Select:
    """Number of distinct customers matching the filters."""
    grouped = _filtered(select(CustomerLookup.customer_id), predicates).subquery('matching_customers')
    return select(func.count()).select_from(grouped)


def order_by_clauses(query: CustomerReportQuery) -> List:
    sort_column = REPORT_COLUMNS[query.orderby]
    direction = 'asc' if query.order == 'asc' else 'desc'
    # NULLs sort as the smallest value on every backend, PostgreSQL defaults to the opposite
    if direction == 'asc':
        clauses = [sort_column.asc().nulls_first()]
    else:
        clauses = [sort_column.desc().nulls_last()]
    if query.orderby != 'customer_id':
        # Tiebreaker keeps page boundaries stable between requests
        clauses.append(getattr(CustomerLookup.customer_id, direction)())
    return clauses


def build_data_statement(query: CustomerReportQuery, predicates: PredicateSet, window: PageWindow) -> Select:
    """Select the requested report columns for one page of customers."""
    selections = [REPORT_COLUMNS[name].label(name) for name in query.selected_fields]
    return (
        _filtered(select(*selections), predicates)
        .order_by(*order_by_clauses(query))
        .limit(window.limit)
        .offset(window.offset)
    )


def cast_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert driver numeric types (Decimal, strings) to plain ints and floats."""
    data = dict(row)
    for name in INTEGER_COLUMNS:
        if data.get(name) is not None:
            data[name] = int(data[name])
    for name in FLOAT_COLUMNS:
        if name in data:
            data[name] = float(data[name] or 0)
    return data
