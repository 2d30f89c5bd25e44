from dataclasses import dataclass, field
from typing import Callable, Dict, List, Tuple

from sqlalchemy import and_, or_, true
from sqlalchemy.sql.elements import ColumnElement

from app.db.models.customer_lookup import CustomerLookup
from app.db.models.order_stats import OrderStats
from app.schemas.customer_report import CustomerReportQuery
from app.services.reports.customers import columns

WHERE = 'where'
HAVING = 'having'
JOIN = 'join'

# Date filters on aggregates can only be evaluated after GROUP BY
DATE_FILTER_COLUMNS: Dict[str, Tuple[str, ColumnElement]] = {
    'registered': (WHERE, CustomerLookup.date_registered),
    'last_active': (WHERE, CustomerLookup.date_last_active),
    'last_order': (HAVING, columns.date_last_order),
}

EXACT_MATCH_COLUMNS: Dict[str, ColumnElement] = {
    'username': CustomerLookup.username,
    'email': CustomerLookup.email,
    'country': CustomerLookup.country,
    'name': columns.full_name,
}

NUMERIC_FILTER_COLUMNS: Dict[str, ColumnElement] = {
    'orders_count': columns.orders_count,
    'total_spend': columns.total_spend,
    'avg_order_value': columns.avg_order_value,
}


def combine(clauses: List[ColumnElement], operator: Callable = and_) -> ColumnElement:
    """Join clauses with the operator, falling back to an always-true condition."""
    if not clauses:
        return true()
    if len(clauses) == 1:
        return clauses[0]
    return operator(*clauses)


@dataclass
class PredicateSet:
    """Filter clauses of a report query, grouped by where they must be applied."""
    operator: Callable = and_
    where: List[ColumnElement] = field(default_factory=list)
    having: List[ColumnElement] = field(default_factory=list)
    join: List[ColumnElement] = field(default_factory=list)

    def add(self, location: str, clause: ColumnElement) -> None:
        getattr(self, location).append(clause)

    @property
    def where_clause(self) -> ColumnElement:
        return combine(self.where, self.operator)

    @property
    def having_clause(self) -> ColumnElement:
        return combine(self.having, self.operator)

    @property
    def join_clause(self) -> ColumnElement:
        return combine(self.join, self.operator)

    def __bool__(self) -> bool:
        return bool(self.where or self.having or self.join)


def _range_clause(column: ColumnElement, low=None, high=None):
    bounds = []
    if high is not None:
        bounds.append(column <= high)
    if low is not None:
        bounds.append(column >= low)
    if not bounds:
        return None
    return combine(bounds, and_)


def date_range_predicates(query: CustomerReportQuery, predicates: PredicateSet) -> None:
    for prefix, (location, column) in DATE_FILTER_COLUMNS.items():
        clause = _range_clause(
            column,
            low=getattr(query, f"{prefix}_after"),
            high=getattr(query, f"{prefix}_before"),
        )
        if clause is not None:
            predicates.add(location, clause)


def exact_match_predicates(query: CustomerReportQuery, predicates: PredicateSet) -> None:
    for param, column in EXACT_MATCH_COLUMNS.items():
        value = getattr(query, param)
        if value:
            predicates.add(WHERE, column == value)


def numeric_range_predicates(query: CustomerReportQuery, predicates: PredicateSet) -> None:
    for prefix, column in NUMERIC_FILTER_COLUMNS.items():
        clause = _range_clause(
            column,
            low=getattr(query, f"{prefix}_min"),
            high=getattr(query, f"{prefix}_max"),
        )
        if clause is not None:
            predicates.add(HAVING, clause)


def status_predicates(query: CustomerReportQuery, predicates: PredicateSet) -> None:
    # Applied to the order join so customers without matching orders still count
    if query.status_is:
        predicates.add(JOIN, OrderStats.status.in_(query.status_is))
    if query.status_is_not:
        predicates.add(JOIN, OrderStats.status.not_in(query.status_is_not))


def build_predicates(query: CustomerReportQuery) -> PredicateSet:
    """Turn normalized report arguments into bound filter expressions.

    Each filter (a date or numeric range, an exact match, a status list) yields
    one clause. Bounds of a single range are always AND-ed, while the clauses of
    one location are combined with the query's match operator.
    """
    predicates = PredicateSet(operator=or_ if query.is_any_match else and_)
    date_range_predicates(query, predicates)
    exact_match_predicates(query, predicates)
    numeric_range_predicates(query, predicates)
    status_predicates(query, predicates)
    return predicates
