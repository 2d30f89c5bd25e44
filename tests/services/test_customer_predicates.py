from datetime import datetime

from sqlalchemy import and_, or_
from sqlalchemy.dialects import postgresql, sqlite

from app.schemas.customer_report import CUSTOMER_REPORT_FIELDS, normalize_query_args
from app.services.reports.customers.columns import REPORT_COLUMNS
from app.services.reports.customers.predicates import build_predicates
from app.services.reports.customers.statements import build_count_statement, build_data_statement
from app.services.reports.pagination import PageWindow


def compile_sql(statement, dialect=None):
    return statement.compile(dialect=dialect or sqlite.dialect())


def test_report_columns_cover_every_field():
    assert tuple(REPORT_COLUMNS) == CUSTOMER_REPORT_FIELDS


def test_no_filters_produce_no_clauses():
    predicates = build_predicates(normalize_query_args({}))

    assert not predicates
    # Neutral condition keeps the statement valid
    sql = str(compile_sql(build_count_statement(predicates)))
    assert "WHERE" in sql
    assert "HAVING" in sql


def test_row_filters_go_to_where():
    predicates = build_predicates(normalize_query_args({
        "country": "US",
        "email": "a@example.com",
        "registered_after": datetime(2024, 1, 1),
        "last_active_before": datetime(2024, 6, 1),
    }))

    assert len(predicates.where) == 4
    assert predicates.having == []
    assert predicates.join == []


def test_aggregate_filters_go_to_having():
    predicates = build_predicates(normalize_query_args({
        "orders_count_min": 2,
        "orders_count_max": 5,
        "total_spend_min": 10,
        "avg_order_value_max": 50,
        "last_order_after": datetime(2024, 1, 1),
    }))

    assert predicates.where == []
    # one clause per filter, the min/max bounds of a range share a clause
    assert len(predicates.having) == 4


def test_range_bounds_are_inclusive():
    predicates = build_predicates(normalize_query_args({"orders_count_min": 2, "orders_count_max": 5}))
    sql = str(compile_sql(predicates.having_clause))

    assert "count(order_stats.order_id) <= " in sql
    assert "count(order_stats.order_id) >= " in sql
    assert " AND " in sql


def test_status_filters_go_to_join():
    predicates = build_predicates(normalize_query_args({
        "status_is": ["completed"],
        "status_is_not": ["refunded", "failed"],
    }))

    assert len(predicates.join) == 2
    sql = str(compile_sql(build_count_statement(predicates), postgresql.dialect()))
    assert "LEFT OUTER JOIN order_stats ON customer_lookup.customer_id = order_stats.customer_id AND" in sql
    assert "NOT IN" in sql


def test_match_operator_defaults_to_and():
    predicates = build_predicates(normalize_query_args({"country": "US", "email": "a@example.com"}))
    assert predicates.operator is and_
    assert " AND " in str(compile_sql(predicates.where_clause))


def test_any_match_uses_or_across_filters():
    predicates = build_predicates(normalize_query_args({
        "match": "any",
        "country": "US",
        "registered_after": datetime(2024, 1, 1),
        "registered_before": datetime(2024, 2, 1),
    }))
    sql = str(compile_sql(predicates.where_clause))

    assert predicates.operator is or_
    assert " OR " in sql
    # range bounds stay AND-ed even when matching any filter
    assert " AND " in sql


def test_values_are_bound_parameters():
    statement = build_count_statement(build_predicates(normalize_query_args({
        "country": "US'; DROP TABLE customer_lookup; --",
    })))
    compiled = compile_sql(statement)

    assert "DROP TABLE" not in str(compiled)
    assert "US'; DROP TABLE customer_lookup; --" in compiled.params.values()


def test_name_filter_uses_derived_full_name():
    predicates = build_predicates(normalize_query_args({"name": "Ada Lovelace"}))
    sql = str(compile_sql(predicates.where_clause))
    assert "customer_lookup.first_name" in sql
    assert "customer_lookup.last_name" in sql


def test_data_statement_selects_requested_fields_and_pages():
    query = normalize_query_args({"fields": "email,orders_count", "orderby": "name", "order": "asc"})
    statement = build_data_statement(query, build_predicates(query), PageWindow(pages=3, page_no=2, offset=10, limit=10))

    assert [column.name for column in statement.selected_columns] == ["email", "orders_count"]
    sql = str(compile_sql(statement))
    assert "GROUP BY customer_lookup.customer_id" in sql
    assert "ORDER BY trim(" in sql
    assert "customer_lookup.customer_id ASC" in sql
    assert "LIMIT" in sql and "OFFSET" in sql


def test_default_sort_puts_nulls_last_on_postgresql():
    query = normalize_query_args({})
    statement = build_data_statement(query, build_predicates(query), PageWindow(pages=1, page_no=1, offset=0, limit=10))
    sql = str(compile_sql(statement, postgresql.dialect()))

    assert "ORDER BY customer_lookup.date_registered DESC NULLS LAST, customer_lookup.customer_id DESC" in sql


def test_ascending_sort_puts_nulls_first():
    query = normalize_query_args({"orderby": "date_last_active", "order": "asc"})
    statement = build_data_statement(query, build_predicates(query), PageWindow(pages=1, page_no=1, offset=0, limit=10))
    sql = str(compile_sql(statement, postgresql.dialect()))

    assert "ORDER BY customer_lookup.date_last_active ASC NULLS FIRST, customer_lookup.customer_id ASC" in sql
