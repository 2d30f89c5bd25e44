from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import InvalidArgument
from app.schemas.customer_report import (
    CUSTOMER_REPORT_FIELDS,
    CustomerReportQuery,
    normalize_query_args,
)


def test_defaults_are_applied():
    """Missing arguments take the report defaults"""
    query = normalize_query_args({})

    assert query.page == 1
    assert query.per_page == 10
    assert query.order == "desc"
    assert query.orderby == "date_registered"
    assert query.match == "all"
    assert query.selected_fields == list(CUSTOMER_REPORT_FIELDS)


def test_none_query_args_behave_like_empty():
    assert normalize_query_args(None) == normalize_query_args({})


def test_query_string_values_are_coerced():
    query = normalize_query_args({
        "page": "2",
        "per_page": "25",
        "orders_count_min": "1",
        "total_spend_max": "99.5",
        "registered_after": "2024-01-01T00:00:00",
        "order": "ASC",
        "match": "ANY",
        "status_is": "processing,completed",
    })

    assert query.page == 2
    assert query.per_page == 25
    assert query.orders_count_min == 1
    assert query.total_spend_max == 99.5
    assert query.registered_after == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert query.order == "asc"
    assert query.is_any_match is True
    assert query.status_is == ["completed", "processing"]


def test_unknown_arguments_are_ignored():
    query = normalize_query_args({"color": "blue", "country": "US"})
    assert query.country == "US"


def test_blank_exact_match_values_are_unset():
    query = normalize_query_args({"email": "  ", "country": ""})
    assert query.email is None
    assert query.country is None


@pytest.mark.parametrize("page", [0, -3])
def test_page_below_one_is_rejected(page):
    with pytest.raises(InvalidArgument) as exc_info:
        normalize_query_args({"page": page})
    assert "page" in str(exc_info.value)


@pytest.mark.parametrize("per_page", [0, -1, 101])
def test_per_page_out_of_bounds_is_rejected(per_page):
    with pytest.raises(InvalidArgument):
        normalize_query_args({"per_page": per_page})


def test_numeric_min_above_max_is_rejected():
    with pytest.raises(InvalidArgument) as exc_info:
        normalize_query_args({"orders_count_min": 5, "orders_count_max": 2})
    assert "orders_count_min" in str(exc_info.value)


def test_equal_min_and_max_are_accepted():
    query = normalize_query_args({"total_spend_min": 10, "total_spend_max": 10})
    assert query.total_spend_min == query.total_spend_max == 10


def test_date_after_later_than_before_is_rejected():
    with pytest.raises(InvalidArgument):
        normalize_query_args({
            "last_order_after": "2024-02-01T00:00:00",
            "last_order_before": "2024-01-01T00:00:00",
        })


def test_naive_and_aware_date_bounds_are_compared_in_utc():
    query = normalize_query_args({
        "registered_after": "2024-01-01T00:00:00+00:00",
        "registered_before": "2024-02-01T00:00:00",
    })

    assert query.registered_after == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert query.registered_before == datetime(2024, 2, 1, tzinfo=timezone.utc)


def test_offset_dates_are_converted_to_utc():
    query = normalize_query_args({"last_active_after": "2024-01-01T02:00:00+02:00"})

    assert query.last_active_after == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert query.last_active_after.utcoffset() == timedelta(0)


def test_mixed_timezone_bounds_out_of_order_are_rejected():
    with pytest.raises(InvalidArgument):
        normalize_query_args({
            "last_order_after": "2024-01-01T12:00:00",
            "last_order_before": "2024-01-01T13:00:00+03:00",
        })


def test_naive_and_utc_dates_share_a_canonical_form():
    naive = normalize_query_args({"registered_after": "2024-01-01T00:00:00"})
    aware = normalize_query_args({"registered_after": "2024-01-01T00:00:00+00:00"})

    assert naive.canonical_json() == aware.canonical_json()


@pytest.mark.parametrize("args", [
    {"orderby": "password"},
    {"order": "sideways"},
    {"match": "some"},
    {"fields": "email,secret"},
    {"orders_count_min": "many"},
])
def test_unrecognized_values_are_rejected(args):
    with pytest.raises(InvalidArgument):
        normalize_query_args(args)


def test_invalid_argument_is_a_value_error():
    with pytest.raises(ValueError):
        normalize_query_args({"page": 0})


def test_fields_subset_keeps_requested_order():
    query = normalize_query_args({"fields": ["email", "name", "email"]})
    assert query.selected_fields == ["email", "name"]


def test_wildcard_fields_select_everything():
    query = normalize_query_args({"fields": "*"})
    assert query.fields is None
    assert query.selected_fields == list(CUSTOMER_REPORT_FIELDS)


def test_name_is_a_valid_sort_key():
    assert normalize_query_args({"orderby": "name"}).orderby == "name"


def test_normalized_query_is_passed_through():
    query = CustomerReportQuery(country="US")
    assert normalize_query_args(query) is query


def test_canonical_json_ignores_insertion_order():
    first = normalize_query_args({"country": "US", "orders_count_min": 1, "per_page": 10, "page": 1})
    second = normalize_query_args({"page": 1, "per_page": 10, "orders_count_min": 1, "country": "US"})

    assert first.canonical_json() == second.canonical_json()


def test_canonical_json_includes_defaults():
    explicit = normalize_query_args({"page": 1, "order": "desc", "orderby": "date_registered"})
    assert explicit.canonical_json() == normalize_query_args({}).canonical_json()


def test_status_order_does_not_change_canonical_json():
    first = normalize_query_args({"status_is": ["processing", "completed"]})
    second = normalize_query_args({"status_is": ["completed", "processing", "completed"]})
    assert first.canonical_json() == second.canonical_json()
