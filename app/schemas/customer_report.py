import json
from datetime import datetime, timezone
from typing import Any, List, Literal, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from app.core.config import get_settings
from app.core.exceptions import InvalidArgument

# Every column the customers report can return, in output order
CUSTOMER_REPORT_FIELDS: Tuple[str, ...] = (
    'customer_id',
    'user_id',
    'username',
    'name',
    'email',
    'country',
    'city',
    'postcode',
    'date_registered',
    'date_last_active',
    'date_last_order',
    'orders_count',
    'total_spend',
    'avg_order_value',
)

# Prefixes of the <prefix>_before / <prefix>_after filters
DATE_RANGE_FILTERS: Tuple[str, ...] = ('registered', 'last_active', 'last_order')
EXACT_MATCH_FILTERS: Tuple[str, ...] = ('username', 'email', 'country', 'name')
NUMERIC_RANGE_FILTERS: Tuple[str, ...] = ('orders_count', 'total_spend', 'avg_order_value')


def _split_list(value: Any) -> Any:
    """Accept comma separated strings as produced by query strings."""
    if value is None:
        return None
    if isinstance(value, str):
        return [item.strip() for item in value.split(',') if item.strip()]
    return value


class CustomerReportQuery(BaseModel):
    """Fully normalized arguments of a customers report request."""

    model_config = {"extra": "ignore", "frozen": True}

    registered_before: Optional[datetime] = None
    registered_after: Optional[datetime] = None
    last_active_before: Optional[datetime] = None
    last_active_after: Optional[datetime] = None
    last_order_before: Optional[datetime] = None
    last_order_after: Optional[datetime] = None

    username: Optional[str] = None
    email: Optional[str] = None
    country: Optional[str] = None
    name: Optional[str] = None

    orders_count_min: Optional[int] = None
    orders_count_max: Optional[int] = None
    total_spend_min: Optional[float] = None
    total_spend_max: Optional[float] = None
    avg_order_value_min: Optional[float] = None
    avg_order_value_max: Optional[float] = None

    status_is: Optional[List[str]] = None
    status_is_not: Optional[List[str]] = None

    match: Literal['all', 'any'] = 'all'
    page: int = 1
    per_page: int = Field(default_factory=lambda: get_settings().REPORTS_PER_PAGE)
    orderby: str = 'date_registered'
    order: Literal['asc', 'desc'] = 'desc'
    fields: Optional[List[str]] = None

    @field_validator('username', 'email', 'country', 'name', mode='before')
    @classmethod
    def empty_string_is_unset(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator(
        'registered_before', 'registered_after',
        'last_active_before', 'last_active_after',
        'last_order_before', 'last_order_after',
    )
    @classmethod
    def dates_in_utc(cls, value):
        # Naive timestamps are taken as UTC so every bound is comparable
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @field_validator('match', 'order', 'orderby', mode='before')
    @classmethod
    def lowercase_keyword(cls, value):
        return value.lower() if isinstance(value, str) else value

    @field_validator('status_is', 'status_is_not', mode='before')
    @classmethod
    def split_statuses(cls, value):
        return _split_list(value)

    @field_validator('status_is', 'status_is_not')
    @classmethod
    def canonical_statuses(cls, value):
        # Order of statuses has no meaning, sort them so equal filters hash equally
        return sorted(set(value)) if value else None

    @field_validator('fields', mode='before')
    @classmethod
    def split_fields(cls, value):
        value = _split_list(value)
        if value in ('*', ['*']):
            return None
        return value

    @field_validator('fields')
    @classmethod
    def known_fields(cls, value):
        if not value:
            return None
        unknown = [field for field in value if field not in CUSTOMER_REPORT_FIELDS]
        if unknown:
            raise ValueError(f"Unknown report fields: {', '.join(unknown)}")
        # Drop duplicates but keep the requested order
        return list(dict.fromkeys(value))

    @field_validator('orderby')
    @classmethod
    def known_orderby(cls, value):
        if value not in CUSTOMER_REPORT_FIELDS:
            raise ValueError(f"Cannot sort by '{value}'")
        return value

    @field_validator('page')
    @classmethod
    def page_is_positive(cls, value):
        if value < 1:
            raise ValueError("page must be greater than or equal to 1")
        return value

    @field_validator('per_page')
    @classmethod
    def per_page_in_bounds(cls, value):
        max_per_page = get_settings().REPORTS_MAX_PER_PAGE
        if value < 1 or value > max_per_page:
            raise ValueError(f"per_page must be between 1 and {max_per_page}")
        return value

    @model_validator(mode='after')
    def ranges_are_ordered(self):
        for prefix in NUMERIC_RANGE_FILTERS:
            low, high = getattr(self, f"{prefix}_min"), getattr(self, f"{prefix}_max")
            if low is not None and high is not None and low > high:
                raise ValueError(f"{prefix}_min ({low}) is greater than {prefix}_max ({high})")
        for prefix in DATE_RANGE_FILTERS:
            after, before = getattr(self, f"{prefix}_after"), getattr(self, f"{prefix}_before")
            if after is not None and before is not None and after > before:
                raise ValueError(f"{prefix}_after is later than {prefix}_before")
        return self

    @property
    def selected_fields(self) -> List[str]:
        return list(self.fields) if self.fields else list(CUSTOMER_REPORT_FIELDS)

    @property
    def is_any_match(self) -> bool:
        return self.match == 'any'

    def canonical_json(self) -> str:
        """Stable serialization used to derive cache keys."""
        return json.dumps(self.model_dump(mode='json'), sort_keys=True, separators=(',', ':'))


def normalize_query_args(query_args: Union[CustomerReportQuery, Mapping[str, Any], None]) -> CustomerReportQuery:
    """Validate raw report arguments and fill in defaults.

    Args:
        query_args: Mapping of argument names to values, as received from the API.
            Unknown keys are ignored and missing keys take their defaults.

    Returns:
        The normalized CustomerReportQuery.

    Raises:
        InvalidArgument: If any argument is malformed or out of range.
    """
    if isinstance(query_args, CustomerReportQuery):
        return query_args
    # Keys passed explicitly as None behave as if they were absent
    raw = {key: value for key, value in (query_args or {}).items() if value is not None}
    try:
        return CustomerReportQuery(**raw)
    except ValidationError as e:
        messages = []
        for error in e.errors():
            location = '.'.join(str(part) for part in error['loc'])
            message = error['msg'].removeprefix('Value error, ')
            messages.append(f"{location}: {message}" if location else message)
        raise InvalidArgument('; '.join(messages)) from e


class CustomerReportRow(BaseModel):
    """One customer with its order aggregates. Unselected fields stay unset."""

    customer_id: Optional[int] = None
    user_id: Optional[int] = None
    username: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    postcode: Optional[str] = None
    date_registered: Optional[datetime] = None
    date_last_active: Optional[datetime] = None
    date_last_order: Optional[datetime] = None
    orders_count: Optional[int] = None
    total_spend: Optional[float] = None
    avg_order_value: Optional[float] = None


class CustomerReportResult(BaseModel):
    data: List[CustomerReportRow] = []
    total: int = 0
    pages: int = 0
    page_no: int = 0

    @classmethod
    def empty(cls) -> "CustomerReportResult":
        return cls(data=[], total=0, pages=0, page_no=0)
