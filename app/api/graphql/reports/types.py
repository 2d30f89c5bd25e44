from datetime import datetime
from typing import List, Optional

import strawberry

from app.schemas.customer_report import CustomerReportResult


@strawberry.type
class CustomerReportRow:
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


@strawberry.type
class CustomersReport:
    data: List[CustomerReportRow]
    total: int
    pages: int
    page_no: int

    @classmethod
    def from_result(cls, result: CustomerReportResult) -> "CustomersReport":
        return cls(
            data=[CustomerReportRow(**row.model_dump()) for row in result.data],
            total=result.total,
            pages=result.pages,
            page_no=result.page_no,
        )


@strawberry.input
class CustomersReportInput:
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
    match: Optional[str] = None
    page: Optional[int] = None
    per_page: Optional[int] = None
    orderby: Optional[str] = None
    order: Optional[str] = None
    fields: Optional[List[str]] = None
