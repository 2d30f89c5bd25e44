import dataclasses
from typing import Any, Dict, Optional

from strawberry.types import Info

from app.api.graphql.reports.types import CustomersReport, CustomersReportInput
from app.services.reports.cache import get_report_cache
from app.services.reports.customers.data_store import CustomersReportDataStore


def input_to_query_args(args: Optional[CustomersReportInput]) -> Dict[str, Any]:
    if args is None:
        return {}
    return {key: value for key, value in dataclasses.asdict(args).items() if value is not None}


async def resolve_customers_report(info: Info, args: Optional[CustomersReportInput]) -> CustomersReport:
    """Resolver for the customers report.

    Invalid arguments raise InvalidArgument, which strawberry reports as a GraphQL error.
    """
    db = info.context["db"]
    cache = info.context.get("report_cache") or get_report_cache()
    result = await CustomersReportDataStore(db, cache).get_data(input_to_query_args(args))
    return CustomersReport.from_result(result)
