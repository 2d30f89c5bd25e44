import strawberry
from typing import Optional
from strawberry.types import Info
from app.api.graphql.reports.types import CustomersReport, CustomersReportInput

@strawberry.type
class ReportsQuery:
    @strawberry.field
    async def customers_report(self, info: Info, args: Optional[CustomersReportInput] = None) -> CustomersReport:
        """Get one page of the customers report."""
        from app.api.graphql.reports.resolvers import resolve_customers_report
        return await resolve_customers_report(info, args)
