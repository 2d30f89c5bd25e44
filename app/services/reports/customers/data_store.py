import logging
from typing import Any, Mapping, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import PageOutOfRange, StorageFailure
from app.schemas.customer_report import (
    CustomerReportQuery,
    CustomerReportResult,
    CustomerReportRow,
    normalize_query_args,
)
from app.services.reports.cache import ReportCache
from app.services.reports.customers.predicates import build_predicates
from app.services.reports.customers.statements import build_count_statement, build_data_statement, cast_row
from app.services.reports.pagination import paginate

logger = logging.getLogger(__name__)


class CustomersReportDataStore:
    """Customers report: one row per known customer with its order aggregates."""

    cache_namespace = "customers"

    def __init__(self, db: AsyncSession, cache: ReportCache):
        self.db = db
        self.cache = cache

    async def get_data(
        self,
        query_args: Union[CustomerReportQuery, Mapping[str, Any], None] = None
    ) -> CustomerReportResult:
        """Return one page of the customers report.

        Args:
            query_args: Raw or already normalized report arguments

        Returns:
            CustomerReportResult. Pages outside of the available range give the
            empty result rather than an error.

        Raises:
            InvalidArgument: If the arguments do not validate
            StorageFailure: If the database rejects a report query
        """
        query = normalize_query_args(query_args)

        # Key is fixed before querying so a clear() during the queries is not lost
        cache_key = await self.cache.make_key(self.cache_namespace, query)
        cached = await self.cache.get_by_key(cache_key)
        if cached is not None:
            return cached

        predicates = build_predicates(query)
        try:
            count_result = await self.db.execute(build_count_statement(predicates))
            total = count_result.scalar_one()

            try:
                window = paginate(total, query.page, query.per_page)
            except PageOutOfRange as e:
                logger.debug(f"Customers report: {e}, returning empty result")
                return CustomerReportResult.empty()

            data_result = await self.db.execute(build_data_statement(query, predicates, window))
            rows = data_result.mappings().all()
        except SQLAlchemyError as e:
            logger.error(f"Customers report query failed: {e}", exc_info=True)
            raise StorageFailure(f"Error retrieving customers report: {str(e)}") from e

        result = CustomerReportResult(
            data=[CustomerReportRow(**cast_row(row)) for row in rows],
            total=total,
            pages=window.pages,
            page_no=window.page_no,
        )
        await self.cache.set_by_key(cache_key, result)
        return result

