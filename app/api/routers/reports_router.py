import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidArgument, StorageFailure
from app.db.base import get_db
from app.schemas.customer_report import CustomerReportResult
from app.services.reports.cache import ReportCache, get_report_cache
from app.services.reports.customers.data_store import CustomersReportDataStore

logger = logging.getLogger(__name__)

router = APIRouter()


def query_args_from_request(request: Request) -> Dict[str, Any]:
    """Flatten the query string, keeping repeated keys (status_is=a&status_is=b) as lists."""
    args: Dict[str, Any] = {}
    for key in request.query_params.keys():
        values = request.query_params.getlist(key)
        args[key] = values if len(values) > 1 else values[0]
    return args


@router.get("/reports/customers", response_model=CustomerReportResult, response_model_exclude_unset=True)
async def get_customers_report(
    request: Request,
    db: AsyncSession = Depends(get_db),
    cache: ReportCache = Depends(get_report_cache)
):
    """
    Get one page of the customers report.
    """
    try:
        return await CustomersReportDataStore(db, cache).get_data(query_args_from_request(request))
    except InvalidArgument as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except StorageFailure:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not retrieve the customers report"
        )
