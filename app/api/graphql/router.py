from typing import Any, Dict

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from strawberry.fastapi import GraphQLRouter

from app.api.graphql.schema import schema
from app.db.base import get_db
from app.services.reports.cache import ReportCache, get_report_cache

async def get_context(
    request: Request,
    db: AsyncSession = Depends(get_db),
    report_cache: ReportCache = Depends(get_report_cache)
) -> Dict[str, Any]:
    """
    Creates a context for GraphQL resolvers with request, database session and report cache.
    """
    return {
        "request": request,
        "db": db,
        "report_cache": report_cache
    }

# Create a GraphQL router for FastAPI
graphql_router = GraphQLRouter(
    schema,
    context_getter=get_context,
    graphiql=True  # Enable GraphiQL interface for development
)
