import strawberry

# Import feature queries
from app.api.graphql.reports.queries import ReportsQuery

# Define root Query type by combining all feature queries
@strawberry.type
class Query(ReportsQuery):
    pass

# Create schema
schema = strawberry.Schema(query=Query)
