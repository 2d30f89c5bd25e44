import math
from dataclasses import dataclass

from app.core.exceptions import InvalidArgument, PageOutOfRange


@dataclass(frozen=True)
class PageWindow:
    """Slice of a report result set selected by page number."""
    pages: int
    page_no: int
    offset: int
    limit: int


def count_pages(total_count: int, per_page: int) -> int:
    if per_page <= 0:
        raise InvalidArgument(f"per_page must be positive, got {per_page}")
    if total_count < 0:
        raise InvalidArgument(f"total_count cannot be negative, got {total_count}")
    return math.ceil(total_count / per_page)


def paginate(total_count: int, page: int, per_page: int) -> PageWindow:
    """Compute the window of rows for the requested page.

    Args:
        total_count: Number of rows matching the report filters
        page: 1-based page number
        per_page: Maximum number of rows per page

    Returns:
        PageWindow with the page count and the LIMIT/OFFSET to apply

    Raises:
        InvalidArgument: If per_page is not positive
        PageOutOfRange: If page is not within [1, pages], including when there are no pages
    """
    pages = count_pages(total_count, per_page)
    if page < 1 or page > pages:
        raise PageOutOfRange(page, pages)
    return PageWindow(
        pages=pages,
        page_no=page,
        offset=(page - 1) * per_page,
        limit=per_page,
    )
