class ReportError(Exception):
    """Base class for errors raised by the reporting layer."""


class InvalidArgument(ReportError, ValueError):
    """Malformed pagination or filter input supplied by the caller."""


class StorageFailure(ReportError):
    """The underlying database query could not be executed."""


class PageOutOfRange(ReportError):
    """Requested page lies outside the available pages.

    Never surfaced to API callers: the report returns its empty result instead.
    """

    def __init__(self, page: int, pages: int):
        self.page = page
        self.pages = pages
        super().__init__(f"Page {page} is outside of [1, {pages}]")
