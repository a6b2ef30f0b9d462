from fastapi import Query

from articlehub.config import settings


class PaginationParams:
    """
    FastAPI dependency that parses the paging and sorting query
    parameters of list endpoints.

    ``page_size`` is clamped to ``settings.MAX_PAGE_SIZE`` whatever the
    caller sends.  ``sort_by`` is passed through untouched; the service
    maps it onto a whitelisted column.
    """

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number (1-based)."),
        page_size: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            description="Number of items returned per page.",
        ),
        sort_by: str = Query("created", description="Column name to sort results by."),
        sort_order: str = Query(
            "desc",
            pattern="^(asc|desc)$",
            description="Sort direction: 'asc' or 'desc'.",
        ),
    ) -> None:
        self.page = page
        self.page_size = min(page_size, settings.MAX_PAGE_SIZE)
        self.sort_by = sort_by
        self.sort_order = sort_order
