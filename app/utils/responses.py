"""
Response Envelope Helpers

Every response body has the same outer shape:

    success:    true for 2xx, false for errors
    message:    human readable summary
    data:       payload (success only; null for deletions)
    pagination: list endpoints only
    meta:       extra context (applied filters, search term, ...)
    errors:     field-level violations (validation errors only)
    timestamp:  ISO-8601 UTC

success_response/paginated_response build the success side as ApiResponse
models; error_response builds the JSONResponse used by every exception
handler in app.main.
"""

from typing import Any

from fastapi.responses import JSONResponse

from app.schemas.common import ApiResponse, PaginationMeta, utc_timestamp
from app.services.query import Pagination


def pagination_meta(pagination: Pagination) -> PaginationMeta:
    """Outward pagination block; the internal skip offset is dropped."""
    return PaginationMeta(
        current_page=pagination.current_page,
        total_pages=pagination.total_pages,
        total_items=pagination.total_items,
        items_per_page=pagination.items_per_page,
        has_next_page=pagination.has_next_page,
        has_previous_page=pagination.has_previous_page,
    )


def success_response(
    data: Any = None,
    message: str = "Operation completed successfully",
    meta: dict[str, Any] | None = None,
) -> ApiResponse:
    return ApiResponse(message=message, data=data, meta=meta)


def paginated_response(
    items: list[Any],
    pagination: Pagination,
    message: str,
    meta: dict[str, Any] | None = None,
) -> ApiResponse:
    return ApiResponse(
        message=message,
        data=items,
        pagination=pagination_meta(pagination),
        meta=meta,
    )


def error_response(
    status_code: int,
    message: str,
    errors: list[dict[str, Any]] | None = None,
    error: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """
    Build the error envelope.

    Args:
        status_code: HTTP status
        message: Client-facing message
        errors: Field-level violations, one {"field", "message"} per entry
        error: Diagnostic details (exception type, detail); callers only pass
            this outside production
        headers: Extra response headers (e.g. Retry-After)
    """
    content: dict[str, Any] = {
        "success": False,
        "message": message,
    }
    if errors:
        content["errors"] = errors
    if error:
        content["error"] = error
    content["timestamp"] = utc_timestamp()

    return JSONResponse(status_code=status_code, content=content, headers=headers)
