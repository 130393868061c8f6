"""Mapping of commission errors to HTTP responses."""

from fastapi import HTTPException

from src.services.errors import CommissionError


def to_http_exception(exc: CommissionError) -> HTTPException:
    """Convert a service error into the HTTPException the API answers with."""
    detail = exc.message if not exc.details else f"{exc.message}: {exc.details}"
    return HTTPException(status_code=exc.status_code, detail=detail)
