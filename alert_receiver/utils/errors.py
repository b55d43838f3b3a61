"""Utility helpers for standardized error responses."""
from typing import Any

from fastapi import HTTPException, status


def error_response(code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    """Return a standardized error payload."""

    payload: dict[str, Any] = {"error": {"code": code, "message": message}}
    if details:
        payload["error"]["details"] = details
    return payload


def invalid_parameters(message: str, details: dict[str, Any] | None = None) -> HTTPException:
    """Return the 400 raised when a receiver, category or group can't be resolved."""

    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=error_response("INVALID_PARAMETERS", message, details),
    )


def not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=error_response("NOT_FOUND", "The requested URL or resource could not be found."),
    )
