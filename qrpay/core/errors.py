"""Domain exceptions and HTTP error handlers.

None of the domain errors is fatal: the session turns each of them into a
cleared display, and the handlers below only cover errors that escape to the
HTTP layer.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger("qrpay.errors")


class QRPayError(Exception):
    """Base class for all domain errors."""


class AmountValidationError(QRPayError):
    """Non-positive, non-finite, missing or out of range numeric input."""

    def __init__(self, errors: Sequence[str]):
        self.errors: List[str] = list(errors)
        super().__init__("; ".join(self.errors))


class InsufficientDataError(QRPayError):
    """Not enough usable inputs to determine a consistent amount triple."""


class RenderFailure(QRPayError):
    """The QR renderer produced no image."""


class PersistenceFailure(QRPayError):
    """Reading or writing the preference store failed."""


def not_found_handler(request: Request, exc):  # type: ignore
    if getattr(exc, "status_code", 404) != 404:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": "http_error", "detail": exc.detail},
        )
    detail = getattr(exc, "detail", None)
    if not detail or detail == "Not Found":
        detail = f"No route for {request.method} {request.url.path}"
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"error": "not_found", "detail": detail},
    )


def validation_error_handler(request: Request, exc: RequestValidationError):  # type: ignore
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


def server_error_handler(request: Request, exc: Exception):  # type: ignore
    logger.exception("unhandled exception")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "detail": "An unexpected error occurred.",
        },
    )
