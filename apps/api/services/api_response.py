"""Uniform success/failure envelopes for every endpoint."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from services.errors import ApiError

logger = logging.getLogger(__name__)


def success_body(status_code: int, data: Any, message: str = "Success") -> Dict[str, Any]:
    return {
        "status": status_code,
        "data": data,
        "message": message,
        "success": status_code < 400,
    }


def failure_body(status_code: int, message: str, errors: Optional[List[Any]] = None) -> Dict[str, Any]:
    return {
        "status": status_code,
        "data": None,
        "message": message,
        "success": False,
        "errors": list(errors or []),
    }


def api_response(data: Any, message: str = "Success", status_code: int = 200) -> JSONResponse:
    """Wrap ``data`` in the success envelope."""
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(success_body(status_code, data, message)),
    )


def api_error_response(status_code: int, message: str, errors: Optional[List[Any]] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(failure_body(status_code, message, errors)),
    )


async def _handle_api_error(_request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s: %s", type(exc).__name__, exc.message)
    return api_error_response(exc.status_code, exc.message, exc.errors)


async def _handle_http_exception(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed."
    errors = [] if isinstance(exc.detail, str) else [exc.detail]
    response = api_error_response(exc.status_code, message, errors)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def _handle_request_validation(_request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part not in {"body", "query", "path"}),
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]
    return api_error_response(400, "Invalid request input.", errors)


async def _handle_unexpected(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error: %s", exc)
    return api_error_response(500, "Internal server error.")


def install_exception_handlers(app: FastAPI) -> None:
    """Render every failure path with the failure envelope."""
    app.add_exception_handler(ApiError, _handle_api_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)
    app.add_exception_handler(Exception, _handle_unexpected)
