from __future__ import annotations

import logging
from typing import Any, Dict, cast

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

from ...engine.errors import ChessError, IllegalMove, InconsistentUndo, MalformedPosition


logger = logging.getLogger(__name__)

UNPROCESSABLE_ENTITY = 422


# Engine error -> (HTTP status, envelope code)
CHESS_ERROR_STATUS: Dict[type, tuple[int, str]] = {
    MalformedPosition: (status.HTTP_400_BAD_REQUEST, "malformed_position"),
    IllegalMove: (status.HTTP_400_BAD_REQUEST, "illegal_move"),
    InconsistentUndo: (status.HTTP_409_CONFLICT, "inconsistent_undo"),
}


def error_envelope(
    *,
    code: str,
    message: str,
    err_type: str,
    request_id: str,
    field_errors: list[dict[str, str]] | None = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "error": {
            "code": code,
            "message": message,
            "type": err_type,
            "request_id": request_id,
        }
    }
    if field_errors:
        payload["error"]["field_errors"] = field_errors
    return payload


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "")


def _error_response(request: Request, status_code: int, code: str, message: str) -> JSONResponse:
    payload = error_envelope(
        code=code,
        message=message,
        err_type="client_error" if 400 <= status_code < 500 else "server_error",
        request_id=_request_id(request),
    )
    return JSONResponse(status_code=status_code, content=payload)


async def chess_error_handler(request: Request, exc: Exception) -> JSONResponse:
    status_code, code = status.HTTP_400_BAD_REQUEST, "bad_request"
    for err_cls, mapped in CHESS_ERROR_STATUS.items():
        if isinstance(exc, err_cls):
            status_code, code = mapped
            break
    if isinstance(exc, InconsistentUndo):
        logger.warning("inconsistent undo", extra={"request_id": _request_id(request)})
    return _error_response(request, status_code, code, str(exc))


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    http_exc = cast(StarletteHTTPException, exc)
    detail = http_exc.detail if isinstance(http_exc.detail, str) else str(http_exc.detail)
    return _error_response(request, http_exc.status_code, _status_to_code(http_exc.status_code), detail)


async def exception_handler(request: Request, exc: Exception) -> JSONResponse:
    if isinstance(exc, ChessError):
        return await chess_error_handler(request, exc)
    if isinstance(exc, StarletteHTTPException):
        return await http_exception_handler(request, exc)
    # Otherwise, treat as internal error and log it
    logger.exception("Unhandled exception", extra={"request_id": _request_id(request)})
    return _error_response(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error", "Internal Server Error"
    )


async def request_validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Map Pydantic/FastAPI validation errors to the envelope with 422
    errors = []
    rve = cast(RequestValidationError, exc)
    for e in rve.errors():
        loc = ".".join(str(p) for p in e.get("loc", []) if p is not None)
        errors.append(
            {
                "field": loc,
                "code": e.get("type", "value_error"),
                "message": e.get("msg", "invalid value"),
            }
        )
    payload = error_envelope(
        code="unprocessable_entity",
        message="Validation error",
        err_type="client_error",
        request_id=_request_id(request),
        field_errors=errors or None,
    )
    return JSONResponse(status_code=UNPROCESSABLE_ENTITY, content=payload)


def _status_to_code(status_code: int) -> str:
    codes = {
        status.HTTP_400_BAD_REQUEST: "bad_request",
        status.HTTP_404_NOT_FOUND: "not_found",
        status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
        status.HTTP_409_CONFLICT: "conflict",
        UNPROCESSABLE_ENTITY: "unprocessable_entity",
    }
    if status_code in codes:
        return codes[status_code]
    if 500 <= status_code < 600:
        return "internal_error"
    return "error"
