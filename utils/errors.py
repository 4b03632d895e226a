from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from utils.hal import hal_error
from utils.jsonapi import jsonapi_error, jsonapi_validation_errors
from utils.negotiation import MediaType, media_type_for_errors, vary_on_accept

logger = logging.getLogger(__name__)


def _error_response(request: Request, status_code: int, detail, headers=None, errors=None) -> JSONResponse:
    media_type = media_type_for_errors(request)

    if media_type == MediaType.JSONAPI:
        content = {"errors": errors or [jsonapi_error(status_code, detail)]}
    elif media_type == MediaType.HAL:
        content = hal_error(status_code, detail, str(request.url))
    else:
        content = {"detail": detail}

    response = JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(content),
        headers=headers,
        media_type=media_type.value,
    )
    vary_on_accept(response)
    return response


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return _error_response(request, exc.status_code, exc.detail, getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    return _error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        errors,
        errors=jsonapi_validation_errors(errors),
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
