"""Map domain errors onto structured JSON responses."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from paws.logging import logger
from paws.services.exceptions import ServiceError, Unauthorized


def error_payload(kind: str, message: str, **extra) -> dict:
    return {"error": kind, "message": message, **extra}


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, kind=exc.kind, error=str(exc))
    else:
        logger.info("request_rejected", path=request.url.path, kind=exc.kind, error=str(exc))
    response = JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(error_payload(exc.kind, str(exc), **exc.extra)),
    )
    if isinstance(exc, Unauthorized):
        settings = request.app.state.settings
        response.delete_cookie(settings.auth.cookie_name, path="/")
    return response


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=jsonable_encoder(
            error_payload("ValidationError", "Malformed request body.", details=exc.errors())
        ),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)


__all__ = ["error_payload", "register_error_handlers"]
