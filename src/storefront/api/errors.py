"""Exception-to-HTTP mapping for the storefront API.

Every failure surfaced to a client uses the same envelope:
``{"success": false, "message": ..., "errors": {...}}``.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError, InvalidOperationError, ObjectNotFoundError, ValidationError

from storefront.errors import CouponRejected, CouponRejection, GatewayError

logger = structlog.get_logger(__name__)


def _flatten(messages) -> str:
    if not isinstance(messages, dict):
        return str(messages)
    parts = []
    for values in messages.values():
        parts.extend(values if isinstance(values, list) else [values])
    return "; ".join(str(part) for part in parts)


def _failure(status_code: int, message: str, errors=None) -> JSONResponse:
    content = {"success": False, "message": message}
    if errors:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content)


async def _coupon_rejected(request: Request, exc: CouponRejected) -> JSONResponse:
    status_code = 409 if exc.reason == CouponRejection.DUPLICATE else 400
    return _failure(status_code, _flatten(exc.messages), exc.messages)


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return _failure(400, _flatten(exc.messages), exc.messages)


async def _not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return _failure(404, str(exc.args[0]) if exc.args else "Not found")


async def _invalid_operation(request: Request, exc: InvalidOperationError) -> JSONResponse:
    return _failure(422, str(exc.args[0]) if exc.args else "Operation not allowed")


async def _version_conflict(request: Request, exc: ExpectedVersionError) -> JSONResponse:
    logger.warning("concurrent_modification", error=str(exc), path=request.url.path)
    return _failure(409, "The resource was modified concurrently; retry the request")


async def _gateway_error(request: Request, exc: GatewayError) -> JSONResponse:
    logger.error("gateway_error", provider=exc.provider, error=exc.message, path=request.url.path)
    return _failure(502, f"{exc.provider} is unavailable: {exc.message}")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CouponRejected, _coupon_rejected)
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(ObjectNotFoundError, _not_found)
    app.add_exception_handler(InvalidOperationError, _invalid_operation)
    app.add_exception_handler(ExpectedVersionError, _version_conflict)
    app.add_exception_handler(GatewayError, _gateway_error)
