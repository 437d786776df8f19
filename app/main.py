from contextlib import asynccontextmanager

import httpx
import sentry_sdk
import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from postgrest import APIError

from app.api import admin_router, checkout_router, health_router, licenses_router, users_router, webhooks_router
from app.exceptions import LicenseServiceError, UpstreamFailure, ValidationError
from app.services.db.supabase import SupabaseConnectionService
from app.settings import settings

logger = structlog.getLogger(__name__)

if not settings.debug and settings.sentry_dsn:
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        # Set traces_sample_rate to 1.0 to capture 100%
        # of transactions for performance monitoring.
        traces_sample_rate=1.0,
        profiles_sample_rate=1.0,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    await app.state.db_connection.connect()
    logger.info("Connected to database")
    yield


def error_response(error: LicenseServiceError) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content={"ok": False, "error": error.code, "message": error.message},
    )


async def license_service_error_handler(request: Request, exc: LicenseServiceError):
    logger.info("Request failed", path=request.url.path, error=exc.code, message=exc.message)
    return error_response(exc)


async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        location = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
        message = f"{location}: {errors[0].get('msg')}" if location else errors[0].get("msg", message)
    logger.info("Invalid request", path=request.url.path, errors=len(errors))
    return error_response(ValidationError(message))


async def store_error_handler(request: Request, exc: APIError):
    logger.error("Database request failed", path=request.url.path, code=exc.code, error=exc.message)
    sentry_sdk.capture_exception(exc)
    return error_response(UpstreamFailure("Database error"))


async def upstream_http_error_handler(request: Request, exc: httpx.HTTPError):
    logger.error("Upstream request failed", path=request.url.path, error=repr(exc))
    sentry_sdk.capture_exception(exc)
    return error_response(UpstreamFailure())


def create_app() -> FastAPI:
    app = FastAPI(lifespan=lifespan)
    app.state.db_connection = SupabaseConnectionService(settings.db_config, timeout=settings.http_timeout)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in settings.allowed_origin.split(",")],
        allow_credentials=settings.allowed_origin != "*",
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-Admin-Key"],
    )

    app.add_exception_handler(LicenseServiceError, license_service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(APIError, store_error_handler)
    app.add_exception_handler(httpx.HTTPError, upstream_http_error_handler)

    app.include_router(health_router)
    app.include_router(users_router)
    app.include_router(licenses_router)
    app.include_router(checkout_router)
    app.include_router(webhooks_router)
    app.include_router(admin_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.port, reload=settings.debug)
