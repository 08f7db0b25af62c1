# cake_stock/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from cake_stock.core import logging_config  # noqa: F401
from cake_stock.core.config import get_settings
from cake_stock.core.enums import ErrorKind
from cake_stock.core.exceptions import BaseServiceError
from cake_stock.database import create_tables
from cake_stock.routes import directory, health, products, reports, scans, stock
from cake_stock.scheduler import create_scheduler, get_scheduler_status, start_scheduler, stop_scheduler
from cake_stock.schemas.responses import ApiResponse
from cake_stock.services.cache import TTLCache
from cake_stock.services.locks import ProductLockRegistry

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.DUPLICATE_KEY: 409,
    ErrorKind.DEPENDENCY: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    # Tables are created on first start
    await create_tables()

    app.state.cache = TTLCache(ttl_seconds=settings.CACHE_TTL_SECONDS)
    app.state.stock_locks = ProductLockRegistry()

    app.state.scheduler = create_scheduler(app.state.cache, settings)
    start_scheduler(app.state.scheduler)
    try:
        yield  # This is where the app runs
    finally:
        stop_scheduler(app.state.scheduler)


app = FastAPI(
    title="Cake Stock",
    lifespan=lifespan
)


def _error_response(message: str, kind: ErrorKind) -> JSONResponse:
    return JSONResponse(
        status_code=ERROR_STATUS_CODES[kind],
        content=ApiResponse.fail(message, kind).model_dump(mode="json"),
    )


@app.exception_handler(BaseServiceError)
async def service_error_handler(request: Request, exc: BaseServiceError):
    if exc.kind == ErrorKind.DEPENDENCY:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return _error_response(exc.message, exc.kind)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{field}: {first.get('msg')}" if field else str(first.get("msg", "Invalid request"))
    return _error_response(message, ErrorKind.VALIDATION)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"{request.method} {request.url.path}: database error")
    return _error_response(f"Database error: {str(exc)}", ErrorKind.DEPENDENCY)


app.include_router(health.router)
app.include_router(scans.router)
app.include_router(products.router)
app.include_router(stock.router)
app.include_router(reports.router)
app.include_router(directory.router)


@app.get("/api/scheduler/status")
async def scheduler_status(request: Request):
    return get_scheduler_status(getattr(request.app.state, "scheduler", None))
