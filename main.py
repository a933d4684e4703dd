import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from http import HTTPStatus
import uvicorn

import config
from database import check_connection, init_db
from routers import billing_router
from services.billing_scheduler import BillingScheduler
from services.invoice_store import StoreUnavailableError

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

DATABASE_ERROR_MESSAGE = (
    "Database is not connected. Set DATABASE_URL (or DB_SERVER, DB_PORT, DB_USER, "
    "DB_PASS and DB_NAME) in backend .env"
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        init_db()
    except SQLAlchemyError as e:
        logger.error("Could not initialize database tables: %s", e)

    scheduler = BillingScheduler(interval_seconds=config.BILLING_CHECK_INTERVAL_SECONDS)
    app.state.billing_scheduler = scheduler
    if config.BILLING_SCHEDULER_ENABLED:
        scheduler.start()
    try:
        yield
    finally:
        scheduler.stop(timeout=30)


# App instance
app = FastAPI(title="Coworking Billing API", lifespan=lifespan)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(status_code: int, message: str) -> JSONResponse:
    try:
        error = HTTPStatus(status_code).phrase
    except ValueError:
        error = "Error"
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error, "message": message},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        return _error_response(exc.status_code, "Route not found")
    return _error_response(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{location}: {err.get('msg')}" if location else err.get("msg"))
    return _error_response(422, "; ".join(messages))


@app.exception_handler(StoreUnavailableError)
@app.exception_handler(OperationalError)
@app.exception_handler(InterfaceError)
async def store_unavailable_handler(request: Request, exc: Exception):
    logger.error("Database unavailable during %s %s: %s", request.method, request.url.path, exc)
    return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, DATABASE_ERROR_MESSAGE)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error during %s %s", request.method, request.url.path)
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Database error")


@app.get("/health")
def health():
    connected = check_connection()
    return JSONResponse(
        status_code=status.HTTP_200_OK if connected else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"success": connected, "database": "connected" if connected else "not connected"},
    )


app.include_router(billing_router)

if __name__ == "__main__":
    port = int(os.getenv("PORT", 10000))
    uvicorn.run("main:app", host="0.0.0.0", port=port, reload=True)
