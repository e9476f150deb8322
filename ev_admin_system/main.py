# ev_admin_system/main.py

import contextlib
import logging

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from ev_admin_system.api import evses_api, locations_api, merchants_api, reports_api, user_management_api
from ev_admin_system.api.schemas import success
from ev_admin_system.business_logic.errors import HttpError
from ev_admin_system.core.config import get_settings
from ev_admin_system.data.database import engine, get_db, create_db_tables, check_db_connection

settings = get_settings()

logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO),
                    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

API_PREFIX = "/admin/api/v1"


# --- Lifespan Context Manager ---
@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Creates missing tables on startup and disposes of the engine on shutdown.
    """
    logger.info("Starting EV admin back-office API...")
    try:
        if not check_db_connection():
            logger.critical("Failed to connect to the database.")
        create_db_tables()
        yield
    finally:
        logger.info("Shutting down EV admin back-office API...")
        engine.dispose()
        logger.info("Database engine disposed.")


# --- Error envelope ---

def _error_name(request: Request) -> str:
    route = request.scope.get("route")
    name = getattr(route, "name", None)
    return f"{name}_ERROR" if name else "UNKNOWN_ERROR"


def _error_response(request: Request, status: int, message: str, data, exc: Exception) -> JSONResponse:
    logger.error(
        f"API_REQUEST_ERROR: error_name={_error_name(request)} message={message} "
        f"method={request.method} url={request.url.path} code={status}",
        exc_info=status >= 500 and not isinstance(exc, HttpError),
    )
    return JSONResponse(status_code=status, content={"status": status, "data": data, "message": message})


async def http_error_handler(request: Request, exc: HttpError):
    return _error_response(request, exc.status, exc.message, exc.data, exc)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"][1:]) or str(error["loc"][0])
        errors[field] = error["msg"]
    return _error_response(request, 422, "Unprocessable Entity", errors, exc)


async def starlette_http_error_handler(request: Request, exc: StarletteHTTPException):
    message = "Not Found" if exc.status_code == 404 else str(exc.detail)
    return _error_response(request, exc.status_code, message, [], exc)


async def unhandled_error_handler(request: Request, exc: Exception):
    return _error_response(request, 500, "Internal Server Error", [], exc)


def create_app() -> FastAPI:
    app = FastAPI(
        title="EV Admin Back-Office API",
        description="Administration of EVSEs, locations, charging point operators, RFID cards and top-ups.",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(HttpError, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, starlette_http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(evses_api.router, prefix=API_PREFIX)
    app.include_router(locations_api.router, prefix=API_PREFIX)
    app.include_router(merchants_api.router, prefix=API_PREFIX)
    app.include_router(merchants_api.partners_router, prefix=API_PREFIX)
    app.include_router(reports_api.router, prefix=API_PREFIX)
    app.include_router(user_management_api.router, prefix=API_PREFIX)

    @app.get(f"{API_PREFIX}/health", name="HEALTH_CHECK", summary="Health check")
    async def health_check(db: Session = Depends(get_db)):
        database_status = "connected" if check_db_connection(db) else "unavailable"
        return success({"status": "ok", "database_status": database_status})

    return app


app = create_app()
