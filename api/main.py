"""
FastAPI main application for the Bookshelf API.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.config import config
from api.database import Database
from api.exceptions import APIError, InputValidationError, RecordNotFound
from api.models import (
    APIInfoResponse, ErrorResponse, FailureResponse, FieldError,
    HealthResponse, NotFoundResponse, ValidationErrorResponse,
)
from api.routes import v1_router
from utilities.logger import REQUEST_ID_HEADER, bind_request_context, setup_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file,
        debug=config.debug,
    )
    logger.info("Starting Bookshelf API")

    database = Database(config.mongodb_url, config.mongodb_database, config.mongodb_timeout_ms)
    try:
        await database.connect()
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        raise
    app.state.database = database

    yield

    logger.info("Shutting down Bookshelf API")
    await database.disconnect()
    app.state.database = None


app = FastAPI(
    title=config.app_name,
    description="""
    Boilerplate REST API over users and books stored in MongoDB.

    ## Features

    * **Users**: signup, profile and password edits, deletion
    * **Books**: CRUD with slugs derived from titles
    * **Relations**: a user's book list and a book's author are kept in sync
    * **Listings**: search, sorting and pagination (`page=all` disables it)
    """,
    version=config.app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=config.cors_allow_credentials,
    allow_methods=config.cors_allow_methods,
    allow_headers=config.cors_allow_headers,
)


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Tag every log event of a request with its id and echo the id back."""
    request_id = bind_request_context(
        request.method, request.url.path, request.headers.get(REQUEST_ID_HEADER)
    )
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


# Exception handlers
@app.exception_handler(InputValidationError)
async def input_validation_handler(request: Request, exc: InputValidationError):
    """Rejected input: 400 with one error per field."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ValidationErrorResponse(message=exc.message, errors=exc.errors).model_dump(mode="json"),
    )


@app.exception_handler(RecordNotFound)
async def not_found_handler(request: Request, exc: RecordNotFound):
    """Soft not-found: the request succeeded, the record does not exist."""
    return JSONResponse(
        status_code=exc.status_code,
        content=NotFoundResponse(message=exc.message).model_dump(mode="json"),
    )


@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError):
    """Other known failures."""
    return JSONResponse(
        status_code=exc.status_code,
        content=FailureResponse(message=exc.message).model_dump(mode="json"),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and query strings are reported like field errors."""
    errors = []
    for error in exc.errors():
        location = error.get("loc", ())
        errors.append(FieldError(
            field=".".join(str(part) for part in location[1:]) or str(location[0] if location else "body"),
            location=str(location[0]) if location else "body",
            message=error.get("msg", "invalid value"),
        ))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ValidationErrorResponse(errors=errors).model_dump(mode="json"),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(error=str(exc)).model_dump(mode="json"),
    )


@app.get("/api", response_model=APIInfoResponse, tags=["Info"])
async def api_info():
    """API banner."""
    return APIInfoResponse(title=config.app_name, desc=config.app_desc)


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request):
    """Health check endpoint."""
    database = getattr(request.app.state, "database", None)
    db_status = "unavailable"
    if database is not None:
        health_info = await database.health_check()
        db_status = health_info.get("status", "unknown")

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=config.app_version,
        database_status=db_status,
    )


app.include_router(v1_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower(),
    )
