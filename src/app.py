"""Main FastAPI application module.

This module initializes the FastAPI application, registers all route handlers
and maps the service's error taxonomy onto HTTP responses.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from core.database import init_db
from core.exceptions import IdentityError, InternalError
from core.logging_config import setup_logging
from config import (
    CORS_ALLOWED_ORIGINS,
    API_HOST,
    API_PORT,
)
from api.routes import auth, student, faculty, admin, registration_code, university

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)

# Initialize FastAPI application
app = FastAPI(
    title="Campus Identity API",
    description="Registration, verification and login for universities, faculty and students.",
    version="1.0.0",
)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register route handlers
app.include_router(auth.router)
app.include_router(student.router)
app.include_router(faculty.router)
app.include_router(admin.router)
app.include_router(registration_code.router)
app.include_router(university.router)


@app.exception_handler(IdentityError)
async def identity_error_handler(request: Request, exc: IdentityError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render body and path validation failures in the same shape as other errors."""
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg", ""),
        }
        for error in exc.errors()
    ]
    message = errors[0]["message"] if errors else "Invalid request"
    body = {
        "success": False,
        "code": "validation_error",
        "message": message,
        "errors": errors,
    }
    return JSONResponse(status_code=400, content=body)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path)
    error = InternalError()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.on_event("startup")
def startup_tasks() -> None:
    """Create missing tables."""
    init_db()


@app.get("/", summary="API root", tags=["Info"])
def root() -> dict:
    """API root, returns API information and documentation links.

    Returns:
        Dictionary with API information and documentation links.
    """
    return {
        "name": "Campus Identity API",
        "version": "1.0.0",
        "docs": {
            "swagger": "/docs",
            "redoc": "/redoc",
        },
        "health": "/api/health",
    }


@app.get("/api/health", summary="Health check", tags=["Health"])
def health() -> dict:
    """Health check endpoint.

    Returns:
        Dictionary with status "ok".
    """
    return {"status": "ok"}


# --- Startup code for direct execution ---
if __name__ == "__main__":
    import uvicorn

    server_url = f"http://{API_HOST}:{API_PORT}"
    print(f"Campus Identity API: {server_url}")
    print(f"API docs: {server_url}/docs")
    print()

    uvicorn.run("app:app", host=API_HOST, port=API_PORT, reload=True)
