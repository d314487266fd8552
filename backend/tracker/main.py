"""
Student Progress Tracker - FastAPI Application Entry Point.

This is the main application module that:
1. Initializes the FastAPI app with CORS middleware
2. Sets up structured JSON logging
3. Implements request ID middleware (X-Request-ID header)
4. Maps request validation errors to 400
5. Registers all API route handlers
6. Provides health check endpoint

The application follows a modular architecture:
- routes/: API endpoint handlers
- models/: SQLAlchemy ORM models
- services/: Store gateway, Codeforces client, statistics
- logging_config.py: Structured logging configuration
- database.py: Database connection management
"""

import os
import time
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tracker.logging_config import (
    setup_logging, get_logger, log_with_context,
    request_id_var, generate_request_id
)
from tracker.routes import students, profile
from tracker.database import DATABASE_URL, engine, create_tables

# Import all models so they are registered with Base.metadata
from tracker.models.student import Student  # noqa: F401

# ──────────────────────────────────────────────────────────────
# Initialize structured logging BEFORE anything else
# ──────────────────────────────────────────────────────────────
setup_logging()
logger = get_logger("http")

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
    if origin.strip()
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Acquire the database at startup and release it at shutdown."""
    if DATABASE_URL.startswith("sqlite"):
        logger.info("Using SQLite, creating tables directly")
        create_tables()
    yield
    engine.dispose()
    logger.info("Database engine disposed")


app = FastAPI(
    title="Student Progress Tracker",
    description=(
        "Stores students with their Codeforces handles and ratings, and derives "
        "rating history and problem-solving statistics from the Codeforces API."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# ──────────────────────────────────────────────────────────────
# CORS Middleware
#
# Allows the frontend dev server to call the backend.
# ──────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    expose_headers=["X-Request-ID"]
)


# ──────────────────────────────────────────────────────────────
# Request ID Middleware
#
# Generates a unique UUID per incoming request, stores it in a
# context variable for all log entries, returns it in the
# X-Request-ID header and logs start/end with latency.
# ──────────────────────────────────────────────────────────────
@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    req_id = generate_request_id()
    request_id_var.set(req_id)

    start_time = time.time()

    log_with_context(logger, "INFO",
        f"Request started: {request.method} {request.url.path}",
        context={"request_id": req_id},
        extra_data={
            "ip": request.client.host if request.client else "unknown",
            "user_agent": request.headers.get("user-agent", ""),
            "query_params": dict(request.query_params)
        })

    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000
    response.headers["X-Request-ID"] = req_id

    log_with_context(logger, "INFO",
        f"Request completed: {request.method} {request.url.path} → {response.status_code}",
        context={"request_id": req_id},
        extra_data={
            "duration_ms": round(duration_ms, 2),
            "status_code": response.status_code
        })

    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report malformed request bodies and params as 400 instead of 422."""
    errors = exc.errors()
    log_with_context(logger, "WARNING",
        f"Rejected request: {request.method} {request.url.path}",
        extra_data={"errors": errors})
    messages = [
        "{}: {}".format(".".join(str(part) for part in err.get("loc", [])), err.get("msg", "invalid"))
        for err in errors
    ]
    return JSONResponse(status_code=400, content={"detail": "; ".join(messages)})


# ──────────────────────────────────────────────────────────────
# Register API routes
# ──────────────────────────────────────────────────────────────
app.include_router(students.router, tags=["Students"])
app.include_router(profile.router, tags=["Profile"])


@app.get("/health", tags=["Health"])
def health_check():
    """Health check endpoint for Docker health checks and monitoring."""
    return {"status": "healthy", "service": "progress-tracker-backend", "version": "1.0.0"}


@app.get("/", tags=["Root"])
def root():
    """Root endpoint with API information."""
    return {
        "service": "Student Progress Tracker",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "create": "POST /api/v1/create",
            "list": "GET /api/v1/all-users",
            "detail": "GET /api/v1/user/{id}",
            "edit": "PUT /api/v1/edit/{id}",
            "delete": "DELETE /api/v1/delete/{id}",
            "sync": "POST /api/v1/user/{id}/sync",
            "rating_history": "GET /api/v1/user/{id}/rating-history?days=30|90|365",
            "problem_stats": "GET /api/v1/user/{id}/problem-stats",
            "profile": "GET /api/v1/user/{id}/profile?days=30|90|365"
        }
    }
