"""
ExamGate Test-Session Service - FastAPI application.

Owns the Store (exposed to routes via app.state), renders domain errors
as {"error": message} and tags every request with an X-Request-ID.
"""

import time
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from examgate import config
from examgate.database import Store
from examgate.errors import ServiceError
from examgate.logging_config import (
    setup_logging, get_logger, log_with_context,
    request_id_var, generate_request_id
)
from examgate.routes import admin, auth, results
from examgate.timestamps import to_iso, utcnow

setup_logging()
logger = get_logger("http")

store = Store(config.DATABASE_URL)

# Tables are created on first boot for SQLite; other databases use Alembic
if config.DATABASE_URL.startswith("sqlite"):
    logger.info("Using SQLite, creating tables directly")
    store.create_tables()

app = FastAPI(
    title="ExamGate Test-Session Service",
    description=(
        "Registers and authenticates students, tracks whether a student may "
        "take or retake the test, records submitted results and handles the "
        "second-chance override."
    ),
    version=config.SERVICE_VERSION,
    docs_url="/docs",
    redoc_url="/redoc"
)
app.state.store = store

# Any origin unless CORS_ORIGINS narrows it down
_origins = config.cors_origins_list()
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=_origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"]
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Set the request ID for log entries and the response header; log latency."""
    req_id = generate_request_id()
    request_id_var.set(req_id)
    start_time = time.time()

    log_with_context(logger, "INFO",
        f"Request started: {request.method} {request.url.path}",
        context={"request_id": req_id},
        extra_data={
            "ip": request.client.host if request.client else "unknown",
            "user_agent": request.headers.get("user-agent", ""),
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


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    log_with_context(logger, "WARNING",
        f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}",
        extra_data={"status_code": exc.status_code})
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies are client errors like any missing field: 400."""
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())}
    )


app.include_router(auth.router, tags=["Auth"])
app.include_router(results.router, tags=["Tests"])
app.include_router(admin.router, tags=["Admin"])


@app.get("/api/health", tags=["Health"])
def health_check():
    return {"status": "ok", "timestamp": to_iso(utcnow()), "version": config.SERVICE_VERSION}


@app.get("/", tags=["Root"])
def root():
    """Root endpoint with API information."""
    return {
        "service": "ExamGate Test-Session Service",
        "version": config.SERVICE_VERSION,
        "docs": "/docs",
        "health": "/api/health",
        "endpoints": {
            "auth": "POST /api/auth",
            "can_take_test": "GET /api/can-take-test/{name}",
            "submit_test": "POST /api/submit-test",
            "second_chance": "POST /api/verify-second-chance",
            "test_results": "GET /api/test-results/{name}",
            "admin_data": "GET /api/admin/data",
            "admin_reset": "POST /api/admin/reset-user/{name}"
        }
    }
