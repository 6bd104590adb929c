import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from splitledger.core.errors import ServiceError, ServerError, RateLimitedError
from splitledger.core.settings import settings
from splitledger.routers.shared_expenses import router as shared_expenses_router
from splitledger.routers.transaction_requests import router as transaction_requests_router
from splitledger.routers.users import router as users_router
from splitledger.schemas.common import make_error_response
from splitledger.services.rate_limit import RateLimiter

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Shared Ledger API",
    description="Transaction requests between accounts and shared expenses split across users",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.rate_limiter = RateLimiter(
    max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
    window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    headers = {}
    if isinstance(exc, RateLimitedError):
        headers["Retry-After"] = str(exc.retry_after)

    if isinstance(exc, ServerError):
        # Internal detail stays in the log
        logger.error(f"Server error on {request.method} {request.url.path}: {exc.message}")
        body = make_error_response(exc.code, "An unexpected error occurred")
    else:
        body = make_error_response(exc.code, exc.message, exc.details)

    return JSONResponse(status_code=exc.status_code, content=body, headers=headers or None)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    field_errors = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or "request"
        field_errors.setdefault(field, []).append(err.get("msg", "Invalid value"))
    return JSONResponse(
        status_code=400,
        content=make_error_response("VALIDATION_ERROR", "Validation failed", field_errors),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=make_error_response("INTERNAL_ERROR", "An unexpected error occurred"),
    )


app.include_router(transaction_requests_router)
app.include_router(shared_expenses_router)
app.include_router(users_router)


@app.get("/healthz", tags=["Health Check"])
async def health_check():
    return {"status": "ok"}
