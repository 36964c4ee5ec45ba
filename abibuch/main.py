"""
Abibuch — yearbook backend

App factory: middleware, exception handlers and router mounts. All
endpoints live in routers/, business logic in services/.

Called by: uvicorn (abibuch.main:app)
Depends on: config, logging_config, rate_limit, startup, routers/*
"""

import os
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException
from starlette.middleware.sessions import SessionMiddleware

from .config import APP_VERSION, settings
from .logging_config import setup_logging
from .rate_limit import limiter
from .schemas.errors import ErrorResponse

MSG_INTERNAL_ERROR = "Ein Fehler ist aufgetreten."


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not os.environ.get("TESTING"):
        setup_logging()
        from .startup import run_startup_migrations

        run_startup_migrations()
    logger.info(f"Abibuch {APP_VERSION} started")
    yield
    logger.info("Abibuch shutting down")


app = FastAPI(title="Abibuch", version=APP_VERSION, lifespan=lifespan)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.secret_key,
    max_age=settings.session_max_age_seconds,
    same_site="lax",
    https_only=settings.app_url.startswith("https"),
)


# ── Request ID + security headers ────────────────────────────────────


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = uuid.uuid4().hex[:8]
    request.state.request_id = request_id
    with logger.contextualize(request_id=request_id):
        response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


# ── Exception handlers ───────────────────────────────────────────────


def _error_response(request: Request, status_code: int, error: str, detail: list | None = None) -> JSONResponse:
    body = ErrorResponse(
        error=error,
        status_code=status_code,
        request_id=getattr(request.state, "request_id", ""),
        detail=detail,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


def _first_validation_message(errors: list[dict]) -> str:
    if not errors:
        return "Ungültige Eingabe."
    msg = str(errors[0].get("msg", "Ungültige Eingabe."))
    return msg.removeprefix("Value error, ")


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    error = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _error_response(request, exc.status_code, error)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = [{"loc": list(e.get("loc", ())), "msg": _first_validation_message([e])} for e in errors]
    return _error_response(request, 400, _first_validation_message(errors), detail)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error(f"Unhandled error on {request.method} {request.url.path}")
    return _error_response(request, 500, MSG_INTERNAL_ERROR)


# ── Health ───────────────────────────────────────────────────────────


@app.get("/health")
async def health():
    return {"status": "ok", "version": APP_VERSION}


# ── Routers ──────────────────────────────────────────────────────────

from .routers.admin_audit import router as admin_audit_router  # noqa: E402
from .routers.admin_people import router as admin_people_router  # noqa: E402
from .routers.admin_rankings import router as admin_rankings_router  # noqa: E402
from .routers.admin_steckbrief import router as admin_steckbrief_router  # noqa: E402
from .routers.admin_users import router as admin_users_router  # noqa: E402
from .routers.auth import router as auth_router  # noqa: E402
from .routers.comments import router as comments_router  # noqa: E402
from .routers.dashboard import router as dashboard_router  # noqa: E402
from .routers.exports import router as exports_router  # noqa: E402
from .routers.photos import router as photos_router  # noqa: E402
from .routers.quotes import router as quotes_router  # noqa: E402
from .routers.rankings import router as rankings_router  # noqa: E402
from .routers.steckbrief import router as steckbrief_router  # noqa: E402
from .routers.survey import router as survey_router  # noqa: E402
from .routers.uploads import router as uploads_router  # noqa: E402

app.include_router(auth_router)
app.include_router(dashboard_router)
app.include_router(steckbrief_router)
app.include_router(rankings_router)
app.include_router(quotes_router)
app.include_router(comments_router)
app.include_router(photos_router)
app.include_router(survey_router)
app.include_router(uploads_router)
app.include_router(admin_users_router)
app.include_router(admin_rankings_router)
app.include_router(admin_steckbrief_router)
app.include_router(admin_audit_router)
app.include_router(exports_router)
app.include_router(admin_people_router)
