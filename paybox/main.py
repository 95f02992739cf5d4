import logging
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root wherever uvicorn is started from
_PROJ_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJ_ROOT / ".env")

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text

from paybox.admin import admin_router
from paybox.api.boxes import router as boxes_router
from paybox.core.config import cors_origins_list, settings
from paybox.core.database import engine, init_db
from paybox.core.errors import PayBoxError
from paybox.core.rate_limit import limiter
from paybox.logging import setup_logging

setup_logging(level=settings.log_level)
log = logging.getLogger("paybox")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    log.info("ADMIN_SECRET configured: %s", "yes" if settings.admin_secret else "no")
    yield


app = FastAPI(
    title="PayBox API",
    description="Escrow payment boxes between marketplace sellers and buyers",
    lifespan=lifespan,
)
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(request: Request, status_code: int, detail: str, code: str | None = None) -> JSONResponse:
    rid = getattr(request.state, "request_id", None)
    body = {"error": detail, "status_code": status_code}
    if code:
        body["code"] = code
    if rid:
        body["request_id"] = rid
    return JSONResponse(status_code=status_code, content=body)


def _rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    log.warning("Rate limit exceeded: path=%s", request.url.path)
    return _error_response(request, 429, "Too many requests. Please wait a minute.", "rate_limited")


app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)


@app.exception_handler(PayBoxError)
def paybox_error_handler(request: Request, exc: PayBoxError) -> JSONResponse:
    response = _error_response(request, exc.status_code, exc.message, exc.code)
    if exc.box_id:
        response.headers["X-Box-Id"] = exc.box_id
    return response


@app.exception_handler(RequestValidationError)
def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errs = exc.errors()
    log.info("Request validation error (422): path=%s method=%s", request.url.path, request.method)
    first = errs[0] if errs else {}
    rid = getattr(request.state, "request_id", None)
    body = {
        "error": first.get("msg") or "Invalid request.",
        "status_code": 422,
        "code": "validation_error",
        "detail": [{"loc": list(e.get("loc") or []), "msg": e.get("msg")} for e in errs],
    }
    if rid:
        body["request_id"] = rid
    return JSONResponse(status_code=422, content=body)


@app.exception_handler(HTTPException)
def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    response = _error_response(request, exc.status_code, exc.detail if isinstance(exc.detail, str) else str(exc.detail))
    for key, value in (exc.headers or {}).items():
        response.headers[key] = value
    return response


@app.exception_handler(Exception)
def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("Unhandled exception: path=%s %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": "Unexpected server error."})


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request.state.request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:16]
    response = await call_next(request)
    response.headers["X-Request-Id"] = request.state.request_id
    return response


app.include_router(boxes_router)
app.include_router(admin_router)


@app.get("/health")
@limiter.exempt
def health():
    database = "ok"
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        log.warning("Health check database error: %s", e)
        database = "error"
    return {"status": "ok", "service": "paybox-api", "database": database}
