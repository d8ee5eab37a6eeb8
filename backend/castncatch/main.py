from __future__ import annotations
import uuid
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from castncatch.config import settings
from castncatch.errors import ErrorCode, GameError
from castncatch.logging_setup import configure_logging
from castncatch.routes.system import router as system_router
from castncatch.routes.auth import router as auth_router
from castncatch.routes.challenges import router as challenges_router
from castncatch.routes.friend_challenges import router as friend_challenges_router
from castncatch.routes.friends import router as friends_router
from castncatch.routes.stats import router as stats_router
from castncatch.routes.notifications import router as notifications_router
from castncatch.routes.loot import router as loot_router
from castncatch.routes.cron import router as cron_router
from castncatch.routes.admin import router as admin_router
import structlog

configure_logging()
log = structlog.get_logger()

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    log.info("startup", env=settings.environment, version=settings.app_version, git_sha=settings.git_sha)
    yield
    # Shutdown
    log.info("shutdown")

app = FastAPI(
    title=f"{settings.app_display_name} API",
    version=settings.app_version,
    lifespan=lifespan,
    description=f"{settings.app_display_name} game backend: challenges, coins, friends and rewards",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.environment == "dev" else settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(system_router)
app.include_router(auth_router)
app.include_router(challenges_router)
app.include_router(friend_challenges_router)
app.include_router(friends_router)
app.include_router(stats_router)
app.include_router(notifications_router)
app.include_router(loot_router)
app.include_router(cron_router)
app.include_router(admin_router)

# ---------- uniform error body ----------

@app.exception_handler(GameError)
async def game_error_handler(request: Request, exc: GameError):
    log.info("request_failed", code=exc.code.value, path=request.url.path, **exc.details)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{where}: {first.get('msg')}" if where else str(first.get("msg", "Invalid request"))
    err = GameError(ErrorCode.INVALID_INPUT, message)
    return JSONResponse(status_code=err.status_code, content=err.to_dict())

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    log.error("unhandled_error", path=request.url.path, exc_info=exc)
    err = GameError(ErrorCode.INTERNAL, "A server error occurred.")
    return JSONResponse(status_code=err.status_code, content=err.to_dict())

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = rid
    structlog.contextvars.bind_contextvars(request_id=rid)
    try:
        response: Response = await call_next(request)
    finally:
        structlog.contextvars.clear_contextvars()
    response.headers["X-Request-ID"] = rid
    return response
