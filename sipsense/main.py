from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text

from sipsense.db.base import get_db
from sipsense.core.config import settings
from sipsense.core.logging_config import get_logger, setup_logging
from sipsense.routers import hydration as hydration_router
from sipsense.routers import reminders as reminders_router
from sipsense.core.errors import (
    SipSenseException,
    sipsense_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)

log = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    log.info("app_started", env=settings.APP_ENV)
    yield
    engine = getattr(app.state, "engine", None)
    if engine is not None:
        engine.shutdown()
        app.state.engine = None
    log.info("app_stopped")


app = FastAPI(
    title="SipSense API",
    description=(
        "**Adaptive hydration behavior engine**\n\n"
        "Learns when and how much a user drinks, proposes a personalized drink "
        "schedule and reminder times, and adapts from accepted and declined "
        "suggestions.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(SipSenseException, sipsense_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(hydration_router.router)
app.include_router(reminders_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the database
    are reachable. Returns HTTP 503 if the DB is down.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception:
        db_status = "unreachable"

    if db_status != "ok":
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": db_status},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV}
