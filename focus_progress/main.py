from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text

from focus_progress.db.base import get_db
from focus_progress.core.config import settings
from focus_progress.core.logging import setup_logging
from focus_progress.routers import achievements as achievements_router
from focus_progress.routers import stats as stats_router
from focus_progress.routers import sessions as sessions_router
from focus_progress.core.errors import (
    ProgressException,
    progress_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)

setup_logging()

app = FastAPI(
    title="Focus Progress API",
    description=(
        "**Progress synchronization and aggregation for focus sessions**\n\n"
        "Stores one daily achievement record per project, day and owner, "
        "reconciles client snapshots (replace / merge) and serves "
        "daily, weekly, monthly and all-time rollups.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
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
app.add_exception_handler(ProgressException, progress_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(achievements_router.router)
app.include_router(stats_router.router)
app.include_router(sessions_router.router)


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
