import asyncio
import logging
import os
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from clinic.api.routes import appointments, doctors, slots, specializations
from clinic.core.config import _ENV_FILE, settings
from clinic.core.db import async_session_maker
from clinic.core.errors import ClinicError
from clinic.services.reminder_service import ReminderRunner
from clinic.services.slot_service import regenerate_all_doctors

if os.getenv("ENV") != "production":
    logging.basicConfig(level=logging.DEBUG)
else:
    logging.basicConfig(
        level=logging.INFO,
        format='{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}',
    )
logger = logging.getLogger(__name__)

reminder_runner = ReminderRunner()


async def _run_slot_regeneration() -> None:
    """Extend every doctor's generated slots over the default window."""
    try:
        async with async_session_maker() as session:
            try:
                inserted = await regenerate_all_doctors(session, settings.default_regeneration_weeks)
                await session.commit()
                logger.info(
                    "Slot regeneration: %d doctor(s), %d new slot(s)",
                    len(inserted),
                    sum(inserted.values()),
                )
            except Exception:
                await session.rollback()
                raise
    except Exception as e:
        logger.exception("Slot regeneration failed: %s", e)


async def _run_reminders() -> None:
    try:
        async with async_session_maker() as session:
            await reminder_runner.run(session)
    except Exception as e:
        logger.exception("Reminder run failed: %s", e)


async def _periodic(job: Callable[[], Awaitable[None]], interval_seconds: float) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        await job()


def _startup_log() -> None:
    logger.info("Loading .env from: %s (exists: %s)", _ENV_FILE, _ENV_FILE.exists())
    logger.info(
        "Slot regeneration: every %d h over %d week(s); reminders %s (%d h ahead, %d min window)",
        settings.slot_regeneration_interval_hours,
        settings.default_regeneration_weeks,
        "on" if settings.reminders_enabled else "off",
        settings.reminder_lead_hours,
        settings.reminder_window_minutes,
    )
    if not settings.email_enabled:
        logger.warning("SMTP not configured: confirmation and reminder e-mails are disabled")


@asynccontextmanager
async def lifespan(app: FastAPI):
    _startup_log()
    tasks: list[asyncio.Task] = []
    if settings.slot_regeneration_interval_hours > 0:
        # Startup: regenerate once, then on the configured period
        await _run_slot_regeneration()
        tasks.append(
            asyncio.create_task(
                _periodic(_run_slot_regeneration, settings.slot_regeneration_interval_hours * 3600)
            )
        )
    if settings.reminders_enabled:
        tasks.append(
            asyncio.create_task(_periodic(_run_reminders, settings.reminder_window_minutes * 60))
        )
    yield
    for task in tasks:
        task.cancel()
    for task in tasks:
        try:
            await task
        except asyncio.CancelledError:
            pass


app = FastAPI(
    title="Clinic Scheduling API",
    description="Doctor availability, slot generation and appointment booking",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(doctors.router, prefix="/api/v1")
app.include_router(slots.router, prefix="/api/v1")
app.include_router(appointments.router, prefix="/api/v1")
app.include_router(specializations.router, prefix="/api/v1")


def _cors_headers(origin: str | None) -> dict[str, str]:
    """Add CORS headers to error responses so the browser doesn't block them."""
    headers = {
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": "GET, POST, PUT, PATCH, DELETE, OPTIONS",
        "Access-Control-Allow-Headers": "Authorization, Content-Type",
    }
    if origin and origin in settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = origin
    elif settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = settings.cors_origins_list[0]
    return headers


@app.exception_handler(ClinicError)
async def clinic_error_handler(request: Request, exc: ClinicError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s: %s", type(exc).__name__, exc.detail, exc_info=exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
        headers=_cors_headers(request.headers.get("origin")),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return actual error in JSON; include CORS so 500 responses are not blocked by browser."""
    headers = _cors_headers(request.headers.get("origin"))
    if isinstance(exc, HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=headers,
        )
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": f"{type(exc).__name__}: {exc}"},
        headers=headers,
    )


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}
