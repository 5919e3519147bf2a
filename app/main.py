import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from app.db.init_db import create_database
from app.db.base import Base
from app.db.session import engine, SessionLocal
from app.core.config import settings
from app.api.v1.router import api_router
from app.services.exceptions import BookingServiceError

logger = logging.getLogger(__name__)


def run_housekeeping() -> None:
    """One pass of the periodic sweeps: finish elapsed bookings, expire stale waitlist entries."""
    from app.utils.timeslots import complete_past_bookings, expire_waitlist_entries

    db = SessionLocal()
    try:
        completed = complete_past_bookings(db)
        if completed:
            logger.info("Marked %d past booking(s) completed.", completed)
        expired = expire_waitlist_entries(db)
        if expired:
            logger.info("Expired %d waitlist entr(y/ies).", expired)
    finally:
        db.close()


async def _housekeeping_loop() -> None:
    """Background task: run housekeeping every HOUSEKEEPING_INTERVAL_SECONDS."""
    while True:
        try:
            run_housekeeping()
        except Exception:
            logger.exception("Error during housekeeping.")
        await asyncio.sleep(settings.HOUSEKEEPING_INTERVAL_SECONDS)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: Ensure DB exists and create tables
    create_database()
    Base.metadata.create_all(bind=engine)

    # Run an immediate sweep, then keep running in the background
    housekeeping_task = asyncio.create_task(_housekeeping_loop())
    yield

    # Shutdown: cancel background task
    housekeeping_task.cancel()
    try:
        await housekeeping_task
    except asyncio.CancelledError:
        pass


from fastapi.middleware.cors import CORSMiddleware

app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

# Set all CORS enabled origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BookingServiceError)
async def booking_service_error_handler(request: Request, exc: BookingServiceError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(api_router, prefix=settings.API_V1_STR)

@app.get("/")
def read_root():
    return {"Hello": settings.PROJECT_NAME}
