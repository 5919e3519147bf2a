from fastapi import APIRouter

from app.schemas.common import ErrorResponse

# Availability, pricing and bookings
from app.api.v1.public.bookings import router as bookings_router
from app.api.v1.public.courts import router as courts_router

# Soft holds
from app.api.v1.public.reservations import router as reservations_router

# Waitlist
from app.api.v1.public.waitlist import router as waitlist_router

# User profile & notifications
from app.api.v1.public.me import router as me_router

api_router = APIRouter(
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    }
)

api_router.include_router(bookings_router)
api_router.include_router(courts_router)
api_router.include_router(reservations_router)
api_router.include_router(waitlist_router)
api_router.include_router(me_router)
