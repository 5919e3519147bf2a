
from app.schemas.common import PaginatedResponse, ErrorResponse
from app.schemas.user import User, UserUpdate
from app.schemas.availability import (
    EquipmentItem, AvailabilityRequest, AvailabilityResult,
    CourtSlot, CourtAvailabilityResponse,
)
from app.schemas.pricing import (
    TimeBasedConditions, DayBasedConditions, CourtTypeConditions,
    SeasonalConditions, CustomConditions, parse_conditions,
    AppliedRule, PricingBreakdown, PricePreviewRequest,
)
from app.schemas.booking import (
    Booking, BookingCreate, BookingUpdate, BookingPricing,
    BookingEquipmentResponse, BookingCourtSummary,
)
from app.schemas.reservation import (
    Reservation, ReservationCreate, ReservationResponse, ReservationReleaseResponse,
)
from app.schemas.waitlist import WaitlistEntry, WaitlistCreate, WaitlistSlot
from app.schemas.notification import Notification
