
from app.models.user import User
from app.models.court import Court, CourtType, CourtStatus
from app.models.equipment import Equipment
from app.models.coach import Coach
from app.models.pricing_rule import PricingRule, PricingRuleType
from app.models.booking import Booking, BookingEquipment, BookingStatus
from app.models.reservation import Reservation, ReservationStatus
from app.models.waitlist import WaitlistEntry, WaitlistStatus
from app.models.notification import Notification
