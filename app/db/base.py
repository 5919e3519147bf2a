
from app.db.session import Base
from app.models.user import User
from app.models.court import Court
from app.models.equipment import Equipment
from app.models.coach import Coach
from app.models.pricing_rule import PricingRule
from app.models.booking import Booking, BookingEquipment
from app.models.reservation import Reservation
from app.models.waitlist import WaitlistEntry
from app.models.notification import Notification
