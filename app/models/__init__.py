"""SQLAlchemy models package"""
from .base import BaseModel, generate_uuid, utcnow
from .cleaner import Cleaner, PayoutDetails
from .user import User
from .booking import Booking
from .rating import Rating
from .metrics import CleanerMetrics
from .bonus import CleanerBonus
from .punishment import CleanerPunishment, PunishmentState
from .achievement import Achievement
from .notification import Notification

__all__ = [
    'BaseModel',
    'generate_uuid',
    'utcnow',
    'Cleaner',
    'PayoutDetails',
    'User',
    'Booking',
    'Rating',
    'CleanerMetrics',
    'CleanerBonus',
    'CleanerPunishment',
    'PunishmentState',
    'Achievement',
    'Notification',
]
