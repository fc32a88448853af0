"""
Booking lifecycle hooks: the booking service calls these when a booking
completes, is reviewed, is missed or is cancelled by both sides.
"""

import logging

from app.errors import InvalidArgument
from app.models import Booking, Cleaner, Rating, User
from app.models.rating import CLEANER_TO_USER, USER_TO_CLEANER
from app.services import get_engines
from app.services.base import atomic, get_or_404

logger = logging.getLogger(__name__)


def _consecutive_five_stars_received(user_id):
    streak = 0
    reviews = (
        Rating.query
        .filter_by(to_user_id=user_id, direction=CLEANER_TO_USER)
        .order_by(Rating.created_at.desc(), Rating.id.desc())
        .all()
    )
    for review in reviews:
        if review.rating != 5:
            break
        streak += 1
    return streak


def on_booking_completed(booking_id, engines=None):
    """
    Count a completed booking for both parties and check booking milestones.

    Returns:
        list: achievements unlocked
    """
    engines = engines or get_engines()

    with atomic():
        booking = get_or_404(Booking, booking_id, 'Booking')
        if booking.status != 'completed':
            raise InvalidArgument('Booking is not completed')

        cleaner = get_or_404(Cleaner, booking.cleaner_id, 'Cleaner')
        user = get_or_404(User, booking.user_id, 'User')

        previous_cleaner = {'total_bookings': cleaner.total_bookings}
        previous_user = {'total_bookings': user.total_bookings}
        cleaner.total_bookings += 1
        user.total_bookings += 1

    unlocked = engines.achievements.check_and_unlock(
        cleaner_id=cleaner.id,
        metrics={'total_bookings': cleaner.total_bookings, 'avg_rating': cleaner.average_rating},
        previous=dict(previous_cleaner, avg_rating=cleaner.average_rating),
    )
    unlocked += engines.achievements.check_and_unlock(
        user_id=user.id,
        metrics={'total_bookings': user.total_bookings},
        previous=previous_user,
    )
    return unlocked


def on_review_submitted(rating, engines=None):
    """
    React to a new review.

    A client review may complete a five-star streak and earn the cleaner a
    bonus. Low ratings are left to admins, who decide on a low_rating
    punishment.

    Returns:
        CleanerBonus or None
    """
    engines = engines or get_engines()

    if rating.direction == CLEANER_TO_USER:
        engines.achievements.check_and_unlock(
            user_id=rating.to_user_id,
            metrics={'consecutive_ratings': _consecutive_five_stars_received(rating.to_user_id)},
        )
        return None

    if rating.direction != USER_TO_CLEANER or not rating.to_cleaner_id:
        return None

    cleaner = get_or_404(Cleaner, rating.to_cleaner_id, 'Cleaner')
    engines.achievements.check_and_unlock(
        cleaner_id=cleaner.id,
        metrics={'consecutive_stars': cleaner.consecutive_five_stars},
    )

    bonus = engines.bonus.check_and_award(cleaner.id)
    if rating.rating <= 2:
        logger.info('Low rating (%d) for cleaner %s on booking %s',
                    rating.rating, cleaner.id, rating.booking_id)
    return bonus


def on_no_show(booking_id, engines=None):
    engines = engines or get_engines()
    booking = get_or_404(Booking, booking_id, 'Booking')
    return engines.punishment.apply(
        booking.cleaner_id,
        'no_show',
        f'No-show on booking {booking.id}',
        related={'booking_id': booking.id},
        admin_id='system',
    )


def on_mutual_cancellation(booking_id, engines=None):
    engines = engines or get_engines()
    booking = get_or_404(Booking, booking_id, 'Booking')
    return engines.punishment.apply(
        booking.cleaner_id,
        'cancellation_both',
        f'Booking {booking.id} cancelled by both parties',
        related={'booking_id': booking.id},
        admin_id='system',
    )
