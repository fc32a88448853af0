"""
Rating service: reviews left on completed bookings, in both directions.

Every change to a user->cleaner review refreshes the cleaner's average
rating, review count and five-star streak in the same transaction.
"""

import logging
from datetime import timedelta

from app import db
from app.errors import Conflict, InvalidArgument
from app.models import Booking, Cleaner, Rating, utcnow
from app.models.rating import RATING_DIRECTIONS, SUB_SCORES, USER_TO_CLEANER
from app.services.base import atomic, get_or_404
from app.services.bonus import BonusEngine

logger = logging.getLogger(__name__)

EDIT_WINDOW_DAYS = 7
EDITABLE_FIELDS = ('rating', 'comment') + SUB_SCORES


def _validate_score(name, value, required=False):
    if value is None:
        if required:
            raise InvalidArgument(f'{name} is required')
        return None
    if isinstance(value, bool):
        raise InvalidArgument(f'{name} must be between 1 and 5')
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise InvalidArgument(f'{name} must be between 1 and 5')
    if not 1 <= value <= 5:
        raise InvalidArgument(f'{name} must be between 1 and 5')
    return value


def _public_reviews(cleaner_id):
    return Rating.query.filter(
        Rating.to_cleaner_id == cleaner_id,
        Rating.direction == USER_TO_CLEANER,
        Rating.is_public.is_(True),
        Rating.flagged.is_(False),
    )


def _average(values):
    values = [v for v in values if v]
    return round(sum(values) / len(values), 2) if values else 0


class RatingService:

    def __init__(self, bonus=None):
        self.bonus = bonus or BonusEngine()

    def _refresh_cleaner(self, cleaner_id):
        """Recompute review aggregates and streak. Caller owns the transaction."""
        cleaner = db.session.get(Cleaner, cleaner_id)
        if cleaner is None:
            return None
        db.session.flush()
        reviews = _public_reviews(cleaner_id).all()
        cleaner.average_rating = _average(r.rating for r in reviews)
        cleaner.review_count = len(reviews)
        self.bonus.recount_streak(cleaner)
        return cleaner

    def create_rating(self, booking_id, direction, rating, comment=None, **sub_scores):
        """
        Rate a completed booking.

        Args:
            booking_id: Booking being rated
            direction (str): user_to_cleaner or cleaner_to_user
            rating (int): 1-5 stars
            comment (str): Optional free text
            **sub_scores: Optional punctuality, professionalism, quality,
                communication (1-5)

        Returns:
            Rating
        """
        if direction not in RATING_DIRECTIONS:
            raise InvalidArgument(f'Invalid rating direction: {direction}')
        unknown = set(sub_scores) - set(SUB_SCORES)
        if unknown:
            raise InvalidArgument(f'Unknown fields: {", ".join(sorted(unknown))}')

        rating = _validate_score('rating', rating, required=True)
        scores = {name: _validate_score(name, sub_scores.get(name)) for name in SUB_SCORES}

        with atomic():
            booking = get_or_404(Booking, booking_id, 'Booking')
            if booking.status != 'completed':
                raise InvalidArgument('Only completed bookings can be rated')

            existing = Rating.query.filter_by(booking_id=booking_id, direction=direction).first()
            if existing:
                raise Conflict('This booking has already been rated')

            record = Rating(
                booking_id=booking.id,
                direction=direction,
                rating=rating,
                comment=comment,
                **scores,
            )
            if direction == USER_TO_CLEANER:
                record.given_by_user_id = booking.user_id
                record.to_cleaner_id = booking.cleaner_id
            else:
                record.given_by_cleaner_id = booking.cleaner_id
                record.to_user_id = booking.user_id
            db.session.add(record)

            if direction == USER_TO_CLEANER:
                self._refresh_cleaner(booking.cleaner_id)

        logger.info('Rating %s (%d stars, %s) created for booking %s',
                    record.id, rating, direction, booking_id)
        return record

    def update_rating(self, rating_id, changes):
        """Edit a rating within 7 days of its creation"""
        unknown = set(changes or {}) - set(EDITABLE_FIELDS)
        if unknown:
            raise InvalidArgument(f'Fields cannot be edited: {", ".join(sorted(unknown))}')

        with atomic():
            record = get_or_404(Rating, rating_id, 'Rating')
            if utcnow() - record.created_at > timedelta(days=EDIT_WINDOW_DAYS):
                raise Conflict(f'Ratings can only be edited within {EDIT_WINDOW_DAYS} days')

            for field, value in (changes or {}).items():
                if field == 'comment':
                    record.comment = value
                else:
                    value = _validate_score(field, value, required=(field == 'rating'))
                    setattr(record, field, value)

            if record.direction == USER_TO_CLEANER:
                self._refresh_cleaner(record.to_cleaner_id)

        return record

    def flag_rating(self, rating_id, reason):
        """Hide a rating pending moderation"""
        if not reason:
            raise InvalidArgument('reason is required')

        with atomic():
            record = get_or_404(Rating, rating_id, 'Rating')
            record.flagged = True
            record.flag_reason = reason
            record.is_public = False
            if record.direction == USER_TO_CLEANER:
                self._refresh_cleaner(record.to_cleaner_id)

        logger.info('Rating %s flagged: %s', rating_id, reason)
        return record

    def approve_rating(self, rating_id):
        """Clear a flag and publish the rating again"""
        with atomic():
            record = get_or_404(Rating, rating_id, 'Rating')
            record.flagged = False
            record.flag_reason = None
            record.is_public = True
            if record.direction == USER_TO_CLEANER:
                self._refresh_cleaner(record.to_cleaner_id)
        return record

    def get_flagged_ratings(self, limit=50):
        return (
            Rating.query
            .filter(Rating.flagged.is_(True))
            .order_by(Rating.updated_at.desc())
            .limit(limit)
            .all()
        )

    def get_cleaner_ratings(self, cleaner_id, limit=50, offset=0):
        get_or_404(Cleaner, cleaner_id, 'Cleaner')
        query = _public_reviews(cleaner_id)
        ratings = (
            query.order_by(Rating.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return {
            'ratings': ratings,
            'total': query.count(),
            'limit': limit,
            'offset': offset,
        }

    def get_cleaner_rating_stats(self, cleaner_id):
        """Average, star distribution and sub-score averages of public reviews"""
        get_or_404(Cleaner, cleaner_id, 'Cleaner')
        reviews = _public_reviews(cleaner_id).all()

        stats = {
            'average': _average(r.rating for r in reviews),
            'total': len(reviews),
            'distribution': {stars: 0 for stars in (5, 4, 3, 2, 1)},
        }
        for review in reviews:
            stats['distribution'][review.rating] += 1
        for name in SUB_SCORES:
            stats[f'avg_{name}'] = _average(getattr(r, name) for r in reviews)
        return stats

