"""
Bonus engine: ten five-star reviews in a row earn a cleaner a 100.00 bonus
and the TOP CLEANER badge for 30 days.
"""

import logging
import math
from datetime import timedelta
from decimal import Decimal

from sqlalchemy import and_, func, or_

from app import db
from app.errors import Conflict, MissingPayoutDetails, Unexpected
from app.models import Cleaner, CleanerBonus, Rating, utcnow
from app.models.bonus import BONUS_PENDING, BONUS_PROCESSING, BONUS_TRANSFERRED, REASON_FIVE_STAR_STREAK
from app.models.rating import USER_TO_CLEANER
from app.services.base import atomic, get_or_404
from app.services.payouts import StripePayoutGateway
from app.utils.helpers import format_currency

logger = logging.getLogger(__name__)

BONUS_AMOUNT = Decimal('100.00')
STREAK_LENGTH = 10
BADGE_DAYS = 30


class BonusEngine:

    def __init__(self, notifier=None, gateway=None):
        self.notifier = notifier
        self.gateway = gateway or StripePayoutGateway()

    def _recent_reviews(self, cleaner, limit=STREAK_LENGTH):
        """Newest user->cleaner reviews not yet consumed by a bonus"""
        query = Rating.query.filter(
            Rating.to_cleaner_id == cleaner.id,
            Rating.direction == USER_TO_CLEANER,
        )
        if cleaner.streak_reset_at is not None:
            newer = Rating.created_at > cleaner.streak_reset_at
            if cleaner.streak_reset_review_id is not None:
                newer = or_(newer, and_(Rating.created_at == cleaner.streak_reset_at,
                                        Rating.id > cleaner.streak_reset_review_id))
            query = query.filter(newer)
        query = query.order_by(Rating.created_at.desc(), Rating.id.desc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def recount_streak(self, cleaner):
        """
        Recompute the consecutive five-star counter from review history.
        Caller owns the transaction.
        """
        streak = 0
        for review in self._recent_reviews(cleaner, limit=None):
            if review.rating != 5:
                break
            streak += 1
        cleaner.consecutive_five_stars = streak
        return streak

    def check_and_award(self, cleaner_id):
        """
        Award a bonus when the 10 most recent unconsumed reviews are all 5 stars.

        Returns:
            CleanerBonus or None
        """
        with atomic():
            cleaner = get_or_404(Cleaner, cleaner_id, 'Cleaner')
            reviews = self._recent_reviews(cleaner)

            if len(reviews) < STREAK_LENGTH or any(r.rating != 5 for r in reviews):
                self.recount_streak(cleaner)
                return None

            now = utcnow()
            bonus = CleanerBonus(
                cleaner_id=cleaner.id,
                amount=BONUS_AMOUNT,
                reason=REASON_FIVE_STAR_STREAK,
                status=BONUS_PENDING,
            )
            db.session.add(bonus)

            cleaner.top_cleaner_badge = True
            cleaner.top_cleaner_until = now + timedelta(days=BADGE_DAYS)
            cleaner.total_bonus_earned = (cleaner.total_bonus_earned or Decimal('0')) + BONUS_AMOUNT
            cleaner.consecutive_five_stars = 0
            cleaner.streak_reset_at = reviews[0].created_at
            cleaner.streak_reset_review_id = reviews[0].id
            cleaner.last_bonus_at = now

        logger.info('Bonus %s of %s awarded to cleaner %s', bonus.id, BONUS_AMOUNT, cleaner_id)

        if self.notifier:
            self.notifier.notify(
                cleaner_id,
                'You earned a bonus!',
                f'Ten five-star reviews in a row: {format_currency(BONUS_AMOUNT)} bonus and the TOP CLEANER '
                f'badge for {BADGE_DAYS} days.',
                'bonus_awarded',
                data={'bonus_id': bonus.id, 'amount': str(BONUS_AMOUNT)},
            )

        return bonus

    def _move(self, bonus_id, from_status, values):
        """Guarded status change, Conflict when the bonus left `from_status`"""
        with atomic():
            updated = CleanerBonus.query.filter_by(id=bonus_id, status=from_status).update(
                values, synchronize_session=False,
            )
            if updated != 1:
                raise Conflict('Bonus has already been transferred')

    def transfer(self, bonus_id):
        """
        Pay out a pending bonus to the cleaner's PIX key or bank account.

        The bonus is claimed (pending -> processing) before the gateway is
        called, so a concurrent transfer of the same bonus gets a Conflict
        instead of a second payout. A declined or failed payout releases the
        claim.

        Returns:
            bool: True when transferred, False when the gateway declined
        """
        bonus = get_or_404(CleanerBonus, bonus_id, 'Bonus')
        if bonus.status != BONUS_PENDING:
            raise Conflict('Bonus has already been transferred')

        details = bonus.cleaner.payout_details
        if details is None or details.destination is None:
            raise MissingPayoutDetails('No PIX key or bank account configured')

        cleaner_id = bonus.cleaner_id
        amount = bonus.amount
        method = details.method
        self._move(bonus_id, BONUS_PENDING, {'status': BONUS_PROCESSING})

        try:
            sent = self.gateway.transfer(details, amount, metadata={'bonus_id': bonus_id},
                                         idempotency_key=f'bonus-{bonus_id}')
        except Exception as e:
            logger.exception('Payout gateway failed for bonus %s', bonus_id)
            self._move(bonus_id, BONUS_PROCESSING, {'status': BONUS_PENDING})
            raise Unexpected('Payout gateway failure') from e

        if not sent:
            logger.warning('Payout gateway declined bonus %s', bonus_id)
            self._move(bonus_id, BONUS_PROCESSING, {'status': BONUS_PENDING})
            return False

        self._move(bonus_id, BONUS_PROCESSING, {'status': BONUS_TRANSFERRED, 'transferred_at': utcnow()})

        db.session.expire(bonus)
        logger.info('Bonus %s of %s transferred to cleaner %s', bonus_id, amount, cleaner_id)

        if self.notifier:
            self.notifier.notify(
                cleaner_id,
                'Bonus transferred',
                f'{format_currency(amount)} has been sent to your {method.replace("_", " ")}.',
                'bonus_transferred',
                data={'bonus_id': bonus_id, 'amount': str(amount)},
            )
        return True

    def get_bonus_history(self, cleaner_id):
        get_or_404(Cleaner, cleaner_id, 'Cleaner')
        return (
            CleanerBonus.query
            .filter_by(cleaner_id=cleaner_id)
            .order_by(CleanerBonus.created_at.desc())
            .all()
        )

    def get_total_bonus_earned(self, cleaner_id):
        """Sum of transferred bonuses only; pending grants are not earned yet"""
        total = db.session.query(
            func.coalesce(func.sum(CleanerBonus.amount), 0)
        ).filter(
            CleanerBonus.cleaner_id == cleaner_id,
            CleanerBonus.status == BONUS_TRANSFERRED,
        ).scalar()
        return Decimal(total or 0).quantize(Decimal('0.01'))

    def get_badge(self, cleaner_id):
        """TOP CLEANER badge state"""
        cleaner = get_or_404(Cleaner, cleaner_id, 'Cleaner')
        now = utcnow()
        active = bool(cleaner.top_cleaner_badge and cleaner.top_cleaner_until
                      and cleaner.top_cleaner_until > now)

        days_remaining = 0
        if active:
            days_remaining = math.ceil((cleaner.top_cleaner_until - now).total_seconds() / 86400)

        return {
            'active': active,
            'expires_at': cleaner.top_cleaner_until.isoformat() if cleaner.top_cleaner_until else None,
            'days_remaining': days_remaining,
            'total_bonus_earned': float(cleaner.total_bonus_earned or 0),
            'last_bonus_date': cleaner.last_bonus_at.isoformat() if cleaner.last_bonus_at else None,
        }

    def expire_top_cleaner_badges(self, now=None):
        """Clear badges whose 30 days have run out. Returns the count cleared."""
        now = now or utcnow()
        with atomic():
            expired = Cleaner.query.filter(
                Cleaner.top_cleaner_badge.is_(True),
                Cleaner.top_cleaner_until <= now,
            ).all()
            for cleaner in expired:
                cleaner.top_cleaner_badge = False

        if expired:
            logger.info('Expired %d TOP CLEANER badges', len(expired))
        return len(expired)
