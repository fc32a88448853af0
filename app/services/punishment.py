"""
Punishment engine: reputation penalties and temporary blocks.

Lifecycle of a punishment:

    ACTIVE --expire--> EXPIRED    block ran out, deducted points stay lost
    ACTIVE --reverse-> REVERSED   admin removal, points restored (max 100)
    EXPIRED --reverse-> REVERSED
"""

import logging
from datetime import timedelta

from app import db
from app.errors import Conflict, InvalidArgument
from app.models import Cleaner, CleanerPunishment, PunishmentState, utcnow
from app.models.cleaner import MAX_REPUTATION_POINTS
from app.services.base import atomic, get_or_404

logger = logging.getLogger(__name__)

NO_SHOW = 'no_show'
CANCELLATION_BOTH = 'cancellation_both'
LOW_RATING = 'low_rating'

PUNISHMENT_CONFIG = {
    NO_SHOW: {
        'points_deducted': 25,
        'block_days': 2,
        'description': 'Penalty for not showing up to a booking',
    },
    CANCELLATION_BOTH: {
        'points_deducted': 25,
        'block_days': 2,
        'description': 'Penalty for repeated cancellations',
    },
    LOW_RATING: {
        'points_deducted': 15,
        'block_days': 1,
        'description': 'Penalty for repeated low ratings',
    },
}

EVENT_EXPIRE = 'expire'
EVENT_REVERSE = 'reverse'

_TRANSITIONS = {
    (PunishmentState.ACTIVE, EVENT_EXPIRE): PunishmentState.EXPIRED,
    (PunishmentState.ACTIVE, EVENT_REVERSE): PunishmentState.REVERSED,
    (PunishmentState.EXPIRED, EVENT_REVERSE): PunishmentState.REVERSED,
}


def transition(state, event):
    """Next state for `event`, Conflict when the event is illegal in `state`"""
    state = PunishmentState(state)
    try:
        return _TRANSITIONS[(state, event)]
    except KeyError:
        raise Conflict(f'Cannot {event} a punishment that is {state.value}')


def restores_points(old_state, new_state):
    """Only an admin reversal gives the deducted points back"""
    return new_state == PunishmentState.REVERSED and old_state != PunishmentState.REVERSED


class PunishmentEngine:

    def __init__(self, notifier=None):
        self.notifier = notifier

    def apply(self, cleaner_id, type, reason, related=None, by_admin=False, admin_id=None):
        """
        Apply a punishment to a cleaner.

        Args:
            cleaner_id: Cleaner being punished
            type (str): no_show, cancellation_both or low_rating
            reason (str): Human readable reason
            related (dict): Optional booking_id / dispute_id
            by_admin (bool): Issued by an admin rather than the system
            admin_id: Issuing admin

        Returns:
            dict: {'punishment': CleanerPunishment, 'cleaner': Cleaner}
        """
        config = PUNISHMENT_CONFIG.get(type)
        if config is None:
            raise InvalidArgument(f'Invalid punishment type: {type}')
        if not reason:
            raise InvalidArgument('reason is required')
        related = related or {}

        with atomic():
            cleaner = get_or_404(Cleaner, cleaner_id, 'Cleaner')
            now = utcnow()
            blocked_until = now + timedelta(days=config['block_days'])

            punishment = CleanerPunishment(
                cleaner_id=cleaner.id,
                type=type,
                reason=reason,
                description=f"{config['description']}. Reason: {reason}",
                points_deducted=config['points_deducted'],
                state=PunishmentState.ACTIVE.value,
                blocked_until=blocked_until,
                related_booking_id=related.get('booking_id'),
                related_dispute_id=related.get('dispute_id'),
                given_by_admin=bool(by_admin),
                admin_id=admin_id,
            )
            punishment.created_at = now
            db.session.add(punishment)

            cleaner.reputation_points = max(0, cleaner.reputation_points - config['points_deducted'])
            if cleaner.reputation_points == 0:
                cleaner.status = 'suspended'

        logger.info('Punishment %s (%s, -%d pts) applied to cleaner %s; reputation now %d',
                    punishment.id, type, config['points_deducted'], cleaner_id,
                    cleaner.reputation_points)

        if self.notifier:
            self.notifier.notify(
                cleaner_id,
                'You received a penalty',
                f"{config['points_deducted']} reputation points were deducted. Reason: {reason}. "
                f"Blocked until {blocked_until.strftime('%d/%m/%Y %H:%M')} UTC.",
                'punishment_applied',
                data={'punishment_id': punishment.id},
            )

        return {'punishment': punishment, 'cleaner': cleaner}

    def remove(self, punishment_id, admin_id, reason='Removed by admin'):
        """
        Reverse a punishment: unblock immediately and restore its points.

        Returns:
            CleanerPunishment
        """
        with atomic():
            punishment = get_or_404(CleanerPunishment, punishment_id, 'Punishment')
            old_state = PunishmentState(punishment.state)
            new_state = transition(old_state, EVENT_REVERSE)

            now = utcnow()
            punishment.state = new_state.value
            punishment.blocked_until = now
            punishment.removed_by = admin_id
            punishment.removal_reason = reason
            punishment.removed_at = now

            cleaner = punishment.cleaner
            if restores_points(old_state, new_state):
                cleaner.reputation_points = min(
                    MAX_REPUTATION_POINTS,
                    cleaner.reputation_points + punishment.points_deducted,
                )
            self._reevaluate_status(cleaner)

        logger.info('Punishment %s reversed by %s; cleaner %s back to %d pts',
                    punishment_id, admin_id, punishment.cleaner_id, cleaner.reputation_points)

        if self.notifier:
            self.notifier.notify(
                punishment.cleaner_id,
                'Your penalty was removed',
                f'{reason}. Points restored: {punishment.points_deducted}.',
                'punishment_removed',
                data={'punishment_id': punishment.id},
            )

        return punishment

    @staticmethod
    def _reevaluate_status(cleaner):
        """Status tracks suspension only; blocks are read from active punishments"""
        if cleaner.reputation_points == 0:
            cleaner.status = 'suspended'
        elif cleaner.status == 'suspended':
            cleaner.status = 'active'

    def get_active_punishments(self, cleaner_id, now=None):
        """Active punishments whose block is still running, newest first"""
        now = now or utcnow()
        return (
            CleanerPunishment.query
            .filter(
                CleanerPunishment.cleaner_id == cleaner_id,
                CleanerPunishment.state == PunishmentState.ACTIVE.value,
                CleanerPunishment.blocked_until > now,
            )
            .order_by(CleanerPunishment.created_at.desc())
            .all()
        )

    def check_blocked(self, cleaner_id, now=None):
        """
        Whether a cleaner is currently blocked from taking bookings.

        Returns:
            dict: is_blocked plus, when blocked, until/reason/punishments
        """
        get_or_404(Cleaner, cleaner_id, 'Cleaner')
        active = self.get_active_punishments(cleaner_id, now=now)

        if not active:
            return {'is_blocked': False, 'punishments': []}

        latest = active[0]
        until = max(p.blocked_until for p in active)
        return {
            'is_blocked': True,
            'until': until,
            'reason': latest.reason,
            'type': latest.type,
            'punishments': active,
        }

    def get_punishment_history(self, cleaner_id, limit=50):
        get_or_404(Cleaner, cleaner_id, 'Cleaner')
        now = utcnow()
        punishments = (
            CleanerPunishment.query
            .filter_by(cleaner_id=cleaner_id)
            .order_by(CleanerPunishment.created_at.desc())
            .limit(limit)
            .all()
        )
        return {
            'total': len(punishments),
            'active': sum(1 for p in punishments if p.is_blocking(now)),
            'punishments': punishments,
        }

    def get_all_active_punishments(self, limit=100):
        """Every running block on the platform, soonest to end first"""
        return (
            CleanerPunishment.query
            .filter(
                CleanerPunishment.state == PunishmentState.ACTIVE.value,
                CleanerPunishment.blocked_until > utcnow(),
            )
            .order_by(CleanerPunishment.blocked_until.asc())
            .limit(limit)
            .all()
        )

    def expire_punishments(self, cleaner_id=None, now=None):
        """
        Passive expiry sweep: ACTIVE punishments past their block become
        EXPIRED. Deducted points are not given back.

        Returns:
            int: number of punishments expired
        """
        now = now or utcnow()
        new_state = transition(PunishmentState.ACTIVE, EVENT_EXPIRE)

        with atomic():
            query = CleanerPunishment.query.filter(
                CleanerPunishment.state == PunishmentState.ACTIVE.value,
                CleanerPunishment.blocked_until <= now,
            )
            if cleaner_id:
                query = query.filter(CleanerPunishment.cleaner_id == cleaner_id)
            updated = query.update({'state': new_state.value}, synchronize_session=False)

        db.session.expire_all()
        if updated:
            logger.info('Expired %d punishments', updated)
        return updated
