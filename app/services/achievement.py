"""
Achievement engine: tiered badges (level 1-3) for clients and cleaners.

Counter milestones fire when a counter crosses the milestone between the
previous and the new snapshot. Without a previous value the counter is
assumed to have just moved by one, unless the achievement is already held.
Condition achievements unlock whenever their condition holds for an actor
that lacks them, and level up when the condition turns from false to true.
"""

import logging

from sqlalchemy import func

from app import db
from app.errors import IncentiveError, InvalidArgument
from app.models import Achievement, Cleaner, User, utcnow
from app.models.achievement import ACTOR_CLEANER, ACTOR_TYPES, ACTOR_USER, MAX_ACHIEVEMENT_LEVEL
from app.services.base import atomic, get_or_404

logger = logging.getLogger(__name__)

MAX_ACHIEVEMENT_BONUS_PERCENT = 30

USER_ACHIEVEMENTS = {
    'first_booking': {
        'name': 'First Booking',
        'description': 'You made your first booking on the platform!',
        'icon': '🎉',
        'bonus_points': 5,
    },
    'five_bookings': {
        'name': '5 Bookings',
        'description': 'Five cleanings booked. You are a loyal client!',
        'icon': '⭐',
        'bonus_points': 10,
    },
    'fifty_bookings': {
        'name': '50 Bookings',
        'description': 'Congratulations on 50 bookings.',
        'icon': '🏆',
        'bonus_points': 25,
    },
    'hundred_bookings': {
        'name': '100 Bookings',
        'description': 'Hundredth booking unlocked. You are a power user.',
        'icon': '👑',
        'bonus_points': 50,
    },
    'perfect_rating': {
        'name': 'Perfect Rating',
        'description': 'Five consecutive 5-star ratings!',
        'icon': '✨',
        'bonus_points': 15,
    },
    'trusted_user': {
        'name': 'Trusted User',
        'description': 'Kept reputation above 90 for 30 days.',
        'icon': '🤝',
        'bonus_points': 20,
    },
    'bonus_hunter': {
        'name': 'Bonus Hunter',
        'description': 'Earned 10 bonuses in a single month.',
        'icon': '🎁',
        'bonus_points': 25,
    },
    'power_user': {
        'name': 'Power User',
        'description': 'Reached the top level on every metric.',
        'icon': '⚡',
        'bonus_points': 50,
    },
}

CLEANER_ACHIEVEMENTS = {
    'first_booking': {
        'name': 'First Client',
        'description': 'You completed your first booking!',
        'icon': '🎉',
        'bonus_points': 10,
        'bonus_earnings': 0.05,
    },
    'five_star_master': {
        'name': 'Five Star Master',
        'description': 'Ten consecutive 5-star reviews!',
        'icon': '⭐',
        'bonus_points': 20,
        'bonus_earnings': 0.10,
    },
    'speed_demon': {
        'name': 'Speed Demon',
        'description': 'Answered within 5 minutes for 30 days in a row.',
        'icon': '🚀',
        'bonus_points': 15,
        'bonus_earnings': 0.05,
    },
    'completion_master': {
        'name': 'Completion Master',
        'description': '98% booking completion rate.',
        'icon': '✅',
        'bonus_points': 25,
        'bonus_earnings': 0.15,
    },
    'top_performer': {
        'name': 'Top Performer',
        'description': 'Top 5% of cleaners on the platform!',
        'icon': '🏆',
        'bonus_points': 50,
        'bonus_earnings': 0.25,
    },
    'master_cleaner': {
        'name': 'Master Cleaner',
        'description': '100 bookings with a 4.8+ star average.',
        'icon': '👑',
        'bonus_points': 50,
        'bonus_earnings': 0.30,
    },
    'reputation_guardian': {
        'name': 'Reputation Guardian',
        'description': 'Kept 100 reputation points for 60 days.',
        'icon': '🛡️',
        'bonus_points': 30,
        'bonus_earnings': 0.10,
    },
    'specialist': {
        'name': 'Specialist',
        'description': 'Offers 5 different service types.',
        'icon': '🎯',
        'bonus_points': 20,
        'bonus_earnings': 0.08,
    },
}

CATALOGS = {
    ACTOR_USER: USER_ACHIEVEMENTS,
    ACTOR_CLEANER: CLEANER_ACHIEVEMENTS,
}

# (metric key, milestone, achievement type)
USER_MILESTONES = (
    ('total_bookings', 1, 'first_booking'),
    ('total_bookings', 5, 'five_bookings'),
    ('total_bookings', 50, 'fifty_bookings'),
    ('total_bookings', 100, 'hundred_bookings'),
    ('consecutive_ratings', 5, 'perfect_rating'),
)

CLEANER_MILESTONES = (
    ('total_bookings', 1, 'first_booking'),
    ('consecutive_stars', 10, 'five_star_master'),
)

SPEED_DEMON_SECONDS = 300


def _has(metrics, *keys):
    return all(metrics.get(k) is not None for k in keys)


def _trusted_user(m):
    return _has(m, 'reputation_points', 'days_above_90') and \
        m['reputation_points'] > 90 and m['days_above_90'] >= 30


def _speed_demon(m):
    return _has(m, 'avg_response_time', 'days_maintained') and \
        m['avg_response_time'] < SPEED_DEMON_SECONDS and m['days_maintained'] >= 30


def _completion_master(m):
    return _has(m, 'completion_rate') and m['completion_rate'] >= 0.98


def _top_performer(m):
    return bool(m.get('top_performer'))


def _master_cleaner(m):
    return _has(m, 'total_bookings', 'avg_rating') and \
        m['total_bookings'] >= 100 and m['avg_rating'] >= 4.8


def _specialist(m):
    return _has(m, 'service_types_offered') and m['service_types_offered'] >= 5


USER_CONDITIONS = (
    ('trusted_user', _trusted_user),
)

CLEANER_CONDITIONS = (
    ('speed_demon', _speed_demon),
    ('completion_master', _completion_master),
    ('top_performer', _top_performer),
    ('master_cleaner', _master_cleaner),
    ('specialist', _specialist),
)

RULES = {
    ACTOR_USER: (USER_MILESTONES, USER_CONDITIONS),
    ACTOR_CLEANER: (CLEANER_MILESTONES, CLEANER_CONDITIONS),
}


def crossed(previous, new, milestone):
    """True when a counter moved from below `milestone` to at least `milestone`"""
    return previous < milestone <= new


class AchievementEngine:

    def __init__(self, notifier=None):
        self.notifier = notifier

    def _definition(self, actor_type, type):
        if actor_type not in ACTOR_TYPES:
            raise InvalidArgument(f'Invalid actor type: {actor_type}')
        definition = CATALOGS[actor_type].get(type)
        if definition is None:
            raise InvalidArgument(f'Invalid achievement type: {type}')
        return definition

    def _find(self, actor_type, actor_id, type):
        return Achievement.query.filter_by(
            actor_type=actor_type, actor_id=actor_id, type=type
        ).first()

    def _unlock(self, actor_type, actor_id, type, data=None):
        """Create or level up an achievement. Caller owns the transaction."""
        definition = self._definition(actor_type, type)
        data = data or {}

        achievement = self._find(actor_type, actor_id, type)
        if achievement:
            achievement.level = min(MAX_ACHIEVEMENT_LEVEL, achievement.level + 1)
            achievement.progress = 0
            achievement.bonus_points = definition['bonus_points']
            achievement.bonus_earnings = definition.get('bonus_earnings', 0.0)
            return achievement

        achievement = Achievement(
            actor_type=actor_type,
            actor_id=actor_id,
            type=type,
            name=definition['name'],
            description=definition['description'],
            icon=definition['icon'],
            level=1,
            progress=0,
            bonus_points=definition['bonus_points'],
            bonus_earnings=definition.get('bonus_earnings', 0.0),
            awarded_for=data.get('awarded_for', 'system'),
            awarded_by=data.get('awarded_by', 'system'),
            unlocked_at=utcnow(),
        )
        db.session.add(achievement)
        return achievement

    def unlock(self, actor_type, actor_id, type, data=None):
        """
        Unlock an achievement, or raise its level (max 3) when already held.

        Args:
            actor_type (str): 'user' or 'cleaner'
            actor_id: Client or cleaner id
            type (str): Catalog key
            data (dict): Optional awarded_for / awarded_by

        Returns:
            Achievement
        """
        with atomic():
            achievement = self._unlock(actor_type, actor_id, type, data)

        logger.info('Achievement %s unlocked for %s %s (level %d)',
                    type, actor_type, actor_id, achievement.level)
        self._announce(achievement)
        return achievement

    def _announce(self, achievement):
        if self.notifier:
            self.notifier.notify(
                achievement.actor_id,
                f'Achievement unlocked: {achievement.name}',
                f'{achievement.description} (level {achievement.level})',
                'achievement_unlocked',
                actor_type=achievement.actor_type,
                data={'achievement_id': achievement.id, 'type': achievement.type},
            )

    def _due(self, actor_type, actor_id, metrics, previous):
        """Achievement types whose rule fires for this snapshot"""
        milestones, conditions = RULES[actor_type]
        due = []

        for key, milestone, type in milestones:
            new = metrics.get(key)
            if new is None:
                continue
            old = previous.get(key) if previous else None
            if old is None:
                if self._find(actor_type, actor_id, type) is not None:
                    continue
                old = new - 1
            if crossed(old, new, milestone):
                due.append(type)

        for type, condition in conditions:
            if not condition(metrics):
                continue
            # held types level up only on a false -> true edge
            if self._find(actor_type, actor_id, type) is None:
                due.append(type)
            elif previous is not None and not condition(previous):
                due.append(type)

        return due

    def check_and_unlock(self, user_id=None, cleaner_id=None, metrics=None, previous=None):
        """
        Evaluate every rule against a metrics snapshot and unlock what fired.

        Args:
            user_id: Client to evaluate against the user rules
            cleaner_id: Cleaner to evaluate against the cleaner rules
            metrics (dict): New snapshot (total_bookings, completion_rate, ...)
            previous (dict): Snapshot before the change, if known

        Returns:
            list: Achievement records unlocked or levelled up
        """
        metrics = metrics or {}
        actors = []
        if user_id:
            actors.append((ACTOR_USER, user_id))
        if cleaner_id:
            actors.append((ACTOR_CLEANER, cleaner_id))

        unlocked = []
        try:
            with atomic():
                for actor_type, actor_id in actors:
                    for type in self._due(actor_type, actor_id, metrics, previous):
                        data = {'awarded_for': f'{type}_ranking'} if type == 'top_performer' else None
                        unlocked.append(self._unlock(actor_type, actor_id, type, data))
        except IncentiveError:
            logger.exception('Achievement check failed for user=%s cleaner=%s', user_id, cleaner_id)
            return []

        for achievement in unlocked:
            logger.info('Achievement %s unlocked for %s %s (level %d)',
                        achievement.type, achievement.actor_type, achievement.actor_id,
                        achievement.level)
            self._announce(achievement)
        return unlocked

    def update_progress(self, achievement_id, progress):
        """Set progress (0-100); reaching 100 raises the level and resets progress"""
        try:
            progress = int(progress)
        except (TypeError, ValueError):
            raise InvalidArgument('progress must be an integer')

        with atomic():
            achievement = get_or_404(Achievement, achievement_id, 'Achievement')
            if progress >= 100:
                achievement.level = min(MAX_ACHIEVEMENT_LEVEL, achievement.level + 1)
                achievement.progress = 0
            else:
                achievement.progress = max(0, progress)

        return achievement

    def get_achievements(self, actor_type, actor_id):
        if actor_type not in ACTOR_TYPES:
            raise InvalidArgument(f'Invalid actor type: {actor_type}')
        return (
            Achievement.query
            .filter_by(actor_type=actor_type, actor_id=actor_id)
            .order_by(Achievement.unlocked_at.desc(), Achievement.type.asc())
            .all()
        )

    def get_cleaner_main_badges(self, cleaner_id, limit=5):
        """Highest-level cleaner achievements, most recent first within a level"""
        achievements = (
            Achievement.query
            .filter_by(actor_type=ACTOR_CLEANER, actor_id=cleaner_id)
            .order_by(Achievement.level.desc(), Achievement.unlocked_at.desc())
            .limit(limit)
            .all()
        )
        return [
            {
                'name': a.name,
                'icon': a.icon,
                'level': a.level,
                'type': a.type,
                'bonus_earnings': a.bonus_earnings,
            }
            for a in achievements
        ]

    def calculate_total_achievement_bonus(self, cleaner_id):
        """Earnings bonus in percent granted by a cleaner's achievements, max 30"""
        total = db.session.query(
            func.coalesce(func.sum(Achievement.bonus_earnings), 0.0)
        ).filter(
            Achievement.actor_type == ACTOR_CLEANER,
            Achievement.actor_id == cleaner_id,
        ).scalar()
        return min(round(float(total) * 100, 2), MAX_ACHIEVEMENT_BONUS_PERCENT)

    def get_achievement_ranking(self, actor_type, limit=10):
        """Actors with the most achievements, with their top three badges"""
        if actor_type not in ACTOR_TYPES:
            raise InvalidArgument(f'Invalid actor type: {actor_type}')
        model = Cleaner if actor_type == ACTOR_CLEANER else User

        counts = (
            db.session.query(Achievement.actor_id, func.count(Achievement.id).label('total'))
            .filter(Achievement.actor_type == actor_type)
            .group_by(Achievement.actor_id)
            .order_by(func.count(Achievement.id).desc(), Achievement.actor_id.asc())
            .limit(limit)
            .all()
        )

        ranking = []
        for actor_id, total in counts:
            actor = db.session.get(model, actor_id)
            achievements = (
                Achievement.query
                .filter_by(actor_type=actor_type, actor_id=actor_id)
                .order_by(Achievement.level.desc())
                .all()
            )
            entry = {
                'id': actor_id,
                'name': actor.name if actor else None,
                'achievement_count': total,
                'badges': [a.to_dict() for a in achievements[:3]],
            }
            if actor_type == ACTOR_CLEANER:
                entry['total_bonus_earnings'] = round(sum(a.bonus_earnings for a in achievements), 4)
            ranking.append(entry)
        return ranking
