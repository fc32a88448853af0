"""
Ranking engine: monthly, global and regional leaderboards and grade cards
"""

import logging
import math

from sqlalchemy import func

from app.models import Cleaner, CleanerMetrics, utcnow
from app.models.cleaner import RANKABLE_STATUSES
from app.services.base import atomic, get_or_404, validate_period

logger = logging.getLogger(__name__)

TOP_PERCENTILE_SHARE = 0.05

GRADE_THRESHOLDS = (
    (9.0, 'A'),
    (8.0, 'B'),
    (7.0, 'C'),
    (6.0, 'D'),
)


def grade_for_score(score):
    """Letter grade for a 0-10 agility score"""
    score = score or 0
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return 'F'


def reputation_label(points):
    if points >= 80:
        return 'excellent'
    if points >= 60:
        return 'good'
    return 'needs_improvement'


def top_percentile_count(total):
    """How many ranked rows fall in the top 5% (at least one)"""
    return max(1, math.ceil(total * TOP_PERCENTILE_SHARE))


class RankingEngine:

    def calculate_monthly_ranking(self, year, month):
        """
        Rank every metrics row of a period and flag the top 5%.

        Order: agility score desc, cleaner average rating desc, cleaner id.

        Returns:
            dict: year, month, total_cleaners, top_percentile_count, ranking
        """
        year, month = validate_period(year, month)

        with atomic():
            rows = (
                CleanerMetrics.query
                .join(Cleaner, Cleaner.id == CleanerMetrics.cleaner_id)
                .filter(CleanerMetrics.year == year, CleanerMetrics.month == month)
                .order_by(
                    CleanerMetrics.agility_score.desc(),
                    Cleaner.average_rating.desc(),
                    Cleaner.id.asc(),
                )
                .all()
            )

            threshold = top_percentile_count(len(rows))
            for position, metrics in enumerate(rows, start=1):
                metrics.ranking = position
                metrics.top_percentile = position <= threshold

        logger.info('Ranking for %02d/%d computed: %d cleaners, top %d',
                    month, year, len(rows), threshold)

        return {
            'year': year,
            'month': month,
            'total_cleaners': len(rows),
            'top_percentile_count': threshold,
            'ranking': [
                {
                    'ranking': m.ranking,
                    'top_percentile': m.top_percentile,
                    'agility_score': m.agility_score,
                    'cleaner': m.cleaner.to_summary(),
                }
                for m in rows
            ],
        }

    def _rankable(self):
        return Cleaner.query.filter(Cleaner.status.in_(RANKABLE_STATUSES))

    def get_global_ranking(self, limit=50, offset=0):
        """Active and verified cleaners: badge holders first, then by score"""
        limit = max(1, int(limit))
        offset = max(0, int(offset))

        cleaners = (
            self._rankable()
            .order_by(
                Cleaner.top_cleaner_badge.desc(),
                Cleaner.agility_score.desc(),
                Cleaner.average_rating.desc(),
                Cleaner.total_bookings.desc(),
            )
            .offset(offset)
            .limit(limit)
            .all()
        )

        return {
            'total': self._rankable().count(),
            'limit': limit,
            'offset': offset,
            'ranking': [
                dict(cleaner.to_summary(), global_rank=offset + index + 1)
                for index, cleaner in enumerate(cleaners)
            ],
        }

    def get_regional_ranking(self, region, limit=20):
        """Leaderboard for cleaners whose region contains `region` (any case)"""
        limit = max(1, int(limit))
        cleaners = (
            self._rankable()
            .filter(func.lower(Cleaner.region).contains(region.lower(), autoescape=True))
            .order_by(
                Cleaner.top_cleaner_badge.desc(),
                Cleaner.agility_score.desc(),
                Cleaner.average_rating.desc(),
            )
            .limit(limit)
            .all()
        )

        return {
            'region': region,
            'total': len(cleaners),
            'ranking': [
                dict(cleaner.to_summary(), regional_rank=index + 1)
                for index, cleaner in enumerate(cleaners)
            ],
        }

    def _global_position(self, cleaner):
        higher = self._rankable().filter(Cleaner.agility_score > cleaner.agility_score).count()
        return higher + 1

    def get_cleaner_rank(self, cleaner_id):
        cleaner = get_or_404(Cleaner, cleaner_id, 'Cleaner')
        now = utcnow()
        current = CleanerMetrics.query.filter_by(
            cleaner_id=cleaner_id, year=now.year, month=now.month
        ).first()

        return {
            'cleaner': cleaner.to_summary(),
            'current_metrics': current.to_dict() if current else None,
            'global_rank': self._global_position(cleaner),
        }

    def get_cleaner_grade_card(self, cleaner_id, year=None, month=None):
        """
        Grade card for a period (current month by default).

        The grade comes from the period's metrics row; without one it falls
        back to the score mirrored on the cleaner.
        """
        cleaner = get_or_404(Cleaner, cleaner_id, 'Cleaner')
        now = utcnow()
        year, month = validate_period(year or now.year, month or now.month)

        metrics = CleanerMetrics.query.filter_by(
            cleaner_id=cleaner_id, year=year, month=month
        ).first()

        if metrics:
            period_metrics = {
                'current_month_calls': metrics.total_calls,
                'acceptance_rate': metrics.acceptance_rate,
                'completion_rate': metrics.completion_rate,
                'avg_rating': metrics.avg_rating,
                'agility_score': metrics.agility_score,
                'monthly_ranking': metrics.ranking,
            }
            top_performer = metrics.top_percentile
        else:
            period_metrics = {
                'current_month_calls': 0,
                'acceptance_rate': 0.0,
                'completion_rate': 0.0,
                'avg_rating': 0.0,
                'agility_score': cleaner.agility_score,
                'monthly_ranking': None,
            }
            top_performer = False

        return {
            'grade': grade_for_score(period_metrics['agility_score']),
            'period': {'year': year, 'month': month},
            'cleaner': {
                'id': cleaner.id,
                'name': cleaner.name,
                'region': cleaner.region,
            },
            'metrics': period_metrics,
            'reputation': {
                'points': cleaner.reputation_points,
                'status': reputation_label(cleaner.reputation_points),
            },
            'global': {
                'rank': self._global_position(cleaner),
                'top_performer': top_performer,
                'badge': 'TOP CLEANER' if cleaner.top_cleaner_badge else 'Regular',
            },
        }
