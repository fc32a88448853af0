"""
Agility scoring: a monthly 0-10 performance score per cleaner.

    acceptance  30%  accepted calls / all calls
    response    40%  300s (5 min) answer time is the perfect reference
    completion  30%  completed jobs / accepted calls
"""

import logging
import math

from sqlalchemy import func

from app import db
from app.errors import IncentiveError
from app.models import (
    Booking,
    Cleaner,
    CleanerBonus,
    CleanerMetrics,
    Rating,
    utcnow,
)
from app.models.bonus import BONUS_TRANSFERRED
from app.models.rating import USER_TO_CLEANER
from app.services.base import atomic, get_or_404, month_bounds, validate_period

logger = logging.getLogger(__name__)

ACCEPTANCE_WEIGHT = 0.3
RESPONSE_WEIGHT = 0.4
COMPLETION_WEIGHT = 0.3

REFERENCE_RESPONSE_SECONDS = 300
MAX_SCORE = 10.0
TOP_PERCENTILE = 5

METRIC_FIELDS = (
    'total_calls', 'accepted_calls', 'rejected_calls', 'acceptance_rate',
    'avg_response_time', 'completed_jobs', 'cancelled_jobs', 'no_show_jobs',
    'completion_rate', 'avg_rating', 'total_reviews_received',
    'five_star_reviews', 'agility_score', 'top_percentile',
)


def round1(value):
    """Round half up to one decimal"""
    return math.floor(value * 10 + 0.5) / 10


def response_score(avg_response_time):
    """0-10 score for the average answer time in seconds, None when unknown"""
    if avg_response_time is None:
        return 0.0
    return min(MAX_SCORE, (REFERENCE_RESPONSE_SECONDS / max(avg_response_time, 1)) * 10)


def calculate_agility_score(acceptance_rate, avg_response_time, completion_rate):
    """
    Weighted composite of the three components, unrounded.

    Args:
        acceptance_rate (float): percent of calls accepted
        avg_response_time (float): seconds, or None when no answer was timed
        completion_rate (float): percent of accepted calls completed

    Returns:
        float: score in [0, 10]
    """
    acceptance_score = (acceptance_rate / 100) * 10
    completion_score = (completion_rate / 100) * 10

    score = (
        acceptance_score * ACCEPTANCE_WEIGHT
        + response_score(avg_response_time) * RESPONSE_WEIGHT
        + completion_score * COMPLETION_WEIGHT
    )
    return max(0.0, min(MAX_SCORE, score))


class AgilityScorer:
    """Computes and stores monthly CleanerMetrics snapshots"""

    def __init__(self, achievements=None):
        self.achievements = achievements

    def _bookings_for_period(self, cleaner_id, year, month):
        start, end = month_bounds(year, month)
        return Booking.query.filter(
            Booking.cleaner_id == cleaner_id,
            Booking.created_at >= start,
            Booking.created_at < end,
        ).all()

    def get_cleaner_percentile(self, cleaner_id, score):
        """Percent of cleaners whose stored score is strictly higher"""
        total = Cleaner.query.count()
        if total == 0:
            return 0

        better = Cleaner.query.filter(
            Cleaner.id != cleaner_id,
            Cleaner.agility_score > score,
        ).count()
        return math.floor(better / total * 100 + 0.5)

    def compute_agility(self, cleaner_id, year, month):
        """
        Compute (without storing) a cleaner's metrics for a calendar month.

        Returns:
            dict: every CleanerMetrics measure, agility_score rounded to 0.1
        """
        year, month = validate_period(year, month)
        get_or_404(Cleaner, cleaner_id, 'Cleaner')

        bookings = self._bookings_for_period(cleaner_id, year, month)

        total_calls = len(bookings)
        accepted_calls = sum(1 for b in bookings if b.status != 'cancelled')
        rejected_calls = total_calls - accepted_calls
        completed_jobs = sum(1 for b in bookings if b.status == 'completed')
        cancelled_jobs = rejected_calls
        no_show_jobs = sum(1 for b in bookings if b.status == 'no_show')

        acceptance_rate = (accepted_calls / total_calls) * 100 if total_calls else 0.0
        completion_rate = (completed_jobs / accepted_calls) * 100 if accepted_calls else 0.0

        response_times = [b.response_time_seconds for b in bookings if b.response_time_seconds is not None]
        avg_response_time = round(sum(response_times) / len(response_times)) if response_times else None

        booking_ids = [b.id for b in bookings]
        reviews = []
        if booking_ids:
            reviews = Rating.query.filter(
                Rating.booking_id.in_(booking_ids),
                Rating.direction == USER_TO_CLEANER,
            ).all()
        avg_rating = sum(r.rating for r in reviews) / len(reviews) if reviews else 0.0

        if total_calls == 0:
            agility_score = 0.0
        else:
            agility_score = round1(
                calculate_agility_score(acceptance_rate, avg_response_time, completion_rate)
            )

        percentile = self.get_cleaner_percentile(cleaner_id, agility_score)

        return {
            'total_calls': total_calls,
            'accepted_calls': accepted_calls,
            'rejected_calls': rejected_calls,
            'acceptance_rate': round1(acceptance_rate),
            'avg_response_time': avg_response_time or 0,
            'completed_jobs': completed_jobs,
            'cancelled_jobs': cancelled_jobs,
            'no_show_jobs': no_show_jobs,
            'completion_rate': round1(completion_rate),
            'avg_rating': round1(avg_rating),
            'total_reviews_received': len(reviews),
            'five_star_reviews': sum(1 for r in reviews if r.rating == 5),
            'agility_score': agility_score,
            'top_percentile': percentile <= TOP_PERCENTILE,
        }

    def save_monthly_metrics(self, cleaner_id, year, month):
        """Upsert the month's snapshot and mirror the score on the cleaner"""
        year, month = validate_period(year, month)
        computed = self.compute_agility(cleaner_id, year, month)

        with atomic():
            cleaner = get_or_404(Cleaner, cleaner_id, 'Cleaner')
            metrics = CleanerMetrics.query.filter_by(
                cleaner_id=cleaner_id, year=year, month=month
            ).first()
            previous = _snapshot(metrics) if metrics else None

            if metrics is None:
                metrics = CleanerMetrics(cleaner_id=cleaner_id, year=year, month=month)
                db.session.add(metrics)

            for field in METRIC_FIELDS:
                setattr(metrics, field, computed[field])
            metrics.updated_at = utcnow()

            cleaner.agility_score = computed['agility_score']
            cleaner.current_month_calls = computed['total_calls']
            cleaner.current_month_acceptance = computed['acceptance_rate']

        logger.info('Metrics saved for cleaner %s %02d/%d: %.1f/10',
                    cleaner_id, month, year, metrics.agility_score)

        if self.achievements is not None:
            self.achievements.check_and_unlock(
                cleaner_id=cleaner_id,
                metrics=self._achievement_snapshot(cleaner, computed),
                previous=self._achievement_snapshot(cleaner, previous) if previous else None,
            )

        return metrics

    def save_all_monthly_metrics(self, year, month):
        """
        Store the period's snapshot for every cleaner, one transaction each.
        A cleaner that fails is logged and skipped.

        Returns:
            int: snapshots saved
        """
        year, month = validate_period(year, month)
        cleaner_ids = [row.id for row in db.session.query(Cleaner.id).all()]

        saved = 0
        for cleaner_id in cleaner_ids:
            try:
                self.save_monthly_metrics(cleaner_id, year, month)
                saved += 1
            except IncentiveError:
                logger.exception('Failed to save %02d/%d metrics for cleaner %s',
                                 month, year, cleaner_id)

        logger.info('Saved %d/%d metric snapshots for %02d/%d',
                    saved, len(cleaner_ids), month, year)
        return saved

    @staticmethod
    def _achievement_snapshot(cleaner, values):
        return {
            'completion_rate': values['completion_rate'] / 100,
            'top_performer': values['top_percentile'],
            'total_bookings': cleaner.total_bookings,
            'avg_rating': cleaner.average_rating,
        }

    def get_metrics_history(self, cleaner_id, months=6):
        """Stored snapshots for the last `months` calendar months, newest first"""
        get_or_404(Cleaner, cleaner_id, 'Cleaner')
        now = utcnow()
        year, month = now.year, now.month

        history = []
        for _ in range(max(0, int(months))):
            metrics = CleanerMetrics.query.filter_by(
                cleaner_id=cleaner_id, year=year, month=month
            ).first()
            if metrics:
                history.append(metrics)
            month -= 1
            if month == 0:
                month = 12
                year -= 1
        return history

    def get_top_cleaners(self, year, month, limit=10):
        """Top-percentile snapshots of a period by score"""
        year, month = validate_period(year, month)
        return (
            CleanerMetrics.query
            .filter_by(year=year, month=month, top_percentile=True)
            .order_by(CleanerMetrics.agility_score.desc())
            .limit(limit)
            .all()
        )

    def get_cleaner_dashboard(self, cleaner_id):
        """Cleaner summary, current-month metrics and recent paid bonuses"""
        cleaner = get_or_404(Cleaner, cleaner_id, 'Cleaner')
        now = utcnow()

        current = CleanerMetrics.query.filter_by(
            cleaner_id=cleaner_id, year=now.year, month=now.month
        ).first()

        bonus_history = (
            CleanerBonus.query
            .filter_by(cleaner_id=cleaner_id, status=BONUS_TRANSFERRED)
            .order_by(CleanerBonus.created_at.desc())
            .limit(5)
            .all()
        )

        total_transferred = db.session.query(
            func.coalesce(func.sum(CleanerBonus.amount), 0)
        ).filter_by(cleaner_id=cleaner_id, status=BONUS_TRANSFERRED).scalar()

        return {
            'cleaner': cleaner.to_summary(),
            'current_metrics': current.to_dict() if current else None,
            'bonus_history': [b.to_dict() for b in bonus_history],
            'total_bonus_earned': float(cleaner.total_bonus_earned or 0),
            'total_bonus_transferred': float(total_transferred or 0),
        }


def _snapshot(metrics):
    return {field: getattr(metrics, field) for field in METRIC_FIELDS}
