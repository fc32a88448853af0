"""Monthly cleaner metrics snapshot"""
from app import db
from .base import BaseModel


class CleanerMetrics(BaseModel):
    """
    CleanerMetrics model - one performance snapshot per cleaner per month.
    Upserted by the agility scorer, ranked by the ranking engine.
    """
    __tablename__ = 'cleaner_metrics'

    cleaner_id = db.Column(db.String(36), db.ForeignKey('cleaners.id', ondelete='CASCADE'),
                           nullable=False)
    year = db.Column(db.Integer, nullable=False)
    month = db.Column(db.Integer, nullable=False)

    total_calls = db.Column(db.Integer, nullable=False, default=0)
    accepted_calls = db.Column(db.Integer, nullable=False, default=0)
    rejected_calls = db.Column(db.Integer, nullable=False, default=0)
    acceptance_rate = db.Column(db.Float, nullable=False, default=0.0)  # percent
    avg_response_time = db.Column(db.Integer, nullable=False, default=0)  # seconds

    completed_jobs = db.Column(db.Integer, nullable=False, default=0)
    cancelled_jobs = db.Column(db.Integer, nullable=False, default=0)
    no_show_jobs = db.Column(db.Integer, nullable=False, default=0)
    completion_rate = db.Column(db.Float, nullable=False, default=0.0)  # percent

    avg_rating = db.Column(db.Float, nullable=False, default=0.0)
    total_reviews_received = db.Column(db.Integer, nullable=False, default=0)
    five_star_reviews = db.Column(db.Integer, nullable=False, default=0)

    agility_score = db.Column(db.Float, nullable=False, default=0.0)
    ranking = db.Column(db.Integer)
    top_percentile = db.Column(db.Boolean, nullable=False, default=False)

    __table_args__ = (
        db.UniqueConstraint('cleaner_id', 'year', 'month', name='unique_metrics_per_cleaner_month'),
        db.CheckConstraint('month >= 1 AND month <= 12', name='ck_metrics_month'),
        db.Index('idx_metrics_period_score', 'year', 'month', 'agility_score'),
    )

    def __repr__(self):
        return f'<CleanerMetrics {self.cleaner_id} {self.month}/{self.year} score={self.agility_score}>'

    @property
    def period(self):
        return f'{self.month:02d}/{self.year}'
