"""Cleaner and payout details models"""
from app import db
from .base import BaseModel


CLEANER_STATUSES = ('active', 'inactive', 'suspended', 'verified')
RANKABLE_STATUSES = ('active', 'verified')

MAX_REPUTATION_POINTS = 100


class Cleaner(BaseModel):
    """
    Cleaner model - independent service provider and the subject of every
    incentive rule (reputation, bonuses, badges, rankings)
    """
    __tablename__ = 'cleaners'

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), unique=True, index=True)
    phone = db.Column(db.String(50))
    region = db.Column(db.String(100), index=True)

    status = db.Column(db.String(20), nullable=False, default='active')
    reputation_points = db.Column(db.Integer, nullable=False, default=MAX_REPUTATION_POINTS)

    # Review aggregates
    average_rating = db.Column(db.Float, nullable=False, default=0.0)
    review_count = db.Column(db.Integer, nullable=False, default=0)
    total_bookings = db.Column(db.Integer, nullable=False, default=0)

    # Mirrors of the latest monthly metrics, for fast ranking lookups
    agility_score = db.Column(db.Float, nullable=False, default=0.0)
    current_month_calls = db.Column(db.Integer, nullable=False, default=0)
    current_month_acceptance = db.Column(db.Float, nullable=False, default=0.0)

    # Bonus state
    top_cleaner_badge = db.Column(db.Boolean, nullable=False, default=False)
    top_cleaner_until = db.Column(db.DateTime)
    total_bonus_earned = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    consecutive_five_stars = db.Column(db.Integer, nullable=False, default=0)
    # (created_at, id) of the newest review consumed by the last bonus
    streak_reset_at = db.Column(db.DateTime)
    streak_reset_review_id = db.Column(db.String(36))
    last_bonus_at = db.Column(db.DateTime)

    version_id = db.Column(db.Integer, nullable=False)

    __table_args__ = (
        db.CheckConstraint(
            'reputation_points >= 0 AND reputation_points <= 100',
            name='ck_cleaner_reputation_range',
        ),
        db.CheckConstraint(
            "status IN ('active', 'inactive', 'suspended', 'verified')",
            name='ck_cleaner_status',
        ),
        db.Index('idx_cleaners_ranking', 'status', 'agility_score'),
    )

    __mapper_args__ = {'version_id_col': version_id}

    payout_details = db.relationship('PayoutDetails', backref='cleaner', uselist=False,
                                     cascade='all, delete-orphan')
    metrics = db.relationship('CleanerMetrics', backref='cleaner', lazy='dynamic',
                              cascade='all, delete-orphan')
    bonuses = db.relationship('CleanerBonus', backref='cleaner', lazy='dynamic',
                              cascade='all, delete-orphan')
    punishments = db.relationship('CleanerPunishment', backref='cleaner', lazy='dynamic',
                                  cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Cleaner {self.name} ({self.status}, {self.reputation_points} pts)>'

    @property
    def is_rankable(self):
        return self.status in RANKABLE_STATUSES

    def to_dict(self, include_private=False):
        exclude = ['version_id', 'streak_reset_at', 'streak_reset_review_id']
        if not include_private:
            exclude.extend(['email', 'phone'])
        return super().to_dict(exclude=exclude)

    def to_summary(self):
        """Public fields used by rankings and dashboards"""
        return {
            'id': self.id,
            'name': self.name,
            'region': self.region,
            'status': self.status,
            'average_rating': self.average_rating,
            'review_count': self.review_count,
            'total_bookings': self.total_bookings,
            'agility_score': self.agility_score,
            'reputation_points': self.reputation_points,
            'top_cleaner_badge': self.top_cleaner_badge,
            'top_cleaner_until': self.top_cleaner_until.isoformat() if self.top_cleaner_until else None,
        }


class PayoutDetails(BaseModel):
    """
    Where bonus payouts are sent: a PIX key or a bank account
    """
    __tablename__ = 'payout_details'

    cleaner_id = db.Column(db.String(36), db.ForeignKey('cleaners.id', ondelete='CASCADE'),
                           nullable=False, unique=True)
    pix_key = db.Column(db.String(255))
    bank_code = db.Column(db.String(10))
    branch_number = db.Column(db.String(20))
    account_number = db.Column(db.String(50))
    holder_name = db.Column(db.String(255))
    stripe_connect_id = db.Column(db.String(255))

    def __repr__(self):
        return f'<PayoutDetails cleaner={self.cleaner_id}>'

    @property
    def destination(self):
        """PIX key first, bank account second, None when neither is set"""
        if self.pix_key:
            return self.pix_key
        if self.account_number:
            return self.account_number
        return None

    @property
    def method(self):
        if self.pix_key:
            return 'pix'
        if self.account_number:
            return 'bank_account'
        return None
