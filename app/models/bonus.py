"""Cleaner bonus model"""
from app import db
from .base import BaseModel


BONUS_PENDING = 'pending'
BONUS_PROCESSING = 'processing'
BONUS_TRANSFERRED = 'transferred'
BONUS_STATUSES = (BONUS_PENDING, BONUS_PROCESSING, BONUS_TRANSFERRED)

REASON_FIVE_STAR_STREAK = '10_consecutive_five_stars'


class CleanerBonus(BaseModel):
    """
    CleanerBonus model - a monetary bonus grant. `processing` marks a payout in flight and
    `transferred` is terminal.
    """
    __tablename__ = 'cleaner_bonuses'

    cleaner_id = db.Column(db.String(36), db.ForeignKey('cleaners.id', ondelete='CASCADE'),
                           nullable=False, index=True)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    reason = db.Column(db.String(50), nullable=False, default=REASON_FIVE_STAR_STREAK)
    status = db.Column(db.String(20), nullable=False, default=BONUS_PENDING)

    transferred_at = db.Column(db.DateTime)
    payout_reference = db.Column(db.String(255))

    __table_args__ = (
        db.CheckConstraint("status IN ('pending', 'processing', 'transferred')", name='ck_bonus_status'),
        db.Index('idx_bonuses_cleaner_status', 'cleaner_id', 'status'),
    )

    def __repr__(self):
        return f'<CleanerBonus {self.amount} {self.status} cleaner={self.cleaner_id}>'

    @property
    def is_transferred(self):
        return self.status == BONUS_TRANSFERRED
