"""Cleaner punishment model"""
import enum

from sqlalchemy.ext.hybrid import hybrid_property

from app import db
from .base import BaseModel


class PunishmentState(str, enum.Enum):
    ACTIVE = 'active'
    EXPIRED = 'expired'      # block ran out, points stay deducted
    REVERSED = 'reversed'    # removed by an admin, points restored


class CleanerPunishment(BaseModel):
    """
    CleanerPunishment model - reputation penalty plus a temporary block
    """
    __tablename__ = 'cleaner_punishments'

    cleaner_id = db.Column(db.String(36), db.ForeignKey('cleaners.id', ondelete='CASCADE'),
                           nullable=False, index=True)
    type = db.Column(db.String(30), nullable=False)
    reason = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text)
    points_deducted = db.Column(db.Integer, nullable=False)

    state = db.Column(db.String(20), nullable=False, default=PunishmentState.ACTIVE.value)
    blocked_until = db.Column(db.DateTime, nullable=False)

    related_booking_id = db.Column(db.String(36), db.ForeignKey('bookings.id', ondelete='SET NULL'))
    related_dispute_id = db.Column(db.String(36))

    given_by_admin = db.Column(db.Boolean, nullable=False, default=False)
    admin_id = db.Column(db.String(36))

    removed_by = db.Column(db.String(36))
    removal_reason = db.Column(db.Text)
    removed_at = db.Column(db.DateTime)

    __table_args__ = (
        db.CheckConstraint(
            "type IN ('no_show', 'cancellation_both', 'low_rating')",
            name='ck_punishment_type',
        ),
        db.CheckConstraint(
            "state IN ('active', 'expired', 'reversed')",
            name='ck_punishment_state',
        ),
        db.Index('idx_punishments_state_until', 'state', 'blocked_until'),
    )

    def __repr__(self):
        return f'<CleanerPunishment {self.type} {self.state} cleaner={self.cleaner_id}>'

    @hybrid_property
    def is_active(self):
        return self.state == PunishmentState.ACTIVE.value

    def is_blocking(self, now):
        return self.is_active and self.blocked_until > now

    def to_dict(self):
        data = super().to_dict()
        data['is_active'] = self.is_active
        return data
