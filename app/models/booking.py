"""Booking model"""
from app import db
from .base import BaseModel


BOOKING_STATUSES = ('pending', 'confirmed', 'completed', 'cancelled', 'no_show')


class Booking(BaseModel):
    """
    Booking model - a cleaning booked by a client with a cleaner.
    Written by the booking service; read here to score cleaners.
    """
    __tablename__ = 'bookings'

    cleaner_id = db.Column(db.String(36), db.ForeignKey('cleaners.id', ondelete='CASCADE'),
                           nullable=False, index=True)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'),
                        nullable=False, index=True)

    status = db.Column(db.String(20), nullable=False, default='pending')
    service_type = db.Column(db.String(50))
    scheduled_at = db.Column(db.DateTime)

    # Set when the cleaner accepts or declines the call
    responded_at = db.Column(db.DateTime)
    completed_at = db.Column(db.DateTime)
    cancelled_at = db.Column(db.DateTime)

    __table_args__ = (
        db.CheckConstraint(
            "status IN ('pending', 'confirmed', 'completed', 'cancelled', 'no_show')",
            name='ck_booking_status',
        ),
        db.Index('idx_bookings_cleaner_created', 'cleaner_id', 'created_at'),
    )

    cleaner = db.relationship('Cleaner', backref=db.backref('bookings', lazy='dynamic'))
    ratings = db.relationship('Rating', backref='booking', lazy='dynamic',
                              cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Booking {self.id} - {self.status}>'

    @property
    def response_time_seconds(self):
        """Seconds between the call and the cleaner's answer, None if unanswered"""
        if not self.responded_at or not self.created_at:
            return None
        return max(0.0, (self.responded_at - self.created_at).total_seconds())
