"""Rating model"""
from app import db
from .base import BaseModel


USER_TO_CLEANER = 'user_to_cleaner'
CLEANER_TO_USER = 'cleaner_to_user'
RATING_DIRECTIONS = (USER_TO_CLEANER, CLEANER_TO_USER)

SUB_SCORES = ('punctuality', 'professionalism', 'quality', 'communication')


class Rating(BaseModel):
    """
    Rating model - feedback on a completed booking, one per direction
    """
    __tablename__ = 'ratings'

    booking_id = db.Column(db.String(36), db.ForeignKey('bookings.id', ondelete='CASCADE'),
                           nullable=False, index=True)
    direction = db.Column(db.String(20), nullable=False, default=USER_TO_CLEANER)

    given_by_user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='SET NULL'))
    given_by_cleaner_id = db.Column(db.String(36), db.ForeignKey('cleaners.id', ondelete='SET NULL'))
    to_user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='SET NULL'))
    to_cleaner_id = db.Column(db.String(36), db.ForeignKey('cleaners.id', ondelete='SET NULL'),
                              index=True)

    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text)

    # Optional structured sub-scores (1-5)
    punctuality = db.Column(db.Integer)
    professionalism = db.Column(db.Integer)
    quality = db.Column(db.Integer)
    communication = db.Column(db.Integer)

    # Moderation
    is_public = db.Column(db.Boolean, nullable=False, default=True)
    flagged = db.Column(db.Boolean, nullable=False, default=False)
    flag_reason = db.Column(db.Text)

    __table_args__ = (
        db.UniqueConstraint('booking_id', 'direction', name='unique_rating_per_booking_direction'),
        db.CheckConstraint('rating >= 1 AND rating <= 5', name='ck_rating_range'),
        db.Index('idx_ratings_cleaner_created', 'to_cleaner_id', 'created_at'),
    )

    def __repr__(self):
        return f'<Rating {self.rating}* booking={self.booking_id} ({self.direction})>'
