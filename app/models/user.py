"""Client user model"""
from app import db
from .base import BaseModel


class User(BaseModel):
    """
    User model - clients who book cleanings. Only the counters the
    achievement rules read are kept here; accounts live in the auth service.
    """
    __tablename__ = 'users'

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), unique=True, index=True)
    phone = db.Column(db.String(50))

    total_bookings = db.Column(db.Integer, nullable=False, default=0)
    reputation_points = db.Column(db.Integer, nullable=False, default=100)

    bookings = db.relationship('Booking', backref='user', lazy='dynamic')

    def __repr__(self):
        return f'<User {self.email}>'

    def to_dict(self, include_private=False):
        exclude = [] if include_private else ['email', 'phone']
        return super().to_dict(exclude=exclude)
