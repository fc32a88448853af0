"""Notification model"""
from app import db
from .base import BaseModel


class Notification(BaseModel):
    """
    Notification model - in-app notifications for cleaners and clients
    """
    __tablename__ = 'notifications'

    actor_type = db.Column(db.String(10), nullable=False, default='cleaner')
    actor_id = db.Column(db.String(36), nullable=False)

    type = db.Column(db.String(50), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    data = db.Column(db.JSON)

    is_read = db.Column(db.Boolean, nullable=False, default=False)
    sms_sent = db.Column(db.Boolean, nullable=False, default=False)

    __table_args__ = (
        db.Index('idx_notifications_actor', 'actor_type', 'actor_id', 'created_at'),
    )

    def __repr__(self):
        return f'<Notification {self.type} - {self.actor_type}={self.actor_id}>'
