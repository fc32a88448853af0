"""Achievement model"""
from app import db
from .base import BaseModel, utcnow


ACTOR_USER = 'user'
ACTOR_CLEANER = 'cleaner'
ACTOR_TYPES = (ACTOR_USER, ACTOR_CLEANER)

MAX_ACHIEVEMENT_LEVEL = 3


class Achievement(BaseModel):
    """
    Achievement model - tiered badge (level 1-3) held by a client or cleaner
    """
    __tablename__ = 'achievements'

    actor_type = db.Column(db.String(10), nullable=False)
    actor_id = db.Column(db.String(36), nullable=False)
    type = db.Column(db.String(50), nullable=False)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    icon = db.Column(db.String(16))

    level = db.Column(db.Integer, nullable=False, default=1)
    progress = db.Column(db.Integer, nullable=False, default=0)
    bonus_points = db.Column(db.Integer, nullable=False, default=0)
    bonus_earnings = db.Column(db.Float, nullable=False, default=0.0)

    awarded_for = db.Column(db.String(100), default='system')
    awarded_by = db.Column(db.String(36), default='system')
    unlocked_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        db.UniqueConstraint('actor_type', 'actor_id', 'type', name='unique_achievement_per_actor'),
        db.CheckConstraint('level >= 1 AND level <= 3', name='ck_achievement_level'),
        db.CheckConstraint("actor_type IN ('user', 'cleaner')", name='ck_achievement_actor_type'),
        db.Index('idx_achievements_actor', 'actor_type', 'actor_id'),
    )

    def __repr__(self):
        return f'<Achievement {self.type} L{self.level} {self.actor_type}={self.actor_id}>'
