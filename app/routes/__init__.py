"""API blueprints"""
from .achievements import achievements_bp
from .bonuses import bonuses_bp
from .metrics import metrics_bp
from .punishments import punishments_bp
from .rankings import rankings_bp
from .ratings import ratings_bp

__all__ = [
    'achievements_bp',
    'bonuses_bp',
    'metrics_bp',
    'punishments_bp',
    'rankings_bp',
    'ratings_bp',
]
