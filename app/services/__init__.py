"""
Incentive engines and their wiring
"""
from flask import current_app

from .achievement import AchievementEngine
from .agility import AgilityScorer
from .bonus import BonusEngine
from .notifier import Notifier
from .payouts import PayoutGateway, StripePayoutGateway
from .punishment import PunishmentEngine
from .ranking import RankingEngine
from .rating import RatingService


class Engines:
    """One set of engines sharing a notifier and a payout gateway"""

    def __init__(self, notifier=None, gateway=None):
        self.notifier = notifier or Notifier()
        self.gateway = gateway or StripePayoutGateway()
        self.achievements = AchievementEngine(notifier=self.notifier)
        self.agility = AgilityScorer(achievements=self.achievements)
        self.bonus = BonusEngine(notifier=self.notifier, gateway=self.gateway)
        self.punishment = PunishmentEngine(notifier=self.notifier)
        self.ranking = RankingEngine()
        self.ratings = RatingService(bonus=self.bonus)


def get_engines():
    """Engines of the current app, created on first use"""
    engines = current_app.extensions.get('incentives')
    if engines is None:
        engines = Engines()
        current_app.extensions['incentives'] = engines
    return engines


__all__ = [
    'AchievementEngine',
    'AgilityScorer',
    'BonusEngine',
    'Engines',
    'Notifier',
    'PayoutGateway',
    'PunishmentEngine',
    'RankingEngine',
    'RatingService',
    'StripePayoutGateway',
    'get_engines',
]
