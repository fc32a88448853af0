"""
Achievement engine tests: unlocking, levels, milestones and earnings bonus
"""
import pytest

from app.errors import InvalidArgument, NotFound
from app.models import Achievement
from app.services.achievement import crossed


class TestUnlock:
    """Test direct unlocks and level caps"""

    def test_first_unlock_creates_level_one(self, app, engines, test_cleaner):
        achievement = engines.achievements.unlock('cleaner', test_cleaner.id, 'speed_demon')

        assert achievement.level == 1
        assert achievement.progress == 0
        assert achievement.name == 'Speed Demon'
        assert achievement.bonus_earnings == 0.05
        assert achievement.awarded_by == 'system'

    def test_level_capped_at_three(self, app, engines, test_cleaner):
        for _ in range(5):
            achievement = engines.achievements.unlock('cleaner', test_cleaner.id, 'specialist')

        assert achievement.level == 3
        assert Achievement.query.filter_by(actor_id=test_cleaner.id).count() == 1

    def test_unknown_type(self, app, engines, test_cleaner):
        with pytest.raises(InvalidArgument):
            engines.achievements.unlock('cleaner', test_cleaner.id, 'bonus_hunter')

    def test_unknown_actor_type(self, app, engines, test_cleaner):
        with pytest.raises(InvalidArgument):
            engines.achievements.unlock('admin', test_cleaner.id, 'first_booking')

    def test_announced(self, app, engines, notifier, test_user):
        engines.achievements.unlock('user', test_user.id, 'trusted_user', {'awarded_by': 'admin-1'})

        args, kwargs = notifier.notify.call_args
        assert args[0] == test_user.id
        assert args[3] == 'achievement_unlocked'
        assert kwargs['actor_type'] == 'user'


class TestMilestones:
    """Test counter milestones"""

    @pytest.mark.parametrize('previous,new,expected', [
        (4, 5, True), (4, 6, True), (5, 6, False), (0, 0, False), (9, 10, True),
    ])
    def test_crossed(self, previous, new, expected):
        assert crossed(previous, new, 5 if new < 10 else 10) is expected

    def test_jump_over_milestone(self, app, engines, test_user):
        unlocked = engines.achievements.check_and_unlock(
            user_id=test_user.id,
            metrics={'total_bookings': 6},
            previous={'total_bookings': 4},
        )

        assert [a.type for a in unlocked] == ['five_bookings']

    def test_without_previous_only_exact_hit(self, app, engines, test_user):
        hit = engines.achievements.check_and_unlock(user_id=test_user.id, metrics={'total_bookings': 5})
        missed = engines.achievements.check_and_unlock(user_id=test_user.id, metrics={'total_bookings': 6})

        assert [a.type for a in hit] == ['five_bookings']
        assert missed == []

    def test_held_milestone_without_previous_does_not_level_up(self, app, engines, test_cleaner):
        engines.achievements.unlock('cleaner', test_cleaner.id, 'first_booking')

        assert engines.achievements.check_and_unlock(
            cleaner_id=test_cleaner.id, metrics={'total_bookings': 1}
        ) == []
        assert Achievement.query.filter_by(type='first_booking').one().level == 1

    def test_perfect_rating(self, app, engines, test_user):
        unlocked = engines.achievements.check_and_unlock(
            user_id=test_user.id, metrics={'consecutive_ratings': 5}
        )

        assert [a.type for a in unlocked] == ['perfect_rating']

    def test_cleaner_and_user_together(self, app, engines, test_user, test_cleaner):
        unlocked = engines.achievements.check_and_unlock(
            user_id=test_user.id, cleaner_id=test_cleaner.id,
            metrics={'total_bookings': 1}, previous={'total_bookings': 0},
        )

        assert sorted((a.actor_type, a.type) for a in unlocked) == [
            ('cleaner', 'first_booking'), ('user', 'first_booking'),
        ]

    def test_nothing_to_check(self, app, engines):
        assert engines.achievements.check_and_unlock(metrics={'total_bookings': 1}) == []


class TestConditions:
    """Test condition achievements"""

    def test_fires_on_false_to_true(self, app, engines, test_cleaner):
        unlocked = engines.achievements.check_and_unlock(
            cleaner_id=test_cleaner.id,
            metrics={'completion_rate': 0.99},
            previous={'completion_rate': 0.95},
        )

        assert [a.type for a in unlocked] == ['completion_master']

    def test_still_true_does_not_level_up(self, app, engines, test_cleaner):
        engines.achievements.unlock('cleaner', test_cleaner.id, 'completion_master')

        unlocked = engines.achievements.check_and_unlock(
            cleaner_id=test_cleaner.id,
            metrics={'completion_rate': 0.99},
            previous={'completion_rate': 0.98},
        )

        assert unlocked == []

    def test_still_true_unlocks_when_missing(self, app, engines, test_cleaner):
        """A condition already true before the change still unlocks once"""
        unlocked = engines.achievements.check_and_unlock(
            cleaner_id=test_cleaner.id,
            metrics={'total_bookings': 101, 'avg_rating': 4.8},
            previous={'total_bookings': 100, 'avg_rating': 4.8},
        )
        again = engines.achievements.check_and_unlock(
            cleaner_id=test_cleaner.id,
            metrics={'total_bookings': 102, 'avg_rating': 4.8},
            previous={'total_bookings': 101, 'avg_rating': 4.8},
        )

        assert [a.type for a in unlocked] == ['master_cleaner']
        assert again == []
        assert Achievement.query.filter_by(type='master_cleaner').one().level == 1

    def test_without_previous_fires_once(self, app, engines, test_cleaner):
        first = engines.achievements.check_and_unlock(cleaner_id=test_cleaner.id,
                                                      metrics={'service_types_offered': 5})
        second = engines.achievements.check_and_unlock(cleaner_id=test_cleaner.id,
                                                       metrics={'service_types_offered': 6})

        assert [a.type for a in first] == ['specialist']
        assert second == []

    def test_rules_evaluated_independently(self, app, engines, test_cleaner):
        unlocked = engines.achievements.check_and_unlock(
            cleaner_id=test_cleaner.id,
            metrics={'top_performer': True, 'total_bookings': 120, 'avg_rating': 4.9},
            previous={'top_performer': False, 'total_bookings': 119, 'avg_rating': 4.9},
        )

        assert sorted(a.type for a in unlocked) == ['master_cleaner', 'top_performer']
        top = next(a for a in unlocked if a.type == 'top_performer')
        assert top.awarded_for == 'top_performer_ranking'

    @pytest.mark.parametrize('metrics', [
        {'avg_response_time': 299, 'days_maintained': 29},
        {'avg_response_time': 300, 'days_maintained': 30},
    ])
    def test_speed_demon_thresholds(self, app, engines, test_cleaner, metrics):
        assert engines.achievements.check_and_unlock(cleaner_id=test_cleaner.id, metrics=metrics) == []

    def test_speed_demon(self, app, engines, test_cleaner):
        unlocked = engines.achievements.check_and_unlock(
            cleaner_id=test_cleaner.id, metrics={'avg_response_time': 240, 'days_maintained': 30}
        )

        assert [a.type for a in unlocked] == ['speed_demon']

    def test_trusted_user(self, app, engines, test_user):
        unlocked = engines.achievements.check_and_unlock(
            user_id=test_user.id, metrics={'reputation_points': 95, 'days_above_90': 30}
        )

        assert [a.type for a in unlocked] == ['trusted_user']


class TestProgressAndQueries:
    """Test progress updates, badges, bonus and ranking"""

    def test_progress(self, app, engines, test_cleaner):
        achievement = engines.achievements.unlock('cleaner', test_cleaner.id, 'speed_demon')

        assert engines.achievements.update_progress(achievement.id, 60).progress == 60
        levelled = engines.achievements.update_progress(achievement.id, 100)
        assert levelled.level == 2
        assert levelled.progress == 0

    def test_progress_invalid(self, app, engines, test_cleaner):
        achievement = engines.achievements.unlock('cleaner', test_cleaner.id, 'speed_demon')

        with pytest.raises(InvalidArgument):
            engines.achievements.update_progress(achievement.id, 'half')
        with pytest.raises(NotFound):
            engines.achievements.update_progress('missing', 10)

    def test_bonus_capped_at_30_percent(self, app, engines, test_cleaner):
        engines.achievements.unlock('cleaner', test_cleaner.id, 'top_performer')
        assert engines.achievements.calculate_total_achievement_bonus(test_cleaner.id) == 25.0

        engines.achievements.unlock('cleaner', test_cleaner.id, 'master_cleaner')
        assert engines.achievements.calculate_total_achievement_bonus(test_cleaner.id) == 30

    def test_no_bonus(self, app, engines, test_cleaner):
        assert engines.achievements.calculate_total_achievement_bonus(test_cleaner.id) == 0

    def test_main_badges_highest_level_first(self, app, engines, test_cleaner):
        engines.achievements.unlock('cleaner', test_cleaner.id, 'first_booking')
        engines.achievements.unlock('cleaner', test_cleaner.id, 'specialist')
        engines.achievements.unlock('cleaner', test_cleaner.id, 'specialist')

        badges = engines.achievements.get_cleaner_main_badges(test_cleaner.id)

        assert [b['type'] for b in badges] == ['specialist', 'first_booking']
        assert badges[0]['level'] == 2

    def test_get_achievements_invalid_actor(self, app, engines):
        with pytest.raises(InvalidArgument):
            engines.achievements.get_achievements('admin', 'x')

    def test_achievement_ranking(self, app, engines, test_cleaner, cleaner_factory):
        other = cleaner_factory()
        engines.achievements.unlock('cleaner', test_cleaner.id, 'first_booking')
        engines.achievements.unlock('cleaner', other.id, 'first_booking')
        engines.achievements.unlock('cleaner', other.id, 'top_performer')

        ranking = engines.achievements.get_achievement_ranking('cleaner')

        assert [entry['id'] for entry in ranking] == [other.id, test_cleaner.id]
        assert ranking[0]['achievement_count'] == 2
        assert ranking[0]['total_bonus_earnings'] == 0.3
        assert ranking[1]['name'] == 'Maria Silva'
