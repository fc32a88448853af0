"""
Rating service tests: review creation, edits, moderation and aggregates
"""
from datetime import timedelta

import pytest

from app.errors import Conflict, InvalidArgument, NotFound
from app.models import utcnow


@pytest.fixture
def rate(engines, booking_factory):
    """Rate a fresh completed booking of the given cleaner"""
    def _rate(cleaner, stars, direction='user_to_cleaner', **kwargs):
        booking = booking_factory(cleaner)
        return engines.ratings.create_rating(booking.id, direction, stars, **kwargs)

    return _rate


class TestCreateRating:
    """Test creating ratings"""

    def test_client_review_updates_aggregates(self, app, rate, test_cleaner, db_session):
        rate(test_cleaner, 5)
        rate(test_cleaner, 4, comment='Good job')

        db_session.refresh(test_cleaner)
        assert test_cleaner.average_rating == 4.5
        assert test_cleaner.review_count == 2

    def test_parties_filled_from_booking(self, app, rate, test_cleaner, test_user):
        review = rate(test_cleaner, 5)
        feedback = rate(test_cleaner, 4, direction='cleaner_to_user')

        assert review.given_by_user_id == test_user.id
        assert review.to_cleaner_id == test_cleaner.id
        assert feedback.given_by_cleaner_id == test_cleaner.id
        assert feedback.to_user_id == test_user.id

    def test_cleaner_feedback_leaves_aggregates(self, app, rate, test_cleaner, db_session):
        rate(test_cleaner, 1, direction='cleaner_to_user')

        db_session.refresh(test_cleaner)
        assert test_cleaner.review_count == 0

    def test_booking_not_completed(self, app, engines, booking_factory, test_cleaner):
        booking = booking_factory(test_cleaner, status='confirmed')

        with pytest.raises(InvalidArgument):
            engines.ratings.create_rating(booking.id, 'user_to_cleaner', 5)

    def test_duplicate_rating(self, app, engines, booking_factory, test_cleaner):
        booking = booking_factory(test_cleaner)
        engines.ratings.create_rating(booking.id, 'user_to_cleaner', 5)

        with pytest.raises(Conflict):
            engines.ratings.create_rating(booking.id, 'user_to_cleaner', 4)

    def test_both_directions_allowed(self, app, engines, booking_factory, test_cleaner):
        booking = booking_factory(test_cleaner)

        engines.ratings.create_rating(booking.id, 'user_to_cleaner', 5)
        engines.ratings.create_rating(booking.id, 'cleaner_to_user', 5)

    @pytest.mark.parametrize('stars,sub_scores', [
        (6, {}),
        (0, {}),
        (None, {}),
        ('five', {}),
        (5, {'quality': 0}),
        (5, {'punctuality': 6}),
        (5, {'cleanliness': 5}),
    ])
    def test_invalid_scores(self, app, engines, booking_factory, test_cleaner, stars, sub_scores):
        booking = booking_factory(test_cleaner)

        with pytest.raises(InvalidArgument):
            engines.ratings.create_rating(booking.id, 'user_to_cleaner', stars, **sub_scores)

    def test_invalid_direction(self, app, engines, booking_factory, test_cleaner):
        booking = booking_factory(test_cleaner)

        with pytest.raises(InvalidArgument):
            engines.ratings.create_rating(booking.id, 'admin_to_cleaner', 5)

    def test_unknown_booking(self, app, engines):
        with pytest.raises(NotFound):
            engines.ratings.create_rating('missing', 'user_to_cleaner', 5)


class TestStreak:
    """Test the five-star streak kept on the cleaner"""

    def test_streak_counts_newest_five_stars(self, app, rate, test_cleaner, db_session):
        rate(test_cleaner, 5)
        rate(test_cleaner, 2)
        rate(test_cleaner, 5)
        rate(test_cleaner, 5)

        db_session.refresh(test_cleaner)
        assert test_cleaner.consecutive_five_stars == 2

    def test_streak_counts_private_reviews(self, app, engines, rate, test_cleaner, db_session):
        rate(test_cleaner, 5)
        flagged = rate(test_cleaner, 5)
        engines.ratings.flag_rating(flagged.id, 'Spam')

        db_session.refresh(test_cleaner)
        assert test_cleaner.consecutive_five_stars == 2
        assert test_cleaner.review_count == 1


class TestUpdateRating:
    """Test the 7-day edit window"""

    def test_edit_recomputes_average(self, app, engines, rate, test_cleaner, db_session):
        review = rate(test_cleaner, 5)
        rate(test_cleaner, 5)

        engines.ratings.update_rating(review.id, {'rating': 3, 'comment': 'Missed a room'})

        db_session.refresh(test_cleaner)
        assert test_cleaner.average_rating == 4.0
        assert test_cleaner.consecutive_five_stars == 1

    def test_edit_after_window(self, app, engines, rate, test_cleaner, db_session):
        review = rate(test_cleaner, 5)
        review.created_at = utcnow() - timedelta(days=8)
        db_session.commit()

        with pytest.raises(Conflict):
            engines.ratings.update_rating(review.id, {'rating': 1})

    def test_edit_readonly_field(self, app, engines, rate, test_cleaner):
        review = rate(test_cleaner, 5)

        with pytest.raises(InvalidArgument):
            engines.ratings.update_rating(review.id, {'to_cleaner_id': 'someone-else'})

    def test_edit_invalid_score(self, app, engines, rate, test_cleaner):
        review = rate(test_cleaner, 5)

        with pytest.raises(InvalidArgument):
            engines.ratings.update_rating(review.id, {'quality': 9})


class TestModeration:
    """Test flagging and approval"""

    def test_flag_hides_review(self, app, engines, rate, test_cleaner, db_session):
        rate(test_cleaner, 5)
        bad = rate(test_cleaner, 1)

        engines.ratings.flag_rating(bad.id, 'Abusive comment')

        db_session.refresh(test_cleaner)
        assert test_cleaner.average_rating == 5.0
        assert engines.ratings.get_cleaner_ratings(test_cleaner.id)['total'] == 1
        assert [r.id for r in engines.ratings.get_flagged_ratings()] == [bad.id]

    def test_flag_requires_reason(self, app, engines, rate, test_cleaner):
        review = rate(test_cleaner, 5)

        with pytest.raises(InvalidArgument):
            engines.ratings.flag_rating(review.id, '')

    def test_approve_restores_review(self, app, engines, rate, test_cleaner, db_session):
        rate(test_cleaner, 5)
        bad = rate(test_cleaner, 1)
        engines.ratings.flag_rating(bad.id, 'Abusive comment')

        approved = engines.ratings.approve_rating(bad.id)

        db_session.refresh(test_cleaner)
        assert approved.flagged is False
        assert approved.is_public is True
        assert test_cleaner.average_rating == 3.0
        assert engines.ratings.get_flagged_ratings() == []


class TestQueries:
    """Test listings and statistics"""

    def test_stats(self, app, engines, rate, test_cleaner):
        rate(test_cleaner, 5, quality=5, punctuality=4)
        rate(test_cleaner, 5, quality=4)
        rate(test_cleaner, 3)

        stats = engines.ratings.get_cleaner_rating_stats(test_cleaner.id)

        assert stats['total'] == 3
        assert stats['average'] == 4.33
        assert stats['distribution'] == {5: 2, 4: 0, 3: 1, 2: 0, 1: 0}
        assert stats['avg_quality'] == 4.5
        assert stats['avg_punctuality'] == 4.0
        assert stats['avg_communication'] == 0

    def test_listing_pagination(self, app, engines, rate, test_cleaner):
        for stars in (5, 4, 3):
            rate(test_cleaner, stars)

        page = engines.ratings.get_cleaner_ratings(test_cleaner.id, limit=2, offset=1)

        assert page['total'] == 3
        assert len(page['ratings']) == 2

    def test_unknown_cleaner(self, app, engines):
        with pytest.raises(NotFound):
            engines.ratings.get_cleaner_rating_stats('missing')
