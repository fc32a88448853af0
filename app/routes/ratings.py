"""
Rating API routes. Submitting a client review runs the bonus check.
"""
import logging

from flask import Blueprint, jsonify, request

from app.errors import IncentiveError
from app.models import Booking, Rating
from app.models.rating import SUB_SCORES, USER_TO_CLEANER
from app.services import get_engines
from app.services.base import get_or_404
from app.services.lifecycle import on_review_submitted
from app.utils import can_access, int_arg, is_admin, json_body, require_auth, require_role

ratings_bp = Blueprint('ratings', __name__)
logger = logging.getLogger(__name__)


def _author_id(booking, direction):
    return booking.user_id if direction == USER_TO_CLEANER else booking.cleaner_id


@ratings_bp.route('', methods=['POST'])
@require_auth
def create_rating():
    """
    Rate a completed booking
    POST /api/ratings
    Body: {
        "booking_id": "...",
        "rating": 5,
        "direction": "user_to_cleaner",   (default)
        "comment": "...",
        "punctuality": 5, "professionalism": 5, "quality": 5, "communication": 5
    }
    """
    data = json_body('booking_id', 'rating')
    direction = data.get('direction', USER_TO_CLEANER)

    booking = get_or_404(Booking, data['booking_id'], 'Booking')
    if not is_admin() and request.user_id != _author_id(booking, direction):
        return jsonify({'error': 'Only a party to the booking can rate it'}), 403

    engines = get_engines()
    rating = engines.ratings.create_rating(
        booking.id,
        direction,
        data['rating'],
        comment=data.get('comment'),
        **{name: data.get(name) for name in SUB_SCORES},
    )
    try:
        bonus = on_review_submitted(rating, engines=engines)
    except IncentiveError:
        logger.exception('Post-review incentives failed for rating %s', rating.id)
        bonus = None

    return jsonify({
        'rating': rating.to_dict(),
        'bonus': bonus.to_dict() if bonus else None,
    }), 201


@ratings_bp.route('/<rating_id>', methods=['PATCH'])
@require_auth
def update_rating(rating_id):
    """Edit a rating within 7 days"""
    rating = get_or_404(Rating, rating_id, 'Rating')
    author = rating.given_by_user_id or rating.given_by_cleaner_id
    if not can_access(author):
        return jsonify({'error': 'Only the author can edit a rating'}), 403

    data = json_body()
    rating = get_engines().ratings.update_rating(rating_id, data)
    return jsonify({'rating': rating.to_dict()}), 200


@ratings_bp.route('/<rating_id>/flag', methods=['POST'])
@require_auth
def flag_rating(rating_id):
    data = json_body('reason')
    rating = get_engines().ratings.flag_rating(rating_id, data['reason'])
    return jsonify({'rating': rating.to_dict()}), 200


@ratings_bp.route('/<rating_id>/approve', methods=['POST'])
@require_auth
@require_role('admin')
def approve_rating(rating_id):
    rating = get_engines().ratings.approve_rating(rating_id)
    return jsonify({'rating': rating.to_dict()}), 200


@ratings_bp.route('/flagged', methods=['GET'])
@require_auth
@require_role('admin')
def flagged_ratings():
    limit = int_arg('limit', 50, minimum=1, maximum=200)
    ratings = get_engines().ratings.get_flagged_ratings(limit=limit)
    return jsonify({'ratings': [r.to_dict() for r in ratings]}), 200


@ratings_bp.route('/cleaner/<cleaner_id>', methods=['GET'])
def cleaner_ratings(cleaner_id):
    """Public reviews of a cleaner, newest first"""
    limit = int_arg('limit', 50, minimum=1, maximum=100)
    offset = int_arg('offset', 0, minimum=0)
    result = get_engines().ratings.get_cleaner_ratings(cleaner_id, limit=limit, offset=offset)
    result['ratings'] = [r.to_dict() for r in result['ratings']]
    return jsonify(result), 200


@ratings_bp.route('/cleaner/<cleaner_id>/stats', methods=['GET'])
def cleaner_rating_stats(cleaner_id):
    return jsonify(get_engines().ratings.get_cleaner_rating_stats(cleaner_id)), 200
