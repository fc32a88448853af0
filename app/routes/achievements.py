"""
Achievement API routes
"""
from flask import Blueprint, jsonify, request

from app.services import get_engines
from app.utils import int_arg, json_body, require_auth, require_role

achievements_bp = Blueprint('achievements', __name__)


@achievements_bp.route('/<actor_type>/<actor_id>', methods=['GET'])
def list_achievements(actor_type, actor_id):
    """
    Achievements held by a client or cleaner
    GET /api/achievements/cleaner/:id
    """
    achievements = get_engines().achievements.get_achievements(actor_type, actor_id)
    return jsonify({'achievements': [a.to_dict() for a in achievements]}), 200


@achievements_bp.route('/cleaner/<cleaner_id>/badges', methods=['GET'])
def main_badges(cleaner_id):
    engines = get_engines()
    return jsonify({
        'badges': engines.achievements.get_cleaner_main_badges(cleaner_id),
        'earnings_bonus_percent': engines.achievements.calculate_total_achievement_bonus(cleaner_id),
    }), 200


@achievements_bp.route('/ranking/<actor_type>', methods=['GET'])
def achievement_ranking(actor_type):
    limit = int_arg('limit', 10, minimum=1, maximum=100)
    ranking = get_engines().achievements.get_achievement_ranking(actor_type, limit=limit)
    return jsonify({'ranking': ranking}), 200


@achievements_bp.route('', methods=['POST'])
@require_auth
@require_role('admin')
def unlock_achievement():
    """
    Grant an achievement by hand
    POST /api/achievements
    Body: {"actor_type": "cleaner", "actor_id": "...", "type": "specialist"}
    """
    data = json_body('actor_type', 'actor_id', 'type')
    achievement = get_engines().achievements.unlock(
        data['actor_type'],
        data['actor_id'],
        data['type'],
        data={'awarded_for': data.get('awarded_for', 'admin'), 'awarded_by': request.user_id},
    )
    return jsonify({'achievement': achievement.to_dict()}), 201


@achievements_bp.route('/<achievement_id>/progress', methods=['PATCH'])
@require_auth
@require_role('admin')
def update_progress(achievement_id):
    data = json_body('progress')
    achievement = get_engines().achievements.update_progress(achievement_id, data['progress'])
    return jsonify({'achievement': achievement.to_dict()}), 200
