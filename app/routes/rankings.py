"""
Ranking API routes
"""
from flask import Blueprint, jsonify, request

from app.services import get_engines
from app.utils import int_arg, json_body, require_auth, require_role

rankings_bp = Blueprint('rankings', __name__)


@rankings_bp.route('/global', methods=['GET'])
def global_ranking():
    """
    Global leaderboard
    GET /api/rankings/global?limit=50&offset=0
    """
    limit = int_arg('limit', 50, minimum=1, maximum=100)
    offset = int_arg('offset', 0, minimum=0)
    return jsonify(get_engines().ranking.get_global_ranking(limit=limit, offset=offset)), 200


@rankings_bp.route('/region/<region>', methods=['GET'])
def regional_ranking(region):
    limit = int_arg('limit', 20, minimum=1, maximum=100)
    return jsonify(get_engines().ranking.get_regional_ranking(region, limit=limit)), 200


@rankings_bp.route('/cleaner/<cleaner_id>', methods=['GET'])
def cleaner_rank(cleaner_id):
    return jsonify(get_engines().ranking.get_cleaner_rank(cleaner_id)), 200


@rankings_bp.route('/cleaner/<cleaner_id>/grade', methods=['GET'])
def grade_card(cleaner_id):
    """
    Grade card (A-F) for a month, current month by default
    GET /api/rankings/cleaner/:id/grade?year=2026&month=3
    """
    card = get_engines().ranking.get_cleaner_grade_card(
        cleaner_id,
        year=request.args.get('year'),
        month=request.args.get('month'),
    )
    return jsonify(card), 200


@rankings_bp.route('/monthly', methods=['POST'])
@require_auth
@require_role('admin')
def calculate_monthly():
    """
    Recalculate the ranking of a month
    POST /api/rankings/monthly
    Body: {"year": 2026, "month": 3}
    """
    data = json_body('year', 'month')
    return jsonify(get_engines().ranking.calculate_monthly_ranking(data['year'], data['month'])), 200
