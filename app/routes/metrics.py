"""
Metrics API routes: monthly agility scores and dashboards
"""
from flask import Blueprint, jsonify, request

from app.models import utcnow
from app.services import get_engines
from app.utils import can_access, int_arg, json_body, require_auth, require_role

metrics_bp = Blueprint('metrics', __name__)


def _period():
    now = utcnow()
    return request.args.get('year', now.year), request.args.get('month', now.month)


@metrics_bp.route('/cleaner/<cleaner_id>', methods=['GET'])
@require_auth
def preview_metrics(cleaner_id):
    """
    Compute a cleaner's metrics for a month without storing them
    GET /api/metrics/cleaner/:id?year=2026&month=3
    """
    if not can_access(cleaner_id):
        return jsonify({'error': 'Insufficient permissions'}), 403

    year, month = _period()
    return jsonify(get_engines().agility.compute_agility(cleaner_id, year, month)), 200


@metrics_bp.route('/cleaner/<cleaner_id>/calculate', methods=['POST'])
@require_auth
@require_role('admin')
def save_metrics(cleaner_id):
    """
    Store the month's snapshot
    POST /api/metrics/cleaner/:id/calculate
    Body: {"year": 2026, "month": 3}
    """
    data = json_body('year', 'month')
    metrics = get_engines().agility.save_monthly_metrics(cleaner_id, data['year'], data['month'])
    return jsonify({'metrics': metrics.to_dict()}), 200


@metrics_bp.route('/cleaner/<cleaner_id>/history', methods=['GET'])
@require_auth
def metrics_history(cleaner_id):
    if not can_access(cleaner_id):
        return jsonify({'error': 'Insufficient permissions'}), 403

    months = int_arg('months', 6, minimum=1, maximum=24)
    history = get_engines().agility.get_metrics_history(cleaner_id, months=months)
    return jsonify({'history': [m.to_dict() for m in history]}), 200


@metrics_bp.route('/cleaner/<cleaner_id>/dashboard', methods=['GET'])
@require_auth
def dashboard(cleaner_id):
    if not can_access(cleaner_id):
        return jsonify({'error': 'Insufficient permissions'}), 403
    return jsonify(get_engines().agility.get_cleaner_dashboard(cleaner_id)), 200


@metrics_bp.route('/top', methods=['GET'])
def top_cleaners():
    """Top-percentile cleaners of a month, public"""
    year, month = _period()
    limit = int_arg('limit', 10, minimum=1, maximum=100)
    rows = get_engines().agility.get_top_cleaners(year, month, limit=limit)
    return jsonify({
        'top_cleaners': [
            dict(m.to_dict(), cleaner=m.cleaner.to_summary()) for m in rows
        ],
    }), 200
