"""
Punishment API routes: penalties, blocks and their reversal
"""
from flask import Blueprint, jsonify, request

from app.extensions import limiter
from app.services import get_engines
from app.utils import can_access, int_arg, json_body, require_auth, require_role

punishments_bp = Blueprint('punishments', __name__)


@punishments_bp.route('', methods=['POST'])
@limiter.limit("30 per minute")
@require_auth
@require_role('admin')
def apply_punishment():
    """
    Apply a punishment
    POST /api/punishments
    Body: {
        "cleaner_id": "...",
        "type": "no_show" | "cancellation_both" | "low_rating",
        "reason": "...",
        "booking_id": "...",   (optional)
        "dispute_id": "..."    (optional)
    }
    """
    data = json_body('cleaner_id', 'type', 'reason')
    result = get_engines().punishment.apply(
        data['cleaner_id'],
        data['type'],
        data['reason'],
        related={'booking_id': data.get('booking_id'), 'dispute_id': data.get('dispute_id')},
        by_admin=True,
        admin_id=request.user_id,
    )
    return jsonify({
        'punishment': result['punishment'].to_dict(),
        'cleaner': result['cleaner'].to_summary(),
    }), 201


@punishments_bp.route('/<punishment_id>/remove', methods=['POST'])
@require_auth
@require_role('admin')
def remove_punishment(punishment_id):
    """
    Reverse a punishment and restore its points
    POST /api/punishments/:id/remove
    Body: {"reason": "..."}
    """
    data = request.get_json(silent=True) or {}
    punishment = get_engines().punishment.remove(
        punishment_id,
        request.user_id,
        data.get('reason') or 'Removed by admin',
    )
    return jsonify({'punishment': punishment.to_dict()}), 200


@punishments_bp.route('/cleaner/<cleaner_id>/status', methods=['GET'])
@require_auth
def blocked_status(cleaner_id):
    """Whether the cleaner can currently take bookings"""
    if not can_access(cleaner_id):
        return jsonify({'error': 'Insufficient permissions'}), 403

    status = get_engines().punishment.check_blocked(cleaner_id)
    if status['is_blocked']:
        status['until'] = status['until'].isoformat()
    status['punishments'] = [p.to_dict() for p in status['punishments']]
    return jsonify(status), 200


@punishments_bp.route('/cleaner/<cleaner_id>', methods=['GET'])
@require_auth
def punishment_history(cleaner_id):
    if not can_access(cleaner_id):
        return jsonify({'error': 'Insufficient permissions'}), 403

    limit = int_arg('limit', 50, minimum=1, maximum=200)
    history = get_engines().punishment.get_punishment_history(cleaner_id, limit=limit)
    history['punishments'] = [p.to_dict() for p in history['punishments']]
    return jsonify(history), 200


@punishments_bp.route('/active', methods=['GET'])
@require_auth
@require_role('admin')
def active_punishments():
    limit = int_arg('limit', 100, minimum=1, maximum=500)
    punishments = get_engines().punishment.get_all_active_punishments(limit=limit)
    return jsonify({
        'total': len(punishments),
        'punishments': [
            dict(p.to_dict(), cleaner=p.cleaner.to_summary()) for p in punishments
        ],
    }), 200


@punishments_bp.route('/expire', methods=['POST'])
@require_auth
@require_role('admin')
def expire_punishments():
    """Run the expiry sweep now"""
    return jsonify({'expired': get_engines().punishment.expire_punishments()}), 200
