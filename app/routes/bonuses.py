"""
Bonus API routes: five-star streak bonuses, payouts and the TOP CLEANER badge
"""
from flask import Blueprint, jsonify, request

from app.extensions import limiter
from app.services import get_engines
from app.utils import can_access, require_auth, require_role

bonuses_bp = Blueprint('bonuses', __name__)


@bonuses_bp.route('/cleaner/<cleaner_id>', methods=['GET'])
@require_auth
def bonus_history(cleaner_id):
    """
    Bonus history of a cleaner
    GET /api/bonuses/cleaner/:id
    """
    if not can_access(cleaner_id):
        return jsonify({'error': 'Insufficient permissions'}), 403

    engines = get_engines()
    bonuses = engines.bonus.get_bonus_history(cleaner_id)
    return jsonify({
        'bonuses': [b.to_dict() for b in bonuses],
        'total_transferred': float(engines.bonus.get_total_bonus_earned(cleaner_id)),
    }), 200


@bonuses_bp.route('/cleaner/<cleaner_id>/badge', methods=['GET'])
def badge(cleaner_id):
    """TOP CLEANER badge state, public"""
    return jsonify(get_engines().bonus.get_badge(cleaner_id)), 200


@bonuses_bp.route('/cleaner/<cleaner_id>/check', methods=['POST'])
@require_auth
@require_role('admin')
def check_bonus(cleaner_id):
    """
    Award a bonus if the cleaner's last ten reviews are all five stars
    POST /api/bonuses/cleaner/:id/check
    """
    bonus = get_engines().bonus.check_and_award(cleaner_id)
    if bonus is None:
        return jsonify({'awarded': False}), 200
    return jsonify({'awarded': True, 'bonus': bonus.to_dict()}), 201


@bonuses_bp.route('/<bonus_id>/transfer', methods=['POST'])
@limiter.limit("10 per minute")
@require_auth
@require_role('admin')
def transfer_bonus(bonus_id):
    """
    Pay out a pending bonus
    POST /api/bonuses/:id/transfer
    """
    if not get_engines().bonus.transfer(bonus_id):
        return jsonify({'error': 'Payout was declined by the gateway', 'transferred': False}), 502
    return jsonify({'transferred': True, 'bonus_id': bonus_id}), 200


@bonuses_bp.route('/badges/expire', methods=['POST'])
@require_auth
@require_role('admin')
def expire_badges():
    expired = get_engines().bonus.expire_top_cleaner_badges()
    return jsonify({'expired': expired, 'requested_by': request.user_id}), 200
