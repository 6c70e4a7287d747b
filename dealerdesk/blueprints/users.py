"""Users blueprint - admin tier assignment (JSON)."""
from flask import Blueprint, request, jsonify, g

from dealerdesk.database import get_session
from dealerdesk.middleware import require_login, require_role
from dealerdesk.models import Role
from dealerdesk.services.user_service import assign_role

users_bp = Blueprint('users', __name__, url_prefix='/users')


@users_bp.route('/<int:user_id>/role', methods=['PUT'])
@require_login
@require_role(Role.ADMIN)
def change_role(user_id: int):
    """Set a user's pricing tier: {"role": "dealer_6"}."""
    payload = request.get_json(silent=True) or {}
    user = assign_role(get_session(), user_id, payload.get('role'), acting_user=g.user)
    return jsonify({
        'status': 'ok',
        'user': {'id': user.id, 'email': user.email, 'role': user.role},
    })
