"""Orders blueprint - create, view and edit orders (JSON)."""
from flask import Blueprint, request, jsonify, current_app, g

from dealerdesk.blueprints.metrics import record_order_edit
from dealerdesk.database import get_session
from dealerdesk.exceptions import DealerDeskError, NotFoundError, UnauthorizedError, ValidationError
from dealerdesk.middleware import require_login
from dealerdesk.models import Order
from dealerdesk.services.order_service import OrderChanges, create_order, edit_order, get_order_details

orders_bp = Blueprint('orders', __name__, url_prefix='/orders')


def _check_order_access(order_id: int):
    """Only the order's owner or an admin may see or change it."""
    order = get_session().get(Order, order_id)
    if not order:
        raise NotFoundError(f'Order {order_id} not found.')
    if order.user_id != g.user.id and not g.user.is_admin():
        raise UnauthorizedError('You cannot access this order')
    return order


@orders_bp.route('', methods=['POST'])
@require_login
def new_order():
    """Create an order for the current user: {"items": [{"product_id", "quantity"}]}."""
    payload = request.get_json(silent=True) or {}
    items = payload.get('items')
    if not isinstance(items, list):
        raise ValidationError('items must be a list')

    try:
        result = create_order(get_session(), g.user, items)
    except DealerDeskError as e:
        record_order_edit('create', type(e).__name__)
        raise

    record_order_edit('create', 'ok')
    return jsonify({'status': 'ok', 'order': result.to_dict()}), 201


@orders_bp.route('/<int:order_id>/items', methods=['PATCH'])
@require_login
def update_order_items(order_id: int):
    """
    Edit an order's lines. Discount is recomputed for the whole order.

    Body: {"items": [{"product_id", "quantity"}], "add": [...], "remove": [product_id]}
    """
    session = get_session()
    _check_order_access(order_id)

    changes = OrderChanges.from_payload(request.get_json(silent=True))

    try:
        result = edit_order(session, order_id, g.user_role, changes)
    except DealerDeskError as e:
        record_order_edit('edit', type(e).__name__)
        current_app.logger.warning(f"Order {order_id} edit rejected: {e.message}")
        raise

    record_order_edit('edit', 'ok')
    return jsonify({'status': 'ok', 'order': result.to_dict()})


@orders_bp.route('/<int:order_id>', methods=['GET'])
@require_login
def order_details(order_id: int):
    """Order lines with saved totals and a quote at the viewer's tier."""
    _check_order_access(order_id)
    details = get_order_details(get_session(), order_id, g.user_role)
    return jsonify({'status': 'ok', 'order': details})
