from flask import Blueprint, current_app
from flask_jwt_extended import current_user
from yumrun import db
from yumrun.models.models import Order
from yumrun.services import order_service
from yumrun.services.order_events import broadcast_order_status
from yumrun.utils.auth import DELIVERY_RIDER, roles_required
from yumrun.utils.errors import ForbiddenError, NotFoundError, ValidationError
from yumrun.utils.helpers import api_response, get_json_body, pagination_args, pagination_meta, require_object_id

delivery_bp = Blueprint('delivery', __name__)

ACTIVE_DELIVERY_STATUSES = ('READY', 'OUT_FOR_DELIVERY')


def _require_approved_rider():
    details = current_user.rider_details or {}
    if not details.get('approved'):
        raise ForbiddenError('Rider account is not approved yet')
    return details


@delivery_bp.route('/api/delivery/available', methods=['GET'])
@roles_required(DELIVERY_RIDER)
def available_deliveries():
    """Orders ready for pickup that no rider has accepted"""
    _require_approved_rider()
    orders = (
        Order.query
        .filter(Order.status == 'READY', Order.assigned_rider_id.is_(None))
        .order_by(Order.created_at)
        .all()
    )
    return api_response([o.to_dict() for o in orders])


@delivery_bp.route('/api/delivery/<order_id>/accept', methods=['POST'])
@roles_required(DELIVERY_RIDER)
def accept_delivery(order_id):
    _require_approved_rider()
    require_object_id(order_id, 'order ID')
    order = Order.query.get(order_id)
    if order is None:
        raise NotFoundError('Order not found')

    order_service.assign_rider(order, current_user)
    db.session.commit()
    current_app.logger.info(f"Rider {current_user.id} accepted order {order.id}")

    broadcast_order_status(order)
    return api_response(order.to_dict(), 'Delivery accepted')


@delivery_bp.route('/api/delivery/my', methods=['GET'])
@roles_required(DELIVERY_RIDER)
def my_deliveries():
    """Deliveries assigned to the current rider"""
    page, limit = pagination_args()
    query = Order.query.filter_by(assigned_rider_id=current_user.id)
    total = query.count()
    orders = query.order_by(Order.created_at.desc()).offset((page - 1) * limit).limit(limit).all()

    active = [o.to_dict() for o in orders if o.status in ACTIVE_DELIVERY_STATUSES]
    return api_response(
        [o.to_dict() for o in orders],
        pagination=pagination_meta(page, limit, total),
        active=active
    )


@delivery_bp.route('/api/delivery/availability', methods=['PUT'])
@roles_required(DELIVERY_RIDER)
def update_availability():
    data = get_json_body()
    if not isinstance(data.get('is_available'), bool):
        raise ValidationError('is_available must be true or false')

    details = dict(_require_approved_rider())
    details['is_available'] = data['is_available']
    current_user.rider_details = details
    db.session.commit()

    state = 'available' if details['is_available'] else 'unavailable'
    return api_response({'rider_details': details}, f'You are now {state} for deliveries')
