from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required, current_user
from yumrun import db
from yumrun.models.models import Order
from yumrun.services import order_service
from yumrun.utils.auth import ADMIN, CUSTOMER, DELIVERY_RIDER, RESTAURANT, roles_required
from yumrun.utils.errors import NotFoundError, ValidationError
from yumrun.utils.helpers import api_response, get_json_body, pagination_args, pagination_meta, require_fields

orders_bp = Blueprint('orders', __name__)


def _status_filter(query):
    status = request.args.get('status')
    if status:
        status = status.upper()
        if status not in order_service.ORDER_STATUSES:
            raise ValidationError(f'Unknown order status {status}')
        query = query.filter(Order.status == status)
    return query


def _paginated(query):
    page, limit = pagination_args()
    total = query.count()
    orders = query.order_by(Order.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
    return api_response([o.to_dict() for o in orders], pagination=pagination_meta(page, limit, total))


@orders_bp.route('/api/orders', methods=['POST'])
@roles_required(CUSTOMER)
def create_order():
    """Place an order"""
    order = order_service.create_order(current_user, get_json_body())
    db.session.commit()
    order_service.notify_status_change(order, confirmation=True)
    return api_response(order.to_dict(), 'Order placed successfully', 201)


@orders_bp.route('/api/orders', methods=['GET'])
@jwt_required()
def my_orders():
    """Orders placed by the current user"""
    query = _status_filter(Order.query.filter_by(user_id=current_user.id))
    return _paginated(query)


@orders_bp.route('/api/orders/restaurant', methods=['GET'])
@roles_required(RESTAURANT)
def restaurant_orders():
    """Orders received by the current owner's restaurant"""
    restaurant = current_user.restaurant
    if restaurant is None:
        raise NotFoundError('You have not registered a restaurant yet')
    query = _status_filter(Order.query.filter_by(restaurant_id=restaurant.id))
    return _paginated(query)


@orders_bp.route('/api/orders/<order_id>', methods=['GET'])
@jwt_required()
def get_order(order_id):
    order = order_service.get_order_for(order_id, current_user)
    return api_response(order.to_dict())


@orders_bp.route('/api/orders/<order_id>/cancel', methods=['POST'])
@jwt_required()
def cancel_order(order_id):
    """Cancel an order that has not started preparation"""
    order = order_service.get_order_for(order_id, current_user)
    order_service.cancel_order(order, current_user)
    db.session.commit()
    order_service.notify_status_change(order)
    return api_response(order.to_dict(), 'Order cancelled successfully')


@orders_bp.route('/api/orders/<order_id>/status', methods=['POST'])
@roles_required(RESTAURANT, DELIVERY_RIDER, ADMIN)
def update_order_status(order_id):
    data = get_json_body()
    require_fields(data, 'status', message='Status is required')

    order = order_service.get_order_for(order_id, current_user)
    order_service.update_status(order, data['status'], current_user)
    db.session.commit()
    current_app.logger.info(f"Order {order.order_number} is now {order.status}")

    order_service.notify_status_change(order)
    return api_response(order.to_dict(), f'Order status updated to {order.status}')
