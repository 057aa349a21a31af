from flask import Blueprint, current_app
from flask_jwt_extended import jwt_required, current_user
from yumrun import db
from yumrun.models.models import Order, Payment
from yumrun.services import payment_service
from yumrun.services.order_events import broadcast_payment_status
from yumrun.services.order_service import find_order
from yumrun.utils.auth import ADMIN
from yumrun.utils.errors import ApiError, ForbiddenError, NotFoundError, ValidationError
from yumrun.utils.helpers import api_response, get_json_body, require_fields, require_object_id, to_number

payment_bp = Blueprint('payment', __name__)


def _find_owned_order(order_ref):
    order = find_order(order_ref)
    if order is None:
        raise NotFoundError(f'Order not found with id: {order_ref}')
    if order.user_id != current_user.id and current_user.role != ADMIN:
        raise ForbiddenError('Unauthorized - order does not belong to user')
    return order


@payment_bp.route('/api/payment/khalti/initiate', methods=['POST'])
@jwt_required()
def initiate_khalti_payment():
    """Start a Khalti payment for an order"""
    data = get_json_body()
    require_fields(data, 'amount', 'orderId', message='Amount and order ID are required')
    amount = to_number(data['amount'], 'amount')
    if amount <= 0:
        raise ValidationError('Amount must be greater than zero')

    order = _find_owned_order(data['orderId'])
    result = payment_service.initiate_payment(order, current_user, amount, data.get('returnUrl'))
    db.session.commit()

    return api_response(result, 'Payment initiated')


@payment_bp.route('/api/payment/khalti/verify', methods=['POST'])
@jwt_required()
def verify_khalti_payment():
    """Confirm a Khalti payment after the customer returns from checkout"""
    data = get_json_body()
    require_fields(data, 'pidx', 'orderId', message='Payment ID and order ID are required')

    order = _find_owned_order(data['orderId'])
    khalti_status, already_verified = payment_service.verify_payment(
        order, data['pidx'], updated_by=current_user.id
    )
    if already_verified:
        return api_response({'message': 'Payment already verified', 'order': order.to_dict()},
                            'Payment already verified')

    db.session.commit()
    broadcast_payment_status(order)
    return api_response({'status': khalti_status, 'order': order.to_dict()})


@payment_bp.route('/api/payment/khalti/webhook', methods=['POST'])
def khalti_webhook():
    """Receive Khalti callbacks; always acknowledged"""
    data = get_json_body()
    event = data.get('event') or 'UNKNOWN'
    payload = data.get('data') if isinstance(data.get('data'), dict) else data
    current_app.logger.info(f"Received Khalti event: {event}")

    pidx = payload.get('pidx')
    if pidx:
        order = Order.query.filter(Order.payments.any(Payment.pidx == pidx)).first()
        if order is None:
            current_app.logger.warning(f"Khalti webhook for unknown pidx {pidx}")
        else:
            try:
                payment_service.verify_payment(order, pidx)
                db.session.commit()
                broadcast_payment_status(order)
            except ApiError as e:
                db.session.rollback()
                current_app.logger.error(f"Khalti webhook verification failed for {pidx}: {e.message}")

    return api_response(received=True)


@payment_bp.route('/api/payment/status/<order_id>', methods=['GET'])
@jwt_required()
def get_payment_status(order_id):
    require_object_id(order_id, 'order ID')
    order = Order.query.get(order_id)
    if order is None:
        raise NotFoundError('Order not found')

    is_restaurant_owner = order.restaurant is not None and order.restaurant.owner_id == current_user.id
    if order.user_id != current_user.id and current_user.role != ADMIN and not is_restaurant_owner:
        raise ForbiddenError('Unauthorized to view this order')

    payment = (
        Payment.query.filter_by(order_id=order.id)
        .order_by(Payment.date.desc())
        .first()
    )
    if payment is None:
        return api_response(message='Payment not initiated for this order', paymentInitiated=False)

    return api_response(payment.to_dict(), paymentInitiated=True,
                        order={'payment_status': order.payment_status, 'is_paid': order.is_paid})
