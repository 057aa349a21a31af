"""
Khalti payment lifecycle for orders
"""
import logging
from datetime import datetime
from flask import current_app
from yumrun import db
from yumrun.models.models import Payment
from yumrun.services.khalti import (
    KhaltiClient, ORDER_PAYMENT_STATUS_MAP, PAYMENT_RECORD_STATUS_MAP, map_khalti_status
)
from yumrun.services.order_service import award_points_safely, mark_paid
from yumrun.utils.errors import ValidationError

logger = logging.getLogger(__name__)

AMOUNT_TOLERANCE = 0.01


def khalti_payment_record(order):
    for payment in sorted(order.payments, key=lambda p: p.date or datetime.min, reverse=True):
        if payment.payment_method == 'Khalti':
            return payment
    return None


def initiate_payment(order, user, amount, return_url=None, client=None):
    """Open a Khalti payment session for ``order`` and remember its pidx"""
    if order.is_paid:
        raise ValidationError('Order is already paid')
    if order.status == 'CANCELLED':
        raise ValidationError('Cannot pay for a cancelled order')
    if abs(float(amount) - (order.grand_total or 0)) > AMOUNT_TOLERANCE:
        raise ValidationError('Amount does not match the order total')

    frontend_url = current_app.config['FRONTEND_URL']
    client = client or KhaltiClient.from_app()
    order_ref = order.order_number or order.id
    response = client.initiate(
        amount=amount,
        purchase_order_id=order.id,
        purchase_order_name=f'Order #{order_ref}',
        return_url=return_url or f'{frontend_url}/payment/verify',
        website_url=frontend_url,
        customer_info={'name': user.full_name, 'email': user.email, 'phone': user.phone}
    )

    pidx = response['pidx']
    order.payment_method = 'KHALTI'
    order.payment_details = {
        'provider': 'khalti',
        'status': 'initiated',
        'session_id': pidx,
        'initiated_at': datetime.utcnow().isoformat()
    }

    record = khalti_payment_record(order)
    if record is None or record.status != 'Pending':
        record = Payment(order_id=order.id, amount=float(amount), payment_method='Khalti', status='Pending')
        db.session.add(record)
    record.pidx = pidx
    record.amount = float(amount)

    # a cash payment placeholder no longer applies once the order is paid online
    for payment in order.payments:
        if payment.payment_method == 'Cash on Delivery' and payment.status == 'Pending':
            payment.status = 'Failed'

    logger.info(f"Khalti payment {pidx} initiated for order {order.id}")
    return {'paymentUrl': response['payment_url'], 'pidx': pidx}


def apply_khalti_status(order, khalti_status, transaction_id=None, updated_by=None):
    """Reflect a Khalti lookup result on the order and its payment record"""
    details = dict(order.payment_details or {})
    details.update({
        'provider': 'khalti',
        'status': map_khalti_status(khalti_status),
        'transaction_id': transaction_id,
        'verified_at': datetime.utcnow().isoformat()
    })
    order.payment_details = details

    record = khalti_payment_record(order)
    if record is not None:
        record.status = PAYMENT_RECORD_STATUS_MAP.get(khalti_status, 'Failed')
        if transaction_id:
            record.transaction_id = transaction_id

    if khalti_status == 'Completed':
        mark_paid(order, transaction_id)
        if order.status == 'PENDING':
            order.add_status_update('CONFIRMED', updated_by=updated_by)
        award_points_safely(order)
    elif khalti_status in ORDER_PAYMENT_STATUS_MAP:
        order.payment_status = ORDER_PAYMENT_STATUS_MAP[khalti_status]
        order.is_paid = False

    logger.info(f"Order {order.id} payment is {details['status']} (Khalti: {khalti_status})")
    return order


def verify_payment(order, pidx, updated_by=None, client=None):
    """
    Look the payment up on Khalti and apply the result.

    Returns ``(khalti_status, already_verified)``. A completed payment is
    never looked up again.
    """
    details = order.payment_details or {}
    if details.get('status') == 'completed':
        return 'Completed', True

    session_id = details.get('session_id')
    if session_id and session_id != pidx:
        raise ValidationError('Payment ID does not match this order')

    client = client or KhaltiClient.from_app()
    lookup = client.lookup(pidx)
    khalti_status = lookup.get('status')
    apply_khalti_status(order, khalti_status, lookup.get('transaction_id'), updated_by)
    return khalti_status, False
