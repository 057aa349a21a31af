"""
Order placement, status transitions and cancellation
"""
import logging
import math
import uuid
from datetime import datetime, timedelta
from flask import current_app
from yumrun import db
from yumrun.models.models import MenuItem, Order, OrderItem, Payment
from yumrun.services import loyalty
from yumrun.services.notification_service import NotificationService
from yumrun.services.nutrition import unit_order_nutrition
from yumrun.services.order_events import broadcast_order_status
from yumrun.services.pricing import normalize_customization, unit_price
from yumrun.utils.auth import ADMIN, DELIVERY_RIDER, RESTAURANT
from yumrun.utils.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from yumrun.utils.helpers import is_valid_object_id, require_object_id

logger = logging.getLogger(__name__)

ORDER_STATUSES = ('PENDING', 'CONFIRMED', 'PREPARING', 'READY', 'OUT_FOR_DELIVERY', 'DELIVERED', 'CANCELLED')
PAYMENT_METHODS = ('CASH', 'KHALTI')
PAYMENT_STATUSES = ('PENDING', 'PAID', 'FAILED', 'REFUNDED')

TRANSITIONS = {
    'PENDING': ('CONFIRMED', 'CANCELLED'),
    'CONFIRMED': ('PREPARING', 'CANCELLED'),
    'PREPARING': ('READY',),
    'READY': ('OUT_FOR_DELIVERY',),
    'OUT_FOR_DELIVERY': ('DELIVERED',),
}

# statuses each role may move an order into; admins may use any legal transition
ROLE_TARGETS = {
    RESTAURANT: ('CONFIRMED', 'PREPARING', 'READY', 'CANCELLED'),
    DELIVERY_RIDER: ('OUT_FOR_DELIVERY', 'DELIVERED'),
}

CANCELLABLE_STATUSES = ('PENDING', 'CONFIRMED')
ESTIMATED_DELIVERY_MINUTES = 45


def generate_order_number():
    return f"YR{datetime.utcnow():%Y%m%d%H%M%S}{uuid.uuid4().hex[:6].upper()}"


def can_transition(current, new):
    return new in TRANSITIONS.get(current, ())


def can_view(order, user):
    if user.role == ADMIN or order.user_id == user.id:
        return True
    if order.assigned_rider_id and order.assigned_rider_id == user.id:
        return True
    return bool(order.restaurant and order.restaurant.owner_id == user.id)


def get_order_for(order_id, user):
    require_object_id(order_id, 'order ID')
    order = Order.query.get(order_id)
    if order is None:
        raise NotFoundError('Order not found')
    if not can_view(order, user):
        raise ForbiddenError('Not authorized to access this order')
    return order


def find_order(order_ref):
    """Look an order up by id, or by order number when the value is not an id"""
    if is_valid_object_id(order_ref):
        return Order.query.get(order_ref)
    return Order.query.filter_by(order_number=str(order_ref)).first()


def _parse_items(raw_items):
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError('Order must contain at least one item')

    parsed = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            raise ValidationError('Invalid order item')
        product_id = raw.get('product_id') or raw.get('productId')
        require_object_id(product_id, 'product ID')
        try:
            quantity = int(raw.get('quantity', 1))
        except (TypeError, ValueError):
            raise ValidationError('Item quantity must be an integer')
        if quantity < 1:
            raise ValidationError('Item quantity must be at least 1')
        parsed.append((product_id, quantity, raw.get('customization')))
    return parsed


def _parse_delivery_address(address):
    if isinstance(address, str) and address.strip():
        return address.strip()
    if isinstance(address, dict) and address:
        return address
    raise ValidationError('Delivery address is required')


def _to_int(value, label):
    if value in (None, ''):
        return 0
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f'{label} must be an integer')
    if number < 0:
        raise ValidationError(f'{label} cannot be negative')
    return number


def _to_amount(value, label):
    if value in (None, ''):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{label} must be a number')
    if not math.isfinite(number):
        raise ValidationError(f'{label} must be a number')
    if number < 0:
        raise ValidationError(f'{label} cannot be negative')
    return number


def create_order(user, data):
    """Price and persist a new order for ``user``; the caller commits"""
    parsed = _parse_items(data.get('items'))
    delivery_address = _parse_delivery_address(data.get('delivery_address') or data.get('deliveryAddress'))

    payment_method = str(data.get('payment_method') or data.get('paymentMethod') or 'CASH').upper()
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"Payment method must be one of: {', '.join(PAYMENT_METHODS)}")

    tip = _to_amount(data.get('tip'), 'tip')
    points_requested = _to_int(
        data.get('loyalty_points_to_use', data.get('loyaltyPointsToUse')), 'loyalty_points_to_use'
    )

    restaurant = None
    order_items = []
    total_price = 0.0
    for product_id, quantity, customization in parsed:
        menu_item = MenuItem.query.get(product_id)
        if menu_item is None:
            raise NotFoundError(f'Menu item {product_id} not found')
        if restaurant is None:
            restaurant = menu_item.restaurant
        elif menu_item.restaurant_id != restaurant.id:
            raise ValidationError('All items in an order must come from the same restaurant')
        if not menu_item.is_available:
            raise ValidationError(f'{menu_item.item_name} is currently unavailable')

        normalized = normalize_customization(menu_item, customization)
        price = unit_price(menu_item, normalized)
        total_price += price * quantity
        order_items.append(OrderItem(
            product_id=menu_item.id,
            name=menu_item.item_name,
            price=price,
            quantity=quantity,
            options=[{'name': a['name'], 'value': 'added', 'price': a['price']}
                     for a in normalized['added_ingredients']],
            customization=normalized,
            nutritional_info=unit_order_nutrition(menu_item, normalized)
        ))

    if restaurant is None or not restaurant.is_approved:
        raise ValidationError('Restaurant is not accepting orders')
    if not restaurant.is_open:
        raise ValidationError(f'{restaurant.name} is currently closed')

    total_price = round(total_price, 2)
    if restaurant.minimum_order and total_price < restaurant.minimum_order:
        raise ValidationError(f'Minimum order for {restaurant.name} is {restaurant.minimum_order:.2f}')

    config = current_app.config
    delivery_fee = restaurant.delivery_fee if restaurant.delivery_fee is not None else config['DEFAULT_DELIVERY_FEE']
    if loyalty.has_free_delivery(user):
        delivery_fee = 0.0
    tax = round(total_price * config['TAX_RATE'], 2)

    # 1 point = 1 currency unit, capped by the balance and the order total
    pre_discount_total = total_price + delivery_fee + tax + tip
    points_used = min(points_requested, user.loyalty_points or 0, int(math.floor(pre_discount_total)))

    order = Order(
        order_number=generate_order_number(),
        user_id=user.id,
        restaurant_id=restaurant.id,
        items=order_items,
        total_price=total_price,
        delivery_fee=delivery_fee,
        tax=tax,
        tip=tip,
        loyalty_points_used=points_used,
        payment_method=payment_method,
        payment_status='PENDING',
        payment_details={},
        delivery_address=delivery_address,
        special_instructions=data.get('special_instructions') or data.get('specialInstructions') or '',
        estimated_delivery_time=datetime.utcnow() + timedelta(minutes=ESTIMATED_DELIVERY_MINUTES)
    )
    order.add_status_update('PENDING', updated_by=user.id)
    order.recalculate_totals()
    db.session.add(order)
    db.session.flush()

    if points_used:
        loyalty.redeem_points(
            user, points_used, f'Points redeemed on order #{order.order_number}',
            restaurant_id=restaurant.id, reference_id=order.id
        )

    if payment_method == 'CASH':
        db.session.add(Payment(
            order_id=order.id,
            amount=order.grand_total,
            payment_method='Cash on Delivery',
            status='Pending'
        ))

    ordered_ids = {item.product_id for item in order_items}
    user.cart = [line for line in user.cart or [] if line.get('product_id') not in ordered_ids]

    logger.info(f"Order {order.order_number} created for user {user.id} ({order.grand_total:.2f})")
    return order


def mark_paid(order, transaction_id=None):
    order.is_paid = True
    order.paid_at = datetime.utcnow()
    order.payment_status = 'PAID'
    for payment in order.payments:
        if payment.status == 'Pending':
            payment.status = 'Completed'
            if transaction_id:
                payment.transaction_id = transaction_id


def award_points_safely(order):
    """Award order points; a failure is logged and never propagates"""
    try:
        return loyalty.award_order_points(order.user, order)
    except ConflictError:
        logger.info(f"Loyalty points already awarded for order {order.id}")
    except Exception:
        logger.exception(f"Failed to award loyalty points for order {order.id}")
    return None


def _refund(order):
    if order.is_paid:
        order.payment_status = 'REFUNDED'
        details = dict(order.payment_details or {})
        if details:
            details['status'] = 'refunded'
            order.payment_details = details
        for payment in order.payments:
            if payment.status == 'Completed':
                payment.status = 'Refunded'
        loyalty.revoke_order_points(order.user, order)
    else:
        for payment in order.payments:
            if payment.status == 'Pending':
                payment.status = 'Failed'
    loyalty.refund_points(order.user, order)


def cancel_order(order, user):
    if order.user_id != user.id and user.role != ADMIN:
        raise ForbiddenError('Not authorized to cancel this order')
    if order.status not in CANCELLABLE_STATUSES:
        raise ValidationError(f'Order cannot be cancelled once it is {order.status}')

    order.add_status_update('CANCELLED', updated_by=user.id)
    _refund(order)
    logger.info(f"Order {order.id} cancelled by {user.id}")
    return order


def _check_actor(order, user, new_status):
    if user.role == ADMIN:
        return
    allowed = ROLE_TARGETS.get(user.role, ())
    if new_status not in allowed:
        raise ForbiddenError(f'Not authorized to set status {new_status}')
    if user.role == RESTAURANT:
        if order.restaurant is None or order.restaurant.owner_id != user.id:
            raise ForbiddenError('Not authorized to update this order')
    elif user.role == DELIVERY_RIDER:
        if order.assigned_rider_id != user.id:
            raise ForbiddenError('This order is not assigned to you')


def update_status(order, new_status, user):
    new_status = str(new_status or '').upper()
    if new_status not in ORDER_STATUSES:
        raise ValidationError(f"Status must be one of: {', '.join(ORDER_STATUSES)}")
    if not can_transition(order.status, new_status):
        raise ValidationError(f'Cannot change order status from {order.status} to {new_status}')
    _check_actor(order, user, new_status)

    order.add_status_update(new_status, updated_by=user.id)

    if new_status == 'CANCELLED':
        _refund(order)
    elif new_status == 'DELIVERED':
        order.actual_delivery_time = datetime.utcnow()
        rider = order.assigned_rider
        if rider is not None:
            details = dict(rider.rider_details or {})
            details['completed_deliveries'] = details.get('completed_deliveries', 0) + 1
            rider.rider_details = details
        if order.payment_method == 'CASH' and not order.is_paid:
            mark_paid(order)
            award_points_safely(order)

    logger.info(f"Order {order.id} moved to {new_status} by {user.id}")
    return order


def assign_rider(order, rider):
    details = rider.rider_details or {}
    if not details.get('approved'):
        raise ForbiddenError('Rider account is not approved yet')
    if order.status != 'READY':
        raise ValidationError('Only orders that are READY can be accepted')
    if order.assigned_rider_id:
        raise ConflictError('Order already has a rider assigned')
    order.assigned_rider_id = rider.id
    return order


def notify_status_change(order, confirmation=False):
    """Push realtime events and customer notifications after a commit"""
    try:
        broadcast_order_status(order)
    except Exception:
        logger.exception(f"Failed to broadcast status for order {order.id}")

    try:
        service = NotificationService()
        if confirmation:
            service.send_order_confirmation(order)
        else:
            service.send_order_status_update(order)
    except Exception:
        logger.exception(f"Failed to notify customer about order {order.id}")
