"""
Loyalty program rules: tiers, point calculation, and balance movements.

All balance changes go through ``record_transaction`` so that the user's
balance, the running balance stored on the transaction and the user's tier
stay consistent. Callers own the commit.
"""
import logging
import math
from datetime import datetime, timedelta
from flask import current_app
from sqlalchemy import func
from yumrun import db
from yumrun.models.loyalty import LoyaltyTransaction
from yumrun.models.models import User, Order
from yumrun.utils.errors import ValidationError, ConflictError, NotFoundError

logger = logging.getLogger(__name__)

# Lifetime points required for each tier, lowest first
LOYALTY_TIERS = {
    'BRONZE': 0,
    'SILVER': 1000,
    'GOLD': 5000,
    'PLATINUM': 10000
}

TIER_BENEFITS = {
    'BRONZE': {
        'points_multiplier': 1,
        'perks': ['Basic member benefits']
    },
    'SILVER': {
        'points_multiplier': 1.2,
        'perks': ['10% bonus points', 'Priority customer service']
    },
    'GOLD': {
        'points_multiplier': 1.5,
        'perks': ['Free delivery', '20% bonus points', 'Exclusive promotions']
    },
    'PLATINUM': {
        'points_multiplier': 2,
        'perks': ['Free delivery', 'Double points on all orders', 'Exclusive promotions', 'Birthday rewards']
    }
}

FREE_DELIVERY_TIERS = ('GOLD', 'PLATINUM')


def calculate_tier(lifetime_points):
    tier = 'BRONZE'
    for name, threshold in LOYALTY_TIERS.items():
        if lifetime_points >= threshold:
            tier = name
    return tier


def get_tier_benefits(tier):
    return TIER_BENEFITS.get(tier, TIER_BENEFITS['BRONZE'])


def next_tier_info(tier, lifetime_points):
    """Return ``(next_tier, points_to_next_tier)``; ``(None, 0)`` at the top tier"""
    tiers = list(LOYALTY_TIERS)
    if tier not in tiers or tier == tiers[-1]:
        return None, 0
    next_tier = tiers[tiers.index(tier) + 1]
    return next_tier, max(LOYALTY_TIERS[next_tier] - (lifetime_points or 0), 0)


def calculate_base_points(order_total):
    """10 points for every 100 spent"""
    return int(math.floor(float(order_total) / 100)) * 10


def calculate_order_points(base_points, tier):
    return int(round(base_points * get_tier_benefits(tier)['points_multiplier']))


def has_free_delivery(user):
    return user is not None and user.loyalty_tier in FREE_DELIVERY_TIERS


def update_user_tier(user):
    new_tier = calculate_tier(user.lifetime_loyalty_points or 0)
    if user.loyalty_tier != new_tier:
        logger.info(f"User {user.id} moved from {user.loyalty_tier} to {new_tier}")
        user.loyalty_tier = new_tier
        user.tier_update_date = datetime.utcnow()
    return user


def record_transaction(user, points, type, source, description, restaurant_id=None,
                       reference_id=None, expiry_date=None, adjusted_by=None, count_lifetime=False):
    balance = max((user.loyalty_points or 0) + points, 0)
    transaction = LoyaltyTransaction(
        user_id=user.id,
        restaurant_id=restaurant_id,
        points=points,
        type=type,
        source=source,
        description=description,
        reference_id=reference_id,
        balance=balance,
        expiry_date=expiry_date,
        adjusted_by=adjusted_by
    )
    db.session.add(transaction)

    user.loyalty_points = balance
    if count_lifetime and points > 0:
        user.lifetime_loyalty_points = (user.lifetime_loyalty_points or 0) + points
    update_user_tier(user)
    return transaction


def points_expiry_date():
    days = current_app.config.get('LOYALTY_POINTS_EXPIRY_DAYS', 365)
    return datetime.utcnow() + timedelta(days=days)


def award_order_points(user, order, order_total=None):
    """Credit the points earned by ``order``; each order is credited once"""
    already_awarded = LoyaltyTransaction.query.filter_by(
        user_id=user.id, reference_id=order.id, type='EARN', source='ORDER'
    ).first()
    if already_awarded is not None:
        raise ConflictError('Loyalty points already awarded for this order')

    # points are earned on the item subtotal, never on tax, fees or tip
    total = order.total_price or 0
    if order_total is not None:
        total = min(order_total, total)
    points = calculate_order_points(calculate_base_points(total), user.loyalty_tier)
    if points <= 0:
        return None

    transaction = record_transaction(
        user, points, 'EARN', 'ORDER',
        f'Points earned from order #{order.order_number}',
        restaurant_id=order.restaurant_id,
        reference_id=order.id,
        expiry_date=points_expiry_date(),
        count_lifetime=True
    )
    order.loyalty_points_earned = points
    logger.info(f"Awarded {points} loyalty points to user {user.id} for order {order.id}")
    return transaction


def redeem_points(user, points, description, restaurant_id=None, reference_id=None):
    points = int(points)
    if points <= 0:
        raise ValidationError('Points to redeem must be positive')
    if (user.loyalty_points or 0) < points:
        raise ValidationError('Insufficient loyalty points')
    return record_transaction(
        user, -points, 'REDEEM', 'SYSTEM', description,
        restaurant_id=restaurant_id, reference_id=reference_id
    )


def refund_points(user, order):
    """Return points that were spent on a cancelled order"""
    points = order.loyalty_points_used or 0
    if points <= 0:
        return None
    return record_transaction(
        user, points, 'ADJUST', 'REFUND',
        f'Points returned for cancelled order #{order.order_number}',
        restaurant_id=order.restaurant_id,
        reference_id=order.id
    )


def revoke_order_points(user, order):
    """Take back the points a refunded order earned"""
    points = order.loyalty_points_earned or 0
    if points <= 0:
        return None

    earned = LoyaltyTransaction.query.filter_by(
        user_id=user.id, reference_id=order.id, type='EARN', source='ORDER'
    ).first()
    if earned is not None:
        earned.processed_expiry = True

    user.lifetime_loyalty_points = max((user.lifetime_loyalty_points or 0) - points, 0)
    transaction = record_transaction(
        user, -points, 'ADJUST', 'REFUND',
        f'Points reversed for refunded order #{order.order_number}',
        restaurant_id=order.restaurant_id,
        reference_id=order.id
    )
    order.loyalty_points_earned = 0
    logger.info(f"Reversed {points} loyalty points from user {user.id} for order {order.id}")
    return transaction


def adjust_points(user, points, reason, admin):
    points = int(points)
    if points == 0:
        raise ValidationError('Points must be a non-zero integer')
    return record_transaction(
        user, points, 'ADJUST', 'ADMIN', reason,
        adjusted_by=admin.id if admin is not None else None,
        count_lifetime=True
    )


def restaurant_points(user_id, restaurant_id):
    total = (
        db.session.query(func.coalesce(func.sum(LoyaltyTransaction.points), 0))
        .filter(LoyaltyTransaction.user_id == user_id,
                LoyaltyTransaction.restaurant_id == restaurant_id)
        .scalar()
    )
    return int(total or 0)


def loyalty_summary(user, restaurant_id=None):
    current_points = user.loyalty_points
    if restaurant_id:
        current_points = restaurant_points(user.id, restaurant_id)
    next_tier, points_to_next = next_tier_info(user.loyalty_tier, user.lifetime_loyalty_points)
    return {
        'current_points': current_points,
        'lifetime_points': user.lifetime_loyalty_points,
        'current_tier': user.loyalty_tier,
        'tier_benefits': get_tier_benefits(user.loyalty_tier),
        'next_tier': next_tier,
        'points_to_next_tier': points_to_next,
        'tier_update_date': user.tier_update_date.isoformat() if user.tier_update_date else None
    }


def process_expired_points(now=None):
    """Expire every unprocessed EARN transaction past its expiry date"""
    now = now or datetime.utcnow()
    expired = (
        LoyaltyTransaction.query
        .filter(LoyaltyTransaction.type == 'EARN',
                LoyaltyTransaction.processed_expiry.is_(False),
                LoyaltyTransaction.expiry_date < now)
        .order_by(LoyaltyTransaction.expiry_date)
        .all()
    )

    processed = 0
    for earned in expired:
        user = User.query.get(earned.user_id)
        if user is None:
            logger.error(f"User not found for loyalty transaction {earned.id}")
            continue

        earned_on = earned.created_at.date().isoformat() if earned.created_at else 'unknown date'
        record_transaction(
            user, -earned.points, 'EXPIRE', 'SYSTEM',
            f'Expired points from transaction on {earned_on}',
            restaurant_id=earned.restaurant_id,
            reference_id=earned.id
        )
        earned.processed_expiry = True
        processed += 1

    db.session.commit()
    if processed:
        logger.info(f"Processed {processed} expired loyalty transactions")
    return processed


def find_order_for_points(order_id, user):
    order = Order.query.get(order_id)
    if order is None or order.user_id != user.id:
        raise NotFoundError('Order not found')
    if order.payment_status != 'PAID' and order.status != 'DELIVERED':
        raise ValidationError('Points can only be earned for paid or delivered orders')
    return order
