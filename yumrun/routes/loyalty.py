from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required, current_user
from yumrun import db
from yumrun.models.loyalty import LoyaltyTransaction, TRANSACTION_TYPES
from yumrun.models.models import User
from yumrun.services import loyalty
from yumrun.utils.auth import ADMIN, roles_required
from yumrun.utils.errors import NotFoundError, ValidationError
from yumrun.utils.helpers import (
    api_response, get_json_body, is_valid_object_id, pagination_args, pagination_meta,
    parse_datetime, require_fields, require_object_id, to_number
)

loyalty_bp = Blueprint('loyalty', __name__)


def _points_arg(value, label):
    try:
        points = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{label} must be an integer')
    if points != float(value):
        raise ValidationError(f'{label} must be a whole number')
    return points


@loyalty_bp.route('/api/loyalty/info', methods=['GET'])
@jwt_required()
def get_loyalty_info():
    """Points, tier and tier benefits of the current user"""
    restaurant_id = request.args.get('restaurantId')
    if restaurant_id:
        require_object_id(restaurant_id, 'restaurant ID')
    return api_response(loyalty.loyalty_summary(current_user, restaurant_id))


@loyalty_bp.route('/api/loyalty/transactions', methods=['GET'])
@jwt_required()
def get_loyalty_transactions():
    page, limit = pagination_args()
    query = LoyaltyTransaction.query.filter_by(user_id=current_user.id)

    restaurant_id = request.args.get('restaurantId')
    if restaurant_id and is_valid_object_id(restaurant_id):
        query = query.filter_by(restaurant_id=restaurant_id)

    transaction_type = (request.args.get('type') or '').upper()
    if transaction_type in TRANSACTION_TYPES:
        query = query.filter_by(type=transaction_type)

    start_date = parse_datetime(request.args.get('startDate'), 'startDate')
    if start_date:
        query = query.filter(LoyaltyTransaction.created_at >= start_date)
    end_date = parse_datetime(request.args.get('endDate'), 'endDate')
    if end_date:
        query = query.filter(LoyaltyTransaction.created_at <= end_date)

    total = query.count()
    transactions = (
        query.order_by(LoyaltyTransaction.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return api_response({
        'transactions': [t.to_dict() for t in transactions],
        'pagination': pagination_meta(page, limit, total)
    })


@loyalty_bp.route('/api/loyalty/earn', methods=['POST'])
@jwt_required()
def earn_points():
    """Credit points for one of the user's orders"""
    data = get_json_body()
    require_fields(data, 'orderId', 'orderTotal', message='Order ID and total are required')
    order_total = to_number(data['orderTotal'], 'orderTotal', minimum=0)

    order = loyalty.find_order_for_points(require_object_id(data['orderId'], 'order ID'), current_user)
    transaction = loyalty.award_order_points(current_user, order, order_total)
    db.session.commit()

    return api_response({
        'transaction': transaction.to_dict() if transaction else None,
        'current_points': current_user.loyalty_points,
        'lifetime_points': current_user.lifetime_loyalty_points
    })


@loyalty_bp.route('/api/loyalty/redeem', methods=['POST'])
@jwt_required()
def redeem_points():
    data = get_json_body()
    if not data.get('rewardId') or not data.get('pointsToRedeem'):
        raise ValidationError('Valid reward and points amount are required')
    points = _points_arg(data['pointsToRedeem'], 'pointsToRedeem')

    restaurant_id = data.get('restaurantId')
    if restaurant_id:
        require_object_id(restaurant_id, 'restaurant ID')

    transaction = loyalty.redeem_points(
        current_user, points, f"Redeemed points for reward: {data['rewardId']}", restaurant_id=restaurant_id
    )
    db.session.commit()

    return api_response({'transaction': transaction.to_dict(), 'current_points': current_user.loyalty_points})


@loyalty_bp.route('/api/loyalty/adjust', methods=['POST'])
@roles_required(ADMIN)
def adjust_points():
    """Manually add or remove a user's points"""
    data = get_json_body()
    require_fields(data, 'userId', 'points', 'reason', message='User ID, points and reason are required')
    points = _points_arg(data['points'], 'points')

    user = User.query.get(require_object_id(data['userId'], 'user ID'))
    if user is None:
        raise NotFoundError('User not found')

    transaction = loyalty.adjust_points(user, points, str(data['reason']), current_user)
    db.session.commit()
    current_app.logger.info(f"Admin {current_user.id} adjusted {user.id} by {points} points")

    return api_response({
        'transaction': transaction.to_dict(),
        'current_points': user.loyalty_points,
        'lifetime_points': user.lifetime_loyalty_points
    })


@loyalty_bp.route('/api/loyalty/process-expired', methods=['POST'])
@roles_required(ADMIN)
def process_expired():
    processed = loyalty.process_expired_points()
    return api_response({'processed': processed})
