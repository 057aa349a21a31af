from flask import Blueprint, request, current_app
from flask_jwt_extended import current_user
from sqlalchemy import func
from yumrun import db
from yumrun.models.models import Order, Restaurant, User
from yumrun.services.analytics import AnalyticsService
from yumrun.utils.auth import ADMIN, DELIVERY_RIDER, ROLES, roles_required
from yumrun.utils.errors import NotFoundError, ValidationError
from yumrun.utils.helpers import (
    api_response, get_json_body, pagination_args, pagination_meta, require_object_id
)

admin_bp = Blueprint('admin', __name__)

APPROVAL_ACTIONS = {'approve': 'approved', 'reject': 'rejected'}
MAX_STATISTICS_DAYS = 365


def _counts(column):
    return {value: count for value, count in db.session.query(column, func.count()).group_by(column).all()}


def _get_user(user_id):
    user = User.query.get(require_object_id(user_id, 'user ID'))
    if user is None:
        raise NotFoundError('User not found')
    return user


def _approval_action(data):
    action = str(data.get('action') or '').lower()
    if action not in APPROVAL_ACTIONS:
        raise ValidationError('action must be approve or reject')
    return action


@admin_bp.route('/api/admin/dashboard', methods=['GET'])
@roles_required(ADMIN)
def dashboard():
    """Platform wide counts and revenue"""
    revenue = (
        db.session.query(func.coalesce(func.sum(Order.grand_total), 0))
        .filter(Order.payment_status == 'PAID')
        .scalar()
    )
    return api_response({
        'users': _counts(User.role),
        'total_users': User.query.count(),
        'restaurants': _counts(Restaurant.status),
        'orders': _counts(Order.status),
        'total_orders': Order.query.count(),
        'revenue': round(float(revenue or 0), 2)
    })


@admin_bp.route('/api/admin/users', methods=['GET'])
@roles_required(ADMIN)
def list_users():
    page, limit = pagination_args(default_limit=20)
    query = User.query
    role = request.args.get('role')
    if role:
        if role not in ROLES:
            raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
        query = query.filter_by(role=role)

    total = query.count()
    users = query.order_by(User.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
    return api_response([u.to_dict() for u in users], pagination=pagination_meta(page, limit, total))


@admin_bp.route('/api/admin/users/<user_id>', methods=['GET'])
@roles_required(ADMIN)
def get_user(user_id):
    return api_response(_get_user(user_id).to_dict(include_private=True))


@admin_bp.route('/api/admin/users/<user_id>', methods=['PUT'])
@roles_required(ADMIN)
def update_user(user_id):
    """Change a user's role or active flag"""
    user = _get_user(user_id)
    data = get_json_body()

    if 'role' in data:
        if data['role'] not in ROLES:
            raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
        user.role = data['role']
    if 'is_active' in data:
        if user.id == current_user.id and not data['is_active']:
            raise ValidationError('You cannot deactivate your own account')
        user.is_active = bool(data['is_active'])

    db.session.commit()
    current_app.logger.info(f"Admin {current_user.id} updated user {user.id}")
    return api_response(user.to_dict(include_private=True), 'User updated successfully')


@admin_bp.route('/api/admin/users/<user_id>', methods=['DELETE'])
@roles_required(ADMIN)
def delete_user(user_id):
    user = _get_user(user_id)
    if user.id == current_user.id:
        raise ValidationError('You cannot delete your own account')
    has_history = (
        user.orders or user.restaurants or user.reviews
        or user.loyalty_transactions.count()
        or Order.query.filter_by(assigned_rider_id=user.id).count()
    )
    if has_history:
        # keep order, review and loyalty history intact
        user.is_active = False
        db.session.commit()
        return api_response(message='User has history and was deactivated instead')

    db.session.delete(user)
    db.session.commit()
    return api_response(message='User deleted successfully')


@admin_bp.route('/api/admin/restaurant-approvals', methods=['GET'])
@roles_required(ADMIN)
def pending_restaurants():
    status = request.args.get('status', 'pending')
    restaurants = Restaurant.query.filter_by(status=status).order_by(Restaurant.created_at).all()
    return api_response([r.to_dict() for r in restaurants], count=len(restaurants))


@admin_bp.route('/api/admin/restaurant-approvals/<restaurant_id>', methods=['POST'])
@roles_required(ADMIN)
def review_restaurant(restaurant_id):
    """Approve or reject a restaurant registration"""
    restaurant = Restaurant.query.get(require_object_id(restaurant_id, 'restaurant ID'))
    if restaurant is None:
        raise NotFoundError('Restaurant not found')

    action = _approval_action(get_json_body())
    restaurant.status = APPROVAL_ACTIONS[action]
    db.session.commit()
    current_app.logger.info(f"Restaurant {restaurant.id} {restaurant.status} by {current_user.id}")
    return api_response(restaurant.to_dict(), f'Restaurant {restaurant.status}')


@admin_bp.route('/api/admin/rider-approvals', methods=['GET'])
@roles_required(ADMIN)
def pending_riders():
    riders = User.query.filter_by(role=DELIVERY_RIDER).order_by(User.created_at).all()
    pending = [r for r in riders if not (r.rider_details or {}).get('approved')]
    return api_response([r.to_dict(include_private=True) for r in pending], count=len(pending))


@admin_bp.route('/api/admin/rider-approvals/<user_id>', methods=['POST'])
@roles_required(ADMIN)
def review_rider(user_id):
    rider = _get_user(user_id)
    if rider.role != DELIVERY_RIDER:
        raise ValidationError('User is not a delivery rider')

    action = _approval_action(get_json_body())
    details = dict(rider.rider_details or {})
    details['approved'] = action == 'approve'
    if action == 'reject':
        details['is_available'] = False
    rider.rider_details = details
    db.session.commit()
    return api_response(rider.to_dict(include_private=True), f'Rider {APPROVAL_ACTIONS[action]}')


@admin_bp.route('/api/admin/statistics', methods=['GET'])
@roles_required(ADMIN)
def statistics():
    """Revenue trend, top restaurants and rating summary"""
    try:
        days = int(request.args.get('days', 30))
    except ValueError:
        raise ValidationError('days must be an integer')
    if not 1 <= days <= MAX_STATISTICS_DAYS:
        raise ValidationError(f'days must be between 1 and {MAX_STATISTICS_DAYS}')

    return api_response(AnalyticsService.generate_statistics(days))
