from flask import Blueprint, request, current_app
from flask_jwt_extended import current_user, get_current_user, verify_jwt_in_request
from sqlalchemy import or_
from yumrun import db
from yumrun.models.models import MenuItem, Restaurant
from yumrun.utils.auth import ADMIN, RESTAURANT, roles_required
from yumrun.utils.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from yumrun.utils.helpers import (
    api_response, get_json_body, pagination_args, pagination_meta, require_fields,
    require_object_id, to_number
)

restaurants_bp = Blueprint('restaurants', __name__)


def _optional_user():
    verify_jwt_in_request(optional=True)
    return get_current_user()


def _can_manage(restaurant, user):
    return user is not None and (user.role == ADMIN or restaurant.owner_id == user.id)


def get_visible_restaurant(restaurant_id):
    require_object_id(restaurant_id, 'restaurant ID')
    restaurant = Restaurant.query.get(restaurant_id)
    if restaurant is None:
        raise NotFoundError('Restaurant not found')
    if not restaurant.is_approved and not _can_manage(restaurant, _optional_user()):
        raise NotFoundError('Restaurant not found')
    return restaurant


def _apply_restaurant_fields(restaurant, data):
    for field in ('name', 'location', 'description', 'logo'):
        if field in data:
            value = str(data[field] or '').strip()
            if field != 'logo' and not value:
                raise ValidationError(f'{field} cannot be empty')
            setattr(restaurant, field, value)
    if 'delivery_fee' in data:
        restaurant.delivery_fee = to_number(data['delivery_fee'], 'delivery_fee', minimum=0)
    if 'minimum_order' in data:
        restaurant.minimum_order = to_number(data['minimum_order'], 'minimum_order', default=0, minimum=0)
    if 'is_open' in data:
        restaurant.is_open = bool(data['is_open'])
    if 'cuisine' in data:
        cuisine = data['cuisine']
        if isinstance(cuisine, str):
            cuisine = [c.strip() for c in cuisine.split(',') if c.strip()]
        if not isinstance(cuisine, list):
            raise ValidationError('cuisine must be a list')
        restaurant.cuisine = cuisine


@restaurants_bp.route('/api/restaurants', methods=['GET'])
def list_restaurants():
    """List approved restaurants"""
    page, limit = pagination_args(default_limit=20)
    query = Restaurant.query.filter_by(status='approved')

    search = request.args.get('search', '').strip()
    if search:
        pattern = f'%{search}%'
        query = query.filter(or_(Restaurant.name.ilike(pattern), Restaurant.description.ilike(pattern)))

    cuisine = request.args.get('cuisine', '').strip().lower()
    restaurants = query.order_by(Restaurant.name).all()
    if cuisine:
        restaurants = [r for r in restaurants if cuisine in [c.lower() for c in r.cuisine or []]]

    total = len(restaurants)
    page_items = restaurants[(page - 1) * limit:page * limit]
    return api_response(
        [r.to_dict() for r in page_items],
        pagination=pagination_meta(page, limit, total)
    )


@restaurants_bp.route('/api/restaurants/my', methods=['GET'])
@roles_required(RESTAURANT)
def my_restaurant():
    """Restaurant owned by the current user"""
    restaurant = current_user.restaurant
    if restaurant is None:
        raise NotFoundError('You have not registered a restaurant yet')
    return api_response(restaurant.to_dict())


@restaurants_bp.route('/api/restaurants/<restaurant_id>', methods=['GET'])
def get_restaurant(restaurant_id):
    restaurant = get_visible_restaurant(restaurant_id)
    return api_response(restaurant.to_dict())


@restaurants_bp.route('/api/restaurants/<restaurant_id>/menu', methods=['GET'])
def get_restaurant_menu(restaurant_id):
    """Menu of a restaurant, grouped by category"""
    restaurant = get_visible_restaurant(restaurant_id)

    query = MenuItem.query.filter_by(restaurant_id=restaurant.id)
    if not _can_manage(restaurant, _optional_user()):
        query = query.filter_by(is_available=True)
    items = query.order_by(MenuItem.category, MenuItem.item_name).all()

    categories = {}
    for item in items:
        categories.setdefault(item.category, []).append(item.to_dict())

    return api_response({
        'restaurant': restaurant.to_dict(),
        'items': [item.to_dict() for item in items],
        'categories': categories
    })


@restaurants_bp.route('/api/restaurants', methods=['POST'])
@roles_required(RESTAURANT)
def create_restaurant():
    """Register a restaurant; it stays pending until an admin approves it"""
    data = get_json_body()
    require_fields(data, 'name', 'location', 'description')

    if current_user.restaurant is not None:
        raise ConflictError('You already have a registered restaurant')

    restaurant = Restaurant(owner_id=current_user.id, status='pending')
    _apply_restaurant_fields(restaurant, data)
    db.session.add(restaurant)
    db.session.commit()
    current_app.logger.info(f"Restaurant {restaurant.id} submitted for approval by {current_user.id}")

    return api_response(restaurant.to_dict(), 'Restaurant submitted for approval', 201)


@restaurants_bp.route('/api/restaurants/<restaurant_id>', methods=['PUT'])
@roles_required(RESTAURANT, ADMIN)
def update_restaurant(restaurant_id):
    require_object_id(restaurant_id, 'restaurant ID')
    restaurant = Restaurant.query.get(restaurant_id)
    if restaurant is None:
        raise NotFoundError('Restaurant not found')
    if not _can_manage(restaurant, current_user):
        raise ForbiddenError('Not authorized to update this restaurant')

    _apply_restaurant_fields(restaurant, get_json_body())
    db.session.commit()
    return api_response(restaurant.to_dict(), 'Restaurant updated successfully')
