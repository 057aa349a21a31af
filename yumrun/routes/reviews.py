from datetime import datetime
from flask import Blueprint
from flask_jwt_extended import current_user
from yumrun import db
from yumrun.models.models import MenuItem, Order
from yumrun.models.review import Review
from yumrun.utils.auth import ADMIN, CUSTOMER, RESTAURANT, roles_required
from yumrun.utils.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from yumrun.utils.helpers import (
    api_response, get_json_body, pagination_args, pagination_meta, require_fields, require_object_id
)

reviews_bp = Blueprint('reviews', __name__)


def _validate_rating(value):
    try:
        rating = float(value)
    except (TypeError, ValueError):
        raise ValidationError('Rating must be between 1 and 5')
    if not rating.is_integer() or not 1 <= rating <= 5:
        raise ValidationError('Rating must be between 1 and 5')
    return int(rating)


def _get_review(review_id):
    require_object_id(review_id, 'review ID')
    review = Review.query.get(review_id)
    if review is None:
        raise NotFoundError('Review not found')
    return review


@reviews_bp.route('/api/reviews', methods=['POST'])
@roles_required(CUSTOMER)
def create_review():
    """Review an item from one of the customer's delivered orders"""
    data = get_json_body()
    require_fields(data, 'menuItemId', 'orderId', 'rating', message='menuItemId, orderId and rating are required')
    rating = _validate_rating(data['rating'])

    order = Order.query.get(require_object_id(data['orderId'], 'order ID'))
    if order is None:
        raise NotFoundError('Order not found')
    if order.user_id != current_user.id:
        raise ForbiddenError('You can only review items from your own orders')
    if order.status != 'DELIVERED':
        raise ValidationError('You can only review items after the order is delivered')

    menu_item_id = require_object_id(data['menuItemId'], 'menu item ID')
    if not any(item.product_id == menu_item_id for item in order.items):
        raise NotFoundError('Menu item not found in specified order')
    if MenuItem.query.get(menu_item_id) is None:
        raise NotFoundError('Menu item details not found')

    existing = Review.query.filter_by(user_id=current_user.id, menu_item_id=menu_item_id, order_id=order.id).first()
    if existing is not None:
        raise ConflictError('You have already reviewed this item for this order')

    review = Review(
        user_id=current_user.id,
        menu_item_id=menu_item_id,
        restaurant_id=order.restaurant_id,
        order_id=order.id,
        rating=rating,
        comment=(data.get('comment') or '').strip()
    )
    db.session.add(review)
    Review.update_menu_item_rating(menu_item_id)
    db.session.commit()

    return api_response(review.to_dict(), 'Review submitted successfully', 201)


@reviews_bp.route('/api/reviews/menuItem/<menu_item_id>', methods=['GET'])
def get_menu_item_reviews(menu_item_id):
    """Reviews of a menu item with rating statistics"""
    require_object_id(menu_item_id, 'Menu item ID')
    page, limit = pagination_args()
    query = Review.query.filter_by(menu_item_id=menu_item_id)
    total = query.count()
    reviews = query.order_by(Review.created_at.desc()).offset((page - 1) * limit).limit(limit).all()

    return api_response({
        'reviews': [r.to_dict() for r in reviews],
        'stats': Review.rating_stats(menu_item_id),
        'pagination': pagination_meta(page, limit, total)
    })


@reviews_bp.route('/api/reviews/my', methods=['GET'])
@roles_required(CUSTOMER)
def get_my_reviews():
    reviews = Review.query.filter_by(user_id=current_user.id).order_by(Review.created_at.desc()).all()
    return api_response([r.to_dict() for r in reviews], count=len(reviews))


@reviews_bp.route('/api/reviews/restaurant', methods=['GET'])
@roles_required(RESTAURANT)
def get_restaurant_reviews():
    """Reviews of the current owner's restaurant"""
    restaurant = current_user.restaurant
    if restaurant is None:
        raise NotFoundError('You have not registered a restaurant yet')
    reviews = Review.query.filter_by(restaurant_id=restaurant.id).order_by(Review.created_at.desc()).all()
    return api_response([r.to_dict() for r in reviews], count=len(reviews))


@reviews_bp.route('/api/reviews/<review_id>/reply', methods=['PUT'])
@roles_required(RESTAURANT)
def reply_to_review(review_id):
    review = _get_review(review_id)
    restaurant = current_user.restaurant
    if restaurant is None or review.restaurant_id != restaurant.id:
        raise ForbiddenError('You can only reply to reviews of your restaurant')

    data = get_json_body()
    reply = (data.get('reply') or '').strip()
    if not reply:
        raise ValidationError('Reply cannot be empty')

    review.reply = reply
    review.replied_at = datetime.utcnow()
    db.session.commit()
    return api_response(review.to_dict(), 'Reply saved')


@reviews_bp.route('/api/reviews/<review_id>', methods=['PUT'])
@roles_required(CUSTOMER)
def update_review(review_id):
    data = get_json_body()
    if 'rating' not in data and 'comment' not in data:
        raise ValidationError('Please provide rating or comment to update')

    review = _get_review(review_id)
    if review.user_id != current_user.id:
        raise ForbiddenError('You are not authorized to update this review')

    if 'rating' in data:
        review.rating = _validate_rating(data['rating'])
    if 'comment' in data:
        review.comment = (data.get('comment') or '').strip()

    Review.update_menu_item_rating(review.menu_item_id)
    db.session.commit()
    return api_response(review.to_dict(), 'Review updated successfully')


@reviews_bp.route('/api/reviews/<review_id>', methods=['DELETE'])
@roles_required(CUSTOMER, ADMIN)
def delete_review(review_id):
    review = _get_review(review_id)
    if review.user_id != current_user.id and current_user.role != ADMIN:
        raise ForbiddenError('You are not authorized to delete this review')

    menu_item_id = review.menu_item_id
    db.session.delete(review)
    Review.update_menu_item_rating(menu_item_id)
    db.session.commit()
    return api_response(message='Review deleted successfully')
