from flask import Blueprint
from flask_jwt_extended import jwt_required, current_user
from yumrun import db
from yumrun.models.models import MenuItem
from yumrun.services import cart as cart_service
from yumrun.utils.errors import NotFoundError
from yumrun.utils.helpers import api_response, get_json_body, require_fields, require_object_id

cart_bp = Blueprint('cart', __name__)


@cart_bp.route('/api/cart', methods=['GET'])
@jwt_required()
def get_cart():
    return api_response(cart_service.serialize_cart(current_user))


@cart_bp.route('/api/cart/items', methods=['POST'])
@jwt_required()
def add_cart_item():
    """Add a menu item, merging with an existing line"""
    data = get_json_body()
    require_fields(data, 'product_id', message='product_id is required')

    item = MenuItem.query.get(require_object_id(data['product_id'], 'product ID'))
    if item is None:
        raise NotFoundError('Menu item not found')

    cart = cart_service.add_item(current_user, item, data.get('quantity', 1), data.get('customization'))
    db.session.commit()
    return api_response(cart, 'Item added to cart')


@cart_bp.route('/api/cart/items/<item_id>', methods=['PUT'])
@jwt_required()
def update_cart_item(item_id):
    data = get_json_body()
    item_id = require_object_id(item_id, 'item ID')
    cart = cart_service.update_quantity(current_user, item_id, data.get('quantity'))
    db.session.commit()
    return api_response(cart, 'Cart updated')


@cart_bp.route('/api/cart/items/<item_id>', methods=['DELETE'])
@jwt_required()
def remove_cart_item(item_id):
    cart = cart_service.remove_item(current_user, require_object_id(item_id, 'item ID'))
    db.session.commit()
    return api_response(cart, 'Item removed from cart')


@cart_bp.route('/api/cart', methods=['DELETE'])
@jwt_required()
def clear_cart():
    cart = cart_service.clear_cart(current_user)
    db.session.commit()
    return api_response(cart, 'Cart cleared')
