from flask import Blueprint
from flask_jwt_extended import jwt_required, current_user
from yumrun import db
from yumrun.models.models import MenuItem
from yumrun.utils.errors import ConflictError, NotFoundError, ValidationError
from yumrun.utils.helpers import api_response, get_json_body, require_object_id

favorites_bp = Blueprint('favorites', __name__)


@favorites_bp.route('/api/favorites', methods=['POST'])
@jwt_required()
def add_to_favorites():
    data = get_json_body()
    menu_item_id = data.get('menuItemId') or data.get('menu_item_id')
    if not menu_item_id:
        raise ValidationError('Menu item ID is required')
    require_object_id(menu_item_id, 'menu item ID')

    if MenuItem.query.get(menu_item_id) is None:
        raise NotFoundError('Menu item not found')

    favorites = list(current_user.favorites or [])
    if menu_item_id in favorites:
        raise ConflictError('Item already in favorites')

    current_user.favorites = favorites + [menu_item_id]
    db.session.commit()
    return api_response({'favorites': current_user.favorites}, 'Item added to favorites', 201)


@favorites_bp.route('/api/favorites/<menu_item_id>', methods=['DELETE'])
@jwt_required()
def remove_from_favorites(menu_item_id):
    require_object_id(menu_item_id, 'menu item ID')
    current_user.favorites = [f for f in current_user.favorites or [] if f != menu_item_id]
    db.session.commit()
    return api_response({'favorites': current_user.favorites}, 'Item removed from favorites')


@favorites_bp.route('/api/favorites', methods=['GET'])
@jwt_required()
def get_favorites():
    """Favorite menu items of the current user"""
    ids = current_user.favorites or []
    items = MenuItem.query.filter(MenuItem.id.in_(ids)).all() if ids else []
    by_id = {item.id: item for item in items}
    return api_response([by_id[i].to_dict() for i in ids if i in by_id], count=len(by_id))


@favorites_bp.route('/api/favorites/<menu_item_id>/check', methods=['GET'])
@jwt_required()
def check_favorite(menu_item_id):
    require_object_id(menu_item_id, 'menu item ID')
    return api_response({'is_favorite': menu_item_id in (current_user.favorites or [])})
