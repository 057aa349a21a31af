from flask import Blueprint
from flask_jwt_extended import jwt_required, current_user
from yumrun.models.models import MenuItem
from yumrun.services import nutrition
from yumrun.services.order_service import get_order_for
from yumrun.utils.errors import NotFoundError, ValidationError
from yumrun.utils.helpers import api_response, get_json_body, is_valid_object_id, require_object_id

nutrition_bp = Blueprint('nutrition', __name__)


def _lookup_menu_item(item_id):
    if not is_valid_object_id(item_id):
        return None
    return MenuItem.query.get(item_id)


@nutrition_bp.route('/api/nutrition/food/<item_id>', methods=['GET'])
def get_food_nutrition(item_id):
    """Nutrition facts of a menu item"""
    require_object_id(item_id, 'food item ID')
    item = MenuItem.query.get(item_id)
    if item is None:
        raise NotFoundError('Food item not found')

    return api_response({
        'item_id': item.id,
        'item_name': item.item_name,
        'nutritional_info': nutrition.food_nutrition(item)
    })


@nutrition_bp.route('/api/nutrition/analyze', methods=['POST'])
def analyze_ingredients():
    data = get_json_body()
    ingredients = data.get('ingredients')
    if not isinstance(ingredients, list):
        raise ValidationError('Ingredients array is required')

    removed = data.get('removedIngredients') or data.get('removed_ingredients') or []
    if not isinstance(removed, list):
        raise ValidationError('removedIngredients must be an array')

    return api_response({'nutritional_info': nutrition.analyze_ingredients(ingredients, removed)})


@nutrition_bp.route('/api/nutrition/meal/<order_id>', methods=['GET'])
@jwt_required()
def get_meal_nutrition(order_id):
    """Total nutrition of an order compared with the customer's daily targets"""
    order = get_order_for(order_id, current_user)
    return api_response(nutrition.meal_nutrition(order, order.user))


@nutrition_bp.route('/api/nutrition/calculate', methods=['POST'])
def calculate_custom_meal():
    """Nutrition of a set of customized menu items"""
    data = get_json_body()
    items = data.get('items')
    if not isinstance(items, list) or not items:
        raise ValidationError('Array of menu items is required')

    totals, breakdown = nutrition.calculate_meal(items, _lookup_menu_item)
    return api_response({'nutritional_info': totals, 'items': breakdown})
