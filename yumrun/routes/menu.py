from flask import Blueprint, request, current_app
from flask_jwt_extended import current_user
from sqlalchemy import or_
from yumrun import db
from yumrun.models.models import HEALTH_ATTRIBUTES, MENU_CATEGORIES, NUTRIENTS, MenuItem, OrderItem, Restaurant
from yumrun.utils.auth import ADMIN, RESTAURANT, roles_required
from yumrun.utils.errors import ForbiddenError, NotFoundError, ValidationError
from yumrun.utils.helpers import (
    api_response, get_json_body, pagination_args, pagination_meta, require_fields,
    require_object_id, to_number
)

menu_bp = Blueprint('menu', __name__)

SEARCH_RESULT_LIMIT = 100

SORT_OPTIONS = {
    'price_asc': MenuItem.item_price.asc(),
    'price_desc': MenuItem.item_price.desc(),
    'rating': MenuItem.average_rating.desc(),
    'rating_desc': MenuItem.average_rating.desc(),
    'calories_asc': MenuItem.calories.asc(),
    'calories_desc': MenuItem.calories.desc(),
    'protein_desc': MenuItem.protein.desc(),
}

DIETARY_FILTERS = {
    'vegetarian': 'is_vegetarian',
    'vegan': 'is_vegan',
    'gluten-free': 'is_gluten_free',
    'gluten free': 'is_gluten_free',
}

HEALTH_CONDITION_FILTERS = {
    'diabetes': 'is_diabetic_friendly',
    'heart disease': 'is_heart_healthy',
    'heart': 'is_heart_healthy',
    'hypertension': 'is_low_sodium',
    'high blood pressure': 'is_low_sodium',
    'low carb': 'is_low_carb',
    'high protein': 'is_high_protein',
}


def _clean_ingredients(raw, label):
    if not isinstance(raw, list):
        raise ValidationError(f'{label} must be a list')
    cleaned = []
    for entry in raw:
        if not isinstance(entry, dict) or not entry.get('name'):
            raise ValidationError(f'Every entry in {label} needs a name')
        ingredient = {'name': str(entry['name']).strip()}
        for key in ('calories', 'protein', 'carbs', 'fat', 'sodium', 'price'):
            ingredient[key] = to_number(entry.get(key), f'{label}.{key}', default=0, minimum=0)
        ingredient['is_removable'] = bool(entry.get('is_removable', True))
        ingredient['is_default'] = bool(entry.get('is_default', True))
        cleaned.append(ingredient)
    return cleaned


def _clean_cooking_methods(raw):
    if not isinstance(raw, list):
        raise ValidationError('cooking_methods must be a list')
    methods = []
    for entry in raw:
        if isinstance(entry, str):
            entry = {'name': entry}
        if not isinstance(entry, dict) or not entry.get('name'):
            raise ValidationError('Every cooking method needs a name')
        methods.append({
            'name': str(entry['name']).strip(),
            'price': to_number(entry.get('price'), 'cooking_methods.price', default=0, minimum=0)
        })
    return methods


def _apply_menu_fields(item, data):
    if 'item_name' in data:
        name = str(data['item_name'] or '').strip()
        if not name:
            raise ValidationError('item_name cannot be empty')
        item.item_name = name
    if 'item_price' in data:
        item.item_price = to_number(data['item_price'], 'item_price', minimum=0)
    if 'description' in data:
        item.description = str(data['description'] or '')
    if 'image' in data and data['image']:
        item.image = str(data['image'])
    if 'category' in data:
        if data['category'] not in MENU_CATEGORIES:
            raise ValidationError(f"category must be one of: {', '.join(MENU_CATEGORIES)}")
        item.category = data['category']

    for key in NUTRIENTS:
        if key in data:
            setattr(item, key, to_number(data[key], key, minimum=0))

    if 'ingredients' in data:
        item.ingredients = _clean_ingredients(data['ingredients'], 'ingredients')

    if 'customization_options' in data:
        options = data['customization_options']
        if not isinstance(options, dict):
            raise ValidationError('customization_options must be an object')
        item.customization_options = {
            'allow_remove_ingredients': bool(options.get('allow_remove_ingredients', True)),
            'allow_add_ingredients': bool(options.get('allow_add_ingredients', True)),
            'available_add_ons': _clean_ingredients(options.get('available_add_ons') or [], 'available_add_ons'),
            'serving_size_options': list(options.get('serving_size_options') or ['Regular']),
            'cooking_methods': _clean_cooking_methods(options.get('cooking_methods') or [])
        }

    if 'health_attributes' in data:
        attributes = data['health_attributes']
        if not isinstance(attributes, dict):
            raise ValidationError('health_attributes must be an object')
        item.health_attributes = {key: bool(attributes.get(key, False)) for key in HEALTH_ATTRIBUTES}

    if 'allergens' in data:
        if not isinstance(data['allergens'], list):
            raise ValidationError('allergens must be a list')
        item.allergens = [str(a) for a in data['allergens']]

    for flag in ('is_vegetarian', 'is_vegan', 'is_gluten_free', 'is_available'):
        if flag in data:
            setattr(item, flag, bool(data[flag]))


def _get_menu_item(item_id):
    require_object_id(item_id, 'menu item ID')
    item = MenuItem.query.get(item_id)
    if item is None:
        raise NotFoundError('Menu item not found')
    return item


def _get_owned_menu_item(item_id):
    item = _get_menu_item(item_id)
    if current_user.role != ADMIN and item.restaurant.owner_id != current_user.id:
        raise ForbiddenError('Not authorized to modify this menu item')
    return item


@menu_bp.route('/api/menu', methods=['GET'])
def list_menu_items():
    """Available menu items of approved restaurants"""
    page, limit = pagination_args(default_limit=20)
    query = (
        MenuItem.query.join(Restaurant, MenuItem.restaurant_id == Restaurant.id)
        .filter(Restaurant.status == 'approved', MenuItem.is_available.is_(True))
    )

    category = request.args.get('category')
    if category:
        query = query.filter(MenuItem.category == category)
    restaurant_id = request.args.get('restaurant_id')
    if restaurant_id:
        query = query.filter(MenuItem.restaurant_id == require_object_id(restaurant_id, 'restaurant ID'))

    total = query.count()
    items = query.order_by(MenuItem.item_name).offset((page - 1) * limit).limit(limit).all()
    return api_response([item.to_dict() for item in items], pagination=pagination_meta(page, limit, total))


@menu_bp.route('/api/menu/<item_id>', methods=['GET'])
def get_menu_item(item_id):
    return api_response(_get_menu_item(item_id).to_dict())


@menu_bp.route('/api/menu', methods=['POST'])
@roles_required(RESTAURANT)
def create_menu_item():
    """Add an item to the owner's restaurant"""
    restaurant = current_user.restaurant
    if restaurant is None:
        raise ValidationError('Register a restaurant before adding menu items')

    data = get_json_body()
    require_fields(data, 'item_name', 'item_price')

    item = MenuItem(restaurant_id=restaurant.id)
    _apply_menu_fields(item, data)
    db.session.add(item)
    db.session.commit()
    current_app.logger.info(f"Menu item {item.id} added to restaurant {restaurant.id}")

    return api_response(item.to_dict(), 'Menu item created successfully', 201)


@menu_bp.route('/api/menu/<item_id>', methods=['PUT'])
@roles_required(RESTAURANT, ADMIN)
def update_menu_item(item_id):
    item = _get_owned_menu_item(item_id)
    _apply_menu_fields(item, get_json_body())
    db.session.commit()
    return api_response(item.to_dict(), 'Menu item updated successfully')


@menu_bp.route('/api/menu/<item_id>', methods=['DELETE'])
@roles_required(RESTAURANT, ADMIN)
def delete_menu_item(item_id):
    item = _get_owned_menu_item(item_id)
    # items referenced by past orders are kept and hidden
    if OrderItem.query.filter_by(product_id=item.id).first() is not None:
        item.is_available = False
        db.session.commit()
        return api_response(message='Menu item archived because it appears in past orders')

    db.session.delete(item)
    db.session.commit()
    return api_response(message='Menu item deleted successfully')


def _list_arg(name):
    values = []
    for raw in request.args.getlist(name):
        values.extend(v.strip() for v in raw.split(',') if v.strip())
    return values


@menu_bp.route('/api/search/menu-items', methods=['GET'])
def search_menu_items():
    """Search menu items by text, price, diet, health and nutrition filters"""
    args = request.args
    query = (
        MenuItem.query.join(Restaurant, MenuItem.restaurant_id == Restaurant.id)
        .filter(Restaurant.status == 'approved')
    )

    text = args.get('query', '').strip()
    if text:
        pattern = f'%{text}%'
        query = query.filter(or_(MenuItem.item_name.ilike(pattern), MenuItem.description.ilike(pattern)))

    if args.get('category'):
        query = query.filter(MenuItem.category == args['category'])

    min_price = to_number(args.get('minPrice'), 'minPrice')
    max_price = to_number(args.get('maxPrice'), 'maxPrice')
    if min_price is not None:
        query = query.filter(MenuItem.item_price >= min_price)
    if max_price is not None:
        query = query.filter(MenuItem.item_price <= max_price)

    min_calories = to_number(args.get('minCalories'), 'minCalories')
    max_calories = to_number(args.get('maxCalories'), 'maxCalories')
    if min_calories is not None:
        query = query.filter(MenuItem.calories >= min_calories)
    if max_calories is not None:
        query = query.filter(MenuItem.calories <= max_calories)

    max_carbs = to_number(args.get('maxCarbs'), 'maxCarbs')
    if max_carbs is not None:
        query = query.filter(MenuItem.carbs <= max_carbs)
    min_protein = to_number(args.get('minProtein'), 'minProtein')
    if min_protein is not None:
        query = query.filter(MenuItem.protein >= min_protein)

    if args.get('restaurant'):
        query = query.filter(MenuItem.restaurant_id == require_object_id(args['restaurant'], 'restaurant ID'))

    dietary_flags = [DIETARY_FILTERS[p.lower()] for p in _list_arg('dietaryPreferences') if p.lower() in DIETARY_FILTERS]
    if dietary_flags:
        query = query.filter(or_(*[getattr(MenuItem, flag).is_(True) for flag in dietary_flags]))

    sort = SORT_OPTIONS.get(args.get('sortBy'), MenuItem.item_name.asc())
    items = query.order_by(sort).all()

    # JSON column filters
    health_attributes = [
        HEALTH_CONDITION_FILTERS[c.lower()] for c in _list_arg('healthConditions')
        if c.lower() in HEALTH_CONDITION_FILTERS
    ]
    if health_attributes:
        items = [
            item for item in items
            if any((item.health_attributes or {}).get(attr) for attr in health_attributes)
        ]

    excluded = {a.lower() for a in _list_arg('allergens')}
    if excluded:
        items = [item for item in items if not excluded & {a.lower() for a in item.allergens or []}]

    items = items[:SEARCH_RESULT_LIMIT]
    return api_response([item.to_dict() for item in items], count=len(items))
