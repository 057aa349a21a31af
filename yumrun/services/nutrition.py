"""
Nutrition arithmetic for menu items, custom meals and orders
"""
from yumrun.models.models import NUTRIENTS, ORDER_NUTRIENTS, DEFAULT_DAILY_TARGETS

SERVING_SIZE_FACTORS = {
    'small': 0.7,
    'regular': 1,
    'large': 1.3,
    'extra large': 1.5
}

# Ingredient level data carries no sugar or fiber
INGREDIENT_NUTRIENTS = ('calories', 'protein', 'carbs', 'fat', 'sodium')


def empty_totals(keys=NUTRIENTS):
    return dict.fromkeys(keys, 0)


def floor_at_zero(totals):
    return {key: max(0, round(value, 2)) for key, value in totals.items()}


def serving_size_factor(serving_size):
    if not serving_size:
        return 1
    return SERVING_SIZE_FACTORS.get(str(serving_size).strip().lower(), 1)


def analyze_ingredients(ingredients, removed_ingredients=None):
    """Sum ingredient nutrition, subtracting anything removed"""
    totals = empty_totals()
    for ingredient in ingredients:
        if not isinstance(ingredient, dict):
            continue
        for key in NUTRIENTS:
            totals[key] += ingredient.get(key) or 0

    for ingredient in removed_ingredients or []:
        if not isinstance(ingredient, dict):
            continue
        for key in NUTRIENTS:
            totals[key] -= ingredient.get(key) or 0

    return floor_at_zero(totals)


def food_nutrition(menu_item):
    facts = {key: getattr(menu_item, key) or 0 for key in NUTRIENTS}
    facts.update({
        'health_attributes': menu_item.health_attributes or {},
        'allergens': menu_item.allergens or [],
        'is_vegetarian': bool(menu_item.is_vegetarian),
        'is_vegan': bool(menu_item.is_vegan),
        'is_gluten_free': bool(menu_item.is_gluten_free)
    })
    return facts


def _added_ingredient_nutrition(menu_item, added):
    if isinstance(added, dict):
        info = added.get('nutritional_info') or added.get('nutritionalInfo')
        if info is not None:
            return info
        if any(key in added for key in INGREDIENT_NUTRIENTS):
            return added
        added = added.get('name')
    if isinstance(added, str):
        return menu_item.find_add_on(added) or menu_item.find_ingredient(added) or {}
    return {}


def customized_nutrition(menu_item, customization=None, quantity=1, base=None, keys=NUTRIENTS):
    """
    Nutrition of ``quantity`` servings of a menu item after customization.

    ``customization`` may carry ``removed_ingredients`` (names of default
    ingredients), ``added_ingredients`` (names or dicts with nutrition) and
    ``serving_size``. Each nutrient is floored at zero.
    """
    customization = customization or {}
    quantity = quantity or 1
    if base is None:
        base = {key: getattr(menu_item, key) or 0 for key in keys}
    totals = {key: (base.get(key) or 0) * quantity for key in keys}

    removed = customization.get('removed_ingredients') or customization.get('removedIngredients') or []
    for name in removed:
        ingredient = menu_item.find_ingredient(name)
        if ingredient is None:
            continue
        for key in INGREDIENT_NUTRIENTS:
            if key in totals:
                totals[key] -= (ingredient.get(key) or 0) * quantity

    added = customization.get('added_ingredients') or customization.get('addedIngredients') or []
    for entry in added:
        info = _added_ingredient_nutrition(menu_item, entry)
        for key in INGREDIENT_NUTRIENTS:
            if key in totals:
                totals[key] += (info.get(key) or 0) * quantity

    factor = serving_size_factor(customization.get('serving_size') or customization.get('servingSize'))
    return floor_at_zero({key: value * factor for key, value in totals.items()})


def unit_order_nutrition(menu_item, customization=None):
    """Per unit nutrition stored on an order line"""
    return customized_nutrition(menu_item, customization, 1, base=menu_item.nutrition(), keys=ORDER_NUTRIENTS)


def calculate_meal(entries, lookup):
    """
    Total nutrition of ``entries`` (``{item_id, quantity, customizations}``).

    ``lookup`` maps an id to a menu item or None; unknown items are skipped.
    """
    totals = empty_totals()
    items = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        item_id = entry.get('itemId') or entry.get('item_id')
        menu_item = lookup(item_id)
        if menu_item is None:
            continue
        try:
            quantity = int(entry.get('quantity') or 1)
        except (TypeError, ValueError):
            quantity = 1
        nutrition = customized_nutrition(menu_item, entry.get('customizations'), quantity)
        for key in NUTRIENTS:
            totals[key] += nutrition[key]
        items.append({'item_id': menu_item.id, 'item_name': menu_item.item_name,
                      'quantity': quantity, 'nutrition': nutrition})
    return {key: round(value, 2) for key, value in totals.items()}, items


def meal_nutrition(order, user):
    """Order totals, per line breakdown, and share of the user's daily targets"""
    breakdown = []
    totals = empty_totals(ORDER_NUTRIENTS)
    for item in order.items:
        info = item.nutritional_info or {}
        line = {key: round((info.get(key) or 0) * item.quantity, 2) for key in ORDER_NUTRIENTS}
        for key in ORDER_NUTRIENTS:
            totals[key] += line[key]
        breakdown.append({
            'product_id': item.product_id,
            'name': item.name,
            'quantity': item.quantity,
            'nutrition': line
        })
    totals = {key: round(value, 2) for key, value in totals.items()}

    profile = (user.health_profile or {}) if user is not None else {}
    targets = dict(DEFAULT_DAILY_TARGETS)
    targets.update(profile.get('daily_targets') or {})

    comparison = {}
    for key, target in targets.items():
        if key not in totals or not target:
            continue
        comparison[key] = {
            'consumed': totals[key],
            'target': target,
            'percentage': round(totals[key] / target * 100, 1)
        }

    return {
        'order_id': order.id,
        'total': totals,
        'items': breakdown,
        'daily_targets': targets,
        'comparison': comparison
    }
