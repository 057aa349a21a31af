"""
Menu derived pricing of customized items
"""
from yumrun.utils.errors import ValidationError


def _added_name(entry):
    if isinstance(entry, dict):
        return entry.get('name')
    return entry


def normalize_customization(menu_item, customization):
    """
    Validate a customization against the menu item and return it in the
    stored shape: ``removed_ingredients``, ``added_ingredients`` (name and
    menu price), ``serving_size``, ``special_instructions``,
    ``cooking_method`` and ``cooking_price``.
    """
    if customization in (None, ''):
        customization = {}
    if not isinstance(customization, dict):
        raise ValidationError('customization must be an object')

    options = menu_item.customization_options or {}

    removed = customization.get('removed_ingredients') or customization.get('removedIngredients') or []
    for name in removed:
        ingredient = menu_item.find_ingredient(name)
        if ingredient is None:
            raise ValidationError(f'{menu_item.item_name} has no ingredient named {name}')
        if not ingredient.get('is_removable', True):
            raise ValidationError(f'{name} cannot be removed from {menu_item.item_name}')

    added = []
    for entry in customization.get('added_ingredients') or customization.get('addedIngredients') or []:
        name = _added_name(entry)
        add_on = menu_item.find_add_on(name)
        if add_on is None:
            raise ValidationError(f'{name} is not an available add-on for {menu_item.item_name}')
        added.append({'name': add_on['name'], 'price': add_on.get('price') or 0})

    serving_size = customization.get('serving_size') or customization.get('servingSize') or 'Regular'
    allowed_sizes = options.get('serving_size_options') or ['Regular']
    if serving_size not in allowed_sizes and serving_size != 'Regular':
        raise ValidationError(f'Serving size {serving_size} is not offered for {menu_item.item_name}')

    cooking_method = customization.get('cooking_method') or customization.get('cookingMethod')
    cooking_price = 0
    if cooking_method:
        for method in options.get('cooking_methods') or []:
            if method.get('name') == cooking_method:
                cooking_price = method.get('price') or 0
                break
        else:
            raise ValidationError(f'Cooking method {cooking_method} is not offered for {menu_item.item_name}')

    return {
        'removed_ingredients': list(removed),
        'added_ingredients': added,
        'serving_size': serving_size,
        'special_instructions': customization.get('special_instructions') or customization.get('specialInstructions') or '',
        'cooking_method': cooking_method,
        'cooking_price': cooking_price
    }


def unit_price(menu_item, customization=None):
    """Menu price plus priced add-ons and cooking method"""
    customization = customization or {}
    price = menu_item.item_price or 0
    price += sum(entry.get('price') or 0 for entry in customization.get('added_ingredients') or [])
    price += customization.get('cooking_price') or 0
    return round(price, 2)
