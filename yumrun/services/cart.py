"""
Server side cart persisted on ``User.cart``

Lines are keyed by menu item id. Every mutation writes back a fresh list so
the JSON column change is tracked, and returns the recomputed cart.
"""
from yumrun.services.pricing import normalize_customization, unit_price
from yumrun.utils.errors import NotFoundError, ValidationError

SHIPPING = 0


def cart_stats(lines):
    total_items = sum(line['quantity'] for line in lines)
    sub_total = round(sum(line['price'] * line['quantity'] for line in lines), 2)
    return {
        'total_items': total_items,
        'sub_total': sub_total,
        'shipping': SHIPPING,
        'total': round(sub_total + SHIPPING, 2)
    }


def item_subtotal(lines, item_id):
    for line in lines:
        if line['id'] == item_id:
            return round(line['price'] * line['quantity'], 2)
    return 0


def serialize_cart(user):
    lines = list(user.cart or [])
    items = [dict(line, sub_total=round(line['price'] * line['quantity'], 2)) for line in lines]
    return {'items': items, 'stats': cart_stats(lines)}


def _parse_quantity(value, default=1):
    if value is None:
        return default
    try:
        quantity = int(value)
    except (TypeError, ValueError):
        raise ValidationError('quantity must be an integer')
    return quantity


def add_item(user, menu_item, quantity=1, customization=None):
    quantity = _parse_quantity(quantity)
    if quantity < 1:
        raise ValidationError('quantity must be at least 1')
    if not menu_item.is_available:
        raise ValidationError(f'{menu_item.item_name} is currently unavailable')

    lines = [dict(line) for line in user.cart or []]
    for line in lines:
        if line['id'] == menu_item.id:
            line['quantity'] += quantity
            break
    else:
        normalized = normalize_customization(menu_item, customization)
        lines.append({
            'id': menu_item.id,
            'product_id': menu_item.id,
            'restaurant_id': menu_item.restaurant_id,
            'name': menu_item.item_name,
            'image': menu_item.image,
            'price': unit_price(menu_item, normalized),
            'quantity': quantity,
            'customization': normalized
        })

    user.cart = lines
    return serialize_cart(user)


def remove_item(user, item_id):
    lines = [dict(line) for line in user.cart or []]
    remaining = [line for line in lines if line['id'] != item_id]
    if len(remaining) == len(lines):
        raise NotFoundError('Item not found in cart')
    user.cart = remaining
    return serialize_cart(user)


def update_quantity(user, item_id, quantity):
    """Set a line's quantity; zero or less removes the line"""
    quantity = _parse_quantity(quantity, default=None)
    if quantity is None:
        raise ValidationError('quantity is required')
    if quantity <= 0:
        return remove_item(user, item_id)

    lines = [dict(line) for line in user.cart or []]
    for line in lines:
        if line['id'] == item_id:
            line['quantity'] = quantity
            break
    else:
        raise NotFoundError('Item not found in cart')

    user.cart = lines
    return serialize_cart(user)


def clear_cart(user):
    user.cart = []
    return serialize_cart(user)
