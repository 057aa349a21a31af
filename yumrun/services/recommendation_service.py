"""
Menu item recommendations

Personal recommendations are a single scoring pass over every available
item: hard filters first (allergens, disliked foods, unapproved
restaurants), then additive boosts.
"""
import logging
from collections import Counter
from sqlalchemy import func
from yumrun import db
from yumrun.models.models import MenuItem, Order, OrderItem, Restaurant

logger = logging.getLogger(__name__)

RECENT_ORDER_LIMIT = 20
TOP_RECOMMENDATIONS = 3
HEALTH_RECOMMENDATION_LIMIT = 8

DIETARY_PREFERENCE_FLAGS = {
    'vegetarian': 'is_vegetarian',
    'vegan': 'is_vegan',
    'gluten-free': 'is_gluten_free',
    'gluten free': 'is_gluten_free',
}

# substring of a health condition -> health attribute that suits it
CONDITION_ATTRIBUTES = (
    ('diabetes', 'is_diabetic_friendly'),
    ('hypertension', 'is_low_sodium'),
    ('heart', 'is_heart_healthy'),
)

# ?condition= value -> health attribute
HEALTH_FILTERS = {
    'diabetes': 'is_diabetic_friendly',
    'heart disease': 'is_heart_healthy',
    'hypertension': 'is_heart_healthy',
    'low carb': 'is_low_carb',
    'high protein': 'is_high_protein',
    'low sodium': 'is_low_sodium',
}

HEALTH_BENEFITS = {
    'is_diabetic_friendly': 'Suitable for diabetic diets',
    'is_low_sodium': 'Low in sodium',
    'is_heart_healthy': 'Heart healthy',
    'is_low_glycemic_index': 'Low glycemic index',
    'is_high_protein': 'High in protein',
    'is_low_carb': 'Low in carbohydrates',
}

PREFERENCE_BOOST = 5
CONDITION_BOOST = 10
ORDER_FREQUENCY_BOOST = 2
FAVORITE_BOOST = 20


def _meaningful(values):
    """Drop empty entries and the 'None' placeholder the profile form submits"""
    return [v for v in values or [] if v and str(v).lower() != 'none']


def available_items():
    return (
        MenuItem.query
        .join(Restaurant, MenuItem.restaurant_id == Restaurant.id)
        .filter(MenuItem.is_available.is_(True), Restaurant.status == 'approved')
        .all()
    )


def order_frequency(user_id, limit=RECENT_ORDER_LIMIT):
    recent = Order.query.filter_by(user_id=user_id).order_by(Order.created_at.desc()).limit(limit).all()
    counts = Counter()
    for order in recent:
        for item in order.items:
            counts[item.product_id] += 1
    return counts


def score_item(item, profile, frequency, favorites):
    """Return the item's score, or None when the item must be excluded"""
    allergies = {a.lower() for a in _meaningful(profile.get('allergies'))}
    if allergies and allergies & {a.lower() for a in item.allergens or []}:
        return None

    name = (item.item_name or '').lower()
    for disliked in _meaningful(profile.get('disliked_foods')):
        if disliked.lower() in name:
            return None

    if item.restaurant is None or not item.restaurant.is_approved:
        return None

    score = 0
    for preference in _meaningful(profile.get('dietary_preferences')):
        flag = DIETARY_PREFERENCE_FLAGS.get(preference.lower())
        if flag and getattr(item, flag):
            score += PREFERENCE_BOOST

    attributes = item.health_attributes or {}
    for condition in _meaningful(profile.get('health_conditions')):
        condition = condition.lower()
        for needle, attribute in CONDITION_ATTRIBUTES:
            if needle in condition and attributes.get(attribute):
                score += CONDITION_BOOST

    score += frequency.get(item.id, 0) * ORDER_FREQUENCY_BOOST
    if item.id in favorites:
        score += FAVORITE_BOOST
    score += item.average_rating or 0
    return score


def format_item(item, **extra):
    data = {
        'id': item.id,
        'name': item.item_name,
        'description': item.description,
        'price': item.item_price,
        'image': item.image,
        'category': item.category or 'Main Course',
        'restaurant': {
            'id': item.restaurant.id if item.restaurant else None,
            'name': item.restaurant.name if item.restaurant else 'Unknown Restaurant'
        },
        'is_vegetarian': bool(item.is_vegetarian),
        'is_vegan': bool(item.is_vegan),
        'is_gluten_free': bool(item.is_gluten_free),
        'average_rating': item.average_rating or 0
    }
    data.update(extra)
    return data


def recommendations_for_user(user, limit=TOP_RECOMMENDATIONS):
    profile = user.health_profile or {}
    favorites = set(user.favorites or [])
    frequency = order_frequency(user.id)

    scored = []
    for item in available_items():
        score = score_item(item, profile, frequency, favorites)
        if score is None or score <= 0:
            continue
        scored.append((score, item))

    scored.sort(key=lambda pair: pair[0], reverse=True)
    logger.debug(f"Scored {len(scored)} candidate items for user {user.id}")
    return [format_item(item, score=round(score, 2)) for score, item in scored[:limit]]


def health_recommendations(condition=None, limit=HEALTH_RECOMMENDATION_LIMIT):
    attribute = HEALTH_FILTERS.get((condition or '').strip().lower())
    items = available_items()
    if attribute:
        items = [item for item in items if (item.health_attributes or {}).get(attribute)]
    items.sort(key=lambda item: item.average_rating or 0, reverse=True)

    results = []
    for item in items[:limit]:
        attributes = item.health_attributes or {}
        benefits = [text for key, text in HEALTH_BENEFITS.items() if attributes.get(key)]
        options = item.customization_options or {}
        results.append(format_item(
            item,
            calories=item.calories,
            protein=item.protein,
            carbs=item.carbs,
            fat=item.fat,
            health_attributes=attributes,
            health_benefits=benefits,
            is_customizable=bool(options.get('allow_add_ingredients') or options.get('allow_remove_ingredients'))
        ))
    return results


def popular_items(limit=10):
    rows = (
        db.session.query(OrderItem.product_id, func.sum(OrderItem.quantity).label('ordered'))
        .join(Order, OrderItem.order_id == Order.id)
        .filter(Order.status != 'CANCELLED')
        .group_by(OrderItem.product_id)
        .order_by(func.sum(OrderItem.quantity).desc())
        .all()
    )
    results = []
    for product_id, ordered in rows:
        item = MenuItem.query.get(product_id)
        if item is None or not item.is_available or item.restaurant is None or not item.restaurant.is_approved:
            continue
        results.append(format_item(item, times_ordered=int(ordered)))
        if len(results) >= limit:
            break
    return results


def order_history_items(user):
    counts = Counter()
    for order in Order.query.filter_by(user_id=user.id).all():
        for item in order.items:
            counts[item.product_id] += item.quantity

    results = []
    for product_id, quantity in counts.most_common():
        item = MenuItem.query.get(product_id)
        if item is None:
            continue
        results.append(format_item(item, times_ordered=quantity))
    return results
