from types import SimpleNamespace
from yumrun import db
from yumrun.models.models import User
from yumrun.services import nutrition


def test_food_nutrition(client, seed):
    response = client.get(f"/api/nutrition/food/{seed['salad_id']}")
    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['item_name'] == 'Garden Salad'
    info = data['nutritional_info']
    assert info['calories'] == 180
    assert info['fiber'] == 6
    assert info['is_vegan'] is True
    assert info['health_attributes']['is_low_carb'] is True


def test_food_nutrition_errors(client, seed):
    assert client.get('/api/nutrition/food/xyz').status_code == 400
    assert client.get(f"/api/nutrition/food/{'d' * 24}").status_code == 404


def test_analyze_ingredients(client):
    response = client.post('/api/nutrition/analyze', json={
        'ingredients': [
            {'name': 'Rice', 'calories': 200, 'protein': 4, 'carbs': 45},
            {'name': 'Dal', 'calories': 150, 'protein': 9, 'carbs': 20, 'fiber': 5}
        ],
        'removedIngredients': [{'name': 'Ghee', 'calories': 400, 'fat': 10}]
    })
    assert response.status_code == 200
    info = response.get_json()['data']['nutritional_info']
    assert info['protein'] == 13
    assert info['fiber'] == 5
    # removals never push a nutrient below zero
    assert info['calories'] == 0
    assert info['fat'] == 0


def test_analyze_requires_ingredient_list(client):
    response = client.post('/api/nutrition/analyze', json={'ingredients': 'rice'})
    assert response.status_code == 400
    assert response.get_json()['error']['message'] == 'Ingredients array is required'


def test_calculate_custom_meal(client, seed):
    response = client.post('/api/nutrition/calculate', json={'items': [
        {'itemId': seed['salad_id'], 'quantity': 2},
        {'itemId': seed['momo_id'], 'quantity': 1,
         'customizations': {'removedIngredients': ['Onion'], 'servingSize': 'Large'}},
        {'itemId': 'e' * 24, 'quantity': 3}
    ]})
    assert response.status_code == 200
    data = response.get_json()['data']
    assert len(data['items']) == 2
    # 2 x 180 salad + (420 - 40) x 1.3 momo
    assert data['nutritional_info']['calories'] == 854
    assert data['items'][0]['nutrition']['fiber'] == 12


def test_calculate_requires_items(client):
    assert client.post('/api/nutrition/calculate', json={'items': []}).status_code == 400


def test_meal_nutrition_compares_with_targets(client, app, seed, place_order):
    with app.app_context():
        user = db.session.get(User, seed['customer_id'])
        profile = dict(user.health_profile)
        profile['daily_targets'] = dict(profile['daily_targets'], calories=1680)
        user.health_profile = profile
        db.session.commit()

    order = place_order()
    response = client.get(f"/api/nutrition/meal/{order['id']}", headers=seed['customer'])
    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['order_id'] == order['id']
    assert data['total']['calories'] == 840
    assert data['items'][0]['quantity'] == 2
    assert data['comparison']['calories'] == {'consumed': 840, 'target': 1680, 'percentage': 50.0}
    assert 'fiber' not in data['comparison']

    assert client.get(f"/api/nutrition/meal/{order['id']}", headers=seed['rider']).status_code == 403
    assert client.get(f"/api/nutrition/meal/{order['id']}").status_code == 401


def _menu_item(**fields):
    values = dict.fromkeys(('calories', 'protein', 'carbs', 'fat', 'sodium', 'sugar', 'fiber'), 0)
    values.update(fields)
    ingredients = values.pop('ingredients', [])
    add_ons = values.pop('add_ons', [])

    def find(entries, name):
        return next((entry for entry in entries if entry['name'] == name), None)

    return SimpleNamespace(
        ingredients=ingredients,
        find_ingredient=lambda name: find(ingredients, name),
        find_add_on=lambda name: find(add_ons, name),
        **values
    )


def test_customized_nutrition_adds_and_removes():
    item = _menu_item(
        calories=500, protein=20, sugar=10,
        ingredients=[{'name': 'Mayo', 'calories': 90, 'fat': 10}],
        add_ons=[{'name': 'Bacon', 'price': 60, 'calories': 120, 'protein': 8}]
    )
    totals = nutrition.customized_nutrition(item, {
        'removed_ingredients': ['Mayo'],
        'added_ingredients': ['Bacon', {'name': 'Egg', 'nutritional_info': {'calories': 70, 'protein': 6}}]
    }, quantity=2)

    assert totals['calories'] == (500 - 90 + 120 + 70) * 2
    assert totals['protein'] == (20 + 8 + 6) * 2
    assert totals['fat'] == 0
    # ingredient data never carries sugar, so it is only scaled
    assert totals['sugar'] == 20


def test_serving_size_factors():
    assert nutrition.serving_size_factor('Small') == 0.7
    assert nutrition.serving_size_factor('extra large') == 1.5
    assert nutrition.serving_size_factor(None) == 1
    assert nutrition.serving_size_factor('Family') == 1
