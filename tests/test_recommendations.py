from yumrun import db
from yumrun.models.models import MenuItem, User


def _set_profile(app, user_id, **fields):
    with app.app_context():
        user = db.session.get(User, user_id)
        profile = dict(user.health_profile)
        profile.update(fields)
        user.health_profile = profile
        db.session.commit()


def test_recommendations_require_login(client):
    assert client.get('/api/recommendations').status_code == 401


def test_allergens_are_excluded(client, app, seed):
    _set_profile(app, seed['customer_id'], allergies=['gluten'], dietary_preferences=['Vegan'])

    response = client.get('/api/recommendations', headers=seed['customer'])
    assert response.status_code == 200
    body = response.get_json()
    assert [item['name'] for item in body['data']] == ['Garden Salad']
    assert body['count'] == 1
    assert body['data'][0]['score'] == 5


def test_health_conditions_boost_matching_items(client, app, seed):
    _set_profile(app, seed['customer_id'], health_conditions=['Type 2 Diabetes', 'Heart disease'])

    data = client.get('/api/recommendations', headers=seed['customer']).get_json()['data']
    assert data[0]['name'] == 'Garden Salad'
    assert data[0]['score'] == 20


def test_favorites_and_order_history_boost(client, app, seed, place_order):
    place_order()
    with app.app_context():
        db.session.get(User, seed['customer_id']).favorites = [seed['momo_id']]
        db.session.commit()

    data = client.get('/api/recommendations', headers=seed['customer']).get_json()['data']
    assert data[0]['name'] == 'Chicken Momo'
    assert data[0]['score'] == 22


def test_disliked_and_unavailable_items_skipped(client, app, seed):
    _set_profile(app, seed['customer_id'], disliked_foods=['salad'], dietary_preferences=['Vegetarian'])
    with app.app_context():
        db.session.get(MenuItem, seed['momo_id']).is_vegetarian = True
        db.session.commit()

    names = [item['name'] for item in client.get('/api/recommendations', headers=seed['customer']).get_json()['data']]
    assert names == ['Chicken Momo']

    with app.app_context():
        db.session.get(MenuItem, seed['momo_id']).is_available = False
        db.session.commit()
    assert client.get('/api/recommendations', headers=seed['customer']).get_json()['data'] == []


def test_health_recommendations(client, seed):
    response = client.get('/api/recommendations/health?condition=Diabetes')
    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['condition'] == 'Diabetes'
    assert [item['name'] for item in data['recommendations']] == ['Garden Salad']
    assert 'Suitable for diabetic diets' in data['recommendations'][0]['health_benefits']

    unfiltered = client.get('/api/recommendations/health').get_json()['data']
    assert unfiltered['condition'] == 'Healthy'
    assert len(unfiltered['recommendations']) == 2


def test_popular_items(client, seed, place_order):
    place_order(items=[{'product_id': seed['salad_id'], 'quantity': 3}])
    place_order(items=[{'product_id': seed['momo_id'], 'quantity': 1}])

    data = client.get('/api/recommendations/popular?limit=5').get_json()['data']
    assert [(item['name'], item['times_ordered']) for item in data] == [('Garden Salad', 3), ('Chicken Momo', 1)]


def test_order_history(client, seed, place_order):
    place_order()
    data = client.get('/api/recommendations/history', headers=seed['customer']).get_json()['data']
    assert data == [dict(data[0], name='Chicken Momo', times_ordered=2)]
