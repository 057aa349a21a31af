import pytest
from yumrun import db
from yumrun.models.models import MenuItem


def test_favorites_flow(client, seed):
    headers = seed['customer']
    added = client.post('/api/favorites', headers=headers, json={'menuItemId': seed['salad_id']})
    assert added.status_code == 201
    assert added.get_json()['data']['favorites'] == [seed['salad_id']]

    duplicate = client.post('/api/favorites', headers=headers, json={'menuItemId': seed['salad_id']})
    assert duplicate.status_code == 409

    check = client.get(f"/api/favorites/{seed['salad_id']}/check", headers=headers).get_json()['data']
    assert check == {'is_favorite': True}

    listed = client.get('/api/favorites', headers=headers).get_json()
    assert [item['item_name'] for item in listed['data']] == ['Garden Salad']

    removed = client.delete(f"/api/favorites/{seed['salad_id']}", headers=headers)
    assert removed.get_json()['data']['favorites'] == []
    check = client.get(f"/api/favorites/{seed['salad_id']}/check", headers=headers).get_json()['data']
    assert check == {'is_favorite': False}


def test_favorites_validation(client, seed):
    headers = seed['customer']
    assert client.post('/api/favorites', headers=headers, json={}).status_code == 400
    assert client.post('/api/favorites', headers=headers, json={'menuItemId': 'nope'}).status_code == 400
    assert client.post('/api/favorites', headers=headers, json={'menuItemId': 'a' * 24}).status_code == 404
    assert client.delete('/api/favorites/nope', headers=headers).status_code == 400


@pytest.fixture
def delivered_order(place_order, advance_order):
    order = place_order()
    return advance_order(order['id'], 'CONFIRMED', 'PREPARING', 'READY', 'OUT_FOR_DELIVERY', 'DELIVERED')


def _review(client, seed, order_id, item_id, rating=4, comment='Tasty'):
    return client.post('/api/reviews', headers=seed['customer'], json={
        'menuItemId': item_id, 'orderId': order_id, 'rating': rating, 'comment': comment
    })


def test_review_delivered_item_updates_rating(client, app, seed, delivered_order):
    response = _review(client, seed, delivered_order['id'], seed['momo_id'])
    assert response.status_code == 201
    review = response.get_json()['data']
    assert review['rating'] == 4
    assert review['user_name'] == 'Sita Sharma'
    assert review['restaurant_id'] == seed['restaurant_id']

    with app.app_context():
        item = db.session.get(MenuItem, seed['momo_id'])
        assert item.average_rating == 4
        assert item.number_of_ratings == 1

    listing = client.get(f"/api/reviews/menuItem/{seed['momo_id']}").get_json()['data']
    assert listing['stats']['total'] == 1
    assert listing['stats']['distribution']['4'] == 1
    assert listing['pagination']['total'] == 1


def test_duplicate_review_rejected(client, seed, delivered_order):
    assert _review(client, seed, delivered_order['id'], seed['momo_id']).status_code == 201
    assert _review(client, seed, delivered_order['id'], seed['momo_id']).status_code == 409


def test_review_rules(client, seed, place_order, delivered_order):
    pending = place_order()
    not_delivered = _review(client, seed, pending['id'], seed['momo_id'])
    assert not_delivered.status_code == 400

    not_in_order = _review(client, seed, delivered_order['id'], seed['salad_id'])
    assert not_in_order.status_code == 404

    for rating in (0, 6, 3.5, 'great'):
        assert _review(client, seed, delivered_order['id'], seed['momo_id'], rating=rating).status_code == 400

    owner = client.post('/api/reviews', headers=seed['owner'], json={
        'menuItemId': seed['momo_id'], 'orderId': delivered_order['id'], 'rating': 5
    })
    assert owner.status_code == 403


def test_update_reply_and_delete_review(client, app, seed, delivered_order):
    review_id = _review(client, seed, delivered_order['id'], seed['momo_id']).get_json()['data']['id']

    updated = client.put(f'/api/reviews/{review_id}', headers=seed['customer'], json={'rating': 2})
    assert updated.status_code == 200
    assert updated.get_json()['data']['rating'] == 2

    reply = client.put(f'/api/reviews/{review_id}/reply', headers=seed['owner'], json={'reply': 'Sorry!'})
    assert reply.status_code == 200
    assert reply.get_json()['data']['reply'] == 'Sorry!'
    assert reply.get_json()['data']['replied_at'] is not None

    restaurant_reviews = client.get('/api/reviews/restaurant', headers=seed['owner']).get_json()
    assert restaurant_reviews['count'] == 1
    assert client.get('/api/reviews/my', headers=seed['customer']).get_json()['count'] == 1

    deleted = client.delete(f'/api/reviews/{review_id}', headers=seed['customer'])
    assert deleted.status_code == 200
    with app.app_context():
        item = db.session.get(MenuItem, seed['momo_id'])
        assert item.number_of_ratings == 0
        assert item.average_rating == 0
