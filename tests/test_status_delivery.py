from yumrun import db
from yumrun.models.models import User


def test_status(client, seed):
    response = client.get('/api/status')
    assert response.status_code == 200
    body = response.get_json()
    assert body['status'] == 'Online'
    assert body['version'] == '1.0.0'
    assert body['environment'] == 'testing'
    assert body['database']['connected'] is True
    assert body['database']['counts'] == {'users': 4, 'restaurants': 1, 'menu_items': 2, 'orders': 0}


def test_unknown_route_envelope(client):
    response = client.get('/api/does-not-exist')
    assert response.status_code == 404
    assert response.get_json() == {
        'success': False,
        'error': {'message': 'Not Found - /api/does-not-exist', 'code': 'NOT_FOUND'}
    }


def test_available_deliveries_and_accept(client, seed, place_order, advance_order):
    order = place_order()
    assert client.get('/api/delivery/available', headers=seed['rider']).get_json()['data'] == []

    advance_order(order['id'], 'CONFIRMED', 'PREPARING', 'READY')
    available = client.get('/api/delivery/available', headers=seed['rider']).get_json()['data']
    assert [o['id'] for o in available] == [order['id']]

    accepted = client.post(f"/api/delivery/{order['id']}/accept", headers=seed['rider'])
    assert accepted.status_code == 200
    assert accepted.get_json()['data']['assigned_rider_id'] == seed['rider_id']

    again = client.post(f"/api/delivery/{order['id']}/accept", headers=seed['rider'])
    assert again.status_code == 409

    mine = client.get('/api/delivery/my', headers=seed['rider']).get_json()
    assert [o['id'] for o in mine['data']] == [order['id']]
    assert [o['id'] for o in mine['active']] == [order['id']]


def test_accept_requires_ready_order(client, seed, place_order):
    order = place_order()
    response = client.post(f"/api/delivery/{order['id']}/accept", headers=seed['rider'])
    assert response.status_code == 400
    assert client.post(f"/api/delivery/{'9' * 24}/accept", headers=seed['rider']).status_code == 404
    assert client.post(f"/api/delivery/{order['id']}/accept", headers=seed['customer']).status_code == 403


def test_rider_availability(client, app, seed):
    response = client.put('/api/delivery/availability', headers=seed['rider'], json={'is_available': False})
    assert response.status_code == 200
    assert response.get_json()['data']['rider_details']['is_available'] is False
    with app.app_context():
        assert db.session.get(User, seed['rider_id']).rider_details['is_available'] is False

    invalid = client.put('/api/delivery/availability', headers=seed['rider'], json={'is_available': 'no'})
    assert invalid.status_code == 400
