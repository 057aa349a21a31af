from yumrun import db
from yumrun.models.models import User

REGISTRATION = {
    'first_name': 'Maya',
    'last_name': 'Rai',
    'email': 'Maya@Example.com',
    'phone': '9811111111',
    'password': 'secret123'
}


def test_register_returns_user_and_token(client, app):
    response = client.post('/api/auth/register', json=REGISTRATION)
    assert response.status_code == 201

    body = response.get_json()
    assert body['success'] is True
    assert body['data']['token']
    user = body['data']['user']
    assert user['email'] == 'maya@example.com'
    assert user['full_name'] == 'Maya Rai'
    assert user['role'] == 'customer'
    assert user['loyalty_tier'] == 'BRONZE'
    assert user['health_profile']['daily_targets']['calories'] == 2000

    with app.app_context():
        stored = User.query.filter_by(email='maya@example.com').first()
        assert stored.password_hash != 'secret123'
        assert stored.check_password('secret123')


def test_register_rider_starts_unapproved(client):
    response = client.post('/api/auth/register', json=dict(REGISTRATION, role='delivery_rider'))
    assert response.status_code == 201
    details = response.get_json()['data']['user']['rider_details']
    assert details['approved'] is False
    assert details['completed_deliveries'] == 0


def test_register_rejects_admin_role(client):
    response = client.post('/api/auth/register', json=dict(REGISTRATION, role='admin'))
    assert response.status_code == 400
    assert response.get_json()['error']['code'] == 'VALIDATION_ERROR'


def test_register_validation(client):
    missing = client.post('/api/auth/register', json={'email': 'a@b.com'})
    assert missing.status_code == 400
    assert missing.get_json()['success'] is False

    bad_phone = client.post('/api/auth/register', json=dict(REGISTRATION, phone='12345'))
    assert bad_phone.status_code == 400
    assert 'Phone' in bad_phone.get_json()['error']['message']

    short_password = client.post('/api/auth/register', json=dict(REGISTRATION, password='abc'))
    assert short_password.status_code == 400


def test_register_duplicate_email(client):
    assert client.post('/api/auth/register', json=REGISTRATION).status_code == 201
    response = client.post('/api/auth/register', json=REGISTRATION)
    assert response.status_code == 409
    assert response.get_json()['error']['code'] == 'ALREADY_EXISTS'


def test_login_and_me(client, seed):
    response = client.post('/api/auth/login', json={'email': 'customer@example.com', 'password': 'secret123'})
    assert response.status_code == 200
    token = response.get_json()['data']['token']

    me = client.get('/api/auth/me', headers={'Authorization': f'Bearer {token}'})
    assert me.status_code == 200
    assert me.get_json()['data']['id'] == seed['customer_id']


def test_login_invalid_credentials(client, seed):
    response = client.post('/api/auth/login', json={'email': 'customer@example.com', 'password': 'wrong-pass'})
    assert response.status_code == 401
    assert response.get_json()['error']['message'] == 'Invalid credentials'


def test_protected_route_without_token(client):
    response = client.get('/api/auth/me')
    assert response.status_code == 401
    assert response.get_json() == {
        'success': False,
        'error': {'message': 'No token, authorization denied', 'code': 'UNAUTHORIZED'}
    }


def test_inactive_user_token_rejected(client, app, seed):
    with app.app_context():
        db.session.get(User, seed['customer_id']).is_active = False
        db.session.commit()

    response = client.get('/api/auth/me', headers=seed['customer'])
    assert response.status_code == 401


def test_role_gate(client, seed):
    response = client.get('/api/admin/dashboard', headers=seed['customer'])
    assert response.status_code == 403
    assert response.get_json()['error']['message'] == 'Access denied. Admin permissions required.'


def test_update_profile(client, seed):
    response = client.put('/api/users/profile', headers=seed['customer'], json={
        'first_name': 'Sita',
        'last_name': 'Karki',
        'address': {'street': 'Baneshwor', 'city': 'Kathmandu'}
    })
    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['full_name'] == 'Sita Karki'
    assert data['address']['street'] == 'Baneshwor'

    taken = client.put('/api/users/profile', headers=seed['customer'], json={'email': 'owner@example.com'})
    assert taken.status_code == 409


def test_update_health_details(client, seed):
    response = client.put('/api/users/health-details', headers=seed['customer'], json={
        'allergies': 'Peanuts, Gluten',
        'health_conditions': ['Diabetes'],
        'weight_management_goal': 'Lose',
        'daily_targets': {'calories': 1800}
    })
    assert response.status_code == 200
    profile = response.get_json()['data']['health_profile']
    assert profile['allergies'] == ['Peanuts', 'Gluten']
    assert profile['weight_management_goal'] == 'Lose'
    assert profile['daily_targets']['calories'] == 1800
    assert profile['daily_targets']['protein'] == 50

    invalid = client.put('/api/users/health-details', headers=seed['customer'],
                         json={'weight_management_goal': 'Bulk'})
    assert invalid.status_code == 400


def test_change_password(client, seed):
    wrong = client.post('/api/auth/change-password', headers=seed['customer'],
                        json={'current_password': 'nope-nope', 'new_password': 'another1'})
    assert wrong.status_code == 400

    response = client.post('/api/auth/change-password', headers=seed['customer'],
                           json={'current_password': 'secret123', 'new_password': 'another1'})
    assert response.status_code == 200

    login = client.post('/api/auth/login', json={'email': 'customer@example.com', 'password': 'another1'})
    assert login.status_code == 200
