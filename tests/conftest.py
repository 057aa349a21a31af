import pytest
from config import TestingConfig
from yumrun import create_app, db
from yumrun.models.models import MenuItem, Restaurant, User
from yumrun.utils.auth import ADMIN, CUSTOMER, DELIVERY_RIDER, RESTAURANT, issue_token

PASSWORD = 'secret123'

MOMO = {
    'item_name': 'Chicken Momo',
    'item_price': 250.0,
    'description': 'Steamed dumplings',
    'category': 'Main Course',
    'calories': 420, 'protein': 28, 'carbs': 48, 'fat': 12, 'sodium': 680, 'sugar': 3, 'fiber': 2,
    'ingredients': [
        {'name': 'Dough', 'calories': 220, 'protein': 6, 'carbs': 44, 'fat': 1, 'sodium': 200,
         'is_default': True, 'is_removable': False},
        {'name': 'Chicken', 'calories': 160, 'protein': 21, 'carbs': 0, 'fat': 8, 'sodium': 380,
         'is_default': True, 'is_removable': False},
        {'name': 'Onion', 'calories': 40, 'protein': 1, 'carbs': 4, 'fat': 3, 'sodium': 100,
         'is_default': True, 'is_removable': True}
    ],
    'customization_options': {
        'available_add_ons': [
            {'name': 'Extra Cheese', 'price': 50, 'calories': 100, 'protein': 6, 'carbs': 1, 'fat': 8,
             'sodium': 150}
        ],
        'serving_size_options': ['Small', 'Regular', 'Large'],
        'cooking_methods': [{'name': 'Steamed', 'price': 0}, {'name': 'Fried', 'price': 40}]
    },
    'health_attributes': {'is_high_protein': True},
    'allergens': ['Gluten']
}

SALAD = {
    'item_name': 'Garden Salad',
    'item_price': 300.0,
    'description': 'Fresh greens',
    'category': 'Specials',
    'calories': 180, 'protein': 5, 'carbs': 12, 'fat': 9, 'sodium': 120, 'sugar': 4, 'fiber': 6,
    'health_attributes': {'is_diabetic_friendly': True, 'is_heart_healthy': True, 'is_low_carb': True},
    'allergens': [],
    'is_vegetarian': True,
    'is_vegan': True,
    'is_gluten_free': True
}


def make_user(role, email, first_name='Test', last_name='User', **fields):
    user = User(email=email, phone='9800000000', role=role, **fields)
    user.set_name(first_name, last_name)
    user.set_password(PASSWORD)
    db.session.add(user)
    return user


def auth_header(token):
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def seed(app):
    """Users for every role, an approved restaurant with two menu items, and tokens"""
    with app.app_context():
        customer = make_user(CUSTOMER, 'customer@example.com', 'Sita', 'Sharma')
        owner = make_user(RESTAURANT, 'owner@example.com', 'Ram', 'Thapa')
        rider = make_user(DELIVERY_RIDER, 'rider@example.com', 'Hari', 'Gurung', rider_details={
            'vehicle_type': 'bike', 'approved': True, 'is_available': True, 'completed_deliveries': 0
        })
        admin = make_user(ADMIN, 'admin@example.com', 'Admin', 'User')
        db.session.flush()

        restaurant = Restaurant(
            name='Himalayan Kitchen', location='Thamel', description='Nepali food',
            owner_id=owner.id, status='approved', delivery_fee=100.0, minimum_order=0, cuisine=['Nepali']
        )
        db.session.add(restaurant)
        db.session.flush()

        momo = MenuItem(restaurant_id=restaurant.id, **MOMO)
        salad = MenuItem(restaurant_id=restaurant.id, **SALAD)
        db.session.add_all([momo, salad])
        db.session.commit()

        return {
            'customer_id': customer.id,
            'owner_id': owner.id,
            'rider_id': rider.id,
            'admin_id': admin.id,
            'restaurant_id': restaurant.id,
            'momo_id': momo.id,
            'salad_id': salad.id,
            'customer': auth_header(issue_token(customer)),
            'owner': auth_header(issue_token(owner)),
            'rider': auth_header(issue_token(rider)),
            'admin': auth_header(issue_token(admin)),
        }


@pytest.fixture
def place_order(client, seed):
    """Place an order as the seeded customer and return its JSON"""
    def _place(items=None, **body):
        payload = {
            'items': items or [{'product_id': seed['momo_id'], 'quantity': 2}],
            'delivery_address': {'street': 'Lazimpat', 'city': 'Kathmandu'},
            'payment_method': 'CASH'
        }
        payload.update(body)
        response = client.post('/api/orders', json=payload, headers=seed['customer'])
        assert response.status_code == 201, response.get_json()
        return response.get_json()['data']
    return _place


@pytest.fixture
def advance_order(client, seed):
    """Move an order along the lifecycle with the role allowed to do each step"""
    def _advance(order_id, *statuses):
        for status in statuses:
            if status in ('OUT_FOR_DELIVERY', 'DELIVERED'):
                headers = seed['rider']
            else:
                headers = seed['owner']
            if status == 'OUT_FOR_DELIVERY':
                accepted = client.post(f'/api/delivery/{order_id}/accept', headers=seed['rider'])
                assert accepted.status_code == 200, accepted.get_json()
            response = client.post(f'/api/orders/{order_id}/status', json={'status': status}, headers=headers)
            assert response.status_code == 200, response.get_json()
        return response.get_json()['data']
    return _advance
