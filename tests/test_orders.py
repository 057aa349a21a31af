from yumrun import db
from yumrun.models.loyalty import LoyaltyTransaction
from yumrun.models.models import Payment, Restaurant, User
from yumrun.services.order_service import can_transition, generate_order_number


def test_create_order_prices_items(place_order, seed):
    order = place_order()

    assert order['status'] == 'PENDING'
    assert order['order_number'].startswith('YR')
    assert order['total_price'] == 500
    assert order['delivery_fee'] == 100
    assert order['tax'] == 65
    assert order['grand_total'] == 665
    assert order['payment_status'] == 'PENDING'
    assert order['status_updates'][0]['status'] == 'PENDING'
    assert order['items'][0]['line_total'] == 500
    # Dough + Chicken + Onion, per unit, times two units
    assert order['total_nutritional_info']['calories'] == 840


def test_create_order_with_customization(place_order, seed):
    order = place_order(items=[{
        'product_id': seed['momo_id'],
        'quantity': 1,
        'customization': {
            'removed_ingredients': ['Onion'],
            'added_ingredients': ['Extra Cheese'],
            'cooking_method': 'Fried'
        }
    }])

    item = order['items'][0]
    assert item['price'] == 340
    assert item['options'] == [{'name': 'Extra Cheese', 'value': 'added', 'price': 50}]
    assert item['nutritional_info']['calories'] == 480
    assert order['total_price'] == 340


def test_create_order_creates_cash_payment(app, place_order):
    order = place_order()
    with app.app_context():
        payments = Payment.query.filter_by(order_id=order['id']).all()
        assert len(payments) == 1
        assert payments[0].payment_method == 'Cash on Delivery'
        assert payments[0].status == 'Pending'
        assert payments[0].amount == 665


def test_create_order_validation(client, seed):
    headers = seed['customer']
    address = {'street': 'Lazimpat'}

    empty = client.post('/api/orders', headers=headers, json={'items': [], 'delivery_address': address})
    assert empty.status_code == 400

    no_address = client.post('/api/orders', headers=headers,
                             json={'items': [{'product_id': seed['momo_id'], 'quantity': 1}]})
    assert no_address.status_code == 400

    bad_method = client.post('/api/orders', headers=headers, json={
        'items': [{'product_id': seed['momo_id'], 'quantity': 1}],
        'delivery_address': address,
        'payment_method': 'STRIPE'
    })
    assert bad_method.status_code == 400

    unknown = client.post('/api/orders', headers=headers, json={
        'items': [{'product_id': 'a' * 24, 'quantity': 1}],
        'delivery_address': address
    })
    assert unknown.status_code == 404

    bad_removal = client.post('/api/orders', headers=headers, json={
        'items': [{'product_id': seed['momo_id'], 'quantity': 1,
                   'customization': {'removed_ingredients': ['Chicken']}}],
        'delivery_address': address
    })
    assert bad_removal.status_code == 400

    for tip in ('nan', 'inf', -5):
        bad_tip = client.post('/api/orders', headers=headers, json={
            'items': [{'product_id': seed['momo_id'], 'quantity': 1}],
            'delivery_address': address,
            'tip': tip
        })
        assert bad_tip.status_code == 400


def test_only_customers_place_orders(client, seed):
    response = client.post('/api/orders', headers=seed['owner'], json={
        'items': [{'product_id': seed['momo_id'], 'quantity': 1}],
        'delivery_address': 'Lazimpat'
    })
    assert response.status_code == 403


def test_closed_restaurant_and_minimum_order(client, app, seed):
    payload = {'items': [{'product_id': seed['momo_id'], 'quantity': 1}], 'delivery_address': 'Lazimpat'}
    with app.app_context():
        db.session.get(Restaurant, seed['restaurant_id']).minimum_order = 400
        db.session.commit()
    below_minimum = client.post('/api/orders', headers=seed['customer'], json=payload)
    assert below_minimum.status_code == 400
    assert 'Minimum order' in below_minimum.get_json()['error']['message']

    with app.app_context():
        restaurant = db.session.get(Restaurant, seed['restaurant_id'])
        restaurant.minimum_order = 0
        restaurant.is_open = False
        db.session.commit()
    closed = client.post('/api/orders', headers=seed['customer'], json=payload)
    assert closed.status_code == 400


def test_create_order_removes_items_from_cart(client, app, seed, place_order):
    client.post('/api/cart/items', headers=seed['customer'], json={'product_id': seed['momo_id'], 'quantity': 2})
    client.post('/api/cart/items', headers=seed['customer'], json={'product_id': seed['salad_id']})

    place_order()

    cart = client.get('/api/cart', headers=seed['customer']).get_json()['data']
    assert [line['id'] for line in cart['items']] == [seed['salad_id']]


def test_loyalty_points_discount_order(client, app, seed, place_order):
    with app.app_context():
        db.session.get(User, seed['customer_id']).loyalty_points = 100
        db.session.commit()

    order = place_order(loyalty_points_to_use=150)
    assert order['loyalty_points_used'] == 100
    assert order['grand_total'] == 565

    with app.app_context():
        assert db.session.get(User, seed['customer_id']).loyalty_points == 0
        redeem = LoyaltyTransaction.query.filter_by(reference_id=order['id'], type='REDEEM').one()
        assert redeem.points == -100


def test_gold_members_get_free_delivery(app, seed, place_order):
    with app.app_context():
        db.session.get(User, seed['customer_id']).loyalty_tier = 'GOLD'
        db.session.commit()

    order = place_order()
    assert order['delivery_fee'] == 0
    assert order['grand_total'] == 565


def test_list_and_get_orders(client, seed, place_order):
    order = place_order()

    mine = client.get('/api/orders', headers=seed['customer']).get_json()
    assert [o['id'] for o in mine['data']] == [order['id']]
    assert mine['pagination']['total'] == 1

    restaurant = client.get('/api/orders/restaurant', headers=seed['owner']).get_json()
    assert restaurant['data'][0]['id'] == order['id']

    assert client.get(f"/api/orders/{order['id']}", headers=seed['owner']).status_code == 200
    assert client.get(f"/api/orders/{order['id']}", headers=seed['rider']).status_code == 403
    assert client.get('/api/orders/bad-id', headers=seed['customer']).status_code == 400
    assert client.get(f"/api/orders/{'b' * 24}", headers=seed['customer']).status_code == 404

    filtered = client.get('/api/orders?status=DELIVERED', headers=seed['customer']).get_json()
    assert filtered['data'] == []


def test_full_lifecycle_awards_points_on_cash_delivery(client, app, seed, place_order, advance_order):
    order = place_order()
    delivered = advance_order(order['id'], 'CONFIRMED', 'PREPARING', 'READY', 'OUT_FOR_DELIVERY', 'DELIVERED')

    assert delivered['status'] == 'DELIVERED'
    assert delivered['is_paid'] is True
    assert delivered['payment_status'] == 'PAID'
    assert delivered['actual_delivery_time'] is not None
    assert delivered['assigned_rider_id'] == seed['rider_id']
    assert delivered['loyalty_points_earned'] == 50
    assert [u['status'] for u in delivered['status_updates']] == [
        'PENDING', 'CONFIRMED', 'PREPARING', 'READY', 'OUT_FOR_DELIVERY', 'DELIVERED'
    ]

    with app.app_context():
        customer = db.session.get(User, seed['customer_id'])
        assert customer.loyalty_points == 50
        assert customer.lifetime_loyalty_points == 50
        rider = db.session.get(User, seed['rider_id'])
        assert rider.rider_details['completed_deliveries'] == 1
        payment = Payment.query.filter_by(order_id=order['id']).one()
        assert payment.status == 'Completed'


def test_illegal_transition_rejected(client, seed, place_order):
    order = place_order()
    response = client.post(f"/api/orders/{order['id']}/status", headers=seed['owner'], json={'status': 'READY'})
    assert response.status_code == 400
    assert 'Cannot change order status' in response.get_json()['error']['message']


def test_role_limits_on_status_updates(client, seed, place_order, advance_order):
    order = place_order()
    url = f"/api/orders/{order['id']}/status"

    # riders cannot confirm, and cannot touch orders not assigned to them
    assert client.post(url, headers=seed['rider'], json={'status': 'CONFIRMED'}).status_code == 403

    advance_order(order['id'], 'CONFIRMED', 'PREPARING', 'READY')
    assert client.post(url, headers=seed['rider'], json={'status': 'OUT_FOR_DELIVERY'}).status_code == 403
    assert client.post(url, headers=seed['owner'], json={'status': 'OUT_FOR_DELIVERY'}).status_code == 403


def test_admin_can_move_any_legal_transition(client, seed, place_order):
    order = place_order()
    response = client.post(f"/api/orders/{order['id']}/status", headers=seed['admin'], json={'status': 'confirmed'})
    assert response.status_code == 200
    assert response.get_json()['data']['status'] == 'CONFIRMED'


def test_cancel_order_refunds_points(client, app, seed, place_order):
    with app.app_context():
        db.session.get(User, seed['customer_id']).loyalty_points = 50
        db.session.commit()
    order = place_order(loyalty_points_to_use=50)

    response = client.post(f"/api/orders/{order['id']}/cancel", headers=seed['customer'])
    assert response.status_code == 200
    assert response.get_json()['data']['status'] == 'CANCELLED'

    with app.app_context():
        assert db.session.get(User, seed['customer_id']).loyalty_points == 50
        refund = LoyaltyTransaction.query.filter_by(reference_id=order['id'], source='REFUND').one()
        assert refund.type == 'ADJUST'
        assert refund.points == 50
        assert Payment.query.filter_by(order_id=order['id']).one().status == 'Failed'


def test_cannot_cancel_after_preparation_starts(client, seed, place_order, advance_order):
    order = place_order()
    advance_order(order['id'], 'CONFIRMED', 'PREPARING')
    response = client.post(f"/api/orders/{order['id']}/cancel", headers=seed['customer'])
    assert response.status_code == 400


def test_transition_table():
    assert can_transition('PENDING', 'CONFIRMED')
    assert can_transition('CONFIRMED', 'CANCELLED')
    assert not can_transition('PREPARING', 'CANCELLED')
    assert not can_transition('DELIVERED', 'PENDING')
    assert not can_transition('CANCELLED', 'CONFIRMED')


def test_order_numbers_are_unique():
    numbers = {generate_order_number() for _ in range(50)}
    assert len(numbers) == 50
