from yumrun.services.cart import cart_stats


def test_empty_cart(client, seed):
    response = client.get('/api/cart', headers=seed['customer'])
    assert response.status_code == 200
    assert response.get_json()['data'] == {
        'items': [],
        'stats': {'total_items': 0, 'sub_total': 0, 'shipping': 0, 'total': 0}
    }


def test_add_items_merges_quantities(client, seed):
    headers = seed['customer']
    client.post('/api/cart/items', headers=headers, json={'product_id': seed['momo_id'], 'quantity': 1})
    client.post('/api/cart/items', headers=headers, json={'product_id': seed['salad_id'], 'quantity': 1})
    response = client.post('/api/cart/items', headers=headers, json={'product_id': seed['momo_id'], 'quantity': 2})

    assert response.status_code == 200
    cart = response.get_json()['data']
    assert len(cart['items']) == 2
    momo = next(line for line in cart['items'] if line['id'] == seed['momo_id'])
    assert momo['quantity'] == 3
    assert momo['sub_total'] == 750
    assert cart['stats'] == {'total_items': 4, 'sub_total': 1050, 'shipping': 0, 'total': 1050}


def test_cart_persists_between_requests(client, seed):
    client.post('/api/cart/items', headers=seed['customer'], json={'product_id': seed['salad_id'], 'quantity': 2})
    cart = client.get('/api/cart', headers=seed['customer']).get_json()['data']
    assert cart['stats']['total'] == 600

    other = client.get('/api/cart', headers=seed['owner']).get_json()['data']
    assert other['items'] == []


def test_customized_line_price(client, seed):
    response = client.post('/api/cart/items', headers=seed['customer'], json={
        'product_id': seed['momo_id'],
        'customization': {'added_ingredients': ['Extra Cheese'], 'serving_size': 'Large'}
    })
    line = response.get_json()['data']['items'][0]
    assert line['price'] == 300
    assert line['customization']['serving_size'] == 'Large'


def test_add_item_validation(client, seed):
    headers = seed['customer']
    assert client.post('/api/cart/items', headers=headers, json={}).status_code == 400
    assert client.post('/api/cart/items', headers=headers,
                       json={'product_id': 'f' * 24}).status_code == 404
    assert client.post('/api/cart/items', headers=headers,
                       json={'product_id': seed['momo_id'], 'quantity': 0}).status_code == 400
    assert client.post('/api/cart/items', headers=headers, json={
        'product_id': seed['momo_id'], 'customization': {'serving_size': 'Family'}
    }).status_code == 400


def test_update_quantity_and_remove(client, seed):
    headers = seed['customer']
    client.post('/api/cart/items', headers=headers, json={'product_id': seed['momo_id']})
    client.post('/api/cart/items', headers=headers, json={'product_id': seed['salad_id']})

    updated = client.put(f"/api/cart/items/{seed['momo_id']}", headers=headers, json={'quantity': 4})
    assert updated.get_json()['data']['stats']['total_items'] == 5

    zeroed = client.put(f"/api/cart/items/{seed['momo_id']}", headers=headers, json={'quantity': 0})
    assert [line['id'] for line in zeroed.get_json()['data']['items']] == [seed['salad_id']]

    removed = client.delete(f"/api/cart/items/{seed['salad_id']}", headers=headers)
    assert removed.get_json()['data']['items'] == []

    missing = client.delete(f"/api/cart/items/{seed['salad_id']}", headers=headers)
    assert missing.status_code == 404

    assert client.delete('/api/cart/items/not-an-id', headers=headers).status_code == 400
    assert client.put('/api/cart/items/not-an-id', headers=headers, json={'quantity': 1}).status_code == 400


def test_clear_cart(client, seed):
    client.post('/api/cart/items', headers=seed['customer'], json={'product_id': seed['momo_id']})
    response = client.delete('/api/cart', headers=seed['customer'])
    assert response.status_code == 200
    assert response.get_json()['data']['stats']['total_items'] == 0


def test_cart_stats_rounding():
    lines = [{'price': 10.1, 'quantity': 3}, {'price': 0.2, 'quantity': 1}]
    assert cart_stats(lines) == {'total_items': 4, 'sub_total': 30.5, 'shipping': 0, 'total': 30.5}
