"""
Integration tests for the order endpoints.
"""

import pytest
from decimal import Decimal
from dealerdesk.models import OrderItem, Role


class TestCreateOrderEndpoint:

    def test_create_order(self, dealer_client, make_product):
        product = make_product(dealer_price='600000')
        product_id = product.id

        response = dealer_client.post('/orders', json={'items': [{'product_id': product_id, 'quantity': 1}]})

        assert response.status_code == 201
        order = response.get_json()['order']
        assert order['discount_percent'] == '2'
        assert Decimal(order['total']) == Decimal('588000.00')
        assert order['inserted'] == 1

    def test_items_must_be_a_list(self, dealer_client, session):
        response = dealer_client.post('/orders', json={'items': 'nope'})
        assert response.status_code == 422

    def test_empty_order_conflict(self, dealer_client, make_product):
        product_id = make_product().id
        response = dealer_client.post('/orders', json={'items': [{'product_id': product_id, 'quantity': 0}]})

        assert response.status_code == 409
        assert response.get_json()['status'] == 'error'

    def test_requires_login(self, client, session):
        response = client.post('/orders', json={'items': []})
        assert response.status_code == 401


class TestEditOrderEndpoint:

    def test_owner_edits_lines(self, dealer_client, dealer_user, session, make_product, make_order):
        a = make_product(dealer_price='500000')
        b = make_product(dealer_price='100000')
        order = make_order(dealer_user, [(a, 1, '500000', '0')])
        order_id, a_id, b_id = order.id, a.id, b.id

        response = dealer_client.patch(f'/orders/{order_id}/items', json={
            'items': [{'product_id': a_id, 'quantity': 2}],
            'add': [{'product_id': b_id, 'quantity': 1}],
        })

        assert response.status_code == 200
        data = response.get_json()['order']
        assert data['discount_percent'] == '6'
        assert (data['inserted'], data['updated'], data['deleted']) == (1, 1, 0)
        discounts = {item.discount for item in session.query(OrderItem).filter_by(order_id=order_id)}
        assert discounts == {Decimal('6')}

    def test_other_users_cannot_edit(self, login_as, make_user, make_product, make_order):
        owner = make_user(Role.DEALER_4)
        order = make_order(owner, [(make_product(), 1, '80', '0')])
        order_id = order.id
        client = login_as(make_user(Role.DEALER_6))

        response = client.patch(f'/orders/{order_id}/items', json={'remove': []})

        assert response.status_code == 403

    def test_admin_can_edit_any_order(self, admin_client, make_user, make_product, make_order):
        owner = make_user(Role.DEALER_4)
        product = make_product()
        order = make_order(owner, [(product, 1, '80', '0')])
        order_id, product_id = order.id, product.id

        response = admin_client.patch(f'/orders/{order_id}/items', json={
            'items': [{'product_id': product_id, 'quantity': 3}],
        })

        assert response.status_code == 200
        assert response.get_json()['order']['updated'] == 1

    def test_removing_all_lines_conflicts(self, dealer_client, dealer_user, session, make_product, make_order):
        product = make_product()
        order = make_order(dealer_user, [(product, 2, '80', '0')])
        order_id, product_id = order.id, product.id

        response = dealer_client.patch(f'/orders/{order_id}/items', json={'remove': [product_id]})

        assert response.status_code == 409
        assert session.query(OrderItem).filter_by(order_id=order_id).one().quantity == 2

    def test_negative_quantity_is_rejected(self, dealer_client, dealer_user, make_product, make_order):
        product = make_product()
        order = make_order(dealer_user, [(product, 2, '80', '0')])
        order_id, product_id = order.id, product.id

        response = dealer_client.patch(f'/orders/{order_id}/items', json={
            'items': [{'product_id': product_id, 'quantity': -1}],
        })

        assert response.status_code == 422

    @pytest.mark.parametrize('body, field', [
        ({'remove': 5}, 'remove'),
        ({'items': 3}, 'items'),
        ({'add': True}, 'add'),
        ({'items': {'product_id': 1}}, 'items'),
    ])
    def test_non_list_fields_are_rejected(self, dealer_client, dealer_user, make_product, make_order, body, field):
        order_id = make_order(dealer_user, [(make_product(), 1, '80', '0')]).id

        response = dealer_client.patch(f'/orders/{order_id}/items', json=body)

        assert response.status_code == 422
        assert response.get_json()['errors'] == [f'{field} must be a list']

    def test_unknown_order(self, dealer_client, session):
        response = dealer_client.patch('/orders/999/items', json={})
        assert response.status_code == 404


class TestOrderDetailsEndpoint:

    def test_owner_sees_lines_and_totals(self, dealer_client, dealer_user, make_product, make_order):
        product = make_product(code='DET-1', dealer_price='600000')
        order_id = make_order(dealer_user, [(product, 1, '600000', '2')]).id

        response = dealer_client.get(f'/orders/{order_id}')

        assert response.status_code == 200
        order = response.get_json()['order']
        assert order['order_id'] == order_id
        assert [item['code'] for item in order['items']] == ['DET-1']
        assert order['items'][0]['line_total'] == '588000.00'
        assert order['subtotal'] == '600000.00'
        assert order['total'] == '588000.00'
        assert order['quote'] == {'subtotal': '600000.00', 'discount_percent': '2', 'total': '588000.00'}

    def test_quote_uses_viewer_tier(self, admin_client, make_user, make_product, make_order):
        owner = make_user(Role.DEALER_6)
        order_id = make_order(owner, [(make_product(), 1, '600000', '2')]).id

        response = admin_client.get(f'/orders/{order_id}')

        assert response.status_code == 200
        order = response.get_json()['order']
        assert order['total'] == '588000.00'
        assert order['quote']['discount_percent'] == '0'
        assert order['quote']['total'] == '600000.00'

    def test_other_dealer_is_forbidden(self, login_as, make_user, make_product, make_order):
        order_id = make_order(make_user(Role.DEALER_4), [(make_product(), 1, '80', '0')]).id
        client = login_as(make_user(Role.DEALER_6))

        response = client.get(f'/orders/{order_id}')

        assert response.status_code == 403

    def test_logged_in_admin_gets_not_found(self, admin_client, admin_user):
        # the fixture user stays readable after the login helper has run
        assert admin_user.role == Role.ADMIN.value

        response = admin_client.get('/orders/999')

        assert response.status_code == 404

    def test_requires_login(self, client, session):
        response = client.get('/orders/1')
        assert response.status_code == 401


def test_metrics_endpoint(client):
    response = client.get('/metrics')

    assert response.status_code == 200
    assert b'http_requests_total' in response.data
