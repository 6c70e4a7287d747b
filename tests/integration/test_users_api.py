"""
Integration tests for role assignment (service, endpoint and CLI).
"""

import pytest
from decimal import Decimal
from dealerdesk.exceptions import BusinessLogicError, NotFoundError, UnauthorizedError, ValidationError
from dealerdesk.models import AppUser, Role
from dealerdesk.services.user_service import assign_role


class TestAssignRole:

    def test_admin_changes_tier(self, session, admin_user, make_user):
        user_id = make_user(Role.DEALER_4).id

        user = assign_role(session, user_id, 'dealer_6', acting_user=admin_user)

        assert user.role == Role.DEALER_6.value
        assert session.get(AppUser, user_id).role == 'dealer_6'

    def test_non_admin_is_refused(self, session, make_user):
        actor = make_user(Role.DEALER_6)
        target_id = make_user(Role.DEALER_4).id

        with pytest.raises(UnauthorizedError):
            assign_role(session, target_id, Role.DEALER_6, acting_user=actor)

    def test_admin_cannot_change_own_role(self, session, admin_user):
        with pytest.raises(BusinessLogicError):
            assign_role(session, admin_user.id, 'dealer_4', acting_user=admin_user)

    def test_unknown_role(self, session, make_user):
        user_id = make_user(Role.DEALER_4).id

        with pytest.raises(ValidationError):
            assign_role(session, user_id, 'platinum')

    def test_unknown_user(self, session):
        with pytest.raises(NotFoundError):
            assign_role(session, 4242, 'dealer_4')


class TestRoleEndpoint:

    def test_admin_sets_role(self, admin_client, make_user, session):
        user_id = make_user(None).id

        response = admin_client.put(f'/users/{user_id}/role', json={'role': 'dealer_marketing'})

        assert response.status_code == 200
        assert response.get_json()['user']['role'] == 'dealer_marketing'
        assert session.get(AppUser, user_id).role == 'dealer_marketing'

    def test_dealer_cannot_set_roles(self, dealer_client, make_user):
        user_id = make_user(Role.DEALER_4).id

        response = dealer_client.put(f'/users/{user_id}/role', json={'role': 'admin'})

        assert response.status_code == 403

    def test_own_role_is_locked(self, admin_client, admin_user):
        admin_id = admin_user.id

        response = admin_client.put(f'/users/{admin_id}/role', json={'role': 'dealer_6'})

        assert response.status_code == 400

    def test_invalid_role(self, admin_client, make_user):
        user_id = make_user(Role.DEALER_4).id

        response = admin_client.put(f'/users/{user_id}/role', json={'role': 'gold'})

        assert response.status_code == 422

    def test_unknown_user(self, admin_client):
        response = admin_client.put('/users/4242/role', json={'role': 'dealer_4'})
        assert response.status_code == 404

    def test_new_role_drives_order_prices(self, admin_client, app, make_user, make_product):
        dealer = make_user(Role.DEALER_6)
        dealer_id = dealer.id
        product_id = make_product(retail_price='100.00', dealer_price='80.00').id

        response = admin_client.put(f'/users/{dealer_id}/role', json={'role': 'counter_staff'})
        assert response.status_code == 200

        client = app.test_client()
        with client.session_transaction() as sess:
            sess['user_id'] = dealer_id
        response = client.post('/orders', json={'items': [{'product_id': product_id, 'quantity': 1}]})

        assert response.status_code == 201
        assert Decimal(response.get_json()['order']['total']) == Decimal('100.00')


class TestSetRoleCommand:

    def test_sets_role_by_email(self, app, session, make_user):
        user = make_user(Role.DEALER_4)
        user_id, email = user.id, user.email

        result = app.test_cli_runner().invoke(args=['set-role', '--email', email, '--role', 'dealer_6'])

        assert result.exit_code == 0
        assert 'is now dealer_6' in result.output
        session.remove()
        assert session.get(AppUser, user_id).role == 'dealer_6'

    def test_unknown_email(self, app, session):
        result = app.test_cli_runner().invoke(args=['set-role', '--email', 'nobody@test.com', '--role', 'dealer_6'])

        assert result.exit_code == 0
        assert 'No user with email nobody@test.com' in result.output
