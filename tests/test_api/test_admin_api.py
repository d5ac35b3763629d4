"""
Back-office endpoints: orders, members, discounts, payment methods
"""
from decimal import Decimal
from unittest.mock import patch

from storefront.core.errors import ConflictError, NotFoundError
from storefront.domain.member import TopMember
from storefront.domain.payment import AdminPaymentGroup


class TestAdminAuth:

    def test_orders_require_token(self, client):
        assert client.get("/api/v1/orders").status_code == 401

    def test_member_token_is_forbidden(self, client, member_token):
        response = client.get("/api/v1/orders", headers={"Authorization": f"Bearer {member_token}"})
        assert response.status_code == 403

    def test_payment_method_admin_routes_require_admin(self, client, member_token):
        response = client.get("/api/v1/payment-methods/all", headers={"Authorization": f"Bearer {member_token}"})
        assert response.status_code == 403


class TestOrdersAdminApi:

    @patch('storefront.api.orders.OrderService')
    def test_list_orders(self, mock_service, client, as_admin, order_factory):
        mock_service.return_value.list_orders.return_value = [order_factory("o-2"), order_factory("o-1")]

        response = client.get("/api/v1/orders?limit=50&since=2025-01-01T00:00:00")

        assert response.status_code == 200
        assert [o["id"] for o in response.json()["data"]] == ["o-2", "o-1"]
        mock_service.return_value.list_orders.assert_called_once_with(limit=50, since="2025-01-01T00:00:00")

    @patch('storefront.api.orders.order_feed')
    def test_feed_snapshot(self, mock_feed, client, as_admin, order_factory):
        mock_feed.snapshot.return_value = [order_factory("o-1", order_option="order_via_messenger")]

        data = client.get("/api/v1/orders/feed").json()

        assert data["count"] == 1
        assert data["data"][0]["display_status"] == "Done via Messenger"

    @patch('storefront.api.orders.OrderService')
    def test_get_missing_order(self, mock_service, client, as_admin):
        mock_service.return_value.get_order.side_effect = NotFoundError("Order o-x not found")

        assert client.get("/api/v1/orders/o-x").status_code == 404

    @patch('storefront.api.orders.OrderService')
    def test_update_status(self, mock_service, client, as_admin, order_factory):
        mock_service.return_value.update_status.return_value = order_factory("o-1", status="approved")

        response = client.patch("/api/v1/orders/o-1/status", json={"status": "approved"})

        assert response.status_code == 200
        assert response.json()["message"] == "Order status updated to approved"

    def test_update_status_rejects_unknown_status(self, client, as_admin):
        response = client.patch("/api/v1/orders/o-1/status", json={"status": "shipped"})
        assert response.status_code == 422


class TestMembersAdminApi:

    @patch('storefront.api.admin_members.MemberService')
    def test_members_include_order_totals(self, mock_service, client, as_admin, end_user, reseller):
        mock_service.return_value.list_members.return_value = [end_user, reseller]
        mock_service.return_value.member_order_summary.return_value = {
            "m-1": {"total_orders": 2, "total_cost": 300.0},
        }

        data = client.get("/api/v1/admin/members?user_type=all").json()["data"]

        assert data[0]["total_orders"] == 2
        assert data[1]["total_orders"] == 0
        assert data[1]["total_cost"] == 0.0

    @patch('storefront.api.admin_members.MemberService')
    def test_top_members(self, mock_service, client, as_admin, reseller):
        mock_service.return_value.top_members.return_value = [
            TopMember(member=reseller, total_orders=5, total_cost=Decimal("1250.50")),
        ]

        data = client.get("/api/v1/admin/members/top?limit=5").json()["data"]

        assert data[0]["total_cost"] == 1250.5
        mock_service.return_value.top_members.assert_called_once_with(limit=5)

    @patch('storefront.api.admin_members.MemberService')
    def test_update_member(self, mock_service, client, as_admin, reseller):
        mock_service.return_value.update_member.return_value = reseller

        response = client.patch("/api/v1/admin/members/m-2", json={"user_type": "reseller"})

        assert response.status_code == 200
        update = mock_service.return_value.update_member.call_args[0][1]
        assert update.user_type == "reseller"
        assert update.level is None

    @patch('storefront.api.admin_members.MemberService')
    def test_save_discounts(self, mock_service, client, as_admin, reseller_discount):
        mock_service.return_value.set_discount.return_value = reseller_discount

        response = client.put("/api/v1/admin/members/m-2/discounts", json=[
            {"menu_item_id": "ml", "variation_id": "v-172", "discount_percentage": 10,
             "capital_price": 130, "selling_price": 140},
        ])

        assert response.status_code == 200
        assert response.json()["data"][0]["selling_price"] == 140.0

    @patch('storefront.api.admin_members.MemberService')
    def test_save_discounts_for_unknown_member(self, mock_service, client, as_admin):
        mock_service.return_value.set_discount.side_effect = NotFoundError("Member m-x not found")

        response = client.put("/api/v1/admin/members/m-x/discounts", json=[
            {"menu_item_id": "ml", "selling_price": 140},
        ])

        assert response.status_code == 404

    @patch('storefront.api.admin_members.MemberService')
    def test_delete_discount(self, mock_service, client, as_admin):
        response = client.delete("/api/v1/admin/discounts/d-1")

        assert response.status_code == 200
        mock_service.return_value.delete_discount.assert_called_once_with("d-1")


class TestPaymentMethodsAdminApi:

    @patch('storefront.api.payment_methods.PaymentMethodService')
    def test_duplicate_method_is_409(self, mock_service, client, as_admin):
        mock_service.return_value.add_method.side_effect = ConflictError("duplicate")

        response = client.post("/api/v1/payment-methods", json={
            "id": "gcash", "name": "GCash", "account_number": "0917", "account_name": "Trish",
            "qr_code_url": "https://cdn.example.com/q.png", "admin_name": "Trish",
        })

        assert response.status_code == 409

    @patch('storefront.api.payment_methods.PaymentMethodService')
    def test_grouped(self, mock_service, client, as_admin, gcash):
        mock_service.return_value.list_grouped.return_value = {"Trish": [gcash]}

        response = client.get("/api/v1/payment-methods/grouped")

        assert response.status_code == 200

    @patch('storefront.api.payment_methods.PaymentMethodService')
    def test_reorder(self, mock_service, client, as_admin, gcash):
        mock_service.return_value.reorder.return_value = [gcash]

        response = client.post("/api/v1/payment-methods/reorder", json={"uuid_ids": [gcash.uuid_id]})

        assert response.status_code == 200
        mock_service.return_value.reorder.assert_called_once_with([gcash.uuid_id])

    @patch('storefront.api.payment_methods.PaymentMethodService')
    def test_group_patch_without_flag_toggles(self, mock_service, client, as_admin):
        mock_service.return_value.toggle_group.return_value = AdminPaymentGroup(
            id="g1", admin_name="Trish", is_active=True
        )

        response = client.patch("/api/v1/payment-methods/groups/Trish", json={})

        assert response.json()["data"]["is_active"] is True
        mock_service.return_value.toggle_group.assert_called_once_with("Trish")
        mock_service.return_value.set_group_active.assert_not_called()

    @patch('storefront.api.payment_methods.PaymentMethodService')
    def test_group_patch_with_flag(self, mock_service, client, as_admin):
        mock_service.return_value.set_group_active.return_value = AdminPaymentGroup(
            id="g1", admin_name="Trish", is_active=False
        )

        client.patch("/api/v1/payment-methods/groups/Trish", json={"is_active": False})

        mock_service.return_value.set_group_active.assert_called_once_with("Trish", False)

    @patch('storefront.api.payment_methods.PaymentMethodService')
    def test_delete_missing_method(self, mock_service, client, as_admin):
        mock_service.return_value.delete_method.side_effect = NotFoundError("Payment method not found")

        assert client.delete("/api/v1/payment-methods/nope").status_code == 404
