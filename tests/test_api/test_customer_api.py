"""
Customer-facing endpoints: catalog, checkout, tracking, members
"""
from unittest.mock import patch

from storefront.core.errors import AuthenticationError, NotFoundError, ValidationError
from storefront.domain.site_settings import SiteSettings


def _checkout_body(sample_cart, **kwargs):
    body = {
        "cart": [line.model_dump(mode="json") for line in sample_cart],
        "values": {"ml_0_user_id": "123", "ml_1_server": "4567"},
        "payment_method_id": "gcash",
        "receipt_url": "https://cdn.example.com/r.png",
    }
    body.update(kwargs)
    return body


class TestService:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "online"

    @patch('storefront.main.get_db_connection_with_retry')
    def test_health_reports_degraded_without_database(self, mock_conn, client):
        mock_conn.side_effect = Exception("connection refused")

        data = client.get("/health").json()

        assert data["status"] == "degraded"
        assert data["database"]["status"] == "disconnected"
        assert data["database"]["error"] == "connection refused"


class TestCatalogApi:

    @patch('storefront.api.catalog.CatalogService')
    def test_anonymous_catalog(self, mock_service, client, sample_menu_item):
        mock_service.return_value.list_items.return_value = [sample_menu_item]

        response = client.get("/api/v1/catalog/items")

        assert response.status_code == 200
        assert response.json()["count"] == 1
        mock_service.return_value.list_items.assert_called_once_with(None)

    @patch('storefront.api.catalog.CatalogService')
    def test_member_token_prices_for_member(self, mock_service, client, member_token, sample_menu_item):
        mock_service.return_value.list_items.return_value = [sample_menu_item]

        client.get("/api/v1/catalog/items", headers={"Authorization": f"Bearer {member_token}"})

        mock_service.return_value.list_items.assert_called_once_with("m-1")

    @patch('storefront.api.catalog.CatalogService')
    def test_invalid_token_is_treated_as_anonymous(self, mock_service, client):
        mock_service.return_value.list_items.return_value = []

        response = client.get("/api/v1/catalog/items", headers={"Authorization": "Bearer garbage"})

        assert response.status_code == 200
        mock_service.return_value.list_items.assert_called_once_with(None)

    @patch('storefront.api.catalog.CatalogService')
    def test_unknown_item(self, mock_service, client):
        mock_service.return_value.get_item.side_effect = NotFoundError("Menu item nope not found")

        response = client.get("/api/v1/catalog/items/nope")

        assert response.status_code == 404
        assert response.json()["detail"] == "Menu item nope not found"


class TestCheckoutApi:

    @patch('storefront.api.checkout.CheckoutService')
    def test_validation_error_is_400(self, mock_service, client, sample_cart):
        mock_service.return_value.validate.side_effect = ValidationError("Please fill in Server for Mobile Legends")

        response = client.post("/api/v1/checkout/validate", json=_checkout_body(sample_cart))

        assert response.status_code == 400
        assert response.json()["detail"] == "Please fill in Server for Mobile Legends"

    def test_empty_cart_is_rejected(self, client):
        response = client.post("/api/v1/checkout/validate", json={"cart": []})
        assert response.status_code == 422

    @patch('storefront.api.checkout.CheckoutService')
    def test_message(self, mock_service, client, sample_cart):
        mock_service.return_value.compose_message.return_value = {
            "message": "ORDER",
            "messenger_url": "https://m.me/DiginixPh?text=ORDER",
            "total": 260.0,
        }

        response = client.post("/api/v1/checkout/message", json=_checkout_body(sample_cart))

        assert response.status_code == 200
        assert response.json()["data"]["messenger_url"].startswith("https://m.me/")

    @patch('storefront.api.checkout.order_feed')
    @patch('storefront.api.checkout.CheckoutService')
    def test_place_order(self, mock_service, mock_feed, client, sample_cart, order_factory):
        order = order_factory("o-9")
        mock_service.return_value.place_order.return_value = order

        response = client.post("/api/v1/checkout/orders", json=_checkout_body(sample_cart))

        assert response.status_code == 201
        assert response.json()["data"]["id"] == "o-9"
        mock_feed.apply_insert.assert_called_once_with(order)

    @patch('storefront.api.checkout.CheckoutService')
    def test_place_order_without_receipt(self, mock_service, client, sample_cart):
        mock_service.return_value.place_order.side_effect = ValidationError("Please upload your payment receipt")

        response = client.post("/api/v1/checkout/orders", json=_checkout_body(sample_cart, receipt_url=None))

        assert response.status_code == 400


class TestTrackingApi:

    @patch('storefront.api.orders.OrderService')
    def test_tracking_is_public(self, mock_service, client):
        mock_service.return_value.tracking.return_value = {
            "order_id": "o-1", "keep_tracking": True, "status": "pending", "display_status": "pending",
        }

        response = client.get("/api/v1/orders/o-1/tracking")

        assert response.status_code == 200
        assert response.json()["data"]["keep_tracking"] is True


class TestMembersApi:

    @patch('storefront.api.members.MemberAuthService')
    def test_register(self, mock_service, client, end_user):
        mock_service.return_value.register.return_value = (end_user, "token-123")

        response = client.post("/api/v1/members/register", json={
            "username": "juan", "email": "juan@example.com", "password": "secret123",
        })

        assert response.status_code == 201
        assert response.json()["access_token"] == "token-123"
        assert "password_hash" not in response.json()["data"]

    def test_register_rejects_short_password(self, client):
        response = client.post("/api/v1/members/register", json={
            "username": "juan", "email": "juan@example.com", "password": "123",
        })
        assert response.status_code == 422

    @patch('storefront.api.members.MemberAuthService')
    def test_login_failure_is_401(self, mock_service, client):
        mock_service.return_value.login.side_effect = AuthenticationError("Invalid email or password")

        response = client.post("/api/v1/members/login", json={"email": "juan@example.com", "password": "x"})

        assert response.status_code == 401

    @patch('storefront.api.members.MemberAuthService')
    def test_login_is_rate_limited(self, mock_service, client):
        mock_service.return_value.login.side_effect = AuthenticationError("Invalid email or password")
        body = {"email": "juan@example.com", "password": "x"}

        codes = [client.post("/api/v1/members/login", json=body).status_code for _ in range(11)]

        assert codes[:10] == [401] * 10
        assert codes[10] == 429

    def test_me_requires_token(self, client):
        assert client.get("/api/v1/members/me").status_code == 401

    @patch('storefront.api.members.MemberAuthService')
    def test_me(self, mock_service, client, as_member, end_user):
        mock_service.return_value.current_member.return_value = end_user

        response = client.get("/api/v1/members/me")

        assert response.status_code == 200
        assert response.json()["data"]["username"] == "juan"
        mock_service.return_value.current_member.assert_called_once_with("m-1")

    @patch('storefront.api.members.OrderService')
    def test_my_orders(self, mock_service, client, as_member, order_factory):
        mock_service.return_value.orders_for_member.return_value = [order_factory("o-1", member_id="m-1")]

        response = client.get("/api/v1/members/me/orders")

        assert response.json()["count"] == 1
        mock_service.return_value.orders_for_member.assert_called_once_with("m-1", limit=50)


class TestStorefrontSettingsApi:

    @patch('storefront.api.payment_methods.PaymentMethodService')
    def test_visible_payment_methods_are_public(self, mock_service, client, gcash):
        mock_service.return_value.list_visible.return_value = [gcash]

        response = client.get("/api/v1/payment-methods")

        assert response.status_code == 200
        assert response.json()["data"][0]["id"] == "gcash"

    @patch('storefront.api.site_settings.SiteSettingsRepository')
    def test_site_settings(self, mock_repo, client):
        mock_repo.return_value.get_all.return_value = SiteSettings(site_name="Diginix")

        response = client.get("/api/v1/site-settings")

        assert response.status_code == 200
        assert response.json()["data"]["site_name"] == "Diginix"
