"""
Unit tests for OrderRepository

These tests validate repository logic without requiring a database connection.
"""
from decimal import Decimal
from unittest.mock import patch

import pytest
from psycopg2 import errors as pg_errors
from psycopg2.extras import Json

from storefront.domain.order import Order, OrderCreate, CartItem
from storefront.repositories.order_repository import OrderRepository, cart_item_to_json


class TestOrderRepository:
    """Test OrderRepository methods"""

    @patch('storefront.repositories.order_repository.get_db_connection_dict')
    def test_find_by_id_reads_legacy_camelcase_items(self, mock_get_conn, mock_db, order_row):
        """Rows written by the old storefront use camelCase keys inside order_items"""
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchone.return_value = order_row

        order = OrderRepository().find_by_id('o-1')

        assert isinstance(order, Order)
        assert order.order_items[0].total_price == Decimal('80')
        assert order.order_items[0].selected_variation.name == '86 Diamonds'
        assert order.customer_info == {'IGN': 'Player1'}
        cursor.execute.assert_called_once()
        cursor.close.assert_called_once()
        conn.close.assert_called_once()

    @patch('storefront.repositories.order_repository.get_db_connection_dict')
    def test_find_by_id_returns_none_when_not_found(self, mock_get_conn, mock_db):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchone.return_value = None

        assert OrderRepository().find_by_id('missing') is None
        conn.close.assert_called_once()

    @patch('storefront.repositories.order_repository.get_db_connection_dict')
    def test_find_by_id_malformed_uuid_returns_none(self, mock_get_conn, mock_db):
        """Postgres rejects non-uuid ids; callers see a missing order instead of an error"""
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.execute.side_effect = pg_errors.InvalidTextRepresentation()

        assert OrderRepository().find_by_id('not-a-uuid') is None
        conn.rollback.assert_called_once()
        conn.close.assert_called_once()

    @patch('storefront.repositories.order_repository.get_db_connection_dict')
    def test_find_recent_with_since(self, mock_get_conn, mock_db, order_row):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchall.return_value = [order_row]

        orders = OrderRepository().find_recent(limit=100, since='2025-01-01T00:00:00')

        assert len(orders) == 1
        query, params = cursor.execute.call_args[0]
        assert 'created_at > %s' in query
        assert 'ORDER BY created_at DESC' in query
        assert params == ['2025-01-01T00:00:00', 100]

    @patch('storefront.repositories.order_repository.get_db_connection_dict')
    def test_create_serializes_json_columns(self, mock_get_conn, mock_db, order_row, sample_cart):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchone.return_value = order_row

        OrderRepository().create(OrderCreate(
            order_items=sample_cart,
            customer_info={'ID': '123'},
            payment_method_id='gcash',
            receipt_url='https://cdn.example.com/r.png',
            total_price=Decimal('260'),
        ))

        query, params = cursor.execute.call_args[0]
        assert "'pending'" in query
        assert isinstance(params[0], Json)
        assert isinstance(params[1], Json)
        assert params[0].adapted[0]['total_price'] == 80.0
        assert params[6] == 'place_order'
        conn.commit.assert_called_once()

    @patch('storefront.repositories.order_repository.get_db_connection_dict')
    def test_create_rolls_back_on_error(self, mock_get_conn, mock_db, sample_cart):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.execute.side_effect = RuntimeError('db down')

        with pytest.raises(RuntimeError):
            OrderRepository().create(OrderCreate(
                order_items=sample_cart,
                customer_info={},
                payment_method_id='gcash',
                receipt_url='https://cdn.example.com/r.png',
                total_price=Decimal('260'),
            ))

        conn.rollback.assert_called_once()
        conn.close.assert_called_once()

    @patch('storefront.repositories.order_repository.get_db_connection_dict')
    def test_update_status_missing_order(self, mock_get_conn, mock_db):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchone.return_value = None

        assert OrderRepository().update_status('missing', 'approved') is None
        conn.commit.assert_called_once()

    @patch('storefront.repositories.order_repository.get_db_connection_dict')
    def test_member_totals(self, mock_get_conn, mock_db):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchall.return_value = [
            {'member_id': 'm-1', 'order_count': 3, 'total_cost': Decimal('450.50')},
        ]

        assert OrderRepository().member_totals() == {'m-1': (3, Decimal('450.50'))}


def test_cart_item_to_json_uses_numbers_for_prices(sample_cart):
    data = cart_item_to_json(sample_cart[0])
    assert data['total_price'] == 80.0
    assert data['selected_variation']['price'] == 80.0
    assert data['custom_fields'][0]['key'] == 'user_id'


def test_cart_item_accepts_both_key_styles():
    item = CartItem(**{'id': 'x', 'name': 'X', 'totalPrice': 5, 'customFields': [{'key': 'k', 'label': 'K'}]})
    assert item.total_price == Decimal('5')
    assert item.custom_fields[0].label == 'K'
