"""
Unit tests for CatalogRepository and SiteSettingsRepository
"""
from decimal import Decimal
from unittest.mock import patch

from storefront.domain.order import OrderOption
from storefront.repositories.catalog_repository import CatalogRepository, SiteSettingsRepository


ITEM_ROWS = [
    {
        'id': 'ml', 'name': 'Mobile Legends', 'description': None, 'image_url': None,
        'category': 'games', 'base_price': None, 'available': True, 'is_on_discount': False,
        'discount_percentage': None,
        'custom_fields': [{'key': 'user_id', 'label': 'ID', 'required': True}],
    },
    {
        'id': 'coins', 'name': 'Coins', 'description': None, 'image_url': None,
        'category': 'misc', 'base_price': Decimal('50'), 'available': True, 'is_on_discount': True,
        'discount_percentage': Decimal('0.10'), 'custom_fields': [],
    },
]

VARIATION_ROWS = [
    {
        'id': 'v-86', 'menu_item_id': 'ml', 'name': '86 Diamonds', 'price': Decimal('80'),
        'member_price': None, 'reseller_price': None, 'credits_amount': 86,
        'category': 'Diamonds', 'sort': 1, 'sort_order': 1,
    },
]


class TestCatalogRepository:

    @patch('storefront.repositories.catalog_repository.get_db_connection_dict')
    def test_list_items_attaches_variations(self, mock_get_conn, mock_db):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchall.side_effect = [ITEM_ROWS, VARIATION_ROWS]

        items = CatalogRepository().list_items()

        assert [i.id for i in items] == ['ml', 'coins']
        assert [v.id for v in items[0].variations] == ['v-86']
        assert items[1].variations == []
        assert items[0].custom_fields[0].label == 'ID'

        variation_query, params = cursor.execute.call_args_list[1][0]
        assert 'ANY(%s)' in variation_query
        assert params == (['ml', 'coins'],)

    @patch('storefront.repositories.catalog_repository.get_db_connection_dict')
    def test_list_items_empty_catalog(self, mock_get_conn, mock_db):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchall.return_value = []

        assert CatalogRepository().list_items() == []
        cursor.execute.assert_called_once()

    @patch('storefront.repositories.catalog_repository.get_db_connection_dict')
    def test_find_item_missing(self, mock_get_conn, mock_db):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchone.return_value = None

        assert CatalogRepository().find_item('nope') is None
        conn.close.assert_called_once()


class TestSiteSettingsRepository:

    @patch('storefront.repositories.catalog_repository.get_db_connection_dict')
    def test_get_all(self, mock_get_conn, mock_db):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchall.return_value = [
            {'id': 'site_name', 'value': 'Diginix'},
            {'id': 'order_option', 'value': 'place_order'},
            {'id': 'unknown_key', 'value': 'ignored'},
        ]

        site = SiteSettingsRepository().get_all()

        assert site.site_name == 'Diginix'
        assert site.order_option == OrderOption.PLACE_ORDER

    @patch('storefront.repositories.catalog_repository.get_db_connection_dict')
    def test_invalid_order_option_falls_back(self, mock_get_conn, mock_db):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchall.return_value = [{'id': 'order_option', 'value': 'carrier_pigeon'}]

        site = SiteSettingsRepository().get_all()

        assert site.order_option == OrderOption.ORDER_VIA_MESSENGER
        assert site.site_name == 'Trish Devion'
