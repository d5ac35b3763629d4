"""
Catalog Repository - menu items, their variations and site settings
"""
from typing import Dict, List, Optional

from storefront.domain.catalog import MenuItem, Variation
from storefront.domain.site_settings import SiteSettings
from storefront.core.database import get_db_connection_dict

ITEM_COLUMNS = """
    id, name, description, image_url, category, base_price, available,
    COALESCE(discount_active, FALSE) as is_on_discount,
    discount_percentage,
    COALESCE(custom_fields, '[]'::jsonb) as custom_fields
"""

VARIATION_COLUMNS = """
    id, menu_item_id, name, price, member_price, reseller_price,
    credits_amount, category, sort, sort_order
"""


class CatalogRepository:
    """
    Repository for the catalog (menu items with variations)
    """

    def list_items(self, available_only: bool = True) -> List[MenuItem]:
        """
        All menu items with their variations

        Args:
            available_only: Skip items that cannot be ordered
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            where_clause = "available = TRUE" if available_only else "1=1"
            cursor.execute(f"""
                SELECT {ITEM_COLUMNS}
                FROM menu_items
                WHERE {where_clause}
                ORDER BY name
            """)
            item_rows = cursor.fetchall()

            if not item_rows:
                return []

            # All variations for these items in one query
            item_ids = [row['id'] for row in item_rows]
            cursor.execute(f"""
                SELECT {VARIATION_COLUMNS}
                FROM variations
                WHERE menu_item_id = ANY(%s)
                ORDER BY menu_item_id, sort_order NULLS FIRST, price
            """, (item_ids,))

            variations_by_item: Dict[str, List[Variation]] = {}
            for row in cursor.fetchall():
                variations_by_item.setdefault(row['menu_item_id'], []).append(Variation(**dict(row)))

            items = []
            for row in item_rows:
                item_dict = dict(row)
                item_dict['variations'] = variations_by_item.get(row['id'], [])
                items.append(MenuItem(**item_dict))
            return items

        finally:
            cursor.close()
            conn.close()

    def find_item(self, menu_item_id: str) -> Optional[MenuItem]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {ITEM_COLUMNS}
                FROM menu_items
                WHERE id = %s
            """, (menu_item_id,))
            row = cursor.fetchone()
            if not row:
                return None

            cursor.execute(f"""
                SELECT {VARIATION_COLUMNS}
                FROM variations
                WHERE menu_item_id = %s
                ORDER BY sort_order NULLS FIRST, price
            """, (menu_item_id,))

            item_dict = dict(row)
            item_dict['variations'] = [Variation(**dict(v)) for v in cursor.fetchall()]
            return MenuItem(**item_dict)

        finally:
            cursor.close()
            conn.close()


class SiteSettingsRepository:
    """
    Repository for the site_settings key/value table
    """

    def get_all(self) -> SiteSettings:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("SELECT id, value FROM site_settings")
            return SiteSettings.from_rows(cursor.fetchall())

        finally:
            cursor.close()
            conn.close()
