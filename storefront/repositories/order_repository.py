"""
Order Repository - Data Access Layer for Orders

Handles all database queries for orders and returns Order domain models.
"""
import logging
from decimal import Decimal
from typing import List, Optional, Dict, Tuple

from psycopg2 import errors as pg_errors
from psycopg2.extras import Json

from storefront.domain.order import Order, OrderCreate, CartItem
from storefront.core.database import get_db_connection_dict

logger = logging.getLogger(__name__)

ORDER_COLUMNS = """
    id, status, total_price, payment_method_id, created_at, updated_at,
    member_id, order_option, order_items, customer_info, receipt_url
"""


def cart_item_to_json(item: CartItem) -> dict:
    """Serialize a cart line for the order_items JSON column"""
    data = item.model_dump(mode="json")
    data['total_price'] = float(item.total_price)
    if item.selected_variation is not None and item.selected_variation.price is not None:
        data['selected_variation']['price'] = float(item.selected_variation.price)
    return data


class OrderRepository:
    """
    Repository for Order data access

    All SQL queries for orders are centralized here.
    """

    def find_recent(self, limit: int = 100, since: Optional[str] = None) -> List[Order]:
        """
        Most recent orders, newest first

        Args:
            limit: Maximum results to return
            since: Only orders created strictly after this timestamp

        Returns:
            List of orders
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = []
            params = []

            if since:
                conditions.append("created_at > %s")
                params.append(since)

            where_clause = " AND ".join(conditions) if conditions else "1=1"

            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}
                FROM orders
                WHERE {where_clause}
                ORDER BY created_at DESC
                LIMIT %s
            """, params + [limit])

            return [Order(**dict(row)) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_by_id(self, order_id: str) -> Optional[Order]:
        """Order by id; None when it does not exist or the id is not a valid uuid"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}
                FROM orders
                WHERE id = %s
            """, (order_id,))

            row = cursor.fetchone()
            if not row:
                return None
            return Order(**dict(row))

        except pg_errors.InvalidTextRepresentation:
            conn.rollback()
            logger.info(f"Malformed order id looked up: {order_id[:64]}")
            return None

        finally:
            cursor.close()
            conn.close()

    def find_by_member(self, member_id: str, limit: int = 50) -> List[Order]:
        """Orders placed by one member, newest first"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}
                FROM orders
                WHERE member_id = %s
                ORDER BY created_at DESC
                LIMIT %s
            """, (member_id, limit))

            return [Order(**dict(row)) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def create(self, data: OrderCreate) -> Order:
        """
        Insert a new order; status always starts as pending

        Returns:
            The stored order
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                INSERT INTO orders (
                    order_items, customer_info, payment_method_id, receipt_url,
                    total_price, member_id, order_option, status
                ) VALUES (
                    %s, %s, %s, %s, %s, %s, %s, 'pending'
                )
                RETURNING {ORDER_COLUMNS}
            """, (
                Json([cart_item_to_json(item) for item in data.order_items]),
                Json(data.customer_info),
                data.payment_method_id,
                data.receipt_url,
                data.total_price,
                data.member_id,
                data.order_option.value if hasattr(data.order_option, 'value') else data.order_option,
            ))

            row = cursor.fetchone()
            conn.commit()
            return Order(**dict(row))

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def update_status(self, order_id: str, status: str) -> Optional[Order]:
        """
        Set the status of an order

        Returns:
            The updated order, or None if it does not exist
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                UPDATE orders
                SET status = %s, updated_at = NOW()
                WHERE id = %s
                RETURNING {ORDER_COLUMNS}
            """, (status, order_id))

            row = cursor.fetchone()
            conn.commit()
            return Order(**dict(row)) if row else None

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def member_totals(self) -> Dict[str, Tuple[int, Decimal]]:
        """
        Order count and total spent per member

        Returns:
            {member_id: (order_count, total_cost)}
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT
                    member_id,
                    COUNT(*) as order_count,
                    COALESCE(SUM(total_price), 0) as total_cost
                FROM orders
                WHERE member_id IS NOT NULL
                GROUP BY member_id
            """)

            return {
                str(row['member_id']): (int(row['order_count']), Decimal(row['total_cost']))
                for row in cursor.fetchall()
            }

        finally:
            cursor.close()
            conn.close()
