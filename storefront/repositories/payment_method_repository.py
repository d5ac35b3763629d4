"""
Payment Method Repository - Data Access Layer for payment methods and
admin payment groups
"""
import logging
from typing import List, Optional, Tuple

from storefront.domain.payment import (
    PaymentMethod,
    PaymentMethodCreate,
    PaymentMethodUpdate,
    AdminPaymentGroup,
)
from storefront.core.database import get_db_connection_dict

logger = logging.getLogger(__name__)

METHOD_COLUMNS = """
    uuid_id, id, name, account_number, account_name, qr_code_url,
    active, sort_order, admin_name, created_at, updated_at
"""

GROUP_COLUMNS = "id, admin_name, is_active, created_at, updated_at"


class PaymentMethodRepository:
    """
    Repository for payment methods and admin payment groups
    """

    # ------------------------------------------------------------------
    # Payment methods
    # ------------------------------------------------------------------

    def list_visible(self) -> List[PaymentMethod]:
        """
        Methods customers can pick: active methods of active admin groups,
        ordered by sort_order. Empty when no group is active.
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT admin_name
                FROM admin_payment_groups
                WHERE is_active = TRUE
            """)
            active_groups = [row['admin_name'] for row in cursor.fetchall()]

            if not active_groups:
                return []

            cursor.execute(f"""
                SELECT {METHOD_COLUMNS}
                FROM payment_methods
                WHERE active = TRUE AND admin_name = ANY(%s)
                ORDER BY sort_order ASC
            """, (active_groups,))

            return [PaymentMethod(**dict(row)) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def list_all(self) -> List[PaymentMethod]:
        """Every method regardless of flags (admin view)"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {METHOD_COLUMNS}
                FROM payment_methods
                ORDER BY sort_order ASC
            """)
            return [PaymentMethod(**dict(row)) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_by_uuid(self, uuid_id: str) -> Optional[PaymentMethod]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {METHOD_COLUMNS}
                FROM payment_methods
                WHERE uuid_id = %s
            """, (uuid_id,))
            row = cursor.fetchone()
            return PaymentMethod(**dict(row)) if row else None

        finally:
            cursor.close()
            conn.close()

    def create(self, data: PaymentMethodCreate) -> PaymentMethod:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                INSERT INTO payment_methods (
                    id, name, account_number, account_name, qr_code_url,
                    active, sort_order, admin_name
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING {METHOD_COLUMNS}
            """, (
                data.id,
                data.name,
                data.account_number,
                data.account_name,
                data.qr_code_url,
                data.active,
                data.sort_order,
                data.admin_name or None,
            ))

            row = cursor.fetchone()
            conn.commit()
            return PaymentMethod(**dict(row))

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def update(self, uuid_id: str, data: PaymentMethodUpdate) -> Optional[PaymentMethod]:
        """
        Update the fields that are set

        Returns:
            Updated method, or None if it does not exist
        """
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return self.find_by_uuid(uuid_id)

        assignments = [f"{column} = %s" for column in changes]
        params = list(changes.values())

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                UPDATE payment_methods
                SET {", ".join(assignments)}, updated_at = NOW()
                WHERE uuid_id = %s
                RETURNING {METHOD_COLUMNS}
            """, params + [uuid_id])

            row = cursor.fetchone()
            conn.commit()
            return PaymentMethod(**dict(row)) if row else None

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def delete(self, uuid_id: str) -> bool:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("DELETE FROM payment_methods WHERE uuid_id = %s", (uuid_id,))
            deleted = cursor.rowcount > 0
            conn.commit()
            return deleted

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def set_sort_orders(self, orders: List[Tuple[str, int]]) -> None:
        """Apply [(uuid_id, sort_order), ...] in one transaction"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            for uuid_id, sort_order in orders:
                cursor.execute("""
                    UPDATE payment_methods
                    SET sort_order = %s, updated_at = NOW()
                    WHERE uuid_id = %s
                """, (sort_order, uuid_id))
            conn.commit()

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    # ------------------------------------------------------------------
    # Admin payment groups
    # ------------------------------------------------------------------

    def list_groups(self) -> List[AdminPaymentGroup]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {GROUP_COLUMNS}
                FROM admin_payment_groups
                ORDER BY admin_name ASC
            """)
            return [AdminPaymentGroup(**dict(row)) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_group(self, admin_name: str) -> Optional[AdminPaymentGroup]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {GROUP_COLUMNS}
                FROM admin_payment_groups
                WHERE admin_name = %s
            """, (admin_name,))
            row = cursor.fetchone()
            return AdminPaymentGroup(**dict(row)) if row else None

        finally:
            cursor.close()
            conn.close()

    def add_group(self, admin_name: str) -> AdminPaymentGroup:
        """New groups start inactive"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                INSERT INTO admin_payment_groups (admin_name, is_active)
                VALUES (%s, FALSE)
                RETURNING {GROUP_COLUMNS}
            """, (admin_name,))

            row = cursor.fetchone()
            conn.commit()
            return AdminPaymentGroup(**dict(row))

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def set_group_active(self, admin_name: str, is_active: bool) -> Optional[AdminPaymentGroup]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                UPDATE admin_payment_groups
                SET is_active = %s, updated_at = NOW()
                WHERE admin_name = %s
                RETURNING {GROUP_COLUMNS}
            """, (is_active, admin_name))

            row = cursor.fetchone()
            conn.commit()
            return AdminPaymentGroup(**dict(row)) if row else None

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def delete_group(self, admin_name: str) -> bool:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("DELETE FROM admin_payment_groups WHERE admin_name = %s", (admin_name,))
            deleted = cursor.rowcount > 0
            conn.commit()
            return deleted

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()
