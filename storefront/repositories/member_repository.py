"""
Member Repository - Data Access Layer for members and member discounts
"""
import logging
from decimal import Decimal
from typing import List, Optional

from storefront.domain.member import Member, MemberRecord, MemberDiscount
from storefront.core.database import get_db_connection_dict

logger = logging.getLogger(__name__)

# Public columns only; password_hash is selected explicitly where needed
MEMBER_COLUMNS = "id, username, email, mobile_no, level, status, user_type, created_at, updated_at"

DISCOUNT_COLUMNS = """
    id, member_id, menu_item_id, variation_id,
    discount_percentage, capital_price, selling_price, created_at, updated_at
"""


class MemberRepository:
    """
    Repository for Member data access
    """

    def list_all(self) -> List[Member]:
        """All members, newest first"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {MEMBER_COLUMNS}
                FROM members
                ORDER BY created_at DESC
            """)
            return [Member(**dict(row)) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_by_id(self, member_id: str) -> Optional[Member]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"SELECT {MEMBER_COLUMNS} FROM members WHERE id = %s", (member_id,))
            row = cursor.fetchone()
            return Member(**dict(row)) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_active_by_id(self, member_id: str) -> Optional[Member]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {MEMBER_COLUMNS}
                FROM members
                WHERE id = %s AND status = 'active'
            """, (member_id,))
            row = cursor.fetchone()
            return Member(**dict(row)) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_by_ids(self, member_ids: List[str]) -> List[Member]:
        if not member_ids:
            return []

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {MEMBER_COLUMNS}
                FROM members
                WHERE id::text = ANY(%s)
            """, (list(member_ids),))
            return [Member(**dict(row)) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_record_by_email(self, email: str) -> Optional[MemberRecord]:
        """Member with password hash, for login"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {MEMBER_COLUMNS}, password_hash
                FROM members
                WHERE email = %s
            """, (email,))
            row = cursor.fetchone()
            return MemberRecord(**dict(row)) if row else None

        finally:
            cursor.close()
            conn.close()

    def exists_email(self, email: str) -> bool:
        return self._exists("email", email)

    def exists_username(self, username: str) -> bool:
        return self._exists("username", username)

    def _exists(self, column: str, value: str) -> bool:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"SELECT id FROM members WHERE {column} = %s LIMIT 1", (value,))
            return cursor.fetchone() is not None

        finally:
            cursor.close()
            conn.close()

    def create(
        self,
        username: str,
        email: str,
        password_hash: str,
        mobile_no: Optional[str] = None
    ) -> Member:
        """Insert an active end-user member at level 1"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                INSERT INTO members (
                    username, email, mobile_no, password_hash, level, status, user_type
                ) VALUES (
                    %s, %s, %s, %s, 1, 'active', 'end_user'
                )
                RETURNING {MEMBER_COLUMNS}
            """, (username, email, mobile_no or None, password_hash))

            row = cursor.fetchone()
            conn.commit()
            return Member(**dict(row))

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def update(
        self,
        member_id: str,
        level: Optional[int] = None,
        status: Optional[str] = None,
        user_type: Optional[str] = None
    ) -> Optional[Member]:
        """
        Update the admin-editable fields that are not None

        Returns:
            Updated member, or None if it does not exist
        """
        updates = []
        params = []

        if level is not None:
            updates.append("level = %s")
            params.append(level)
        if status is not None:
            updates.append("status = %s")
            params.append(status)
        if user_type is not None:
            updates.append("user_type = %s")
            params.append(user_type)

        if not updates:
            return self.find_by_id(member_id)

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                UPDATE members
                SET {", ".join(updates)}, updated_at = NOW()
                WHERE id = %s
                RETURNING {MEMBER_COLUMNS}
            """, params + [member_id])

            row = cursor.fetchone()
            conn.commit()
            return Member(**dict(row)) if row else None

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def update_password_hash(self, member_id: str, password_hash: str) -> None:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE members SET password_hash = %s, updated_at = NOW()
                WHERE id = %s
            """, (password_hash, member_id))
            conn.commit()

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()


class MemberDiscountRepository:
    """
    Repository for per-member price overrides
    """

    def find_by_member(self, member_id: str) -> List[MemberDiscount]:
        """All discounts of a member, newest first"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {DISCOUNT_COLUMNS}
                FROM member_discounts
                WHERE member_id = %s
                ORDER BY created_at DESC
            """, (member_id,))
            return [MemberDiscount(**dict(row)) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_by_member_and_item(self, member_id: str, menu_item_id: str) -> List[MemberDiscount]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {DISCOUNT_COLUMNS}
                FROM member_discounts
                WHERE member_id = %s AND menu_item_id = %s
            """, (member_id, menu_item_id))
            return [MemberDiscount(**dict(row)) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_for_variation(
        self,
        member_id: str,
        menu_item_id: str,
        variation_id: Optional[str] = None
    ) -> Optional[MemberDiscount]:
        """
        Discount for one variation, or the item-level discount when
        variation_id is None
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            if variation_id:
                cursor.execute(f"""
                    SELECT {DISCOUNT_COLUMNS}
                    FROM member_discounts
                    WHERE member_id = %s AND menu_item_id = %s AND variation_id = %s
                    LIMIT 1
                """, (member_id, menu_item_id, variation_id))
            else:
                cursor.execute(f"""
                    SELECT {DISCOUNT_COLUMNS}
                    FROM member_discounts
                    WHERE member_id = %s AND menu_item_id = %s AND variation_id IS NULL
                    LIMIT 1
                """, (member_id, menu_item_id))

            row = cursor.fetchone()
            return MemberDiscount(**dict(row)) if row else None

        finally:
            cursor.close()
            conn.close()

    def upsert(
        self,
        member_id: str,
        menu_item_id: str,
        variation_id: Optional[str],
        discount_percentage: Decimal,
        capital_price: Decimal,
        selling_price: Decimal
    ) -> MemberDiscount:
        """Insert or replace the discount for (member, item, variation)"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                INSERT INTO member_discounts (
                    member_id, menu_item_id, variation_id,
                    discount_percentage, capital_price, selling_price
                ) VALUES (%s, %s, %s, %s, %s, %s)
                ON CONFLICT (member_id, menu_item_id, variation_id)
                DO UPDATE SET
                    discount_percentage = EXCLUDED.discount_percentage,
                    capital_price = EXCLUDED.capital_price,
                    selling_price = EXCLUDED.selling_price,
                    updated_at = NOW()
                RETURNING {DISCOUNT_COLUMNS}
            """, (
                member_id, menu_item_id, variation_id,
                discount_percentage, capital_price, selling_price
            ))

            row = cursor.fetchone()
            conn.commit()
            return MemberDiscount(**dict(row))

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def delete(self, discount_id: str) -> bool:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("DELETE FROM member_discounts WHERE id = %s", (discount_id,))
            deleted = cursor.rowcount > 0
            conn.commit()
            return deleted

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()
