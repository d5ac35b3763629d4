"""
Member Service
Member registration/login, admin member management and per-member discounts
"""
import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from passlib.context import CryptContext
from psycopg2 import errors as pg_errors

from storefront.core.auth import create_member_token
from storefront.core.errors import AuthenticationError, ConflictError, NotFoundError
from storefront.domain.member import (
    DiscountUpsert,
    Member,
    MemberDiscount,
    MemberUpdate,
    TopMember,
)
from storefront.repositories import MemberRepository, MemberDiscountRepository, OrderRepository

logger = logging.getLogger(__name__)

# Older accounts were stored as unsalted SHA-256 hex digests; they still
# verify and are re-hashed with bcrypt on the next successful login
pwd_context = CryptContext(schemes=["bcrypt", "hex_sha256"], deprecated=["hex_sha256"])

EMAIL_TAKEN = "Email already registered"
USERNAME_TAKEN = "Username already taken"
INVALID_CREDENTIALS = "Invalid email or password"
ACCOUNT_INACTIVE = "Account is inactive"

ALL = "all"


# ========================================
# Member filtering (admin list)
# ========================================

def filter_members(
    members: Iterable[Member],
    search: Optional[str] = None,
    status: Optional[str] = None,
    user_type: Optional[str] = None
) -> List[Member]:
    """
    Case-insensitive username search plus status / user type filters

    status and user_type accept "all" (or None) to disable the filter.
    """
    needle = (search or "").strip().lower()
    result = []
    for member in members:
        if needle and needle not in member.username.lower():
            continue
        if status and status != ALL and member.status != status:
            continue
        if user_type and user_type != ALL and member.user_type != user_type:
            continue
        result.append(member)
    return result


def rank_top_members(
    members: Iterable[Member],
    totals: Dict[str, Tuple[int, Decimal]],
    limit: int = 10
) -> List[TopMember]:
    """Members by total spent, highest first; totals for deleted members are dropped"""
    by_id = {str(m.id): m for m in members}
    ranked = [
        TopMember(member=by_id[member_id], total_orders=count, total_cost=total)
        for member_id, (count, total) in totals.items()
        if member_id in by_id
    ]
    ranked.sort(key=lambda t: t.total_cost, reverse=True)
    return ranked[:limit]


# ========================================
# Member authentication
# ========================================

class MemberAuthService:
    """
    Service for shopper accounts

    This service handles:
    - Registration with unique email / username
    - Login with bcrypt (legacy SHA-256 hashes migrated on login)
    - Member token issuing
    """

    def __init__(self, member_repo: Optional[MemberRepository] = None):
        self.member_repo = member_repo or MemberRepository()

    def register(
        self,
        username: str,
        email: str,
        password: str,
        mobile_no: Optional[str] = None
    ) -> Tuple[Member, str]:
        """
        Create an active end-user account

        Returns:
            (member, access token)

        Raises:
            ConflictError: Email or username already in use
        """
        email = email.strip().lower()
        username = username.strip()

        if self.member_repo.exists_email(email):
            raise ConflictError(EMAIL_TAKEN)
        if self.member_repo.exists_username(username):
            raise ConflictError(USERNAME_TAKEN)

        try:
            member = self.member_repo.create(
                username=username,
                email=email,
                password_hash=pwd_context.hash(password),
                mobile_no=mobile_no,
            )
        except pg_errors.UniqueViolation as e:
            # Lost a race with a concurrent registration
            constraint = getattr(e.diag, 'constraint_name', '') or ''
            raise ConflictError(USERNAME_TAKEN if 'username' in constraint else EMAIL_TAKEN)

        logger.info(f"Member registered: {member.username} ({member.id})")
        return member, create_member_token(member)

    def login(self, email: str, password: str) -> Tuple[Member, str]:
        """
        Returns:
            (member, access token)

        Raises:
            AuthenticationError: Unknown email, wrong password or inactive account
        """
        record = self.member_repo.find_record_by_email(email.strip().lower())
        if record is None:
            raise AuthenticationError(INVALID_CREDENTIALS)

        valid, new_hash = pwd_context.verify_and_update(password, record.password_hash)
        if not valid:
            logger.warning(f"Failed login for member {record.id}")
            raise AuthenticationError(INVALID_CREDENTIALS)

        if not record.is_active:
            raise AuthenticationError(ACCOUNT_INACTIVE)

        if new_hash:
            self.member_repo.update_password_hash(record.id, new_hash)
            logger.info(f"Upgraded password hash for member {record.id}")

        member = record.to_member()
        return member, create_member_token(member)

    def current_member(self, member_id: str) -> Member:
        member = self.member_repo.find_active_by_id(member_id)
        if member is None:
            raise AuthenticationError(ACCOUNT_INACTIVE)
        return member


# ========================================
# Admin member management
# ========================================

class MemberService:
    """
    Service for the admin members screen and reseller discounts
    """

    def __init__(
        self,
        member_repo: Optional[MemberRepository] = None,
        discount_repo: Optional[MemberDiscountRepository] = None,
        order_repo: Optional[OrderRepository] = None
    ):
        self.member_repo = member_repo or MemberRepository()
        self.discount_repo = discount_repo or MemberDiscountRepository()
        self.order_repo = order_repo or OrderRepository()

    def list_members(
        self,
        search: Optional[str] = None,
        status: Optional[str] = None,
        user_type: Optional[str] = None
    ) -> List[Member]:
        return filter_members(self.member_repo.list_all(), search, status, user_type)

    def member_order_summary(self) -> Dict[str, Dict]:
        """{member_id: {"total_orders": n, "total_cost": x}}"""
        return {
            member_id: {"total_orders": count, "total_cost": float(total)}
            for member_id, (count, total) in self.order_repo.member_totals().items()
        }

    def top_members(self, limit: int = 10) -> List[TopMember]:
        totals = self.order_repo.member_totals()
        if not totals:
            return []
        members = self.member_repo.find_by_ids(list(totals.keys()))
        return rank_top_members(members, totals, limit)

    def get_member(self, member_id: str) -> Member:
        member = self.member_repo.find_by_id(member_id)
        if member is None:
            raise NotFoundError(f"Member {member_id} not found")
        return member

    def update_member(self, member_id: str, data: MemberUpdate) -> Member:
        member = self.member_repo.update(
            member_id,
            level=data.level,
            status=data.status.value if data.status else None,
            user_type=data.user_type.value if data.user_type else None,
        )
        if member is None:
            raise NotFoundError(f"Member {member_id} not found")

        logger.info(f"Member {member_id} updated: {data.model_dump(exclude_none=True, mode='json')}")
        return member

    # ------------------------------------------------------------------
    # Discounts
    # ------------------------------------------------------------------

    def discounts_for_member(self, member_id: str) -> List[MemberDiscount]:
        return self.discount_repo.find_by_member(member_id)

    def discounts_for_item(self, member_id: str, menu_item_id: str) -> List[MemberDiscount]:
        if not member_id or not menu_item_id:
            return []
        return self.discount_repo.find_by_member_and_item(member_id, menu_item_id)

    def discount_for(
        self,
        member_id: str,
        menu_item_id: str,
        variation_id: Optional[str] = None
    ) -> Optional[MemberDiscount]:
        if not member_id or not menu_item_id:
            return None
        return self.discount_repo.find_for_variation(member_id, menu_item_id, variation_id)

    def set_discount(self, member_id: str, data: DiscountUpsert) -> MemberDiscount:
        self.get_member(member_id)
        discount = self.discount_repo.upsert(
            member_id=member_id,
            menu_item_id=data.menu_item_id,
            variation_id=data.variation_id,
            discount_percentage=data.discount_percentage,
            capital_price=data.capital_price,
            selling_price=data.selling_price,
        )
        logger.info(
            f"Discount set for member {member_id} on {data.menu_item_id}"
            f"{'/' + data.variation_id if data.variation_id else ''}: {data.selling_price}"
        )
        return discount

    def delete_discount(self, discount_id: str) -> None:
        if not self.discount_repo.delete(discount_id):
            raise NotFoundError(f"Discount {discount_id} not found")
        logger.info(f"Discount {discount_id} deleted")
