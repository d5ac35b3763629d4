"""
Catalog Service
Menu items priced for the current shopper
"""
from typing import List, Optional

from storefront.core.errors import NotFoundError
from storefront.domain.catalog import PricedMenuItem
from storefront.domain.member import Member, MemberDiscount
from storefront.repositories import CatalogRepository, MemberRepository, MemberDiscountRepository
from storefront.services.pricing_service import price_menu_item


class CatalogService:
    """
    Service for the customer catalog

    Anonymous shoppers and inactive members see public prices.
    """

    def __init__(
        self,
        catalog_repo: Optional[CatalogRepository] = None,
        member_repo: Optional[MemberRepository] = None,
        discount_repo: Optional[MemberDiscountRepository] = None
    ):
        self.catalog_repo = catalog_repo or CatalogRepository()
        self.member_repo = member_repo or MemberRepository()
        self.discount_repo = discount_repo or MemberDiscountRepository()

    def _shopper(self, member_id: Optional[str]):
        if not member_id:
            return None, []
        member: Optional[Member] = self.member_repo.find_active_by_id(member_id)
        if member is None:
            return None, []
        discounts: List[MemberDiscount] = []
        if member.is_reseller:
            discounts = self.discount_repo.find_by_member(member.id)
        return member, discounts

    def list_items(self, member_id: Optional[str] = None) -> List[PricedMenuItem]:
        member, discounts = self._shopper(member_id)
        return [
            price_menu_item(item, member, [d for d in discounts if d.menu_item_id == item.id])
            for item in self.catalog_repo.list_items()
        ]

    def get_item(self, menu_item_id: str, member_id: Optional[str] = None) -> PricedMenuItem:
        item = self.catalog_repo.find_item(menu_item_id)
        if item is None or not item.available:
            raise NotFoundError(f"Menu item {menu_item_id} not found")
        member, discounts = self._shopper(member_id)
        return price_menu_item(item, member, [d for d in discounts if d.menu_item_id == item.id])
