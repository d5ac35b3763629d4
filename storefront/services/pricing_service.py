"""
Pricing Service
Resolves the price a shopper pays for a package and prepares the catalog view

Price resolution (first match wins):
    1. Reseller + variation.reseller_price          -> reseller_price
    2. End-user member + variation.member_price     -> member_price
    3. Reseller + per-member discount override      -> discount.selling_price
    4. Item on discount with discount_percentage    -> base * (1 - pct)
    5. Otherwise                                    -> base price
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Tuple

from storefront.domain.catalog import (
    MenuItem,
    Variation,
    PricedVariation,
    VariationGroup,
    PricedMenuItem,
)
from storefront.domain.member import Member, MemberDiscount, MemberUserType

UNCATEGORIZED = "Uncategorized"
DEFAULT_CATEGORY_SORT = 999

CENTS = Decimal("0.01")


def quantize_price(value) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def _pricing_member(member: Optional[Member]) -> Optional[Member]:
    """Inactive members shop at public prices"""
    if member is None or not member.is_active:
        return None
    return member


def discounts_by_variation(discounts: Optional[Iterable[MemberDiscount]]) -> Dict[str, Decimal]:
    """{variation_id: selling_price} for variation-level overrides"""
    result = {}
    for discount in discounts or []:
        if discount.variation_id:
            result[discount.variation_id] = discount.selling_price
    return result


def resolve_variation_price(
    item: MenuItem,
    variation: Variation,
    member: Optional[Member] = None,
    member_discounts: Optional[Dict[str, Decimal]] = None
) -> Tuple[Decimal, str]:
    """
    Price of one variation for one shopper

    Args:
        item: Menu item the variation belongs to
        variation: Package being priced
        member: Logged-in member, or None for anonymous
        member_discounts: {variation_id: selling_price} overrides for this member

    Returns:
        Tuple of (price, price_source)
    """
    member = _pricing_member(member)
    is_reseller = member is not None and member.user_type == MemberUserType.RESELLER.value
    is_end_user = member is not None and member.user_type == MemberUserType.END_USER.value

    if is_reseller and variation.reseller_price is not None:
        return quantize_price(variation.reseller_price), "reseller_price"

    if is_end_user and variation.member_price is not None:
        return quantize_price(variation.member_price), "member_price"

    if is_reseller and member_discounts and member_discounts.get(variation.id) is not None:
        return quantize_price(member_discounts[variation.id]), "member_discount"

    return discounted_base_price(item, variation.price)


def discounted_base_price(item: MenuItem, base_price) -> Tuple[Decimal, str]:
    """Apply the item-wide discount, if any"""
    base = Decimal(base_price)
    if item.is_on_discount and item.discount_percentage is not None:
        return quantize_price(base - base * item.discount_percentage), "item_discount"
    return quantize_price(base), "base"


def group_variations_by_category(variations: Iterable[Variation]) -> List[Tuple[str, int, List[Variation]]]:
    """
    Group variations for display

    Categories sort by the lowest `sort` of their variations (missing = 999),
    then by name. Inside a category variations sort by `sort_order`
    (missing = 0), then by price.

    Returns:
        [(category, category_sort, [variations...]), ...]
    """
    groups: Dict[str, List[Variation]] = {}
    category_sort: Dict[str, int] = {}

    for variation in variations:
        category = variation.category or UNCATEGORIZED
        sort = variation.sort if variation.sort is not None else DEFAULT_CATEGORY_SORT
        groups.setdefault(category, []).append(variation)
        category_sort[category] = min(category_sort.get(category, DEFAULT_CATEGORY_SORT), sort)

    ordered = sorted(groups, key=lambda c: (category_sort[c], c))

    return [
        (
            category,
            category_sort[category],
            sorted(groups[category], key=lambda v: (v.sort_order or 0, v.price)),
        )
        for category in ordered
    ]


def price_menu_item(
    item: MenuItem,
    member: Optional[Member] = None,
    discounts: Optional[Iterable[MemberDiscount]] = None
) -> PricedMenuItem:
    """Menu item with every variation priced for the shopper and grouped for display"""
    overrides = discounts_by_variation(discounts)

    groups = []
    for category, sort, variations in group_variations_by_category(item.variations):
        priced = []
        for variation in variations:
            price, source = resolve_variation_price(item, variation, member, overrides)
            priced.append(PricedVariation(
                variation=variation,
                original_price=quantize_price(variation.price),
                price=price,
                price_source=source,
            ))
        groups.append(VariationGroup(category=category, sort=sort, variations=priced))

    return PricedMenuItem(item=item, groups=groups)
