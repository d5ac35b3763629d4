"""
Catalog Domain Models

Menu items (games) and their purchasable variations (currency packages).
"""
from pydantic import BaseModel, Field, ConfigDict, AliasChoices
from typing import Optional, List
from decimal import Decimal


class CustomField(BaseModel):
    """
    A per-game input the customer fills at checkout (IGN, user id, server...)
    """

    key: str = Field(..., description="Field key")
    label: str = Field(..., description="Label shown to the customer")
    required: bool = Field(False, description="Whether checkout requires a value")
    placeholder: Optional[str] = Field(None, description="Input placeholder")

    model_config = ConfigDict(from_attributes=True)


class Variation(BaseModel):
    """
    Variation domain model - a purchasable package/tier of a menu item

    Fields:
        price: Base price for everyone
        member_price: Price for logged-in end users (optional)
        reseller_price: Price for resellers (optional)
        credits_amount: Amount of in-game currency in the package
        category: Grouping label shown in the catalog
        sort: Category ordering hint (lowest sort in a category wins)
        sort_order: Ordering inside a category
    """

    id: str = Field(..., description="Variation ID")
    menu_item_id: Optional[str] = Field(None, description="Parent menu item ID")
    name: str = Field(..., description="Package name")
    price: Decimal = Field(..., description="Base price", ge=0)
    member_price: Optional[Decimal] = Field(None, description="End-user member price", ge=0)
    reseller_price: Optional[Decimal] = Field(None, description="Reseller price", ge=0)
    credits_amount: Optional[int] = Field(None, description="In-game currency amount")
    category: Optional[str] = Field(None, description="Package category")
    sort: Optional[int] = Field(None, description="Category sort hint")
    sort_order: Optional[int] = Field(None, description="Sort order inside category")

    model_config = ConfigDict(from_attributes=True)


class MenuItem(BaseModel):
    """
    Menu item domain model - a game (or product) offered in the catalog
    """

    id: str = Field(..., description="Menu item ID")
    name: str = Field(..., description="Display name")
    description: Optional[str] = Field(None, description="Description")
    image_url: Optional[str] = Field(None, description="Image URL")
    category: Optional[str] = Field(None, description="Catalog category")
    base_price: Optional[Decimal] = Field(None, description="Price when the item has no variations", ge=0)
    available: bool = Field(True, description="Whether the item can be ordered")
    is_on_discount: bool = Field(
        False,
        description="Whether the item-wide discount applies",
        validation_alias=AliasChoices("is_on_discount", "isOnDiscount"),
    )
    discount_percentage: Optional[Decimal] = Field(
        None,
        description="Item-wide discount as a fraction (0.1 = 10%)",
        ge=0,
        le=1,
        validation_alias=AliasChoices("discount_percentage", "discountPercentage"),
    )
    custom_fields: List[CustomField] = Field(
        default_factory=list,
        description="Checkout inputs for this game",
        validation_alias=AliasChoices("custom_fields", "customFields"),
    )
    variations: List[Variation] = Field(default_factory=list, description="Packages")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    def get_variation(self, variation_id: Optional[str]) -> Optional[Variation]:
        if not variation_id:
            return None
        for variation in self.variations:
            if variation.id == variation_id:
                return variation
        return None


class PricedVariation(BaseModel):
    """A variation with the price resolved for a specific shopper"""

    variation: Variation
    original_price: Decimal
    price: Decimal
    price_source: str

    @property
    def is_discounted(self) -> bool:
        return self.price_source != "base"

    def to_dict(self) -> dict:
        data = self.variation.model_dump(mode="json")
        data.update({
            "original_price": float(self.original_price),
            "price": float(self.price),
            "price_source": self.price_source,
            "is_discounted": self.is_discounted,
        })
        return data


class VariationGroup(BaseModel):
    """Variations of one category, already sorted for display"""

    category: str
    sort: int
    variations: List[PricedVariation] = Field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "sort": self.sort,
            "variations": [v.to_dict() for v in self.variations],
        }


class PricedMenuItem(BaseModel):
    """A menu item as a specific shopper sees it"""

    item: MenuItem
    groups: List[VariationGroup] = Field(default_factory=list)

    def to_dict(self) -> dict:
        data = self.item.model_dump(mode="json", exclude={"variations"})
        data["discount_percentage"] = (
            float(self.item.discount_percentage) if self.item.discount_percentage is not None else None
        )
        data["variation_groups"] = [group.to_dict() for group in self.groups]
        return data
