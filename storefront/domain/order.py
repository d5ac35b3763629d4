"""
Order Domain Models

Represents storefront orders: the cart lines, the customer-provided checkout
fields, the payment method and receipt, and the review status.
"""
from enum import Enum
from pydantic import BaseModel, Field, ConfigDict, AliasChoices
from typing import Optional, List, Dict, Any
from datetime import datetime
from decimal import Decimal

from storefront.domain.catalog import CustomField


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    APPROVED = "approved"
    REJECTED = "rejected"


class OrderOption(str, Enum):
    ORDER_VIA_MESSENGER = "order_via_messenger"
    PLACE_ORDER = "place_order"


MESSENGER_DONE_STATUS = "Done via Messenger"


class SelectedVariation(BaseModel):
    """Snapshot of the chosen package at order time"""
    id: str
    name: str
    price: Optional[Decimal] = None

    model_config = ConfigDict(from_attributes=True)


class CartItem(BaseModel):
    """
    Cart line / order line

    Fields:
        id: Cart line ID, "<menu_item_id>" or "<menu_item_id>:::CART:::<suffix>"
        menu_item_id: Menu item ID (defaults to the original id of the line)
        name: Item name at order time
        quantity: Units ordered
        total_price: Unit price at order time (line total is total_price * quantity)
        selected_variation: Chosen package
        custom_fields: Checkout inputs the game asks for
    """

    id: str = Field(..., description="Cart line ID")
    menu_item_id: Optional[str] = Field(None, description="Menu item ID")
    name: str = Field(..., description="Item name")
    quantity: int = Field(1, description="Quantity", ge=1)
    total_price: Decimal = Field(
        Decimal("0"),
        description="Unit price",
        ge=0,
        validation_alias=AliasChoices("total_price", "totalPrice"),
    )
    selected_variation: Optional[SelectedVariation] = Field(
        None,
        description="Chosen variation",
        validation_alias=AliasChoices("selected_variation", "selectedVariation"),
    )
    custom_fields: List[CustomField] = Field(
        default_factory=list,
        description="Checkout inputs",
        validation_alias=AliasChoices("custom_fields", "customFields"),
    )

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    @property
    def line_total(self) -> Decimal:
        return self.total_price * self.quantity


class Order(BaseModel):
    """
    Order domain model - a customer order awaiting or past admin review

    Fields:
        id: Order ID (uuid)
        order_items: Cart lines (JSON column)
        customer_info: Label -> value map of checkout inputs (JSON column)
        payment_method_id: Kebab-case payment method ID
        receipt_url: URL of the uploaded payment receipt
        total_price: Order total
        status: pending, processing, approved, rejected
        order_option: order_via_messenger or place_order
        member_id: Ordering member, if logged in
    """

    id: str = Field(..., description="Order ID")
    order_items: List[CartItem] = Field(default_factory=list, description="Cart lines")
    customer_info: Dict[str, Any] = Field(default_factory=dict, description="Checkout inputs")
    payment_method_id: Optional[str] = Field(None, description="Payment method ID")
    receipt_url: Optional[str] = Field(None, description="Receipt URL")
    total_price: Decimal = Field(Decimal("0"), description="Order total", ge=0)
    status: OrderStatus = Field(OrderStatus.PENDING, description="Order status")
    order_option: Optional[OrderOption] = Field(None, description="How the order was placed")
    member_id: Optional[str] = Field(None, description="Member ID")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    model_config = ConfigDict(from_attributes=True, use_enum_values=True, validate_default=True)

    @property
    def item_count(self) -> int:
        return len(self.order_items)

    @property
    def display_status(self) -> str:
        """Status as shown to admins and members"""
        option = self.order_option or OrderOption.PLACE_ORDER.value
        if option == OrderOption.ORDER_VIA_MESSENGER.value and self.status == OrderStatus.PENDING.value:
            return MESSENGER_DONE_STATUS
        return self.status

    def to_dict(self) -> dict:
        """Convert to dictionary with computed fields"""
        data = self.model_dump(mode="json")
        data['total_price'] = float(self.total_price)
        for item, line in zip(data['order_items'], self.order_items):
            item['total_price'] = float(line.total_price)
        data['item_count'] = self.item_count
        data['display_status'] = self.display_status
        return data


class OrderCreate(BaseModel):
    """Schema for creating a new order"""
    order_items: List[CartItem]
    customer_info: Dict[str, Any]
    payment_method_id: str
    receipt_url: str
    total_price: Decimal
    member_id: Optional[str] = None
    order_option: OrderOption = OrderOption.PLACE_ORDER


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
