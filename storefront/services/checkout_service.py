"""
Checkout Service
Validates checkout input, composes the Messenger order message and places orders

Custom field values are keyed "<original_menu_item_id>_<field_index>_<field_key>".
When no cart line has custom fields a single "default_ign" value is used.
"""
import logging
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from urllib.parse import quote

from pydantic import BaseModel, Field

from storefront.core.config import settings
from storefront.core.errors import ValidationError, NotFoundError
from storefront.domain.catalog import MenuItem
from storefront.domain.member import Member
from storefront.domain.order import (
    CartItem,
    Order,
    OrderCreate,
    OrderStatus,
    SelectedVariation,
)
from storefront.domain.payment import PaymentMethod
from storefront.repositories import (
    CatalogRepository,
    MemberRepository,
    MemberDiscountRepository,
    OrderRepository,
    PaymentMethodRepository,
    SiteSettingsRepository,
)
from storefront.services.pricing_service import (
    discounted_base_price,
    discounts_by_variation,
    resolve_variation_price,
    quantize_price,
)

logger = logging.getLogger(__name__)

CART_ID_SEPARATOR = ":::CART:::"
DEFAULT_IGN_KEY = "default_ign"
MESSENGER_BASE_URL = "https://m.me"

PAYMENT_METHOD_REQUIRED = "Please select a payment method"
RECEIPT_REQUIRED = "Please upload your payment receipt before placing the order"


class CheckoutRequest(BaseModel):
    """Everything the customer submits at checkout"""
    cart: List[CartItem] = Field(..., min_length=1)
    values: Dict[str, str] = Field(default_factory=dict, description="Custom field values")
    payment_method_id: Optional[str] = None
    receipt_url: Optional[str] = None
    bulk_item_ids: List[str] = Field(default_factory=list, description="Games receiving bulk values")
    bulk_values: Dict[int, str] = Field(default_factory=dict, description="Field position -> value")


# ========================================
# Cart helpers
# ========================================

def original_menu_item_id(cart_item_id: str) -> str:
    """'abc:::CART:::2' -> 'abc'"""
    return cart_item_id.split(CART_ID_SEPARATOR)[0]


def items_with_custom_fields(cart: List[CartItem]) -> List[CartItem]:
    """Cart lines asking for custom fields, one per game (first line wins)"""
    seen = set()
    result = []
    for item in cart:
        if not item.custom_fields:
            continue
        original_id = original_menu_item_id(item.id)
        if original_id in seen:
            continue
        seen.add(original_id)
        result.append(item)
    return result


def field_value_key(item: CartItem, field_index: int, field_key: str) -> str:
    return f"{original_menu_item_id(item.id)}_{field_index}_{field_key}"


def apply_bulk_values(
    cart: List[CartItem],
    selected_item_ids: List[str],
    bulk_values: Dict[int, str],
    values: Optional[Dict[str, str]] = None
) -> Dict[str, str]:
    """
    Copy position-indexed bulk values into every selected game

    A value at position N only lands in games that have a field at position N.

    Returns:
        New values dict (the input is not modified)
    """
    result = dict(values or {})
    selected = set(selected_item_ids)

    for item in items_with_custom_fields(cart):
        original_id = original_menu_item_id(item.id)
        if original_id not in selected:
            continue
        for position, value in bulk_values.items():
            position = int(position)
            if 0 <= position < len(item.custom_fields):
                field = item.custom_fields[position]
                result[field_value_key(item, position, field.key)] = value

    return result


def _value(values: Dict[str, str], key: str) -> str:
    return (values.get(key) or "").strip()


def validate_details(cart: List[CartItem], values: Dict[str, str]) -> None:
    """
    Raise ValidationError unless every required checkout input is filled

    Without custom fields the default IGN is required.
    """
    games = items_with_custom_fields(cart)

    if not games:
        if not _value(values, DEFAULT_IGN_KEY):
            raise ValidationError("Please enter your IGN")
        return

    for item in games:
        for index, field in enumerate(item.custom_fields):
            if field.required and not _value(values, field_value_key(item, index, field.key)):
                raise ValidationError(f"Please fill in {field.label} for {item.name}")


def build_customer_info(
    cart: List[CartItem],
    values: Dict[str, str],
    payment_method_name: Optional[str] = None
) -> Dict[str, str]:
    """Label -> value map stored with the order"""
    info = {"Payment Method": payment_method_name or ""}

    games = items_with_custom_fields(cart)
    if not games:
        ign = _value(values, DEFAULT_IGN_KEY)
        if ign:
            info["IGN"] = ign
        return info

    for item in games:
        for index, field in enumerate(item.custom_fields):
            value = _value(values, field_value_key(item, index, field.key))
            if value:
                info[field.label] = value

    return info


# ========================================
# Order message
# ========================================

def _format_amount(amount) -> str:
    value = quantize_price(amount)
    if value == value.to_integral_value():
        return str(value.to_integral_value())
    return str(value)


def _custom_fields_section(cart: List[CartItem], values: Dict[str, str]) -> List[str]:
    games = items_with_custom_fields(cart)

    if not games:
        return [f"IGN: {_value(values, DEFAULT_IGN_KEY)}"]

    # Games with identical (label, value) lists share one block
    groups: List[Tuple[Tuple[Tuple[str, str], ...], List[str]]] = []
    for item in games:
        fields = tuple(
            (field.label, _value(values, field_value_key(item, index, field.key)))
            for index, field in enumerate(item.custom_fields)
        )
        fields = tuple(f for f in fields if f[1])
        for signature, names in groups:
            if signature == fields:
                names.append(item.name)
                break
        else:
            groups.append((fields, [item.name]))

    lines = []
    for fields, names in groups:
        if not fields:
            continue
        lines.extend(names)
        labels = [label for label, _ in fields]
        distinct_values = {value for _, value in fields}
        if len(fields) > 1 and len(distinct_values) == 1:
            joined = ", ".join(labels[:-1]) + " & " + labels[-1]
            lines.append(f"{joined}: {fields[0][1]}")
        else:
            lines.append(", ".join(f"{label}: {value}" for label, value in fields))
        lines.append("")

    while lines and lines[-1] == "":
        lines.pop()
    return lines


def generate_order_message(
    cart: List[CartItem],
    values: Dict[str, str],
    total,
    payment_method_name: Optional[str] = None,
    receipt_url: Optional[str] = None,
    currency: Optional[str] = None
) -> str:
    """
    Message the customer sends to the shop's Messenger page

    Example:
        Mobile Legends
        ID & Server: 1234

        ORDER DETAILS:
        • Mobile Legends (86 Diamonds) x1 - ₱75

        TOTAL: ₱75

        Payment: GCash

        Payment Receipt: https://...
    """
    currency = currency if currency is not None else settings.CURRENCY_SYMBOL

    lines = _custom_fields_section(cart, values)
    lines.append("")
    lines.append("ORDER DETAILS:")
    for item in cart:
        variation = f" ({item.selected_variation.name})" if item.selected_variation else ""
        lines.append(f"• {item.name}{variation} x{item.quantity} - {currency}{_format_amount(item.line_total)}")

    lines.append("")
    lines.append(f"TOTAL: {currency}{_format_amount(total)}")

    lines.append("")
    lines.append(f"Payment: {payment_method_name or ''}")
    lines.append("")
    lines.append(f"Payment Receipt: {receipt_url or ''}")

    return "\n".join(lines).strip()


def messenger_url(message: str, page_id: Optional[str] = None) -> str:
    page_id = page_id or settings.MESSENGER_PAGE_ID
    return f"{MESSENGER_BASE_URL}/{page_id}?text={quote(message, safe='')}"


def tracked_order_state(order: Optional[Order]) -> Dict:
    """
    Whether a client should keep tracking its current order

    Tracking stops once the order is approved or gone; rejected orders stay
    visible so the customer sees the outcome.
    """
    if order is None:
        return {"keep_tracking": False, "status": None, "display_status": None}

    return {
        "keep_tracking": order.status != OrderStatus.APPROVED.value,
        "status": order.status,
        "display_status": order.display_status,
    }


# ========================================
# Checkout Service
# ========================================

class CheckoutService:
    """
    Service for the customer checkout flow

    This service handles:
    - Payment method and receipt checks
    - Re-pricing cart lines from the catalog for the current member
    - Messenger message composition
    - Order creation
    """

    def __init__(
        self,
        catalog_repo: Optional[CatalogRepository] = None,
        payment_repo: Optional[PaymentMethodRepository] = None,
        order_repo: Optional[OrderRepository] = None,
        member_repo: Optional[MemberRepository] = None,
        discount_repo: Optional[MemberDiscountRepository] = None,
        settings_repo: Optional[SiteSettingsRepository] = None
    ):
        self.catalog_repo = catalog_repo or CatalogRepository()
        self.payment_repo = payment_repo or PaymentMethodRepository()
        self.order_repo = order_repo or OrderRepository()
        self.member_repo = member_repo or MemberRepository()
        self.discount_repo = discount_repo or MemberDiscountRepository()
        self.settings_repo = settings_repo or SiteSettingsRepository()

    def _payment_method(self, payment_method_id: Optional[str]) -> PaymentMethod:
        if not payment_method_id:
            raise ValidationError(PAYMENT_METHOD_REQUIRED)
        for method in self.payment_repo.list_visible():
            if method.id == payment_method_id:
                return method
        raise ValidationError(PAYMENT_METHOD_REQUIRED)

    def _member(self, member_id: Optional[str]) -> Optional[Member]:
        if not member_id:
            return None
        return self.member_repo.find_active_by_id(member_id)

    def _reprice_line(self, line: CartItem, member: Optional[Member]) -> CartItem:
        menu_item_id = line.menu_item_id or original_menu_item_id(line.id)
        item: Optional[MenuItem] = self.catalog_repo.find_item(menu_item_id)
        if item is None or not item.available:
            raise NotFoundError(f"{line.name} is no longer available")

        overrides = {}
        if member is not None and member.is_reseller:
            overrides = discounts_by_variation(
                self.discount_repo.find_by_member_and_item(member.id, item.id)
            )

        selected = None
        if item.variations:
            variation = item.get_variation(line.selected_variation.id if line.selected_variation else None)
            if variation is None:
                raise ValidationError(f"Please select a package for {item.name}")
            unit_price, _ = resolve_variation_price(item, variation, member, overrides)
            selected = SelectedVariation(id=variation.id, name=variation.name, price=unit_price)
        else:
            unit_price, _ = discounted_base_price(item, item.base_price or Decimal("0"))

        return line.model_copy(update={
            "menu_item_id": item.id,
            "name": item.name,
            "total_price": unit_price,
            "selected_variation": selected,
            "custom_fields": item.custom_fields or line.custom_fields,
        })

    def prepare(
        self,
        request: CheckoutRequest,
        member_id: Optional[str] = None,
        require_receipt: bool = False
    ):
        """
        Validate the checkout and re-price the cart

        Returns:
            (priced cart, values, total, payment method, member)
        """
        method = self._payment_method(request.payment_method_id)
        if require_receipt and not (request.receipt_url or "").strip():
            raise ValidationError(RECEIPT_REQUIRED)

        member = self._member(member_id)
        cart = [self._reprice_line(line, member) for line in request.cart]

        values = request.values
        if request.bulk_item_ids and request.bulk_values:
            values = apply_bulk_values(cart, request.bulk_item_ids, request.bulk_values, values)

        validate_details(cart, values)

        total = quantize_price(sum((line.line_total for line in cart), Decimal("0")))
        return cart, values, total, method, member

    def validate(self, request: CheckoutRequest, member_id: Optional[str] = None) -> Dict:
        cart, values, total, method, _ = self.prepare(request, member_id)
        return {
            "valid": True,
            "total": float(total),
            "customer_info": build_customer_info(cart, values, method.name),
        }

    def compose_message(self, request: CheckoutRequest, member_id: Optional[str] = None) -> Dict:
        """Message and deep link for the order-via-Messenger flow"""
        cart, values, total, method, _ = self.prepare(request, member_id)
        message = generate_order_message(
            cart, values, total,
            payment_method_name=method.name,
            receipt_url=request.receipt_url,
        )
        return {
            "message": message,
            "messenger_url": messenger_url(message),
            "total": float(total),
        }

    def place_order(self, request: CheckoutRequest, member_id: Optional[str] = None) -> Order:
        """
        Store a pending order

        Raises:
            ValidationError: Missing payment method, receipt or required details
            NotFoundError: A cart line refers to an unavailable item
        """
        cart, values, total, method, member = self.prepare(request, member_id, require_receipt=True)
        site = self.settings_repo.get_all()

        order = self.order_repo.create(OrderCreate(
            order_items=cart,
            customer_info=build_customer_info(cart, values, method.name),
            payment_method_id=method.id,
            receipt_url=request.receipt_url.strip(),
            total_price=total,
            member_id=member.id if member else None,
            order_option=site.order_option,
        ))

        logger.info(f"Order {order.id} placed: {len(cart)} line(s), total {total}, via {method.id}")
        return order
