"""
Domain Layer - Business Entities

This layer contains Pydantic models representing business entities.
These models enforce type safety and validation across the application.
"""
from storefront.domain.catalog import MenuItem, Variation, CustomField
from storefront.domain.member import Member, MemberDiscount
from storefront.domain.order import Order, CartItem, OrderStatus, OrderOption
from storefront.domain.payment import PaymentMethod, AdminPaymentGroup
from storefront.domain.site_settings import SiteSettings

__all__ = [
    'MenuItem',
    'Variation',
    'CustomField',
    'Member',
    'MemberDiscount',
    'Order',
    'CartItem',
    'OrderStatus',
    'OrderOption',
    'PaymentMethod',
    'AdminPaymentGroup',
    'SiteSettings',
]
