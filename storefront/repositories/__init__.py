"""
Repository Layer - Data Access

This layer handles all database queries and returns domain models.
Repositories abstract away SQL details from business logic.
"""
from storefront.repositories.order_repository import OrderRepository
from storefront.repositories.member_repository import MemberRepository, MemberDiscountRepository
from storefront.repositories.payment_method_repository import PaymentMethodRepository
from storefront.repositories.catalog_repository import CatalogRepository, SiteSettingsRepository

__all__ = [
    'OrderRepository',
    'MemberRepository',
    'MemberDiscountRepository',
    'PaymentMethodRepository',
    'CatalogRepository',
    'SiteSettingsRepository',
]
