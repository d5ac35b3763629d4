"""
Payment Method Service
Manages checkout payment methods and the admin payment groups that switch
them on and off as a set
"""
import logging
import re
from typing import Dict, List, Optional

from psycopg2 import errors as pg_errors

from storefront.core.errors import ConflictError, NotFoundError, ValidationError
from storefront.domain.payment import (
    AdminPaymentGroup,
    PaymentMethod,
    PaymentMethodCreate,
    PaymentMethodUpdate,
)
from storefront.repositories import PaymentMethodRepository

logger = logging.getLogger(__name__)

UNASSIGNED_GROUP = "Unassigned"

KEBAB_CASE_ID = re.compile(r'^[a-z0-9]+(-[a-z0-9]+)*$')

REQUIRED_FIELDS_MESSAGE = "Please fill in all required fields including Admin Name"
INVALID_ID_MESSAGE = (
    "Payment method ID must be kebab-case (lowercase letters, numbers and hyphens only)"
)
GROUP_NAME_REQUIRED = "Please enter an admin name"


def generate_id_from_name(name: str) -> str:
    """'GCash (Main)' -> 'gcash-main'"""
    slug = (name or "").lower()
    slug = re.sub(r'[^a-z0-9\s-]', '', slug)
    slug = re.sub(r'\s+', '-', slug)
    slug = re.sub(r'-+', '-', slug)
    return slug


def duplicate_id_message(method_id: str, group: Optional[str]) -> str:
    return (
        f'A payment method with ID "{method_id}" already exists in the '
        f'"{group or UNASSIGNED_GROUP}" group. Please use a different ID.'
    )


def validate_method(data: PaymentMethodCreate) -> None:
    """Every field is required; the id must be kebab-case"""
    required = [data.id, data.name, data.account_number, data.account_name, data.qr_code_url, data.admin_name]
    if any(not (value or "").strip() for value in required):
        raise ValidationError(REQUIRED_FIELDS_MESSAGE)

    if not KEBAB_CASE_ID.match(data.id):
        raise ValidationError(INVALID_ID_MESSAGE)


def group_methods(methods: List[PaymentMethod]) -> Dict[str, List[PaymentMethod]]:
    """{admin_name: [methods...]} preserving input order"""
    grouped: Dict[str, List[PaymentMethod]] = {}
    for method in methods:
        grouped.setdefault(method.admin_name or UNASSIGNED_GROUP, []).append(method)
    return grouped


class PaymentMethodService:
    """
    Service for payment methods and admin payment groups
    """

    def __init__(self, repo: Optional[PaymentMethodRepository] = None):
        self.repo = repo or PaymentMethodRepository()

    # ========================================
    # Payment methods
    # ========================================

    def list_visible(self) -> List[PaymentMethod]:
        """What customers see at checkout"""
        return self.repo.list_visible()

    def list_all(self) -> List[PaymentMethod]:
        return self.repo.list_all()

    def list_grouped(self) -> Dict[str, List[PaymentMethod]]:
        return group_methods(self.repo.list_all())

    def add_method(self, data: PaymentMethodCreate) -> PaymentMethod:
        """
        Raises:
            ValidationError: Missing fields or malformed id
            ConflictError: Id already used inside the same admin group
        """
        data = data.model_copy(update={
            "id": data.id.strip(),
            "admin_name": (data.admin_name or "").strip() or None,
        })
        validate_method(data)

        for existing in self.repo.list_all():
            if existing.id == data.id and (existing.admin_name or None) == data.admin_name:
                raise ConflictError(duplicate_id_message(data.id, data.admin_name))

        try:
            method = self.repo.create(data)
        except pg_errors.UniqueViolation:
            raise ConflictError(duplicate_id_message(data.id, data.admin_name))

        logger.info(f"Payment method added: {method.id} ({method.admin_name})")
        return method

    def update_method(self, uuid_id: str, data: PaymentMethodUpdate) -> PaymentMethod:
        method = self.repo.update(uuid_id, data)
        if method is None:
            raise NotFoundError(f"Payment method {uuid_id} not found")
        logger.info(f"Payment method updated: {method.id} ({uuid_id})")
        return method

    def delete_method(self, uuid_id: str) -> None:
        if not self.repo.delete(uuid_id):
            raise NotFoundError(f"Payment method {uuid_id} not found")
        logger.info(f"Payment method deleted: {uuid_id}")

    def reorder(self, uuid_ids: List[str]) -> List[PaymentMethod]:
        """Assign sort_order 1..n following the given order"""
        self.repo.set_sort_orders([(uuid_id, index + 1) for index, uuid_id in enumerate(uuid_ids)])
        return self.repo.list_all()

    # ========================================
    # Admin payment groups
    # ========================================

    def list_groups(self) -> List[AdminPaymentGroup]:
        return self.repo.list_groups()

    def add_group(self, admin_name: str) -> AdminPaymentGroup:
        """New groups start inactive"""
        name = (admin_name or "").strip()
        if not name:
            raise ValidationError(GROUP_NAME_REQUIRED)

        if self.repo.find_group(name) is not None:
            raise ConflictError(f'Admin group "{name}" already exists')

        try:
            group = self.repo.add_group(name)
        except pg_errors.UniqueViolation:
            raise ConflictError(f'Admin group "{name}" already exists')

        logger.info(f"Admin payment group added: {name}")
        return group

    def set_group_active(self, admin_name: str, is_active: bool) -> AdminPaymentGroup:
        group = self.repo.set_group_active(admin_name, is_active)
        if group is None:
            raise NotFoundError(f'Admin group "{admin_name}" not found')
        logger.info(f"Admin payment group {admin_name} {'activated' if is_active else 'deactivated'}")
        return group

    def toggle_group(self, admin_name: str) -> AdminPaymentGroup:
        group = self.repo.find_group(admin_name)
        if group is None:
            raise NotFoundError(f'Admin group "{admin_name}" not found')
        return self.set_group_active(admin_name, not group.is_active)

    def delete_group(self, admin_name: str) -> None:
        if not self.repo.delete_group(admin_name):
            raise NotFoundError(f'Admin group "{admin_name}" not found')
        logger.info(f"Admin payment group deleted: {admin_name}")
