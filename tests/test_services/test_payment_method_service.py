"""
Unit tests for payment method administration
"""
from unittest.mock import MagicMock

import pytest
from psycopg2 import errors as pg_errors

from storefront.core.errors import ConflictError, NotFoundError, ValidationError
from storefront.domain.payment import AdminPaymentGroup, PaymentMethodCreate
from storefront.services.payment_method_service import (
    PaymentMethodService,
    generate_id_from_name,
    group_methods,
    validate_method,
)


def _create(**kwargs):
    data = {
        "id": "maya",
        "name": "Maya",
        "account_number": "0917",
        "account_name": "Trish D.",
        "qr_code_url": "https://cdn.example.com/maya.png",
        "admin_name": "Trish",
    }
    data.update(kwargs)
    return PaymentMethodCreate(**data)


class TestGenerateId:

    @pytest.mark.parametrize("name,expected", [
        ("GCash", "gcash"),
        ("BDO Savings  Account", "bdo-savings-account"),
        ("Maya (Main)!", "maya-main"),
        ("Union -- Bank", "union-bank"),
    ])
    def test_generate_id_from_name(self, name, expected):
        assert generate_id_from_name(name) == expected


class TestValidateMethod:

    def test_valid(self):
        validate_method(_create())

    def test_admin_name_required(self):
        with pytest.raises(ValidationError) as exc:
            validate_method(_create(admin_name=""))
        assert exc.value.message == "Please fill in all required fields including Admin Name"

    def test_blank_field(self):
        with pytest.raises(ValidationError):
            validate_method(_create(account_number="  "))

    @pytest.mark.parametrize("bad_id", ["GCash", "g_cash", "-gcash", "gcash-", "g--cash", "g cash"])
    def test_id_must_be_kebab_case(self, bad_id):
        with pytest.raises(ValidationError):
            validate_method(_create(id=bad_id))


class TestGroupMethods:

    def test_missing_admin_name_goes_to_unassigned(self, gcash):
        orphan = gcash.model_copy(update={"uuid_id": "2", "id": "cash", "admin_name": None})
        grouped = group_methods([gcash, orphan])
        assert list(grouped) == ["Trish", "Unassigned"]
        assert grouped["Unassigned"] == [orphan]


class TestPaymentMethodService:

    def test_add_method(self, gcash):
        repo = MagicMock()
        repo.list_all.return_value = [gcash]
        repo.create.return_value = gcash

        PaymentMethodService(repo).add_method(_create())

        assert repo.create.call_args[0][0].id == "maya"

    def test_same_id_in_same_group_conflicts(self, gcash):
        repo = MagicMock()
        repo.list_all.return_value = [gcash]

        with pytest.raises(ConflictError) as exc:
            PaymentMethodService(repo).add_method(_create(id="gcash"))

        assert exc.value.message == (
            'A payment method with ID "gcash" already exists in the "Trish" group. '
            'Please use a different ID.'
        )
        repo.create.assert_not_called()

    def test_same_id_in_other_group_is_allowed(self, gcash):
        repo = MagicMock()
        repo.list_all.return_value = [gcash]
        repo.create.return_value = gcash

        PaymentMethodService(repo).add_method(_create(id="gcash", admin_name="Other"))

        repo.create.assert_called_once()

    def test_unique_violation_maps_to_conflict(self):
        repo = MagicMock()
        repo.list_all.return_value = []
        repo.create.side_effect = pg_errors.UniqueViolation()

        with pytest.raises(ConflictError):
            PaymentMethodService(repo).add_method(_create())

    def test_reorder_assigns_one_based_positions(self):
        repo = MagicMock()
        PaymentMethodService(repo).reorder(["c", "a", "b"])
        repo.set_sort_orders.assert_called_once_with([("c", 1), ("a", 2), ("b", 3)])

    def test_update_missing_method(self):
        repo = MagicMock()
        repo.update.return_value = None
        with pytest.raises(NotFoundError):
            PaymentMethodService(repo).update_method("nope", MagicMock())

    def test_add_group_requires_name(self):
        with pytest.raises(ValidationError) as exc:
            PaymentMethodService(MagicMock()).add_group("   ")
        assert exc.value.message == "Please enter an admin name"

    def test_add_group(self):
        repo = MagicMock()
        repo.find_group.return_value = None
        repo.add_group.return_value = AdminPaymentGroup(id="g1", admin_name="Trish", is_active=False)

        group = PaymentMethodService(repo).add_group(" Trish ")

        repo.add_group.assert_called_once_with("Trish")
        assert group.is_active is False

    def test_toggle_group(self):
        repo = MagicMock()
        repo.find_group.return_value = AdminPaymentGroup(id="g1", admin_name="Trish", is_active=False)
        repo.set_group_active.return_value = AdminPaymentGroup(id="g1", admin_name="Trish", is_active=True)

        group = PaymentMethodService(repo).toggle_group("Trish")

        repo.set_group_active.assert_called_once_with("Trish", True)
        assert group.is_active is True

    def test_delete_missing_group(self):
        repo = MagicMock()
        repo.delete_group.return_value = False
        with pytest.raises(NotFoundError):
            PaymentMethodService(repo).delete_group("Nobody")
