"""
Payment Methods API Endpoints
Checkout payment methods (public) and their administration (admin role)
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from storefront.core.auth import TokenUser, require_admin
from storefront.core.errors import StorefrontError, to_http_exception
from storefront.domain.payment import PaymentMethodCreate, PaymentMethodUpdate
from storefront.services.payment_method_service import PaymentMethodService

logger = logging.getLogger(__name__)

router = APIRouter()


class ReorderRequest(BaseModel):
    uuid_ids: List[str]


class GroupCreate(BaseModel):
    admin_name: str


class GroupUpdate(BaseModel):
    is_active: Optional[bool] = None


@router.get("")
async def list_visible_methods():
    """Active methods of active admin groups, in display order"""
    try:
        methods = PaymentMethodService().list_visible()

        return {
            "status": "success",
            "count": len(methods),
            "data": [m.to_dict() for m in methods]
        }

    except Exception as e:
        logger.error(f"Error fetching payment methods: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching payment methods: {str(e)}")


@router.get("/all")
async def list_all_methods(user: TokenUser = Depends(require_admin)):
    try:
        methods = PaymentMethodService().list_all()

        return {
            "status": "success",
            "count": len(methods),
            "data": [m.to_dict() for m in methods]
        }

    except Exception as e:
        logger.error(f"Error fetching payment methods: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching payment methods: {str(e)}")


@router.get("/grouped")
async def list_grouped_methods(user: TokenUser = Depends(require_admin)):
    """Methods grouped by admin group ("Unassigned" when missing)"""
    try:
        grouped = PaymentMethodService().list_grouped()

        return {
            "status": "success",
            "data": {
                group: [m.to_dict() for m in methods]
                for group, methods in grouped.items()
            }
        }

    except Exception as e:
        logger.error(f"Error fetching grouped payment methods: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching payment methods: {str(e)}")


@router.post("", status_code=status.HTTP_201_CREATED)
async def add_method(data: PaymentMethodCreate, user: TokenUser = Depends(require_admin)):
    try:
        method = PaymentMethodService().add_method(data)

        return {
            "status": "success",
            "message": "Payment method added",
            "data": method.to_dict()
        }

    except StorefrontError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error adding payment method: {e}")
        raise HTTPException(status_code=500, detail=f"Error adding payment method: {str(e)}")


@router.post("/reorder")
async def reorder_methods(data: ReorderRequest, user: TokenUser = Depends(require_admin)):
    """Set sort_order 1..n following the given uuid order"""
    try:
        methods = PaymentMethodService().reorder(data.uuid_ids)

        return {
            "status": "success",
            "data": [m.to_dict() for m in methods]
        }

    except Exception as e:
        logger.error(f"Error reordering payment methods: {e}")
        raise HTTPException(status_code=500, detail=f"Error reordering payment methods: {str(e)}")


# ========================================
# Admin payment groups
# ========================================

@router.get("/groups")
async def list_groups(user: TokenUser = Depends(require_admin)):
    try:
        groups = PaymentMethodService().list_groups()

        return {
            "status": "success",
            "count": len(groups),
            "data": [g.to_dict() for g in groups]
        }

    except Exception as e:
        logger.error(f"Error fetching admin payment groups: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching admin groups: {str(e)}")


@router.post("/groups", status_code=status.HTTP_201_CREATED)
async def add_group(data: GroupCreate, user: TokenUser = Depends(require_admin)):
    """New groups start inactive"""
    try:
        group = PaymentMethodService().add_group(data.admin_name)

        return {
            "status": "success",
            "message": "Admin group added",
            "data": group.to_dict()
        }

    except StorefrontError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error adding admin payment group: {e}")
        raise HTTPException(status_code=500, detail=f"Error adding admin group: {str(e)}")


@router.patch("/groups/{admin_name}")
async def update_group(admin_name: str, data: GroupUpdate, user: TokenUser = Depends(require_admin)):
    """Set is_active, or toggle it when omitted"""
    try:
        service = PaymentMethodService()
        if data.is_active is None:
            group = service.toggle_group(admin_name)
        else:
            group = service.set_group_active(admin_name, data.is_active)

        return {
            "status": "success",
            "data": group.to_dict()
        }

    except StorefrontError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error updating admin payment group {admin_name}: {e}")
        raise HTTPException(status_code=500, detail=f"Error updating admin group: {str(e)}")


@router.delete("/groups/{admin_name}")
async def delete_group(admin_name: str, user: TokenUser = Depends(require_admin)):
    try:
        PaymentMethodService().delete_group(admin_name)

        return {
            "status": "success",
            "message": "Admin group deleted"
        }

    except StorefrontError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error deleting admin payment group {admin_name}: {e}")
        raise HTTPException(status_code=500, detail=f"Error deleting admin group: {str(e)}")


# ========================================
# Single payment method (keep last: catches /{uuid_id})
# ========================================

@router.patch("/{uuid_id}")
async def update_method(
    uuid_id: str,
    data: PaymentMethodUpdate,
    user: TokenUser = Depends(require_admin)
):
    try:
        method = PaymentMethodService().update_method(uuid_id, data)

        return {
            "status": "success",
            "message": "Payment method updated",
            "data": method.to_dict()
        }

    except StorefrontError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error updating payment method {uuid_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error updating payment method: {str(e)}")


@router.delete("/{uuid_id}")
async def delete_method(uuid_id: str, user: TokenUser = Depends(require_admin)):
    try:
        PaymentMethodService().delete_method(uuid_id)

        return {
            "status": "success",
            "message": "Payment method deleted"
        }

    except StorefrontError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error deleting payment method {uuid_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error deleting payment method: {str(e)}")
