"""
Admin Members API Endpoints
Member list, top spenders, account changes and reseller discounts

All endpoints require the admin role.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from storefront.core.auth import TokenUser, require_admin
from storefront.core.errors import StorefrontError, to_http_exception
from storefront.domain.member import DiscountUpsert, MemberUpdate
from storefront.services.member_service import MemberService
from storefront.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/members")
async def list_members(
    search: Optional[str] = Query(None, description="Username contains (case-insensitive)"),
    status: Optional[str] = Query("all", description="active, inactive or all"),
    user_type: Optional[str] = Query("all", description="end_user, reseller or all"),
    user: TokenUser = Depends(require_admin)
):
    """Members with their order counts and totals"""
    try:
        service = MemberService()
        members = service.list_members(search=search, status=status, user_type=user_type)
        summary = service.member_order_summary()

        data = []
        for member in members:
            member_data = member.to_dict()
            totals = summary.get(str(member.id), {"total_orders": 0, "total_cost": 0.0})
            member_data.update(totals)
            data.append(member_data)

        return {
            "status": "success",
            "count": len(data),
            "data": data
        }

    except Exception as e:
        logger.error(f"Error fetching members: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching members: {str(e)}")


@router.get("/members/top")
async def top_members(
    limit: int = Query(10, ge=1, le=100),
    user: TokenUser = Depends(require_admin)
):
    """Members ranked by total spent"""
    try:
        ranked = MemberService().top_members(limit=limit)

        return {
            "status": "success",
            "count": len(ranked),
            "data": [entry.to_dict() for entry in ranked]
        }

    except Exception as e:
        logger.error(f"Error fetching top members: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching top members: {str(e)}")


@router.patch("/members/{member_id}")
async def update_member(
    member_id: str,
    update: MemberUpdate,
    user: TokenUser = Depends(require_admin)
):
    """Change level, status or user type"""
    try:
        member = MemberService().update_member(member_id, update)

        return {
            "status": "success",
            "message": "Member updated",
            "data": member.to_dict()
        }

    except StorefrontError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error updating member {member_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error updating member: {str(e)}")


@router.get("/members/{member_id}/orders")
async def member_orders(
    member_id: str,
    limit: int = Query(50, ge=1, le=500),
    user: TokenUser = Depends(require_admin)
):
    try:
        orders = OrderService().orders_for_member(member_id, limit=limit)

        return {
            "status": "success",
            "count": len(orders),
            "data": [order.to_dict() for order in orders]
        }

    except Exception as e:
        logger.error(f"Error fetching orders for member {member_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching member orders: {str(e)}")


@router.get("/members/{member_id}/discounts")
async def member_discounts(member_id: str, user: TokenUser = Depends(require_admin)):
    try:
        discounts = MemberService().discounts_for_member(member_id)

        return {
            "status": "success",
            "count": len(discounts),
            "data": [d.to_dict() for d in discounts]
        }

    except Exception as e:
        logger.error(f"Error fetching discounts for member {member_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching discounts: {str(e)}")


@router.put("/members/{member_id}/discounts")
async def set_member_discounts(
    member_id: str,
    discounts: List[DiscountUpsert],
    user: TokenUser = Depends(require_admin)
):
    """Upsert one or more discounts keyed by (menu item, variation)"""
    try:
        service = MemberService()
        saved = [service.set_discount(member_id, discount) for discount in discounts]

        return {
            "status": "success",
            "message": f"{len(saved)} discount(s) saved",
            "data": [d.to_dict() for d in saved]
        }

    except StorefrontError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error saving discounts for member {member_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error saving discounts: {str(e)}")


@router.get("/members/{member_id}/discounts/{menu_item_id}")
async def member_item_discounts(
    member_id: str,
    menu_item_id: str,
    user: TokenUser = Depends(require_admin)
):
    try:
        discounts = MemberService().discounts_for_item(member_id, menu_item_id)

        return {
            "status": "success",
            "count": len(discounts),
            "data": [d.to_dict() for d in discounts]
        }

    except Exception as e:
        logger.error(f"Error fetching discounts for member {member_id}, item {menu_item_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching discounts: {str(e)}")


@router.delete("/discounts/{discount_id}")
async def delete_discount(discount_id: str, user: TokenUser = Depends(require_admin)):
    try:
        MemberService().delete_discount(discount_id)

        return {
            "status": "success",
            "message": "Discount deleted"
        }

    except StorefrontError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error deleting discount {discount_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error deleting discount: {str(e)}")
