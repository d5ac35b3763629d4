"""
Members API Endpoints
Shopper registration, login and own-account views
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from storefront.core.auth import TokenUser, get_current_member
from storefront.core.errors import StorefrontError, to_http_exception
from storefront.domain.member import MemberLogin, MemberRegister
from storefront.services.member_service import MemberAuthService
from storefront.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(data: MemberRegister):
    """Create an active end-user account and log it in"""
    try:
        member, token = MemberAuthService().register(
            username=data.username,
            email=data.email,
            password=data.password,
            mobile_no=data.mobile_no,
        )

        return {
            "status": "success",
            "access_token": token,
            "token_type": "bearer",
            "data": member.to_dict()
        }

    except StorefrontError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error registering member: {e}")
        raise HTTPException(status_code=500, detail=f"Error registering member: {str(e)}")


@router.post("/login")
async def login(data: MemberLogin):
    try:
        member, token = MemberAuthService().login(data.email, data.password)

        return {
            "status": "success",
            "access_token": token,
            "token_type": "bearer",
            "data": member.to_dict()
        }

    except StorefrontError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error logging in member: {e}")
        raise HTTPException(status_code=500, detail=f"Error logging in: {str(e)}")


@router.get("/me")
async def get_me(user: TokenUser = Depends(get_current_member)):
    try:
        member = MemberAuthService().current_member(user.id)

        return {
            "status": "success",
            "data": member.to_dict()
        }

    except StorefrontError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error fetching member {user.id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching member: {str(e)}")


@router.get("/me/orders")
async def get_my_orders(
    limit: int = Query(50, ge=1, le=500),
    user: TokenUser = Depends(get_current_member)
):
    """Order history of the logged-in member, newest first"""
    try:
        orders = OrderService().orders_for_member(user.id, limit=limit)

        return {
            "status": "success",
            "count": len(orders),
            "data": [order.to_dict() for order in orders]
        }

    except Exception as e:
        logger.error(f"Error fetching orders for member {user.id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching orders: {str(e)}")
