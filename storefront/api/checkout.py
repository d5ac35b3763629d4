"""
Checkout API Endpoints
Validation, Messenger order message and direct order placement
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from storefront.core.auth import TokenUser, get_current_member_optional
from storefront.core.errors import StorefrontError, to_http_exception
from storefront.services.checkout_service import CheckoutRequest, CheckoutService
from storefront.services.order_feed import order_feed

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/validate")
async def validate_checkout(
    request: CheckoutRequest,
    member: Optional[TokenUser] = Depends(get_current_member_optional)
):
    """Check payment method and custom fields; returns the customer info that would be stored"""
    try:
        result = CheckoutService().validate(request, member.id if member else None)
        return {"status": "success", "data": result}

    except StorefrontError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error validating checkout: {e}")
        raise HTTPException(status_code=500, detail=f"Error validating checkout: {str(e)}")


@router.post("/message")
async def compose_message(
    request: CheckoutRequest,
    member: Optional[TokenUser] = Depends(get_current_member_optional)
):
    """
    Order message and m.me deep link for the order-via-Messenger flow

    Returns:
        {"message": "...", "messenger_url": "https://m.me/<page>?text=..."}
    """
    try:
        result = CheckoutService().compose_message(request, member.id if member else None)
        return {"status": "success", "data": result}

    except StorefrontError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error composing order message: {e}")
        raise HTTPException(status_code=500, detail=f"Error composing order message: {str(e)}")


@router.post("/orders", status_code=status.HTTP_201_CREATED)
async def place_order(
    request: CheckoutRequest,
    member: Optional[TokenUser] = Depends(get_current_member_optional)
):
    """Place a pending order; the client keeps the returned id to track it"""
    try:
        order = CheckoutService().place_order(request, member.id if member else None)
        order_feed.apply_insert(order)

        return {
            "status": "success",
            "message": "Order placed",
            "data": order.to_dict()
        }

    except StorefrontError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error placing order: {e}")
        raise HTTPException(status_code=500, detail=f"Error placing order: {str(e)}")
