"""
Orders API Endpoints
Admin order review, the realtime order feed and customer order tracking
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse

from storefront.core.auth import TokenUser, require_admin
from storefront.core.errors import StorefrontError, to_http_exception
from storefront.domain.order import OrderStatusUpdate
from storefront.services.order_feed import order_feed, feed_broadcaster
from storefront.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def get_orders(
    limit: int = Query(100, ge=1, le=1000),
    since: Optional[str] = Query(None, description="Only orders created after this timestamp (ISO format)"),
    user: TokenUser = Depends(require_admin)
):
    """Most recent orders, newest first"""
    try:
        orders = OrderService().list_orders(limit=limit, since=since)

        return {
            "status": "success",
            "count": len(orders),
            "limit": limit,
            "data": [order.to_dict() for order in orders]
        }

    except Exception as e:
        logger.error(f"Error fetching orders: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching orders: {str(e)}")


@router.get("/feed")
async def get_feed(user: TokenUser = Depends(require_admin)):
    """Current state of the realtime order feed"""
    try:
        orders = order_feed.snapshot()

        return {
            "status": "success",
            "count": len(orders),
            "data": [order.to_dict() for order in orders]
        }

    except Exception as e:
        logger.error(f"Error fetching order feed: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching order feed: {str(e)}")


@router.get("/feed/stream", response_class=StreamingResponse)
async def stream_feed(request: Request, user: TokenUser = Depends(require_admin)):
    """
    Server-Sent Events stream of order changes

    **Event Types:**
    - `snapshot`: current feed, sent once on connect
    - `order_change`: {"type": "INSERT|UPDATE|DELETE", "record": {...}}
    - `shutdown`: server is stopping
    Idle connections receive a `: heartbeat` comment every 15 seconds.
    """
    logger.info(f"Order feed stream opened by {user.email}")

    try:
        snapshot = order_feed.snapshot()
    except Exception as e:
        logger.error(f"Error loading order feed: {e}")
        raise HTTPException(status_code=500, detail=f"Error loading order feed: {str(e)}")

    return StreamingResponse(
        feed_broadcaster.stream(request.is_disconnected, snapshot),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.get("/{order_id}/tracking")
async def track_order(order_id: str):
    """
    Status of a customer's current order

    `keep_tracking` turns false once the order is approved or no longer exists.
    """
    try:
        return {
            "status": "success",
            "data": OrderService().tracking(order_id)
        }

    except Exception as e:
        logger.error(f"Error tracking order {order_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error tracking order: {str(e)}")


@router.get("/{order_id}")
async def get_order(order_id: str, user: TokenUser = Depends(require_admin)):
    try:
        order = OrderService().get_order(order_id)

        return {
            "status": "success",
            "data": order.to_dict()
        }

    except StorefrontError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error fetching order {order_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching order: {str(e)}")


@router.patch("/{order_id}/status")
async def update_order_status(
    order_id: str,
    update: OrderStatusUpdate,
    user: TokenUser = Depends(require_admin)
):
    """Set pending / processing / approved / rejected"""
    try:
        order = OrderService(feed=order_feed).update_status(order_id, update.status)

        return {
            "status": "success",
            "message": f"Order status updated to {order.status}",
            "data": order.to_dict()
        }

    except StorefrontError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error updating order {order_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error updating order status: {str(e)}")
