"""
Order Service
Admin order review (listing, status changes) and customer order tracking
"""
import logging
from typing import List, Optional

from storefront.core.errors import NotFoundError, ValidationError
from storefront.domain.order import Order, OrderStatus
from storefront.repositories import OrderRepository
from storefront.services.checkout_service import tracked_order_state

logger = logging.getLogger(__name__)

VALID_STATUSES = [s.value for s in OrderStatus]


def display_status(order: Order) -> str:
    return order.display_status


class OrderService:
    """
    Service for order review

    Status changes are pushed to the order feed (when one is attached) so
    admins see them without waiting for the database notification.
    """

    def __init__(self, order_repo: Optional[OrderRepository] = None, feed=None):
        self.order_repo = order_repo or OrderRepository()
        self.feed = feed

    def list_orders(self, limit: int = 100, since: Optional[str] = None) -> List[Order]:
        return self.order_repo.find_recent(limit=limit, since=since)

    def get_order(self, order_id: str) -> Order:
        order = self.order_repo.find_by_id(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    def orders_for_member(self, member_id: str, limit: int = 50) -> List[Order]:
        return self.order_repo.find_by_member(member_id, limit=limit)

    def update_status(self, order_id: str, status: str) -> Order:
        """
        Set an order's status

        Raises:
            ValidationError: Unknown status
            NotFoundError: Order does not exist
        """
        if hasattr(status, 'value'):
            status = status.value
        if status not in VALID_STATUSES:
            raise ValidationError(f"Invalid status '{status}'. Must be one of: {', '.join(VALID_STATUSES)}")

        order = self.order_repo.update_status(order_id, status)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")

        logger.info(f"Order {order_id} status set to {status}")

        if self.feed is not None:
            self.feed.apply_update({"id": order.id, "status": order.status, "updated_at": order.updated_at})

        return order

    def tracking(self, order_id: str) -> dict:
        """Tracking state for a customer's current order; unknown ids stop tracking"""
        order = self.order_repo.find_by_id(order_id)
        state = tracked_order_state(order)
        state["order_id"] = order_id
        return state
