"""
Realtime Order Feed
Keeps the admin's recent-orders list in sync with the database

- OrderFeed: newest-first in-memory list, merged by id
- OrderChangeListener: background thread LISTENing for order change
  notifications from Postgres
- FeedBroadcaster: fans feed changes out to Server-Sent Event streams
"""
import asyncio
import json
import logging
import select
import threading
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Set

import psycopg2
from psycopg2 import sql
from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT
from pydantic import BaseModel, ValidationError as PydanticValidationError

from storefront.core.config import settings
from storefront.core.database import get_db_connection_with_retry
from storefront.domain.order import Order
from storefront.repositories import OrderRepository

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"

HEARTBEAT_INTERVAL = 15  # seconds


# ============================================================================
# ORDER FEED
# ============================================================================


class OrderFeed:
    """
    Newest-first list of recent orders, deduplicated by id

    Thread-safe: the LISTEN thread and request handlers both mutate it.
    Subscribers are called with (change_type, payload) after every applied
    change.
    """

    def __init__(self, limit: int = 100, order_repo: Optional[OrderRepository] = None):
        self.limit = limit
        self.order_repo = order_repo or OrderRepository()
        self._orders: List[Order] = []
        self._loaded = False
        self._lock = threading.RLock()
        self._subscribers: List[Callable[[str, Dict[str, Any]], None]] = []

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    def subscribe(self, callback: Callable[[str, Dict[str, Any]], None]) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[str, Dict[str, Any]], None]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def _notify(self, change_type: str, payload: Dict[str, Any]) -> None:
        for callback in list(self._subscribers):
            try:
                callback(change_type, payload)
            except Exception as e:
                logger.error(f"Order feed subscriber failed: {e}")

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def orders(self) -> List[Order]:
        with self._lock:
            return list(self._orders)

    @property
    def newest_created_at(self) -> Optional[datetime]:
        with self._lock:
            dates = [o.created_at for o in self._orders if o.created_at is not None]
            return max(dates) if dates else None

    def snapshot(self) -> List[Order]:
        """Current orders, loading from the database on first use"""
        with self._lock:
            if not self._loaded:
                self.reload()
            return list(self._orders)

    def reload(self) -> None:
        self.load(self.order_repo.find_recent(limit=self.limit))

    def load(self, orders: List[Order]) -> None:
        """Replace the list"""
        with self._lock:
            self._orders = self._dedupe(orders)[:self.limit]
            self._loaded = True
        logger.info(f"Order feed loaded with {len(self._orders)} orders")

    @staticmethod
    def _dedupe(orders: List[Order]) -> List[Order]:
        """First occurrence of each id wins"""
        seen = set()
        result = []
        for order in orders:
            if order.id in seen:
                continue
            seen.add(order.id)
            result.append(order)
        return result

    # ------------------------------------------------------------------
    # Changes
    # ------------------------------------------------------------------

    def merge_newer(self, orders: List[Order]) -> None:
        """
        Prepend fetched orders; an order already in the feed is replaced by the fetched copy

        Subscribers get INSERT for ids that are new and survive truncation,
        and UPDATE for held orders whose fetched copy differs.
        """
        if not orders:
            return
        fetched = self._dedupe(list(orders))
        with self._lock:
            previous = {order.id: order for order in self._orders}
            self._orders = self._dedupe(fetched + self._orders)[:self.limit]
            kept = {order.id for order in self._orders}

        for order in fetched:
            if order.id not in kept:
                continue
            if order.id not in previous:
                self._notify(INSERT, order.to_dict())
            elif previous[order.id] != order:
                self._notify(UPDATE, order.to_dict())

    def apply_insert(self, order: Order) -> None:
        self.merge_newer([order])

    def apply_update(self, partial: Dict[str, Any]) -> Optional[Order]:
        """
        Shallow-merge changed fields into the matching order

        Returns:
            The updated order, or None when the id is not in the feed
        """
        order_id = partial.get("id")
        if order_id is None:
            return None
        order_id = str(order_id)

        with self._lock:
            for index, order in enumerate(self._orders):
                if order.id == order_id:
                    merged = order.model_dump()
                    merged.update({k: v for k, v in partial.items() if k in Order.model_fields})
                    merged["id"] = order_id
                    updated = Order(**merged)
                    self._orders[index] = updated
                    break
            else:
                return None

        self._notify(UPDATE, updated.to_dict())
        return updated

    def apply_delete(self, order_id: str) -> bool:
        order_id = str(order_id)
        with self._lock:
            before = len(self._orders)
            self._orders = [o for o in self._orders if o.id != order_id]
            removed = len(self._orders) != before

        if removed:
            self._notify(DELETE, {"id": order_id})
        return removed

    def fetch_newer(self) -> None:
        """Pull orders created after the newest one held; full reload when empty"""
        newest = self.newest_created_at
        if newest is None:
            self.reload()
            self._notify(INSERT, {"reloaded": True})
            return
        self.merge_newer(self.order_repo.find_recent(limit=self.limit, since=newest))

    def handle_change(self, event: Dict[str, Any]) -> None:
        """
        Apply one change notification

        Expected event:
        {
            "type": "INSERT" | "UPDATE" | "DELETE",
            "record": {...},        # new row (INSERT/UPDATE)
            "old_record": {...}     # old row (DELETE)
        }
        """
        change_type = (event.get("type") or "").upper()
        record = event.get("record") or {}
        old_record = event.get("old_record") or {}

        if change_type == INSERT:
            if record.get("created_at") is None:
                self.fetch_newer()
            else:
                self.apply_insert(Order(**record))
        elif change_type == UPDATE:
            self.apply_update(record)
        elif change_type == DELETE:
            order_id = old_record.get("id") or record.get("id")
            if order_id is not None:
                self.apply_delete(order_id)
        else:
            logger.warning(f"Ignoring order change of unknown type: {change_type!r}")


# ============================================================================
# POSTGRES LISTENER
# ============================================================================


class OrderChangeListener:
    """
    Background thread feeding Postgres NOTIFY payloads into an OrderFeed

    The database publishes JSON change events on the channel (for example
    from an AFTER INSERT/UPDATE/DELETE trigger calling pg_notify).
    """

    def __init__(
        self,
        feed: OrderFeed,
        channel: Optional[str] = None,
        poll_timeout: float = 5.0,
        max_backoff: float = 30.0
    ):
        self.feed = feed
        self.channel = channel or settings.ORDER_NOTIFY_CHANNEL
        self.poll_timeout = poll_timeout
        self.max_backoff = max_backoff
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="order-change-listener", daemon=True)
        self._thread.start()
        logger.info(f"Listening for order changes on channel '{self.channel}'")

    def stop(self, timeout: float = 10.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Order change listener stopped")

    def handle_payload(self, payload: str) -> None:
        try:
            event = json.loads(payload)
        except json.JSONDecodeError:
            logger.error(f"Invalid order change payload: {payload[:200]}")
            return
        try:
            self.feed.handle_change(event)
        except (PydanticValidationError, AttributeError, TypeError, ValueError) as e:
            logger.error(f"Skipping unusable order change {payload[:200]}: {e}")

    def _run(self) -> None:
        backoff = 1.0
        while not self._stop.is_set():
            conn = None
            try:
                conn = get_db_connection_with_retry()
                conn.rollback()
                conn.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)
                cursor = conn.cursor()
                cursor.execute(sql.SQL("LISTEN {}").format(sql.Identifier(self.channel)))
                backoff = 1.0

                # Catch up on anything missed while disconnected
                self.feed.fetch_newer()

                while not self._stop.is_set():
                    ready, _, _ = select.select([conn], [], [], self.poll_timeout)
                    if not ready:
                        continue
                    conn.poll()
                    while conn.notifies:
                        notify = conn.notifies.pop(0)
                        self.handle_payload(notify.payload)

            except psycopg2.Error as e:
                logger.error(f"Order change listener lost its connection: {e}. Retrying in {backoff:.0f}s")
                self._stop.wait(backoff)
                backoff = min(backoff * 2, self.max_backoff)
            except Exception as e:
                logger.error(f"Order change listener failed: {e}. Restarting in {backoff:.0f}s", exc_info=True)
                self._stop.wait(backoff)
                backoff = min(backoff * 2, self.max_backoff)
            finally:
                if conn is not None:
                    conn.close()


# ============================================================================
# SSE BROADCASTER
# ============================================================================


class FeedSSEEvent(BaseModel):
    """SSE event structure for order feed notifications."""

    event: str
    data: str
    id: Optional[str] = None

    def format(self) -> str:
        """Format as SSE message."""
        lines = []
        if self.id:
            lines.append(f"id: {self.id}")
        lines.append(f"event: {self.event}")
        lines.append(f"data: {self.data}")
        return "\n".join(lines) + "\n\n"


class FeedBroadcaster:
    """
    Fans order feed changes out to connected admin streams

    publish() may be called from any thread; events are handed to each
    stream's event loop with call_soon_threadsafe.
    """

    def __init__(self, heartbeat_interval: float = HEARTBEAT_INTERVAL):
        self.heartbeat_interval = heartbeat_interval
        self._connections: Set[asyncio.Queue] = set()
        self._loops: Dict[asyncio.Queue, asyncio.AbstractEventLoop] = {}
        self._lock = threading.Lock()
        self._event_counter = 0
        self._shutting_down = False

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def add_connection(self) -> asyncio.Queue:
        if self._shutting_down:
            raise RuntimeError("Order feed is shutting down")

        queue: asyncio.Queue = asyncio.Queue()
        with self._lock:
            self._connections.add(queue)
            self._loops[queue] = asyncio.get_running_loop()
        logger.info(f"Order feed stream added. Total connections: {len(self._connections)}")
        return queue

    def remove_connection(self, queue: asyncio.Queue) -> None:
        with self._lock:
            self._connections.discard(queue)
            self._loops.pop(queue, None)
        logger.info(f"Order feed stream removed. Total connections: {len(self._connections)}")

    def _deliver(self, event: FeedSSEEvent) -> None:
        with self._lock:
            targets = list(self._loops.items())
        for queue, loop in targets:
            try:
                loop.call_soon_threadsafe(queue.put_nowait, event)
            except RuntimeError:
                # Loop already closed
                self.remove_connection(queue)

    def publish(self, change_type: str, payload: Dict[str, Any]) -> None:
        """OrderFeed subscriber"""
        with self._lock:
            self._event_counter += 1
            event_id = str(self._event_counter)

        self._deliver(FeedSSEEvent(
            event="order_change",
            data=json.dumps({"type": change_type, "record": payload, "timestamp": time.time()}, default=str),
            id=event_id,
        ))

    def shutdown(self) -> None:
        """Send a shutdown event to every stream and refuse new ones"""
        logger.info(f"Shutting down order feed broadcaster with {len(self._connections)} active connections")
        self._shutting_down = True
        self._deliver(FeedSSEEvent(
            event="shutdown",
            data=json.dumps({"message": "Server is shutting down", "timestamp": time.time()}),
        ))
        with self._lock:
            self._connections.clear()
            self._loops.clear()

    async def stream(self, is_disconnected: Callable[[], Any], snapshot: Optional[List[Order]] = None):
        """
        Async generator of SSE messages for one admin connection

        Starts with a `snapshot` event holding the current feed, then relays
        `order_change` events and a heartbeat comment when idle.
        """
        queue: Optional[asyncio.Queue] = None
        try:
            queue = self.add_connection()

            yield FeedSSEEvent(
                event="snapshot",
                data=json.dumps([o.to_dict() for o in (snapshot or [])], default=str),
            ).format()

            last_heartbeat = time.time()
            while True:
                if await is_disconnected():
                    break

                try:
                    event = await asyncio.wait_for(queue.get(), timeout=1.0)
                    yield event.format()
                    if event.event == "shutdown":
                        break
                except asyncio.TimeoutError:
                    if self._shutting_down:
                        break
                    now = time.time()
                    if now - last_heartbeat >= self.heartbeat_interval:
                        yield ": heartbeat\n\n"
                        last_heartbeat = now

        except RuntimeError as e:
            logger.info(f"Order feed stream rejected: {e}")
        except asyncio.CancelledError:
            logger.info("Order feed stream cancelled")
        finally:
            if queue is not None:
                self.remove_connection(queue)


order_feed = OrderFeed(limit=settings.ORDER_FEED_LIMIT)
feed_broadcaster = FeedBroadcaster()
order_feed.subscribe(feed_broadcaster.publish)
