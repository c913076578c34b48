"""
WebSocket Link Transport
========================

Connects to the peer over WebSocket and exposes the link as a stream of
events for the dispatcher. Outbound requests (credit, dispositions, detach)
are fire-and-forget: they are queued and written by a background task.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import aiohttp

from .events import Condition, Event, EventKind
from .protocol import (
    Attach,
    DecodeError,
    Delivery,
    Detach,
    Disposition,
    Flow,
    FrameType,
    MessageRecord,
    Outcome,
    Transfer,
    TransportFault,
    decode_message,
    frame_type,
)

logger = logging.getLogger(__name__)


@dataclass
class Link:
    """Handle for the receiving link."""
    target: str
    open: bool = True


class WebSocketTransport:
    """WebSocket transport for a single receiving link.

    Handles:
      - Turning inbound frames into link events
      - Reassembling multi-frame deliveries
      - Writing credit, dispositions and detach in order

    Args:
        url:              WebSocket URL of the peer.
        connect_timeout:  Seconds to wait for the WebSocket handshake.
    """

    def __init__(self, url: str, connect_timeout: float = 5.0):
        self.url = url
        self.connect_timeout = connect_timeout

        self._session: Optional[aiohttp.ClientSession] = None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._events: asyncio.Queue = asyncio.Queue()
        self._outbox: asyncio.Queue = asyncio.Queue()
        self._partial: dict[int, bytearray] = {}
        self._tasks: list[asyncio.Task] = []
        self._closing = False
        self._final = False

    # ---- Properties ----------------------------------------------------------

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    @property
    def pending_deliveries(self) -> int:
        """Deliveries still waiting for their final frame."""
        return len(self._partial)

    @property
    def processing(self) -> bool:
        """False once the connection is done and every event was polled."""
        return not self._final or not self._events.empty()

    # ---- Connection lifecycle ------------------------------------------------

    async def connect(self) -> bool:
        """Connect to the peer and start background tasks.

        A failed connection is reported as a TRANSPORT_ERROR event.

        Returns:
            True if connection succeeded.
        """
        try:
            self._session = aiohttp.ClientSession()
            self._ws = await asyncio.wait_for(
                self._session.ws_connect(self.url, heartbeat=25.0),
                timeout=self.connect_timeout,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            logger.error(f"Connect failed: {e}")
            self._fail(type(e).__name__, str(e) or None)
            self._finish()
            await self._cleanup()
            return False

        logger.info(f"Connected: {self.url}")
        self._tasks.append(asyncio.create_task(self._recv_loop()))
        self._tasks.append(asyncio.create_task(self._send_loop()))
        self._events.put_nowait(Event(EventKind.CONNECTION_INIT))
        return True

    async def close(self):
        """Shut down the transport."""
        self._closing = True
        await self._cleanup()

    # ---- Collaborator API ----------------------------------------------------

    def open_link(self, target: str, initial_credit: int) -> Link:
        self._send(Attach(target=target, initial_credit=initial_credit).encode())
        return Link(target=target)

    def grant_credit(self, link: Link, amount: int) -> bool:
        """Queue a credit grant. False if the link is closed."""
        if link is None or not link.open or amount <= 0 or self._closing:
            return False
        self._send(Flow(credit=amount).encode())
        return True

    async def poll_event(self, timeout: float) -> Optional[Event]:
        """Next event, or None if nothing arrived within `timeout` seconds."""
        try:
            return await asyncio.wait_for(self._events.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None

    def decode_delivery(self, link: Link, delivery: Delivery) -> MessageRecord:
        return decode_message(delivery.payload)

    def acknowledge(self, delivery: Delivery):
        delivery.outcome = Outcome.ACCEPTED

    def settle(self, delivery: Delivery):
        if delivery.local_settled:
            return
        delivery.local_settled = True
        if not delivery.settled:
            self._send(Disposition(delivery.delivery_id, delivery.outcome, settled=True).encode())

    def close_link(self, link: Link):
        if link is not None and link.open:
            link.open = False
            self._send(Detach().encode())

    def close_connection(self):
        """Close once every queued frame has been written."""
        if not self._closing:
            self._closing = True
            self._outbox.put_nowait(None)

    # ---- Inbound -------------------------------------------------------------

    async def _recv_loop(self):
        """Receive loop — turns binary frames into events."""
        try:
            async for msg in self._ws:
                if msg.type == aiohttp.WSMsgType.BINARY:
                    self._handle_binary(msg.data)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    self._fail("websocket-error", str(self._ws.exception()))
                    break
            if not self._closing:
                self._fail("connection-closed", f"peer closed the connection (code={self._ws.close_code})")
        except aiohttp.ClientError as e:
            self._fail(type(e).__name__, str(e) or None)
        finally:
            self._finish()

    def _handle_binary(self, data: bytes):
        """Route a binary frame to the appropriate event."""
        kind = frame_type(data)
        try:
            if kind == FrameType.TRANSFER:
                self._handle_transfer(Transfer.decode(data))
            elif kind == FrameType.ATTACHED:
                self._events.put_nowait(Event(EventKind.LINK_REMOTE_OPEN))
            elif kind == FrameType.FLOW:
                self._events.put_nowait(Event(EventKind.LINK_FLOW))
            elif kind == FrameType.DETACH:
                # unfinished deliveries will never complete
                self._partial.clear()
                self._events.put_nowait(Event(EventKind.LINK_REMOTE_CLOSE))
            elif kind == FrameType.FAULT:
                fault = TransportFault.decode(data)
                self._fail(fault.name or None, fault.description or None)
            else:
                logger.debug(f"Ignoring frame (size={len(data)})")
        except DecodeError as e:
            logger.error(f"Frame decode error: {e} (size={len(data)})")

    def _handle_transfer(self, transfer: Transfer):
        buffer = self._partial.setdefault(transfer.delivery_id, bytearray())
        buffer += transfer.payload
        if transfer.more:
            payload, partial = bytes(buffer), True
        else:
            payload, partial = bytes(self._partial.pop(transfer.delivery_id)), False
        delivery = Delivery(
            delivery_id=transfer.delivery_id,
            payload=payload,
            settled=transfer.settled,
            partial=partial,
        )
        self._events.put_nowait(Event(EventKind.DELIVERY, delivery=delivery))

    def _fail(self, name: Optional[str], description: Optional[str]):
        self._events.put_nowait(
            Event(EventKind.TRANSPORT_ERROR, condition=Condition(name, description))
        )

    def _finish(self):
        if not self._final:
            self._final = True
            self._events.put_nowait(Event(EventKind.CONNECTION_FINAL))

    # ---- Outbound ------------------------------------------------------------

    def _send(self, frame: bytes):
        if not self._closing:
            self._outbox.put_nowait(frame)

    async def _send_loop(self):
        """Write queued frames in order; a None entry closes the socket."""
        while True:
            frame = await self._outbox.get()
            if frame is None:
                break
            try:
                await self._ws.send_bytes(frame)
            except (ConnectionResetError, aiohttp.ClientError) as e:
                logger.error(f"Send error: {e}")
        await self._ws.close()

    # ---- Cleanup -------------------------------------------------------------

    async def _cleanup(self):
        """Cancel tasks and close connections."""
        self._partial.clear()
        current = asyncio.current_task()
        for task in self._tasks:
            if task is current:
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if self._ws and not self._ws.closed:
            await self._ws.close()
        if self._session:
            await self._session.close()
