"""
Event Dispatcher
================

The single control loop of the receiver. Pulls events from the transport
collaborator one at a time and routes each one to the sequence tracker,
latency recorder, flow controller and reporter.

All session state is mutated here, on the event loop, one event at a time.
"""

import asyncio
import functools
import logging
from typing import Any, Callable, Optional, Protocol

from .events import Event, EventKind
from .flow import FlowController
from .latency import LatencyRecorder
from .protocol import DecodeError, Delivery, MessageRecord, current_time_ms
from .reporter import Reporter, SampleTrace
from .sequence import SequenceTracker
from .session import SessionState

logger = logging.getLogger(__name__)

WAKE_TIMEOUT_S = 1.0


class LinkTransport(Protocol):
    """What the dispatcher needs from the transport collaborator."""

    def open_link(self, target: str, initial_credit: int) -> Any: ...

    def grant_credit(self, link: Any, amount: int) -> bool: ...

    async def poll_event(self, timeout: float) -> Optional[Event]: ...

    def decode_delivery(self, link: Any, delivery: Delivery) -> MessageRecord: ...

    def acknowledge(self, delivery: Delivery) -> None: ...

    def settle(self, delivery: Delivery) -> None: ...

    def close_link(self, link: Any) -> None: ...

    def close_connection(self) -> None: ...


class EventDispatcher:
    """Routes transport events to the statistics and flow-control components.

    Args:
        state:            Session state for the link.
        transport:        Transport collaborator.
        recorder:         Latency aggregates (created if omitted).
        reporter:         Periodic reporter, driven from run().
        measure_latency:  Record latency samples for decoded messages.
        trace:            Optional per-message latency trace.
        clock:            Wall clock in ms.
    """

    def __init__(
        self,
        state: SessionState,
        transport: LinkTransport,
        recorder: Optional[LatencyRecorder] = None,
        reporter: Optional[Reporter] = None,
        measure_latency: bool = False,
        trace: Optional[SampleTrace] = None,
        clock: Callable[[], int] = current_time_ms,
    ):
        self.state = state
        self.transport = transport
        self.recorder = recorder if recorder is not None else LatencyRecorder()
        self.reporter = reporter
        self.measure_latency = measure_latency
        self.trace = trace
        self.clock = clock

        self.flow = FlowController(state.credit_window)
        self.sequencer = SequenceTracker()
        self.link: Any = None
        self.finished = False

    # ---- Dispatch ------------------------------------------------------------

    def dispatch(self, event: Event):
        """Perform the state transition for one event."""
        handler = self.HANDLERS.get(event.kind, EventDispatcher._ignore)
        handler(self, event)

    def _ignore(self, event: Event):
        pass

    def _on_connection_init(self, event: Event):
        # cannot receive without granting credit
        self.link = self.transport.open_link(self.state.target_address, self.state.credit_window)
        self.state.outstanding_credit = self.state.credit_window
        logger.debug(f"Link requested: {self.state.target_address} (credit={self.state.credit_window})")

    def _on_link_active(self, event: Event):
        # messages created before this point are not used for latency
        self.state.start_time = self.clock()
        logger.info(f"Link active: {self.state.target_address}")

    def _on_link_remote_close(self, event: Event):
        logger.info("Link closed by peer")
        self.transport.close_connection()

    def _on_delivery(self, event: Event):
        dlv = event.delivery
        if dlv is None or not dlv.readable or dlv.partial:
            return

        now = self.clock()
        try:
            record = self.transport.decode_delivery(self.link, dlv)
        except DecodeError as e:
            logger.error(f"Decode error: {e} (size={len(dlv.payload)})")
        else:
            self._on_message(record, now)

        if not dlv.settled:
            # remote is tracking the delivery, accept it
            self.transport.acknowledge(dlv)
        self.transport.settle(dlv)

        self.state.use_credit()
        self.flow.replenish(self.state, functools.partial(self.transport.grant_credit, self.link))

        if self.state.consume_limit():
            logger.info("Message limit reached, closing link")
            self.transport.close_link(self.link)

    def _on_message(self, record: MessageRecord, now: int):
        self.sequencer.observe(self.state, record.sequence_id)
        if self.measure_latency:
            sample = self.recorder.observe(record.creation_time, now, self.state.start_time)
            if sample is not None and self.trace is not None:
                self.trace.write(sample, record.creation_time, now)
        self.state.received_count += 1
        logger.debug(f"Message received! {record}")

    def _on_transport_error(self, event: Event):
        logger.error("Network transport failed!")
        cond = event.condition
        if cond is not None and (cond.name or cond.description):
            logger.error(
                f"    Error: {cond.name or '<error name not provided>'}  "
                f"Description: {cond.description or '<no description provided>'}"
            )

    def _on_connection_final(self, event: Event):
        self.finished = True

    HANDLERS: dict = {
        EventKind.CONNECTION_INIT: _on_connection_init,
        EventKind.CONNECTION_REMOTE_OPEN: _ignore,
        EventKind.SESSION_REMOTE_OPEN: _ignore,
        EventKind.LINK_REMOTE_OPEN: _on_link_active,
        EventKind.LINK_FLOW: _ignore,
        EventKind.LINK_REMOTE_CLOSE: _on_link_remote_close,
        EventKind.DELIVERY: _on_delivery,
        EventKind.TRANSPORT_ERROR: _on_transport_error,
        EventKind.TIMER: _ignore,
        EventKind.CONNECTION_FINAL: _on_connection_final,
    }

    # ---- Control loop --------------------------------------------------------

    async def run(self, stop: asyncio.Event, interval_s: int = 0, wake_timeout: float = WAKE_TIMEOUT_S):
        """Process events until the connection is done or `stop` is set.

        The stop flag is checked once per iteration, so the event in hand is
        always fully processed. Polling wakes every `wake_timeout` seconds so
        periodic reports fire without traffic.
        """
        interval_ms = interval_s * 1000
        last_display = self.clock()

        while not stop.is_set() and not self.finished:
            event = await self.transport.poll_event(wake_timeout)
            self.dispatch(event if event is not None else Event(EventKind.TIMER))

            if interval_ms and self.reporter is not None:
                now = self.clock()
                if now >= last_display + interval_ms:
                    last_display = now
                    self.reporter.report()
