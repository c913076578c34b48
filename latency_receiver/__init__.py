"""
Latency Receiver Package
========================

Receiving client for a single link that regulates delivery with a credit
window, detects loss and duplication from message sequence ids, and
histograms end-to-end latency.

Modules:
    protocol    - Link frames and the message envelope
    events      - Events raised by the transport
    histogram   - Logarithmic latency histogram
    latency     - Latency samples and running aggregates
    sequence    - Sequence gap/duplicate classification
    flow        - Credit replenishment policy
    session     - Per-link state
    formatting  - Table/CSV row output
    reporter    - Statistics snapshots and reports
    dispatcher  - Event loop
    transport   - WebSocket transport
    config      - Command-line configuration
"""

from .protocol import (
    FrameType,
    IdType,
    MessageRecord,
    Delivery,
    DecodeError,
    SequenceTypeError,
    current_time_ms,
)
from .events import Event, EventKind, Condition
from .histogram import Histogram
from .latency import LatencyRecorder, latency_sample
from .sequence import Ordering, Sequencing, SequenceTracker, classify
from .flow import FlowController
from .session import SessionState
from .reporter import Reporter, SampleTrace, StatsSnapshot
from .dispatcher import EventDispatcher
from .transport import WebSocketTransport
from .config import ConfigError, ReceiverConfig

__all__ = [
    "FrameType",
    "IdType",
    "MessageRecord",
    "Delivery",
    "DecodeError",
    "SequenceTypeError",
    "current_time_ms",
    "Event",
    "EventKind",
    "Condition",
    "Histogram",
    "LatencyRecorder",
    "latency_sample",
    "Ordering",
    "Sequencing",
    "SequenceTracker",
    "classify",
    "FlowController",
    "SessionState",
    "Reporter",
    "SampleTrace",
    "StatsSnapshot",
    "EventDispatcher",
    "WebSocketTransport",
    "ConfigError",
    "ReceiverConfig",
]
