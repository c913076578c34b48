"""
Link Events
===========

Events raised by the transport collaborator and consumed by the dispatcher.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from .protocol import Delivery


class EventKind(IntEnum):
    CONNECTION_INIT = 1         # transport ready, link can be requested
    CONNECTION_REMOTE_OPEN = 2
    SESSION_REMOTE_OPEN = 3
    LINK_REMOTE_OPEN = 4        # link active
    LINK_FLOW = 5
    LINK_REMOTE_CLOSE = 6       # peer closed the link
    DELIVERY = 7
    TRANSPORT_ERROR = 8
    TIMER = 9                   # poll timed out with nothing to do
    CONNECTION_FINAL = 10       # no further events will be raised


@dataclass
class Condition:
    """Error condition attached to a transport failure."""
    name: Optional[str] = None
    description: Optional[str] = None


@dataclass
class Event:
    kind: EventKind
    delivery: Optional[Delivery] = None
    condition: Optional[Condition] = None

    def __str__(self) -> str:
        if self.delivery is not None:
            return f"{self.kind.name}(delivery={self.delivery.delivery_id})"
        return self.kind.name
