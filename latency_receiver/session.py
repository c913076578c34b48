"""
Session State
=============

Per-link counters and credit bookkeeping, owned by the dispatcher.
"""

from dataclasses import dataclass
from typing import Optional

UNLIMITED = -1


@dataclass
class SessionState:
    """State of the single receiving link.

    Args:
        target_address:     Address the receiving link is bound to.
        credit_window:      Desired outstanding credit, > 0.
        message_limit:      Messages left before closing the link, -1 = unlimited.
        expected_sequence:  Next sequence id considered in order.
    """

    target_address: str
    credit_window: int
    message_limit: int = UNLIMITED
    expected_sequence: int = 0
    outstanding_credit: int = 0
    dropped_count: int = 0
    duplicate_count: int = 0
    received_count: int = 0
    start_time: Optional[int] = None  # ms, set when the link becomes active

    def __post_init__(self):
        if self.credit_window <= 0:
            raise ValueError(f"credit window must be > 0, got {self.credit_window}")
        if self.expected_sequence < 0:
            raise ValueError(f"expected sequence must be >= 0, got {self.expected_sequence}")

    @property
    def limited(self) -> bool:
        return self.message_limit > 0

    def consume_limit(self) -> bool:
        """Count one message against a finite limit.

        Returns:
            True when the limit has just been reached.
        """
        if self.message_limit > 0:
            self.message_limit -= 1
            return self.message_limit == 0
        return False

    def use_credit(self):
        """One delivery arrived, consuming one unit of credit."""
        if self.outstanding_credit > 0:
            self.outstanding_credit -= 1
