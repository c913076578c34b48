"""
Flow Control
============

Credit replenishment policy: top the window back up once outstanding
credit falls below half of it.
"""

import logging
from typing import Callable

from .session import SessionState

logger = logging.getLogger(__name__)


class FlowController:
    """Computes how much credit to grant; granting is left to the caller.

    Args:
        window: Desired outstanding credit, > 0.
    """

    def __init__(self, window: int):
        if window <= 0:
            raise ValueError(f"credit window must be > 0, got {window}")
        self.window = window

    @staticmethod
    def on_credit_check(current: int, window: int) -> int:
        """Credit to grant given `current` outstanding credit, or 0."""
        # strictly below half the window; a window of 1 still refills
        if 2 * current < window:
            return window - current
        return 0

    def replenish(self, state: SessionState, grant: Callable[[int], bool]) -> int:
        """Grant credit for the session if it has dropped below half the window.

        `grant` returns False when the credit could not be issued (for example
        the link is already closed); outstanding credit is then left as is.

        Returns:
            The amount granted (0 if none).
        """
        amount = self.on_credit_check(state.outstanding_credit, self.window)
        if amount > 0:
            if not grant(amount):
                return 0
            state.outstanding_credit += amount
            logger.debug(f"Credit +{amount} (outstanding={state.outstanding_credit})")
        return amount
