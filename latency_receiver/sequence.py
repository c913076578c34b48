"""
Sequence Tracking
=================

Classifies each arriving sequence id against the next expected one.

Sequence ids are assumed to come from a single producer that assigns them
monotonically. Any id below the expected one is treated as a retransmit,
not as reordering between producers.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from .protocol import MAX_SEQUENCE
from .session import SessionState

logger = logging.getLogger(__name__)


class Ordering(Enum):
    IN_ORDER = "in_order"
    GAP = "gap"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class Sequencing:
    """Result of classifying one sequence id. `gap` is non-zero only for GAP."""
    ordering: Ordering
    gap: int = 0


def _check_range(value: int, name: str):
    if not 0 <= value <= MAX_SEQUENCE:
        raise ValueError(f"{name} is not an unsigned 64-bit value: {value}")


def classify(sequence_id: int, expected: int) -> Sequencing:
    _check_range(sequence_id, "sequence id")
    _check_range(expected, "expected sequence")
    if sequence_id == expected:
        return Sequencing(Ordering.IN_ORDER)
    if sequence_id > expected:
        return Sequencing(Ordering.GAP, sequence_id - expected)
    return Sequencing(Ordering.DUPLICATE)


class SequenceTracker:
    """Applies sequence classification to the session counters."""

    def observe(self, state: SessionState, sequence_id: int) -> Sequencing:
        result = classify(sequence_id, state.expected_sequence)

        if result.ordering is Ordering.IN_ORDER:
            state.expected_sequence = sequence_id + 1
            return result

        logger.debug(
            f"Sequence mismatch! Expected {state.expected_sequence}, got {sequence_id}"
        )
        if result.ordering is Ordering.GAP:
            state.dropped_count += result.gap
            state.expected_sequence = sequence_id + 1
        else:
            # older id, likely a retransmit; expected stays put to catch up
            state.duplicate_count += 1
        return result
