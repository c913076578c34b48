"""
Link Protocol Module - Binary Frames for a Single Receiving Link
=================================================================

Binary encoding/decoding for the frames exchanged with the peer over
a WebSocket, plus the message envelope carried inside each transfer.

FRAME FORMATS (little-endian, first byte is always the frame type):

  ATTACH (client -> peer):
    [0]     uint8   frame_type (0x10)
    [1-4]   uint32  initial_credit
    [5-6]   uint16  target_len
    [7..]   utf-8   target address

  ATTACHED (peer -> client):  [0] uint8 frame_type (0x11)

  FLOW (client -> peer):
    [0]     uint8   frame_type (0x12)
    [1-4]   uint32  credit

  TRANSFER (peer -> client):
    [0]     uint8   frame_type (0x13)
    [1-8]   uint64  delivery_id
    [9]     uint8   settled (remote already settled)
    [10]    uint8   more (further frames follow for this delivery)
    [11..]  bytes   message fragment

  DISPOSITION (client -> peer):
    [0]     uint8   frame_type (0x14)
    [1-8]   uint64  delivery_id
    [9]     uint8   outcome
    [10]    uint8   settled

  DETACH (either direction):  [0] uint8 frame_type (0x15)

  FAULT (peer -> client):
    [0]     uint8   frame_type (0x16)
    [1-2]   uint16  name_len
    [3-4]   uint16  description_len
    [5..]   utf-8   name, then description

MESSAGE ENVELOPE (payload of a complete transfer, 17-byte header):
    [0]     uint8   sequence id type (must be ULONG)
    [1-8]   uint64  sequence id
    [9-16]  int64   creation_time, ms since epoch (0 = absent)
    [17..]  bytes   body (opaque)
"""

import struct
import time
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional


# =================
# CONSTANTS
# =================

class FrameType(IntEnum):
    """Frame type identifiers (first byte of every frame)."""
    ATTACH = 0x10
    ATTACHED = 0x11
    FLOW = 0x12
    TRANSFER = 0x13
    DISPOSITION = 0x14
    DETACH = 0x15
    FAULT = 0x16


class IdType(IntEnum):
    """Encodings a producer may use for the message sequence id."""
    NULL = 0x40
    UINT = 0x70
    ULONG = 0x80
    LONG = 0x81
    UUID = 0x98
    STRING = 0xA1


class Outcome(IntEnum):
    """Delivery outcome reported back to the peer."""
    NONE = 0x00
    ACCEPTED = 0x24


ATTACH_FORMAT = '<BIH'
ATTACH_SIZE = 7

FLOW_FORMAT = '<BI'
FLOW_SIZE = 5

TRANSFER_FORMAT = '<BQBB'
TRANSFER_HEADER_SIZE = 11

DISPOSITION_FORMAT = '<BQBB'
DISPOSITION_SIZE = 11

FAULT_FORMAT = '<BHH'
FAULT_HEADER_SIZE = 5

ENVELOPE_FORMAT = '<BQq'
ENVELOPE_SIZE = 17

MAX_SEQUENCE = (1 << 64) - 1


class DecodeError(ValueError):
    """A delivery could not be decoded into a message record."""


class SequenceTypeError(ValueError):
    """The sequence id was not encoded as an unsigned 64-bit integer."""


# ===================
# UTILITY FUNCTIONS
# ===================

def current_time_ms() -> int:
    """Current time in milliseconds since Unix epoch."""
    return int(time.time() * 1000)


def _check_type(data: bytes, expected: FrameType, minimum: int):
    if len(data) < minimum:
        raise DecodeError(f"Too short for {expected.name}: {len(data)} < {minimum} bytes")
    if data[0] != expected:
        raise DecodeError(f"Expected {expected.name} (0x{expected:02x}), got 0x{data[0]:02x}")


def frame_type(data: bytes) -> Optional[FrameType]:
    """Return the frame type of raw data, or None if unknown."""
    if not data:
        return None
    try:
        return FrameType(data[0])
    except ValueError:
        return None


# =================
# DATA CLASSES
# =================

@dataclass
class MessageRecord:
    """A decoded message: sequence id, producer creation time and body."""

    sequence_id: int
    creation_time: int = 0  # ms since epoch, 0 when absent
    body: bytes = b''

    def __str__(self) -> str:
        return f"Message#{self.sequence_id}[created={self.creation_time} body={len(self.body)}B]"


@dataclass
class Delivery:
    """One unit of transfer on the link, subject to acknowledgment and settlement."""

    delivery_id: int
    payload: bytes = b''
    settled: bool = False  # settled by the remote sender
    partial: bool = False
    outcome: Outcome = Outcome.NONE
    local_settled: bool = False

    @property
    def readable(self) -> bool:
        return len(self.payload) > 0


def encode_message(record: MessageRecord, id_type: IdType = IdType.ULONG) -> bytes:
    """Encode a message record into a transfer payload."""
    if not 0 <= record.sequence_id <= MAX_SEQUENCE:
        raise ValueError(f"Sequence id out of range: {record.sequence_id}")
    header = struct.pack(ENVELOPE_FORMAT, id_type, record.sequence_id, record.creation_time)
    return header + record.body


def decode_message(payload: bytes) -> MessageRecord:
    """Decode a complete transfer payload into a message record.

    Raises:
        DecodeError: payload is truncated or carries an unknown id type.
        SequenceTypeError: the sequence id is not a ULONG.
    """
    if len(payload) < ENVELOPE_SIZE:
        raise DecodeError(f"Too short: {len(payload)} < {ENVELOPE_SIZE} bytes")

    id_type, sequence_id, creation_time = struct.unpack(ENVELOPE_FORMAT, payload[:ENVELOPE_SIZE])
    try:
        id_type = IdType(id_type)
    except ValueError:
        raise DecodeError(f"Unknown sequence id type 0x{id_type:02x}") from None

    if id_type != IdType.ULONG:
        raise SequenceTypeError(f"Bad sequence type: expected ulong, got {id_type.name.lower()}")

    return MessageRecord(
        sequence_id=sequence_id,
        creation_time=max(creation_time, 0),
        body=payload[ENVELOPE_SIZE:],
    )


@dataclass
class Attach:
    """Request a receiving link bound to a target address."""
    target: str
    initial_credit: int

    def encode(self) -> bytes:
        target = self.target.encode('utf-8')
        return struct.pack(ATTACH_FORMAT, FrameType.ATTACH, self.initial_credit, len(target)) + target

    @classmethod
    def decode(cls, data: bytes) -> 'Attach':
        _check_type(data, FrameType.ATTACH, ATTACH_SIZE)
        _, credit, target_len = struct.unpack(ATTACH_FORMAT, data[:ATTACH_SIZE])
        target = data[ATTACH_SIZE:ATTACH_SIZE + target_len]
        if len(target) < target_len:
            raise DecodeError(f"Truncated target: {len(target)} < {target_len} bytes")
        return cls(target=target.decode('utf-8'), initial_credit=credit)


@dataclass
class Attached:
    """The peer has opened its end of the link."""

    def encode(self) -> bytes:
        return bytes([FrameType.ATTACHED])


@dataclass
class Flow:
    """Grant additional credit to the sender (5 bytes)."""
    credit: int

    def encode(self) -> bytes:
        return struct.pack(FLOW_FORMAT, FrameType.FLOW, self.credit)

    @classmethod
    def decode(cls, data: bytes) -> 'Flow':
        _check_type(data, FrameType.FLOW, FLOW_SIZE)
        return cls(credit=struct.unpack(FLOW_FORMAT, data[:FLOW_SIZE])[1])


@dataclass
class Transfer:
    """One frame of a delivery. `more` is set on all but the last frame."""
    delivery_id: int
    payload: bytes = b''
    settled: bool = False
    more: bool = False

    def encode(self) -> bytes:
        header = struct.pack(
            TRANSFER_FORMAT,
            FrameType.TRANSFER,
            self.delivery_id,
            int(self.settled),
            int(self.more),
        )
        return header + self.payload

    @classmethod
    def decode(cls, data: bytes) -> 'Transfer':
        _check_type(data, FrameType.TRANSFER, TRANSFER_HEADER_SIZE)
        _, delivery_id, settled, more = struct.unpack(TRANSFER_FORMAT, data[:TRANSFER_HEADER_SIZE])
        return cls(
            delivery_id=delivery_id,
            payload=data[TRANSFER_HEADER_SIZE:],
            settled=bool(settled),
            more=bool(more),
        )


@dataclass
class Disposition:
    """Report the outcome of a delivery, settled or not (11 bytes)."""
    delivery_id: int
    outcome: Outcome = Outcome.ACCEPTED
    settled: bool = True

    def encode(self) -> bytes:
        return struct.pack(
            DISPOSITION_FORMAT,
            FrameType.DISPOSITION,
            self.delivery_id,
            self.outcome,
            int(self.settled),
        )

    @classmethod
    def decode(cls, data: bytes) -> 'Disposition':
        _check_type(data, FrameType.DISPOSITION, DISPOSITION_SIZE)
        _, delivery_id, outcome, settled = struct.unpack(DISPOSITION_FORMAT, data[:DISPOSITION_SIZE])
        return cls(delivery_id=delivery_id, outcome=Outcome(outcome), settled=bool(settled))


@dataclass
class Detach:
    """Close the link."""

    def encode(self) -> bytes:
        return bytes([FrameType.DETACH])


@dataclass
class TransportFault:
    """Error condition reported by the peer. Either field may be empty."""
    name: str = ''
    description: str = ''

    def encode(self) -> bytes:
        name = self.name.encode('utf-8')
        desc = self.description.encode('utf-8')
        return struct.pack(FAULT_FORMAT, FrameType.FAULT, len(name), len(desc)) + name + desc

    @classmethod
    def decode(cls, data: bytes) -> 'TransportFault':
        _check_type(data, FrameType.FAULT, FAULT_HEADER_SIZE)
        _, name_len, desc_len = struct.unpack(FAULT_FORMAT, data[:FAULT_HEADER_SIZE])
        end = FAULT_HEADER_SIZE + name_len + desc_len
        if len(data) < end:
            raise DecodeError(f"Truncated fault: {len(data)} < {end} bytes")
        name = data[FAULT_HEADER_SIZE:FAULT_HEADER_SIZE + name_len].decode('utf-8', 'replace')
        desc = data[FAULT_HEADER_SIZE + name_len:end].decode('utf-8', 'replace')
        return cls(name=name, description=desc)
