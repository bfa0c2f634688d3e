"""
Packet Structure for Selective Repeat ARQ Protocol

This module defines the fixed-layout packet and message exchanged between
the two entities, together with the additive checksum used by both sides.
"""

import struct
from dataclasses import dataclass, replace

from config import NOT_IN_USE, PAYLOAD_SIZE


def _pad_payload(data: bytes) -> bytes:
    """Zero-pad data to the fixed payload size."""
    data = bytes(data)
    if len(data) > PAYLOAD_SIZE:
        raise ValueError(f"Payload too large (max {PAYLOAD_SIZE} bytes)")
    return data.ljust(PAYLOAD_SIZE, b'\x00')


@dataclass(frozen=True)
class Message:
    """
    Application layer unit, one per packet payload.

    Attributes:
        data: Exactly PAYLOAD_SIZE bytes
    """
    data: bytes

    def __post_init__(self):
        object.__setattr__(self, 'data', _pad_payload(self.data))


@dataclass
class Packet:
    """
    Wire packet.

    Layout (32 bytes, network byte order):
        - Sequence Number: 4 bytes (signed int)
        - ACK Number: 4 bytes (signed int)
        - Checksum: 4 bytes (signed int)
        - Payload: 20 bytes

    Attributes:
        seqnum: Sequence number, NOT_IN_USE on ACKs
        acknum: Acknowledgment number, NOT_IN_USE on data packets
        checksum: Additive checksum over the other fields
        payload: Raw payload bytes
    """

    seqnum: int
    acknum: int = NOT_IN_USE
    checksum: int = 0
    payload: bytes = bytes(PAYLOAD_SIZE)

    WIRE_FORMAT = '!iii%ds' % PAYLOAD_SIZE
    WIRE_SIZE = struct.calcsize(WIRE_FORMAT)

    def __post_init__(self):
        self.payload = _pad_payload(self.payload)

    @property
    def is_ack(self) -> bool:
        """An ACK carries no sequence number of its own."""
        return self.seqnum == NOT_IN_USE

    def copy(self) -> 'Packet':
        """Independent copy, safe to hand to a channel that may mutate it."""
        return replace(self)

    def serialize(self) -> bytes:
        """
        Serialize the packet to bytes.

        Returns:
            Serialized packet as bytes
        """
        return struct.pack(
            self.WIRE_FORMAT,
            self.seqnum,
            self.acknum,
            self.checksum,
            self.payload
        )

    @classmethod
    def deserialize(cls, data: bytes) -> 'Packet':
        """
        Deserialize bytes to a Packet object.

        The checksum is carried as-is; call is_corrupted() to verify it.

        Raises:
            ValueError: if data is not exactly WIRE_SIZE bytes
        """
        if len(data) != cls.WIRE_SIZE:
            raise ValueError(
                f"Expected {cls.WIRE_SIZE} bytes, got {len(data)}"
            )
        seqnum, acknum, checksum, payload = struct.unpack(cls.WIRE_FORMAT, data)
        return cls(seqnum=seqnum, acknum=acknum, checksum=checksum, payload=payload)

    @classmethod
    def create_data_packet(cls, seqnum: int, message: Message) -> 'Packet':
        """
        Create a checksummed DATA packet.

        Args:
            seqnum: Sequence number
            message: Message to carry

        Returns:
            DATA packet
        """
        packet = cls(seqnum=seqnum, acknum=NOT_IN_USE, payload=message.data)
        packet.checksum = compute_checksum(packet)
        return packet

    @classmethod
    def create_ack_packet(cls, acknum: int) -> 'Packet':
        """
        Create a checksummed ACK packet.

        Args:
            acknum: Sequence number being acknowledged

        Returns:
            ACK packet
        """
        packet = cls(seqnum=NOT_IN_USE, acknum=acknum)
        packet.checksum = compute_checksum(packet)
        return packet

    def __repr__(self) -> str:
        kind = "ACK" if self.is_ack else "DATA"
        return (f"Packet(type={kind}, seq={self.seqnum}, ack={self.acknum}, "
                f"checksum={self.checksum}, payload={self.payload!r})")


def compute_checksum(packet: Packet) -> int:
    """Sum of seqnum, acknum and every payload byte."""
    return packet.seqnum + packet.acknum + sum(packet.payload)


def is_corrupted(packet: Packet) -> bool:
    """True iff the stored checksum disagrees with the packet contents."""
    return packet.checksum != compute_checksum(packet)
