"""
Selective Repeat ARQ Receiver

This module implements the receiver side of the Selective Repeat ARQ protocol,
including the receive window, out-of-order buffering, and ACK generation.
"""

from typing import Optional, List
from dataclasses import dataclass, field

from config import WINDOW_SIZE, SEQ_SPACE, validate_protocol_parameters
from .packet import Message, Packet, is_corrupted
from .events import (
    Entity, Environment, Event, NewMessage, PacketArrived, TimerFired,
    ReceiveResult, CorruptPacketPolicy
)
from ..utils.logger import SimulationLogger, get_logger


@dataclass
class ReceiveSlot:
    """Arrived-but-undelivered packet."""
    packet: Optional[Packet] = None
    received: bool = False

    def clear(self):
        self.packet = None
        self.received = False


@dataclass
class ReceiveWindow:
    """
    Sliding window for the receiver.

    Attributes:
        size: Window size
        seq_space: Number of distinct sequence numbers
        expected: Lowest sequence number not yet delivered
    """
    size: int = WINDOW_SIZE
    seq_space: int = SEQ_SPACE
    expected: int = 0
    slots: List[ReceiveSlot] = field(init=False, repr=False)

    def __post_init__(self):
        self.slots = [ReceiveSlot() for _ in range(self.seq_space)]

    def offset(self, seq_num: int) -> int:
        """Distance of seq_num ahead of expected, modulo the sequence space."""
        return (seq_num - self.expected) % self.seq_space

    def in_window(self, seq_num: int) -> bool:
        """Check if sequence number is within the receive window."""
        return self.offset(seq_num) < self.size

    def slot(self, seq_num: int) -> ReceiveSlot:
        return self.slots[seq_num % self.seq_space]

    @property
    def last_delivered(self) -> int:
        return (self.expected - 1) % self.seq_space

    def buffered(self) -> List[int]:
        """Sequence numbers held out of order, closest first."""
        seqs = []
        for i in range(self.size):
            seq = (self.expected + i) % self.seq_space
            if self.slot(seq).received:
                seqs.append(seq)
        return seqs


class SRReceiver:
    """
    Selective Repeat ARQ Receiver (entity B).

    Implements the receiver side of SR-ARQ with:
    - Out-of-order packet buffering within the receive window
    - One selective ACK per correctly received packet
    - In-order delivery to the application layer

    Because seq_space >= 2 * window_size, a packet up to window_size - 1
    ahead of expected can never be confused with a retransmission of a
    packet that was already delivered.

    Attributes:
        window_size: Size of the receive window
        seq_space: Size of the sequence number space
        window: Receive window state
    """

    def __init__(
        self,
        env: Environment,
        window_size: int = WINDOW_SIZE,
        seq_space: int = SEQ_SPACE,
        corrupt_policy: CorruptPacketPolicy = CorruptPacketPolicy.REACK_LAST,
        logger: Optional[SimulationLogger] = None,
        entity: Entity = Entity.B
    ):
        """
        Initialize SR receiver.

        Args:
            env: Channel and application services
            window_size: Receive window size
            seq_space: Sequence number space, at least 2 * window_size
            corrupt_policy: Reply to corrupted packets
            logger: Logger (global logger if None)
            entity: Entity identifier used towards the environment

        Raises:
            ConfigurationError: if the parameters are inconsistent
        """
        validate_protocol_parameters(window_size, seq_space)

        self.env = env
        self.entity = entity
        self.window_size = window_size
        self.seq_space = seq_space
        self.corrupt_policy = corrupt_policy
        self.logger = logger or get_logger()

        self.window = ReceiveWindow(size=window_size, seq_space=seq_space)
        self._reset_statistics()

    def _reset_statistics(self):
        self.packets_received = 0
        self.duplicate_packets = 0
        self.corrupted_packets = 0
        self.out_of_order_packets = 0
        self.acks_sent = 0
        self.messages_delivered = 0

    def on_packet(self, packet: Packet) -> ReceiveResult:
        """
        Process a received data packet.

        Args:
            packet: Packet from the channel

        Returns:
            How the packet was classified
        """
        if is_corrupted(packet) or not 0 <= packet.seqnum < self.seq_space:
            self.corrupted_packets += 1
            self.logger.corrupted("packet")
            if self.corrupt_policy == CorruptPacketPolicy.REACK_LAST:
                self._emit_ack(self.window.last_delivered)
            return ReceiveResult.CORRUPTED

        seq = packet.seqnum
        slot = self.window.slot(seq)

        if self.window.in_window(seq) and not slot.received:
            slot.packet = packet
            slot.received = True
            self.packets_received += 1
            if seq != self.window.expected:
                self.out_of_order_packets += 1
            self.logger.packet_received(seq)
            result = ReceiveResult.BUFFERED
        else:
            # Already buffered, or behind the window and already delivered
            self.duplicate_packets += 1
            self.logger.debug(f"Duplicate packet {seq}, ACK again", "RX")
            result = ReceiveResult.DUPLICATE

        self._emit_ack(seq)
        self._deliver_in_order()
        return result

    def _deliver_in_order(self) -> int:
        """Deliver buffered packets that are now in order."""
        delivered = 0
        while self.window.slot(self.window.expected).received:
            slot = self.window.slot(self.window.expected)
            self.env.deliver_to_application(self.entity, slot.packet.payload)
            self.logger.delivered(self.window.expected)
            slot.clear()
            self.window.expected = (self.window.expected + 1) % self.seq_space
            self.messages_delivered += 1
            delivered += 1
        return delivered

    def _emit_ack(self, acknum: int) -> Packet:
        """
        Send an ACK packet for acknum.

        Args:
            acknum: Sequence number to acknowledge

        Returns:
            ACK packet
        """
        ack = Packet.create_ack_packet(acknum)
        self.env.channel_send(self.entity, ack)
        self.acks_sent += 1
        self.logger.ack_sent(acknum)
        return ack

    # Entry points called by the driver
    def on_message_submit(self, message: Message):
        """Unused: B never originates data."""
        self.logger.debug("Receiver ignores message from layer 5", "RX")

    def on_packet_arrive(self, packet: Packet) -> ReceiveResult:
        return self.on_packet(packet)

    def on_timer_expire(self):
        """Unused: B runs no timer."""
        self.logger.debug("Receiver ignores timer interrupt", "RX")

    def handle(self, event: Event):
        """Dispatch a single event to its handler."""
        if isinstance(event, NewMessage):
            return self.on_message_submit(event.message)
        if isinstance(event, PacketArrived):
            return self.on_packet_arrive(event.packet)
        if isinstance(event, TimerFired):
            return self.on_timer_expire()
        raise TypeError(f"Unknown event: {event!r}")

    def get_window_state(self) -> dict:
        """Get current window state."""
        return {
            'expected': self.window.expected,
            'size': self.window.size,
            'buffered': self.window.buffered()
        }

    def get_statistics(self) -> dict:
        """Get receiver statistics."""
        return {
            'packets_received': self.packets_received,
            'duplicate_packets': self.duplicate_packets,
            'corrupted_packets': self.corrupted_packets,
            'out_of_order_packets': self.out_of_order_packets,
            'acks_sent': self.acks_sent,
            'messages_delivered': self.messages_delivered
        }

    def reset(self):
        """Reset receiver to initial state."""
        self.window = ReceiveWindow(size=self.window_size, seq_space=self.seq_space)
        self._reset_statistics()
