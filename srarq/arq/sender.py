"""
Selective Repeat ARQ Sender

This module implements the sender side of the Selective Repeat ARQ protocol,
including sliding window management, packet buffering, and retransmission.
"""

from typing import Optional, List
from dataclasses import dataclass, field

from config import WINDOW_SIZE, SEQ_SPACE, RTT, validate_protocol_parameters
from .packet import Message, Packet, is_corrupted
from .timer import RetransmissionTimer
from .events import (
    Entity, Environment, Event, NewMessage, PacketArrived, TimerFired,
    SubmitResult, AckResult, RetransmitPolicy
)
from ..utils.logger import SimulationLogger, get_logger


@dataclass
class SendSlot:
    """Buffered packet and its acknowledgment state."""
    packet: Optional[Packet] = None
    sent: bool = False
    acked: bool = False

    @property
    def outstanding(self) -> bool:
        return self.sent and not self.acked

    def clear(self):
        self.packet = None
        self.sent = False
        self.acked = False


@dataclass
class SendWindow:
    """
    Sliding window for the sender.

    Slots are indexed by sequence number modulo seq_space. A slot is claimed
    when its packet is sent and released only when the window slides past it.

    Attributes:
        size: Window size
        seq_space: Number of distinct sequence numbers
        base: Oldest claimed sequence number
        next_seq: Next sequence number to use
    """
    size: int = WINDOW_SIZE
    seq_space: int = SEQ_SPACE
    base: int = 0
    next_seq: int = 0
    slots: List[SendSlot] = field(init=False, repr=False)

    def __post_init__(self):
        self.slots = [SendSlot() for _ in range(self.seq_space)]

    @property
    def occupancy(self) -> int:
        """Number of claimed slots between base and next_seq."""
        return (self.next_seq - self.base) % self.seq_space

    @property
    def available_slots(self) -> int:
        """Number of available slots in the window."""
        return self.size - self.occupancy

    @property
    def is_full(self) -> bool:
        """Check if window is full."""
        return self.available_slots <= 0

    def offset(self, seq_num: int) -> int:
        """Distance of seq_num ahead of base, modulo the sequence space."""
        return (seq_num - self.base) % self.seq_space

    def in_window(self, seq_num: int) -> bool:
        """Check if sequence number belongs to a claimed slot."""
        if not 0 <= seq_num < self.seq_space:
            return False
        return self.offset(seq_num) < self.occupancy

    def slot(self, seq_num: int) -> SendSlot:
        return self.slots[seq_num % self.seq_space]

    def claim(self, packet: Packet) -> int:
        """Store a packet in the slot for next_seq and advance next_seq."""
        seq = self.next_seq
        slot = self.slot(seq)
        slot.packet = packet
        slot.sent = True
        slot.acked = False
        self.next_seq = (self.next_seq + 1) % self.seq_space
        return seq

    def slide(self) -> int:
        """
        Release acknowledged slots at the front of the window.

        Returns:
            Number of positions the base advanced
        """
        advanced = 0
        while self.occupancy > 0 and self.slot(self.base).acked:
            self.slot(self.base).clear()
            self.base = (self.base + 1) % self.seq_space
            advanced += 1
        return advanced

    def outstanding(self) -> List[int]:
        """Sequence numbers sent but not yet acknowledged, oldest first."""
        seqs = []
        for i in range(self.occupancy):
            seq = (self.base + i) % self.seq_space
            if self.slot(seq).outstanding:
                seqs.append(seq)
        return seqs


class SRSender:
    """
    Selective Repeat ARQ Sender (entity A).

    Implements the sender side of SR-ARQ with:
    - Sliding window management
    - Selective (per-packet) acknowledgments
    - A single retransmission timer covering all outstanding packets
    - Packet buffering for retransmission

    Attributes:
        window_size: Size of the send window
        seq_space: Size of the sequence number space
        window: Send window state
        timer: Retransmission timer controller
    """

    def __init__(
        self,
        env: Environment,
        window_size: int = WINDOW_SIZE,
        seq_space: int = SEQ_SPACE,
        timeout: float = RTT,
        retransmit_policy: RetransmitPolicy = RetransmitPolicy.ALL_OUTSTANDING,
        logger: Optional[SimulationLogger] = None,
        entity: Entity = Entity.A
    ):
        """
        Initialize SR sender.

        Args:
            env: Channel, timer and application services
            window_size: Send window size
            seq_space: Sequence number space, at least 2 * window_size
            timeout: Retransmission timeout
            retransmit_policy: Which packets a timeout resends
            logger: Logger (global logger if None)
            entity: Entity identifier used towards the environment

        Raises:
            ConfigurationError: if the parameters are inconsistent
        """
        validate_protocol_parameters(window_size, seq_space, timeout)

        self.env = env
        self.entity = entity
        self.window_size = window_size
        self.seq_space = seq_space
        self.retransmit_policy = retransmit_policy
        self.logger = logger or get_logger()

        self.window = SendWindow(size=window_size, seq_space=seq_space)
        self.timer = RetransmissionTimer(entity, timeout, env)

        self._reset_statistics()

    def _reset_statistics(self):
        self.messages_submitted = 0
        self.window_full_drops = 0
        self.packets_sent = 0
        self.retransmissions = 0
        self.acks_received = 0
        self.new_acks = 0
        self.duplicate_acks = 0
        self.stale_acks = 0
        self.corrupted_acks = 0

    @property
    def outstanding_count(self) -> int:
        """Number of sent-but-unacknowledged packets."""
        return len(self.window.outstanding())

    def submit(self, message: Message) -> SubmitResult:
        """
        Send a new message if the window has room.

        Args:
            message: Message from the application layer

        Returns:
            SENT, or WINDOW_FULL when the message was dropped
        """
        self.messages_submitted += 1

        if self.window.is_full:
            self.window_full_drops += 1
            self.logger.window_full()
            return SubmitResult.WINDOW_FULL

        packet = Packet.create_data_packet(self.window.next_seq, message)
        first_outstanding = self.outstanding_count == 0
        self.window.claim(packet)

        self.logger.packet_sent(packet.seqnum)
        self.env.channel_send(self.entity, packet.copy())
        self.packets_sent += 1

        if first_outstanding:
            self.timer.start()

        self.logger.window_update(self.window.base, self.window.next_seq, self.window_size)
        return SubmitResult.SENT

    def on_ack(self, packet: Packet) -> AckResult:
        """
        Process received ACK.

        Args:
            packet: ACK packet from the channel

        Returns:
            How the ACK was classified
        """
        if is_corrupted(packet):
            self.corrupted_acks += 1
            self.logger.corrupted("ACK")
            return AckResult.CORRUPTED

        self.acks_received += 1
        acknum = packet.acknum

        # Very late ACKs fall outside the claimed window
        if not self.window.in_window(acknum):
            self.stale_acks += 1
            self.logger.debug(f"ACK {acknum} outside window, ignored", "ACK")
            return AckResult.OUT_OF_WINDOW

        slot = self.window.slot(acknum)
        if slot.acked:
            self.duplicate_acks += 1
            self.logger.ack_received(acknum, new=False)
            return AckResult.DUPLICATE

        slot.acked = True
        self.new_acks += 1
        self.logger.ack_received(acknum, new=True)

        self.window.slide()
        self.logger.window_update(self.window.base, self.window.next_seq, self.window_size)

        self.timer.stop()
        if self.outstanding_count > 0:
            self.timer.start()

        return AckResult.ACCEPTED

    def on_timeout(self) -> List[Packet]:
        """
        Resend outstanding packets after the timer expired.

        Returns:
            Packets handed back to the channel
        """
        self.timer.expire()

        outstanding = self.window.outstanding()
        if not outstanding:
            return []

        self.logger.timeout()

        if self.retransmit_policy == RetransmitPolicy.OLDEST_ONLY:
            outstanding = outstanding[:1]

        resent = []
        for seq in outstanding:
            packet = self.window.slot(seq).packet
            self.logger.retransmit(seq)
            self.env.channel_send(self.entity, packet.copy())
            self.retransmissions += 1
            resent.append(packet)

        self.timer.start()
        return resent

    # Entry points called by the driver
    def on_message_submit(self, message: Message) -> SubmitResult:
        return self.submit(message)

    def on_packet_arrive(self, packet: Packet) -> AckResult:
        return self.on_ack(packet)

    def on_timer_expire(self) -> List[Packet]:
        return self.on_timeout()

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
            'base': self.window.base,
            'next_seq': self.window.next_seq,
            'size': self.window.size,
            'occupancy': self.window.occupancy,
            'outstanding': self.window.outstanding()
        }

    def get_statistics(self) -> dict:
        """Get sender statistics."""
        return {
            'messages_submitted': self.messages_submitted,
            'window_full_drops': self.window_full_drops,
            'packets_sent': self.packets_sent,
            'retransmissions': self.retransmissions,
            'acks_received': self.acks_received,
            'new_acks': self.new_acks,
            'duplicate_acks': self.duplicate_acks,
            'stale_acks': self.stale_acks,
            'corrupted_acks': self.corrupted_acks,
            **self.timer.get_statistics()
        }

    def reset(self):
        """Reset sender to initial state, disarming a running timer."""
        self.window = SendWindow(size=self.window_size, seq_space=self.seq_space)
        self.timer.stop()
        self.timer.reset()
        self._reset_statistics()
