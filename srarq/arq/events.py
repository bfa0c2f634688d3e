"""
Events and outcomes for the ARQ entities.

Each entity consumes one event at a time and runs it to completion. The
collaborators it calls back into (channel, timer, application) are reached
through an Environment.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Protocol, Union

from .packet import Message, Packet


class Entity(Enum):
    """Protocol endpoint."""
    A = 0  # sender
    B = 1  # receiver


@dataclass(frozen=True)
class NewMessage:
    """The application handed down a message."""
    message: Message


@dataclass(frozen=True)
class PacketArrived:
    """The channel delivered a packet."""
    packet: Packet


@dataclass(frozen=True)
class TimerFired:
    """The entity's retransmission timer expired."""


Event = Union[NewMessage, PacketArrived, TimerFired]


class SubmitResult(Enum):
    """Outcome of handing a message to the sender."""
    SENT = 0
    WINDOW_FULL = 1


class AckResult(Enum):
    """Outcome of an ACK arriving at the sender."""
    ACCEPTED = 0
    CORRUPTED = 1
    DUPLICATE = 2
    OUT_OF_WINDOW = 3


class ReceiveResult(Enum):
    """Outcome of a data packet arriving at the receiver."""
    BUFFERED = 0
    DUPLICATE = 1
    CORRUPTED = 2


class RetransmitPolicy(Enum):
    """Which outstanding packets a timeout resends."""
    ALL_OUTSTANDING = "all"
    OLDEST_ONLY = "oldest"


class CorruptPacketPolicy(Enum):
    """What the receiver answers to a corrupted data packet."""
    REACK_LAST = "reack"
    DROP = "drop"


class Environment(Protocol):
    """Services an entity needs from whatever drives it."""

    def channel_send(self, entity: Entity, packet: Packet) -> None:
        ...

    def start_timer(self, entity: Entity, duration: float) -> None:
        ...

    def stop_timer(self, entity: Entity) -> None:
        ...

    def deliver_to_application(self, entity: Entity, payload: bytes) -> None:
        ...
