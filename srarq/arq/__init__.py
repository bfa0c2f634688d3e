"""
ARQ package - Selective Repeat ARQ protocol components.

Contains implementations for:
- Packet structure and checksum
- Sender with window management
- Receiver with out-of-order buffering
- Retransmission timer
"""

from .packet import Message, Packet, compute_checksum, is_corrupted
from .events import (
    Entity, NewMessage, PacketArrived, TimerFired,
    SubmitResult, AckResult, ReceiveResult,
    RetransmitPolicy, CorruptPacketPolicy
)
from .sender import SRSender
from .receiver import SRReceiver
from .timer import RetransmissionTimer, TimerState

__all__ = [
    'Message',
    'Packet',
    'compute_checksum',
    'is_corrupted',
    'Entity',
    'NewMessage',
    'PacketArrived',
    'TimerFired',
    'SubmitResult',
    'AckResult',
    'ReceiveResult',
    'RetransmitPolicy',
    'CorruptPacketPolicy',
    'SRSender',
    'SRReceiver',
    'RetransmissionTimer',
    'TimerState'
]
