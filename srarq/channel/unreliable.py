"""
Unreliable Channel Model

This module implements the network layer between the two entities. Each
packet handed to the channel may be lost, corrupted, delayed, or reordered
before it reaches the other side.
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional, Dict

from config import (
    DEFAULT_LOSS_PROB, DEFAULT_CORRUPT_PROB, DEFAULT_REORDER_PROB,
    CHANNEL_MIN_DELAY, CHANNEL_MAX_DELAY, CORRUPTION_MARKER,
    ConfigurationError
)
from ..arq.events import Entity
from ..arq.packet import Packet


@dataclass
class TransmitResult:
    """What the channel did with one packet."""
    packet: Optional[Packet]
    arrival_time: Optional[float]
    lost: bool = False
    corrupted: bool = False
    reordered: bool = False

    @property
    def delivered(self) -> bool:
        return self.packet is not None


class UnreliableChannel:
    """
    Lossy, corrupting channel between entity A and entity B.

    Packets in one direction arrive in the order they were sent, unless the
    channel decides to reorder one: a reordered packet skips the FIFO floor
    and picks up extra delay, so it may overtake or be overtaken.

    Corruption overwrites part of a copy of the packet, never the sender's
    buffered original:
        - 75%: first payload byte becomes 'Z'
        - 12.5%: seqnum becomes CORRUPTION_MARKER
        - 12.5%: acknum becomes CORRUPTION_MARKER

    Attributes:
        loss_prob: Probability a packet is lost
        corrupt_prob: Probability a surviving packet is corrupted
        reorder_prob: Probability a surviving packet is reordered
        rng: Random number generator
    """

    def __init__(
        self,
        loss_prob: float = DEFAULT_LOSS_PROB,
        corrupt_prob: float = DEFAULT_CORRUPT_PROB,
        reorder_prob: float = DEFAULT_REORDER_PROB,
        min_delay: float = CHANNEL_MIN_DELAY,
        max_delay: float = CHANNEL_MAX_DELAY,
        seed: Optional[int] = None
    ):
        """
        Initialize the channel.

        Args:
            loss_prob: Probability a packet is lost
            corrupt_prob: Probability a packet is corrupted
            reorder_prob: Probability a packet is reordered
            min_delay: Minimum one-way delay
            max_delay: Maximum one-way delay
            seed: Random seed for reproducibility
        """
        for name, prob in (('loss', loss_prob), ('corrupt', corrupt_prob),
                           ('reorder', reorder_prob)):
            if not 0.0 <= prob <= 1.0:
                raise ConfigurationError(f"{name} probability must be in [0, 1], got {prob}")
        if not 0 <= min_delay <= max_delay:
            raise ConfigurationError("Delays must satisfy 0 <= min_delay <= max_delay")

        self.loss_prob = loss_prob
        self.corrupt_prob = corrupt_prob
        self.reorder_prob = reorder_prob
        self.min_delay = min_delay
        self.max_delay = max_delay

        self.rng = np.random.default_rng(seed)

        # Last scheduled arrival per sending entity
        self.last_arrival: Dict[Entity, float] = {Entity.A: 0.0, Entity.B: 0.0}

        # Statistics tracking
        self.packets_offered = 0
        self.packets_lost = 0
        self.packets_corrupted = 0
        self.packets_reordered = 0

    def _sample_delay(self) -> float:
        return float(self.rng.uniform(self.min_delay, self.max_delay))

    def _corrupt(self, packet: Packet):
        """Overwrite part of the packet in place."""
        x = self.rng.random()
        if x < 0.75:
            payload = bytearray(packet.payload)
            payload[0] = ord('Z')
            packet.payload = bytes(payload)
        elif x < 0.875:
            packet.seqnum = CORRUPTION_MARKER
        else:
            packet.acknum = CORRUPTION_MARKER

    def transmit(self, packet: Packet, now: float, source: Entity) -> TransmitResult:
        """
        Push one packet through the channel.

        Args:
            packet: Packet handed down by an entity
            now: Current simulation time
            source: Entity sending the packet

        Returns:
            TransmitResult with the (possibly corrupted) copy and its arrival
            time, or no packet if it was lost
        """
        self.packets_offered += 1

        if self.rng.random() < self.loss_prob:
            self.packets_lost += 1
            return TransmitResult(packet=None, arrival_time=None, lost=True)

        copy = packet.copy()

        corrupted = False
        if self.rng.random() < self.corrupt_prob:
            self._corrupt(copy)
            self.packets_corrupted += 1
            corrupted = True

        reordered = False
        if self.rng.random() < self.reorder_prob:
            arrival = now + self._sample_delay() + self._sample_delay()
            self.packets_reordered += 1
            reordered = True
        else:
            arrival = max(self.last_arrival[source], now) + self._sample_delay()
            self.last_arrival[source] = arrival

        return TransmitResult(
            packet=copy,
            arrival_time=arrival,
            corrupted=corrupted,
            reordered=reordered
        )

    def get_statistics(self) -> dict:
        """Get channel statistics."""
        return {
            'packets_offered': self.packets_offered,
            'packets_lost': self.packets_lost,
            'packets_corrupted': self.packets_corrupted,
            'packets_reordered': self.packets_reordered
        }

    def reset(self, seed: Optional[int] = None):
        """Reset channel state and statistics."""
        self.rng = np.random.default_rng(seed)
        self.last_arrival = {Entity.A: 0.0, Entity.B: 0.0}
        self.packets_offered = 0
        self.packets_lost = 0
        self.packets_corrupted = 0
        self.packets_reordered = 0
