"""
Metrics Collection and Calculation

This module provides utilities for calculating and tracking
performance metrics including delivery ratio, retransmission
overhead, and message latency.
"""

from typing import List, Optional, Dict
import statistics

from config import PAYLOAD_SIZE
from ..arq.packet import Packet


class MetricsCollector:
    """
    Collects and calculates performance metrics for the simulation.

    Primary metric: Efficiency = Delivered Payload Bytes / Total Bytes On The Wire

    Attributes:
        start_time: Simulation start time
        end_time: Simulation end time
        packet_size: Wire size of every packet
    """

    def __init__(self, packet_size: int = Packet.WIRE_SIZE, payload_size: Optional[int] = None):
        """
        Initialize metrics collector.

        Args:
            packet_size: Wire size of a packet in bytes
            payload_size: Payload bytes per message (defaults to the packet payload)
        """
        self.packet_size = packet_size
        self.payload_size = payload_size or PAYLOAD_SIZE

        # Time tracking
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

        # Message counters
        self.messages_generated = 0
        self.messages_accepted = 0
        self.messages_delivered = 0

        # Packet counters
        self.data_packets_sent = 0
        self.ack_packets_sent = 0
        self.retransmissions = 0

        # Error tracking
        self.packets_lost = 0
        self.packets_corrupted = 0

        # Message latency (accepted -> delivered)
        self.latency_samples: List[float] = []

        # Window occupancy tracking
        self.window_occupancy_samples: List[float] = []

    def start(self, time: float):
        """Mark simulation start."""
        self.start_time = time

    def finish(self, time: float):
        """Mark simulation end."""
        self.end_time = time

    def record_message(self, accepted: bool):
        """Record a message handed down by the application."""
        self.messages_generated += 1
        if accepted:
            self.messages_accepted += 1

    def record_delivery(self, latency: Optional[float] = None):
        """Record an in-order delivery to the application."""
        self.messages_delivered += 1
        if latency is not None:
            self.latency_samples.append(latency)

    def record_data_sent(self):
        """Record a data packet handed to the channel."""
        self.data_packets_sent += 1

    def record_retransmission(self, count: int = 1):
        """Record packets resent after a timeout."""
        self.retransmissions += count

    def record_ack_sent(self):
        """Record an ACK packet handed to the channel."""
        self.ack_packets_sent += 1

    def record_lost(self):
        """Record a packet lost by the channel."""
        self.packets_lost += 1

    def record_corrupted(self):
        """Record a packet corrupted by the channel."""
        self.packets_corrupted += 1

    def record_window_occupancy(self, used_slots: int, total_slots: int):
        """
        Record window occupancy.

        Args:
            used_slots: Number of outstanding packets
            total_slots: Total window size
        """
        if total_slots > 0:
            self.window_occupancy_samples.append(used_slots / total_slots)

    @property
    def total_time(self) -> float:
        if self.start_time is None or self.end_time is None:
            return 0.0
        return self.end_time - self.start_time

    @property
    def total_bytes_transmitted(self) -> int:
        return (self.data_packets_sent + self.ack_packets_sent) * self.packet_size

    def calculate_throughput(self) -> float:
        """Delivered messages per unit of simulation time."""
        if self.total_time <= 0:
            return 0.0
        return self.messages_delivered / self.total_time

    def calculate_efficiency(self) -> float:
        """
        Calculate transmission efficiency.

        Efficiency = Payload Bytes Delivered / Total Bytes Transmitted

        Returns:
            Efficiency ratio (0-1)
        """
        if self.total_bytes_transmitted <= 0:
            return 0.0
        return self.messages_delivered * self.payload_size / self.total_bytes_transmitted

    def calculate_delivery_ratio(self) -> float:
        """Delivered / accepted messages."""
        if self.messages_accepted <= 0:
            return 0.0
        return self.messages_delivered / self.messages_accepted

    def calculate_retransmission_rate(self) -> float:
        """Retransmissions per delivered message."""
        if self.messages_delivered <= 0:
            return 0.0
        return self.retransmissions / self.messages_delivered

    def get_latency_statistics(self) -> Dict[str, float]:
        """
        Get message latency statistics.

        Returns:
            Dictionary with min, max, mean, median, stdev latency
        """
        if not self.latency_samples:
            return {
                'min': 0, 'max': 0, 'mean': 0,
                'median': 0, 'stdev': 0, 'samples': 0
            }

        return {
            'min': min(self.latency_samples),
            'max': max(self.latency_samples),
            'mean': statistics.mean(self.latency_samples),
            'median': statistics.median(self.latency_samples),
            'stdev': statistics.stdev(self.latency_samples) if len(self.latency_samples) > 1 else 0,
            'samples': len(self.latency_samples)
        }

    def get_window_occupancy_stats(self) -> Dict[str, float]:
        """Get window occupancy statistics."""
        if not self.window_occupancy_samples:
            return {'mean': 0, 'max': 0, 'min': 0}

        return {
            'mean': statistics.mean(self.window_occupancy_samples),
            'max': max(self.window_occupancy_samples),
            'min': min(self.window_occupancy_samples)
        }

    def get_summary(self) -> Dict:
        """
        Get comprehensive metrics summary.

        Returns:
            Dictionary with all metrics
        """
        return {
            'total_time': self.total_time,

            'messages_generated': self.messages_generated,
            'messages_accepted': self.messages_accepted,
            'messages_delivered': self.messages_delivered,
            'delivery_ratio': self.calculate_delivery_ratio(),

            'data_packets_sent': self.data_packets_sent,
            'ack_packets_sent': self.ack_packets_sent,
            'retransmissions': self.retransmissions,
            'retransmission_rate': self.calculate_retransmission_rate(),

            'packets_lost': self.packets_lost,
            'packets_corrupted': self.packets_corrupted,

            'throughput': self.calculate_throughput(),
            'efficiency': self.calculate_efficiency(),
            'total_bytes_transmitted': self.total_bytes_transmitted,

            'latency': self.get_latency_statistics(),
            'window_occupancy': self.get_window_occupancy_stats()
        }

    def reset(self):
        """Reset all metrics."""
        self.start_time = None
        self.end_time = None
        self.messages_generated = 0
        self.messages_accepted = 0
        self.messages_delivered = 0
        self.data_packets_sent = 0
        self.ack_packets_sent = 0
        self.retransmissions = 0
        self.packets_lost = 0
        self.packets_corrupted = 0
        self.latency_samples.clear()
        self.window_occupancy_samples.clear()
