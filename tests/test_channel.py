"""
Unit tests for the unreliable channel model.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import CORRUPTION_MARKER, ConfigurationError
from srarq.arq.events import Entity
from srarq.arq.packet import Packet, Message, is_corrupted
from srarq.channel.unreliable import UnreliableChannel


def packet(seq=0):
    return Packet.create_data_packet(seq, Message(b"abcdefghij"))


class TestUnreliableChannel:
    """Tests for UnreliableChannel."""

    def test_perfect_channel(self):
        """Test a channel without impairments delivers intact copies."""
        channel = UnreliableChannel(seed=42)
        original = packet(3)

        result = channel.transmit(original, now=0.0, source=Entity.A)

        assert result.delivered
        assert result.packet == original
        assert result.packet is not original
        assert 1.0 <= result.arrival_time <= 10.0
        assert not result.corrupted
        assert not result.reordered

    def test_total_loss(self):
        """Test loss probability 1 drops every packet."""
        channel = UnreliableChannel(loss_prob=1.0, seed=42)

        results = [channel.transmit(packet(i), now=float(i), source=Entity.A)
                   for i in range(50)]

        assert all(r.lost and not r.delivered for r in results)
        assert channel.get_statistics()['packets_lost'] == 50

    def test_corruption_is_detected(self):
        """Test every corrupted copy fails the checksum."""
        channel = UnreliableChannel(corrupt_prob=1.0, seed=42)

        for i in range(200):
            result = channel.transmit(packet(i % 12), now=float(i), source=Entity.A)
            assert result.corrupted
            assert is_corrupted(result.packet)

        assert channel.get_statistics()['packets_corrupted'] == 200

    def test_corruption_leaves_original_intact(self):
        """Test the sender's buffered packet is never modified."""
        channel = UnreliableChannel(corrupt_prob=1.0, seed=7)
        original = packet(5)
        snapshot = original.copy()

        for i in range(20):
            channel.transmit(original, now=float(i), source=Entity.A)

        assert original == snapshot
        assert not is_corrupted(original)

    def test_corruption_kinds(self):
        """Test payload corruption dominates the header corruptions."""
        channel = UnreliableChannel(corrupt_prob=1.0, seed=1)
        kinds = {'payload': 0, 'seqnum': 0, 'acknum': 0}

        for i in range(2000):
            copy = channel.transmit(packet(1), now=float(i), source=Entity.A).packet
            if copy.seqnum == CORRUPTION_MARKER:
                kinds['seqnum'] += 1
            elif copy.acknum == CORRUPTION_MARKER:
                kinds['acknum'] += 1
            else:
                assert copy.payload[0] == ord('Z')
                kinds['payload'] += 1

        assert 0.70 < kinds['payload'] / 2000 < 0.80
        assert kinds['seqnum'] > 0
        assert kinds['acknum'] > 0

    def test_fifo_per_direction(self):
        """Test packets in one direction arrive in the order sent."""
        channel = UnreliableChannel(seed=42)

        arrivals = [channel.transmit(packet(i), now=0.5 * i, source=Entity.A).arrival_time
                    for i in range(100)]

        assert arrivals == sorted(arrivals)

    def test_directions_are_independent(self):
        """Test a backlog in one direction doesn't delay the other."""
        channel = UnreliableChannel(min_delay=5.0, max_delay=5.0, seed=42)
        for _ in range(10):
            channel.transmit(packet(), now=0.0, source=Entity.A)

        result = channel.transmit(Packet.create_ack_packet(0), now=0.0, source=Entity.B)

        assert result.arrival_time == 5.0

    def test_reordering(self):
        """Test reordered packets bypass the FIFO floor."""
        channel = UnreliableChannel(reorder_prob=1.0, min_delay=1.0, max_delay=2.0, seed=42)

        results = [channel.transmit(packet(i), now=0.0, source=Entity.A)
                   for i in range(50)]

        assert all(r.reordered for r in results)
        assert all(2.0 <= r.arrival_time <= 4.0 for r in results)
        arrivals = [r.arrival_time for r in results]
        assert arrivals != sorted(arrivals)
        assert channel.get_statistics()['packets_reordered'] == 50

    @pytest.mark.parametrize("kwargs", [
        {'loss_prob': -0.1},
        {'corrupt_prob': 1.5},
        {'reorder_prob': 2.0},
        {'min_delay': 5.0, 'max_delay': 1.0},
        {'min_delay': -1.0},
    ])
    def test_invalid_parameters(self, kwargs):
        """Test invalid probabilities and delays are rejected."""
        with pytest.raises(ConfigurationError):
            UnreliableChannel(**kwargs)

    def test_reproducibility(self):
        """Test the same seed yields the same behaviour after reset."""
        channel = UnreliableChannel(loss_prob=0.3, corrupt_prob=0.3, seed=99)

        def run():
            return [(r.lost, r.corrupted, r.arrival_time)
                    for r in (channel.transmit(packet(i % 12), float(i), Entity.A)
                              for i in range(100))]

        first = run()
        channel.reset(seed=99)
        second = run()

        assert first == second
        assert channel.get_statistics()['packets_offered'] == 100
