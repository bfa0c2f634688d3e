"""
Shared fixtures for the ARQ tests.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from srarq.arq.events import Entity, TimerFired
from srarq.arq.packet import Message
from srarq.arq.sender import SRSender
from srarq.arq.receiver import SRReceiver
from srarq.utils.logger import SimulationLogger, LogLevel


class FakeEnvironment:
    """Records every call an entity makes to its collaborators."""

    def __init__(self):
        self.sent = []
        self.delivered = []
        self.timer_running = {Entity.A: False, Entity.B: False}
        self.timer_starts = 0
        self.timer_stops = 0
        self.start_while_running = 0

    def channel_send(self, entity, packet):
        self.sent.append((entity, packet))

    def start_timer(self, entity, duration):
        if self.timer_running[entity]:
            self.start_while_running += 1
        self.timer_running[entity] = True
        self.timer_starts += 1

    def stop_timer(self, entity):
        self.timer_running[entity] = False
        self.timer_stops += 1

    def deliver_to_application(self, entity, payload):
        self.delivered.append(payload)

    def packets_from(self, entity):
        return [packet for source, packet in self.sent if source == entity]

    def fire_timer(self, target):
        """Expire the target's timer the way a real clock would."""
        self.timer_running[target.entity] = False
        return target.handle(TimerFired())

    def clear_sent(self):
        self.sent.clear()


def msg(index):
    """Distinct message for index."""
    return Message(bytes([ord('a') + index % 26]) * 20)


@pytest.fixture
def env():
    return FakeEnvironment()


@pytest.fixture
def quiet_logger():
    return SimulationLogger(name="Test", level=LogLevel.CRITICAL, use_colors=False)


@pytest.fixture
def sender(env, quiet_logger):
    return SRSender(env, window_size=6, seq_space=12, timeout=16.0, logger=quiet_logger)


@pytest.fixture
def receiver(env, quiet_logger):
    return SRReceiver(env, window_size=6, seq_space=12, logger=quiet_logger)
