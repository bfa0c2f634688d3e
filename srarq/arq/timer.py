"""
Timer Management for Selective Repeat ARQ

This module provides the sender's single logical retransmission timer.
The clock itself belongs to the environment; this class only keeps track of
whether the alarm is armed so it is never started twice.
"""

from enum import Enum

from .events import Entity, Environment


class TimerState(Enum):
    """Timer state enumeration."""
    STOPPED = 0
    RUNNING = 1
    EXPIRED = 2


class RetransmissionTimer:
    """
    One retransmission alarm per sender entity.

    Created once and started/stopped repeatedly. Stopping an idle timer is
    a no-op, and start() always stops first, so the environment never sees
    a start on a running alarm.

    Attributes:
        entity: Entity that owns the timer
        timeout: Duration passed to the environment on every start
        state: Current timer state
    """

    def __init__(self, entity: Entity, timeout: float, env: Environment):
        """
        Initialize the timer.

        Args:
            entity: Owning entity
            timeout: Timeout duration
            env: Environment providing the real clock
        """
        self.entity = entity
        self.timeout = timeout
        self.env = env
        self.state = TimerState.STOPPED

        # Statistics
        self.total_starts = 0
        self.total_timeouts = 0

    @property
    def is_running(self) -> bool:
        return self.state == TimerState.RUNNING

    def start(self):
        """Arm the timer, stopping it first if it is still running."""
        self.stop()
        self.env.start_timer(self.entity, self.timeout)
        self.state = TimerState.RUNNING
        self.total_starts += 1

    def stop(self):
        """Disarm the timer; no-op when it is not running."""
        if self.state != TimerState.RUNNING:
            return
        self.env.stop_timer(self.entity)
        self.state = TimerState.STOPPED

    def expire(self):
        """Record that the environment fired the alarm."""
        self.state = TimerState.EXPIRED
        self.total_timeouts += 1

    def reset(self):
        """Forget all state without touching the environment."""
        self.state = TimerState.STOPPED
        self.total_starts = 0
        self.total_timeouts = 0

    def get_statistics(self) -> dict:
        """Get timer statistics."""
        return {
            'timer_starts': self.total_starts,
            'timeouts': self.total_timeouts,
            'timer_running': self.is_running
        }
