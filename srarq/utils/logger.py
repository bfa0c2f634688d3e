"""
Simulation Logger

Prints protocol events with the current simulation time, a colored level
tag and a category, filtered by a minimum level.
"""

from typing import Optional
from enum import IntEnum

from config import DEFAULT_LOG_LEVEL


class LogLevel(IntEnum):
    """Log level enumeration."""
    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3
    CRITICAL = 4

    @classmethod
    def from_trace(cls, trace: int) -> 'LogLevel':
        """Map a classic emulator trace level onto a log level."""
        if trace <= 0:
            return cls.WARNING
        if trace == 1:
            return cls.INFO
        return cls.DEBUG


class SimulationLogger:
    """
    Logger for protocol and simulation events.

    Attributes:
        name: Logger name
        level: Minimum log level
        sim_time: Simulation time shown in front of each line, if set
    """

    COLORS = {
        LogLevel.DEBUG: '\033[36m',     # Cyan
        LogLevel.INFO: '\033[32m',      # Green
        LogLevel.WARNING: '\033[33m',   # Yellow
        LogLevel.ERROR: '\033[31m',     # Red
        LogLevel.CRITICAL: '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def __init__(
        self,
        name: str = "Simulator",
        level: int = DEFAULT_LOG_LEVEL,
        use_colors: bool = True
    ):
        self.name = name
        self.level = level
        self.use_colors = use_colors
        self.sim_time: Optional[float] = None

    def set_sim_time(self, time: float):
        """Set current simulation time for log messages."""
        self.sim_time = time

    def _log(self, level: LogLevel, message: str, category: Optional[str] = None):
        if level < self.level:
            return

        parts = []
        if self.sim_time is not None:
            parts.append(f"[{self.sim_time:10.3f}]")

        level_str = level.name.ljust(8)
        if self.use_colors:
            level_str = f"{self.COLORS[level]}{level_str}{self.RESET}"
        parts.append(level_str)
        parts.append(f"[{self.name}]")
        if category:
            parts.append(f"[{category}]")
        parts.append(message)

        print(" ".join(parts))

    def debug(self, message: str, category: Optional[str] = None):
        self._log(LogLevel.DEBUG, message, category)

    def info(self, message: str, category: Optional[str] = None):
        self._log(LogLevel.INFO, message, category)

    def warning(self, message: str, category: Optional[str] = None):
        self._log(LogLevel.WARNING, message, category)

    # Protocol events
    def packet_sent(self, seqnum: int):
        self.info(f"Sending packet {seqnum} to layer 3", "TX")

    def packet_received(self, seqnum: int):
        self.info(f"Packet {seqnum} is correctly received, send ACK!", "RX")

    def ack_sent(self, acknum: int):
        self.debug(f"ACK {acknum} sent", "ACK")

    def ack_received(self, acknum: int, new: bool):
        if new:
            self.info(f"ACK {acknum} is not a duplicate", "ACK")
        else:
            self.info(f"Duplicate ACK {acknum} received, do nothing!", "ACK")

    def corrupted(self, what: str):
        self.info(f"Corrupted {what} received, do nothing!", "CORRUPT")

    def timeout(self):
        self.info("Timeout, resend packets!", "TIMEOUT")

    def retransmit(self, seqnum: int):
        self.info(f"Resending packet {seqnum}", "RETX")

    def window_full(self):
        self.info("New message arrives, send window is full", "WINDOW")

    def window_update(self, base: int, next_seq: int, size: int):
        self.debug(f"Window: base={base}, next={next_seq}, size={size}", "WINDOW")

    def delivered(self, seqnum: int):
        self.debug(f"Packet {seqnum} delivered to layer 5", "DELIVER")

    def simulation_start(self, params: dict):
        param_str = ", ".join(f"{k}={v}" for k, v in params.items())
        self.info(f"Simulation started: {param_str}", "SIM")

    def simulation_end(self, delivered: int, accepted: int):
        self.info(f"Simulation ended: delivered {delivered}/{accepted} messages", "SIM")


# Shared by entities built without their own logger
_global_logger: Optional[SimulationLogger] = None


def get_logger() -> SimulationLogger:
    """Get global logger instance."""
    global _global_logger
    if _global_logger is None:
        _global_logger = SimulationLogger(level=LogLevel.WARNING)
    return _global_logger
