"""
Main Simulator - Event-Driven Network Emulation

This module implements the simulation engine that drives the two ARQ
entities. It plays every collaborator the protocol depends on: the
application source and sink, the unreliable channel, and the per-entity
timer facility.
"""

from typing import Optional, Dict, List
from dataclasses import dataclass, field
from enum import Enum
import heapq
import itertools
import time

import numpy as np

from config import (
    WINDOW_SIZE, SEQ_SPACE, RTT, PAYLOAD_SIZE,
    DEFAULT_NUM_MESSAGES, DEFAULT_LOSS_PROB, DEFAULT_CORRUPT_PROB,
    DEFAULT_REORDER_PROB, DEFAULT_MESSAGE_INTERVAL,
    CHANNEL_MIN_DELAY, CHANNEL_MAX_DELAY,
    MAX_SIMULATION_TIME, TRACE_LEVEL, REORDER_RTT_FACTOR, ConfigurationError,
    validate_protocol_parameters
)
from srarq.arq.events import (
    Entity, NewMessage, PacketArrived, TimerFired,
    SubmitResult, RetransmitPolicy, CorruptPacketPolicy
)
from srarq.arq.packet import Message, Packet
from srarq.arq.sender import SRSender
from srarq.arq.receiver import SRReceiver
from srarq.channel.unreliable import UnreliableChannel
from srarq.utils.metrics import MetricsCollector
from srarq.utils.logger import SimulationLogger, LogLevel


class EventType(Enum):
    """Types of simulation events."""
    FROM_APPLICATION = 0  # Application hands a message to an entity
    FROM_NETWORK = 1      # Packet arrives at an entity
    TIMER_INTERRUPT = 2   # Entity's timer expires


@dataclass(order=True)
class SimEvent:
    """Simulation event; equal times are processed in scheduling order."""
    time: float
    order: int
    event_type: EventType = field(compare=False)
    entity: Entity = field(compare=False)
    packet: Optional[Packet] = field(compare=False, default=None)
    generation: int = field(compare=False, default=0)


@dataclass
class SimulatorConfig:
    """Configuration for the simulator."""
    # ARQ parameters
    window_size: int = WINDOW_SIZE
    seq_space: int = SEQ_SPACE
    timeout: float = RTT
    retransmit_policy: RetransmitPolicy = RetransmitPolicy.ALL_OUTSTANDING
    corrupt_policy: CorruptPacketPolicy = CorruptPacketPolicy.REACK_LAST

    # Channel parameters
    loss_prob: float = DEFAULT_LOSS_PROB
    corrupt_prob: float = DEFAULT_CORRUPT_PROB
    reorder_prob: float = DEFAULT_REORDER_PROB
    min_delay: float = CHANNEL_MIN_DELAY
    max_delay: float = CHANNEL_MAX_DELAY

    # Application parameters
    num_messages: int = DEFAULT_NUM_MESSAGES
    message_interval: float = DEFAULT_MESSAGE_INTERVAL

    # Simulation parameters
    seed: int = 42
    max_time: float = MAX_SIMULATION_TIME
    trace: int = TRACE_LEVEL
    log_level: Optional[int] = None

    def get_log_level(self) -> int:
        """Explicit log level, else the one implied by the trace level."""
        if self.log_level is not None:
            return self.log_level
        return LogLevel.from_trace(self.trace)

    def validate(self):
        """Raise ConfigurationError on unusable settings."""
        validate_protocol_parameters(self.window_size, self.seq_space, self.timeout)
        if self.num_messages < 0:
            raise ConfigurationError("Number of messages must be non-negative")
        if self.message_interval <= 0:
            raise ConfigurationError("Message interval must be positive")
        # A reordered packet takes up to 2 * max_delay, its ACK up to max_delay.
        # A shorter timeout lets stale copies alias a sequence number after wraparound.
        if self.reorder_prob > 0 and self.timeout <= REORDER_RTT_FACTOR * self.max_delay:
            raise ConfigurationError(
                f"Timeout {self.timeout} must exceed {REORDER_RTT_FACTOR} * max_delay "
                f"({REORDER_RTT_FACTOR * self.max_delay}) when packets may be reordered"
            )


@dataclass
class TimerSlot:
    """Simulated timer facility for one entity."""
    running: bool = False
    generation: int = 0


def make_message(index: int) -> Message:
    """Message number index: PAYLOAD_SIZE copies of one letter a..z."""
    letter = ord('a') + index % 26
    return Message(bytes([letter]) * PAYLOAD_SIZE)


class Simulator:
    """
    Main Event-Driven Simulator.

    Entity A sends, entity B receives. Both talk to each other only through
    the unreliable channel owned by the simulator.
    """

    def __init__(self, config: SimulatorConfig):
        """Initialize simulator."""
        config.validate()
        self.config = config

        self.logger = SimulationLogger(
            name="Sim",
            level=config.get_log_level()
        )

        self.channel = UnreliableChannel(
            loss_prob=config.loss_prob,
            corrupt_prob=config.corrupt_prob,
            reorder_prob=config.reorder_prob,
            min_delay=config.min_delay,
            max_delay=config.max_delay,
            seed=config.seed
        )
        self.rng = np.random.default_rng(config.seed + 1000)

        self.sender = SRSender(
            env=self,
            window_size=config.window_size,
            seq_space=config.seq_space,
            timeout=config.timeout,
            retransmit_policy=config.retransmit_policy,
            logger=self.logger
        )
        self.receiver = SRReceiver(
            env=self,
            window_size=config.window_size,
            seq_space=config.seq_space,
            corrupt_policy=config.corrupt_policy,
            logger=self.logger
        )
        self.entities = {Entity.A: self.sender, Entity.B: self.receiver}

        self.metrics = MetricsCollector()

        self._reset_state()

    def _reset_state(self):
        self.current_time = 0.0
        self.event_queue: List[SimEvent] = []
        self._counter = itertools.count()
        self.timers = {entity: TimerSlot() for entity in Entity}

        self.messages_generated = 0
        self.accepted: List[bytes] = []
        self.accept_times: List[float] = []
        self.delivered: List[bytes] = []
        self.max_outstanding = 0

    # ------------------------------------------------------------------
    # Environment services used by the entities
    # ------------------------------------------------------------------

    def channel_send(self, entity: Entity, packet: Packet):
        """Hand a packet to the unreliable channel."""
        if entity == Entity.A:
            self.metrics.record_data_sent()
        else:
            self.metrics.record_ack_sent()

        result = self.channel.transmit(packet, self.current_time, entity)
        if result.lost:
            self.metrics.record_lost()
            self.logger.debug(f"Packet from {entity.name} lost", "CHANNEL")
            return
        if result.corrupted:
            self.metrics.record_corrupted()
            self.logger.debug(f"Packet from {entity.name} corrupted", "CHANNEL")

        target = Entity.B if entity == Entity.A else Entity.A
        self._schedule_event(
            result.arrival_time,
            EventType.FROM_NETWORK,
            target,
            packet=result.packet
        )

    def start_timer(self, entity: Entity, duration: float):
        """Arm an entity's timer."""
        timer = self.timers[entity]
        if timer.running:
            self.logger.warning(
                f"Attempt to start a timer that is already started ({entity.name})",
                "TIMER"
            )
            return
        timer.running = True
        timer.generation += 1
        self._schedule_event(
            self.current_time + duration,
            EventType.TIMER_INTERRUPT,
            entity,
            generation=timer.generation
        )

    def stop_timer(self, entity: Entity):
        """Disarm an entity's timer."""
        timer = self.timers[entity]
        if not timer.running:
            self.logger.warning(
                f"Unable to cancel timer for {entity.name}, it wasn't running",
                "TIMER"
            )
            return
        timer.running = False
        timer.generation += 1

    def deliver_to_application(self, entity: Entity, payload: bytes):
        """Application sink at the receiving entity."""
        index = len(self.delivered)
        self.delivered.append(payload)
        latency = None
        if index < len(self.accept_times):
            latency = self.current_time - self.accept_times[index]
        self.metrics.record_delivery(latency)

    # ------------------------------------------------------------------
    # Event loop
    # ------------------------------------------------------------------

    def _schedule_event(
        self,
        time: float,
        event_type: EventType,
        entity: Entity,
        packet: Optional[Packet] = None,
        generation: int = 0
    ):
        """Schedule an event."""
        event = SimEvent(
            time=time,
            order=next(self._counter),
            event_type=event_type,
            entity=entity,
            packet=packet,
            generation=generation
        )
        heapq.heappush(self.event_queue, event)

    def _schedule_next_message(self):
        if self.messages_generated >= self.config.num_messages:
            return
        gap = float(self.rng.uniform(0.0, 2.0 * self.config.message_interval))
        self._schedule_event(self.current_time + gap, EventType.FROM_APPLICATION, Entity.A)

    def _handle_application(self, event: SimEvent):
        message = make_message(self.messages_generated)
        self.messages_generated += 1

        result = self.entities[event.entity].handle(NewMessage(message))
        accepted = result == SubmitResult.SENT
        if accepted:
            self.accepted.append(message.data)
            self.accept_times.append(self.current_time)
        self.metrics.record_message(accepted)

        self._schedule_next_message()

    def _handle_network(self, event: SimEvent):
        self.entities[event.entity].handle(PacketArrived(event.packet))

    def _handle_timer(self, event: SimEvent):
        timer = self.timers[event.entity]
        if not timer.running or timer.generation != event.generation:
            # Stopped or restarted since this was scheduled
            return
        timer.running = False

        resent = self.entities[event.entity].handle(TimerFired())
        if resent:
            self.metrics.record_retransmission(len(resent))

    def _verify(self) -> Dict:
        """Compare what was delivered with what the sender accepted."""
        first_mismatch = None
        for i, (sent, got) in enumerate(zip(self.accepted, self.delivered)):
            if sent != got:
                first_mismatch = i
                break
        valid = (first_mismatch is None and
                 len(self.delivered) == len(self.accepted))
        return {
            'valid': valid,
            'accepted': len(self.accepted),
            'delivered': len(self.delivered),
            'first_mismatch': first_mismatch
        }

    def _is_complete(self) -> bool:
        """All messages generated, and every accepted one acknowledged."""
        return (self.messages_generated >= self.config.num_messages and
                self.sender.outstanding_count == 0)

    def run(self) -> Dict:
        """Run the simulation."""
        # Entities first, so a timer left armed by a previous run is disarmed
        self.sender.reset()
        self.receiver.reset()
        self._reset_state()
        self.channel.reset(self.config.seed)
        self.rng = np.random.default_rng(self.config.seed + 1000)
        self.metrics.reset()
        self.metrics.start(0.0)

        self.logger.set_sim_time(0.0)
        self.logger.simulation_start({
            'messages': self.config.num_messages,
            'loss': self.config.loss_prob,
            'corrupt': self.config.corrupt_prob,
            'reorder': self.config.reorder_prob,
            'window': self.config.window_size,
            'seqspace': self.config.seq_space
        })
        sim_start_real = time.time()

        self._schedule_next_message()

        while self.event_queue:
            event = heapq.heappop(self.event_queue)
            if event.time > self.config.max_time:
                self.logger.warning("Simulation time limit reached", "SIM")
                break
            self.current_time = event.time
            self.logger.set_sim_time(self.current_time)

            if event.event_type == EventType.FROM_APPLICATION:
                self._handle_application(event)
            elif event.event_type == EventType.FROM_NETWORK:
                self._handle_network(event)
            elif event.event_type == EventType.TIMER_INTERRUPT:
                self._handle_timer(event)

            outstanding = self.sender.outstanding_count
            self.max_outstanding = max(self.max_outstanding, outstanding)
            self.metrics.record_window_occupancy(outstanding, self.config.window_size)

        self.metrics.finish(self.current_time)
        sim_end_real = time.time()

        verification = self._verify()
        self.logger.simulation_end(verification['delivered'], verification['accepted'])

        return {
            'config': {
                'window_size': self.config.window_size,
                'seq_space': self.config.seq_space,
                'timeout': self.config.timeout,
                'loss_prob': self.config.loss_prob,
                'corrupt_prob': self.config.corrupt_prob,
                'reorder_prob': self.config.reorder_prob,
                'num_messages': self.config.num_messages,
                'seed': self.config.seed,
                'retransmit_policy': self.config.retransmit_policy.value,
                'corrupt_policy': self.config.corrupt_policy.value
            },
            'metrics': self.metrics.get_summary(),
            'sender': self.sender.get_statistics(),
            'receiver': self.receiver.get_statistics(),
            'channel': self.channel.get_statistics(),
            'max_outstanding': self.max_outstanding,
            'verification': verification,
            'real_time': sim_end_real - sim_start_real,
            'simulation_time': self.current_time,
            'complete': self._is_complete()
        }
