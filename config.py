"""
Configuration file for the Selective Repeat ARQ Simulator.
Contains the fixed protocol parameters and the emulator defaults.
"""

import os

# =============================================================================
# PROTOCOL PARAMETERS
# =============================================================================

# Maximum number of buffered unacknowledged packets
WINDOW_SIZE = 6

# Sequence numbers run 0..SEQ_SPACE-1, must be at least 2 * WINDOW_SIZE
SEQ_SPACE = 12

# Retransmission timeout (simulation time units)
RTT = 16.0

# Fills header fields that are not being used
NOT_IN_USE = -1

# Fixed payload size of every message and packet (bytes)
PAYLOAD_SIZE = 20

# =============================================================================
# CHANNEL / EMULATOR PARAMETERS
# =============================================================================

# Number of messages handed down by the application layer
DEFAULT_NUM_MESSAGES = 20

# Per-packet probabilities
DEFAULT_LOSS_PROB = 0.0
DEFAULT_CORRUPT_PROB = 0.0
DEFAULT_REORDER_PROB = 0.0

# Mean time between messages from the application layer
DEFAULT_MESSAGE_INTERVAL = 10.0

# One-way channel delay is drawn from [MIN, MAX]
CHANNEL_MIN_DELAY = 1.0
CHANNEL_MAX_DELAY = 10.0

# Value written over a header field when the channel corrupts it
CORRUPTION_MARKER = 999999

# With reordering on, the timeout must exceed this many max one-way delays
# (reordered data packet: 2 delays, its ACK: 1)
REORDER_RTT_FACTOR = 3

# =============================================================================
# PARAMETER SWEEP CONFIGURATION
# =============================================================================

LOSS_PROBS = [0.0, 0.1, 0.2, 0.3]
CORRUPT_PROBS = [0.0, 0.1, 0.2, 0.3]
SWEEP_WINDOW_SIZES = [1, 3, 6, 8]

# Number of simulation runs per (W, loss, corrupt) triple
RUNS_PER_CONFIGURATION = 5

# =============================================================================
# SIMULATION SETTINGS
# =============================================================================

# Default RNG seed base (actual seed = base + run_id)
RNG_SEED_BASE = 42

# Simulation time limit - failsafe
MAX_SIMULATION_TIME = 1_000_000.0

# Logging verbosity levels
LOG_LEVEL_DEBUG = 0
LOG_LEVEL_INFO = 1
LOG_LEVEL_WARNING = 2
LOG_LEVEL_ERROR = 3

DEFAULT_LOG_LEVEL = LOG_LEVEL_INFO

# Classic emulator trace level (0 = quiet, 1 = events, 2+ = everything)
TRACE_LEVEL = 0

# =============================================================================
# OUTPUT PATHS
# =============================================================================

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.path.join(BASE_DIR, "data")
OUTPUT_DIR = os.path.join(DATA_DIR, "output")
PLOTS_DIR = os.path.join(OUTPUT_DIR, "plots")

# Results CSV filename
RESULTS_CSV = os.path.join(OUTPUT_DIR, "results.csv")

# =============================================================================
# DERIVED PARAMETERS
# =============================================================================


class ConfigurationError(ValueError):
    """Raised when protocol parameters cannot work together."""


def calculate_sequence_space(window_size):
    """Smallest sequence space that keeps a window of this size unambiguous."""
    return 2 * window_size


def validate_protocol_parameters(window_size, seq_space, timeout=RTT):
    """
    Check the protocol parameters before any entity is built.

    Raises:
        ConfigurationError: if the window is empty, the timeout is not
            positive, or the sequence space is smaller than twice the window
    """
    if window_size < 1:
        raise ConfigurationError(f"Window size must be at least 1, got {window_size}")
    if seq_space < calculate_sequence_space(window_size):
        raise ConfigurationError(
            f"Sequence space {seq_space} is too small for window size "
            f"{window_size} (need at least {calculate_sequence_space(window_size)})"
        )
    if timeout <= 0:
        raise ConfigurationError(f"Timeout must be positive, got {timeout}")


# Print configuration summary
if __name__ == "__main__":
    print("=" * 60)
    print("SELECTIVE REPEAT ARQ SIMULATOR - CONFIGURATION")
    print("=" * 60)
    print(f"\nProtocol:")
    print(f"  Window Size: {WINDOW_SIZE}")
    print(f"  Sequence Space: {SEQ_SPACE}")
    print(f"  Timeout: {RTT}")
    print(f"  Payload Size: {PAYLOAD_SIZE} bytes")

    print(f"\nChannel:")
    print(f"  Loss: {DEFAULT_LOSS_PROB}")
    print(f"  Corruption: {DEFAULT_CORRUPT_PROB}")
    print(f"  Reorder: {DEFAULT_REORDER_PROB}")
    print(f"  Delay: [{CHANNEL_MIN_DELAY}, {CHANNEL_MAX_DELAY}]")

    print(f"\nParameter Sweep:")
    print(f"  Window Sizes: {SWEEP_WINDOW_SIZES}")
    print(f"  Loss Probabilities: {LOSS_PROBS}")
    print(f"  Corrupt Probabilities: {CORRUPT_PROBS}")
    print(f"  Runs per config: {RUNS_PER_CONFIGURATION}")
