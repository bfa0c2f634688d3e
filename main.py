#!/usr/bin/env python3
"""
Selective Repeat ARQ Simulator - Main Entry Point

This is the main CLI interface for the ARQ protocol simulator.
It provides options for:
- Single simulation runs
- Parameter sweep over window size, loss and corruption
- Visualization generation

Usage:
    python main.py --single --messages 50 --loss 0.2 --corrupt 0.2 --trace 2
    python main.py --sweep --runs 5
    python main.py --visualize --csv results.csv
"""

import argparse
import os
import sys
import time

# Ensure project root is in path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config import (
    WINDOW_SIZE, SEQ_SPACE, RTT, DEFAULT_NUM_MESSAGES, DEFAULT_LOSS_PROB,
    DEFAULT_CORRUPT_PROB, DEFAULT_REORDER_PROB, DEFAULT_MESSAGE_INTERVAL,
    RUNS_PER_CONFIGURATION, RESULTS_CSV, PLOTS_DIR, TRACE_LEVEL,
    ConfigurationError
)


def run_single_simulation(args):
    """Run a single simulation with specified parameters."""
    from simulation.simulator import Simulator, SimulatorConfig
    from srarq.arq.events import RetransmitPolicy, CorruptPacketPolicy

    config = SimulatorConfig(
        window_size=args.window,
        seq_space=args.seqspace,
        timeout=args.timeout,
        retransmit_policy=RetransmitPolicy(args.retransmit),
        corrupt_policy=CorruptPacketPolicy(args.on_corrupt),
        loss_prob=args.loss,
        corrupt_prob=args.corrupt,
        reorder_prob=args.reorder,
        num_messages=args.messages,
        message_interval=args.interval,
        seed=args.seed,
        trace=args.trace
    )

    print("=" * 60)
    print("SELECTIVE REPEAT ARQ SIMULATOR")
    print("=" * 60)
    print(f"\nConfiguration:")
    print(f"  Messages: {config.num_messages}")
    print(f"  Loss / Corrupt / Reorder: {config.loss_prob} / "
          f"{config.corrupt_prob} / {config.reorder_prob}")
    print(f"  Mean message interval: {config.message_interval}")
    print(f"  Window size: {config.window_size}")
    print(f"  Sequence space: {config.seq_space}")
    print(f"  Timeout: {config.timeout}")
    print(f"  Retransmit policy: {config.retransmit_policy.value}")
    print(f"  Corrupt packet policy: {config.corrupt_policy.value}")
    print(f"  Seed: {config.seed}")

    sim = Simulator(config)
    start_time = time.time()
    results = sim.run()
    elapsed = time.time() - start_time

    print("\n" + "=" * 60)
    print("RESULTS")
    print("=" * 60)

    verification = results['verification']
    print(f"\nTransfer Status:")
    print(f"  Complete: {results['complete']}")
    print(f"  Data Valid: {verification['valid']}")
    print(f"  Delivered: {verification['delivered']}/{verification['accepted']}")
    print(f"  Simulation Time: {results['simulation_time']:.2f}")
    print(f"  Real Time: {elapsed:.2f} s")

    sender = results['sender']
    print(f"\nSender (A):")
    print(f"  Messages submitted: {sender['messages_submitted']}")
    print(f"  Dropped, window full: {sender['window_full_drops']}")
    print(f"  Packets sent: {sender['packets_sent']}")
    print(f"  Packets resent: {sender['retransmissions']}")
    print(f"  ACKs received: {sender['acks_received']} "
          f"(new {sender['new_acks']}, duplicate {sender['duplicate_acks']}, "
          f"stale {sender['stale_acks']}, corrupted {sender['corrupted_acks']})")

    receiver = results['receiver']
    print(f"\nReceiver (B):")
    print(f"  Packets received: {receiver['packets_received']}")
    print(f"  Duplicates: {receiver['duplicate_packets']}")
    print(f"  Corrupted: {receiver['corrupted_packets']}")
    print(f"  ACKs sent: {receiver['acks_sent']}")

    metrics = results['metrics']
    print(f"\nPerformance Metrics:")
    print(f"  Efficiency: {metrics['efficiency'] * 100:.2f}%")
    print(f"  Retransmissions per message: {metrics['retransmission_rate']:.3f}")
    if metrics['latency']['samples'] > 0:
        print(f"  Mean latency: {metrics['latency']['mean']:.2f}")

    return results


def run_parameter_sweep(args):
    """Run parameter sweep."""
    from simulation.runner import BatchRunner

    print("=" * 60)
    print("PARAMETER SWEEP")
    print("=" * 60)

    if args.quick:
        runner = BatchRunner(
            window_sizes=[3, 6],
            loss_probs=[0.0, 0.2],
            corrupt_probs=[0.0, 0.2],
            runs_per_config=2,
            num_messages=20,
            output_file=args.output or RESULTS_CSV
        )
    else:
        runner = BatchRunner(
            runs_per_config=args.runs,
            num_messages=args.messages,
            output_file=args.output or RESULTS_CSV
        )

    print(f"\nConfiguration:")
    print(f"  Window sizes: {runner.window_sizes}")
    print(f"  Loss probabilities: {runner.loss_probs}")
    print(f"  Corrupt probabilities: {runner.corrupt_probs}")
    print(f"  Runs per config: {runner.runs_per_config}")
    print(f"  Total simulations: {runner.total_runs}")

    if args.parallel:
        results = runner.run_parallel(max_workers=args.workers)
    else:
        results = runner.run_sequential()

    runner.save_results()

    invalid = [key for key, data in runner.get_aggregated_results().items()
               if not data['all_valid']]
    if invalid:
        print(f"\nWARNING: delivery mismatch in {len(invalid)} configurations")

    return results


def generate_visualizations(args):
    """Generate visualization plots."""
    from visualization.heatmap import RetransmissionHeatmap

    csv_file = args.csv or RESULTS_CSV
    if not os.path.exists(csv_file):
        print(f"Error: Results file not found: {csv_file}")
        print("Run a parameter sweep first: python main.py --sweep")
        return

    heatmap = RetransmissionHeatmap(csv_file=csv_file)
    for metric in ('retransmission_rate', 'efficiency'):
        path = heatmap.plot(
            output_file=os.path.join(PLOTS_DIR, f'{metric}_heatmap.png'),
            metric=metric
        )
        print(f"  {metric}: {path}")


def show_config(args):
    """Display current configuration."""
    import config as cfg

    print("=" * 60)
    print("SIMULATOR CONFIGURATION")
    print("=" * 60)
    print(f"\nProtocol:")
    print(f"  Window Size: {cfg.WINDOW_SIZE}")
    print(f"  Sequence Space: {cfg.SEQ_SPACE}")
    print(f"  Timeout: {cfg.RTT}")
    print(f"  Payload Size: {cfg.PAYLOAD_SIZE} bytes")
    print(f"\nChannel delay: [{cfg.CHANNEL_MIN_DELAY}, {cfg.CHANNEL_MAX_DELAY}]")
    print(f"\nParameter Sweep:")
    print(f"  Window Sizes: {cfg.SWEEP_WINDOW_SIZES}")
    print(f"  Loss Probabilities: {cfg.LOSS_PROBS}")
    print(f"  Corrupt Probabilities: {cfg.CORRUPT_PROBS}")
    print(f"  Runs per config: {cfg.RUNS_PER_CONFIGURATION}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Selective Repeat ARQ Protocol Simulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Single simulation over a lossy, corrupting channel:
    python main.py --single --messages 50 --loss 0.2 --corrupt 0.2

  Quick parameter sweep (for testing):
    python main.py --sweep --quick

  Generate visualizations:
    python main.py --visualize
        """
    )

    # Mode selection
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument('--single', action='store_true',
                      help='Run single simulation')
    mode.add_argument('--sweep', action='store_true',
                      help='Run parameter sweep')
    mode.add_argument('--visualize', action='store_true',
                      help='Generate visualizations')
    mode.add_argument('--config', action='store_true',
                      help='Show configuration')

    # Single simulation options
    parser.add_argument('--messages', '-n', type=int, default=DEFAULT_NUM_MESSAGES,
                        help=f'Number of messages to simulate (default: {DEFAULT_NUM_MESSAGES})')
    parser.add_argument('--loss', type=float, default=DEFAULT_LOSS_PROB,
                        help='Packet loss probability')
    parser.add_argument('--corrupt', type=float, default=DEFAULT_CORRUPT_PROB,
                        help='Packet corruption probability')
    parser.add_argument('--reorder', type=float, default=DEFAULT_REORDER_PROB,
                        help='Packet reordering probability (needs --timeout above 3x the max delay)')
    parser.add_argument('--interval', type=float, default=DEFAULT_MESSAGE_INTERVAL,
                        help='Average time between messages from sender layer 5')
    parser.add_argument('--window', '-w', type=int, default=WINDOW_SIZE,
                        help=f'Window size (default: {WINDOW_SIZE})')
    parser.add_argument('--seqspace', type=int, default=SEQ_SPACE,
                        help=f'Sequence space size (default: {SEQ_SPACE})')
    parser.add_argument('--timeout', type=float, default=RTT,
                        help=f'Retransmission timeout (default: {RTT})')
    parser.add_argument('--retransmit', choices=['all', 'oldest'], default='all',
                        help='Packets resent on timeout (default: all)')
    parser.add_argument('--on-corrupt', choices=['reack', 'drop'], default='reack',
                        help='Receiver reply to a corrupted packet (default: reack)')
    parser.add_argument('--trace', '-t', type=int, default=TRACE_LEVEL,
                        help='Trace level: 0 quiet, 1 events, 2 everything')
    parser.add_argument('--seed', '-s', type=int, default=42,
                        help='Random seed (default: 42)')

    # Parameter sweep options
    parser.add_argument('--runs', '-r', type=int,
                        default=RUNS_PER_CONFIGURATION,
                        help=f'Runs per configuration (default: {RUNS_PER_CONFIGURATION})')
    parser.add_argument('--parallel', action='store_true',
                        help='Run simulations in parallel')
    parser.add_argument('--workers', type=int, default=None,
                        help='Number of parallel workers')
    parser.add_argument('--quick', action='store_true',
                        help='Quick test with reduced parameters')

    # Output options
    parser.add_argument('--output', '-o', type=str,
                        help='Output file path')
    parser.add_argument('--csv', type=str,
                        help='CSV file for visualization')

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.single:
            run_single_simulation(args)
        elif args.sweep:
            run_parameter_sweep(args)
        elif args.visualize:
            generate_visualizations(args)
        elif args.config:
            show_config(args)
    except ConfigurationError as e:
        parser.error(str(e))


if __name__ == "__main__":
    main()
