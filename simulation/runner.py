"""
Batch Runner for Parameter Sweep Simulations

This module runs the simulator over every (window size, loss probability,
corruption probability) combination, several seeded runs each.
"""

import os
import csv
import time
import statistics
from typing import Optional, Callable, List, Dict, Tuple
from dataclasses import dataclass
from concurrent.futures import ProcessPoolExecutor, as_completed
import multiprocessing

from tqdm import tqdm

from config import (
    SWEEP_WINDOW_SIZES, LOSS_PROBS, CORRUPT_PROBS, RUNS_PER_CONFIGURATION,
    RNG_SEED_BASE, RESULTS_CSV, DEFAULT_NUM_MESSAGES,
    calculate_sequence_space
)
from simulation.simulator import Simulator, SimulatorConfig
from srarq.utils.logger import LogLevel


@dataclass
class RunConfig:
    """Configuration for a single simulation run."""
    window_size: int
    loss_prob: float
    corrupt_prob: float
    run_id: int
    seed: int
    num_messages: int


def run_single_simulation(run_config: RunConfig) -> Dict:
    """
    Run a single simulation with given configuration.

    This function is designed to be called in a separate process.

    Args:
        run_config: Configuration for this run

    Returns:
        Flat dictionary with results
    """
    row = {
        'window_size': run_config.window_size,
        'loss_prob': run_config.loss_prob,
        'corrupt_prob': run_config.corrupt_prob,
        'run_id': run_config.run_id,
        'seed': run_config.seed
    }

    try:
        config = SimulatorConfig(
            window_size=run_config.window_size,
            seq_space=calculate_sequence_space(run_config.window_size),
            loss_prob=run_config.loss_prob,
            corrupt_prob=run_config.corrupt_prob,
            num_messages=run_config.num_messages,
            seed=run_config.seed,
            log_level=LogLevel.ERROR  # Minimal logging for batch runs
        )
        results = Simulator(config).run()
    except ValueError as e:
        row['error'] = str(e)
        return row

    metrics = results['metrics']
    row.update({
        'messages_accepted': metrics['messages_accepted'],
        'messages_delivered': metrics['messages_delivered'],
        'delivery_ratio': metrics['delivery_ratio'],
        'retransmissions': metrics['retransmissions'],
        'retransmission_rate': metrics['retransmission_rate'],
        'efficiency': metrics['efficiency'],
        'throughput': metrics['throughput'],
        'latency_mean': metrics['latency']['mean'],
        'window_full_drops': results['sender']['window_full_drops'],
        'max_outstanding': results['max_outstanding'],
        'total_time': results['simulation_time'],
        'data_valid': results['verification']['valid'],
        'complete': results['complete'],
        'error': None
    })
    return row


class BatchRunner:
    """
    Batch Runner for parameter sweep simulations.

    Attributes:
        window_sizes: List of window sizes to test
        loss_probs: List of loss probabilities to test
        corrupt_probs: List of corruption probabilities to test
        runs_per_config: Number of runs per configuration
        num_messages: Messages generated per run
    """

    def __init__(
        self,
        window_sizes: List[int] = None,
        loss_probs: List[float] = None,
        corrupt_probs: List[float] = None,
        runs_per_config: int = RUNS_PER_CONFIGURATION,
        num_messages: int = DEFAULT_NUM_MESSAGES,
        output_file: str = RESULTS_CSV,
        on_progress: Optional[Callable[[int, int, dict], None]] = None
    ):
        """
        Initialize batch runner.

        Args:
            window_sizes: List of window sizes (default from config)
            loss_probs: List of loss probabilities (default from config)
            corrupt_probs: List of corruption probabilities (default from config)
            runs_per_config: Number of runs per configuration
            num_messages: Messages generated per run
            output_file: Path to output CSV file
            on_progress: Callback for progress updates
        """
        self.window_sizes = window_sizes or SWEEP_WINDOW_SIZES
        self.loss_probs = loss_probs or LOSS_PROBS
        self.corrupt_probs = corrupt_probs or CORRUPT_PROBS
        self.runs_per_config = runs_per_config
        self.num_messages = num_messages
        self.output_file = output_file
        self.on_progress = on_progress

        self.results: List[Dict] = []

        self.total_runs = (len(self.window_sizes) *
                           len(self.loss_probs) *
                           len(self.corrupt_probs) *
                           self.runs_per_config)
        self.completed_runs = 0
        self.start_time = 0.0

    def _generate_run_configs(self) -> List[RunConfig]:
        """Generate all run configurations."""
        configs = []

        for window_size in self.window_sizes:
            for i, loss_prob in enumerate(self.loss_probs):
                for j, corrupt_prob in enumerate(self.corrupt_probs):
                    for run_id in range(self.runs_per_config):
                        # Unique seed for each run
                        seed = (RNG_SEED_BASE +
                                window_size * 1000 +
                                i * 100 + j * 10 +
                                run_id * 100000)

                        configs.append(RunConfig(
                            window_size=window_size,
                            loss_prob=loss_prob,
                            corrupt_prob=corrupt_prob,
                            run_id=run_id,
                            seed=seed,
                            num_messages=self.num_messages
                        ))

        return configs

    def _record(self, result: Dict):
        self.results.append(result)
        self.completed_runs += 1
        if self.on_progress:
            self.on_progress(self.completed_runs, self.total_runs, result)

    def run_sequential(self) -> List[Dict]:
        """
        Run all simulations sequentially.

        Returns:
            List of result dictionaries
        """
        configs = self._generate_run_configs()
        self.results = []
        self.completed_runs = 0
        self.start_time = time.time()

        for config in tqdm(configs, desc="Simulations"):
            self._record(run_single_simulation(config))

        total_time = time.time() - self.start_time
        print(f"Completed {self.total_runs} simulations in {total_time:.1f}s")

        return self.results

    def run_parallel(self, max_workers: Optional[int] = None) -> List[Dict]:
        """
        Run simulations in parallel using multiprocessing.

        Args:
            max_workers: Number of parallel workers (default: CPU count)

        Returns:
            List of result dictionaries
        """
        if max_workers is None:
            max_workers = multiprocessing.cpu_count()

        configs = self._generate_run_configs()
        self.results = []
        self.completed_runs = 0
        self.start_time = time.time()

        with ProcessPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(run_single_simulation, config)
                       for config in configs]
            for future in tqdm(as_completed(futures), total=len(futures),
                               desc="Simulations"):
                self._record(future.result())

        total_time = time.time() - self.start_time
        print(f"Completed {self.total_runs} simulations in {total_time:.1f}s")

        return self.results

    def save_results(self, filepath: Optional[str] = None):
        """
        Save results to CSV file.

        Args:
            filepath: Output file path (default: self.output_file)
        """
        filepath = filepath or self.output_file

        if not self.results:
            print("No results to save!")
            return

        out_dir = os.path.dirname(filepath)
        if out_dir:
            os.makedirs(out_dir, exist_ok=True)

        # Error rows carry fewer columns than successful ones
        fieldnames = []
        for result in self.results:
            for key in result:
                if key not in fieldnames:
                    fieldnames.append(key)

        with open(filepath, 'w', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            writer.writerows(self.results)

        print(f"Results saved to: {filepath}")

    def get_aggregated_results(self) -> Dict[Tuple[int, float, float], Dict]:
        """
        Get aggregated results by (W, loss, corrupt).

        Returns:
            Dictionary with aggregated statistics
        """
        aggregated = {}

        for result in self.results:
            if result.get('error'):
                continue

            key = (result['window_size'], result['loss_prob'], result['corrupt_prob'])
            if key not in aggregated:
                aggregated[key] = {
                    'window_size': result['window_size'],
                    'loss_prob': result['loss_prob'],
                    'corrupt_prob': result['corrupt_prob'],
                    'retransmission_rates': [],
                    'efficiencies': [],
                    'all_valid': True
                }

            aggregated[key]['retransmission_rates'].append(result['retransmission_rate'])
            aggregated[key]['efficiencies'].append(result['efficiency'])
            aggregated[key]['all_valid'] &= bool(result['data_valid'])

        for data in aggregated.values():
            rates = data['retransmission_rates']
            data['retx_rate_mean'] = statistics.mean(rates)
            data['retx_rate_std'] = statistics.stdev(rates) if len(rates) > 1 else 0
            data['efficiency_mean'] = statistics.mean(data['efficiencies'])

        return aggregated
