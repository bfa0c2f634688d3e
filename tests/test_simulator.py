"""
Integration tests for the simulator, batch runner and visualization.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import ConfigurationError, PAYLOAD_SIZE
from srarq.arq.events import Entity, RetransmitPolicy, CorruptPacketPolicy
from srarq.utils.logger import LogLevel, SimulationLogger
from srarq.utils.metrics import MetricsCollector
from simulation.simulator import Simulator, SimulatorConfig, EventType, make_message
from simulation.runner import BatchRunner, RunConfig, run_single_simulation
from visualization.heatmap import RetransmissionHeatmap
import main


def quiet_config(**kwargs):
    kwargs.setdefault('log_level', LogLevel.CRITICAL)
    return SimulatorConfig(**kwargs)


class TestSimulator:
    """End-to-end tests for Simulator."""

    def test_perfect_channel(self):
        """Test every accepted message is delivered over a clean channel."""
        results = Simulator(quiet_config(num_messages=30, seed=1)).run()

        verification = results['verification']
        assert verification['valid']
        assert results['complete']
        assert verification['delivered'] == verification['accepted']
        assert results['channel']['packets_lost'] == 0

    @pytest.mark.parametrize("seed", [1, 2, 3, 4])
    def test_lossy_corrupting_channel(self, seed):
        """Test safety and completion with loss and corruption."""
        config = quiet_config(num_messages=40, loss_prob=0.2, corrupt_prob=0.2, seed=seed)

        results = Simulator(config).run()

        assert results['verification']['valid']
        assert results['verification']['first_mismatch'] is None
        assert results['complete']
        assert results['max_outstanding'] <= config.window_size
        assert results['sender']['retransmissions'] > 0

    @pytest.mark.parametrize("seed", [5, 6])
    def test_reordering_channel(self, seed):
        """Test in-order delivery when the channel reorders packets."""
        config = quiet_config(
            num_messages=40, loss_prob=0.1, reorder_prob=0.2,
            max_delay=5.0, timeout=40.0, message_interval=20.0, seed=seed
        )

        results = Simulator(config).run()

        assert results['verification']['valid']
        assert results['complete']
        assert results['channel']['packets_reordered'] > 0

    @pytest.mark.parametrize("timeout", [16.0, 30.0])
    def test_reordering_needs_long_timeout(self, timeout):
        """Test reordering is refused when stale copies could outlive the timeout."""
        with pytest.raises(ConfigurationError):
            Simulator(quiet_config(reorder_prob=0.1, timeout=timeout))

        Simulator(quiet_config(reorder_prob=0.0, timeout=timeout))

    @pytest.mark.parametrize("seed", range(25))
    def test_reordering_at_shortest_timeout(self, seed):
        """Test heavy reordering stays correct with the shortest accepted timeout."""
        config = quiet_config(
            num_messages=150, loss_prob=0.2, corrupt_prob=0.1, reorder_prob=0.3,
            message_interval=2.0, timeout=31.0, seed=seed
        )

        results = Simulator(config).run()

        assert results['verification']['valid']
        assert results['verification']['first_mismatch'] is None
        assert results['complete']

    @pytest.mark.parametrize("retransmit,corrupt", [
        (RetransmitPolicy.OLDEST_ONLY, CorruptPacketPolicy.REACK_LAST),
        (RetransmitPolicy.ALL_OUTSTANDING, CorruptPacketPolicy.DROP),
        (RetransmitPolicy.OLDEST_ONLY, CorruptPacketPolicy.DROP),
    ])
    def test_policies(self, retransmit, corrupt):
        """Test every policy combination stays correct."""
        config = quiet_config(
            num_messages=30, loss_prob=0.2, corrupt_prob=0.2, seed=11,
            retransmit_policy=retransmit, corrupt_policy=corrupt
        )

        results = Simulator(config).run()

        assert results['verification']['valid']
        assert results['complete']

    def test_stop_and_wait(self):
        """Test a window of one with the smallest sequence space."""
        config = quiet_config(window_size=1, seq_space=2, num_messages=20,
                              loss_prob=0.2, corrupt_prob=0.1, seed=3)

        results = Simulator(config).run()

        assert results['verification']['valid']
        assert results['max_outstanding'] <= 1

    def test_deterministic(self):
        """Test identical configurations give identical runs."""
        config = quiet_config(num_messages=25, loss_prob=0.2, corrupt_prob=0.2, seed=8)

        first = Simulator(config).run()
        second = Simulator(config).run()

        for key in ('sender', 'receiver', 'channel', 'verification', 'metrics'):
            assert first[key] == second[key]
        assert first['simulation_time'] == second['simulation_time']

    def test_rerun_resets_state(self):
        """Test running one simulator twice repeats the same run."""
        sim = Simulator(quiet_config(num_messages=15, loss_prob=0.1, seed=4))

        first = sim.run()
        second = sim.run()

        assert first['sender'] == second['sender']
        assert first['verification'] == second['verification']

    def test_no_messages(self):
        """Test an empty run completes immediately."""
        results = Simulator(quiet_config(num_messages=0)).run()

        assert results['complete']
        assert results['verification']['valid']
        assert results['verification']['accepted'] == 0
        assert results['simulation_time'] == 0.0

    def test_time_limit(self):
        """Test a dead channel stops at the time limit without completing."""
        results = Simulator(quiet_config(num_messages=5, loss_prob=1.0, max_time=200.0)).run()

        assert not results['complete']
        assert not results['verification']['valid']
        assert results['verification']['delivered'] == 0
        assert results['simulation_time'] <= 200.0

    def test_rerun_after_time_limit(self):
        """Test a run cut off with the timer armed doesn't leak into the next run."""
        sim = Simulator(quiet_config(num_messages=5, loss_prob=1.0, max_time=200.0))

        first = sim.run()
        assert sim.sender.timer.is_running
        second = sim.run()

        assert first['sender'] == second['sender']
        assert first['simulation_time'] == second['simulation_time']

    @pytest.mark.parametrize("kwargs", [
        {'window_size': 6, 'seq_space': 11},
        {'window_size': 0},
        {'timeout': 0.0},
        {'num_messages': -1},
        {'message_interval': 0.0},
        {'loss_prob': 1.5},
    ])
    def test_invalid_configuration(self, kwargs):
        """Test bad settings are rejected before the run starts."""
        with pytest.raises(ConfigurationError):
            Simulator(quiet_config(**kwargs))

    def test_timer_start_twice(self):
        """Test starting a running timer schedules no second interrupt."""
        sim = Simulator(quiet_config())

        sim.start_timer(Entity.A, 16.0)
        sim.start_timer(Entity.A, 16.0)

        timers = [e for e in sim.event_queue if e.event_type == EventType.TIMER_INTERRUPT]
        assert len(timers) == 1
        assert sim.timers[Entity.A].running

    def test_stopped_timer_never_fires(self):
        """Test an interrupt scheduled before a stop is discarded."""
        sim = Simulator(quiet_config())
        sim.start_timer(Entity.A, 16.0)
        event = sim.event_queue[0]

        sim.stop_timer(Entity.A)
        sim.stop_timer(Entity.A)
        sim._handle_timer(event)

        assert not sim.timers[Entity.A].running
        assert sim.sender.timer.total_timeouts == 0

    def test_make_message(self):
        """Test generated messages cycle through the alphabet."""
        assert make_message(0).data == b'a' * PAYLOAD_SIZE
        assert make_message(25).data == b'z' * PAYLOAD_SIZE
        assert make_message(27).data == b'b' * PAYLOAD_SIZE

    def test_trace_level(self):
        """Test the trace level picks the logger verbosity."""
        assert SimulatorConfig(trace=0).get_log_level() == LogLevel.WARNING
        assert SimulatorConfig(trace=1).get_log_level() == LogLevel.INFO
        assert SimulatorConfig(trace=2).get_log_level() == LogLevel.DEBUG
        assert SimulatorConfig(trace=2, log_level=LogLevel.ERROR).get_log_level() == LogLevel.ERROR


class TestMetricsCollector:
    """Tests for MetricsCollector."""

    def test_efficiency(self):
        """Test efficiency counts payload bytes against every packet on the wire."""
        metrics = MetricsCollector()
        for _ in range(4):
            metrics.record_data_sent()
            metrics.record_ack_sent()
        metrics.record_delivery(5.0)
        metrics.record_delivery(7.0)

        assert metrics.total_bytes_transmitted == 8 * 32
        assert metrics.calculate_efficiency() == pytest.approx(2 * 20 / (8 * 32))

    def test_rates(self):
        """Test delivery and retransmission rates."""
        metrics = MetricsCollector()
        for accepted in (True, True, False):
            metrics.record_message(accepted)
        metrics.record_delivery(1.0)
        metrics.record_delivery(3.0)
        metrics.record_retransmission(3)

        assert metrics.calculate_delivery_ratio() == 1.0
        assert metrics.calculate_retransmission_rate() == 1.5
        assert metrics.get_latency_statistics()['mean'] == 2.0

    def test_empty_summary(self):
        """Test an empty collector reports zeros rather than failing."""
        summary = MetricsCollector().get_summary()

        assert summary['efficiency'] == 0.0
        assert summary['throughput'] == 0.0
        assert summary['latency']['samples'] == 0

    def test_window_occupancy(self):
        """Test occupancy is reported as a fraction of the window."""
        metrics = MetricsCollector()
        metrics.record_window_occupancy(3, 6)
        metrics.record_window_occupancy(6, 6)

        stats = metrics.get_summary()['window_occupancy']
        assert stats['mean'] == 0.75
        assert stats['max'] == 1.0


class TestSimulationLogger:
    """Tests for SimulationLogger."""

    def test_level_filter(self, capsys):
        """Test messages below the minimum level are suppressed."""
        logger = SimulationLogger(name="T", level=LogLevel.INFO, use_colors=False)

        logger.ack_sent(3)
        logger.timeout()

        out = capsys.readouterr().out
        assert "ACK 3 sent" not in out
        assert "Timeout, resend packets!" in out

    def test_sim_time_prefix(self, capsys):
        """Test lines carry the simulation time and category."""
        logger = SimulationLogger(name="T", level=LogLevel.DEBUG, use_colors=False)
        logger.set_sim_time(12.5)

        logger.delivered(4)

        line = capsys.readouterr().out.strip()
        assert line.startswith("[    12.500]")
        assert "[T] [DELIVER] Packet 4 delivered to layer 5" in line


class TestBatchRunner:
    """Tests for BatchRunner and the heatmap built from its results."""

    @pytest.fixture
    def runner(self, tmp_path):
        return BatchRunner(
            window_sizes=[1, 3],
            loss_probs=[0.0, 0.2],
            corrupt_probs=[0.0, 0.1],
            runs_per_config=2,
            num_messages=10,
            output_file=str(tmp_path / "results.csv")
        )

    def test_single_run_row(self):
        """Test one run produces a flat, valid row."""
        row = run_single_simulation(RunConfig(
            window_size=3, loss_prob=0.1, corrupt_prob=0.1,
            run_id=0, seed=42, num_messages=10
        ))

        assert row['error'] is None
        assert row['data_valid']
        assert row['max_outstanding'] <= 3

    def test_sequential_sweep(self, runner):
        """Test the sweep covers every configuration."""
        progress = []
        runner.on_progress = lambda done, total, _: progress.append((done, total))

        results = runner.run_sequential()

        assert len(results) == runner.total_runs == 16
        assert progress[-1] == (16, 16)
        assert len({r['seed'] for r in results}) == 16
        aggregated = runner.get_aggregated_results()
        assert len(aggregated) == 8
        assert all(data['all_valid'] for data in aggregated.values())

    def test_save_and_plot(self, runner, tmp_path):
        """Test results round-trip through CSV into a heatmap."""
        runner.run_sequential()
        runner.save_results()

        heatmap = RetransmissionHeatmap(csv_file=runner.output_file)
        table = heatmap.pivot(3)

        assert heatmap.window_sizes == [1, 3]
        assert table.shape == (2, 2)
        assert list(table.index) == [0.1, 0.0]
        assert heatmap.summary_matrix().shape == (2, 2, 2)

        path = heatmap.plot(output_file=str(tmp_path / "plots" / "retx.png"))
        assert os.path.exists(path)

    def test_plot_without_results(self):
        """Test plotting nothing is an error."""
        with pytest.raises(ValueError):
            RetransmissionHeatmap().plot()


class TestCommandLine:
    """Tests for the command line entry point."""

    def test_single_run(self, capsys):
        """Test a single simulation prints its results."""
        main.main(['--single', '--messages', '10', '--loss', '0.1', '--seed', '3'])

        out = capsys.readouterr().out
        assert "Data Valid: True" in out
        assert "Packets resent" in out

    def test_invalid_parameters(self):
        """Test inconsistent parameters exit with a usage error."""
        with pytest.raises(SystemExit) as exc:
            main.main(['--single', '--window', '6', '--seqspace', '7'])

        assert exc.value.code == 2

    def test_reorder_with_default_timeout(self):
        """Test reordering with the default timeout is a usage error."""
        with pytest.raises(SystemExit) as exc:
            main.main(['--single', '--reorder', '0.2'])

        assert exc.value.code == 2

    def test_reorder_with_long_timeout(self, capsys):
        """Test reordering runs once the timeout covers a reordered round trip."""
        main.main(['--single', '--messages', '10', '--reorder', '0.2', '--timeout', '35'])

        assert "Data Valid: True" in capsys.readouterr().out

    def test_mode_required(self):
        """Test a mode flag is mandatory."""
        with pytest.raises(SystemExit):
            main.main([])

    def test_visualize_missing_csv(self, tmp_path, capsys):
        """Test visualizing without results reports the missing file."""
        main.main(['--visualize', '--csv', str(tmp_path / "missing.csv")])

        assert "Results file not found" in capsys.readouterr().out
