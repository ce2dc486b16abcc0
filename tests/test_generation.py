"""Tests for generation teardown."""

import threading
from unittest.mock import MagicMock

from ckrunner.generation import Generation


def mock_process(name: str) -> MagicMock:
    process = MagicMock()
    process.name = name
    process.pid = hash(name) % 10000
    return process


class TestGeneration:
    """Tests for Generation."""

    def test_initial_state(self):
        """Test a fresh generation is neither cancelled nor closed."""
        generation = Generation(generation_id=1, processes=[mock_process("a")])
        assert not generation.cancelled
        assert not generation.closed
        assert generation.names == ["a"]

    def test_cancel_stops_every_process(self):
        """Test cancelling tears down the whole set."""
        processes = [mock_process("a"), mock_process("b"), mock_process("c")]
        generation = Generation(generation_id=1, processes=processes, stop_timeout=1.0)
        generation.start()

        generation.cancel()

        assert generation.wait_closed(timeout=5.0)
        for process in processes:
            process.stop.assert_called_once_with(timeout=1.0)

    def test_no_teardown_without_cancel(self):
        """Test processes are left alone until the token fires."""
        process = mock_process("a")
        generation = Generation(generation_id=1, processes=[process])
        generation.start()

        assert not generation.wait_closed(timeout=0.1)
        process.stop.assert_not_called()

        generation.close(timeout=5.0)

    def test_cancel_is_idempotent(self):
        """Test cancelling twice stops each process only once."""
        processes = [mock_process("a"), mock_process("b")]
        generation = Generation(generation_id=1, processes=processes)
        generation.start()

        generation.cancel()
        generation.cancel()
        assert generation.wait_closed(timeout=5.0)
        generation.cancel()

        for process in processes:
            process.stop.assert_called_once()

    def test_concurrent_cancel_runs_teardown_once(self):
        """Test racing cancels from many threads still tear down once."""
        process = mock_process("a")
        generation = Generation(generation_id=1, processes=[process])
        generation.start()

        threads = [threading.Thread(target=generation.cancel) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert generation.wait_closed(timeout=5.0)
        process.stop.assert_called_once()

    def test_cancel_before_start(self):
        """Test cancel works even if the teardown thread never started."""
        process = mock_process("a")
        generation = Generation(generation_id=1, processes=[process])

        generation.cancel()

        assert generation.closed
        process.stop.assert_called_once()

    def test_stop_failure_does_not_skip_siblings(self):
        """Test one failing stop doesn't leave the others running."""
        bad = mock_process("bad")
        bad.stop.side_effect = OSError("gone")
        good = mock_process("good")
        generation = Generation(generation_id=1, processes=[bad, good])
        generation.start()

        assert generation.close(timeout=5.0)
        good.stop.assert_called_once()

    def test_pids(self):
        """Test pids are reported per name."""
        a = mock_process("a")
        a.pid = 101
        b = mock_process("b")
        b.pid = 102
        generation = Generation(generation_id=3, processes=[a, b])
        assert generation.pids == {"a": 101, "b": 102}
