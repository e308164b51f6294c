import threading
from unittest.mock import Mock

from onramp.services.sweeper import PeriodicSweeper


def test_run_once_returns_task_result():
    sweeper = PeriodicSweeper(lambda: 3, interval=60)

    assert sweeper.run_once() == 3


def test_run_once_survives_task_errors():
    task = Mock(side_effect=RuntimeError("boom"))
    sweeper = PeriodicSweeper(task, interval=60)

    assert sweeper.run_once() is None
    task.assert_called_once()


def test_thread_ticks_until_stopped():
    ticked = threading.Event()
    sweeper = PeriodicSweeper(ticked.set, interval=0.01, name="test-sweeper")

    sweeper.start()
    try:
        assert ticked.wait(2)
        assert sweeper.running
    finally:
        sweeper.stop(timeout=2)

    assert not sweeper.running
