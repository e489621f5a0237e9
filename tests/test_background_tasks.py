"""
Tests for src/background_tasks.py: worker thread task runners.

Requires: pytest-qt.

Tests cover:
- BackgroundTaskRunner delivers results and errors on the UI thread
- Finished workers are released
- ImmediateTaskRunner runs inline and re-raises without an error callback
"""

import threading
import time

import pytest

from background_tasks import BackgroundTaskRunner, ImmediateTaskRunner, TaskWorker


class TestTaskWorker:

    def test_emits_result(self, qtbot):
        worker = TaskWorker(lambda: 41 + 1, name='answer')
        with qtbot.waitSignal(worker.task_succeeded, timeout=5000) as blocker:
            worker.start()
        worker.wait(5000)
        assert blocker.args == [42]

    def test_emits_error(self, qtbot):
        def boom():
            raise ValueError("bad")

        worker = TaskWorker(boom)
        with qtbot.waitSignal(worker.task_failed, timeout=5000) as blocker:
            worker.start()
        worker.wait(5000)
        assert isinstance(blocker.args[0], ValueError)


class TestBackgroundTaskRunner:

    def test_result_delivered_on_ui_thread(self, qtbot):
        runner = BackgroundTaskRunner()
        ui_thread = threading.get_ident()
        seen = {}

        def task():
            seen['task_thread'] = threading.get_ident()
            return "done"

        def on_success(result):
            seen['result'] = result
            seen['callback_thread'] = threading.get_ident()

        runner.run(task, on_success, name='lookup')
        qtbot.waitUntil(lambda: 'result' in seen, timeout=5000)

        assert seen['result'] == "done"
        assert seen['callback_thread'] == ui_thread
        assert seen['task_thread'] != ui_thread

    def test_error_delivered(self, qtbot):
        runner = BackgroundTaskRunner()
        errors = []

        def task():
            raise RuntimeError("service down")

        runner.run(task, lambda _result: None, errors.append)
        qtbot.waitUntil(lambda: len(errors) == 1, timeout=5000)
        assert str(errors[0]) == "service down"

    def test_finished_workers_released(self, qtbot):
        runner = BackgroundTaskRunner()
        results = []
        runner.run(lambda: 1, results.append)
        qtbot.waitUntil(lambda: results == [1] and runner.active_count == 0, timeout=5000)

    def test_shutdown_waits(self, qtbot):
        runner = BackgroundTaskRunner()
        runner.run(lambda: time.sleep(0.05), lambda _r: None)
        runner.shutdown(5000)
        qtbot.waitUntil(lambda: runner.active_count == 0, timeout=5000)


class TestImmediateTaskRunner:

    def test_runs_inline(self):
        results = []
        ImmediateTaskRunner().run(lambda: threading.get_ident(), results.append)
        assert results == [threading.get_ident()]

    def test_error_callback(self):
        errors = []

        def task():
            raise KeyError("x")

        ImmediateTaskRunner().run(task, lambda _r: None, errors.append)
        assert isinstance(errors[0], KeyError)

    def test_reraises_without_error_callback(self):
        def task():
            raise KeyError("x")

        with pytest.raises(KeyError):
            ImmediateTaskRunner().run(task, lambda _r: None)
