import threading

import pytest

from cartforest._executor import DISABLE_THREADS_ENV, TaskExecutor
from cartforest.exceptions import EnsembleTrainingError


def _record_thread(seen):
    def task():
        seen.append(threading.get_ident())
        return len(seen)
    return task


class TestTaskExecutor:
    """Thread pool with sequential fallback."""

    def test_results_in_task_order(self):
        executor = TaskExecutor(n_jobs=4)
        results = executor.run([lambda i=i: i * i for i in range(8)])
        assert results == [i * i for i in range(8)]

    def test_empty(self):
        assert TaskExecutor(n_jobs=4).run([]) == []

    def test_pool_size(self):
        executor = TaskExecutor(n_jobs=8)
        assert executor.pool_size(3) == 3
        assert TaskExecutor(n_jobs=0).pool_size(1) == 1

    def test_single_job_runs_in_caller(self):
        seen = []
        TaskExecutor(n_jobs=1).run([_record_thread(seen) for _ in range(3)])
        assert set(seen) == {threading.get_ident()}

    def test_threads_not_allowed(self):
        seen = []
        TaskExecutor(n_jobs=4, allow_threads=False).run([_record_thread(seen) for _ in range(3)])
        assert set(seen) == {threading.get_ident()}

    def test_threads_disabled_by_environment(self, monkeypatch):
        monkeypatch.setenv(DISABLE_THREADS_ENV, "1")
        seen = []
        TaskExecutor(n_jobs=4).run([_record_thread(seen) for _ in range(3)])
        assert set(seen) == {threading.get_ident()}

    def test_sequential_failure_stops_remaining_tasks(self):
        ran = []

        def fail():
            raise ValueError("boom")

        with pytest.raises(EnsembleTrainingError) as excinfo:
            TaskExecutor(n_jobs=1).run([fail, lambda: ran.append(1)])
        assert isinstance(excinfo.value.__cause__, ValueError)
        assert ran == []

    def test_threaded_failure_propagates(self):
        def fail():
            raise KeyError("missing")

        tasks = [lambda: 1, fail, lambda: 3]
        with pytest.raises(EnsembleTrainingError) as excinfo:
            TaskExecutor(n_jobs=3).run(tasks)
        assert isinstance(excinfo.value.__cause__, KeyError)
