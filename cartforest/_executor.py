# _executor.py
import logging
import os
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait

from .exceptions import EnsembleTrainingError

logger = logging.getLogger(__name__)

DISABLE_THREADS_ENV = "CARTFOREST_DISABLE_THREADS"


def _threads_disabled_by_env():
    value = os.environ.get(DISABLE_THREADS_ENV, "")
    return value.strip().lower() in ("1", "true", "yes", "on")


def _can_start_thread():
    probe = threading.Thread(target=lambda: None, name="cartforest-probe")
    try:
        probe.start()
    except RuntimeError:
        return False
    probe.join()
    return True


class TaskExecutor:
    """Run independent tasks on a thread pool, or sequentially when the host
    does not allow threads.

    Parameters
    ----------
    n_jobs : int
        Number of workers; ``<= 0`` uses one worker per CPU.
    allow_threads : bool
        False forces sequential execution in the calling thread.
    """

    def __init__(self, n_jobs=1, allow_threads=True):
        self.n_jobs = n_jobs
        self.allow_threads = allow_threads

    def pool_size(self, n_tasks):
        n_jobs = self.n_jobs
        if n_jobs <= 0:
            n_jobs = os.cpu_count() or 1
        return max(1, min(n_jobs, n_tasks))

    def _use_threads(self, n_workers):
        if n_workers <= 1:
            return False
        if not self.allow_threads:
            logger.warning("Threads are not allowed by the host; running tasks sequentially")
            return False
        if _threads_disabled_by_env():
            logger.warning("%s is set; running tasks sequentially", DISABLE_THREADS_ENV)
            return False
        if not _can_start_thread():
            logger.warning("Cannot start worker threads; running tasks sequentially")
            return False
        return True

    def run(self, tasks):
        """Run every callable of ``tasks`` and return their results in order.

        The first failure cancels the tasks that have not started yet and is
        raised as EnsembleTrainingError.
        """
        tasks = list(tasks)
        if not tasks:
            return []
        n_workers = self.pool_size(len(tasks))
        if not self._use_threads(n_workers):
            return self._run_sequential(tasks)

        logger.debug("Running %d tasks on %d threads", len(tasks), n_workers)
        with ThreadPoolExecutor(max_workers=n_workers,
                                thread_name_prefix="cartforest") as executor:
            futures = [executor.submit(task) for task in tasks]
            done, not_done = wait(futures, return_when=FIRST_EXCEPTION)
            for future in futures:
                if future in done and future.exception() is not None:
                    for pending in not_done:
                        pending.cancel()
                    self._raise_failure(future.exception())
        return [future.result() for future in futures]

    def _run_sequential(self, tasks):
        results = []
        for task in tasks:
            try:
                results.append(task())
            except Exception as e:
                self._raise_failure(e)
        return results

    @staticmethod
    def _raise_failure(cause):
        if isinstance(cause, EnsembleTrainingError):
            raise cause
        raise EnsembleTrainingError(
            "Exception caused while building a tree: %s" % cause) from cause
