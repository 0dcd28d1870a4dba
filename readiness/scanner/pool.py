"""
Module providing a pool of a fixed number of workers for running coroutines.
"""

import asyncio
import logging


logger = logging.getLogger(__name__)


class WorkerPool:
    """
    Pool that runs submitted coroutine functions using a fixed number of workers.

    At most ``workers`` submitted functions run at the same time, and the rest wait in a
    queue until a worker is free. Functions run in no particular order relative to each
    other. An exception escaping a function is logged and does not affect other functions.
    """
    def __init__(self, workers):
        if workers < 1:
            raise ValueError(f'worker count must be at least 1, got {workers}')
        self.workers = workers
        self._queue = asyncio.Queue()
        self._tasks = []
        self._stopped = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_value, traceback):
        await self.stop_wait()

    def submit(self, fn, *args):
        """
        Queue a call of the coroutine function ``fn`` with the given arguments.
        """
        if self._stopped:
            raise RuntimeError('cannot submit to a stopped worker pool')
        # The workers are started with the first submission, so that the pool can be
        # created before the event loop is running
        if not self._tasks:
            self._tasks = [asyncio.create_task(self._work()) for _ in range(self.workers)]
        self._queue.put_nowait((fn, args))

    async def _work(self):
        while True:
            item = await self._queue.get()
            try:
                # None tells the worker to exit
                if item is None:
                    return
                fn, args = item
                try:
                    await fn(*args)
                except Exception:
                    logger.exception(f'Unhandled error in worker task {getattr(fn, "__name__", fn)}')
            finally:
                self._queue.task_done()

    async def stop_wait(self):
        """
        Stop accepting submissions and wait for all the queued functions to complete.
        """
        self._stopped = True
        # The stop markers queue up behind the submitted work
        for _ in self._tasks:
            self._queue.put_nowait(None)
        await asyncio.gather(*self._tasks)
