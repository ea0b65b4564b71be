"""Per-job serialization of timeline mutations."""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Dict

logger = logging.getLogger(__name__)


class TimelineLocks:
    """
    One asyncio.Lock per job id.

    Detection, manual replacement and deletion of a job's timeline run under
    the job's lock so their delete/insert sequences never interleave. Reads
    do not take it. Locks are dropped once nobody holds or waits for them.
    A second registry serializes physical splits, which share a per-job
    output directory.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, job_id: str):
        """Hold the lock for a job for the duration of the block."""
        lock = self._locks.setdefault(job_id, asyncio.Lock())
        self._users[job_id] = self._users.get(job_id, 0) + 1
        try:
            if lock.locked():
                logger.debug(f"Waiting for timeline lock of job {job_id}")
            async with lock:
                yield
        finally:
            self._users[job_id] -= 1
            if self._users[job_id] == 0:
                del self._users[job_id]
                del self._locks[job_id]

    def is_locked(self, job_id: str) -> bool:
        """Check if a timeline mutation is in progress for a job."""
        lock = self._locks.get(job_id)
        return lock is not None and lock.locked()

    def __len__(self):
        return len(self._locks)


# Global lock registry
timeline_locks = TimelineLocks()

# Physical splits of one job share an output directory
split_output_locks = TimelineLocks()
