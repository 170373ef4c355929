import asyncio
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, Literal, Optional, Set

from engine.engine import Engine
from engine.model import RecommendResult, Side
from .eventlog import Event, EventLog

JobStatus = Literal["queued", "running", "done", "failed"]


@dataclass
class Job:
    id: str
    key: str
    status: JobStatus = "queued"
    result: Optional[RecommendResult] = None
    error: Optional[str] = None


def _now_ms() -> int:
    return int(time.time() * 1000)


class JobRunner:
    """Async driver that runs formation searches off the event loop.

    A search is CPU bound and cannot be interrupted part way, so each one runs
    whole in a worker thread. Results are deterministic for identical inputs
    and are memoised by request.

    Both stores are bounded: the result cache keeps the `cache_size` most
    recently used requests, and once more than `max_jobs` jobs are held the
    oldest finished ones are forgotten. Queued and running jobs are never
    dropped.
    """

    def __init__(self, engine: Engine, cache_size: int = 128, max_jobs: int = 1000):
        self.engine = engine
        self.events = EventLog()
        self.cache_size = max(0, cache_size)
        self.max_jobs = max(1, max_jobs)
        self._jobs: Dict[str, Job] = {}
        self._cache: "OrderedDict[str, RecommendResult]" = OrderedDict()
        self._tasks: Set[asyncio.Task] = set()

    def _log(self, kind: str, job: Job, **data) -> None:
        self.events.append(Event(kind, _now_ms(), {"job_id": job.id, "status": job.status, **data}))

    def _cache_get(self, key: str) -> Optional[RecommendResult]:
        result = self._cache.get(key)
        if result is not None:
            self._cache.move_to_end(key)
        return result

    def _cache_put(self, key: str, result: RecommendResult) -> None:
        if self.cache_size == 0:
            return
        self._cache[key] = result
        self._cache.move_to_end(key)
        while len(self._cache) > self.cache_size:
            self._cache.popitem(last=False)

    def _prune_jobs(self, keep: str) -> None:
        """Drop the oldest finished jobs, other than `keep`, while over max_jobs."""
        excess = len(self._jobs) - self.max_jobs
        if excess <= 0:
            return
        # dicts keep insertion order, so this walks oldest first
        finished = [job_id for job_id, job in self._jobs.items()
                    if job_id != keep and job.status in ("done", "failed")]
        for job_id in finished[:excess]:
            del self._jobs[job_id]

    def job_count(self) -> int:
        return len(self._jobs)

    def cached_count(self) -> int:
        return len(self._cache)

    async def submit(self, my: Side, enemy: Side, battle_type_id: int, march_size: float,
                     target_win: Optional[float] = None, sims: Optional[int] = None) -> Job:
        """Register a formation search and start it in the background."""
        key = repr((my, enemy, battle_type_id, march_size, target_win, sims))
        job = Job(id=uuid.uuid4().hex, key=key)
        self._jobs[job.id] = job
        self._prune_jobs(keep=job.id)

        cached = self._cache_get(key)
        if cached is not None:
            job.status = "done"
            job.result = cached
            self._log("JobCached", job)
            return job

        self._log("JobQueued", job, march_size=march_size, battle_type_id=battle_type_id)
        task = asyncio.create_task(
            self._run(job, my, enemy, battle_type_id, march_size, target_win, sims))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return job

    async def _run(self, job: Job, my: Side, enemy: Side, battle_type_id: int,
                   march_size: float, target_win: Optional[float], sims: Optional[int]):
        """Run one search to completion and record the outcome."""
        job.status = "running"
        self._log("JobStarted", job)
        started = time.perf_counter()
        try:
            result = await asyncio.to_thread(
                self.engine.recommend_formation,
                my, enemy, battle_type_id, march_size, target_win, sims)
        except asyncio.CancelledError:
            job.status = "failed"
            job.error = "cancelled"
            self._log("JobCancelled", job)
            raise
        except Exception as exc:
            job.status = "failed"
            job.error = str(exc)
            print(f"[Runner] Job {job.id} failed: {exc!r}")
            self._log("JobFailed", job, error=job.error)
            return

        job.result = result
        job.status = "done"
        self._cache_put(job.key, result)
        elapsed = time.perf_counter() - started
        print(f"[Runner] Job {job.id} done in {elapsed:.2f}s (win {result.win_pct:.3f})")
        self._log("JobFinished", job, win_pct=result.win_pct, elapsed_s=elapsed)

    def get(self, job_id: str) -> Optional[Job]:
        return self._jobs.get(job_id)

    async def wait(self, job_id: str, poll_s: float = 0.01, timeout_s: float = 60.0) -> Optional[Job]:
        """Poll until the job leaves queued/running, or the timeout passes."""
        deadline = time.monotonic() + timeout_s
        job = self.get(job_id)
        while job and job.status in ("queued", "running") and time.monotonic() < deadline:
            await asyncio.sleep(poll_s)
        return job

    async def estimate(self, me: Side, enemy: Side, battle_type_id: int,
                       sims: Optional[int] = None) -> float:
        """Single win estimate, computed in a worker thread."""
        return await asyncio.to_thread(self.engine.estimate_win_pct, me, enemy, battle_type_id, sims)

    async def stop(self):
        """Cancel outstanding searches."""
        if not self._tasks:
            return
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        print(f"[Runner] Cancelled {len(tasks)} pending job(s)")
