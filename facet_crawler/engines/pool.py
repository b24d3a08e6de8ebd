from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Set, Tuple

from ..errors import PoolExhaustionError
from ..sessions.base import Session, SessionFactory
from .base import TraversalTask

logger = logging.getLogger(__name__)

TaskRunner = Callable[[TraversalTask, Session], Awaitable[Sequence[TraversalTask]]]


@dataclass
class _Lane:
    session: Session
    stack: List[TraversalTask] = field(default_factory=list)


class SessionPool:
    """
    Bounded pool of lanes. A lane owns one session for its whole life and
    runs a stack of tasks on it depth-first, one at a time.

    - ``submit(task)`` opens a new lane, acquiring a fresh session once one of
      ``max_sessions`` slots is free.
    - ``submit(task, session)`` continues on the lane that holds ``session``.
    - Children returned by the runner at depth ``<= branch_depth`` get new
      lanes; deeper children stay on their parent's session.
    """

    def __init__(
        self,
        factory: SessionFactory,
        runner: TaskRunner,
        *,
        max_sessions: int,
        branch_depth: int = 1,
        acquire_retries: int = 0,
    ) -> None:
        if max_sessions <= 0:
            raise ValueError("max_sessions must be > 0")
        self.factory = factory
        self.runner = runner
        self.max_sessions = max_sessions
        self.branch_depth = branch_depth
        self.acquire_retries = acquire_retries

        self._slots = asyncio.Semaphore(max_sessions)
        self._lanes: Dict[int, _Lane] = {}
        self._workers: Set[asyncio.Task] = set()
        self._pending = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self._closing = False
        self._fatal: Optional[BaseException] = None

        self.sessions_acquired = 0
        self.active_sessions = 0
        self.peak_sessions = 0
        # Branches that never ran because no session could be acquired.
        self.unstarted: List[Tuple[TraversalTask, PoolExhaustionError]] = []
        # Tasks discarded because the pool was closing.
        self.dropped: List[TraversalTask] = []

    # ---- Submission ---------------------------------------------------------

    def submit(
        self,
        task: TraversalTask,
        session: Optional[Session] = None,
        *,
        critical: bool = False,
    ) -> None:
        if self._closing:
            logger.warning("Pool is closing; dropping %s", task.describe())
            self.dropped.append(task)
            return

        if session is None:
            self._started(1)
            worker = asyncio.create_task(self._run_lane(task, critical))
            self._workers.add(worker)
            worker.add_done_callback(self._workers.discard)
            return

        lane = self._lanes.get(id(session))
        if lane is None:
            raise ValueError("session is not held by a lane of this pool")
        self._started(1)
        lane.stack.append(task)

    async def drain(self) -> None:
        """Wait until no task is left anywhere; re-raise a fatal pool error."""
        await self._idle.wait()
        while self._workers:
            await asyncio.gather(*list(self._workers), return_exceptions=True)
        if self._fatal is not None:
            raise self._fatal

    async def close(self) -> None:
        """
        Stop taking tasks. Running tasks finish their current step, queued
        ones are dropped, and every session is released.
        """
        self._closing = True
        while self._workers:
            await asyncio.gather(*list(self._workers), return_exceptions=True)

    # ---- Lanes --------------------------------------------------------------

    async def _run_lane(self, first: TraversalTask, critical: bool) -> None:
        async with self._slots:
            if self._closing:
                self._drop([first])
                return
            try:
                session = await self._acquire()
            except PoolExhaustionError as exc:
                if critical:
                    self._fail(exc)
                else:
                    logger.error("Abandoning branch %s: %s", first.describe(), exc)
                    self.unstarted.append((first, exc))
                self._finished(1)
                return

            lane = _Lane(session=session, stack=[first])
            self._lanes[id(session)] = lane
            self.active_sessions += 1
            self.peak_sessions = max(self.peak_sessions, self.active_sessions)
            try:
                await self._work(lane)
            finally:
                del self._lanes[id(session)]
                self.active_sessions -= 1
                await self._release(session)

    async def _work(self, lane: _Lane) -> None:
        while lane.stack:
            if self._closing:
                self._drop(lane.stack)
                lane.stack.clear()
                return
            task = lane.stack.pop()
            try:
                children = await self.runner(task, lane.session)
            except Exception as exc:
                logger.exception("Unrecoverable error while crawling %s", task.describe())
                self._fail(exc)
                self._finished(1)
                continue
            self._dispatch(children, lane.session)
            self._finished(1)

    def _dispatch(self, children: Sequence[TraversalTask], session: Session) -> None:
        branches = [c for c in children if c.depth <= self.branch_depth]
        continued = [c for c in children if c.depth > self.branch_depth]
        for child in branches:
            self.submit(child)
        # Stack order: the first child is explored first.
        for child in reversed(continued):
            self.submit(child, session)

    # ---- Sessions -----------------------------------------------------------

    async def _acquire(self) -> Session:
        last_exc: Optional[Exception] = None
        for attempt in range(self.acquire_retries + 1):
            try:
                session = await self.factory.acquire()
            except Exception as exc:  # any factory failure counts against the budget
                last_exc = exc
                logger.warning("Session acquisition attempt %s failed: %r", attempt + 1, exc)
                continue
            self.sessions_acquired += 1
            return session
        raise PoolExhaustionError(
            f"could not acquire a session after {self.acquire_retries + 1} attempts"
        ) from last_exc

    async def _release(self, session: Session) -> None:
        try:
            await self.factory.release(session)
        except Exception:
            logger.warning("Failed to release session", exc_info=True)

    # ---- Bookkeeping --------------------------------------------------------

    def _started(self, count: int) -> None:
        self._pending += count
        self._idle.clear()

    def _finished(self, count: int) -> None:
        self._pending -= count
        if self._pending <= 0:
            self._pending = 0
            self._idle.set()

    def _drop(self, tasks: Sequence[TraversalTask]) -> None:
        if tasks:
            logger.warning("Pool is closing; dropping %d queued task(s)", len(tasks))
            self.dropped.extend(tasks)
        self._finished(len(tasks))

    def _fail(self, exc: BaseException) -> None:
        if self._fatal is None:
            self._fatal = exc
        self._closing = True
