from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, List, Optional, Tuple, TypeVar

from .base import CrawlEngine, CrawlReport, TaskFailure, TaskState, TraversalTask
from .observers import SnapshotObserver, TaskObserver
from .pool import SessionPool
from ..config import CrawlConfig
from ..errors import CrawlFailedError, ExtractionError, SessionError, SessionTimeoutError
from ..export.base import Exporter
from ..filters import dedupe_filters
from ..sessions.base import Item, Session, SessionFactory
from ..store import ItemStore
from ..utils.loader import load_symbol

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_RETRY_DELAY = 5.0


class FacetCrawlEngine(CrawlEngine):
    """
    Walks the facet tree of one storefront listing.
    - The pool owns sessions and concurrency.
    - Sessions own the page mechanics.
    - The engine owns traversal, retries and the item store.
    """
    def __init__(
        self,
        config: CrawlConfig,
        session_factory: Optional[SessionFactory] = None,
        *,
        store: Optional[ItemStore] = None,
        exporter: Optional[Exporter] = None,
        observer: Optional[TaskObserver] = None,
    ) -> None:
        self.config = config
        self.session_factory = session_factory or load_symbol(config.session)(config)
        self.store = store if store is not None else ItemStore(config.positional_fields)
        self.exporter = exporter if exporter is not None else load_symbol(config.exporter)()
        if observer is None and config.snapshot_dir:
            observer = SnapshotObserver(config.snapshot_dir)
        self.observer = observer
        self.failures: List[TaskFailure] = []
        self.completed = 0

    async def crawl(self) -> CrawlReport:
        cfg = self.config
        root = TraversalTask.root(cfg.filter_groups)
        pool = SessionPool(
            self.session_factory,
            self.run_task,
            max_sessions=cfg.max_concurrency,
            branch_depth=cfg.branch_depth,
            acquire_retries=cfg.retries,
        )

        logger.info("Crawling %s through %s", cfg.start_url, " > ".join(cfg.filter_groups))
        pool.submit(root, critical=True)
        try:
            await pool.drain()
        finally:
            await pool.close()
            await self.session_factory.close()

        for task, exc in pool.unstarted:
            self.failures.append(TaskFailure(task=task, error=exc, attempts=pool.acquire_retries + 1))
        self._export()

        report = self.report()
        root_failure = next((f for f in self.failures if f.task == root), None)
        if root_failure is not None:
            raise CrawlFailedError(root_failure)

        logger.info(
            "Crawl finished: %d item(s), %d task(s) completed, %d abandoned, %d session(s) used",
            report.items,
            report.completed,
            len(report.failures),
            pool.sessions_acquired,
        )
        return report

    def report(self) -> CrawlReport:
        snapshot = self.store.snapshot()
        return CrawlReport(
            items=len(snapshot),
            associations=sum(len(filters) for _, filters in snapshot),
            completed=self.completed,
            failures=list(self.failures),
            inconsistencies=len(self.store.warnings),
        )

    # ---- Task execution -----------------------------------------------------

    async def run_task(self, task: TraversalTask, session: Session) -> List[TraversalTask]:
        """
        Run one task to completion on ``session``, retrying session failures.
        Returns its children; a failed or leaf task has none.
        """
        attempts = self.config.retries + 1
        attempt = 0
        while True:
            attempt += 1
            await self._notify(task, TaskState.RUNNING, session=session)
            try:
                items, children = await self._explore(task, session)
            except SessionError as exc:
                if attempt < attempts:
                    logger.warning(
                        "Error while crawling %s; retrying (%d/%d): %r",
                        task.describe(), attempt, attempts, exc,
                    )
                    await asyncio.sleep(self._retry_delay(attempt))
                    continue
                logger.error("Failed to crawl %s after %d attempt(s): %r", task.describe(), attempts, exc)
                self.failures.append(TaskFailure(task=task, error=exc, attempts=attempts))
                await self._notify(task, TaskState.FAILED, session=session, error=exc)
                return []

            self.completed += 1
            self._export()
            await self._notify(task, TaskState.COMPLETED, session=session, items=items)
            return children

    async def _explore(
        self, task: TraversalTask, session: Session
    ) -> Tuple[List[Item], List[TraversalTask]]:
        # A reused session still carries the previous task's selection.
        logger.info("Applying filters... %s", task.describe())
        await self._step(session.open(self.config.start_url), "open start page")
        await self._step(session.reset_filters(), "reset filters")
        for f in task.filter_path:
            await self._step(session.apply_filter(f), f"apply {f}")

        # Only the first page of a view is read; "load more" is never triggered.
        logger.info("Extracting products... %s", task.describe())
        items = await self._step(session.extract_items(), "extract items")
        for item in items:
            self.store.record(item, task.filter_path)

        if task.is_leaf:
            return items, []

        group = task.next_group
        filters = dedupe_filters(await self._step(session.list_filters(group), f"list {group} filters"))
        try:
            children = [task.child(f) for f in filters]
        except ValueError as exc:
            raise ExtractionError(str(exc)) from exc
        logger.info(
            "Found %d %s filters for %s: %s",
            len(filters), group, task.describe(), ", ".join(f.name for f in filters),
        )
        return items, children

    async def _step(self, call: Awaitable[T], what: str) -> T:
        timeout = self.config.step_timeout
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise SessionTimeoutError(f"{what} timed out after {timeout}s") from exc

    def _retry_delay(self, attempt: int) -> float:
        return min(self.config.retry_backoff * 2 ** (attempt - 1), MAX_RETRY_DELAY)

    # ---- Side effects -------------------------------------------------------

    def _export(self) -> None:
        # Rewritten after every task so a crash keeps what was already seen.
        self.exporter.export(self.store.snapshot(), self.config.output_dir)

    async def _notify(self, task: TraversalTask, state: TaskState, **details: Any) -> None:
        if self.observer is None:
            return
        try:
            await self.observer.on_transition(task, state, **details)
        except Exception as exc:  # a debug hook must not fail the task
            logger.warning("Observer failed on %s (%s): %r", task.describe(), state.value, exc)
