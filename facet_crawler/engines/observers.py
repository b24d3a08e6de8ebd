from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional, Protocol

from .base import TaskState, TraversalTask
from ..sessions.base import Item, Session
from ..utils.parsing import slugify_path

logger = logging.getLogger(__name__)


class TaskObserver(Protocol):
    """Hook invoked by the engine on every task state transition."""

    async def on_transition(
        self,
        task: TraversalTask,
        state: TaskState,
        *,
        session: Optional[Session] = None,
        items: Optional[List[Item]] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        ...


class SnapshotObserver:
    """
    Dumps what each completed task saw, for checking selectors by eye:
    ``<path>-products.json``, ``<path>-filters.json`` and, when the session
    can take one, a full-page ``<path>.png``.
    """

    def __init__(self, directory: str) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    async def on_transition(
        self,
        task: TraversalTask,
        state: TaskState,
        *,
        session: Optional[Session] = None,
        items: Optional[List[Item]] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        if state is not TaskState.COMPLETED:
            return
        name = slugify_path(task.filter_path)
        with open(self.directory / f"{name}-products.json", "w", encoding="utf-8") as f:
            json.dump([item.to_dict() for item in items or []], f, indent=2, ensure_ascii=False)
        with open(self.directory / f"{name}-filters.json", "w", encoding="utf-8") as f:
            json.dump([flt.to_dict() for flt in task.filter_path], f, indent=2, ensure_ascii=False)

        screenshot = getattr(session, "screenshot", None)
        if screenshot is None:
            return
        try:
            await screenshot(str(self.directory / f"{name}.png"))
        except Exception as exc:  # a missing screenshot should not fail the task
            logger.warning("Screenshot failed for %s: %r", task.describe(), exc)
