from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Sequence, Tuple
from abc import ABC, abstractmethod

from ..filters import Filter, FilterPath, path_matches_groups, render_path


class TaskState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class TraversalTask:
    """
    One node of the facet tree: the filters applied so far and the groups
    still to explore below it. Immutable; children are new values.
    """
    filter_path: FilterPath = ()
    remaining_groups: Tuple[str, ...] = ()

    @classmethod
    def root(cls, groups: Sequence[str]) -> "TraversalTask":
        return cls(filter_path=(), remaining_groups=tuple(groups))

    @property
    def depth(self) -> int:
        return len(self.filter_path)

    @property
    def is_leaf(self) -> bool:
        return not self.remaining_groups

    @property
    def next_group(self) -> str:
        return self.remaining_groups[0]

    def child(self, filter: Filter) -> "TraversalTask":
        if self.is_leaf:
            raise ValueError(f"leaf task {self.describe()} has no children")
        path = self.filter_path + (filter,)
        groups = tuple(f.group for f in self.filter_path) + self.remaining_groups
        if not path_matches_groups(path, groups):
            raise ValueError(f"{filter} does not belong to group {self.next_group!r}")
        return TraversalTask(filter_path=path, remaining_groups=self.remaining_groups[1:])

    def describe(self) -> str:
        return render_path(self.filter_path) or "(unfiltered)"


@dataclass
class TaskFailure:
    task: TraversalTask
    error: BaseException
    attempts: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": [f.to_dict() for f in self.task.filter_path],
            "remainingGroups": list(self.task.remaining_groups),
            "error": repr(self.error),
            "attempts": self.attempts,
        }


@dataclass
class CrawlReport:
    items: int = 0
    associations: int = 0
    completed: int = 0
    failures: List[TaskFailure] = field(default_factory=list)
    inconsistencies: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": self.items,
            "associations": self.associations,
            "completed": self.completed,
            "failed": len(self.failures),
            "failures": [f.to_dict() for f in self.failures],
            "inconsistencies": self.inconsistencies,
        }


class CrawlEngine(ABC):
    """
    Abstract engine interface. Implementations own the crawl lifecycle.
    """
    @abstractmethod
    async def crawl(self) -> CrawlReport:  # pragma: no cover - interface
        ...
