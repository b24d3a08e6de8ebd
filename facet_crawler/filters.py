from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Sequence, Tuple


@dataclass(frozen=True)
class Filter:
    """
    One refinement value within a facet group, e.g. ``Color: Red``.

    Identity is ``(group, name)``. The indices record where the control sat in
    the facet panel when it was discovered and take no part in equality.
    """

    group: str
    name: str
    group_index: int = field(default=0, compare=False)
    index_in_group: int = field(default=0, compare=False)

    def __str__(self) -> str:
        return f"({self.group}: {self.name})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "group": self.group,
            "name": self.name,
            "groupIndex": self.group_index,
            "indexInGroup": self.index_in_group,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Filter":
        return cls(
            group=data["group"],
            name=data["name"],
            group_index=int(data.get("groupIndex", 0)),
            index_in_group=int(data.get("indexInGroup", 0)),
        )


#: Filters applied so far, one per explored group, in traversal order.
FilterPath = Tuple[Filter, ...]


def render_path(path: Iterable[Filter]) -> str:
    """Human-readable ``(group: name) (group: name)`` form used in logs."""
    return " ".join(str(f) for f in path)


def dedupe_filters(filters: Iterable[Filter]) -> List[Filter]:
    seen: Dict[Filter, None] = {}
    for f in filters:
        seen.setdefault(f, None)
    return list(seen)


def path_matches_groups(path: Sequence[Filter], groups: Sequence[str]) -> bool:
    """True if ``path`` holds one filter per group, in ``groups`` order."""
    if len(path) > len(groups):
        return False
    return all(f.group == g for f, g in zip(path, groups))
