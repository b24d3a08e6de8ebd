from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Sequence, Tuple

from .errors import ConsistencyWarning
from .filters import Filter, FilterPath, render_path
from .sessions.base import Item

logger = logging.getLogger(__name__)

DEFAULT_POSITIONAL_FIELDS: Tuple[str, ...] = ("product_position",)


@dataclass(frozen=True)
class ObservationRecord:
    external_id: str
    path: FilterPath


class ItemStore:
    """
    Canonical item catalog shared by every lane of a crawl.

    - Items are keyed by ``external_id`` and kept in first-observed order.
    - Each item remembers the filter paths it was observed under, unique by
      the set of filters they contain.
    - Metadata that disagrees with the canonical record (ignoring positional
      fields) is kept as a ConsistencyWarning; it never interrupts a crawl.
    """

    def __init__(self, positional_fields: Iterable[str] = DEFAULT_POSITIONAL_FIELDS) -> None:
        self.positional_fields = tuple(positional_fields)
        self._lock = threading.Lock()
        self._items: Dict[str, Item] = {}
        self._observations: Dict[str, Dict[FrozenSet[Filter], ObservationRecord]] = {}
        self._filters: Dict[str, Dict[Filter, None]] = {}
        self._warnings: List[ConsistencyWarning] = []

    def record(self, item: Item, path: Sequence[Filter]) -> bool:
        """Merge one observation. Returns True if ``item`` was not seen before."""
        path = tuple(path)
        with self._lock:
            existing = self._items.get(item.external_id)
            is_new = existing is None
            if is_new:
                logger.debug("Adding new item %s (%s)", item.external_id, item.name)
                self._items[item.external_id] = item
                self._observations[item.external_id] = {}
                self._filters[item.external_id] = {}
            else:
                canonical = existing.comparable_metadata(self.positional_fields)
                observed = item.comparable_metadata(self.positional_fields)
                if canonical != observed:
                    warning = ConsistencyWarning(item.external_id, canonical, observed, path)
                    self._warnings.append(warning)
                    logger.warning(
                        "Metadata does not match for %s under %s: %r != %r",
                        item.external_id,
                        render_path(path) or "(unfiltered)",
                        canonical,
                        observed,
                    )

            observations = self._observations[item.external_id]
            key = frozenset(path)
            if key not in observations:
                observations[key] = ObservationRecord(item.external_id, path)
                known = self._filters[item.external_id]
                for f in path:
                    known.setdefault(f, None)
            return is_new

    def snapshot(self) -> List[Tuple[Item, List[Filter]]]:
        with self._lock:
            return [
                (item, list(self._filters[external_id]))
                for external_id, item in self._items.items()
            ]

    def observations(self, external_id: str) -> List[ObservationRecord]:
        with self._lock:
            return list(self._observations.get(external_id, {}).values())

    @property
    def warnings(self) -> List[ConsistencyWarning]:
        with self._lock:
            return list(self._warnings)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __contains__(self, external_id: object) -> bool:
        with self._lock:
            return external_id in self._items
