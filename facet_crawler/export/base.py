from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Protocol, Sequence, Tuple

from ..filters import Filter
from ..sessions.base import Item

#: One canonical item with every filter it was observed under.
CatalogEntry = Tuple[Item, Sequence[Filter]]


class Exporter(Protocol):
    def export(self, catalog: Sequence[CatalogEntry], output_dir: str) -> None:
        ...


def item_rows(catalog: Sequence[CatalogEntry]) -> List[Dict[str, Any]]:
    return [item.to_dict() for item, _ in catalog]


def filter_rows(catalog: Sequence[CatalogEntry]) -> List[Dict[str, Any]]:
    return [
        {**f.to_dict(), "externalId": item.external_id}
        for item, filters in catalog
        for f in filters
    ]


def merged_rows(catalog: Sequence[CatalogEntry]) -> List[Dict[str, Any]]:
    return [
        {**item.to_dict(), "filters": [f.to_dict() for f in filters]}
        for item, filters in catalog
    ]


def write_atomic(path: Path, text: str) -> None:
    """Replace ``path`` in one step so readers never see a half-written file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise
