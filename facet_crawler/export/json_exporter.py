from __future__ import annotations

import json
from typing import Any, Sequence
from pathlib import Path

from .base import CatalogEntry, filter_rows, item_rows, merged_rows, write_atomic


class JSONExporter:
    """
    Writes ``products.json``, ``filters.json`` and their join ``data.json``.
    All three come from one snapshot, so they always agree.
    """

    products_file = "products.json"
    filters_file = "filters.json"
    data_file = "data.json"

    def export(self, catalog: Sequence[CatalogEntry], output_dir: str) -> None:
        out = Path(output_dir)
        self._dump(out / self.products_file, item_rows(catalog))
        self._dump(out / self.filters_file, filter_rows(catalog))
        self._dump(out / self.data_file, merged_rows(catalog))

    def _dump(self, path: Path, rows: Any) -> None:
        write_atomic(path, json.dumps(rows, indent=2, ensure_ascii=False))
