from __future__ import annotations

import csv
import io
import json
from typing import Any, List, Optional, Sequence
from pathlib import Path

from .base import CatalogEntry, filter_rows, write_atomic
from ..sessions.base import Money


def _amount(price: Optional[Money]) -> Any:
    return "" if price is None or price.value is None else price.value


def _currency(price: Optional[Money]) -> str:
    return (price.currency or "") if price else ""


class CSVExporter:
    """
    Writes per-item rows to ``products.csv`` (filters flattened into one
    column) and one row per item/filter pair to ``filters.csv``.
    """

    _product_headers = [
        "externalId",
        "name",
        "url",
        "imageUrl",
        "fullPrice",
        "fullPriceCurrency",
        "salePrice",
        "salePriceCurrency",
        "filters",
        "metadata",
    ]
    _filter_headers = ["externalId", "group", "name", "groupIndex", "indexInGroup"]

    def export(self, catalog: Sequence[CatalogEntry], output_dir: str) -> None:
        out = Path(output_dir)
        products: List[List[Any]] = []
        for item, filters in catalog:
            products.append(
                [
                    item.external_id,
                    item.name or "",
                    item.url or "",
                    item.image_url or "",
                    _amount(item.full_price),
                    _currency(item.full_price),
                    _amount(item.sale_price),
                    _currency(item.sale_price),
                    "; ".join(f"{f.group}: {f.name}" for f in filters),
                    json.dumps(item.metadata, ensure_ascii=False, sort_keys=True),
                ]
            )
        filters = [[row[h] for h in self._filter_headers] for row in filter_rows(catalog)]
        write_atomic(out / "products.csv", self._render(self._product_headers, products))
        write_atomic(out / "filters.csv", self._render(self._filter_headers, filters))

    def _render(self, headers: List[str], rows: List[List[Any]]) -> str:
        buf = io.StringIO()
        w = csv.writer(buf)
        w.writerow(headers)
        w.writerows(rows)
        return buf.getvalue()
