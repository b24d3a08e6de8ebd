"""Tests for the catalog exporters."""

import csv
import json
from pathlib import Path

from facet_crawler.export.csv_exporter import CSVExporter
from facet_crawler.export.json_exporter import JSONExporter
from facet_crawler.filters import Filter
from facet_crawler.sessions.base import Item, Money

CATALOG = [
    (
        Item("X", name="Coat", url="https://shop.test/x", full_price=Money(100.0, "NZD"),
             sale_price=Money(80.0, "NZD"), metadata={"product_cod10": "X"}),
        [Filter("Category", "Coats", 0, 1), Filter("Color", "Red", 1, 0)],
    ),
    (Item("Y", name="Shirt"), []),
]


def test_json_exporter_writes_three_consistent_files(tmp_path: Path) -> None:
    JSONExporter().export(CATALOG, str(tmp_path))

    products = json.loads((tmp_path / "products.json").read_text())
    links = json.loads((tmp_path / "filters.json").read_text())
    data = json.loads((tmp_path / "data.json").read_text())

    assert products[0] == {
        "externalId": "X",
        "name": "Coat",
        "url": "https://shop.test/x",
        "imageUrl": None,
        "fullPrice": {"value": 100.0, "currency": "NZD"},
        "salePrice": {"value": 80.0, "currency": "NZD"},
        "metadata": {"product_cod10": "X"},
    }
    assert links == [
        {"group": "Category", "name": "Coats", "groupIndex": 0, "indexInGroup": 1, "externalId": "X"},
        {"group": "Color", "name": "Red", "groupIndex": 1, "indexInGroup": 0, "externalId": "X"},
    ]
    assert {row["externalId"] for row in links} <= {p["externalId"] for p in products}
    for product, merged in zip(products, data):
        own = [{k: v for k, v in r.items() if k != "externalId"} for r in links if r["externalId"] == product["externalId"]]
        assert merged == {**product, "filters": own}
    assert not list(tmp_path.glob(".*.tmp"))


def test_json_exporter_overwrites_previous_progress(tmp_path: Path) -> None:
    exporter = JSONExporter()
    exporter.export(CATALOG[:1], str(tmp_path))
    exporter.export(CATALOG, str(tmp_path))

    assert len(json.loads((tmp_path / "products.json").read_text())) == 2


def test_csv_exporter(tmp_path: Path) -> None:
    CSVExporter().export(CATALOG, str(tmp_path / "csv"))

    with open(tmp_path / "csv" / "products.csv", newline="", encoding="utf-8") as f:
        products = list(csv.DictReader(f))
    with open(tmp_path / "csv" / "filters.csv", newline="", encoding="utf-8") as f:
        links = list(csv.DictReader(f))

    assert [p["externalId"] for p in products] == ["X", "Y"]
    assert products[0]["filters"] == "Category: Coats; Color: Red"
    assert products[0]["salePrice"] == "80.0"
    assert products[1]["fullPrice"] == ""
    assert json.loads(products[0]["metadata"]) == {"product_cod10": "X"}
    assert [(r["externalId"], r["group"], r["name"]) for r in links] == [
        ("X", "Category", "Coats"),
        ("X", "Color", "Red"),
    ]
