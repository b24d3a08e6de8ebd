from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable

import pytest

from facet_crawler.config import CrawlConfig

from fakes import FakeSite, product


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith("FACET_CRAWLER_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., CrawlConfig]:
    def _make(**overrides: Any) -> CrawlConfig:
        values = dict(
            start_url="https://shop.test/all",
            filter_groups=["Category", "Color"],
            max_concurrency=4,
            retries=2,
            retry_backoff=0.0,
            step_timeout=5.0,
            output_dir=str(tmp_path / "out"),
        )
        values.update(overrides)
        return CrawlConfig(**values)

    return _make


@pytest.fixture
def shared_item_site() -> FakeSite:
    """Item X is reachable under both categories, always in red."""
    return FakeSite(["Category", "Color"], [product("X", Category=["A", "B"], Color=["Red"])])


@pytest.fixture
def catalog_site() -> FakeSite:
    return FakeSite(
        ["Category", "Color", "Size"],
        [
            product("X", Category=["Coats"], Color=["Black", "Navy"], Size=["M", "L"]),
            product("Y", Category=["Coats", "Knitwear"], Color=["Black"], Size=["S"]),
            product("Z", Category=["Knitwear"], Color=["Ecru"], Size=["M"]),
            product("W", Category=["Shirts"], Color=["White"], Size=["L", "XL"]),
        ],
    )
