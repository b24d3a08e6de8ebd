"""Tests for configuration loading."""

import json
from pathlib import Path

import pytest

from facet_crawler.config import CrawlConfig, DEFAULT_FILTER_GROUPS, migrate_config
from facet_crawler.version import CONFIG_SCHEMA_VERSION


def test_defaults_target_the_four_facet_groups() -> None:
    cfg = CrawlConfig()

    assert cfg.filter_groups == DEFAULT_FILTER_GROUPS == ["Category", "Color", "Size", "Season"]
    assert cfg.filter_groups is not CrawlConfig().filter_groups


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FACET_CRAWLER_START_URL", "https://shop.test/women")
    monkeypatch.setenv("FACET_CRAWLER_FILTER_GROUPS", "Category, Size")
    monkeypatch.setenv("FACET_CRAWLER_MAX_CONCURRENCY", "3")
    monkeypatch.setenv("FACET_CRAWLER_RETRIES", "5")
    monkeypatch.setenv("FACET_CRAWLER_HEADLESS", "false")
    monkeypatch.setenv("FACET_CRAWLER_SNAPSHOT_DIR", "ss")

    cfg = CrawlConfig.from_env()

    assert cfg.start_url == "https://shop.test/women"
    assert cfg.filter_groups == ["Category", "Size"]
    assert cfg.max_concurrency == 3
    assert cfg.retries == 5
    assert cfg.headless is False
    assert cfg.snapshot_dir == "ss"
    assert cfg.output_dir == CrawlConfig().output_dir


def test_from_file(tmp_path: Path) -> None:
    path = tmp_path / "crawl.json"
    path.write_text(json.dumps({
        "schema_version": CONFIG_SCHEMA_VERSION,
        "start_url": "https://shop.test/",
        "filter_groups": ["Color"],
        "output_dir": str(tmp_path / "out"),
    }))

    cfg = CrawlConfig.from_file(path)

    assert cfg.filter_groups == ["Color"]
    assert cfg.retries == 2


def test_from_file_rejects_unknown_keys(tmp_path: Path) -> None:
    path = tmp_path / "crawl.json"
    path.write_text(json.dumps({"schema_version": CONFIG_SCHEMA_VERSION, "max_sessions": 3}))

    with pytest.raises(ValueError, match="max_sessions"):
        CrawlConfig.from_file(path)


def test_migrates_link_crawler_config() -> None:
    migrated = migrate_config({
        "start_urls": ["https://shop.test/a", "https://shop.test/b"],
        "max_depth": 3,
        "output_path": "output/product_urls.json",
        "allowed_domains": None,
        "max_concurrency": 4,
    })

    assert migrated == {
        "schema_version": CONFIG_SCHEMA_VERSION,
        "start_url": "https://shop.test/a",
        "output_dir": "output",
        "max_concurrency": 4,
    }
    CrawlConfig(**migrated)


@pytest.mark.parametrize(
    "overrides",
    [
        {"start_url": ""},
        {"filter_groups": []},
        {"filter_groups": ["Color", "Color"]},
        {"max_concurrency": 0},
        {"retries": -1},
        {"step_timeout": 0},
    ],
)
def test_validate_rejects(make_config, overrides) -> None:
    with pytest.raises(ValueError):
        make_config(**overrides).validate()


def test_validate_creates_output_dir(make_config) -> None:
    cfg = make_config()

    cfg.validate()

    assert Path(cfg.output_dir).is_dir()


def test_default_dotted_paths_resolve() -> None:
    from facet_crawler.export.json_exporter import JSONExporter
    from facet_crawler.utils.loader import load_symbol

    assert load_symbol(CrawlConfig().exporter) is JSONExporter
    assert load_symbol("facet_crawler.export.csv_exporter.CSVExporter").__name__ == "CSVExporter"
    with pytest.raises(ImportError):
        load_symbol("facet_crawler.export.json_exporter:Missing")
    with pytest.raises(ValueError):
        load_symbol("nodots")
