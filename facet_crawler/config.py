from __future__ import annotations

from dataclasses import dataclass, field, fields, asdict
from typing import List, Optional, Dict, Any
from pathlib import Path
import os
import json

from .version import CONFIG_SCHEMA_VERSION

DEFAULT_START_URL = "https://www.isabelmarant.com/nz/isabel-marant/men/im-all-man"
DEFAULT_FILTER_GROUPS = ["Category", "Color", "Size", "Season"]


def _split(raw: str) -> List[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


@dataclass
class CrawlConfig:
    """
    Canonical configuration object passed throughout the system.
    Keep it dataclass-only (no heavy deps) to stay upgrade-friendly.
    """
    schema_version: int = CONFIG_SCHEMA_VERSION
    start_url: str = DEFAULT_START_URL
    # Facet groups to explore, outermost first. Order is traversal depth.
    filter_groups: List[str] = field(default_factory=lambda: list(DEFAULT_FILTER_GROUPS))
    max_concurrency: int = 10
    retries: int = 2
    retry_backoff: float = 1.0
    # Children at this depth or shallower get their own session.
    branch_depth: int = 1
    headless: bool = True
    navigation_timeout: float = 30.0
    action_timeout: float = 15.0
    step_timeout: float = 60.0
    # Metadata key holding the catalog's stable item id.
    id_field: str = "product_cod10"
    positional_fields: List[str] = field(default_factory=lambda: ["product_position"])
    # Dotted paths for session factory/exporter to allow runtime swapping without code changes.
    session: str = "facet_crawler.sessions.playwright_session:PlaywrightSessionFactory"
    exporter: str = "facet_crawler.export.json_exporter:JSONExporter"
    output_dir: str = "data/isabel-marant"
    # Per-task screenshots and JSON dumps, for debugging selectors.
    snapshot_dir: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    # ---------- Loaders ----------

    @classmethod
    def from_env(cls) -> "CrawlConfig":
        """
        Build config from environment variables (all optional).
        """
        defaults = cls()

        def _get(name: str, default: Any) -> str:
            return os.getenv(f"FACET_CRAWLER_{name}", str(default))

        groups = _split(_get("FILTER_GROUPS", ",".join(defaults.filter_groups)))
        positional = _split(_get("POSITIONAL_FIELDS", ",".join(defaults.positional_fields)))

        return cls(
            start_url=_get("START_URL", defaults.start_url),
            filter_groups=groups,
            max_concurrency=int(_get("MAX_CONCURRENCY", defaults.max_concurrency)),
            retries=int(_get("RETRIES", defaults.retries)),
            retry_backoff=float(_get("RETRY_BACKOFF", defaults.retry_backoff)),
            branch_depth=int(_get("BRANCH_DEPTH", defaults.branch_depth)),
            headless=_get("HEADLESS", "1").lower() not in ("0", "false", "no"),
            navigation_timeout=float(_get("NAVIGATION_TIMEOUT", defaults.navigation_timeout)),
            action_timeout=float(_get("ACTION_TIMEOUT", defaults.action_timeout)),
            step_timeout=float(_get("STEP_TIMEOUT", defaults.step_timeout)),
            id_field=_get("ID_FIELD", defaults.id_field),
            positional_fields=positional,
            session=_get("SESSION", defaults.session),
            exporter=_get("EXPORTER", defaults.exporter),
            output_dir=_get("OUTPUT_DIR", defaults.output_dir),
            snapshot_dir=os.getenv("FACET_CRAWLER_SNAPSHOT_DIR") or None,
        )

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> "CrawlConfig":
        """
        Load configuration from a JSON file. Supports schema migration for future versions.
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        data = migrate_config(data)
        unknown = sorted(set(data) - {fld.name for fld in fields(cls)})
        if unknown:
            raise ValueError(f"unknown config key(s) in {path}: {', '.join(unknown)}")
        return cls(**data)

    # ---------- Validation ----------

    def validate(self) -> None:
        if not self.start_url:
            raise ValueError("start_url cannot be empty.")
        if not self.filter_groups:
            raise ValueError("filter_groups cannot be empty; provide at least one group.")
        if len(set(self.filter_groups)) != len(self.filter_groups):
            raise ValueError("filter_groups must not repeat a group")
        if self.max_concurrency <= 0:
            raise ValueError("max_concurrency must be > 0")
        if self.retries < 0:
            raise ValueError("retries must be >= 0")
        if self.branch_depth < 0:
            raise ValueError("branch_depth must be >= 0")
        if self.step_timeout <= 0:
            raise ValueError("step_timeout must be > 0")
        # Output directory must exist or be creatable
        Path(self.output_dir).mkdir(parents=True, exist_ok=True)


def migrate_config(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Migrate config dict to the latest schema version.
    Keep this pure and additive. Add migrations here as you bump schema.
    """
    raw = dict(raw)
    schema = raw.get("schema_version", 1)

    if schema < 2:
        # v1 was the link crawler: keep what still has a meaning.
        urls = raw.pop("start_urls", None) or []
        if urls and "start_url" not in raw:
            raw["start_url"] = urls[0]
        output_path = raw.pop("output_path", None)
        if output_path and "output_dir" not in raw:
            raw["output_dir"] = str(Path(output_path).parent)
        for dropped in ("allowed_domains", "max_depth", "request_timeout", "user_agent",
                        "engine", "extra_adapters", "keywords"):
            raw.pop(dropped, None)

    raw["schema_version"] = CONFIG_SCHEMA_VERSION
    return raw
