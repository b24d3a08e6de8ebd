from __future__ import annotations

import argparse
import asyncio
import logging
from typing import List

from ..config import CrawlConfig
from ..engines.base import CrawlReport
from ..engines.facet_engine import FacetCrawlEngine
from ..errors import CrawlError, CrawlFailedError
from ..filters import render_path
from ..utils.logging import setup_logging

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Storefront facet-tree crawler")
    p.add_argument("url", nargs="?", default=None, help="Listing URL to start from (default from config)")
    p.add_argument("--config", type=str, help="Path to config JSON", default=None)
    p.add_argument("--filter-groups", type=str, default=None,
                   help="Comma-separated facet groups to explore, outermost first (e.g. Category,Color)")
    p.add_argument("--max-concurrency", type=int, default=None, help="Max concurrent browser sessions")
    p.add_argument("--retries", type=int, default=None, help="Retries per task before its subtree is abandoned")
    p.add_argument("--output-dir", type=str, default=None, help="Directory for products/filters/data JSON")
    p.add_argument("--log-level", type=str, default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
    p.add_argument("--serve", action="store_true", help="Run REST API server instead of CLI crawl")
    p.add_argument("--host", type=str, default="127.0.0.1", help="API host (when --serve)")
    p.add_argument("--port", type=int, default=8000, help="API port (when --serve)")
    return p


def _load_config(args: argparse.Namespace) -> CrawlConfig:
    if args.config:
        cfg = CrawlConfig.from_file(args.config)
    else:
        cfg = CrawlConfig.from_env()

    if args.url:
        cfg.start_url = args.url
    if args.filter_groups:
        cfg.filter_groups = [g.strip() for g in args.filter_groups.split(",") if g.strip()]
    if args.max_concurrency is not None:
        cfg.max_concurrency = args.max_concurrency
    if args.retries is not None:
        cfg.retries = args.retries
    if args.output_dir:
        cfg.output_dir = args.output_dir

    cfg.validate()
    return cfg


def run_server(host: str, port: int) -> None:
    import uvicorn

    uvicorn.run("facet_crawler.apis.app:app", host=host, port=port)


def _log_abandoned(report: CrawlReport) -> None:
    for failure in report.failures:
        logger.warning(
            "Abandoned subtree %s (remaining: %s) after %d attempt(s): %r",
            render_path(failure.task.filter_path) or "(unfiltered)",
            ", ".join(failure.task.remaining_groups) or "-",
            failure.attempts,
            failure.error,
        )


def run_cli(argv: List[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    setup_logging(args.log_level)

    if args.serve:
        run_server(args.host, args.port)
        return 0

    try:
        cfg = _load_config(args)
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    engine = FacetCrawlEngine(cfg)
    try:
        report: CrawlReport = asyncio.run(engine.crawl())
    except CrawlFailedError as exc:
        logger.error("Crawl failed at the root: %r", exc.failure.error)
        return 1
    except CrawlError as exc:
        logger.error("Crawl failed: %s", exc)
        return 1

    _log_abandoned(report)
    logger.info("Items: %s | Filter links: %s | Abandoned: %s | Output: %s",
                report.items,
                report.associations,
                len(report.failures),
                cfg.output_dir)
    return 0
