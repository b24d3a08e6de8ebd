from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List, Optional
import logging

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from ..config import CrawlConfig
from ..engines.facet_engine import FacetCrawlEngine
from ..errors import CrawlFailedError, PoolExhaustionError
from ..sessions.base import SessionFactory
from ..utils.loader import load_symbol
from ..version import __version__

logger = logging.getLogger(__name__)

app = FastAPI(title="facet_crawler API", version=__version__)


class CrawlRequest(BaseModel):
    start_url: Optional[str] = None
    filter_groups: Optional[List[str]] = None
    max_concurrency: Optional[int] = Field(default=None, gt=0)
    retries: Optional[int] = Field(default=None, ge=0)
    output_dir: Optional[str] = None


def get_config() -> CrawlConfig:
    return CrawlConfig.from_env()


def get_session_factory(cfg: CrawlConfig = Depends(get_config)) -> SessionFactory:
    return load_symbol(cfg.session)(cfg)


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok", "version": __version__}


@app.post("/crawl")
async def crawl(
    req: CrawlRequest,
    cfg: CrawlConfig = Depends(get_config),
    factory: SessionFactory = Depends(get_session_factory),
) -> Dict[str, Any]:
    overrides = {k: v for k, v in req.model_dump().items() if v is not None}
    cfg = replace(cfg, **overrides)
    try:
        cfg.validate()
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    engine = FacetCrawlEngine(cfg, factory)
    try:
        report = await engine.crawl()
    except CrawlFailedError as exc:
        logger.error("Crawl of %s failed at the root: %r", cfg.start_url, exc.failure.error)
        raise HTTPException(
            status_code=502,
            detail={"error": repr(exc.failure.error), "failure": exc.failure.to_dict()},
        ) from exc
    except PoolExhaustionError as exc:
        logger.error("No browser session available for %s: %s", cfg.start_url, exc)
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    return {"startUrl": cfg.start_url, "outputDir": cfg.output_dir, **report.to_dict()}
