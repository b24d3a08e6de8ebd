from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from bs4.element import Tag

from ..filters import Filter
from ..sessions.base import Item, Money

logger = logging.getLogger(__name__)

FILTER_GROUPS_SELECTOR = "ul.filterGroups:nth-of-type(2) > li.filterGroup"
PRODUCT_DATA_ATTR = "data-ytos-track-product-data"


def _text_or_none(node: Optional[Tag]) -> Optional[str]:
    if not node:
        return None
    text = node.get_text(strip=True)
    return text or None


def parse_price(node: Optional[Tag]) -> Optional[Money]:
    """
    Read a ``.value`` / ``.currency`` price block. Thousands separators are
    dropped; an unreadable amount leaves ``value`` unset.
    """
    if node is None:
        return None
    raw = _text_or_none(node.select_one(".value"))
    value: Optional[float] = None
    if raw:
        try:
            value = float(raw.replace(",", ""))
        except ValueError:
            logger.debug("Unreadable price amount: %r", raw)
    return Money(value=value, currency=_text_or_none(node.select_one(".currency")))


def parse_filters(
    html: str,
    group: str,
    *,
    groups_selector: str = FILTER_GROUPS_SELECTOR,
    title_selector: str = "div.title",
    refinement_selector: str = ".refinements > li",
    name_selector: str = "a > span.text",
) -> List[Filter]:
    """
    Return the selectable filters of the facet group titled ``group``.
    Refinements marked disabled or without a label are left out.
    """
    soup = BeautifulSoup(html, "html.parser")
    filters: List[Filter] = []
    for group_index, group_el in enumerate(soup.select(groups_selector)):
        if _text_or_none(group_el.select_one(title_selector)) != group:
            continue
        for index, refinement in enumerate(group_el.select(refinement_selector)):
            name = _text_or_none(refinement.select_one(name_selector))
            disabled = any("disabled" in c for c in refinement.get("class", []))
            if not name or disabled:
                continue
            filters.append(
                Filter(group=group, name=name, group_index=group_index, index_in_group=index)
            )
    return filters


def _product_metadata(card: Tag) -> Dict[str, Any]:
    node = card.select_one(f"div.product-item[{PRODUCT_DATA_ATTR}]")
    if node is None:
        return {}
    payload = node.get(PRODUCT_DATA_ATTR) or ""
    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        logger.warning("Invalid product tracking payload: %.200s", payload)
        return {}
    return data if isinstance(data, dict) else {}


def parse_items(
    html: str,
    base_url: str,
    *,
    id_field: str = "product_cod10",
    card_selector: str = "ul.products > li",
) -> List[Item]:
    """
    Extract the product cards of a result view.
    Cards whose tracking payload carries no ``id_field`` cannot be merged and
    are skipped.
    """
    soup = BeautifulSoup(html, "html.parser")
    items: List[Item] = []
    for card in soup.select(card_selector):
        metadata = _product_metadata(card)
        external_id = metadata.get(id_field)
        name = _text_or_none(card.select_one('[itemprop="title"]'))
        if external_id in (None, ""):
            logger.debug("Skipping product card without %s: %s", id_field, name)
            continue

        link = card.select_one("a[href]")
        image = card.select_one("img[src]")
        items.append(
            Item(
                external_id=str(external_id),
                name=name,
                url=urljoin(base_url, link["href"]) if link else None,
                image_url=urljoin(base_url, image["src"]) if image else None,
                full_price=parse_price(card.select_one(".price:not(.discounted)")),
                sale_price=parse_price(card.select_one(".price.discounted")),
                metadata=metadata,
            )
        )
    return items


def slugify_path(path: Iterable[Filter]) -> str:
    """File-name friendly form of a path; ``all`` for the unfiltered view."""
    slug = "-".join(f"{f.group}-{f.name}" for f in path)
    slug = re.sub(r"\s+", "-", slug).lower()
    slug = re.sub(r"[^\w\-.]", "", slug)
    return slug or "all"
