"""Tests for the BeautifulSoup facet and product parsers."""

import json
from html import escape

from bs4 import BeautifulSoup

from facet_crawler.filters import Filter
from facet_crawler.sessions.base import Money
from facet_crawler.utils.parsing import parse_filters, parse_items, parse_price, slugify_path

FILTERS_HTML = """
<div class="filtersPanel">
  <ul class="filterGroups"><li class="filterGroup"><div class="title">Sort</div></li></ul>
  <ul class="filterGroups">
    <li class="filterGroup">
      <div class="title"> Category </div>
      <ul class="refinements">
        <li><a href="/c/coats"><span class="text">Coats</span></a></li>
        <li class="refinement disabled"><a href="/c/shirts"><span class="text">Shirts</span></a></li>
        <li class="selected"><a href="/c/knitwear"><span class="text"> Knitwear </span></a></li>
      </ul>
    </li>
    <li class="filterGroup">
      <div class="title">Color</div>
      <ul class="refinements">
        <li><a href="/c/black"><span class="text">Black</span></a></li>
        <li><a href="/c/none"><span class="text"></span></a></li>
        <li><a href="/c/ecru"><span class="text">Ecru</span></a></li>
      </ul>
    </li>
  </ul>
</div>
"""


def _card(code: str, position: int, *, sale: bool = False) -> str:
    payload = escape(json.dumps({"product_cod10": code, "product_position": position, "product_color": "Black"}))
    sale_block = (
        '<div class="price discounted"><span class="currency">NZD</span><span class="value">1,045</span></div>'
        if sale else ""
    )
    return f"""
    <li>
      <div class="product-item" data-ytos-track-product-data="{payload}">
        <a href="/nz/product/{code}"><img src="/img/{code}.jpg"></a>
        <div itemprop="title"> Coat {code} </div>
        <div class="price"><span class="currency">NZD</span><span class="value">1,490</span></div>
        {sale_block}
      </div>
    </li>
    """


def test_parse_filters_reads_only_the_requested_group() -> None:
    filters = parse_filters(FILTERS_HTML, "Category")

    assert filters == [Filter("Category", "Coats"), Filter("Category", "Knitwear")]
    assert [(f.group_index, f.index_in_group) for f in filters] == [(0, 0), (0, 2)]


def test_parse_filters_skips_unlabelled_refinements() -> None:
    colors = parse_filters(FILTERS_HTML, "Color")

    assert [(f.name, f.group_index, f.index_in_group) for f in colors] == [("Black", 1, 0), ("Ecru", 1, 2)]


def test_parse_filters_unknown_group() -> None:
    assert parse_filters(FILTERS_HTML, "Season") == []


def test_parse_items() -> None:
    html = f'<ul class="products">{_card("AB123", 0)}{_card("CD456", 1, sale=True)}</ul>'

    items = parse_items(html, "https://shop.test/nz/men")

    assert [i.external_id for i in items] == ["AB123", "CD456"]
    first, second = items
    assert first.name == "Coat AB123"
    assert first.url == "https://shop.test/nz/product/AB123"
    assert first.image_url == "https://shop.test/img/AB123.jpg"
    assert first.full_price == Money(1490.0, "NZD")
    assert first.sale_price is None
    assert first.metadata["product_position"] == 0
    assert second.sale_price == Money(1045.0, "NZD")


def test_parse_items_skips_cards_without_id() -> None:
    html = '<ul class="products"><li><div itemprop="title">Gift card</div></li></ul>'

    assert parse_items(html, "https://shop.test/") == []


def test_parse_items_with_custom_id_field() -> None:
    html = f'<ul class="products">{_card("AB123", 4)}</ul>'

    [item] = parse_items(html, "https://shop.test/", id_field="product_position")

    assert item.external_id == "4"


def test_parse_price_tolerates_missing_parts() -> None:
    node = BeautifulSoup('<div class="price"><span class="value">n/a</span></div>', "html.parser").div

    assert parse_price(node) == Money(None, None)
    assert parse_price(None) is None


def test_slugify_path() -> None:
    path = (Filter("Category", "Coats & Jackets"), Filter("Season", "FW 23"))

    assert slugify_path(path) == "category-coats--jackets-season-fw-23"
    assert slugify_path(()) == "all"
