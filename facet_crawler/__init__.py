"""Facet-tree crawler for storefront catalogs."""

from .version import __version__

__all__ = ["__version__"]
