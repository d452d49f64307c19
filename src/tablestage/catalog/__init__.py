"""Dataset catalog snapshot."""

from tablestage.catalog.cache import CatalogCache

__all__ = ["CatalogCache"]
