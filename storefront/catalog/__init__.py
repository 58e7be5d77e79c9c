"""
Catalog Module
"""
from .client import CatalogClient, paginate

__all__ = ["CatalogClient", "paginate"]
