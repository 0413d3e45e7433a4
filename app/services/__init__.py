"""Service layer for the catalog."""

from app.services.catalog_service import CatalogService

__all__ = ["CatalogService"]
