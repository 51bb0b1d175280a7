from __future__ import annotations

from typing import Callable, Optional, TypeVar

from ..jsonlog import json_log
from ..upstream.services import CatalogService
from .models import AccessoryVariant, Brand, ColorVariant, MobileVariant


T = TypeVar("T")


def safe_lookup(kind: str, fetch: Callable[[], list[T]], **fields) -> Optional[list[T]]:
    """
    Run a catalog/tax/vendor lookup. A failure is logged and reported as None so the
    caller can degrade the affected level to an empty list (manual entry).
    """
    try:
        return list(fetch() or [])
    except Exception as exc:
        json_log("warning", "catalog.lookup_failed", kind=kind, error=str(exc), **fields)
        return None


class CatalogIndex:
    """
    Read-only, session-scoped view over a CatalogService.

    Successful lookups are cached per parent key; failures are not cached so a later
    selection of the same parent retries. A lookup is never dispatched for an empty parent.
    """

    def __init__(self, service: CatalogService):
        self.service = service
        self._brands: Optional[list[Brand]] = None
        self._models: dict[str, list[MobileVariant]] = {}
        self._colors: dict[tuple[str, str, str], list[ColorVariant]] = {}
        self._accessories: dict[str, list[AccessoryVariant]] = {}

    def brands(self) -> list[Brand]:
        if self._brands is None:
            rows = safe_lookup("brands", self.service.get_brands)
            if rows is None:
                return []
            self._brands = rows
        return list(self._brands)

    def find_brand(self, brand_id: str) -> Optional[Brand]:
        bid = (brand_id or "").strip()
        if not bid:
            return None
        for b in self.brands():
            if b.id == bid:
                return b
        return None

    def models(self, brand: Optional[Brand]) -> list[MobileVariant]:
        if brand is None or not brand.id:
            return []
        if brand.id not in self._models:
            rows = safe_lookup("models", lambda: self.service.get_models(brand), brand_id=brand.id)
            if rows is None:
                return []
            self._models[brand.id] = rows
        return list(self._models[brand.id])

    def colors(self, brand: Optional[Brand], model: Optional[MobileVariant]) -> list[ColorVariant]:
        if brand is None or not brand.id or model is None or not model.name:
            return []
        key = (brand.id, model.name, model.memory or "")
        if key not in self._colors:
            rows = safe_lookup(
                "colors",
                lambda: self.service.get_colors(brand, model),
                brand_id=brand.id,
                model_name=model.name,
                memory=model.memory,
            )
            if rows is None:
                return []
            self._colors[key] = rows
        return list(self._colors[key])

    def accessory_models(self, brand: Optional[Brand]) -> list[AccessoryVariant]:
        if brand is None or not brand.id:
            return []
        if brand.id not in self._accessories:
            rows = safe_lookup("accessory_models", lambda: self.service.get_accessory_models(brand), brand_id=brand.id)
            if rows is None:
                return []
            self._accessories[brand.id] = rows
        return list(self._accessories[brand.id])

    def variants_for(self, category: str, brand: Optional[Brand]) -> list:
        if category == "accessory":
            return self.accessory_models(brand)
        return self.models(brand)
