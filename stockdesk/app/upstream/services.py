"""
Collaborators consumed by the intake core.

The core only depends on the Protocols below. `PosApi*` classes implement them
over the remote POS REST API:
  GET  /api/products/brands                               -> {"brands": [...]}
  GET  /api/products/catalog/mobiles/models?brandId=      -> {"models": [...]}
  GET  /api/products/catalog/mobiles/colors?brandId=&model=&memory= -> {"colors": [...]}
  GET  /api/products/catalog/accessories/brands?brandId=  -> {"variants": [...]}
  GET  /api/taxes?isActive=true                           -> {"taxes": [...]}
  GET  /api/vendors?userId=                               -> {"vendors": [...]}
  POST /api/products                                      (one mobile unit)
  POST /api/products/accessories                          (one accessory stock line)
"""

from __future__ import annotations

from typing import Protocol

from ..config import settings
from ..intake.models import (
    AccessoryStockPayload,
    AccessoryVariant,
    Brand,
    ColorVariant,
    MobileVariant,
    Payload,
    TaxRule,
    Vendor,
)
from .client import ApiClient


class CatalogService(Protocol):
    def get_brands(self) -> list[Brand]:
        ...

    def get_models(self, brand: Brand) -> list[MobileVariant]:
        ...

    def get_colors(self, brand: Brand, model: MobileVariant) -> list[ColorVariant]:
        ...

    def get_accessory_models(self, brand: Brand) -> list[AccessoryVariant]:
        ...


class TaxService(Protocol):
    def get_active_tax_rules(self) -> list[TaxRule]:
        ...


class VendorService(Protocol):
    def get_vendors(self, owner_id: str) -> list[Vendor]:
        ...


class InventoryService(Protocol):
    def create_unit(self, payload: Payload) -> dict:
        ...


class ScannerDevice(Protocol):
    def scan(self) -> str:
        ...


def _rows(res: dict, *keys: str) -> list[dict]:
    for k in keys:
        v = res.get(k)
        if isinstance(v, list):
            return [r for r in v if isinstance(r, dict)]
    return []


def _accessory_row(r: dict) -> dict:
    # Accessory variant lookups answer with {variantId, variantName}.
    out = dict(r)
    if "id" not in out and out.get("variantId"):
        out["id"] = out["variantId"]
    if "name" not in out and out.get("variantName"):
        out["name"] = out["variantName"]
    return out


class PosApiCatalogService:
    def __init__(self, client: ApiClient):
        self.client = client

    def get_brands(self) -> list[Brand]:
        res = self.client.get("/api/products/brands")
        return [Brand.model_validate(r) for r in _rows(res, "brands", "items")]

    def get_models(self, brand: Brand) -> list[MobileVariant]:
        res = self.client.get("/api/products/catalog/mobiles/models", brandId=brand.id)
        return [MobileVariant.model_validate(r) for r in _rows(res, "models", "items")]

    def get_colors(self, brand: Brand, model: MobileVariant) -> list[ColorVariant]:
        res = self.client.get(
            "/api/products/catalog/mobiles/colors",
            brandId=brand.id,
            model=model.name,
            memory=model.memory,
        )
        return [ColorVariant.model_validate(r) for r in _rows(res, "colors", "items")]

    def get_accessory_models(self, brand: Brand) -> list[AccessoryVariant]:
        res = self.client.get("/api/products/catalog/accessories/brands", brandId=brand.id)
        return [AccessoryVariant.model_validate(_accessory_row(r)) for r in _rows(res, "variants", "models", "items")]


class PosApiTaxService:
    def __init__(self, client: ApiClient):
        self.client = client

    def get_active_tax_rules(self) -> list[TaxRule]:
        res = self.client.get("/api/taxes", isActive="true")
        rules = [TaxRule.model_validate(r) for r in _rows(res, "taxes", "items")]
        return [r for r in rules if r.is_active]


class PosApiVendorService:
    def __init__(self, client: ApiClient):
        self.client = client

    def get_vendors(self, owner_id: str) -> list[Vendor]:
        res = self.client.get("/api/vendors", userId=owner_id)
        return [Vendor.model_validate(r) for r in _rows(res, "vendors", "items")]


class PosApiInventoryService:
    def __init__(self, client: ApiClient):
        self.client = client

    def create_unit(self, payload: Payload) -> dict:
        path = "/api/products/accessories" if isinstance(payload, AccessoryStockPayload) else "/api/products"
        res = self.client.post(path, payload.to_wire())
        unit = res.get("product") or res.get("stock") or res
        return dict(unit) if isinstance(unit, dict) else {"result": unit}


def default_client() -> ApiClient:
    return ApiClient(api_base=settings.pos_api_url, token=settings.pos_api_token, timeout_s=settings.pos_api_timeout_s)
