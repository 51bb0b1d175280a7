from fastapi import Header
from typing import Optional
from .config import settings
from .intake.session import SessionRegistry
from .upstream.services import (
    PosApiCatalogService,
    PosApiInventoryService,
    PosApiTaxService,
    PosApiVendorService,
    default_client,
)


# Process-wide collaborators. Tests swap these through `app.dependency_overrides`
# or by passing fakes straight into the route functions.
_registry = SessionRegistry(limit=settings.session_limit)


def get_registry() -> SessionRegistry:
    return _registry


def get_catalog_service():
    return PosApiCatalogService(default_client())


def get_tax_service():
    return PosApiTaxService(default_client())


def get_vendor_service():
    return PosApiVendorService(default_client())


def get_inventory_service():
    return PosApiInventoryService(default_client())


def get_owner_id(x_owner_id: Optional[str] = Header(None, alias="X-Owner-Id")) -> str:
    # Vendors are owner-scoped; the caller passes the owner explicitly. Empty means no owner.
    return (x_owner_id or "").strip()
