from fastapi import APIRouter, Depends
from pydantic import BaseModel
from typing import Optional
from ..deps import get_catalog_service, get_owner_id, get_tax_service, get_vendor_service
from ..intake.catalog_index import CatalogIndex, safe_lookup
from ..intake.models import Brand, MobileVariant
from ..intake.pricing import compute_final_price, final_price_display, tax_option_label, with_no_tax
from ..intake.selector import filter_suggestions

router = APIRouter(prefix="/intake", tags=["intake-catalog"])


def _dump(rows) -> list[dict]:
    return [r.model_dump(mode="json") for r in rows]


def _brand_ref(brand_id: str) -> Optional[Brand]:
    # Scoped lookups only need the id; avoid a brands round-trip for it.
    bid = (brand_id or "").strip()
    if not bid:
        return None
    return Brand(id=bid, name=bid)


def _tax_rules(service) -> list:
    return with_no_tax(safe_lookup("taxes", service.get_active_tax_rules) or [])


@router.get("/catalog/brands")
def list_brands(service=Depends(get_catalog_service)):
    return {"brands": _dump(CatalogIndex(service).brands())}


@router.get("/catalog/models")
def list_models(brand_id: str = "", q: str = "", service=Depends(get_catalog_service)):
    """Mobile models for a brand, filtered by case-insensitive substring on display name."""
    index = CatalogIndex(service)
    models = index.models(_brand_ref(brand_id))
    return {"models": _dump(filter_suggestions(models, q, "display_name"))}


@router.get("/catalog/colors")
def list_colors(
    brand_id: str = "",
    model_name: str = "",
    memory: str = "",
    service=Depends(get_catalog_service),
):
    index = CatalogIndex(service)
    model = None
    if model_name.strip():
        model = MobileVariant(id="", name=model_name.strip(), memory=memory.strip() or None, display_name=model_name.strip())
    return {"colors": _dump(index.colors(_brand_ref(brand_id), model))}


@router.get("/catalog/accessories")
def list_accessories(brand_id: str = "", q: str = "", service=Depends(get_catalog_service)):
    index = CatalogIndex(service)
    rows = index.accessory_models(_brand_ref(brand_id))
    return {"accessories": _dump(filter_suggestions(rows, q, "display_name"))}


@router.get("/taxes")
def list_taxes(service=Depends(get_tax_service)):
    return {"taxes": [{**r.model_dump(mode="json"), "label": tax_option_label(r)} for r in _tax_rules(service)]}


@router.get("/vendors")
def list_vendors(owner_id: str = Depends(get_owner_id), service=Depends(get_vendor_service)):
    if not owner_id:
        return {"vendors": []}
    rows = safe_lookup("vendors", lambda: service.get_vendors(owner_id), owner_id=owner_id) or []
    return {"vendors": _dump(rows)}


class PriceIn(BaseModel):
    selling_price: str = ""
    tax_id: Optional[str] = None


@router.post("/price")
def preview_price(data: PriceIn, service=Depends(get_tax_service)):
    rules = _tax_rules(service)
    return {
        "final_price": str(compute_final_price(data.selling_price, data.tax_id, rules)),
        "display": final_price_display(data.selling_price, data.tax_id, rules),
    }
