from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import Any, Optional
from ..deps import (
    get_catalog_service,
    get_inventory_service,
    get_registry,
    get_tax_service,
    get_vendor_service,
)
from ..intake.catalog_index import CatalogIndex
from ..intake.models import new_form_state
from ..intake.session import IntakeInitialData, IntakeSession, SessionBusy, SessionRegistry
from ..validation import Category, FormText, IdentityField, ScanField, ScannedCode

router = APIRouter(prefix="/intake/sessions", tags=["intake"])


class SessionIn(BaseModel):
    category: Category
    owner_id: str = ""
    shop_id: Optional[str] = None
    editing: bool = False
    initial: Optional[IntakeInitialData] = None


class BrandIn(BaseModel):
    brand_id: str


class TextChoiceIn(BaseModel):
    text: FormText = ""
    id: Optional[str] = None


class QuantityIn(BaseModel):
    quantity: Any


class FieldsIn(BaseModel):
    values: dict[str, Any]


class IdentityIn(BaseModel):
    field: IdentityField
    value: FormText = ""


class ScanTargetIn(BaseModel):
    field: ScanField
    index: Optional[int] = None


class ScanIn(BaseModel):
    code: ScannedCode


def _view(session: IntakeSession, **extra) -> dict:
    out = {
        "session_id": session.id,
        "state": session.state.model_dump(mode="json"),
        "final_price": session.final_price_display(),
    }
    out.update(extra)
    return out


def _session(registry: SessionRegistry, session_id: str) -> IntakeSession:
    try:
        return registry.get(session_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="intake session not found")


def _apply(fn, *args, **kwargs):
    # Transitions raise ValueError/IndexError for inputs the form cannot accept.
    try:
        return fn(*args, **kwargs)
    except SessionBusy as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except (ValueError, IndexError) as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.post("")
def open_session(
    data: SessionIn,
    registry: SessionRegistry = Depends(get_registry),
    catalog=Depends(get_catalog_service),
    taxes=Depends(get_tax_service),
    vendors=Depends(get_vendor_service),
):
    state = new_form_state(data.category, owner_id=data.owner_id, shop_id=data.shop_id, editing=data.editing)
    session = IntakeSession(state, CatalogIndex(catalog), taxes, vendors)
    if data.initial is not None:
        _apply(session.prefill, data.initial)
    registry.add(session)
    return _view(
        session,
        brands=[b.model_dump(mode="json") for b in session.catalog.brands()],
        taxes=[t.model_dump(mode="json") for t in session.tax_rules()],
        vendors=[v.model_dump(mode="json") for v in session.vendor_options()],
    )


@router.get("/{session_id}")
def get_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    return _view(_session(registry, session_id))


@router.post("/{session_id}/brand")
def choose_brand(session_id: str, data: BrandIn, registry: SessionRegistry = Depends(get_registry)):
    session = _session(registry, session_id)
    _apply(session.choose_brand, data.brand_id)
    return _view(session)


@router.post("/{session_id}/model")
def type_model(session_id: str, data: TextChoiceIn, registry: SessionRegistry = Depends(get_registry)):
    session = _session(registry, session_id)
    suggestions = _apply(session.type_model, data.text, data.id)
    return _view(session, suggestions=[s.model_dump(mode="json") for s in suggestions])


@router.post("/{session_id}/color")
def type_color(session_id: str, data: TextChoiceIn, registry: SessionRegistry = Depends(get_registry)):
    session = _session(registry, session_id)
    suggestions = _apply(session.type_color, data.text, data.id)
    return _view(session, suggestions=[s.model_dump(mode="json") for s in suggestions])


@router.post("/{session_id}/quantity")
def set_quantity(session_id: str, data: QuantityIn, registry: SessionRegistry = Depends(get_registry)):
    session = _session(registry, session_id)
    _apply(session.set_quantity, data.quantity)
    return _view(session)


@router.post("/{session_id}/fields")
def set_fields(session_id: str, data: FieldsIn, registry: SessionRegistry = Depends(get_registry)):
    session = _session(registry, session_id)
    _apply(session.set_fields, data.values)
    return _view(session)


@router.post("/{session_id}/identities/{index}")
def update_identity(session_id: str, index: int, data: IdentityIn, registry: SessionRegistry = Depends(get_registry)):
    session = _session(registry, session_id)
    _apply(session.update_identity, index, data.field, data.value)
    return _view(session)


@router.post("/{session_id}/scan-target")
def begin_scan(session_id: str, data: ScanTargetIn, registry: SessionRegistry = Depends(get_registry)):
    session = _session(registry, session_id)
    _apply(session.begin_scan, data.field, data.index)
    return _view(session)


@router.post("/{session_id}/scan")
def complete_scan(session_id: str, data: ScanIn, registry: SessionRegistry = Depends(get_registry)):
    session = _session(registry, session_id)
    _apply(session.complete_scan, data.code)
    return _view(session)


@router.post("/{session_id}/validate")
def validate(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    session = _session(registry, session_id)
    return {"errors": _apply(session.validate)}


@router.post("/{session_id}/submit")
def submit(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
    inventory=Depends(get_inventory_service),
):
    session = _session(registry, session_id)
    report = _apply(session.submit, inventory)
    if report is None:
        return JSONResponse(status_code=400, content={"detail": "validation failed", "errors": session.state.errors})
    if session.closed:
        # Fully created: the form state is discarded.
        registry.discard(session_id)
    return report.as_dict()


@router.delete("/{session_id}")
def cancel(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    if not registry.discard(session_id):
        raise HTTPException(status_code=404, detail="intake session not found")
    return {"ok": True}
