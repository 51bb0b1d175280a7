from __future__ import annotations

from typing import Optional

from ..validation import whole_number
from .models import (
    DEFAULT_LOW_STOCK_THRESHOLD,
    NO_TAX_ID,
    AccessoryStockPayload,
    IntakeFormState,
    MobileUnitPayload,
    Payload,
)
from .pricing import parse_amount


def _opt(v: Optional[str]) -> Optional[str]:
    s = (v or "").strip()
    return s or None


def _tax_id(state: IntakeFormState) -> Optional[str]:
    # The synthetic no-tax option never reaches the inventory API.
    t = _opt(state.tax_id)
    if t == NO_TAX_ID:
        return None
    return t


def _shared_fields(state: IntakeFormState) -> dict:
    return {
        "shop_id": _opt(state.shop_id),
        "brand": state.brand.name if state.brand else "",
        "product_id": state.model.product_id if state.model else None,
        "purchase_price": float(parse_amount(state.purchase_price)),
        "sale_price": float(parse_amount(state.selling_price)),
        "tax_id": _tax_id(state),
        "vendor_id": _opt(state.vendor_id),
        "barcode": _opt(state.barcode),
        "notes": _opt(state.notes),
        "low_stock_threshold": _threshold(state),
    }


def _threshold(state: IntakeFormState) -> int:
    n = whole_number(state.low_stock_threshold)
    return DEFAULT_LOW_STOCK_THRESHOLD if n is None else n


def _mobile_catalog_id(state: IntakeFormState) -> str:
    # A model without catalog colors still needs a linkage id: fall back to the model's.
    if state.color is not None:
        return state.color.id
    return state.model.id


def build_payloads(state: IntakeFormState) -> list[Payload]:
    """
    Turn a validated form into the create-operations for the inventory API.
    Callers must run `validate_intake` first; an unresolved model is a caller bug.
    """
    if state.brand is None or state.model is None:
        raise ValueError("cannot assemble an intake without a resolved brand and model")
    shared = _shared_fields(state)

    if not state.is_mobile:
        return [
            AccessoryStockPayload(
                accessory_catalog_id=state.model.id,
                quantity=state.quantity,
                **shared,
            )
        ]

    mobile = {
        **shared,
        "model": state.model.display_name,
        "color": state.color.color if state.color is not None else state.color_text.strip(),
        "mobile_catalog_id": _mobile_catalog_id(state),
    }
    if not state.is_batch:
        return [MobileUnitPayload(imei=state.imei.strip(), imei2=_opt(state.imei2), **mobile)]
    return [MobileUnitPayload(imei=unit.imei1.strip(), imei2=_opt(unit.imei2), **mobile) for unit in state.identities]
