"""
Submit-time validation for an intake form.

Rules run in a fixed order and accumulate into a field-keyed error map; a form may
be submitted only when the map is empty. Everything here is local and synchronous.

  1. brand required
  2. model required (a resolved catalog match, free text alone is rejected)
  3. color required (mobile): catalog color when the model has colors, else free text
  4. purchase price > 0
  5. selling price > 0
  6. identities (mobile): single imei in editing/quantity==1 mode, otherwise one imei1
     per unit with the identity list length equal to quantity
  7. low stock threshold: blank (default) or a whole number >= 0

Accessories never carry identities; their quantity is a plain stock count.
"""

from __future__ import annotations

from ..validation import whole_number
from .models import IntakeFormState
from .pricing import parse_amount


def _validate_brand(state: IntakeFormState, errors: dict[str, str]) -> None:
    if state.brand is None:
        errors["brand"] = "Brand is required"


def _validate_model(state: IntakeFormState, errors: dict[str, str]) -> None:
    if state.model is not None:
        return
    if state.model_text.strip():
        errors["model"] = "Please select a valid model for the selected brand"
    else:
        errors["model"] = "Model is required" if state.is_mobile else "Variant is required"


def _validate_color(state: IntakeFormState, errors: dict[str, str]) -> None:
    if not state.is_mobile:
        return
    if state.color_options:
        if state.color is None:
            errors["color"] = "Please select a color for this model"
    elif not state.color_text.strip():
        errors["color"] = "Color is required"


def _validate_price(raw: str, key: str, label: str, errors: dict[str, str]) -> None:
    if not (raw or "").strip() or parse_amount(raw) <= 0:
        errors[key] = f"Valid {label} is required"


def _validate_single_identity(state: IntakeFormState, errors: dict[str, str]) -> None:
    imei = state.imei.strip()
    imei2 = state.imei2.strip()
    if not imei:
        errors["imei"] = "IMEI is required"
    elif imei2 and imei2 == imei:
        errors["imei2"] = "Primary and Secondary IMEI cannot be the same"


def _validate_batch_identities(state: IntakeFormState, errors: dict[str, str]) -> None:
    if len(state.identities) != state.quantity:
        errors["quantity"] = (
            f"Number of IMEI entries must match quantity ({len(state.identities)} != {state.quantity})"
        )
    seen: dict[str, int] = {}
    for i, unit in enumerate(state.identities):
        imei1 = unit.imei1.strip()
        key = f"imei_{i}"
        if not imei1:
            errors[key] = f"IMEI 1 is required for unit {i + 1}"
            continue
        if imei1 in seen:
            errors[key] = f"IMEI 1 duplicates unit {seen[imei1] + 1}"
            continue
        seen[imei1] = i
        imei2 = unit.imei2.strip()
        if imei2 and imei2 == imei1:
            errors[key] = f"IMEI 2 cannot equal IMEI 1 for unit {i + 1}"


def _validate_threshold(state: IntakeFormState, errors: dict[str, str]) -> None:
    raw = state.low_stock_threshold
    if not str(raw).strip():
        return
    n = whole_number(raw)
    if n is None:
        errors["low_stock_threshold"] = "Low stock threshold must be a whole number"
    elif n < 0:
        errors["low_stock_threshold"] = "Low stock threshold cannot be negative"


def validate_intake(state: IntakeFormState) -> dict[str, str]:
    errors: dict[str, str] = {}
    _validate_brand(state, errors)
    _validate_model(state, errors)
    _validate_color(state, errors)
    _validate_price(state.purchase_price, "purchase_price", "purchase price", errors)
    _validate_price(state.selling_price, "selling_price", "selling price", errors)
    if state.is_mobile:
        if state.is_batch:
            _validate_batch_identities(state, errors)
        else:
            _validate_single_identity(state, errors)
    _validate_threshold(state, errors)
    return errors


def with_validation(state: IntakeFormState) -> IntakeFormState:
    return state.model_copy(update={"errors": validate_intake(state)})
