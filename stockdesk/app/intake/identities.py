from __future__ import annotations

from typing import Any, Optional

from ..upstream.services import ScannerDevice
from ..validation import whole_number
from .models import MAX_QUANTITY, IntakeFormState, ScanTarget, UnitIdentity


def clamp_quantity(raw: Any) -> int:
    n = whole_number(raw)
    if n is None:
        return 1
    return max(1, min(MAX_QUANTITY, n))


def resize_identities(identities: list[UnitIdentity], n: int) -> list[UnitIdentity]:
    """
    Keep the first `n` records untouched (order and values), pad with empty records.
    Records past `n` are dropped; shrinking below a filled entry loses it on purpose.
    """
    kept = list(identities[:n])
    if len(kept) < n:
        kept.extend(UnitIdentity() for _ in range(n - len(kept)))
    return kept


def set_quantity(state: IntakeFormState, raw: Any) -> IntakeFormState:
    n = clamp_quantity(raw)
    update: dict = {"quantity": n, "errors": {k: v for k, v in state.errors.items() if k != "quantity"}}
    # Accessory quantity is a plain stock count; no per-unit identities exist.
    if state.is_mobile:
        update["identities"] = resize_identities(state.identities, n)
        update["errors"] = {k: v for k, v in update["errors"].items() if not _is_dropped_unit_key(k, n)}
    target = state.scan_target
    if target is not None and target.index is not None and target.index >= n:
        update["scan_target"] = None
    return state.model_copy(update=update)


def _is_dropped_unit_key(key: str, n: int) -> bool:
    if not key.startswith("imei_"):
        return False
    try:
        return int(key[len("imei_"):]) >= n
    except ValueError:
        return False


def update_identity(state: IntakeFormState, index: int, field: str, value: str) -> IntakeFormState:
    if not state.is_mobile:
        raise ValueError("accessory intake has no unit identities")
    if field not in {"imei1", "imei2"}:
        raise ValueError(f"unknown identity field: {field}")
    if index < 0 or index >= len(state.identities):
        raise IndexError(f"identity index {index} out of range (quantity={state.quantity})")
    identities = list(state.identities)
    identities[index] = identities[index].model_copy(update={field: (value or "").strip()})
    errors = {k: v for k, v in state.errors.items() if k != f"imei_{index}"}
    return state.model_copy(update={"identities": identities, "errors": errors})


def begin_scan(state: IntakeFormState, field: str, index: Optional[int] = None) -> IntakeFormState:
    """Remember exactly one (index, field) pair for the next scan result."""
    target = ScanTarget(field=field, index=index)
    if index is None:
        if target.field == "imei1":
            raise ValueError("batch identity scans need an index")
        if target.field in {"imei", "imei2"} and not state.is_mobile:
            raise ValueError("accessory intake has no IMEI fields")
    else:
        if target.field not in {"imei1", "imei2"}:
            raise ValueError(f"{target.field} scans do not take an index")
        if not state.is_mobile:
            raise ValueError("accessory intake has no unit identities")
        if index < 0 or index >= len(state.identities):
            raise IndexError(f"identity index {index} out of range (quantity={state.quantity})")
    return state.model_copy(update={"scan_target": target})


def complete_scan(state: IntakeFormState, code: str) -> IntakeFormState:
    target = state.scan_target
    if target is None:
        raise ValueError("no scan target selected")
    value = (code or "").strip()
    if target.index is not None:
        new_state = update_identity(state, target.index, target.field, value)
    else:
        errors = {k: v for k, v in state.errors.items() if k != target.field}
        new_state = state.model_copy(update={target.field: value, "errors": errors})
    return new_state.model_copy(update={"scan_target": None})


def cancel_scan(state: IntakeFormState) -> IntakeFormState:
    return state.model_copy(update={"scan_target": None})


def scan_into(state: IntakeFormState, scanner: ScannerDevice) -> IntakeFormState:
    """Read one decoded string from the device into the pending scan target."""
    if state.scan_target is None:
        raise ValueError("no scan target selected")
    return complete_scan(state, scanner.scan())
