"""
One open intake dialog.

`IntakeSession` owns a single IntakeFormState plus the session-scoped lookups
(catalog cache, tax rules, vendors) and applies the pure transitions from
`selector` and `identities`. Sessions live in a `SessionRegistry` until they are
submitted or cancelled; state is never shared between sessions.

Batch submission is best-effort: every payload is attempted, failures are
reported per unit, and units already created are not rolled back. Transitions
and submit are serialized per session; a session being submitted refuses changes.
"""

from __future__ import annotations

import threading
import uuid
from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from ..jsonlog import json_log
from ..upstream.client import UpstreamError
from ..upstream.services import InventoryService, ScannerDevice, TaxService, VendorService
from . import identities, selector
from .assembler import build_payloads
from .catalog_index import CatalogIndex, safe_lookup
from .models import IntakeFormState, TaxRule, Vendor, new_form_state
from .pricing import compute_final_price, final_price_display, with_no_tax
from .validator import validate_intake


TEXT_FIELDS = {"purchase_price", "selling_price", "imei", "imei2", "barcode", "notes", "low_stock_threshold"}
OPTIONAL_ID_FIELDS = {"tax_id", "vendor_id"}
MOBILE_ONLY_FIELDS = {"imei", "imei2"}


def set_field(state: IntakeFormState, name: str, value: Any) -> IntakeFormState:
    """Set a scalar form field and clear that field's error."""
    if name in MOBILE_ONLY_FIELDS and not state.is_mobile:
        raise ValueError(f"{name} is not an accessory field")
    if name in TEXT_FIELDS:
        v: Any = "" if value is None else str(value).strip()
    elif name in OPTIONAL_ID_FIELDS:
        v = (str(value).strip() if value is not None else "") or None
    else:
        raise ValueError(f"unknown intake field: {name}")
    errors = {k: e for k, e in state.errors.items() if k != name}
    return state.model_copy(update={name: v, "errors": errors})


class IntakeInitialData(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    brand_id: Optional[str] = None
    model_id: Optional[str] = None
    color_id: Optional[str] = None
    color_text: Optional[str] = None
    quantity: Optional[int] = None
    purchase_price: Optional[str] = None
    selling_price: Optional[str] = None
    tax_id: Optional[str] = None
    imei: Optional[str] = None
    imei2: Optional[str] = None
    vendor_id: Optional[str] = None
    barcode: Optional[str] = None
    notes: Optional[str] = None
    low_stock_threshold: Optional[int] = None


@dataclass
class SubmitReport:
    created: list[dict] = field(default_factory=list)
    failed: list[dict] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def as_dict(self) -> dict:
        return {
            "ok": self.ok,
            "created_count": len(self.created),
            "failed_count": len(self.failed),
            "created": self.created,
            "failed": self.failed,
        }


class SessionBusy(RuntimeError):
    """The session is being submitted, or was already submitted, and takes no further changes."""


class IntakeSession:
    def __init__(
        self,
        state: IntakeFormState,
        catalog: CatalogIndex,
        taxes: TaxService,
        vendors: VendorService,
        session_id: Optional[str] = None,
    ):
        self.id = session_id or uuid.uuid4().hex
        self.state = state
        self.catalog = catalog
        self.taxes = taxes
        self.vendors = vendors
        self.submitting = False
        self.closed = False
        self._tax_rules: Optional[list[TaxRule]] = None
        self._vendors: Optional[list[Vendor]] = None
        # Reentrant: prefill and set_fields run other transitions while holding it.
        self._lock = threading.RLock()

    @contextmanager
    def _editing(self):
        with self._lock:
            if self.submitting:
                raise SessionBusy("intake session is being submitted")
            if self.closed:
                raise SessionBusy("intake session was already submitted")
            yield

    # Lookups

    def tax_rules(self) -> list[TaxRule]:
        with self._lock:
            if self._tax_rules is None:
                rows = safe_lookup("taxes", self.taxes.get_active_tax_rules)
                if rows is None:
                    return with_no_tax([])
                self._tax_rules = with_no_tax(rows)
            return list(self._tax_rules)

    def vendor_options(self) -> list[Vendor]:
        owner_id = self.state.owner_id
        if not owner_id:
            return []
        with self._lock:
            if self._vendors is None:
                rows = safe_lookup("vendors", lambda: self.vendors.get_vendors(owner_id), owner_id=owner_id)
                if rows is None:
                    return []
                self._vendors = rows
            return list(self._vendors)

    # Transitions

    def choose_brand(self, brand_id: str) -> IntakeFormState:
        with self._editing():
            self.state = selector.choose_brand(self.state, self.catalog, brand_id)
            return self.state

    def type_model(self, text: str, model_id: Optional[str] = None) -> list:
        with self._editing():
            self.state, suggestions = selector.type_model(self.state, self.catalog, text, model_id)
            return suggestions

    def type_color(self, text: str, color_id: Optional[str] = None) -> list:
        with self._editing():
            self.state, suggestions = selector.type_color(self.state, text, color_id)
            return suggestions

    def set_quantity(self, raw: Any) -> IntakeFormState:
        with self._editing():
            self.state = identities.set_quantity(self.state, raw)
            return self.state

    def update_identity(self, index: int, field_name: str, value: str) -> IntakeFormState:
        with self._editing():
            self.state = identities.update_identity(self.state, index, field_name, value)
            return self.state

    def set_fields(self, values: dict[str, Any]) -> IntakeFormState:
        with self._editing():
            state = self.state
            for name, value in values.items():
                state = set_field(state, name, value)
            self.state = state
            return self.state

    def begin_scan(self, field_name: str, index: Optional[int] = None) -> IntakeFormState:
        with self._editing():
            self.state = identities.begin_scan(self.state, field_name, index)
            return self.state

    def complete_scan(self, code: str) -> IntakeFormState:
        with self._editing():
            self.state = identities.complete_scan(self.state, code)
            return self.state

    def scan_with(self, scanner: ScannerDevice) -> IntakeFormState:
        with self._editing():
            self.state = identities.scan_into(self.state, scanner)
            return self.state

    def prefill(self, initial: IntakeInitialData) -> IntakeFormState:
        """Load initial data (editing an existing unit, or a duplicated entry)."""
        with self._editing():
            if initial.brand_id:
                self.choose_brand(initial.brand_id)
                if initial.model_id:
                    self.type_model("", model_id=initial.model_id)
                    if self.state.is_mobile and (initial.color_id or initial.color_text):
                        self.type_color(initial.color_text or "", color_id=initial.color_id)
            if initial.quantity is not None:
                self.set_quantity(initial.quantity)
            values = initial.model_dump(
                include={"purchase_price", "selling_price", "tax_id", "vendor_id", "barcode", "notes", "low_stock_threshold"},
                exclude_none=True,
            )
            if self.state.is_mobile:
                values.update(initial.model_dump(include={"imei", "imei2"}, exclude_none=True))
            return self.set_fields(values)

    # Derived values

    def final_price(self) -> Decimal:
        return compute_final_price(self.state.selling_price, self.state.tax_id, self.tax_rules())

    def final_price_display(self) -> Optional[str]:
        return final_price_display(self.state.selling_price, self.state.tax_id, self.tax_rules())

    # Submit

    def validate(self) -> dict[str, str]:
        with self._editing():
            errors = validate_intake(self.state)
            self.state = self.state.model_copy(update={"errors": errors})
            return errors

    def submit(self, inventory: InventoryService) -> Optional[SubmitReport]:
        """
        Returns None when validation blocks the submit (errors are on the state).

        The lock is released while units are created; `submitting` refuses every other
        change, including a second submit, until the batch is done. A fully created batch
        closes the session.
        """
        with self._editing():
            if self.validate():
                return None
            payloads = build_payloads(self.state)
            self.submitting = True
        report = SubmitReport()
        try:
            for i, payload in enumerate(payloads):
                imei = getattr(payload, "imei", None)
                try:
                    unit = inventory.create_unit(payload)
                except UpstreamError as exc:
                    report.failed.append({"index": i, "imei": imei, "error": exc.user_message})
                    json_log("warning", "intake.submit.unit_failed", session_id=self.id, index=i, imei=imei, error=str(exc))
                    continue
                except Exception as exc:
                    # Earlier units already exist; keep going so the report stays complete.
                    report.failed.append({"index": i, "imei": imei, "error": "unexpected error"})
                    json_log(
                        "error",
                        "intake.submit.unit_failed",
                        session_id=self.id,
                        index=i,
                        imei=imei,
                        error=repr(exc),
                    )
                    continue
                report.created.append({"index": i, "imei": imei, "unit": unit})
        finally:
            with self._lock:
                self.submitting = False
                if report.ok and len(report.created) == len(payloads):
                    self.closed = True
                    self.state = self._fresh_state()
        json_log(
            "info",
            "intake.submit.done",
            session_id=self.id,
            category=self.state.category,
            created=len(report.created),
            failed=len(report.failed),
        )
        return report

    def _fresh_state(self) -> IntakeFormState:
        s = self.state
        return new_form_state(s.category, owner_id=s.owner_id, shop_id=s.shop_id, editing=s.editing)

    def reset(self) -> IntakeFormState:
        with self._editing():
            self.state = self._fresh_state()
            return self.state


class SessionRegistry:
    """Open intake sessions by id. The oldest session is evicted once `limit` is reached."""

    def __init__(self, limit: int = 500):
        self.limit = max(1, limit)
        self._sessions: "OrderedDict[str, IntakeSession]" = OrderedDict()
        self._lock = threading.Lock()

    def add(self, session: IntakeSession) -> IntakeSession:
        with self._lock:
            while len(self._sessions) >= self.limit:
                evicted_id, _ = self._sessions.popitem(last=False)
                json_log("warning", "intake.session.evicted", session_id=evicted_id)
            self._sessions[session.id] = session
        return session

    def get(self, session_id: str) -> IntakeSession:
        with self._lock:
            return self._sessions[session_id]

    def discard(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
