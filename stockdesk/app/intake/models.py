"""
Intake data model.

Catalog facts (brands, variants, colors, tax rules, vendors) are parsed from the
remote POS API, which speaks camelCase; attributes stay snake_case and the alias
generator maps them on the wire.

`IntakeFormState` is the single source of truth for one open intake dialog. It is
frozen: transitions in `selector`, `identities` and `session` return new states.
"""

from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from ..validation import Category, FormText, ScanField, TaxType


MAX_QUANTITY = 100
DEFAULT_LOW_STOCK_THRESHOLD = 5
NO_TAX_ID = "no_tax"


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True, protected_namespaces=())

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Brand(WireModel):
    id: str
    name: str


def _fill_display_name(data):
    if isinstance(data, dict) and not (data.get("displayName") or data.get("display_name")):
        name = str(data.get("name") or "").strip()
        memory = str(data.get("memory") or "").strip()
        data = {**data, "displayName": f"{name} {memory}".strip()}
    return data


class MobileVariant(WireModel):
    category: Literal["mobile"] = "mobile"
    id: str
    name: str
    memory: Optional[str] = None
    display_name: str
    product_id: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _display_name(cls, data):
        return _fill_display_name(data)


class AccessoryVariant(WireModel):
    category: Literal["accessory"] = "accessory"
    id: str
    name: str
    memory: Optional[str] = None
    display_name: str
    product_id: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _display_name(cls, data):
        return _fill_display_name(data)


CatalogVariant = Annotated[Union[MobileVariant, AccessoryVariant], Field(discriminator="category")]


class ColorVariant(WireModel):
    id: str
    color: str


class TaxRule(WireModel):
    id: str
    name: str
    type: TaxType = "flat"
    value: str = "0"
    is_active: bool = True

    @model_validator(mode="before")
    @classmethod
    def _value_as_text(cls, data):
        # The API serializes numeric(10,2) as a string, older builds sent numbers.
        if isinstance(data, dict) and data.get("value") is not None:
            data = {**data, "value": str(data["value"])}
        return data


class Vendor(WireModel):
    id: str
    name: str


class UnitIdentity(BaseModel):
    model_config = ConfigDict(frozen=True)

    imei1: str = ""
    imei2: str = ""


class ScanTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: ScanField
    index: Optional[int] = None


class IntakeFormState(BaseModel):
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    category: Category
    editing: bool = False
    owner_id: str = ""
    shop_id: Optional[str] = None

    brand: Optional[Brand] = None
    model: Optional[CatalogVariant] = None
    model_text: str = ""
    model_options: list[CatalogVariant] = Field(default_factory=list)
    color: Optional[ColorVariant] = None
    color_text: str = ""
    color_options: list[ColorVariant] = Field(default_factory=list)

    quantity: int = 1
    purchase_price: str = ""
    selling_price: str = ""
    tax_id: Optional[str] = None

    imei: str = ""
    imei2: str = ""
    identities: list[UnitIdentity] = Field(default_factory=list)

    vendor_id: Optional[str] = None
    barcode: str = ""
    notes: str = ""
    # Kept as typed so a non-numeric entry can be reported; blank means the default.
    low_stock_threshold: FormText = str(DEFAULT_LOW_STOCK_THRESHOLD)

    scan_target: Optional[ScanTarget] = None
    errors: dict[str, str] = Field(default_factory=dict)

    @property
    def is_mobile(self) -> bool:
        return self.category == "mobile"

    @property
    def is_batch(self) -> bool:
        """New-batch mode: the identity list, not the single imei pair, is authoritative."""
        return self.is_mobile and not self.editing and self.quantity > 1


def new_form_state(category: str, *, owner_id: str = "", shop_id: Optional[str] = None, editing: bool = False) -> IntakeFormState:
    state = IntakeFormState(category=category, owner_id=owner_id or "", shop_id=shop_id, editing=editing)
    if state.is_mobile:
        state = state.model_copy(update={"identities": [UnitIdentity()]})
    return state


class MobileUnitPayload(WireModel):
    category_id: Literal["mobile"] = "mobile"
    shop_id: Optional[str] = None
    brand: str
    model: str
    color: str
    mobile_catalog_id: str
    product_id: Optional[str] = None
    imei: str
    imei2: Optional[str] = None
    purchase_price: float
    sale_price: float
    tax_id: Optional[str] = None
    vendor_id: Optional[str] = None
    barcode: Optional[str] = None
    notes: Optional[str] = None
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD


class AccessoryStockPayload(WireModel):
    category_id: Literal["accessory"] = "accessory"
    shop_id: Optional[str] = None
    brand: str
    accessory_catalog_id: str
    product_id: Optional[str] = None
    quantity: int
    purchase_price: float
    sale_price: float
    tax_id: Optional[str] = None
    vendor_id: Optional[str] = None
    barcode: Optional[str] = None
    notes: Optional[str] = None
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD


Payload = Union[MobileUnitPayload, AccessoryStockPayload]
