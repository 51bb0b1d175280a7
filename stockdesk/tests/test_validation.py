import pytest
from pydantic import BaseModel, ValidationError

from stockdesk.app.validation import Category, FormText, IdentityField, ScanField, ScannedCode, TaxType, whole_number


class _M(BaseModel):
    category: Category
    tax_type: TaxType
    identity: IdentityField
    scan: ScanField
    text: FormText
    code: ScannedCode


def test_validation_types_normalize():
    m = _M(category="Accessories", tax_type="PERCENT", identity=" IMEI2 ", scan="Barcode", text=None, code=" 3512\r\n")
    assert m.category == "accessory"
    assert m.tax_type == "percent"
    assert m.identity == "imei2"
    assert m.scan == "barcode"
    assert m.text == ""
    assert m.code == "3512"


def test_unknown_category_and_empty_scan_are_rejected():
    with pytest.raises(ValidationError):
        _M(category="tablet", tax_type="flat", identity="imei1", scan="imei", text="", code="1")
    with pytest.raises(ValidationError):
        _M(category="mobile", tax_type="flat", identity="imei1", scan="imei", text="", code="  ")


def test_whole_number():
    assert whole_number("12") == 12
    assert whole_number(" 3.0 ") == 3
    assert whole_number(4.0) == 4
    assert whole_number("-2") == -2
    assert whole_number("1.5") is None
    assert whole_number("nan") is None
    assert whole_number("") is None
    assert whole_number(False) is None
