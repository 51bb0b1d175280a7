from __future__ import annotations

from typing import Annotated, Literal, Optional

from pydantic import BeforeValidator, StringConstraints


def _to_lower_str(v):
    if v is None:
        return v
    return str(v).strip().lower()


def _to_stripped_str(v):
    if v is None:
        return ""
    return str(v).strip()


def _to_category(v):
    # The remote API historically used "accessories"; the intake core uses the singular form.
    c = _to_lower_str(v)
    if c == "accessories":
        return "accessory"
    return c


Category = Annotated[Literal["mobile", "accessory"], BeforeValidator(_to_category)]
TaxType = Annotated[Literal["percent", "flat"], BeforeValidator(_to_lower_str)]

# Identity fields a scan or an identity edit may target.
IdentityField = Annotated[Literal["imei1", "imei2"], BeforeValidator(_to_lower_str)]
ScanField = Annotated[Literal["imei", "imei2", "imei1", "barcode"], BeforeValidator(_to_lower_str)]

# Free text typed into a form control; always a stripped string, never None.
FormText = Annotated[str, BeforeValidator(_to_stripped_str)]

# Decoded scanner output; scanners occasionally emit trailing CR/LF.
ScannedCode = Annotated[
    str,
    BeforeValidator(_to_stripped_str),
    StringConstraints(min_length=1, max_length=128),
]


def whole_number(v) -> Optional[int]:
    """Integer form input; integral floats ("3.0", 3.0) count. None when not a whole number."""
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, int):
        return v
    s = str(v).strip()
    try:
        return int(s)
    except ValueError:
        pass
    try:
        f = float(s)
    except ValueError:
        return None
    # is_integer() is False for inf/nan too.
    if not f.is_integer():
        return None
    return int(f)
