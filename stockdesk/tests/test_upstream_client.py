import http.client
import io
import json
from urllib.error import HTTPError, URLError

import pytest

from stockdesk.app.intake.models import AccessoryStockPayload, MobileUnitPayload
from stockdesk.app.upstream import client as client_mod
from stockdesk.app.upstream.client import ApiClient, UpstreamError
from stockdesk.app.upstream.services import (
    PosApiCatalogService,
    PosApiInventoryService,
    PosApiTaxService,
    PosApiVendorService,
)
from stockdesk.tests.fakes import APPLE, IPHONE_128


class _FakeResponse:
    def __init__(self, body):
        self._body = body if isinstance(body, bytes) else body.encode("utf-8")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def read(self):
        return self._body


def _patch_urlopen(monkeypatch, body=None, error=None, raw=None):
    seen = []

    def _urlopen(req, timeout=None):
        seen.append({"url": req.full_url, "method": req.get_method(), "data": req.data, "headers": dict(req.headers), "timeout": timeout})
        if error is not None:
            raise error
        return _FakeResponse(raw if raw is not None else json.dumps(body))

    monkeypatch.setattr(client_mod, "urlopen", _urlopen)
    return seen


def test_get_encodes_params_and_sends_token(monkeypatch):
    seen = _patch_urlopen(monkeypatch, {"ok": True})
    api = ApiClient(api_base="http://pos.local/", token="secret", timeout_s=7)
    assert api.get("/api/vendors", userId="u 1", empty="", missing=None) == {"ok": True}
    assert seen[0]["url"] == "http://pos.local/api/vendors?userId=u+1"
    assert seen[0]["method"] == "GET"
    assert seen[0]["headers"]["Authorization"] == "Bearer secret"
    assert seen[0]["timeout"] == 7


def test_list_responses_are_wrapped(monkeypatch):
    _patch_urlopen(monkeypatch, [{"id": "b1", "name": "Apple"}])
    assert ApiClient(api_base="http://pos.local").get("/api/products/brands") == {"items": [{"id": "b1", "name": "Apple"}]}


def test_http_error_carries_status_and_api_message(monkeypatch):
    err = HTTPError("http://pos.local/api/products", 409, "Conflict", {}, io.BytesIO(b'{"error": "IMEI already exists"}'))
    _patch_urlopen(monkeypatch, error=err)
    with pytest.raises(UpstreamError) as exc_info:
        ApiClient(api_base="http://pos.local").post("/api/products", {"imei": "1"})
    assert exc_info.value.status_code == 409
    assert exc_info.value.user_message == "IMEI already exists"
    assert "HTTP 409 /api/products" in str(exc_info.value)


def test_unreachable_host(monkeypatch):
    _patch_urlopen(monkeypatch, error=URLError("connection refused"))
    with pytest.raises(UpstreamError) as exc_info:
        ApiClient(api_base="http://pos.local").get("/api/taxes")
    assert exc_info.value.status_code is None
    assert "unreachable" in exc_info.value.user_message


def test_catalog_service_parses_camel_case_rows(monkeypatch):
    _patch_urlopen(
        monkeypatch,
        {"models": [{"id": "m1", "name": "iPhone 15", "memory": "128GB", "productId": "p1"}]},
    )
    [model] = PosApiCatalogService(ApiClient(api_base="http://pos.local")).get_models(APPLE)
    assert model.display_name == "iPhone 15 128GB"
    assert model.product_id == "p1"
    assert model.category == "mobile"


def test_color_lookup_is_keyed_by_model_name_and_memory(monkeypatch):
    seen = _patch_urlopen(monkeypatch, {"colors": [{"id": "c1", "color": "Black"}]})
    colors = PosApiCatalogService(ApiClient(api_base="http://pos.local")).get_colors(APPLE, IPHONE_128)
    assert [c.color for c in colors] == ["Black"]
    assert seen[0]["url"] == (
        "http://pos.local/api/products/catalog/mobiles/colors?brandId=b-apple&model=iPhone+15&memory=128GB"
    )


def test_accessory_variants_accept_variant_keys(monkeypatch):
    _patch_urlopen(monkeypatch, {"variants": [{"variantId": "a1", "variantName": "Case"}]})
    [variant] = PosApiCatalogService(ApiClient(api_base="http://pos.local")).get_accessory_models(APPLE)
    assert variant.id == "a1"
    assert variant.display_name == "Case"
    assert variant.category == "accessory"


def test_tax_service_drops_inactive_rules(monkeypatch):
    _patch_urlopen(
        monkeypatch,
        {
            "taxes": [
                {"id": "t1", "name": "VAT", "type": "PERCENT", "value": 11, "isActive": True},
                {"id": "t2", "name": "Old", "type": "flat", "value": "3", "isActive": False},
            ]
        },
    )
    rules = PosApiTaxService(ApiClient(api_base="http://pos.local")).get_active_tax_rules()
    assert [(r.id, r.type, r.value) for r in rules] == [("t1", "percent", "11")]


def test_vendor_service_passes_owner(monkeypatch):
    seen = _patch_urlopen(monkeypatch, {"vendors": [{"id": "v1", "name": "Supplier"}]})
    vendors = PosApiVendorService(ApiClient(api_base="http://pos.local")).get_vendors("owner-1")
    assert [v.name for v in vendors] == ["Supplier"]
    assert seen[0]["url"].endswith("/api/vendors?userId=owner-1")


def test_inventory_service_routes_by_payload_kind(monkeypatch):
    seen = _patch_urlopen(monkeypatch, {"product": {"id": "u1"}})
    svc = PosApiInventoryService(ApiClient(api_base="http://pos.local"))
    mobile = MobileUnitPayload(
        brand="Apple",
        model="iPhone 15 128GB",
        color="Black",
        mobile_catalog_id="m1",
        imei="111111111111111",
        purchase_price=800,
        sale_price=950,
    )
    assert svc.create_unit(mobile) == {"id": "u1"}
    body = json.loads(seen[0]["data"])
    assert seen[0]["url"] == "http://pos.local/api/products"
    assert body["mobileCatalogId"] == "m1"
    assert "taxId" not in body

    accessory = AccessoryStockPayload(brand="Anker", accessory_catalog_id="a1", quantity=3, purchase_price=5, sale_price=9)
    svc.create_unit(accessory)
    assert seen[1]["url"] == "http://pos.local/api/products/accessories"
    assert json.loads(seen[1]["data"])["quantity"] == 3


def test_undecodable_body_is_not_fatal(monkeypatch):
    _patch_urlopen(monkeypatch, raw=b'{"product": {"id": "u1", "note": "\xff"}}')
    out = ApiClient(api_base="http://pos.local").post("/api/products", {"imei": "1"})
    assert out["product"]["id"] == "u1"
    assert out["product"]["note"] == "\ufffd"


def test_truncated_response_is_upstream_error(monkeypatch):
    _patch_urlopen(monkeypatch, error=http.client.IncompleteRead(b'{"prod'))
    with pytest.raises(UpstreamError) as exc_info:
        ApiClient(api_base="http://pos.local").post("/api/products", {"imei": "1"})
    assert exc_info.value.status_code is None
    assert "bad response" in str(exc_info.value)
