from stockdesk.app.intake import catalog_index as catalog_index_mod
from stockdesk.app.intake.catalog_index import CatalogIndex, safe_lookup
from stockdesk.tests.fakes import APPLE, BLACK, BLUE, IPHONE_128, IPHONE_256, FakeCatalog


def test_brands_are_fetched_once_per_index():
    svc = FakeCatalog()
    index = CatalogIndex(svc)
    assert [b.name for b in index.brands()] == ["Apple", "Samsung", "Anker"]
    index.brands()
    assert svc.calls == [("brands",)]


def test_no_lookup_for_empty_parent():
    svc = FakeCatalog()
    index = CatalogIndex(svc)
    assert index.models(None) == []
    assert index.colors(APPLE, None) == []
    assert index.colors(None, IPHONE_128) == []
    assert index.accessory_models(None) == []
    assert svc.calls == []


def test_colors_are_keyed_by_model_name_and_memory():
    svc = FakeCatalog()
    index = CatalogIndex(svc)
    assert index.colors(APPLE, IPHONE_128) == [BLACK, BLUE]
    assert index.colors(APPLE, IPHONE_256) == []
    index.colors(APPLE, IPHONE_128)
    assert svc.calls == [
        ("colors", "b-apple", "iPhone 15", "128GB"),
        ("colors", "b-apple", "iPhone 15", "256GB"),
    ]


def test_failed_lookup_degrades_to_empty_and_is_retried(monkeypatch):
    logged = []
    monkeypatch.setattr(catalog_index_mod, "json_log", lambda level, event, **fields: logged.append((level, event, fields)))
    svc = FakeCatalog(fail={"models"})
    index = CatalogIndex(svc)

    assert index.models(APPLE) == []
    assert logged[0][0] == "warning"
    assert logged[0][1] == "catalog.lookup_failed"
    assert logged[0][2]["kind"] == "models"
    assert logged[0][2]["brand_id"] == "b-apple"

    svc.fail.clear()
    assert index.models(APPLE) == [IPHONE_128, IPHONE_256]
    assert [c for c in svc.calls if c[0] == "models"] == [("models", "b-apple"), ("models", "b-apple")]


def test_failed_brand_lookup_returns_empty_list(monkeypatch):
    monkeypatch.setattr(catalog_index_mod, "json_log", lambda *_args, **_kwargs: None)
    index = CatalogIndex(FakeCatalog(fail={"brands"}))
    assert index.brands() == []
    assert index.find_brand("b-apple") is None


def test_safe_lookup_passes_results_through():
    assert safe_lookup("vendors", lambda: None) == []
    assert safe_lookup("vendors", lambda: (1, 2)) == [1, 2]


def test_variants_for_uses_category():
    svc = FakeCatalog()
    index = CatalogIndex(svc)
    assert [v.id for v in index.variants_for("accessory", APPLE)] == ["a-20w"]
    assert [v.id for v in index.variants_for("mobile", APPLE)] == ["m-ip15-128", "m-ip15-256"]
