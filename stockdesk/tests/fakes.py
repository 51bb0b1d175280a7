from stockdesk.app.intake.models import AccessoryVariant, Brand, ColorVariant, MobileVariant, TaxRule, Vendor
from stockdesk.app.upstream.client import UpstreamError


APPLE = Brand(id="b-apple", name="Apple")
SAMSUNG = Brand(id="b-samsung", name="Samsung")
ANKER = Brand(id="b-anker", name="Anker")

IPHONE_128 = MobileVariant(id="m-ip15-128", name="iPhone 15", memory="128GB")
IPHONE_256 = MobileVariant(id="m-ip15-256", name="iPhone 15", memory="256GB")
GALAXY = MobileVariant(id="m-s24", name="Galaxy S24", memory="256GB")
PIXEL_NO_COLORS = MobileVariant(id="m-px", name="Pixel 8")

BLACK = ColorVariant(id="c-ip15-black", color="Black")
BLUE = ColorVariant(id="c-ip15-blue", color="Blue")

CHARGER = AccessoryVariant(id="a-20w", name="20W Charger")
CABLE = AccessoryVariant(id="a-usbc", name="USB-C Cable", memory="1m")

VAT = TaxRule(id="t-vat", name="VAT", type="percent", value="11")
ECO = TaxRule(id="t-eco", name="Eco fee", type="flat", value="2.50")
ZERO = TaxRule(id="t-zero", name="Zero rated", type="percent", value="0")


class FakeCatalog:
    def __init__(self, fail=()):
        self.brands = [APPLE, SAMSUNG, ANKER]
        self.models = {APPLE.id: [IPHONE_128, IPHONE_256], SAMSUNG.id: [GALAXY, PIXEL_NO_COLORS]}
        self.colors = {(APPLE.id, "iPhone 15", "128GB"): [BLACK, BLUE]}
        self.accessories = {ANKER.id: [CHARGER, CABLE], APPLE.id: [CHARGER]}
        self.fail = set(fail)
        self.calls: list[tuple] = []

    def _call(self, kind, *args):
        self.calls.append((kind, *args))
        if kind in self.fail:
            raise UpstreamError(f"/fake/{kind}", "unreachable")

    def get_brands(self):
        self._call("brands")
        return list(self.brands)

    def get_models(self, brand):
        self._call("models", brand.id)
        return list(self.models.get(brand.id, []))

    def get_colors(self, brand, model):
        self._call("colors", brand.id, model.name, model.memory)
        return list(self.colors.get((brand.id, model.name, model.memory or ""), []))

    def get_accessory_models(self, brand):
        self._call("accessory_models", brand.id)
        return list(self.accessories.get(brand.id, []))


class FakeTaxes:
    def __init__(self, rules=(VAT, ECO, ZERO), fail=False):
        self.rules = list(rules)
        self.fail = fail
        self.calls = 0

    def get_active_tax_rules(self):
        self.calls += 1
        if self.fail:
            raise UpstreamError("/api/taxes", "unreachable")
        return list(self.rules)


class FakeVendors:
    def __init__(self, rows=None):
        self.rows = list(rows if rows is not None else [Vendor(id="v-1", name="Main Supplier")])
        self.calls: list[str] = []

    def get_vendors(self, owner_id):
        self.calls.append(owner_id)
        return list(self.rows)


class FakeInventory:
    def __init__(self, reject_imeis=()):
        self.reject_imeis = set(reject_imeis)
        self.created: list = []

    def create_unit(self, payload):
        imei = getattr(payload, "imei", None)
        if imei in self.reject_imeis:
            raise UpstreamError("/api/products", "conflict", status_code=409, body={"error": f"IMEI {imei} already exists"})
        self.created.append(payload)
        return {"id": f"unit-{len(self.created)}"}


class FakeScanner:
    def __init__(self, *codes):
        self.codes = list(codes)

    def scan(self):
        return self.codes.pop(0)
