from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional, Sequence

from .models import NO_TAX_ID, TaxRule


Q2 = Decimal("0.01")

NO_TAX_RULE = TaxRule(id=NO_TAX_ID, name="No Tax", type="flat", value="0", is_active=True)


def parse_amount(v: Any) -> Decimal:
    """Lenient money parsing for form input: anything non-numeric resolves to 0."""
    if v is None:
        return Decimal("0")
    if isinstance(v, Decimal):
        d = v
    else:
        try:
            d = Decimal(str(v).strip())
        except (InvalidOperation, ValueError):
            return Decimal("0")
    if not d.is_finite():
        return Decimal("0")
    return d


def with_no_tax(rules: Sequence[TaxRule]) -> list[TaxRule]:
    """The synthetic no-tax rule always comes first and is always selectable."""
    return [NO_TAX_RULE, *[r for r in rules if r.id != NO_TAX_ID]]


def tax_option_label(rule: TaxRule) -> str:
    if rule.id == NO_TAX_ID:
        return rule.name
    if rule.type == "percent":
        return f"{rule.name} ({rule.value}%)"
    return f"{rule.name} ({rule.value})"


def find_rule(tax_id: Optional[str], rules: Sequence[TaxRule]) -> Optional[TaxRule]:
    if not tax_id or tax_id == NO_TAX_ID:
        return None
    for r in rules:
        if r.id == tax_id:
            return r
    return None


def compute_final_price(selling_price: Any, tax_id: Optional[str], tax_rules: Sequence[TaxRule]) -> Decimal:
    price = parse_amount(selling_price)
    rule = find_rule(tax_id, tax_rules)
    if rule is None:
        return price
    value = parse_amount(rule.value)
    if value == 0:
        return price
    if rule.type == "percent":
        return price + (price * value) / Decimal("100")
    return price + value


def final_price_display(selling_price: Any, tax_id: Optional[str], tax_rules: Sequence[TaxRule]) -> Optional[str]:
    # Nothing to preview until a positive selling price is entered.
    if parse_amount(selling_price) <= 0:
        return None
    final = compute_final_price(selling_price, tax_id, tax_rules)
    return str(final.quantize(Q2, rounding=ROUND_HALF_UP))
