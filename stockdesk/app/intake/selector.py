"""
Cascading brand -> model[-> color] selection.

`select_*` are pure transitions over IntakeFormState. `choose_brand`, `type_model`
and `type_color` resolve raw UI input against a CatalogIndex and then apply the
matching transition. Candidate lists are brand/model scoped and only fetched once
the parent level is selected.
"""

from __future__ import annotations

from typing import Optional, Sequence

from .catalog_index import CatalogIndex
from .models import Brand, ColorVariant, IntakeFormState


def _norm(v: Optional[str]) -> str:
    return (v or "").strip().lower()


def _without_errors(errors: dict[str, str], *keys: str) -> dict[str, str]:
    return {k: v for k, v in errors.items() if k not in keys}


def filter_suggestions(candidates: Sequence, text: str, attr: str) -> list:
    """Case-insensitive substring match on `attr`; empty text keeps every candidate."""
    q = _norm(text)
    if not q:
        return list(candidates)
    return [c for c in candidates if q in _norm(getattr(c, attr, ""))]


def match_candidate(candidates: Sequence, text: str, attr: str, candidate_id: Optional[str] = None):
    if candidate_id:
        for c in candidates:
            if c.id == candidate_id:
                return c
        return None
    q = _norm(text)
    if not q:
        return None
    for c in candidates:
        if _norm(getattr(c, attr, "")) == q:
            return c
    return None


def select_brand(state: IntakeFormState, brand: Optional[Brand], model_options: Sequence = ()) -> IntakeFormState:
    # Always resets the dependent levels, even when the brand did not change.
    return state.model_copy(
        update={
            "brand": brand,
            "model": None,
            "model_text": "",
            "model_options": list(model_options) if brand is not None else [],
            "color": None,
            "color_text": "",
            "color_options": [],
            "errors": _without_errors(state.errors, "brand", "model", "color"),
        }
    )


def select_model(state: IntakeFormState, model, raw_text: str, color_options: Sequence[ColorVariant] = ()) -> IntakeFormState:
    if model is not None and model.category != state.category:
        raise ValueError(f"{model.category} variant cannot be selected on a {state.category} intake")
    text = (raw_text or "").strip()
    if model is not None and not text:
        text = model.display_name
    colors = list(color_options) if (model is not None and state.is_mobile) else []
    return state.model_copy(
        update={
            "model": model,
            "model_text": text,
            "color": None,
            "color_text": "",
            "color_options": colors,
            "errors": _without_errors(state.errors, "model", "color"),
        }
    )


def select_color(state: IntakeFormState, color: Optional[ColorVariant], raw_text: str) -> IntakeFormState:
    if not state.is_mobile:
        raise ValueError("accessory intake has no color level")
    text = (raw_text or "").strip()
    if color is not None and not text:
        text = color.color
    return state.model_copy(
        update={
            "color": color,
            "color_text": text,
            "errors": _without_errors(state.errors, "color"),
        }
    )


def choose_brand(state: IntakeFormState, index: CatalogIndex, brand_id: str) -> IntakeFormState:
    brand = index.find_brand(brand_id)
    return select_brand(state, brand, index.variants_for(state.category, brand))


def type_model(
    state: IntakeFormState,
    index: CatalogIndex,
    text: str,
    model_id: Optional[str] = None,
) -> tuple[IntakeFormState, list]:
    """Returns the new state and the suggestions for `text`."""
    candidates = state.model_options
    model = match_candidate(candidates, text, "display_name", model_id)
    colors: list[ColorVariant] = []
    if model is not None and state.is_mobile:
        colors = index.colors(state.brand, model)
    new_state = select_model(state, model, text, colors)
    return new_state, filter_suggestions(candidates, new_state.model_text, "display_name")


def type_color(state: IntakeFormState, text: str, color_id: Optional[str] = None) -> tuple[IntakeFormState, list]:
    # With no catalog colors for the model the text is kept as a free-text color.
    candidates = state.color_options
    color = match_candidate(candidates, text, "color", color_id)
    new_state = select_color(state, color, text)
    return new_state, filter_suggestions(candidates, new_state.color_text, "color")
