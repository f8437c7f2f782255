"""
Customization option lists for a dish.

Given a dish's original ingredients, its currently effective ingredients and
the meal type, build the four sections the plan editor shows:

- **Sauce** (single-select): standard sauces, any other sauce the dish
  shipped with or the customer picked, and "No Sauce" (``id=None``).
- **Garnish** (multi-select): every garnish linked to the dish.
- **Veggie** (multi-select): current veggies first, then removed originals.
- **Starch** (single-select): current starch, original starch, then starch
  substitutes from the variant catalog for the meal type.

Everything here is pure: names, components and variants are passed in, so
the aggregator can resolve them once per request in batched lookups.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .domain import Component, DishOptions, OptionEntry, Variant

NO_SAUCE_LABEL = "No Sauce"


def _display(names: Dict[str, str], ingredient_id: str) -> str:
    return names.get(ingredient_id) or ingredient_id


def _of_component(
    ids: Iterable[str],
    components: Dict[str, Component],
    component: Component,
) -> List[str]:
    return [i for i in dict.fromkeys(ids) if components.get(i) is component]


def resolve_sauce_options(
    current_ids: Sequence[str],
    original_ids: Sequence[str],
    names: Dict[str, str],
    components: Dict[str, Component],
    standard_sauce_ids: Sequence[str],
) -> List[OptionEntry]:
    current = set(current_ids)
    standard_ids = list(dict.fromkeys(standard_sauce_ids))
    present = set(standard_ids)

    # Sauces outside the standard list, originals ahead of customer picks
    extras: List[OptionEntry] = []
    for source in (original_ids, current_ids):
        for sauce_id in _of_component(source, components, Component.SAUCE):
            if sauce_id in present:
                continue
            present.add(sauce_id)
            extras.append(OptionEntry(sauce_id, _display(names, sauce_id), sauce_id in current))

    standard = [
        OptionEntry(sauce_id, _display(names, sauce_id), sauce_id in current)
        for sauce_id in standard_ids
    ]

    has_sauce = any(
        components.get(i) is Component.SAUCE or i in standard_ids for i in current_ids
    )
    no_sauce = OptionEntry(None, NO_SAUCE_LABEL, not has_sauce)

    return extras + standard + [no_sauce]


def resolve_garnish_options(
    all_ids: Sequence[str],
    current_ids: Sequence[str],
    names: Dict[str, str],
    components: Dict[str, Component],
) -> List[OptionEntry]:
    current = set(current_ids)
    return [
        OptionEntry(garnish_id, _display(names, garnish_id), garnish_id in current)
        for garnish_id in _of_component(all_ids, components, Component.GARNISH)
    ]


def resolve_veggie_options(
    current_ids: Sequence[str],
    original_ids: Sequence[str],
    names: Dict[str, str],
    components: Dict[str, Component],
) -> List[OptionEntry]:
    active = _of_component(current_ids, components, Component.VEGGIES)
    options = [OptionEntry(i, _display(names, i), True) for i in active]
    seen = set(active)
    for veggie_id in _of_component(original_ids, components, Component.VEGGIES):
        if veggie_id not in seen:
            seen.add(veggie_id)
            options.append(OptionEntry(veggie_id, _display(names, veggie_id), False))
    return options


def resolve_starch_options(
    current_ids: Sequence[str],
    original_ids: Sequence[str],
    names: Dict[str, str],
    components: Dict[str, Component],
    starch_variants: Sequence[Variant] = (),
) -> List[OptionEntry]:
    current = set(current_ids)
    candidates = (
        _of_component(current_ids, components, Component.STARCH)
        + _of_component(original_ids, components, Component.STARCH)
        + [m for v in starch_variants for m in v.member_ingredient_ids]
    )
    return [
        OptionEntry(starch_id, _display(names, starch_id), starch_id in current)
        for starch_id in dict.fromkeys(candidates)
    ]


def resolve_options(
    all_ids: Sequence[str],
    names: Dict[str, str],
    components: Dict[str, Component],
    current_ids: Sequence[str],
    original_ids: Sequence[str],
    meal_type: Optional[str],
    standard_sauce_ids: Sequence[str] = (),
    starch_variants: Sequence[Variant] = (),
) -> DishOptions:
    """
    Build all four option lists for one dish state.

    Args:
        all_ids: Union of original and current ids, in display order
        names: Ingredient id -> display name (missing ids show the raw id)
        components: Ingredient id -> Component; unclassified ids are absent
        current_ids: Effective ingredients of the line
        original_ids: Ingredients the dish shipped with
        meal_type: Meal type of the line (only used via starch_variants)
        standard_sauce_ids: Sauces offered on every dish
        starch_variants: Starch substitution variants applicable to meal_type

    Returns:
        DishOptions with sauce, garnish, veggie and starch lists
    """
    return DishOptions(
        sauce=resolve_sauce_options(current_ids, original_ids, names, components, standard_sauce_ids),
        garnish=resolve_garnish_options(all_ids, current_ids, names, components),
        veggie=resolve_veggie_options(current_ids, original_ids, names, components),
        starch=resolve_starch_options(current_ids, original_ids, names, components, starch_variants),
    )


class OptionsMemo:
    """Request-scoped memo of option lists keyed by dish state."""

    def __init__(self):
        self._results: Dict[Tuple, object] = {}
        self.hits = 0

    @staticmethod
    def key(
        meal_type: Optional[str],
        current_ids: Sequence[str],
        original_ids: Sequence[str],
    ) -> Tuple:
        return (meal_type, tuple(sorted(current_ids)), tuple(sorted(original_ids)))

    def get_or_compute(self, key: Tuple, compute):
        if key in self._results:
            self.hits += 1
        else:
            self._results[key] = compute()
        return self._results[key]
