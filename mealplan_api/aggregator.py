"""
Plan aggregation: ordered lines plus available catalog dishes, by date.

For one customer the aggregator:

1. Groups live order lines by quantity group (dish, meal, date); one dish
   view per group, ``quantity`` = number of lines.
2. Resolves names and components of every referenced ingredient (ordered
   lines, catalog dishes, starch substitutes) in one batched classify call.
3. Computes option lists and protein options once per distinct dish state
   (request-scoped memo).
4. Groups dish views by delivery date. Each date group also lists the
   catalog dishes of the meal types ordered that date that are not already
   ordered there (``quantity: 0, isAvailable: true``).

A customer without live lines gets one placeholder group (``deliveryDate:
None``) holding the whole catalog so there is something to pick from.

Output is plain dicts keyed the way the plan viewer expects (camelCase).
"""

import logging
from dataclasses import asdict
from typing import Any, Dict, List, Optional, Sequence, Tuple

from . import config
from .caches import IngredientClassifierCache, VariantCatalogCache
from .domain import AvailableDish, OrderLine, ProteinOptions, effective_ingredient_ids
from .options import OptionsMemo, resolve_options
from .protein import resolve_protein_options

logger = logging.getLogger(__name__)

MEAL_ORDER = {"Breakfast": 0, "Lunch": 1, "Dinner": 2, "Snack": 3}

NUTRITION_KEYS = ("calories", "carbs", "protein", "fat", "fiber")


def _meal_rank(meal_type: Optional[str]) -> Tuple[int, str]:
    return (MEAL_ORDER.get(meal_type or "", len(MEAL_ORDER)), meal_type or "")


def _date_rank(delivery_date: Optional[str]) -> Tuple[bool, str]:
    return (delivery_date is None, delivery_date or "")


def group_lines(lines: Sequence[OrderLine]) -> Dict[Tuple, List[OrderLine]]:
    """Live lines keyed by (dish, meal, date), each group sorted by slot."""
    groups: Dict[Tuple, List[OrderLine]] = {}
    for line in lines:
        if line.is_live:
            groups.setdefault(line.group_key, []).append(line)
    for group in groups.values():
        group.sort(key=lambda l: (l.line_number <= 0, l.line_number, l.id))
    return groups


def nutrition_totals(dishes: Sequence[Dict[str, Any]]) -> Dict[str, float]:
    totals = {key: 0 for key in NUTRITION_KEYS}
    for dish in dishes:
        if dish.get("isOrdered"):
            for key in NUTRITION_KEYS:
                totals[key] += dish.get(key, 0) * dish.get("quantity", 0)
    return totals


def plan_summary(ordered: Sequence[Dict[str, Any]], totals: Dict[str, float], goals: Dict[str, Any]) -> Dict[str, Any]:
    goal_calories = goals.get("calories") or 0
    progress = round(totals["calories"] / goal_calories * 100, 1) if goal_calories > 0 else 0
    return {
        "totalMeals": sum(d["quantity"] for d in ordered),
        "calorieProgress": progress,
    }


class PlanAggregator:
    """
    Builds the aggregated plan for one request.

    A new instance is created per request; the caches it is given are the
    process-wide ones.

    Args:
        classifier: Ingredient classification cache
        variants: Variant catalog cache
        standard_sauce_ids: Sauces offered on every dish
    """

    def __init__(
        self,
        classifier: IngredientClassifierCache,
        variants: VariantCatalogCache,
        standard_sauce_ids: Optional[Sequence[str]] = None,
    ):
        self.classifier = classifier
        self.variants = variants
        self.standard_sauce_ids = list(
            config.STANDARD_SAUCE_IDS if standard_sauce_ids is None else standard_sauce_ids
        )
        self.options_memo = OptionsMemo()
        self._protein_memo: Dict[Tuple, ProteinOptions] = {}
        self._names: Dict[str, str] = {}
        self._components: Dict[str, Any] = {}
        self._allergy_names: Dict[str, str] = {}

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------

    def build(
        self,
        lines: Sequence[OrderLine],
        catalog: Sequence[AvailableDish],
        goals: Optional[Dict[str, Any]] = None,
        allergy_names: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        Aggregate a customer's plan.

        Args:
            lines: The customer's order lines (stale lines are ignored)
            catalog: Available dishes of the weekly menu
            goals: Nutrition goals, used for calorie progress
            allergy_names: Allergy id -> name; unresolved ids are shown as is

        Returns:
            Dict with ``groups``, ``orders`` (ordered dish views),
            ``currentTotals`` and ``summary``
        """
        goals = goals or {}
        self._allergy_names = allergy_names or {}
        groups = group_lines(lines)
        catalog_by_dish = {(d.dish_id, d.meal_type): d for d in catalog}

        self._resolve_ingredients(groups, catalog)

        ordered = [
            self._ordered_view(group, catalog_by_dish.get((key[0], key[1])))
            for key, group in groups.items()
        ]

        if ordered:
            date_groups = self._date_groups(ordered, catalog)
        else:
            date_groups = [{
                "deliveryDate": None,
                "label": config.PLACEHOLDER_DELIVERY_LABEL,
                "mealTypes": sorted({d.meal_type for d in catalog}, key=_meal_rank),
                "dishes": [self._available_view(d) for d in self._sorted_catalog(catalog)],
            }]

        totals = nutrition_totals(ordered)
        logger.debug(
            "Aggregated %d ordered dishes in %d groups (%d option memo hits)",
            len(ordered), len(date_groups), self.options_memo.hits,
        )
        return {
            "groups": date_groups,
            "orders": ordered,
            "currentTotals": totals,
            "summary": plan_summary(ordered, totals, goals),
        }

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def _resolve_ingredients(self, groups: Dict[Tuple, List[OrderLine]], catalog: Sequence[AvailableDish]) -> None:
        ids: List[str] = []
        meal_types = set()
        for group in groups.values():
            line = group[0]
            ids.extend(line.original_ingredient_ids)
            ids.extend(line.final_ingredient_ids)
            meal_types.add(line.meal_type)
        for dish in catalog:
            ids.extend(dish.ingredient_ids)
            meal_types.add(dish.meal_type)
        for meal_type in meal_types:
            for variant in self._starch_variants(meal_type):
                ids.extend(variant.member_ingredient_ids)
        ids.extend(self.standard_sauce_ids)

        infos = self.classifier.classify(ids)
        self._names = {i: info.name for i, info in infos.items()}
        self._components = {i: info.component for i, info in infos.items() if info.component}

    def _starch_variants(self, meal_type: Optional[str]):
        return self.variants.variants_of_type(config.STARCH_VARIANT_TYPE, meal_type)

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def _options(self, meal_type: Optional[str], current: List[str], original: List[str]) -> Dict[str, Any]:
        all_ids = list(dict.fromkeys(original + current))
        key = self.options_memo.key(meal_type, current, original)
        options = self.options_memo.get_or_compute(key, lambda: resolve_options(
            all_ids,
            self._names,
            self._components,
            current,
            original,
            meal_type,
            self.standard_sauce_ids,
            self._starch_variants(meal_type),
        ))
        return asdict(options)

    def _protein(self, meal_type: Optional[str], current: List[str]) -> Dict[str, Any]:
        key = (meal_type, tuple(current))
        if key not in self._protein_memo:
            self._protein_memo[key] = resolve_protein_options(
                current, meal_type, self.classifier, self.variants
            )
        return asdict(self._protein_memo[key])

    def _dish_view(
        self,
        meal_type: Optional[str],
        original: List[str],
        final: List[str],
    ) -> Dict[str, Any]:
        current = effective_ingredient_ids(original, final)
        all_ids = list(dict.fromkeys(original + current))
        return {
            "originalIngredients": original,
            "finalIngredients": final,
            "ingredients": [self._names.get(i, i) for i in current],
            "hasCustomIngredients": bool(final),
            "allIngredients": [{"id": i, "name": self._names.get(i, i)} for i in all_ids],
            "options": self._options(meal_type, current, original),
            "proteinOptions": self._protein(meal_type, current),
        }

    def _ordered_view(self, group: List[OrderLine], dish: Optional[AvailableDish]) -> Dict[str, Any]:
        line = group[0]
        view = {
            "recordId": line.id,
            "recordIds": [l.id for l in group],
            "dishId": line.dish_id,
            "itemId": line.item_id,
            "itemName": line.item_name,
            "meal": line.meal_type,
            "deliveryDate": line.delivery_date,
            "quantity": len(group),
            "isOrdered": True,
            "isAvailable": False,
            "email": line.email,
            "orderSubscriptionId": line.subscription_id,
            "nutritionNotes": line.nutrition_notes,
            "ingredientsVersion": line.ingredients_version,
            "imageUrl": dish.image_url if dish else None,
            "allergies": [self._allergy_names.get(i, i) for i in line.allergy_ids],
        }
        view.update(line.nutrition)
        view.update(self._dish_view(
            line.meal_type, line.original_ingredient_ids, line.final_ingredient_ids
        ))
        return view

    def _available_view(self, dish: AvailableDish, delivery_date: Optional[str] = None) -> Dict[str, Any]:
        view = {
            "recordId": None,
            "recordIds": [],
            "dishId": dish.dish_id,
            "itemId": None,
            "itemName": dish.item_name,
            "meal": dish.meal_type,
            "deliveryDate": delivery_date,
            "quantity": 0,
            "isOrdered": False,
            "isAvailable": True,
            "email": None,
            "orderSubscriptionId": None,
            "nutritionNotes": "",
            "ingredientsVersion": 0,
            "imageUrl": dish.image_url,
            "allergies": [],
        }
        view.update(dish.nutrition)
        view.update(self._dish_view(dish.meal_type, list(dish.ingredient_ids), []))
        return view

    # -------------------------------------------------------------------------
    # Grouping
    # -------------------------------------------------------------------------

    @staticmethod
    def _sorted_catalog(catalog: Sequence[AvailableDish]) -> List[AvailableDish]:
        return sorted(catalog, key=lambda d: (_meal_rank(d.meal_type), d.item_name))

    def _date_groups(self, ordered: List[Dict[str, Any]], catalog: Sequence[AvailableDish]) -> List[Dict[str, Any]]:
        by_date: Dict[Optional[str], List[Dict[str, Any]]] = {}
        for view in ordered:
            by_date.setdefault(view["deliveryDate"], []).append(view)

        result = []
        for delivery_date in sorted(by_date, key=_date_rank):
            views = sorted(by_date[delivery_date], key=lambda v: (_meal_rank(v["meal"]), v["itemName"]))
            meal_types = sorted({v["meal"] for v in views}, key=_meal_rank)
            taken = {(v["dishId"], v["meal"]) for v in views}

            available = [
                self._available_view(dish, delivery_date)
                for dish in self._sorted_catalog(catalog)
                if dish.meal_type in meal_types and (dish.dish_id, dish.meal_type) not in taken
            ]

            result.append({
                "deliveryDate": delivery_date,
                "label": delivery_date or config.PLACEHOLDER_DELIVERY_LABEL,
                "mealTypes": meal_types,
                "dishes": views + available,
            })
        return result
