"""
Plan Service
============

Per-token operations behind the plan endpoints. Each operation resolves the
customer, loads the order line(s) it touches, runs the pure edit or
reconciliation logic, writes back to the record store and returns a
response dict (``success``, ``message`` and the ids relevant to the change).

Ownership:
----------
A line is only editable through the token it belongs to. A record id that
exists but carries another customer's token is reported as not found.

Versioning:
-----------
An ingredient edit applies to the whole dish group: the override, the
``Ingredients Version`` bump and the audit entry are written to every live
serving of the (dish, meal, date), starting with the line that was edited.
Callers may send ``expectedVersion``; a mismatch is a conflict (someone else
edited the dish since it was loaded). With REQUIRE_INGREDIENTS_VERSION set
the field is mandatory.

Errors:
-------
Store read failures for required data raise ExternalStoreError, write
failures raise ExternalWriteFailure. Lookups used only for display (names,
classification, variants, catalog on the plan view) degrade and log.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from .. import config, fields as f
from ..aggregator import PlanAggregator
from ..caches import IngredientClassifierCache, VariantCatalogCache
from ..domain import AvailableDish, Component, OrderLine
from ..edits import (
    append_audit,
    audit_line,
    match_ingredient_by_name,
    replace_component,
    replace_ingredient,
    toggle_ingredient,
)
from ..exceptions import (
    ConflictError,
    ExternalStoreError,
    ExternalWriteFailure,
    NotFoundError,
    PlanError,
    ValidationFailure,
)
from ..quantity import add_dish_line, apply_quantity_change, validate_quantity
from ..store import And, Eq, Formula, Gt, IsBlank, RecordNotFoundError, RecordStore, StoreError
from .customers import (
    Customer,
    find_nutrition_profile,
    get_customer,
    nutrition_goals,
    profile_allergy_ids,
    resolve_allergy_names,
)

logger = logging.getLogger(__name__)


def _matches_or_blank(field_name: str, value: Optional[str]) -> Formula:
    return Eq(field_name, value) if value else IsBlank(field_name)


class PlanService:
    """
    Customization and quantity operations for one record store.

    Args:
        store: Record store holding all plan tables
        classifier: Process-wide ingredient classification cache
        variants: Process-wide variant catalog cache
        standard_sauce_ids: Sauces offered on every dish (default from config)
        clock: Returns the current time; audit entries use it
    """

    def __init__(
        self,
        store: RecordStore,
        classifier: IngredientClassifierCache,
        variants: VariantCatalogCache,
        standard_sauce_ids: Optional[Sequence[str]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.classifier = classifier
        self.variants = variants
        self.standard_sauce_ids = list(
            config.STANDARD_SAUCE_IDS if standard_sauce_ids is None else standard_sauce_ids
        )
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    # =========================================================================
    # Loading
    # =========================================================================

    def _customer(self, token: str) -> Customer:
        return get_customer(self.store, token)

    def _list_orders(self, formula: Formula) -> List[OrderLine]:
        try:
            records = self.store.list(f.ORDERS_TABLE, formula)
        except StoreError as e:
            logger.error("Order lookup failed: %s", e)
            raise ExternalStoreError("Could not load order lines", details=str(e)) from e
        return [OrderLine.from_record(r) for r in records]

    def _customer_lines(self, token: str) -> List[OrderLine]:
        return self._list_orders(Eq(f.ORDER_TOKEN, token))

    def _line(self, token: str, record_id: Optional[str]) -> OrderLine:
        if not record_id:
            raise ValidationFailure("recordId is required")
        try:
            record = self.store.find(f.ORDERS_TABLE, record_id)
        except RecordNotFoundError:
            raise NotFoundError("Order not found", details={"recordId": record_id})
        except StoreError as e:
            logger.error("Order %s lookup failed: %s", record_id, e)
            raise ExternalStoreError("Could not load order", details=str(e)) from e

        line = OrderLine.from_record(record)
        if line.customer_token != token:
            logger.warning("Order %s requested with a token it does not belong to", record_id)
            raise NotFoundError("Order not found", details={"recordId": record_id})
        return line

    def _group(self, token: str, line: OrderLine) -> List[OrderLine]:
        return self._list_orders(And(
            Eq(f.ORDER_TOKEN, token),
            _matches_or_blank(f.ORDER_DISH_ID, line.dish_id),
            _matches_or_blank(f.ORDER_MEAL, line.meal_type),
            _matches_or_blank(f.ORDER_DELIVERY_DATE, line.delivery_date),
            Gt(f.ORDER_QUANTITY, 0),
        ))

    def _catalog(self, required: bool = False) -> List[AvailableDish]:
        try:
            records = self.store.list(f.MENU_TABLE, Eq(f.MENU_ACTIVE, True))
        except StoreError as e:
            if required:
                raise ExternalStoreError("Could not load the weekly menu", details=str(e)) from e
            logger.warning("Weekly menu unavailable, offering no extra dishes: %s", e)
            return []
        return [dish for r in records for dish in AvailableDish.from_record(r)]

    # =========================================================================
    # Plan view
    # =========================================================================

    def get_plan(self, token: str) -> Dict[str, Any]:
        """Aggregated plan for the customer's token."""
        customer = self._customer(token)
        lines = self._customer_lines(token)
        profile = find_nutrition_profile(self.store, customer)

        allergy_ids = profile_allergy_ids(profile) + [i for l in lines if l.is_live for i in l.allergy_ids]
        allergy_names = resolve_allergy_names(self.store, allergy_ids)
        goals = nutrition_goals(profile, allergy_names)

        aggregator = PlanAggregator(self.classifier, self.variants, self.standard_sauce_ids)
        plan = aggregator.build(lines, self._catalog(), goals, allergy_names)

        plan["customer"] = {"name": customer.name, "email": customer.profile_email}
        plan["nutritionGoals"] = goals
        logger.info("Plan served: %d dishes ordered", len(plan["orders"]))
        return plan

    # =========================================================================
    # Ingredient overrides
    # =========================================================================

    def _check_version(self, line: OrderLine, expected_version: Optional[int]) -> None:
        if expected_version is None:
            if config.REQUIRE_INGREDIENTS_VERSION:
                raise ValidationFailure("expectedVersion is required")
            return
        if expected_version != line.ingredients_version:
            raise ConflictError(
                "This dish was changed elsewhere; reload the plan and try again",
                details={
                    "recordId": line.id,
                    "expectedVersion": expected_version,
                    "currentVersion": line.ingredients_version,
                },
            )

    def _servings(self, token: str, line: OrderLine) -> List[OrderLine]:
        """The line first, then the other live servings of its dish group."""
        if not line.is_live:
            return [line]
        return [line] + [l for l in self._group(token, line) if l.id != line.id]

    def _write_override(self, token: str, line: OrderLine, ingredient_ids: List[str], message: str) -> int:
        version = line.ingredients_version + 1
        entry = audit_line(message, self.clock())
        servings = self._servings(token, line)
        written: List[str] = []
        for serving in servings:
            try:
                self.store.update(f.ORDERS_TABLE, serving.id, {
                    f.ORDER_FINAL_INGREDIENTS: ingredient_ids,
                    f.ORDER_INGREDIENTS_VERSION: version,
                    f.ORDER_AUDIT_LOG: append_audit(serving.audit_log, entry),
                })
            except StoreError as e:
                logger.error(
                    "Saving ingredients for order %s stopped after %d of %d servings: %s",
                    line.id, len(written), len(servings), e,
                )
                raise ExternalWriteFailure(
                    "Could not save ingredient changes",
                    details={"recordId": line.id, "updatedRecordIds": written, "error": str(e)},
                ) from e
            written.append(serving.id)
        logger.info("Order %s (%d servings): %s", line.id, len(servings), message)
        return version

    def _edited(
        self,
        token: str,
        line: OrderLine,
        ingredient_ids: List[str],
        message: str,
        **extra: Any,
    ) -> Dict[str, Any]:
        version = self._write_override(token, line, ingredient_ids, message)
        result = {
            "success": True,
            "message": message,
            "recordId": line.id,
            "updatedIngredientIds": ingredient_ids,
            "ingredientsVersion": version,
        }
        result.update(extra)
        return result

    def _name(self, ingredient_id: Optional[str]) -> str:
        if not ingredient_id:
            return "none"
        info = self.classifier.get(ingredient_id)
        return info.name if info else ingredient_id

    def _require_component(self, ingredient_id: str, component: Component) -> None:
        info = self.classifier.get(ingredient_id)
        if info is not None and info.component is not None and info.component is not component:
            raise ValidationFailure(
                f"{info.name} is not a {component.value.lower()} option",
                details={"ingredientId": ingredient_id, "component": info.component.value},
            )

    def _toggle(
        self,
        token: str,
        record_id: str,
        ingredient_id: Optional[str],
        should_activate: bool,
        component: Component,
        expected_version: Optional[int],
    ) -> Dict[str, Any]:
        if not ingredient_id:
            raise ValidationFailure(f"{component.value} id is required")
        self._customer(token)
        line = self._line(token, record_id)
        self._check_version(line, expected_version)
        self._require_component(ingredient_id, component)

        updated = toggle_ingredient(line.effective_ingredient_ids, ingredient_id, should_activate)
        verb = "Added" if should_activate else "Removed"
        return self._edited(token, line, updated, f"{verb} {component.value.lower()} {self._name(ingredient_id)}")

    def toggle_veggie(self, token, record_id, veggie_id, should_activate, expected_version=None):
        return self._toggle(token, record_id, veggie_id, should_activate, Component.VEGGIES, expected_version)

    def toggle_garnish(self, token, record_id, garnish_id, should_activate, expected_version=None):
        return self._toggle(token, record_id, garnish_id, should_activate, Component.GARNISH, expected_version)

    def replace_sauce(
        self,
        token: str,
        record_id: str,
        new_sauce_id: Optional[str],
        old_sauce_id: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Swap the dish's sauce; ``new_sauce_id=None`` means "No Sauce"."""
        self._customer(token)
        line = self._line(token, record_id)
        self._check_version(line, expected_version)
        if new_sauce_id:
            self._require_component(new_sauce_id, Component.SAUCE)

        current = line.effective_ingredient_ids
        components = self.classifier.components(current)
        also_remove = list(self.standard_sauce_ids)
        if old_sauce_id:
            also_remove.append(old_sauce_id)
        updated = replace_component(current, components, Component.SAUCE, new_sauce_id, also_remove)

        message = f"Sauce changed to {self._name(new_sauce_id)}" if new_sauce_id else "Sauce removed"
        return self._edited(token, line, updated, message)

    def replace_starch(
        self,
        token: str,
        record_id: str,
        new_starch_id: str,
        old_starch_id: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Dict[str, Any]:
        if not new_starch_id:
            raise ValidationFailure("newStarchId is required")
        self._customer(token)
        line = self._line(token, record_id)
        self._check_version(line, expected_version)
        self._require_component(new_starch_id, Component.STARCH)

        current = line.effective_ingredient_ids
        components = self.classifier.components(current)
        also_remove = [old_starch_id] if old_starch_id else []
        updated = replace_component(current, components, Component.STARCH, new_starch_id, also_remove)
        return self._edited(token, line, updated, f"Starch changed to {self._name(new_starch_id)}")

    def replace_protein(
        self,
        token: str,
        record_id: str,
        new_protein_id: str,
        old_protein_id: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Dict[str, Any]:
        if not new_protein_id:
            raise ValidationFailure("newProteinId is required")
        self._customer(token)
        line = self._line(token, record_id)
        self._check_version(line, expected_version)
        self._require_component(new_protein_id, Component.MEAT)

        current = line.effective_ingredient_ids
        if old_protein_id is None:
            components = self.classifier.components(current)
            old_protein_id = next((i for i in current if components.get(i) is Component.MEAT), None)
            if old_protein_id is None:
                raise NotFoundError("This dish has no protein to replace")
        elif old_protein_id not in current:
            raise NotFoundError(
                "Protein to replace is not on this dish",
                details={"oldProteinId": old_protein_id},
            )

        updated = replace_ingredient(current, old_protein_id, new_protein_id)
        return self._edited(token, line, updated, f"Protein updated to {self._name(new_protein_id)}")

    def _resolve_target(
        self,
        candidates: Sequence[str],
        ingredient_id: Optional[str],
        ingredient_name: Optional[str],
    ) -> str:
        if ingredient_id:
            return ingredient_id
        if not ingredient_name:
            raise ValidationFailure("ingredientId or ingredientName is required")
        names = self.classifier.names(candidates)
        return match_ingredient_by_name(ingredient_name, {i: names.get(i, i) for i in candidates})

    def toggle_ingredient(
        self,
        token: str,
        record_id: str,
        should_activate: bool,
        ingredient_name: Optional[str] = None,
        ingredient_id: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Toggle an ingredient of the dish, chosen by id or by display name."""
        self._customer(token)
        line = self._line(token, record_id)
        self._check_version(line, expected_version)

        current = line.effective_ingredient_ids
        all_ids = list(dict.fromkeys(line.original_ingredient_ids + current))
        target = self._resolve_target(all_ids, ingredient_id, ingredient_name)

        updated = toggle_ingredient(current, target, should_activate)
        names = self.classifier.names(all_ids + [target])
        verb = "added" if should_activate else "removed"
        label = names.get(target, target)

        return self._edited(
            token,
            line,
            updated,
            f'Ingredient "{label}" {verb}',
            activeIngredients=[names.get(i, i) for i in updated],
            finalIngredientIds=updated,
            allIngredients=[{"id": i, "name": names.get(i, i)} for i in all_ids],
        )

    def delete_ingredient(
        self,
        token: str,
        record_id: str,
        ingredient_name: Optional[str] = None,
        ingredient_id: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Dict[str, Any]:
        self._customer(token)
        line = self._line(token, record_id)
        self._check_version(line, expected_version)

        current = line.effective_ingredient_ids
        target = self._resolve_target(current, ingredient_id, ingredient_name)
        if target not in current:
            raise NotFoundError("Ingredient is not on this dish", details={"ingredientId": target})

        updated = toggle_ingredient(current, target, False)
        names = self.classifier.names(current)
        return self._edited(
            token,
            line,
            updated,
            f'Ingredient "{names.get(target, target)}" removed',
            updatedIngredients=[names.get(i, i) for i in updated],
        )

    # =========================================================================
    # Quantities
    # =========================================================================

    def update_quantity(self, token: str, record_id: str, new_quantity: Any) -> Dict[str, Any]:
        """Set the serving count of the dish group ``record_id`` belongs to."""
        target = validate_quantity(new_quantity)
        self._customer(token)
        line = self._line(token, record_id)
        if not line.is_live:
            raise ValidationFailure(
                "This order line is no longer active; add the dish again instead",
                details={"recordId": record_id},
            )

        group = self._group(token, line)
        if not any(l.id == line.id for l in group):
            group.append(line)
        result = apply_quantity_change(self.store, group, target, self.clock())

        if result.unchanged:
            message = f"{line.item_name} quantity is already {target}"
        else:
            message = f"Updated {line.item_name} quantity to {result.quantity}"
        return {
            "success": True,
            "message": message,
            "recordId": record_id,
            "newQuantity": result.quantity,
            "previousQuantity": result.previous,
            "createdRecordIds": result.created_ids,
            "deletedRecordIds": result.deleted_ids,
        }

    def batch_update_quantities(self, token: str, updates: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Apply several quantity updates, one group at a time.

        Updates whose ``quantityDelta`` is 0 are skipped. A failing update is
        reported in ``results`` and does not stop the rest.
        """
        self._customer(token)

        results = []
        for update in updates:
            if update.get("quantity_delta") == 0:
                continue
            record_id = update.get("record_id")
            try:
                outcome = self.update_quantity(token, record_id, update.get("new_quantity"))
            except PlanError as e:
                logger.warning("Batch quantity update for %s failed: %s", record_id, e.message)
                results.append({
                    "recordId": record_id,
                    "success": False,
                    "error": e.message,
                    "details": e.details,
                })
                continue
            results.append({
                "recordId": record_id,
                "success": True,
                "newQuantity": outcome["newQuantity"],
                "previousQuantity": outcome["previousQuantity"],
            })

        updated = sum(1 for r in results if r["success"])
        if not results:
            message = "No changes to update"
        else:
            message = f"Successfully updated {updated} order(s)"
        return {
            "success": all(r["success"] for r in results),
            "updatedCount": updated,
            "message": message,
            "results": results,
        }

    def add_dish(
        self,
        token: str,
        dish_id: str,
        meal_type: str,
        delivery_date: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Add the first serving of a catalog dish to the customer's plan."""
        if not dish_id or not meal_type:
            raise ValidationFailure("dishId and mealType are required")
        customer = self._customer(token)

        dish = next(
            (d for d in self._catalog(required=True) if d.dish_id == dish_id and d.meal_type == meal_type),
            None,
        )
        if dish is None:
            raise NotFoundError(
                "Dish is not on the menu for this meal",
                details={"dishId": dish_id, "mealType": meal_type},
            )

        line = add_dish_line(
            self.store,
            token,
            customer.name,
            dish,
            self._customer_lines(token),
            delivery_date,
            self.clock(),
        )
        return {
            "success": True,
            "message": f"Added {dish.item_name} to {meal_type}",
            "recordId": line.id,
            "itemId": line.item_id,
            "updatedIngredientIds": line.effective_ingredient_ids,
        }
