"""
Quantity reconciliation for order-line groups.

A customer sees one dish with a serving count; the store holds one order
line per serving. A *group* is the set of live lines sharing
``(customer token, dish, meal type, delivery date)`` and its size is the
current quantity.

Slots:
    Every line carries a ``Line Number`` slot, starting at 1. Increases fill
    the lowest unused slots; decreases delete the highest-numbered lines
    other than the reference line (the lowest slot). Requesting a count is
    therefore idempotent: after a partial failure the caller resubmits the
    same count and the group converges without duplicated lines.

Writes:
    Each create/delete is its own store call so a failure can report exactly
    what was committed. Nothing is rolled back.

Adding a dish:
    Distinct from the transitions above. Stale (zero/blank quantity) lines
    for the same dish and meal are purged, the next sequential item id for
    the customer and meal is derived, and one line seeded from the catalog
    ingredients is created.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from . import config, fields as f
from .domain import AvailableDish, OrderLine
from .edits import audit_line
from .exceptions import ConflictError, ExternalWriteFailure, ValidationFailure
from .store import RecordStore, StoreError

logger = logging.getLogger(__name__)

# Shared fields copied from the reference line onto new servings
COPIED_FIELDS = (
    f.ORDER_TOKEN,
    f.ORDER_ITEM_NAME,
    f.ORDER_ITEM_ID,
    f.ORDER_DISH_ID,
    f.ORDER_MEAL,
    f.ORDER_DELIVERY_DATE,
    f.ORDER_SUBSCRIPTION_ID,
    f.ORDER_EMAIL,
    f.ORDER_ORIGINAL_INGREDIENTS,
    f.ORDER_FINAL_INGREDIENTS,
    f.ORDER_INGREDIENTS_VERSION,
    f.ORDER_NUTRITION_NOTES,
    f.ORDER_ALLERGIES,
) + tuple(f.NUTRITION_FIELDS.values())

_ITEM_SUFFIX = re.compile(r"(\d+)\s*$")


def validate_quantity(value: Any) -> int:
    """Accept an integer 0..MAX_SERVINGS_PER_DISH, reject anything else."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationFailure("Quantity must be a whole number", details={"quantity": value})
    if value < 0 or value > config.MAX_SERVINGS_PER_DISH:
        raise ValidationFailure(
            f"Quantity must be between 0 and {config.MAX_SERVINGS_PER_DISH}",
            details={"quantity": value},
        )
    return value


def _slot_order(line: OrderLine):
    # Lines without a slot (created before slots existed) sort last
    return (line.line_number <= 0, line.line_number, line.id)


@dataclass
class QuantityPlan:
    """Store operations needed to move a group from ``current`` to ``target``."""
    current: int
    target: int
    reference: Optional[OrderLine] = None
    create_slots: List[int] = field(default_factory=list)
    delete_ids: List[str] = field(default_factory=list)

    @property
    def unchanged(self) -> bool:
        return not self.create_slots and not self.delete_ids


def plan_quantity_change(group: Sequence[OrderLine], target: int) -> QuantityPlan:
    """
    Work out which slots to create and which lines to delete.

    Args:
        group: Live lines of one quantity group (any order)
        target: Desired serving count

    Returns:
        QuantityPlan; the reference line is the lowest slot and is only
        deleted when the target is 0
    """
    ordered = sorted(group, key=_slot_order)
    current = len(ordered)
    plan = QuantityPlan(current=current, target=target, reference=ordered[0] if ordered else None)

    if target == current:
        return plan

    if target == 0:
        plan.delete_ids = [line.id for line in ordered]
    elif target > current:
        used = {line.line_number for line in ordered if line.line_number > 0}
        slot = 1
        while len(plan.create_slots) < target - current:
            if slot not in used:
                plan.create_slots.append(slot)
            slot += 1
    else:
        removable = list(reversed(ordered[1:]))
        plan.delete_ids = [line.id for line in removable[:current - target]]

    return plan


@dataclass
class QuantityResult:
    previous: int
    quantity: int
    created_ids: List[str] = field(default_factory=list)
    deleted_ids: List[str] = field(default_factory=list)

    @property
    def unchanged(self) -> bool:
        return not self.created_ids and not self.deleted_ids


def new_serving_fields(reference: OrderLine, slot: int, audit: str) -> Dict[str, Any]:
    row = {name: reference.fields[name] for name in COPIED_FIELDS if name in reference.fields}
    row[f.ORDER_QUANTITY] = 1
    row[f.ORDER_LINE_NUMBER] = slot
    row[f.ORDER_AUDIT_LOG] = audit
    return row


def apply_quantity_change(
    store: RecordStore,
    group: Sequence[OrderLine],
    target: int,
    now: Optional[datetime] = None,
) -> QuantityResult:
    """
    Reconcile one group to ``target`` servings against the store.

    Raises:
        ValidationFailure: target out of range or group empty
        ExternalWriteFailure: a create/delete failed; details list what was
            committed before the failure
    """
    target = validate_quantity(target)
    if not group:
        raise ValidationFailure("No order lines to update")

    plan = plan_quantity_change(group, target)
    result = QuantityResult(previous=plan.current, quantity=plan.current)
    if plan.unchanged:
        return result

    reference = plan.reference
    total_steps = len(plan.create_slots) + len(plan.delete_ids)
    try:
        for slot in plan.create_slots:
            audit = audit_line(
                f"Quantity increased from {plan.current} to {target} (serving {slot})", now
            )
            created = store.create(f.ORDERS_TABLE, [new_serving_fields(reference, slot, audit)])
            result.created_ids.extend(record.id for record in created)
            result.quantity += 1

        for record_id in plan.delete_ids:
            store.delete(f.ORDERS_TABLE, [record_id])
            result.deleted_ids.append(record_id)
            result.quantity -= 1
    except StoreError as e:
        committed = len(result.created_ids) + len(result.deleted_ids)
        logger.error(
            "Quantity change for %s stopped after %d of %d writes: %s",
            reference.item_name, committed, total_steps, e,
        )
        raise ExternalWriteFailure(
            f"Quantity update failed after {committed} of {total_steps} changes were saved",
            details={
                "previousQuantity": plan.current,
                "requestedQuantity": target,
                "currentQuantity": result.quantity,
                "createdRecordIds": result.created_ids,
                "deletedRecordIds": result.deleted_ids,
            },
        ) from e

    logger.info(
        "Quantity for %s (%s, %s) changed %d -> %d",
        reference.item_name, reference.meal_type, reference.delivery_date,
        plan.current, result.quantity,
    )
    return result


# =============================================================================
# Add dish
# =============================================================================

def next_item_id(customer_name: str, meal_type: str, existing_item_ids: Iterable[Optional[str]]) -> str:
    """Next ``"<customer> <meal> NN"`` id after the highest existing suffix."""
    highest = 0
    for item_id in existing_item_ids:
        match = _ITEM_SUFFIX.search(item_id or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{customer_name} {meal_type} {highest + 1:02d}".strip()


def add_dish_line(
    store: RecordStore,
    token: str,
    customer_name: str,
    dish: AvailableDish,
    lines: Sequence[OrderLine],
    delivery_date: Optional[str] = None,
    now: Optional[datetime] = None,
) -> OrderLine:
    """
    Create the first serving of a dish for a customer.

    Args:
        store: Record store
        token: Customer token
        customer_name: Used in the item id
        dish: Catalog dish (already resolved for the meal type)
        lines: Every order line of the customer, live or stale
        delivery_date: Target date; defaults to the date of the customer's
            other lines for the meal type
        now: Clock override for the audit entry

    Raises:
        ConflictError: a live line for the dish, meal and date exists
        ExternalWriteFailure: the purge or the create failed
    """
    same_meal = [line for line in lines if line.meal_type == dish.meal_type]
    if delivery_date is None:
        delivery_date = next((l.delivery_date for l in same_meal if l.is_live), None)

    for line in same_meal:
        if line.is_live and line.dish_id == dish.dish_id and line.delivery_date == delivery_date:
            raise ConflictError(
                f"{dish.item_name} is already in your {dish.meal_type} plan; update its quantity instead",
                details={"recordId": line.id},
            )

    stale = [line for line in same_meal if line.dish_id == dish.dish_id and not line.is_live]
    if stale:
        try:
            store.delete(f.ORDERS_TABLE, [line.id for line in stale])
        except StoreError as e:
            raise ExternalWriteFailure(
                f"Could not clear previous entries for {dish.item_name}",
                details={"staleRecordIds": [line.id for line in stale]},
            ) from e
        logger.info("Purged %d stale lines for %s", len(stale), dish.item_name)

    stale_ids = {line.id for line in stale}
    remaining = [line for line in same_meal if line.id not in stale_ids]
    template = next((l for l in remaining if l.is_live), None) or next(iter(lines), None)

    row: Dict[str, Any] = {
        f.ORDER_TOKEN: token,
        f.ORDER_ITEM_NAME: dish.item_name,
        f.ORDER_ITEM_ID: next_item_id(customer_name, dish.meal_type, (l.item_id for l in remaining)),
        f.ORDER_DISH_ID: dish.dish_id,
        f.ORDER_MEAL: dish.meal_type,
        f.ORDER_QUANTITY: 1,
        f.ORDER_LINE_NUMBER: 1,
        f.ORDER_ORIGINAL_INGREDIENTS: list(dish.ingredient_ids),
        f.ORDER_FINAL_INGREDIENTS: list(dish.ingredient_ids),
        f.ORDER_INGREDIENTS_VERSION: 0,
        f.ORDER_AUDIT_LOG: audit_line(f"Added {dish.item_name} to {dish.meal_type}", now),
    }
    if delivery_date:
        row[f.ORDER_DELIVERY_DATE] = delivery_date
    for key, field_name in f.NUTRITION_FIELDS.items():
        row[field_name] = dish.nutrition.get(key, config.DEFAULT_NUTRITION[key])
    if template is not None:
        for name in (f.ORDER_SUBSCRIPTION_ID, f.ORDER_EMAIL):
            if template.fields.get(name):
                row[name] = template.fields[name]

    try:
        created = store.create(f.ORDERS_TABLE, [row])
    except StoreError as e:
        raise ExternalWriteFailure(
            f"Could not add {dish.item_name}",
            details={"purgedRecordIds": sorted(stale_ids)},
        ) from e

    logger.info("Added %s (%s) as %s", dish.item_name, dish.meal_type, row[f.ORDER_ITEM_ID])
    return OrderLine.from_record(created[0])
