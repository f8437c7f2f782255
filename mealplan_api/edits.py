"""
Ingredient edits: turn a customization intent into a new effective list.

All functions are pure and return a new list; persisting the override, the
version bump and the audit entry is the plan service's job.

Single-select sections (protein, sauce, starch) replace: every id of the
component (or one specific old id) goes, the new id is appended. Multi-select
sections (garnish, veggie, named ingredient) toggle: activating appends if
absent, deactivating removes every occurrence.
"""

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from .domain import Component
from .exceptions import NotFoundError, ValidationFailure


def replace_component(
    current_ids: Sequence[str],
    components: Dict[str, Component],
    component: Component,
    new_id: Optional[str],
    also_remove: Iterable[str] = (),
) -> List[str]:
    """
    Drop every ingredient of ``component`` and append ``new_id``.

    ``new_id=None`` leaves the section empty ("No Sauce"). ``also_remove``
    covers ids that belong to the section but may be unclassified, such as
    the configured standard sauces.
    """
    dropped = set(also_remove)
    updated = [
        i for i in current_ids
        if components.get(i) is not component and i not in dropped
    ]
    if new_id and new_id not in updated:
        updated.append(new_id)
    return updated


def replace_ingredient(current_ids: Sequence[str], old_id: str, new_id: str) -> List[str]:
    updated = [i for i in current_ids if i != old_id]
    if new_id not in updated:
        updated.append(new_id)
    return updated


def toggle_ingredient(current_ids: Sequence[str], ingredient_id: str, activate: bool) -> List[str]:
    if activate:
        if ingredient_id in current_ids:
            return list(current_ids)
        return list(current_ids) + [ingredient_id]
    return [i for i in current_ids if i != ingredient_id]


def match_ingredient_by_name(query: str, candidates: Dict[str, str]) -> str:
    """
    Resolve a display name to one ingredient id.

    An exact case-insensitive match wins; otherwise a single substring match
    is used. No match raises NotFoundError, several raise ValidationFailure
    listing them.

    Args:
        query: Name typed or clicked by the customer
        candidates: Ingredient id -> display name to search in

    Returns:
        The matched ingredient id
    """
    needle = (query or "").strip().lower()
    if not needle:
        raise ValidationFailure("Ingredient name is required")

    exact = [i for i, name in candidates.items() if name.lower() == needle]
    if len(exact) == 1:
        return exact[0]

    partial = exact or [i for i, name in candidates.items() if needle in name.lower()]
    if len(partial) == 1:
        return partial[0]
    if not partial:
        raise NotFoundError(f'Ingredient "{query}" not found')

    raise ValidationFailure(
        f'Ingredient name "{query}" is ambiguous',
        details=[{"id": i, "name": candidates[i]} for i in partial],
    )


# =============================================================================
# Audit log
# =============================================================================

def audit_line(message: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"[{now.astimezone(timezone.utc).strftime('%Y-%m-%d %H:%M:%S')} UTC] {message}"


def append_audit(log: str, line: str) -> str:
    return f"{log}\n{line}" if log else line
