"""
Protein substitution options.

A dish's protein is the first effective ingredient classified as Meat. The
substitution group is found by reverse lookup: the first available variant
listing that protein as a member names the variant type, and every variant
of that type applicable to the line's meal type contributes its members as
options (tagged with the variant's display name and upgrade price).
"""

import logging
from typing import Optional, Sequence

from .caches import IngredientClassifierCache, VariantCatalogCache
from .domain import Component, ProteinOption, ProteinOptions

logger = logging.getLogger(__name__)

# Base name shown together with its variant name ("Egg Whites", "Egg Whole")
VARIANT_LABELLED_NAMES = ("Egg",)


def protein_label(name: str, variant_display_name: str) -> str:
    if name in VARIANT_LABELLED_NAMES and variant_display_name:
        return f"{name} {variant_display_name}"
    return name


def resolve_protein_options(
    effective_ids: Sequence[str],
    meal_type: Optional[str],
    classifier: IngredientClassifierCache,
    variants: VariantCatalogCache,
) -> ProteinOptions:
    """
    Build the protein section for one dish.

    Args:
        effective_ids: Current ingredients of the line
        meal_type: Meal type the substitutes must be applicable to
        classifier: Ingredient classification cache
        variants: Variant catalog cache

    Returns:
        ProteinOptions; empty options when the dish has no protein, the
        protein has no substitution group, or no variant of the group
        applies to the meal type
    """
    infos = classifier.classify(effective_ids)
    current = next(
        (infos[i] for i in effective_ids if i in infos and infos[i].component is Component.MEAT),
        None,
    )
    if current is None:
        return ProteinOptions()

    group = variants.group_for(current.id)
    if group is None:
        return ProteinOptions(current_protein=current)

    applicable = variants.variants_of_type(group.variant_type, meal_type)
    member_infos = classifier.classify(
        member for variant in applicable for member in variant.member_ingredient_ids
    )

    options = []
    seen = set()
    for variant in applicable:
        for member_id in variant.member_ingredient_ids:
            if member_id in seen:
                continue
            seen.add(member_id)

            info = member_infos.get(member_id)
            if info is None:
                logger.warning("Skipping protein option %s: ingredient lookup failed", member_id)
                continue

            options.append(ProteinOption(
                id=member_id,
                name=protein_label(info.name, variant.display_name),
                is_active=member_id == current.id,
                variant_name=variant.display_name,
                price=variant.price,
            ))

    logger.debug(
        "%d protein options for %s (%s, %s)",
        len(options), current.name, group.variant_type, meal_type,
    )
    return ProteinOptions(current_protein=current, options=options)
