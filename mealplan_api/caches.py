"""
Process-wide caches for ingredient and variant reference data.

Ingredient classification and substitution groups change a few times a
season, while every plan request needs both. The caches here are built once
by the application factory and shared by all requests:

- ``IngredientClassifierCache``: id -> IngredientInfo (name + component),
  filled lazily in batched lookups, append-only.
- ``VariantCatalogCache``: all available variants, loaded on first use.

Concurrency:
    Population is not locked. Two requests missing the same ids at the same
    time both fetch them and write identical entries, which is harmless.

Degradation:
    A failed lookup is logged and treated as "unknown": the ingredient stays
    unclassified (and is retried on the next call), the variant catalog is
    empty for that request. Neither raises to the caller.

Usage:
    classifier = IngredientClassifierCache(store)
    infos = classifier.classify({"recA", "recB"})
    infos["recA"].component  # Component.MEAT

    variants = VariantCatalogCache(store)
    group = variants.group_for("recA")
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from . import config, fields as f
from .domain import Component, IngredientInfo, Variant
from .store import Eq, RecordIdIn, RecordStore, StoreError

logger = logging.getLogger(__name__)


class IngredientClassifierCache:
    """
    Memoizes ingredient names and components.

    Args:
        store: Record store holding the Ingredients table
        batch_size: Ids per lookup round trip
    """

    def __init__(self, store: RecordStore, batch_size: Optional[int] = None):
        self.store = store
        self.batch_size = batch_size or config.INGREDIENT_BATCH_SIZE
        self._entries: Dict[str, IngredientInfo] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, ingredient_id: str) -> bool:
        return ingredient_id in self._entries

    def classify(self, ids: Iterable[str]) -> Dict[str, IngredientInfo]:
        """
        Return IngredientInfo for every id that could be resolved.

        Ids not yet cached are fetched in one batched lookup (chunked to
        ``batch_size``). Ids that fail to resolve are absent from the result.
        """
        wanted = [i for i in dict.fromkeys(ids) if i]
        missing = [i for i in wanted if i not in self._entries]

        if missing:
            self._fetch(missing)

        return {i: self._entries[i] for i in wanted if i in self._entries}

    def get(self, ingredient_id: str) -> Optional[IngredientInfo]:
        if ingredient_id not in self._entries:
            self.classify([ingredient_id])
        return self._entries.get(ingredient_id)

    def names(self, ids: Iterable[str]) -> Dict[str, str]:
        return {i: info.name for i, info in self.classify(ids).items()}

    def components(self, ids: Iterable[str]) -> Dict[str, Component]:
        return {
            i: info.component
            for i, info in self.classify(ids).items()
            if info.component is not None
        }

    def clear(self) -> None:
        self._entries = {}

    def _fetch(self, ids: List[str]) -> None:
        for start in range(0, len(ids), self.batch_size):
            chunk = ids[start:start + self.batch_size]
            try:
                records = self.store.list(f.INGREDIENTS_TABLE, RecordIdIn(chunk))
            except StoreError as e:
                logger.warning(
                    "Ingredient lookup failed for %d ids, leaving them unclassified: %s",
                    len(chunk), e,
                )
                continue

            for record in records:
                self._entries[record.id] = IngredientInfo.from_record(record)

            unresolved = len(chunk) - len(records)
            if unresolved:
                logger.debug("%d ingredient ids did not resolve", unresolved)

        logger.debug("Ingredient cache now holds %d entries", len(self._entries))


class VariantCatalogCache:
    """
    Memoizes the available substitution groups.

    Loaded once from the Variants table filtered to available rows. A failed
    load yields an empty catalog for that call and is retried next time.
    """

    def __init__(self, store: RecordStore):
        self.store = store
        self._variants: Optional[List[Variant]] = None
        self._last_refresh: Optional[datetime] = None

    @property
    def is_loaded(self) -> bool:
        return self._variants is not None

    @property
    def last_refresh(self) -> Optional[datetime]:
        return self._last_refresh

    def all_variants(self) -> List[Variant]:
        if self._variants is None:
            try:
                records = self.store.list(f.VARIANTS_TABLE, Eq(f.VARIANT_AVAILABILITY, True))
            except StoreError as e:
                logger.warning("Variant catalog unavailable, offering no substitutions: %s", e)
                return []
            self._variants = [Variant.from_record(r) for r in records]
            self._last_refresh = datetime.now()
            logger.info("Variant catalog loaded: %d variants", len(self._variants))
        return self._variants

    def group_for(self, ingredient_id: str) -> Optional[Variant]:
        """First variant listing the ingredient as a member."""
        for variant in self.all_variants():
            if ingredient_id in variant.member_ingredient_ids:
                return variant
        return None

    def variants_of_type(self, variant_type: str, meal_type: Optional[str]) -> List[Variant]:
        return [
            v for v in self.all_variants()
            if v.variant_type == variant_type and v.applies_to(meal_type)
        ]

    def clear(self) -> None:
        self._variants = None
        self._last_refresh = None
