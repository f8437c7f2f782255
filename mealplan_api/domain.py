"""
Domain types for meal plan customization.

These are plain dataclasses built from store records. Parsing is lenient
because the kitchen team edits the base by hand: linked fields may come back
as a list or a comma-separated string, numbers may be blank, and meal types
may be a single select or a multi-select.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from . import config, fields as f
from .store import Record


class Component(str, Enum):
    """Ingredient category driving which customization section it lands in."""
    MEAT = "Meat"
    SAUCE = "Sauce"
    GARNISH = "Garnish"
    VEGGIES = "Veggies"
    STARCH = "Starch"

    @classmethod
    def parse(cls, value: Any) -> Optional["Component"]:
        if isinstance(value, list):
            value = value[0] if value else None
        if not value:
            return None
        text = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        return None


# =============================================================================
# Parsing helpers
# =============================================================================

def as_id_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [str(v) for v in value if v]


def as_int(value: Any, default: int = 0) -> int:
    if value is None or value == "":
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def as_float(value: Any, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def as_text(value: Any) -> Optional[str]:
    if isinstance(value, list):
        value = value[0] if value else None
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def as_meal_types(value: Any) -> FrozenSet[str]:
    return frozenset(as_id_list(value))


def nutrition_from_fields(record_fields: Dict[str, Any]) -> Dict[str, float]:
    return {
        key: as_float(record_fields.get(field_name)) or config.DEFAULT_NUTRITION[key]
        for key, field_name in f.NUTRITION_FIELDS.items()
    }


def image_url_from_fields(record_fields: Dict[str, Any]) -> Optional[str]:
    for name in f.MENU_IMAGE_FIELDS:
        attachments = record_fields.get(name)
        if isinstance(attachments, list) and attachments:
            first = attachments[0]
            if isinstance(first, str):
                return first
            thumbnails = first.get("thumbnails") or {}
            for size in ("large", "small"):
                url = (thumbnails.get(size) or {}).get("url")
                if url:
                    return url
            if first.get("url"):
                return first["url"]
        elif isinstance(attachments, str) and attachments:
            return attachments
    return None


def effective_ingredient_ids(original: List[str], final: List[str]) -> List[str]:
    """Final ingredients when overridden, otherwise the original ones."""
    return list(final) if final else list(original)


# =============================================================================
# Reference data
# =============================================================================

@dataclass(frozen=True)
class IngredientInfo:
    id: str
    name: str
    component: Optional[Component] = None

    @classmethod
    def from_record(cls, record: Record) -> "IngredientInfo":
        name = None
        for field_name in f.INGREDIENT_NAME_FIELDS:
            name = as_text(record.fields.get(field_name))
            if name:
                break
        return cls(
            id=record.id,
            name=name or "Unknown Ingredient",
            component=Component.parse(record.fields.get(f.INGREDIENT_COMPONENT)),
        )


@dataclass(frozen=True)
class Variant:
    """A substitution group of interchangeable ingredients."""
    id: str
    variant_type: str
    applicable_meal_types: FrozenSet[str]
    member_ingredient_ids: Tuple[str, ...]
    display_name: str = ""
    price: float = 0.0

    @classmethod
    def from_record(cls, record: Record) -> "Variant":
        return cls(
            id=record.id,
            variant_type=as_text(record.fields.get(f.VARIANT_TYPE)) or "",
            applicable_meal_types=as_meal_types(record.fields.get(f.VARIANT_APPLICABLE_TO)),
            member_ingredient_ids=tuple(as_id_list(record.fields.get(f.VARIANT_INGREDIENTS))),
            display_name=as_text(record.fields.get(f.VARIANT_NAME)) or "",
            price=max(0.0, as_float(record.fields.get(f.VARIANT_PRICE))),
        )

    def applies_to(self, meal_type: Optional[str]) -> bool:
        return bool(meal_type) and meal_type in self.applicable_meal_types


# =============================================================================
# Orders and menu
# =============================================================================

@dataclass
class OrderLine:
    """One reserved serving of one dish for a customer, meal type and date."""
    id: str
    customer_token: str
    dish_id: Optional[str]
    meal_type: Optional[str]
    delivery_date: Optional[str]
    original_ingredient_ids: List[str] = field(default_factory=list)
    final_ingredient_ids: List[str] = field(default_factory=list)
    audit_log: str = ""
    item_name: str = "Unknown Item"
    item_id: Optional[str] = None
    line_number: int = 0
    quantity: int = 0
    ingredients_version: int = 0
    subscription_id: Optional[str] = None
    email: Optional[str] = None
    nutrition_notes: str = ""
    allergy_ids: List[str] = field(default_factory=list)
    nutrition: Dict[str, float] = field(default_factory=dict)
    fields: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def effective_ingredient_ids(self) -> List[str]:
        return effective_ingredient_ids(self.original_ingredient_ids, self.final_ingredient_ids)

    @property
    def is_live(self) -> bool:
        return self.quantity > 0

    @property
    def group_key(self) -> Tuple[Optional[str], Optional[str], Optional[str]]:
        return (self.dish_id, self.meal_type, self.delivery_date)

    @classmethod
    def from_record(cls, record: Record) -> "OrderLine":
        data = record.fields
        return cls(
            id=record.id,
            customer_token=as_text(data.get(f.ORDER_TOKEN)) or "",
            dish_id=as_text(data.get(f.ORDER_DISH_ID)),
            meal_type=as_text(data.get(f.ORDER_MEAL)),
            delivery_date=as_text(data.get(f.ORDER_DELIVERY_DATE)),
            original_ingredient_ids=as_id_list(data.get(f.ORDER_ORIGINAL_INGREDIENTS)),
            final_ingredient_ids=as_id_list(data.get(f.ORDER_FINAL_INGREDIENTS)),
            audit_log=data.get(f.ORDER_AUDIT_LOG) or "",
            item_name=as_text(data.get(f.ORDER_ITEM_NAME)) or "Unknown Item",
            item_id=as_text(data.get(f.ORDER_ITEM_ID)),
            line_number=as_int(data.get(f.ORDER_LINE_NUMBER)),
            quantity=as_int(data.get(f.ORDER_QUANTITY)),
            ingredients_version=as_int(data.get(f.ORDER_INGREDIENTS_VERSION)),
            subscription_id=as_text(data.get(f.ORDER_SUBSCRIPTION_ID)),
            email=as_text(data.get(f.ORDER_EMAIL)),
            nutrition_notes=data.get(f.ORDER_NUTRITION_NOTES) or "",
            allergy_ids=as_id_list(data.get(f.ORDER_ALLERGIES)),
            nutrition=nutrition_from_fields(data),
            fields=dict(data),
        )


@dataclass
class AvailableDish:
    """A weekly menu entry not yet tied to an order line."""
    dish_id: str
    meal_type: str
    item_name: str
    ingredient_ids: List[str] = field(default_factory=list)
    image_url: Optional[str] = None
    nutrition: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: Record) -> List["AvailableDish"]:
        """One entry per meal type the menu record is offered for."""
        data = record.fields
        meal_types = sorted(as_meal_types(data.get(f.MENU_MEAL)))
        return [
            cls(
                dish_id=record.id,
                meal_type=meal_type,
                item_name=as_text(data.get(f.MENU_TITLE)) or "Unknown Item",
                ingredient_ids=as_id_list(data.get(f.MENU_INGREDIENTS)),
                image_url=image_url_from_fields(data),
                nutrition=nutrition_from_fields(data),
            )
            for meal_type in meal_types
        ]


# =============================================================================
# Options
# =============================================================================

@dataclass
class OptionEntry:
    """One choice in a customization section. ``id=None`` means "No Sauce"."""
    id: Optional[str]
    name: str
    is_active: bool = False


@dataclass
class ProteinOption(OptionEntry):
    variant_name: str = ""
    price: float = 0.0


@dataclass
class ProteinOptions:
    current_protein: Optional[IngredientInfo] = None
    options: List[ProteinOption] = field(default_factory=list)


@dataclass
class DishOptions:
    sauce: List[OptionEntry] = field(default_factory=list)
    garnish: List[OptionEntry] = field(default_factory=list)
    veggie: List[OptionEntry] = field(default_factory=list)
    starch: List[OptionEntry] = field(default_factory=list)
