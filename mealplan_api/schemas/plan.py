"""
Plan Schemas for the Meal Plan API
==================================

Pydantic models for the per-customer plan endpoints. The plan viewer front
end speaks camelCase JSON (``recordId``, ``newQuantity``, ``shouldActivate``),
so every model here uses a camelCase alias generator while Python code keeps
snake_case attribute names. ``populate_by_name`` lets services build
responses with either spelling.

Endpoint Coverage:
------------------
- GET /orders/{token}: PlanResponse
- PATCH /orders/{token}/quantity: QuantityUpdateRequest -> QuantityResponse
- PATCH /orders/{token}: BatchQuantityRequest -> BatchQuantityResponse
- PATCH /orders/{token}/toggle-veggie: ToggleVeggieRequest -> EditResponse
- PATCH /orders/{token}/toggle-garnish: ToggleGarnishRequest -> EditResponse
- PATCH /orders/{token}/replace-sauce: ReplaceSauceRequest -> EditResponse
- PATCH /orders/{token}/replace-starch: ReplaceStarchRequest -> EditResponse
- PATCH /orders/{token}/replace-protein: ReplaceProteinRequest -> EditResponse
- PATCH /orders/{token}/ingredients/toggle: ToggleIngredientRequest -> ToggleIngredientResponse
- PATCH /orders/{token}/ingredients: DeleteIngredientRequest -> DeleteIngredientResponse
- POST /orders/{token}/dishes: AddDishRequest -> AddDishResponse

Versioning:
-----------
Every ingredient edit accepts an optional ``expectedVersion`` (the
``ingredientsVersion`` the client loaded). A stale value is answered with 409.
"""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Plan view
# =============================================================================

class OptionOut(CamelModel):
    """One choice in a customization section; ``id`` is null for "No Sauce"."""
    id: Optional[str] = None
    name: str
    is_active: bool = False


class ProteinOptionOut(OptionOut):
    variant_name: str = ""
    price: float = 0.0


class IngredientOut(CamelModel):
    id: str
    name: str
    component: Optional[str] = None

    @field_validator("component", mode="before")
    @classmethod
    def component_value(cls, v: Any) -> Any:
        return v.value if isinstance(v, Enum) else v


class ProteinOptionsOut(CamelModel):
    current_protein: Optional[IngredientOut] = None
    options: List[ProteinOptionOut] = Field(default_factory=list)


class DishOptionsOut(CamelModel):
    sauce: List[OptionOut] = Field(default_factory=list)
    garnish: List[OptionOut] = Field(default_factory=list)
    veggie: List[OptionOut] = Field(default_factory=list)
    starch: List[OptionOut] = Field(default_factory=list)


class IngredientRef(CamelModel):
    id: str
    name: str


class DishViewOut(CamelModel):
    """
    An ordered dish group or an available catalog dish.

    Ordered dishes carry ``recordId`` (the representative line, used for
    edits) and ``recordIds`` (every serving). Available dishes have
    ``quantity`` 0, ``isAvailable`` true and no record ids.
    """
    record_id: Optional[str] = None
    record_ids: List[str] = Field(default_factory=list)
    dish_id: Optional[str] = None
    item_id: Optional[str] = None
    item_name: str
    meal: Optional[str] = None
    delivery_date: Optional[str] = None
    quantity: int = 0
    is_ordered: bool = False
    is_available: bool = False
    email: Optional[str] = None
    order_subscription_id: Optional[str] = None
    nutrition_notes: str = ""
    ingredients_version: int = 0
    image_url: Optional[str] = None
    allergies: List[str] = Field(default_factory=list)

    calories: float = 0
    carbs: float = 0
    protein: float = 0
    fat: float = 0
    fiber: float = 0

    original_ingredients: List[str] = Field(default_factory=list)
    final_ingredients: List[str] = Field(default_factory=list)
    ingredients: List[str] = Field(default_factory=list)
    has_custom_ingredients: bool = False
    all_ingredients: List[IngredientRef] = Field(default_factory=list)
    options: DishOptionsOut = Field(default_factory=DishOptionsOut)
    protein_options: ProteinOptionsOut = Field(default_factory=ProteinOptionsOut)


class DeliveryGroupOut(CamelModel):
    delivery_date: Optional[str] = None
    label: str
    meal_types: List[Optional[str]] = Field(default_factory=list)
    dishes: List[DishViewOut] = Field(default_factory=list)


class CustomerOut(CamelModel):
    name: str = ""
    email: Optional[str] = None


class NutritionGoalsOut(CamelModel):
    calories: float = 0
    carbs: float = 0
    protein: float = 0
    fat: float = 0
    fiber: float = 0
    allergies: List[str] = Field(default_factory=list)
    notes: str = ""
    snacks_per_day: int = 0


class NutritionTotalsOut(CamelModel):
    calories: float = 0
    carbs: float = 0
    protein: float = 0
    fat: float = 0
    fiber: float = 0


class PlanSummaryOut(CamelModel):
    total_meals: int = 0
    calorie_progress: float = 0


class PlanResponse(CamelModel):
    customer: CustomerOut
    nutrition_goals: NutritionGoalsOut
    current_totals: NutritionTotalsOut
    summary: PlanSummaryOut
    groups: List[DeliveryGroupOut] = Field(default_factory=list)
    orders: List[DishViewOut] = Field(default_factory=list)


# =============================================================================
# Quantity
# =============================================================================

class QuantityUpdateRequest(CamelModel):
    record_id: str
    new_quantity: int
    item_name: Optional[str] = None


class QuantityResponse(CamelModel):
    success: bool = True
    message: str
    record_id: str
    new_quantity: int
    previous_quantity: int
    created_record_ids: List[str] = Field(default_factory=list)
    deleted_record_ids: List[str] = Field(default_factory=list)


class BatchQuantityUpdate(CamelModel):
    record_id: str
    new_quantity: int
    quantity_delta: Optional[int] = None


class BatchQuantityRequest(CamelModel):
    updates: List[BatchQuantityUpdate]


class BatchQuantityResult(CamelModel):
    record_id: Optional[str] = None
    success: bool
    new_quantity: Optional[int] = None
    previous_quantity: Optional[int] = None
    error: Optional[str] = None
    details: Optional[Any] = None


class BatchQuantityResponse(CamelModel):
    success: bool
    updated_count: int
    message: str
    results: List[BatchQuantityResult] = Field(default_factory=list)


# =============================================================================
# Ingredient edits
# =============================================================================

class EditRequest(CamelModel):
    record_id: str
    expected_version: Optional[int] = None


class ToggleVeggieRequest(EditRequest):
    veggie_id: str
    should_activate: bool


class ToggleGarnishRequest(EditRequest):
    garnish_id: str
    should_activate: bool


class ReplaceSauceRequest(EditRequest):
    """``newSauceId`` null selects "No Sauce"."""
    new_sauce_id: Optional[str] = None
    old_sauce_id: Optional[str] = None


class ReplaceStarchRequest(EditRequest):
    new_starch_id: str
    old_starch_id: Optional[str] = None


class ReplaceProteinRequest(EditRequest):
    new_protein_id: str
    old_protein_id: Optional[str] = None


class ToggleIngredientRequest(EditRequest):
    should_activate: bool
    ingredient_name: Optional[str] = None
    ingredient_id: Optional[str] = None


class DeleteIngredientRequest(EditRequest):
    ingredient_to_delete: Optional[str] = None
    ingredient_id: Optional[str] = None


class EditResponse(CamelModel):
    success: bool = True
    message: str
    record_id: str
    updated_ingredient_ids: List[str] = Field(default_factory=list)
    ingredients_version: int


class ToggleIngredientResponse(EditResponse):
    active_ingredients: List[str] = Field(default_factory=list)
    final_ingredient_ids: List[str] = Field(default_factory=list)
    all_ingredients: List[IngredientRef] = Field(default_factory=list)


class DeleteIngredientResponse(EditResponse):
    updated_ingredients: List[str] = Field(default_factory=list)


# =============================================================================
# Add dish
# =============================================================================

class AddDishRequest(CamelModel):
    dish_id: str
    meal_type: str
    delivery_date: Optional[str] = None


class AddDishResponse(CamelModel):
    success: bool = True
    message: str
    record_id: str
    item_id: Optional[str] = None
    updated_ingredient_ids: List[str] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str
    details: Optional[Any] = None
