"""
Plan Routes for the Meal Plan API
=================================

Customer-facing endpoints behind the emailed plan link. Every path carries
the customer's token; edits name the order line by ``recordId``.

Endpoints:
----------
- GET    /orders/{token}: Aggregated plan (ordered + available dishes by date)
- PATCH  /orders/{token}: Batch quantity update
- PATCH  /orders/{token}/quantity: Set the serving count of one dish
- PATCH  /orders/{token}/toggle-veggie: Add/remove a veggie
- PATCH  /orders/{token}/toggle-garnish: Add/remove a garnish
- PATCH  /orders/{token}/replace-sauce: Swap the sauce (or pick "No Sauce")
- PATCH  /orders/{token}/replace-starch: Swap the starch
- PATCH  /orders/{token}/replace-protein: Swap the protein
- PATCH  /orders/{token}/ingredients/toggle: Toggle an ingredient by name or id
- PATCH  /orders/{token}/ingredients: Remove an ingredient by name or id
- POST   /orders/{token}/dishes: Add a catalog dish to the plan

Error Handling:
---------------
Services raise PlanError subclasses; the application's exception handler
renders them as ``{"error", "details"}`` with the matching status
(400/404/409/502). Malformed bodies fail pydantic validation with 422.

Rate Limiting:
--------------
All endpoints are rate limited per client address (default: 60/minute).
"""

import logging

from fastapi import APIRouter, Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from ..config import RATE_LIMIT_ENABLED, get_rate_limit_plan
from ..schemas.plan import (
    AddDishRequest,
    AddDishResponse,
    BatchQuantityRequest,
    BatchQuantityResponse,
    DeleteIngredientRequest,
    DeleteIngredientResponse,
    EditResponse,
    ErrorResponse,
    PlanResponse,
    QuantityResponse,
    QuantityUpdateRequest,
    ReplaceProteinRequest,
    ReplaceSauceRequest,
    ReplaceStarchRequest,
    ToggleGarnishRequest,
    ToggleIngredientRequest,
    ToggleIngredientResponse,
    ToggleVeggieRequest,
)
from ..services.plan import PlanService

logger = logging.getLogger(__name__)

plan_router = APIRouter(
    prefix="/orders",
    tags=["Plan"],
    responses={code: {"model": ErrorResponse} for code in (400, 404, 409, 502)},
)

limiter = Limiter(key_func=get_remote_address, enabled=RATE_LIMIT_ENABLED)


def get_plan_service(request: Request) -> PlanService:
    """The PlanService built by create_app."""
    return request.app.state.plan_service


# =============================================================================
# Plan View
# =============================================================================

@plan_router.get("/{token}", response_model=PlanResponse)
@limiter.limit(get_rate_limit_plan)
def get_plan(
    request: Request,
    token: str,
    service: PlanService = Depends(get_plan_service),
):
    """Return the customer's plan grouped by delivery date."""
    return service.get_plan(token)


# =============================================================================
# Quantities
# =============================================================================

@plan_router.patch("/{token}", response_model=BatchQuantityResponse)
@limiter.limit(get_rate_limit_plan)
def batch_update_quantities(
    request: Request,
    token: str,
    payload: BatchQuantityRequest,
    service: PlanService = Depends(get_plan_service),
):
    """Apply several quantity changes; each is reported in ``results``."""
    updates = [update.model_dump() for update in payload.updates]
    return service.batch_update_quantities(token, updates)


@plan_router.patch("/{token}/quantity", response_model=QuantityResponse)
@limiter.limit(get_rate_limit_plan)
def update_quantity(
    request: Request,
    token: str,
    payload: QuantityUpdateRequest,
    service: PlanService = Depends(get_plan_service),
):
    """
    Set how many servings of a dish the customer gets.

    The count applies to every line sharing the dish, meal and delivery date
    of ``recordId``. 0 removes the dish. Resubmitting the same count after a
    failure is safe.
    """
    return service.update_quantity(token, payload.record_id, payload.new_quantity)


# =============================================================================
# Ingredient Edits
# =============================================================================

@plan_router.patch("/{token}/toggle-veggie", response_model=EditResponse)
@limiter.limit(get_rate_limit_plan)
def toggle_veggie(
    request: Request,
    token: str,
    payload: ToggleVeggieRequest,
    service: PlanService = Depends(get_plan_service),
):
    return service.toggle_veggie(
        token, payload.record_id, payload.veggie_id, payload.should_activate, payload.expected_version
    )


@plan_router.patch("/{token}/toggle-garnish", response_model=EditResponse)
@limiter.limit(get_rate_limit_plan)
def toggle_garnish(
    request: Request,
    token: str,
    payload: ToggleGarnishRequest,
    service: PlanService = Depends(get_plan_service),
):
    return service.toggle_garnish(
        token, payload.record_id, payload.garnish_id, payload.should_activate, payload.expected_version
    )


@plan_router.patch("/{token}/replace-sauce", response_model=EditResponse)
@limiter.limit(get_rate_limit_plan)
def replace_sauce(
    request: Request,
    token: str,
    payload: ReplaceSauceRequest,
    service: PlanService = Depends(get_plan_service),
):
    """Swap the sauce. ``newSauceId: null`` removes it ("No Sauce")."""
    return service.replace_sauce(
        token, payload.record_id, payload.new_sauce_id, payload.old_sauce_id, payload.expected_version
    )


@plan_router.patch("/{token}/replace-starch", response_model=EditResponse)
@limiter.limit(get_rate_limit_plan)
def replace_starch(
    request: Request,
    token: str,
    payload: ReplaceStarchRequest,
    service: PlanService = Depends(get_plan_service),
):
    return service.replace_starch(
        token, payload.record_id, payload.new_starch_id, payload.old_starch_id, payload.expected_version
    )


@plan_router.patch("/{token}/replace-protein", response_model=EditResponse)
@limiter.limit(get_rate_limit_plan)
def replace_protein(
    request: Request,
    token: str,
    payload: ReplaceProteinRequest,
    service: PlanService = Depends(get_plan_service),
):
    return service.replace_protein(
        token, payload.record_id, payload.new_protein_id, payload.old_protein_id, payload.expected_version
    )


@plan_router.patch("/{token}/ingredients/toggle", response_model=ToggleIngredientResponse)
@limiter.limit(get_rate_limit_plan)
def toggle_ingredient(
    request: Request,
    token: str,
    payload: ToggleIngredientRequest,
    service: PlanService = Depends(get_plan_service),
):
    """
    Toggle one ingredient of the dish.

    ``ingredientId`` wins over ``ingredientName``. A name matching several
    ingredients is rejected with the candidates in ``details``.
    """
    return service.toggle_ingredient(
        token,
        payload.record_id,
        payload.should_activate,
        ingredient_name=payload.ingredient_name,
        ingredient_id=payload.ingredient_id,
        expected_version=payload.expected_version,
    )


@plan_router.patch("/{token}/ingredients", response_model=DeleteIngredientResponse)
@limiter.limit(get_rate_limit_plan)
def delete_ingredient(
    request: Request,
    token: str,
    payload: DeleteIngredientRequest,
    service: PlanService = Depends(get_plan_service),
):
    return service.delete_ingredient(
        token,
        payload.record_id,
        ingredient_name=payload.ingredient_to_delete,
        ingredient_id=payload.ingredient_id,
        expected_version=payload.expected_version,
    )


# =============================================================================
# Add Dish
# =============================================================================

@plan_router.post("/{token}/dishes", response_model=AddDishResponse, status_code=201)
@limiter.limit(get_rate_limit_plan)
def add_dish(
    request: Request,
    token: str,
    payload: AddDishRequest,
    service: PlanService = Depends(get_plan_service),
):
    """Add a dish from the weekly menu. Already-ordered dishes answer 409."""
    return service.add_dish(token, payload.dish_id, payload.meal_type, payload.delivery_date)
