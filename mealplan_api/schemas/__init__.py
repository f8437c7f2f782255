"""
Schemas Package for the Meal Plan API
=====================================

Pydantic models used for request validation and response serialization.

Schema Organization:
--------------------
- **plan.py**: Plan view, quantity and ingredient edit schemas (camelCase JSON)
- **admin.py**: Admin and health responses

Naming Conventions:
-------------------
- *Out: Parts of a response (e.g., DishViewOut)
- *Request: Request bodies (e.g., ReplaceSauceRequest)
- *Response: Complete response bodies (e.g., PlanResponse)

Usage:
------
    from mealplan_api.schemas import PlanResponse, QuantityUpdateRequest
"""

from .plan import (
    AddDishRequest,
    AddDishResponse,
    BatchQuantityRequest,
    BatchQuantityResponse,
    BatchQuantityResult,
    BatchQuantityUpdate,
    CamelModel,
    CustomerOut,
    DeleteIngredientRequest,
    DeleteIngredientResponse,
    DeliveryGroupOut,
    DishOptionsOut,
    DishViewOut,
    EditResponse,
    ErrorResponse,
    IngredientOut,
    IngredientRef,
    NutritionGoalsOut,
    NutritionTotalsOut,
    OptionOut,
    PlanResponse,
    PlanSummaryOut,
    ProteinOptionOut,
    ProteinOptionsOut,
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
from .admin import CacheClearResponse, HealthResponse, SendEmailsResponse

__all__ = [
    "AddDishRequest",
    "AddDishResponse",
    "BatchQuantityRequest",
    "BatchQuantityResponse",
    "BatchQuantityResult",
    "BatchQuantityUpdate",
    "CamelModel",
    "CustomerOut",
    "DeleteIngredientRequest",
    "DeleteIngredientResponse",
    "DeliveryGroupOut",
    "DishOptionsOut",
    "DishViewOut",
    "EditResponse",
    "ErrorResponse",
    "IngredientOut",
    "IngredientRef",
    "NutritionGoalsOut",
    "NutritionTotalsOut",
    "OptionOut",
    "PlanResponse",
    "PlanSummaryOut",
    "ProteinOptionOut",
    "ProteinOptionsOut",
    "QuantityResponse",
    "QuantityUpdateRequest",
    "ReplaceProteinRequest",
    "ReplaceSauceRequest",
    "ReplaceStarchRequest",
    "ToggleGarnishRequest",
    "ToggleIngredientRequest",
    "ToggleIngredientResponse",
    "ToggleVeggieRequest",
    "CacheClearResponse",
    "HealthResponse",
    "SendEmailsResponse",
]
