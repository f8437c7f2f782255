"""
Services Package for the Meal Plan API
======================================

Business operations behind the HTTP routes. Services receive their
dependencies (record store, caches) rather than creating them, so tests can
hand them an in-memory store.

Available Services:
-------------------
- **customers**: Token lookup and nutrition goals
- **plan**: PlanService, every per-token plan operation

Usage:
------
    from mealplan_api.services import PlanService

    service = PlanService(store, classifier, variants)
    plan = service.get_plan(token)
"""

from . import customers
from .plan import PlanService

__all__ = ["customers", "PlanService"]
