"""
Routes Package for the Meal Plan API
====================================

API route definitions, one APIRouter per concern.

**Customer-Facing Routes:**
- orders.py: Plan view, quantity changes and ingredient edits (by token)

**Admin Routes (require authentication):**
- admin.py: Weekly emails and cache reset

Router Registration:
--------------------
create_app registers every router under two prefixes:
1. /api/v1/* - Versioned API (recommended)
2. /api/* - Paths the existing plan viewer calls

Error Handling:
---------------
- 400: Invalid request (quantity out of range, ambiguous ingredient name)
- 401: Unauthorized (invalid admin credentials)
- 404: Unknown token, order line or ingredient
- 409: Dish already ordered, or stale expectedVersion
- 422: Request body failed validation
- 429: Too many requests (rate limited)
- 502: Record store failure
- 503: Admin authentication not configured
"""

from .orders import plan_router, limiter
from .admin import admin_router

__all__ = ["plan_router", "admin_router", "limiter"]
